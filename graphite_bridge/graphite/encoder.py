"""Encoder del protocolo plaintext de Graphite."""

from __future__ import annotations

import time
from typing import Callable

from ..schemas import GraphiteSample


def format_value(value: float) -> str:
    """Representación decimal/científica más corta (3.2, 1, 1e+16)."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def encode_line(sample: GraphiteSample, clock: Callable[[], float] = time.time) -> str:
    """Devuelve `"<metric> <value> <timestamp>\\n"`.

    Un timestamp 0 se reemplaza por la hora actual en el momento de
    codificar (no de crear la muestra).
    """
    timestamp = sample.timestamp or int(clock())
    return f"{sample.metric} {format_value(sample.value)} {int(timestamp)}\n"
