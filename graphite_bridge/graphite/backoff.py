"""Políticas de espera entre intentos de reconexión."""

from __future__ import annotations

import random
from dataclasses import dataclass


class BackoffPolicy:
    """Interface: delay en segundos antes del siguiente intento."""

    def delay(self, attempt: int) -> float:
        raise NotImplementedError


@dataclass
class FixedBackoff(BackoffPolicy):
    """Delay fijo, reintentos infinitos (comportamiento por defecto: 10s)."""

    seconds: float = 10.0

    def delay(self, attempt: int) -> float:
        return self.seconds


@dataclass
class ExponentialBackoff(BackoffPolicy):
    """Backoff exponencial con tope y jitter opcional."""

    base_delay: float = 0.5
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        """
        Args:
            attempt: Número de intento fallido (1-indexed)
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Jitter de ±25%
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)
