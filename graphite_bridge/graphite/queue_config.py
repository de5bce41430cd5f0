"""Configuración y estadísticas de la cola de envío.

Los valores vienen de common.config.Settings (GRAPHITE_QUEUE_*).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SendQueueConfig:
    """Configuración de la cola de envío."""
    max_queue_size: int = 10000
    drop_oldest: bool = True  # True = drop oldest, False = drop newest


@dataclass
class SendQueueStats:
    """Estadísticas de la cola."""
    enqueued: int = 0
    dequeued: int = 0
    dropped: int = 0
    current_size: int = 0
    max_size: int = 0
