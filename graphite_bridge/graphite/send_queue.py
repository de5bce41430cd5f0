"""Cola FIFO acotada entre los productores (requests HTTP) y el writer.

Cuando la cola se llena se aplica la política de descarte configurada:
drop oldest (por defecto) o drop newest.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Generic, List, Optional, Tuple, TypeVar

from .queue_config import SendQueueConfig, SendQueueStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SendQueue(Generic[T]):
    """Cola thread-safe con backpressure.

    Uso:
        queue = SendQueue[GraphiteSample](SendQueueConfig(max_queue_size=1000))

        # Productor
        accepted, evicted = queue.put(item)

        # Consumidor (writer)
        item = queue.get(timeout=1.0)
    """

    def __init__(self, config: Optional[SendQueueConfig] = None):
        self._config = config or SendQueueConfig()
        self._queue: deque[T] = deque()  # Manejamos el límite manualmente
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)

        self._stats = SendQueueStats(max_size=self._config.max_queue_size)

        logger.debug(
            "SendQueue initialized: max_size=%d, drop_oldest=%s",
            self._config.max_queue_size,
            self._config.drop_oldest,
        )

    def put(self, item: T, force: bool = False) -> Tuple[bool, Optional[T]]:
        """Agrega un item a la cola.

        Args:
            item: Item a encolar
            force: Ignora el límite de tamaño (el item nunca se rechaza)

        Returns:
            (aceptado, item descartado para hacerle sitio o None)
        """
        with self._lock:
            evicted: Optional[T] = None

            if not force and len(self._queue) >= self._config.max_queue_size:
                self._stats.dropped += 1
                if not self._config.drop_oldest or not self._queue:
                    logger.debug("Backpressure: dropped newest item")
                    return False, None
                evicted = self._queue.popleft()
                logger.debug("Backpressure: dropped oldest item")

            self._queue.append(item)
            self._stats.enqueued += 1
            self._stats.current_size = len(self._queue)

            self._not_empty.notify()
            return True, evicted

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Obtiene el siguiente item.

        Args:
            timeout: Segundos a esperar (None = bloquear indefinidamente)

        Returns:
            Item o None si timeout (o si se llamó a wake())
        """
        with self._not_empty:
            if not self._queue:
                self._not_empty.wait(timeout)

            if not self._queue:
                return None

            item = self._queue.popleft()
            self._stats.dequeued += 1
            self._stats.current_size = len(self._queue)
            return item

    def wake(self) -> None:
        """Despierta a los consumidores bloqueados en get()."""
        with self._not_empty:
            self._not_empty.notify_all()

    def drain(self) -> List[T]:
        """Vacía la cola y devuelve los items pendientes."""
        with self._lock:
            items = list(self._queue)
            self._queue.clear()
            self._stats.current_size = 0
            return items

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._queue) >= self._config.max_queue_size

    def get_stats(self) -> dict:
        """Estadísticas de la cola."""
        with self._lock:
            return {
                "enqueued": self._stats.enqueued,
                "dequeued": self._stats.dequeued,
                "dropped": self._stats.dropped,
                "current_size": len(self._queue),
                "max_size": self._config.max_queue_size,
                "utilization_pct": (len(self._queue) / self._config.max_queue_size * 100)
                    if self._config.max_queue_size > 0 else 0,
            }
