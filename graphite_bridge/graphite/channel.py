"""Canal de envío a Graphite.

Un único thread writer es dueño del socket TCP. Los productores (requests
HTTP) nunca tocan el socket: encolan muestras en una SendQueue y el writer
las escribe en orden FIFO.

Ciclo de vida de la conexión:

    DISCONNECTED --connect ok--> CONNECTED --write error--> DISCONNECTED
         |  ^
         +--+ connect falla: espera backoff.delay(attempt) y reintenta

No hay máximo de reintentos. close() detiene el writer y pasa a CLOSED.

Dos caminos de envío:
- enqueue(): fire-and-forget, no informa el resultado de la escritura.
- write_direct(): espera a que el writer escriba la muestra y devuelve
  True/False.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ..metrics import (
    GRAPHITE_CONNECTED,
    GRAPHITE_QUEUE_DEPTH,
    GRAPHITE_RECONNECTS,
    GRAPHITE_SAMPLES_DROPPED,
    GRAPHITE_SAMPLES_WRITTEN,
    GRAPHITE_WRITE_ERRORS,
)
from ..schemas import GraphiteSample
from .backoff import BackoffPolicy, FixedBackoff
from .channel_stats import ChannelStats, ConnectionState
from .encoder import encode_line
from .queue_config import SendQueueConfig
from .send_queue import SendQueue

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 2.0
DEFAULT_RECONNECT_BACKOFF = 10.0

Connector = Callable[[Tuple[str, int], float], Any]


class ChannelClosedError(RuntimeError):
    """Se intentó arrancar un canal ya cerrado."""


@dataclass
class _Outbound:
    sample: GraphiteSample
    future: Optional[Future] = None


class GraphiteChannel:
    """Conexión persistente a Graphite con reconexión automática.

    Uso:
        channel = GraphiteChannel("localhost", 2003)
        channel.start()
        channel.enqueue(sample)
        ok = channel.write_direct(sample)
        channel.close()

    Args:
        connect_timeout: Timeout de cada intento de conexión
        backoff: Política de espera entre intentos (default: 10s fijo)
        write_timeout: Deadline de escritura en el socket (None = sin límite)
        queue_config: Tamaño y política de descarte de la cola
        connector: Factory de sockets, `(address, timeout) -> socket`
        sleep: Espera entre intentos; por defecto es interrumpible por close()
        clock: Reloj usado para los timestamps 0
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        backoff: Optional[BackoffPolicy] = None,
        write_timeout: Optional[float] = None,
        queue_config: Optional[SendQueueConfig] = None,
        connector: Optional[Connector] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        clock: Callable[[], float] = time.time,
        poll_interval: float = 0.5,
        drain_on_close: bool = True,
    ):
        self.host = host
        self.port = port
        self._connect_timeout = connect_timeout
        self._backoff = backoff or FixedBackoff(DEFAULT_RECONNECT_BACKOFF)
        self._write_timeout = write_timeout
        self._connector: Connector = connector or socket.create_connection
        self._clock = clock
        self._poll_interval = poll_interval
        self._drain_on_close = drain_on_close

        self._queue: SendQueue[_Outbound] = SendQueue(queue_config or SendQueueConfig())
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._connected_event = threading.Event()
        self._submit_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = ChannelStats()

        # Solo el writer toca self._sock.
        self._sock: Optional[socket.socket] = None
        self._state = ConnectionState.DISCONNECTED
        self._thread: Optional[threading.Thread] = None

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def start(self) -> None:
        """Arranca el thread writer (que conecta antes de escribir nada)."""
        if self._stop_event.is_set():
            raise ChannelClosedError(f"Channel to {self.endpoint} is closed")
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"graphite-writer-{self.endpoint}",
        )
        self._thread.start()

    def wait_until_connected(self, timeout: Optional[float] = None) -> bool:
        """Bloquea hasta que el canal esté conectado (o cerrado)."""
        self._connected_event.wait(timeout)
        return self.is_connected

    def enqueue(self, sample: GraphiteSample) -> bool:
        """Encola una muestra sin esperar la escritura.

        Returns:
            False si la muestra se descartó (canal cerrado o cola llena con
            drop newest). El resultado de la escritura no se informa.
        """
        with self._submit_lock:
            if self._stop_event.is_set():
                self._drop(_Outbound(sample), "closed")
                return False
            accepted, evicted = self._queue.put(_Outbound(sample))

        if evicted is not None:
            self._drop(evicted, "queue_full")
        if not accepted:
            self._drop(_Outbound(sample), "queue_full")
            return False

        GRAPHITE_QUEUE_DEPTH.set(self._queue.size)
        return True

    def write_direct(self, sample: GraphiteSample, timeout: Optional[float] = None) -> bool:
        """Escribe una muestra y espera el resultado.

        Mientras el canal está desconectado la llamada bloquea hasta que se
        restablezca la conexión (o hasta `timeout`). Una muestra cuyo timeout
        expira antes de llegar al writer se cancela y nunca se escribe.

        Returns:
            True si la muestra se escribió en el socket.
        """
        future: Future = Future()
        with self._submit_lock:
            if self._stop_event.is_set():
                self._drop(_Outbound(sample), "closed")
                return False
            # Las escrituras directas no se rechazan por cola llena: su
            # número está acotado por los requests concurrentes.
            _, evicted = self._queue.put(_Outbound(sample, future), force=True)

        if evicted is not None:
            self._drop(evicted, "queue_full")

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            if future.cancel():
                self._count_drop("cancelled")
                logger.warning(
                    "[GRAPHITE] Direct write timed out after %.1fs metric=%s",
                    timeout,
                    sample.metric,
                )
                return False
            # El writer ya la tomó: esperar el resultado de la escritura.
            return future.result()
        except CancelledError:
            return False

    def close(self, timeout: float = 5.0) -> None:
        """Detiene el writer, cierra la conexión y falla los envíos pendientes."""
        with self._submit_lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()

        self._queue.wake()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("[GRAPHITE] Writer did not stop within %.1fs", timeout)

        for item in self._queue.drain():
            self._drop(item, "closed")
        GRAPHITE_QUEUE_DEPTH.set(0)

        self._state = ConnectionState.CLOSED
        self._connected_event.set()
        logger.info("[GRAPHITE] Channel to %s closed. %s", self.endpoint, self._stats)

    def _run(self) -> None:
        logger.info("[GRAPHITE] Writer started endpoint=%s", self.endpoint)
        while True:
            if self._stop_event.is_set() and not self._should_flush():
                break
            if self._sock is None:
                if self._stop_event.is_set() or not self._connect():
                    break

            item = self._queue.get(timeout=self._poll_interval)
            if item is None:
                continue
            GRAPHITE_QUEUE_DEPTH.set(self._queue.size)
            self._deliver(item)

        self._disconnect()
        logger.info("[GRAPHITE] Writer stopped endpoint=%s", self.endpoint)

    def _should_flush(self) -> bool:
        return self._drain_on_close and self._sock is not None and self._queue.size > 0

    def _connect(self) -> bool:
        """Reintenta la conexión hasta lograrla o hasta close()."""
        attempt = 0
        while not self._stop_event.is_set():
            attempt += 1
            with self._stats_lock:
                self._stats.connect_attempts += 1
            try:
                sock = self._connector((self.host, self.port), self._connect_timeout)
            except OSError as e:
                delay = self._backoff.delay(attempt)
                with self._stats_lock:
                    self._stats.connect_failures += 1
                    self._stats.last_error = str(e)
                GRAPHITE_RECONNECTS.labels(status="failed").inc()
                logger.warning(
                    "[GRAPHITE] Connect to %s failed (attempt=%d): %s. Retrying in %.1fs",
                    self.endpoint,
                    attempt,
                    e,
                    delay,
                )
                self._sleep(delay)
                continue

            sock.settimeout(self._write_timeout)
            self._sock = sock
            with self._stats_lock:
                self._stats.connections += 1
            GRAPHITE_RECONNECTS.labels(status="success").inc()
            GRAPHITE_CONNECTED.set(1)
            if not self._stop_event.is_set():
                self._state = ConnectionState.CONNECTED
                self._connected_event.set()
            logger.info("[GRAPHITE] Connected to %s (attempt=%d)", self.endpoint, attempt)
            return True
        return False

    def _disconnect(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug("[GRAPHITE] Error closing socket: %s", e)
        GRAPHITE_CONNECTED.set(0)
        if self._state is ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTED
            self._connected_event.clear()

    def _deliver(self, item: _Outbound) -> None:
        if item.future is not None and not item.future.set_running_or_notify_cancel():
            # Cancelada por timeout del llamador.
            return

        line = encode_line(item.sample, self._clock)
        try:
            self._sock.sendall(line.encode("utf-8"))
        except OSError as e:
            with self._stats_lock:
                self._stats.write_errors += 1
                self._stats.last_error = str(e)
            GRAPHITE_WRITE_ERRORS.inc()
            logger.warning(
                "[GRAPHITE] Write to %s failed, sample dropped metric=%s err=%s",
                self.endpoint,
                item.sample.metric,
                e,
            )
            self._disconnect()
            ok = False
        else:
            with self._stats_lock:
                self._stats.written += 1
                self._stats.last_write_at = time.time()
            GRAPHITE_SAMPLES_WRITTEN.inc()
            ok = True

        if item.future is not None:
            item.future.set_result(ok)

    def _drop(self, item: _Outbound, reason: str) -> None:
        self._count_drop(reason)
        logger.debug("[GRAPHITE] Dropped metric=%s reason=%s", item.sample.metric, reason)
        if item.future is not None and item.future.set_running_or_notify_cancel():
            item.future.set_result(False)

    def _count_drop(self, reason: str) -> None:
        with self._stats_lock:
            self._stats.dropped += 1
        GRAPHITE_SAMPLES_DROPPED.labels(reason=reason).inc()

    @property
    def stats(self) -> dict:
        with self._stats_lock:
            data = self._stats.to_dict()
        data.update(
            {
                "endpoint": self.endpoint,
                "state": self._state.value,
                "queue": self._queue.get_stats(),
            }
        )
        return data

    def health_check(self) -> dict:
        """Health check para monitoreo."""
        with self._stats_lock:
            last_write_at = self._stats.last_write_at
        return {
            "healthy": self.is_connected,
            "state": self._state.value,
            "endpoint": self.endpoint,
            "queue_depth": self._queue.size,
            "last_write_age_seconds": time.time() - last_write_at if last_write_at > 0 else None,
        }
