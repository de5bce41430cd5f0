"""Fixtures compartidas: servidor Graphite falso y muestras de collectd."""

from __future__ import annotations

import socket
import threading
from typing import Any, Dict, List

import pytest


class FakeGraphiteServer:
    """Servidor TCP que acumula todo lo recibido (una conexión a la vez)."""

    def __init__(self):
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(5)
        self.host, self.port = self._listener.getsockname()
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while True:
            try:
                conn, _ = self._listener.accept()
            except OSError:
                return
            with conn:
                while True:
                    data = conn.recv(65536)
                    if not data:
                        break
                    with self._lock:
                        self._chunks.append(data)

    @property
    def data(self) -> bytes:
        with self._lock:
            return b"".join(self._chunks)

    def lines(self) -> List[str]:
        return self.data.decode("utf-8").splitlines(keepends=True)

    def close(self) -> None:
        self._listener.close()


@pytest.fixture
def graphite_server():
    server = FakeGraphiteServer()
    yield server
    server.close()


@pytest.fixture
def collectd_record() -> Dict[str, Any]:
    """Registro collectd válido."""
    return {
        "values": [3.2],
        "dstypes": ["gauge"],
        "dsnames": ["value"],
        "time": 1000,
        "interval": 10,
        "host": "web.01",
        "plugin": "cpu",
        "plugin_instance": "0",
        "type": "idle",
        "type_instance": "",
    }
