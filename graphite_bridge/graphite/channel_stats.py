"""Statistics for the Graphite forwarding channel."""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """Estados de la conexión con Graphite."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class ChannelStats:
    """Contadores del canal de envío."""

    def __init__(self):
        self.written = 0
        self.write_errors = 0
        self.dropped = 0
        self.connect_attempts = 0
        self.connect_failures = 0
        self.connections = 0
        self.last_write_at: float = 0
        self.last_error: str | None = None

    def __str__(self) -> str:
        return (
            f"Stats: written={self.written} write_errors={self.write_errors} "
            f"dropped={self.dropped} connections={self.connections} "
            f"connect_failures={self.connect_failures}"
        )

    def to_dict(self) -> dict:
        return {
            "written": self.written,
            "write_errors": self.write_errors,
            "dropped": self.dropped,
            "connect_attempts": self.connect_attempts,
            "connect_failures": self.connect_failures,
            "connections": self.connections,
            "reconnect_count": max(0, self.connections - 1),
            "last_write_at": self.last_write_at,
            "last_error": self.last_error,
        }
