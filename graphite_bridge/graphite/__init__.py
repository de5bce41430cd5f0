"""Graphite layer - codificación y envío por TCP."""

from __future__ import annotations

from common.config import Settings

from .backoff import BackoffPolicy, ExponentialBackoff, FixedBackoff
from .channel import ChannelClosedError, GraphiteChannel
from .channel_stats import ChannelStats, ConnectionState
from .encoder import encode_line, format_value
from .queue_config import SendQueueConfig
from .send_queue import SendQueue


def create_channel(settings: Settings) -> GraphiteChannel:
    """Factory: construye el canal a partir de la configuración."""
    return GraphiteChannel(
        settings.graphite_host,
        settings.graphite_port,
        connect_timeout=settings.connect_timeout,
        backoff=FixedBackoff(settings.reconnect_backoff),
        write_timeout=settings.write_timeout,
        queue_config=SendQueueConfig(
            max_queue_size=settings.queue_max_size,
            drop_oldest=settings.queue_drop_oldest,
        ),
    )


__all__ = [
    "BackoffPolicy",
    "ChannelClosedError",
    "ChannelStats",
    "ConnectionState",
    "ExponentialBackoff",
    "FixedBackoff",
    "GraphiteChannel",
    "SendQueue",
    "SendQueueConfig",
    "create_channel",
    "encode_line",
    "format_value",
]
