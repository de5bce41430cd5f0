"""Métricas Prometheus del bridge."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

GRAPHITE_SAMPLES_WRITTEN = Counter(
    "graphite_bridge_samples_written_total",
    "Samples written to the Graphite socket",
)
GRAPHITE_WRITE_ERRORS = Counter(
    "graphite_bridge_write_errors_total",
    "Samples lost because the socket write failed",
)
GRAPHITE_SAMPLES_DROPPED = Counter(
    "graphite_bridge_samples_dropped_total",
    "Samples dropped before reaching the socket",
    ["reason"],  # queue_full, closed, cancelled
)
GRAPHITE_RECONNECTS = Counter(
    "graphite_bridge_connect_attempts_total",
    "Connection attempts to Graphite",
    ["status"],  # success, failed
)
GRAPHITE_CONNECTED = Gauge(
    "graphite_bridge_connected",
    "Graphite connection status",
)
GRAPHITE_QUEUE_DEPTH = Gauge(
    "graphite_bridge_queue_depth",
    "Items waiting for the Graphite writer",
)
INGEST_REQUESTS = Counter(
    "graphite_bridge_ingest_requests_total",
    "collectd batches received",
    ["status"],  # ok, decode_error
)
INGEST_SAMPLES = Counter(
    "graphite_bridge_ingest_samples_total",
    "Samples produced from collectd batches",
)
INGEST_MALFORMED_RECORDS = Counter(
    "graphite_bridge_ingest_malformed_records_total",
    "collectd records skipped because values and dsnames differ in length",
)
