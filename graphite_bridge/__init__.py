"""Bridge HTTP (collectd write_http JSON) → Graphite plaintext."""

__version__ = "0.1.0"
