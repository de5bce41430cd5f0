"""Módulo de endpoints HTTP."""

from .collectd_ingest import router as collectd_ingest_router
from .health import router as health_router

__all__ = [
    "collectd_ingest_router",
    "health_router",
]
