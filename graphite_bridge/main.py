from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from common.config import Settings, get_settings

from .endpoints import collectd_ingest_router, health_router
from .graphite import GraphiteChannel, create_channel

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    channel: Optional[GraphiteChannel] = None,
) -> FastAPI:
    """Construye la app FastAPI.

    El canal se arranca en el lifespan. Con GRAPHITE_WAIT_ON_STARTUP el
    arranque bloquea hasta conectar con Graphite.
    """
    settings = settings or get_settings()
    channel = channel or create_channel(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        channel.start()
        if settings.wait_on_startup:
            logger.info("[BRIDGE] Waiting for Graphite at %s", channel.endpoint)
            await asyncio.to_thread(channel.wait_until_connected)
        try:
            yield
        finally:
            await asyncio.to_thread(channel.close)

    app = FastAPI(title="collectd to Graphite bridge", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.channel = channel

    app.include_router(health_router)
    app.include_router(collectd_ingest_router)
    return app


def main() -> None:
    p = argparse.ArgumentParser(description="collectd write_http (JSON) to Graphite plaintext bridge")
    p.add_argument("--graphite", default=None, help="Graphite LineReceiver host:port (default localhost:2003)")
    p.add_argument("--http", default=None, help="HTTP listener host:port (default :9292)")
    args = p.parse_args()

    settings = get_settings(graphite_endpoint=args.graphite, http_listen=args.http)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    logger.info(
        "[BRIDGE] Starting http=%s:%d graphite=%s mode=%s",
        settings.http_host,
        settings.http_port,
        settings.graphite_endpoint,
        settings.forward_mode,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
