"""Endpoint de ingesta collectd (write_http, formato JSON).

Acepta cualquier método en `/`. Responde en texto plano:

    Ok: <muestras>
    Errors: <errores>
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ..ingest_service import forward_batch
from ..metrics import INGEST_REQUESTS
from ..schemas import CollectdBatch

logger = logging.getLogger(__name__)

router = APIRouter(tags=["collectd-ingest"])

INGEST_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/", methods=INGEST_METHODS, response_class=PlainTextResponse)
async def ingest_collectd(request: Request) -> PlainTextResponse:
    """Recibe un lote collectd y lo reenvía a Graphite.

    Un JSON inválido devuelve el texto del error de decodificación
    (400, o 200 si INGEST_LEGACY_STATUS_CODES está activo).
    """
    settings = request.app.state.settings
    channel = request.app.state.channel

    body = await request.body()
    try:
        records = CollectdBatch.validate_json(body)
    except ValidationError as e:
        INGEST_REQUESTS.labels(status="decode_error").inc()
        logger.warning(
            "[INGEST] Decode error from %s: %d error(s)",
            request.client.host if request.client else "?",
            e.error_count(),
        )
        status_code = status.HTTP_200_OK if settings.legacy_status_codes else status.HTTP_400_BAD_REQUEST
        return PlainTextResponse(f"{e}\n", status_code=status_code)

    # write_direct bloquea: se ejecuta fuera del event loop.
    result = await run_in_threadpool(
        forward_batch,
        channel,
        records,
        mode=settings.forward_mode,
        expected_interval=settings.expected_interval,
        direct_write_timeout=settings.direct_write_timeout,
    )

    INGEST_REQUESTS.labels(status="ok").inc()
    return PlainTextResponse(result.summary())
