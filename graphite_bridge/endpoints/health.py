"""Health and readiness endpoints."""

from fastapi import APIRouter, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    """Liveness probe: always returns ok if process is running."""
    return {"status": "ok", "graphite": request.app.state.channel.stats}


@router.get("/ready")
def ready(request: Request):
    """Readiness probe: checks the Graphite connection."""
    check = request.app.state.channel.health_check()
    if not check["healthy"]:
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready", "graphite": check}


@router.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
