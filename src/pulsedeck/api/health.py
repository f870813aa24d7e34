"""Liveness and readiness probes."""
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ..errors import DependencyError
from ..storage.metrics_store import MetricsStore


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness probe")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/ready", summary="Readiness probe (database reachable)")
def ready(request: Request) -> JSONResponse:
    try:
        with request.app.state.pool.connection() as conn:
            MetricsStore(conn).ping()
    except DependencyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return JSONResponse(content={"status": "ready"})
