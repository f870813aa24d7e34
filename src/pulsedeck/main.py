"""PulseDeck FastAPI application entry point."""
import asyncio
import logging
import math
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from time import monotonic
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from .api.health import router as health_router
from .api.rate_limit import InMemoryRateLimiter, RedisRateLimiter
from .api.routes import router as metrics_router
from .config import Settings
from .errors import DependencyError, PulseDeckError, RateLimitExceededError
from .storage.pool import ConnectionPool
from .storage.schema import init_database


logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def error_body(message: str, error_code: str) -> dict:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def handle_pulsedeck_error(request: Request, exc: PulseDeckError) -> JSONResponse:
    """Translate domain exceptions into JSON error responses."""
    headers = None

    if isinstance(exc, DependencyError):
        logger.error(
            "Dependency failure on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        message = "Internal server error"
    else:
        message = str(exc)

    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(max(math.ceil(exc.retry_after), 1))}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.error_code),
        headers=headers,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler so every failure still returns the JSON error body."""
    logger.error(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("Internal server error", "INTERNAL_SERVER_ERROR"),
    )


def _build_rate_limiter(settings: Settings):
    if settings.redis_url:
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(
            Redis.from_url(settings.redis_url, decode_responses=True),
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return InMemoryRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        max_clients=settings.rate_limit_max_clients,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings

    init_database(settings.db_path)
    app.state.pool = ConnectionPool(
        settings.db_path,
        size=settings.db_pool_size,
        timeout=settings.db_pool_timeout,
    )
    app.state.rate_limiter = _build_rate_limiter(settings)

    sweeper: Optional[asyncio.Task] = None
    if isinstance(app.state.rate_limiter, InMemoryRateLimiter):
        sweeper = asyncio.create_task(
            app.state.rate_limiter.run_sweeper(settings.rate_limit_sweep_seconds)
        )

    logger.info("PulseDeck API started (database: %s)", settings.db_path)

    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
        await app.state.rate_limiter.close()
        app.state.pool.close()
        logger.info("PulseDeck API stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="PulseDeck API",
        version="0.1.0",
        description="Workspace marketing metrics: KPI overview, comparisons and insights",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(PulseDeckError, handle_pulsedeck_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (monotonic() - started) * 1000,
        )
        return response

    app.include_router(health_router)
    app.include_router(metrics_router)

    return app


configure_logging(Settings.from_env().log_level)

app = create_app()
