"""API key authentication for the PulseDeck metrics API."""
import logging
import secrets
from typing import Annotated, Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader


logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-PULSEDECK-API-KEY"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid API key",
        headers={"WWW-Authenticate": "API-Key"},
    )


def check_api_key(presented: Optional[str], expected: Optional[str]) -> str:
    """Compare a presented key with the configured one in constant time.

    Raises:
        RuntimeError: No key configured on the server
        HTTPException: 401 for a missing or wrong key
    """
    if not expected:
        raise RuntimeError("PULSEDECK_API_KEY is not configured")

    if not presented or not secrets.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        raise _unauthorized()

    return presented


async def require_api_key(
    request: Request,
    api_key: Annotated[Optional[str], Security(api_key_header)] = None,
) -> str:
    """FastAPI dependency guarding every /api/v1 route."""
    try:
        return check_api_key(api_key, request.app.state.settings.api_key)
    except HTTPException:
        logger.info(
            "Rejected request without valid API key: %s %s",
            request.method,
            request.url.path,
        )
        raise
