"""Unit tests for API authentication."""
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from src.pulsedeck.api.auth import check_api_key, require_api_key


def _request(api_key):
    """Minimal stand-in for a Starlette request carrying app settings."""
    settings = SimpleNamespace(api_key=api_key)
    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(settings=settings)),
        method="GET",
        url=SimpleNamespace(path="/api/v1/workspaces/ws_1/metrics/overview"),
    )


@pytest.mark.asyncio
async def test_require_api_key_success():
    """Test API key validation succeeds with correct key."""
    result = await require_api_key(_request("test-secret-key"), "test-secret-key")
    assert result == "test-secret-key"


@pytest.mark.asyncio
async def test_require_api_key_invalid():
    """Test API key validation fails with incorrect key (401)."""
    with pytest.raises(HTTPException) as exc_info:
        await require_api_key(_request("correct-key"), "wrong-key")

    assert exc_info.value.status_code == 401
    assert "Invalid API key" in exc_info.value.detail
    assert exc_info.value.headers == {"WWW-Authenticate": "API-Key"}


@pytest.mark.asyncio
async def test_require_api_key_missing():
    """Test API key validation fails when header is missing (401)."""
    with pytest.raises(HTTPException) as exc_info:
        await require_api_key(_request("test-key"), None)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_require_api_key_not_configured():
    """Test API key validation fails when PULSEDECK_API_KEY not set."""
    with pytest.raises(RuntimeError) as exc_info:
        await require_api_key(_request(None), "any-key")

    assert "PULSEDECK_API_KEY is not configured" in str(exc_info.value)


def test_check_api_key_rejects_prefix_match():
    with pytest.raises(HTTPException):
        check_api_key("test", "test-key")
