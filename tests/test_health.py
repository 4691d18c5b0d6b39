"""Health check, settings parsing and the error envelope for unknown routes."""

import pytest
from httpx import AsyncClient

from garage.core.config import Settings


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    """Health check is public and reports DB connectivity."""
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/gadgets")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["statusCode"] == 404


@pytest.mark.asyncio
async def test_wrong_method_uses_error_envelope(async_client: AsyncClient):
    resp = await async_client.patch("/api/v1/health")
    assert resp.status_code == 405
    assert resp.json()["success"] is False


@pytest.mark.parametrize("raw, expected", [
    ("http://a.test,http://b.test", ["http://a.test", "http://b.test"]),
    ('["http://a.test"]', ["http://a.test"]),
    ("", []),
])
def test_cors_origins_parsing(raw, expected):
    assert Settings(CORS_ORIGINS=raw).CORS_ORIGINS == expected


def test_image_size_limit():
    assert Settings(IMAGE_SIZE_MB=2).image_size_limit_bytes == 2 * 1024 * 1024
