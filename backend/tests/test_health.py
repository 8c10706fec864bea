"""
Infinite Notepad — Health Check and Middleware Tests
======================================================

What we test:
    ✅ /health reports database, bucket and payment circuit status
    ✅ 503 when the media bucket is unavailable
    ✅ Request IDs are generated or propagated
    ✅ Rate limiter rejects with the standard error body and Retry-After
    ✅ The app factory wires injected services and every router
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from notepad.main import create_app
from notepad.middleware.rate_limit import RateLimitMiddleware
from notepad.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from notepad.services.payment_service import CircuitBreaker


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client, storage):
        storage.ensure_bucket()

        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "available"
        assert body["payments"] == "closed"
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_open_circuit_is_degraded(self, client, storage, payment_service):
        storage.ensure_bucket()
        payment_service.circuit_breaker.state = CircuitBreaker.OPEN

        body = (await client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["payments"] == "open"

    @pytest.mark.asyncio
    async def test_missing_bucket_is_unhealthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["storage"] == "unavailable"

    @pytest.mark.asyncio
    async def test_health_needs_no_auth(self, client, storage):
        storage.ensure_bucket()
        assert (await client.get("/health")).status_code == 200


class TestAppFactory:
    def test_injected_storage_keeps_storage_routes(self, storage, payment_service):
        app = create_app(storage=storage, payment_service=payment_service)

        paths = {route.path for route in app.routes}
        assert "/api/storage/{key:path}" in paths
        assert "/api/media/upload/{note_id}" in paths
        assert app.state.storage is storage
        assert app.state.payments is payment_service

    @pytest.mark.asyncio
    async def test_storage_download_is_routed(self, client):
        response = await client.get("/api/storage/user/note/1-photo.png", params={"expires": 1, "signature": "00"})
        assert response.status_code == 403


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated(self, client):
        response = await client.get("/api/notes")
        assert response.headers[REQUEST_ID_HEADER]
        assert response.json()["request_id"] == response.headers[REQUEST_ID_HEADER]

    @pytest.mark.asyncio
    async def test_propagated(self, client):
        response = await client.get("/api/notes", headers={REQUEST_ID_HEADER: "trace-123"})
        assert response.headers[REQUEST_ID_HEADER] == "trace-123"


class TestRateLimit:
    def _app(self, max_requests):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window=60)
        app.add_middleware(RequestIDMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return app

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self):
        async with AsyncClient(transport=ASGITransport(app=self._app(2)), base_url="http://test") as http:
            assert (await http.get("/ping")).status_code == 200
            assert (await http.get("/ping")).status_code == 200
            response = await http.get("/ping")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        assert 1 <= int(response.headers["Retry-After"]) <= 61

    @pytest.mark.asyncio
    async def test_excluded_paths_not_counted(self):
        async with AsyncClient(transport=ASGITransport(app=self._app(1)), base_url="http://test") as http:
            for _ in range(3):
                assert (await http.get("/health")).status_code == 200
            assert (await http.get("/ping")).status_code == 200
