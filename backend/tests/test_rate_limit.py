"""
Collab Platform API - Rate Limiting Tests
==========================================

What we test:
    ✅ Requests beyond the budget get a 429 failure envelope + Retry-After
    ✅ /health is exempt
    ✅ The window resets after `window` seconds (injected clock)
"""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from collab_api.middleware.rate_limit import RateLimitMiddleware
from collab_api.pipeline.failures import FailureTranslator
from collab_api.structured_logger import StructuredLogger


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def limited_app(clock: FakeClock, limit: int = 2, window: int = 60) -> FastAPI:
    application = FastAPI()
    application.state.failure_translator = FailureTranslator(StructuredLogger("test"), "test")
    application.add_middleware(RateLimitMiddleware, limit=limit, window=window, clock=clock)

    @application.get("/ping")
    async def ping():
        return {"pong": True}

    return application


class TestRateLimitOverPipeline:

    @pytest.mark.asyncio
    async def test_budget_exceeded(self, make_app):
        application = await make_app(rate_limit_requests=2, rate_limit_window=60)

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            statuses = [
                (await client.get("/api/v1/users/unknown-id")).status_code for _ in range(2)
            ]
            limited = await client.get("/api/v1/users/unknown-id", headers={"X-Request-ID": "rl-1"})

        assert statuses == [404, 404]
        body = limited.json()
        assert limited.status_code == 429
        assert body["success"] is False
        assert body["error"]["code"] == "COMMON_TOO_MANY_REQUESTS"
        assert 1 <= int(limited.headers["Retry-After"]) <= 60
        assert limited.headers["X-Request-ID"] == "rl-1"
        assert body["meta"]["correlationId"] == "rl-1"

    @pytest.mark.asyncio
    async def test_health_is_exempt(self, make_app):
        application = await make_app(rate_limit_requests=1)

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            responses = [await client.get("/health") for _ in range(3)]

        assert [response.status_code for response in responses] == [200, 200, 200]


class TestFixedWindow:

    def setup_method(self):
        self.clock = FakeClock()

    @pytest.mark.asyncio
    async def test_window_resets(self):
        application = limited_app(self.clock, limit=1, window=60)

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200

            self.clock.now += 45
            blocked = await client.get("/ping")
            assert blocked.status_code == 429
            assert blocked.headers["Retry-After"] == "15"

            self.clock.now += 15
            assert (await client.get("/ping")).status_code == 200
