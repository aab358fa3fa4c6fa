"""
Collab Platform API - Deadline Enforcer Tests
==============================================

What we test:
    ✅ Results and errors inside the bound pass through unchanged
    ✅ Overruns raise RequestTimeoutError and cancel the operation
    ✅ A slow endpoint yields 408 COMMON_REQUEST_TIMEOUT over HTTP
    ✅ Uncommitted writes of a timed-out handler are rolled back
"""

import asyncio

import pytest
from fastapi import APIRouter, Depends
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from collab_api.database import get_db_session
from collab_api.exceptions import RequestTimeoutError
from collab_api.pipeline.deadline import DEFAULT_TIMEOUT_SECONDS, DeadlineEnforcer
from collab_api.pipeline.route import PipelineRoute
from collab_api.repositories.user_repository import UserRepository


class TestDeadlineEnforcer:

    def test_default_bound_is_thirty_seconds(self):
        assert DeadlineEnforcer().timeout_seconds == DEFAULT_TIMEOUT_SECONDS == 30.0

    @pytest.mark.parametrize("bound", [0, -1])
    def test_rejects_non_positive_bound(self, bound):
        with pytest.raises(ValueError):
            DeadlineEnforcer(timeout_seconds=bound)

    @pytest.mark.asyncio
    async def test_result_within_bound_passes_through(self):
        async def operation():
            await asyncio.sleep(0.01)
            return {"id": "u1"}

        result = await DeadlineEnforcer(timeout_seconds=1).run(operation())
        assert result == {"id": "u1"}

    @pytest.mark.asyncio
    async def test_error_within_bound_passes_through(self):
        async def operation():
            raise LookupError("not found")

        with pytest.raises(LookupError, match="not found"):
            await DeadlineEnforcer(timeout_seconds=1).run(operation())

    @pytest.mark.asyncio
    async def test_operations_own_timeout_is_not_converted(self):
        async def operation():
            raise asyncio.TimeoutError()

        with pytest.raises(asyncio.TimeoutError):
            await DeadlineEnforcer(timeout_seconds=1).run(operation())

    @pytest.mark.asyncio
    async def test_overrun_raises_and_cancels(self):
        cancelled = asyncio.Event()

        async def operation():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "too late"

        with pytest.raises(RequestTimeoutError) as exc_info:
            await DeadlineEnforcer(timeout_seconds=0.05).run(operation())

        assert exc_info.value.timeout_ms == 50
        assert exc_info.value.status_code == 408
        assert cancelled.is_set()


def slow_router(delay: float) -> APIRouter:
    router = APIRouter(route_class=PipelineRoute)

    @router.get("/slow")
    async def slow():
        await asyncio.sleep(delay)
        return {"finished": True}

    @router.post("/slow-write")
    async def slow_write(session: AsyncSession = Depends(get_db_session)):
        await UserRepository(session).create({
            "email": "timeout@example.com",
            "password": "hash",
            "name": "Timeout",
        })
        await asyncio.sleep(delay)
        return {"finished": True}

    return router


class TestDeadlineOverHttp:

    @pytest.mark.asyncio
    async def test_slow_handler_yields_408(self, make_app):
        application = await make_app(request_timeout_seconds=0.05)
        application.include_router(slow_router(delay=1))

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            response = await client.get("/slow")

        body = response.json()
        assert response.status_code == 408
        assert body["success"] is False
        assert body["error"]["code"] == "COMMON_REQUEST_TIMEOUT"
        assert body["error"]["message"] == "Request timed out after 50ms"

    @pytest.mark.asyncio
    async def test_handler_under_bound_is_unaltered(self, make_app):
        application = await make_app(request_timeout_seconds=1)
        application.include_router(slow_router(delay=0.01))

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            response = await client.get("/slow")

        assert response.status_code == 200
        assert response.json()["data"] == {"finished": True}

    @pytest.mark.asyncio
    async def test_timed_out_write_is_rolled_back(self, make_app):
        application = await make_app(request_timeout_seconds=0.1)
        application.include_router(slow_router(delay=1))

        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as client:
            response = await client.post("/slow-write")

        assert response.status_code == 408
        async with application.state.database.session_factory() as session:
            assert await UserRepository(session).find_by_email("timeout@example.com") is None
