"""
Collab Platform API - Correlation ID Tests
==========================================

What we test:
    ✅ Caller-supplied X-Request-ID is echoed verbatim (header + meta)
    ✅ A generated UUID4 is used consistently when the header is absent
    ✅ Failure responses (handler, router 404, validation) carry the same ID
    ✅ Every envelope has exactly one of data / error
"""

import uuid

import pytest

from collab_api.middleware.request_id import REQUEST_ID_HEADER


def assert_exclusive_envelope(body: dict) -> None:
    assert isinstance(body["success"], bool)
    assert ("data" in body) != ("error" in body)


class TestCorrelationId:

    @pytest.mark.asyncio
    async def test_supplied_id_is_echoed_verbatim(self, test_client):
        """IDs are not validated: any caller string is used as-is."""
        rid = "not-a-uuid/caller:42"
        response = await test_client.get("/health", headers={REQUEST_ID_HEADER: rid})

        assert response.status_code == 200
        assert response.headers[REQUEST_ID_HEADER] == rid
        assert response.json()["meta"]["correlationId"] == rid

    @pytest.mark.asyncio
    async def test_generated_id_matches_header_and_meta(self, test_client):
        response = await test_client.get("/health")

        rid = response.headers[REQUEST_ID_HEADER]
        assert uuid.UUID(rid).version == 4
        assert response.json()["meta"]["correlationId"] == rid

    @pytest.mark.asyncio
    async def test_each_request_gets_its_own_id(self, test_client):
        first = await test_client.get("/health")
        second = await test_client.get("/health")
        assert first.headers[REQUEST_ID_HEADER] != second.headers[REQUEST_ID_HEADER]

    @pytest.mark.asyncio
    async def test_business_failure_carries_supplied_id(self, test_client):
        rid = "trace-404"
        response = await test_client.get(
            "/api/v1/users/does-not-exist", headers={REQUEST_ID_HEADER: rid}
        )

        assert response.status_code == 404
        assert response.headers[REQUEST_ID_HEADER] == rid
        body = response.json()
        assert body["meta"]["correlationId"] == rid
        assert_exclusive_envelope(body)

    @pytest.mark.asyncio
    async def test_unknown_route_carries_id(self, test_client):
        response = await test_client.get("/nowhere", headers={REQUEST_ID_HEADER: "r-1"})

        assert response.status_code == 404
        assert response.headers[REQUEST_ID_HEADER] == "r-1"
        body = response.json()
        assert body["error"]["code"] == "COMMON_NOT_FOUND"
        assert body["meta"]["correlationId"] == "r-1"
        assert body["meta"]["path"] == "/nowhere"
        assert body["meta"]["method"] == "GET"

    @pytest.mark.asyncio
    async def test_validation_failure_carries_generated_id(self, test_client):
        response = await test_client.post("/api/v1/users/login", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["meta"]["correlationId"] == response.headers[REQUEST_ID_HEADER]
        assert_exclusive_envelope(body)
