"""
API Tests: /api/v1 endpoints

The registration service is wired to fake platforms and an in-memory store
and placed on app.state directly, so the lifespan never runs.
"""

import pytest
from unittest.mock import AsyncMock
from httpx import ASGITransport, AsyncClient

from elastic_manager.core.config import Settings
from elastic_manager.core.exceptions import InvariantViolationException
from elastic_manager.main import create_app
from elastic_manager.services.registration_service import RegistrationService
from elastic_manager.services.validator import ConfigValidator
from elastic_manager.storage import InMemoryApplicationStore
from conftest import BAD_CA_KUBECONFIG, KUBECONFIG


ONE_BODY = {
    "address": "http://one.example.com:2633/RPC2",
    "login": "oneadmin",
    "password": "s3cret-pass",
    "role": 0,
    "template": 7,
    "vmgroup": 3,
}


def _build_app(platforms, distinct: bool = False):
    app = create_app(Settings(STORE_BACKEND="memory", DISTINCT_ERROR_STATUS=distinct))
    app.state.registration_service = RegistrationService(
        InMemoryApplicationStore(), ConfigValidator(opener=platforms.open)
    )
    return app


@pytest.fixture
async def client(platforms):
    app = _build_app(platforms)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def distinct_client(platforms):
    app = _build_app(platforms, distinct=True)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestKubernetesEndpoints:

    @pytest.mark.asyncio
    async def test_create(self, client, platforms, kubernetes_config):
        platforms.add(kubernetes_config)

        response = await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        assert response.status_code == 200
        assert response.json() == {"id": 1}
        assert platforms.opened == [kubernetes_config]

    @pytest.mark.asyncio
    async def test_create_unreachable(self, client, platforms, kubernetes_config):
        platforms.add(kubernetes_config)
        platforms.unreachable.add(kubernetes_config)

        response = await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["kind"] == "connection"
        assert "connection refused" in error["message"]

    @pytest.mark.asyncio
    async def test_create_with_undecodable_certificate(self):
        app = create_app(Settings(STORE_BACKEND="memory"))
        store = InMemoryApplicationStore()
        app.state.registration_service = RegistrationService(store, ConfigValidator())

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/api/v1/kubernetes/default/web", content=BAD_CA_KUBECONFIG)

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "connection"
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_create_with_non_utf8_body(self, client, platforms):
        response = await client.post("/api/v1/kubernetes/default/web", content=b"apiVersion: v1\n\xff\xfe")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert "UTF-8" in error["message"]
        assert platforms.opened == []

    @pytest.mark.asyncio
    async def test_update_with_non_utf8_body(self, client, platforms, kubernetes_config):
        platforms.add(kubernetes_config)
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        response = await client.put("/api/v1/kubernetes/default/web/1", content=b"\xc3\x28")

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "bad_request"
        assert platforms.opened == [kubernetes_config]

    @pytest.mark.asyncio
    async def test_update_returns_empty_body(self, client, platforms, kubernetes_config, other_kubernetes_config):
        platforms.add(kubernetes_config)
        platforms.add(other_kubernetes_config)
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        response = await client.put("/api/v1/kubernetes/staging/api/1", content=KUBECONFIG)

        assert response.status_code == 200
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, client, platforms, kubernetes_config):
        platforms.add(kubernetes_config)

        response = await client.put("/api/v1/kubernetes/default/web/9", content=KUBECONFIG)

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_update_opennebula_application(self, client, platforms, kubernetes_config, opennebula_config):
        platforms.add(kubernetes_config)
        platforms.add(opennebula_config)
        await client.post("/api/v1/opennebula", json=ONE_BODY)

        response = await client.put("/api/v1/kubernetes/default/web/1", content=KUBECONFIG)

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "not_found"


class TestOpenNebulaEndpoints:

    @pytest.mark.asyncio
    async def test_create(self, client, platforms, opennebula_config):
        platforms.add(opennebula_config)

        response = await client.post("/api/v1/opennebula", json=ONE_BODY)

        assert response.status_code == 200
        assert response.json() == {"id": 1}

    @pytest.mark.asyncio
    async def test_create_with_broken_instances(self, client, platforms, opennebula_config):
        platforms.add(opennebula_config, broken=True)

        response = await client.post("/api/v1/opennebula", json=ONE_BODY)

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_config"

    @pytest.mark.asyncio
    async def test_create_missing_field(self, client):
        body = {key: value for key, value in ONE_BODY.items() if key != "vmgroup"}

        response = await client.post("/api/v1/opennebula", json=body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "vmgroup" in error["message"]

    @pytest.mark.asyncio
    async def test_update(self, client, platforms, opennebula_config):
        platforms.add(opennebula_config)
        await client.post("/api/v1/opennebula", json=ONE_BODY)

        response = await client.put("/api/v1/opennebula/1", json=ONE_BODY)

        assert response.status_code == 200
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, client, platforms, opennebula_config):
        platforms.add(opennebula_config)

        response = await client.put("/api/v1/opennebula/5", json=ONE_BODY)

        assert response.status_code == 400
        assert "5" in response.json()["error"]["message"]


class TestApplicationEndpoints:

    @pytest.mark.asyncio
    async def test_get_instances(self, client, platforms, kubernetes_config):
        platforms.add(kubernetes_config, count=2, prefix="web")
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        response = await client.get("/api/v1/app/1")

        assert response.status_code == 200
        assert response.json() == [
            {"cpuLoad": 0.5, "ramLoad": 0.25, "name": "web-0"},
            {"cpuLoad": 0.5, "ramLoad": 0.25, "name": "web-1"},
        ]

    @pytest.mark.asyncio
    async def test_get_unknown(self, client):
        response = await client.get("/api/v1/app/77")

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_non_numeric_id(self, client):
        response = await client.get("/api/v1/app/abc")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_delete(self, client, platforms, opennebula_config):
        platforms.add(opennebula_config)
        await client.post("/api/v1/opennebula", json=ONE_BODY)

        response = await client.delete("/api/v1/app/1")
        assert response.status_code == 200
        assert response.json() == {"id": 1}

        response = await client.delete("/api/v1/app/1")
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_scale(self, client, platforms, kubernetes_config):
        fake = platforms.add(kubernetes_config, count=1, prefix="web")
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        response = await client.patch("/api/v1/app/1", json={"incrementBy": 2})

        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["web-0", "web-1", "web-2"]
        assert fake.scale_calls == [2]

    @pytest.mark.asyncio
    async def test_scale_without_delta(self, client, platforms, kubernetes_config):
        fake = platforms.add(kubernetes_config)
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)

        response = await client.patch("/api/v1/app/1", json={"increment": 2})

        assert response.status_code == 400
        assert fake.scale_calls == []

    @pytest.mark.asyncio
    async def test_scale_rejected(self, client, platforms, kubernetes_config):
        fake = platforms.add(kubernetes_config)
        await client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)
        fake.fail_scaling = True

        response = await client.patch("/api/v1/app/1", json={"incrementBy": -1})

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "connection"


class TestDistinctErrorStatus:

    @pytest.mark.asyncio
    async def test_not_found(self, distinct_client):
        response = await distinct_client.get("/api/v1/app/3")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_connection(self, distinct_client, platforms, kubernetes_config):
        response = await distinct_client.post("/api/v1/kubernetes/default/web", content=KUBECONFIG)
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_invalid_config(self, distinct_client, platforms, opennebula_config):
        platforms.add(opennebula_config, broken=True)

        response = await distinct_client.post("/api/v1/opennebula", json=ONE_BODY)

        assert response.status_code == 422


class TestInvariantViolation:

    @pytest.mark.asyncio
    async def test_corrupted_registration_is_server_error(self, platforms):
        app = _build_app(platforms)
        store = AsyncMock(spec=InMemoryApplicationStore)
        store.find_by_id.side_effect = InvariantViolationException(
            "Application 1 references 0 configurations", application_id=1
        )
        app.state.registration_service = RegistrationService(store, ConfigValidator(opener=platforms.open))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/api/v1/app/1")

        assert response.status_code == 500
        assert response.json()["error"]["kind"] == "invariant_violation"


class TestServiceEndpoints:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["store"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
