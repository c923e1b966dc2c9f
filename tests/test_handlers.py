"""
Tests for the aiohttp handlers.

A small header-based middleware plays the authentication layer: requests
carrying ``X-User`` get a principal mapping attached.
"""
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from navigator_secrets.handlers import PRINCIPAL_KEY, create_app


@web.middleware
async def header_auth(request, handler):
    user = request.headers.get("X-User")
    if user:
        request[PRINCIPAL_KEY] = {"id": user, "email": f"{user}@example.com"}
    return await handler(request)


@asynccontextmanager
async def client_for(vault):
    app = create_app(vault.secrets, vault.projects, middlewares=[header_auth])
    async with TestClient(TestServer(app)) as client:
        yield client


ALICE = {"X-User": "user-1"}
BOB = {"X-User": "user-2"}


async def create_project(client, headers=ALICE, name="P1"):
    resp = await client.post("/projects", json={"name": name}, headers=headers)
    assert resp.status == 201
    return (await resp.json())["project"]


class TestSecretRoutes:
    """Tests for the /projects/{id}/secrets routes."""

    @pytest.mark.asyncio
    async def test_scenario(self, vault):
        """Test the full lifecycle over HTTP."""
        async with client_for(vault) as client:
            project = await create_project(client)
            base = f"/projects/{project['id']}/secrets"

            resp = await client.post(
                base, json={"key": "API_KEY", "value": "sk-test"}, headers=ALICE,
            )
            assert resp.status == 201
            body = await resp.json()
            assert body["message"] == "Secret created successfully"
            secret = body["secret"]
            assert set(secret) == {"id", "key", "createdAt", "updatedAt"}

            resp = await client.get(f"{base}/{secret['id']}", headers=ALICE)
            assert resp.status == 200
            assert (await resp.json())["secret"]["value"] == "sk-test"

            resp = await client.get(base, headers=ALICE)
            listed = (await resp.json())["secrets"]
            assert len(listed) == 1
            assert "value" not in listed[0]

            resp = await client.put(
                f"{base}/{secret['id']}", json={"value": "sk-test-2"}, headers=ALICE,
            )
            assert resp.status == 200
            assert "value" not in (await resp.json())["secret"]

            resp = await client.get(f"{base}/{secret['id']}", headers=ALICE)
            assert (await resp.json())["secret"]["value"] == "sk-test-2"

            resp = await client.delete(f"{base}/{secret['id']}", headers=ALICE)
            assert resp.status == 200
            assert (await resp.json()) == {"message": "Secret deleted successfully"}

            resp = await client.get(f"{base}/{secret['id']}", headers=ALICE)
            assert resp.status == 404
            assert (await resp.json()) == {"error": "Secret not found"}

    @pytest.mark.asyncio
    async def test_unauthenticated(self, vault):
        async with client_for(vault) as client:
            resp = await client.get("/projects/p1/secrets")
            assert resp.status == 401
            assert (await resp.json()) == {"error": "User not authenticated"}

    @pytest.mark.asyncio
    async def test_foreign_project(self, vault):
        """Test another principal's project answers like a missing one."""
        async with client_for(vault) as client:
            project = await create_project(client)
            foreign = await client.get(f"/projects/{project['id']}/secrets", headers=BOB)
            missing = await client.get("/projects/nope/secrets", headers=BOB)
            assert foreign.status == missing.status == 404
            assert await foreign.json() == await missing.json() == {"error": "Project not found"}

    @pytest.mark.asyncio
    async def test_conflict(self, vault):
        async with client_for(vault) as client:
            project = await create_project(client)
            base = f"/projects/{project['id']}/secrets"
            payload = {"key": "API_KEY", "value": "v"}
            assert (await client.post(base, json=payload, headers=ALICE)).status == 201
            resp = await client.post(base, json=payload, headers=ALICE)
            assert resp.status == 409
            assert (await resp.json()) == {"error": "Secret key already exists in this project"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload,message", [
        ({"value": "v"}, "Secret key and value are required"),
        ({"key": "API_KEY"}, "Secret key and value are required"),
        ({"key": "API_KEY", "value": 5}, "Secret key and value must be strings"),
        ({"key": "   ", "value": "v"}, "Secret key cannot be empty"),
    ])
    async def test_invalid_input(self, vault, payload, message):
        async with client_for(vault) as client:
            project = await create_project(client)
            resp = await client.post(
                f"/projects/{project['id']}/secrets", json=payload, headers=ALICE,
            )
            assert resp.status == 400
            assert (await resp.json()) == {"error": message}

    @pytest.mark.asyncio
    async def test_invalid_json(self, vault):
        async with client_for(vault) as client:
            project = await create_project(client)
            resp = await client.post(
                f"/projects/{project['id']}/secrets", data=b"{not json",
                headers={**ALICE, "Content-Type": "application/json"},
            )
            assert resp.status == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,path", [
        ("POST", "/projects"),
        ("PUT", "/projects/p1"),
        ("POST", "/projects/p1/secrets"),
        ("PUT", "/projects/p1/secrets/s1"),
    ])
    async def test_unauthenticated_with_bad_body(self, vault, method, path):
        """Test a missing principal wins over an unreadable body."""
        async with client_for(vault) as client:
            resp = await client.request(
                method, path, data=b"{bad",
                headers={"Content-Type": "application/json"},
            )
            assert resp.status == 401
            assert (await resp.json()) == {"error": "User not authenticated"}

    @pytest.mark.asyncio
    async def test_foreign_project_with_bad_body(self, vault):
        """Test a foreign project is not found even when the body is unreadable."""
        async with client_for(vault) as client:
            project = await create_project(client)
            headers = {**BOB, "Content-Type": "application/json"}
            for method, path in [
                ("PUT", f"/projects/{project['id']}"),
                ("POST", f"/projects/{project['id']}/secrets"),
                ("PUT", f"/projects/{project['id']}/secrets/s1"),
            ]:
                resp = await client.request(method, path, data=b"{bad", headers=headers)
                assert resp.status == 404
                assert (await resp.json()) == {"error": "Project not found"}

    @pytest.mark.asyncio
    async def test_decryption_failure_is_generic(self, vault):
        """Test a corrupted bundle yields a detail-free error."""
        async with client_for(vault) as client:
            project = await create_project(client)
            base = f"/projects/{project['id']}/secrets"
            resp = await client.post(base, json={"key": "K", "value": "v"}, headers=ALICE)
            secret_id = (await resp.json())["secret"]["id"]
            record = vault.store.secrets[secret_id]
            vault.store.secrets[secret_id] = record.model_copy(
                update={"bundle": record.bundle.model_copy(update={"nonce": "zz"})}
            )
            resp = await client.get(f"{base}/{secret_id}", headers=ALICE)
            assert resp.status == 500
            assert (await resp.json()) == {"error": "decryption failed"}


class TestProjectRoutes:
    """Tests for the /projects routes."""

    @pytest.mark.asyncio
    async def test_project_crud(self, vault):
        async with client_for(vault) as client:
            project = await create_project(client, name="  Backend  ")
            assert project["name"] == "Backend"
            assert "ownerId" not in project

            resp = await client.get("/projects", headers=ALICE)
            assert [p["id"] for p in (await resp.json())["projects"]] == [project["id"]]

            resp = await client.put(
                f"/projects/{project['id']}",
                json={"description": "keys"},
                headers=ALICE,
            )
            updated = (await resp.json())["project"]
            assert updated["name"] == "Backend"
            assert updated["description"] == "keys"

            resp = await client.get(f"/projects/{project['id']}", headers=BOB)
            assert resp.status == 404

            resp = await client.delete(f"/projects/{project['id']}", headers=ALICE)
            assert (await resp.json()) == {"message": "Project deleted successfully"}
            resp = await client.get(f"/projects/{project['id']}", headers=ALICE)
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_missing_name(self, vault):
        async with client_for(vault) as client:
            resp = await client.post("/projects", json={}, headers=ALICE)
            assert resp.status == 400
            assert (await resp.json()) == {"error": "Project name is required"}

    @pytest.mark.asyncio
    async def test_health(self, vault):
        async with client_for(vault) as client:
            resp = await client.get("/health")
            assert (await resp.json()) == {"status": "ok"}
