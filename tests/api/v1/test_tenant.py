# tests/api/v1/test_tenant.py

import pytest
from httpx import AsyncClient
from typing import Dict
from fastapi import status
from dblocator.core.security import create_access_token
from tests.conftest import Directory

pytestmark = pytest.mark.asyncio

# ==============================================================================
# 1. Authentication
# ==============================================================================

class TestAuthentication:

    async def test_missing_token_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/tenants")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["status"] == 401

    async def test_garbage_token_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/tenants", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_token_without_admin_scope_is_403(self, client: AsyncClient):
        token = create_access_token("reader@example.com", scopes=["directory:read"])
        response = await client.get("/api/v1/tenants", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["msg"] == "Administrator scope required."

    async def test_health_needs_no_token(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"msg": "ok"}

# ==============================================================================
# 2. Tenant CRUD
# ==============================================================================

class TestTenantApi:

    async def test_create_get_and_list(self, client: AsyncClient, admin_headers: Dict[str, str]):
        """[Success path] Created tenants come back in the response envelope."""
        response = await client.post("/api/v1/tenants", json={"name": "Globex", "code": "GLX"}, headers=admin_headers)
        assert response.status_code == status.HTTP_201_CREATED
        created = response.json()["data"]
        assert created["name"] == "Globex"
        assert created["status"] == 1

        response = await client.get("/api/v1/tenants/by-code/GLX", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["id"] == created["id"]

        response = await client.get("/api/v1/tenants", headers=admin_headers)
        assert [t["name"] for t in response.json()["data"]] == ["Globex"]

    async def test_blank_name_is_422_with_details(self, client: AsyncClient, admin_headers: Dict[str, str]):
        response = await client.post("/api/v1/tenants", json={"name": "   "}, headers=admin_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        body = response.json()
        assert body["msg"] == "Request validation failed"
        assert body["data"][0]["loc"][-1] == "name"

    async def test_unknown_tenant_is_404_envelope(self, client: AsyncClient, admin_headers: Dict[str, str]):
        response = await client.get("/api/v1/tenants/999", headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"status": 404, "msg": "Tenant with ID 999 not found.", "data": None}

    async def test_duplicate_is_409(self, client: AsyncClient, admin_headers: Dict[str, str], acme: Directory):
        response = await client.post("/api/v1/tenants", json={"name": "Acme"}, headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_delete_with_connections_is_409(self, client: AsyncClient, admin_headers: Dict[str, str], acme: Directory):
        response = await client.delete(f"/api/v1/tenants/{acme.tenant.id}", headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
