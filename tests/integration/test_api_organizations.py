"""
Integration tests for organization, membership and admin endpoints.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from orgtree.security import create_access_token

pytestmark = pytest.mark.integration


class TestServiceEndpoints:
    """Test health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"


class TestAuthentication:
    """Test bearer token handling."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient, test_organization):
        response = await client.get(f"/api/organizations/{test_organization.id}/access")

        assert response.status_code == 401
        assert response.json() == {
            "message": "Could not validate credentials",
            "code": "UNAUTHENTICATED",
        }
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient, test_organization):
        response = await client.get(
            f"/api/organizations/{test_organization.id}/access",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, client: AsyncClient, test_organization):
        token = create_access_token(uuid4(), "ghost@example.com")

        response = await client.get(
            f"/api/organizations/{test_organization.id}/access",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401


class TestOrganizationEndpoints:
    """Test organization creation and access evaluation."""

    @pytest.mark.asyncio
    async def test_create_organization_makes_caller_owner(
        self, client: AsyncClient, auth_headers, owner_identity
    ):
        response = await client.post(
            "/api/organizations", json={"name": "Jones Family"}, headers=auth_headers(owner_identity)
        )

        assert response.status_code == 201
        organization = response.json()
        assert organization["name"] == "Jones Family"
        assert organization["created_by_id"] == str(owner_identity.id)

        access = await client.get(
            f"/api/organizations/{organization['id']}/access",
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert access.json() == {
            "has_access": True,
            "role": "owner",
            "is_owner": True,
            "can_edit": True,
            "can_delete": True,
            "can_invite": True,
            "can_manage_members": True,
        }

        members = await client.get(
            f"/api/organizations/{organization['id']}/members",
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert members.json() == []

    @pytest.mark.asyncio
    async def test_outsider_access_is_denied_not_error(
        self, client: AsyncClient, auth_headers, test_organization, outsider_identity
    ):
        response = await client.get(
            f"/api/organizations/{test_organization.id}/access",
            headers=auth_headers(outsider_identity, csrf=False),
        )

        assert response.status_code == 200
        assert response.json()["has_access"] is False
        assert response.json()["role"] is None

    @pytest.mark.asyncio
    async def test_superuser_access(
        self, client: AsyncClient, auth_headers, test_organization, superuser_identity
    ):
        response = await client.get(
            f"/api/organizations/{test_organization.id}/access",
            headers=auth_headers(superuser_identity, csrf=False),
        )

        assert response.json()["role"] == "owner"
        assert response.json()["is_owner"] is False

    @pytest.mark.asyncio
    async def test_unknown_organization_access(self, client: AsyncClient, auth_headers, owner_identity):
        response = await client.get(
            f"/api/organizations/{uuid4()}/access", headers=auth_headers(owner_identity, csrf=False)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestMemberEndpoints:
    """Test membership management over HTTP."""

    @pytest.mark.asyncio
    async def test_member_lifecycle(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        """Test add, list, change role and remove."""
        base = f"/api/organizations/{test_organization.id}/members"

        added = await client.post(
            base,
            json={"user_id": str(recipient_identity.id), "role": "editor"},
            headers=auth_headers(owner_identity),
        )
        assert added.status_code == 201
        assert added.json()["role"] == "editor"

        listing = await client.get(base, headers=auth_headers(recipient_identity, csrf=False))
        assert [member["user_id"] for member in listing.json()] == [str(recipient_identity.id)]

        updated = await client.put(
            f"{base}/{recipient_identity.id}", json={"role": "admin"}, headers=auth_headers(owner_identity)
        )
        assert updated.status_code == 200
        assert updated.json()["role"] == "admin"

        removed = await client.delete(f"{base}/{recipient_identity.id}", headers=auth_headers(owner_identity))
        assert removed.status_code == 204

        access = await client.get(
            f"/api/organizations/{test_organization.id}/access",
            headers=auth_headers(recipient_identity, csrf=False),
        )
        assert access.json()["has_access"] is False

    @pytest.mark.asyncio
    async def test_viewer_cannot_add_members(
        self, client: AsyncClient, auth_headers, test_organization, viewer_membership,
        viewer_identity, recipient_identity,
    ):
        response = await client.post(
            f"/api/organizations/{test_organization.id}/members",
            json={"user_id": str(recipient_identity.id), "role": "viewer"},
            headers=auth_headers(viewer_identity),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_owner_role_cannot_be_assigned(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        response = await client.post(
            f"/api/organizations/{test_organization.id}/members",
            json={"user_id": str(recipient_identity.id), "role": "owner"},
            headers=auth_headers(owner_identity),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_role_is_rejected_by_schema(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        response = await client.post(
            f"/api/organizations/{test_organization.id}/members",
            json={"user_id": str(recipient_identity.id), "role": "emperor"},
            headers=auth_headers(owner_identity),
        )

        assert response.status_code == 422


class TestAuditLogEndpoint:
    """Test GET /api/organizations/{org_id}/audit-logs."""

    @pytest.mark.asyncio
    async def test_admin_sees_member_entries(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity,
        viewer_identity, recipient_identity,
    ):
        organization_id = test_organization.id
        base = f"/api/organizations/{organization_id}/members"
        await client.post(
            base, json={"user_id": str(viewer_identity.id), "role": "admin"},
            headers=auth_headers(owner_identity),
        )
        await client.put(
            f"{base}/{viewer_identity.id}", json={"role": "editor"}, headers=auth_headers(owner_identity)
        )

        response = await client.get(
            f"/api/organizations/{organization_id}/audit-logs",
            headers=auth_headers(owner_identity, csrf=False),
        )

        assert response.status_code == 200
        assert [entry["action"] for entry in response.json()] == ["member_role_changed", "member_added"]
        assert response.json()[1]["details"]["user_id"] == str(viewer_identity.id)

        filtered = await client.get(
            f"/api/organizations/{organization_id}/audit-logs",
            params={"action": "member_added"},
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert [entry["action"] for entry in filtered.json()] == ["member_added"]

    @pytest.mark.asyncio
    async def test_viewer_gets_403(
        self, client: AsyncClient, auth_headers, test_organization, viewer_membership, viewer_identity
    ):
        response = await client.get(
            f"/api/organizations/{test_organization.id}/audit-logs",
            headers=auth_headers(viewer_identity, csrf=False),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"


class TestAdminEndpoints:
    """Test superuser repair endpoint."""

    @pytest.mark.asyncio
    async def test_backfill_owner_memberships(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, superuser_identity
    ):
        organization_id = str(test_organization.id)

        response = await client.post(
            "/api/admin/repair/owner-memberships", headers=auth_headers(superuser_identity)
        )

        assert response.status_code == 200
        assert response.json() == {"repaired_count": 1, "organization_ids": [organization_id]}

        members = await client.get(
            f"/api/organizations/{organization_id}/members",
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert [(member["user_id"], member["role"]) for member in members.json()] == [
            (str(owner_identity.id), "owner")
        ]

    @pytest.mark.asyncio
    async def test_backfill_requires_superuser(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity
    ):
        response = await client.post(
            "/api/admin/repair/owner-memberships", headers=auth_headers(owner_identity)
        )

        assert response.status_code == 403
        assert response.json() == {"message": "Superuser access required", "code": "PERMISSION_DENIED"}
