"""
Integration tests for the ownership transfer API.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


async def _create_transfer(client, auth_headers, organization_id, sender, recipient, **body):
    return await client.post(
        f"/api/organizations/{organization_id}/ownership/transfers",
        json={"to_user_id": str(recipient.id), **body},
        headers=auth_headers(sender),
    )


class TestCreateTransferEndpoint:
    """Test POST /api/organizations/{org_id}/ownership/transfers."""

    @pytest.mark.asyncio
    async def test_owner_creates_transfer(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        response = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity,
            reason="Retiring",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["from_user_id"] == str(owner_identity.id)
        assert data["to_user_id"] == str(recipient_identity.id)
        assert data["organization_name"] == "Acme Family Tree"
        assert data["from_user_name"] == "Olivia Owner"
        assert data["from_user_email"] == "owner@example.com"
        assert data["to_user_name"] == "Riley Recipient"
        assert data["to_user_email"] == "recipient@example.com"
        assert data["reason"] == "Retiring"
        assert data["resolved_at"] is None

    @pytest.mark.asyncio
    async def test_non_owner_gets_403_and_nothing_is_created(
        self, client: AsyncClient, auth_headers, test_organization, viewer_membership,
        owner_identity, viewer_identity, recipient_identity,
    ):
        organization_id = test_organization.id

        response = await _create_transfer(
            client, auth_headers, organization_id, viewer_identity, recipient_identity
        )

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

        listing = await client.get(
            f"/api/organizations/{organization_id}/ownership/transfers",
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert listing.status_code == 200
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_second_pending_transfer_conflicts(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity,
        recipient_identity, outsider_identity,
    ):
        organization_id = test_organization.id
        await _create_transfer(client, auth_headers, organization_id, owner_identity, recipient_identity)

        response = await _create_transfer(
            client, auth_headers, organization_id, owner_identity, outsider_identity
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_transfer_to_self_is_validation_error(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity
    ):
        response = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, owner_identity
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_organization(self, client: AsyncClient, auth_headers, owner_identity, recipient_identity):
        response = await _create_transfer(client, auth_headers, uuid4(), owner_identity, recipient_identity)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient, csrf_headers, test_organization):
        response = await client.post(
            f"/api/organizations/{test_organization.id}/ownership/transfers",
            json={"to_user_id": str(uuid4())},
            headers=csrf_headers,
        )

        assert response.status_code == 401


class TestResolveTransferEndpoints:
    """Test accept, reject and cancel."""

    @pytest.mark.asyncio
    async def test_accept_transfer_swaps_roles(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        """Test that after acceptance the access endpoint reflects the new owner."""
        organization_id = test_organization.id
        created = await _create_transfer(
            client, auth_headers, organization_id, owner_identity, recipient_identity
        )
        transfer_id = created.json()["id"]

        response = await client.post(
            f"/api/ownership/transfers/{transfer_id}/accept",
            headers={**auth_headers(recipient_identity), "User-Agent": "orgtree-tests"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["resolved_at"] is not None

        recipient_access = await client.get(
            f"/api/organizations/{organization_id}/access",
            headers=auth_headers(recipient_identity, csrf=False),
        )
        assert recipient_access.json()["role"] == "owner"
        assert recipient_access.json()["is_owner"] is True

        owner_access = await client.get(
            f"/api/organizations/{organization_id}/access",
            headers=auth_headers(owner_identity, csrf=False),
        )
        assert owner_access.json()["role"] == "admin"
        assert owner_access.json()["is_owner"] is False

        audit = await client.get(
            f"/api/ownership/transfers/{transfer_id}/audit-log",
            headers=auth_headers(recipient_identity, csrf=False),
        )
        assert [entry["action"] for entry in audit.json()] == [
            "ownership_transfer_initiated",
            "ownership_transfer_accepted",
        ]
        assert audit.json()[1]["user_agent"] == "orgtree-tests"

    @pytest.mark.asyncio
    async def test_accept_twice_is_invalid_state(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        created = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity
        )
        url = f"/api/ownership/transfers/{created.json()['id']}/accept"

        await client.post(url, headers=auth_headers(recipient_identity))
        response = await client.post(url, headers=auth_headers(recipient_identity))

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_non_recipient_cannot_accept(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity,
        recipient_identity, outsider_identity,
    ):
        created = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity
        )

        response = await client.post(
            f"/api/ownership/transfers/{created.json()['id']}/accept",
            headers=auth_headers(outsider_identity),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_reject_with_and_without_body(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        organization_id = test_organization.id
        first = await _create_transfer(
            client, auth_headers, organization_id, owner_identity, recipient_identity
        )
        response = await client.post(
            f"/api/ownership/transfers/{first.json()['id']}/reject",
            json={"reason": "Not ready"},
            headers=auth_headers(recipient_identity),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["rejection_reason"] == "Not ready"

        second = await _create_transfer(
            client, auth_headers, organization_id, owner_identity, recipient_identity
        )
        response = await client.post(
            f"/api/ownership/transfers/{second.json()['id']}/reject",
            headers=auth_headers(recipient_identity),
        )
        assert response.status_code == 200
        assert response.json()["rejection_reason"] is None

    @pytest.mark.asyncio
    async def test_cancel_requires_reason(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        created = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity
        )
        url = f"/api/ownership/transfers/{created.json()['id']}/cancel"

        blank = await client.post(url, json={"reason": "   "}, headers=auth_headers(owner_identity))
        assert blank.status_code == 400
        assert blank.json()["code"] == "VALIDATION_ERROR"

        response = await client.post(
            url, json={"reason": "Wrong person"}, headers=auth_headers(owner_identity)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "Wrong person"


class TestTransferQueries:
    """Test transfer read endpoints."""

    @pytest.mark.asyncio
    async def test_pending_transfers_for_caller(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity,
        recipient_identity, outsider_identity,
    ):
        created = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity
        )

        mine = await client.get(
            "/api/ownership/transfers/pending", headers=auth_headers(recipient_identity, csrf=False)
        )
        theirs = await client.get(
            "/api/ownership/transfers/pending", headers=auth_headers(outsider_identity, csrf=False)
        )

        assert [item["id"] for item in mine.json()] == [created.json()["id"]]
        assert mine.json()[0]["from_user_email"] == owner_identity.email
        assert mine.json()[0]["organization_name"] == "Acme Family Tree"
        assert theirs.json() == []

    @pytest.mark.asyncio
    async def test_get_transfer_visibility(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity,
        recipient_identity, outsider_identity,
    ):
        created = await _create_transfer(
            client, auth_headers, test_organization.id, owner_identity, recipient_identity
        )
        url = f"/api/ownership/transfers/{created.json()['id']}"

        allowed = await client.get(url, headers=auth_headers(recipient_identity, csrf=False))
        denied = await client.get(url, headers=auth_headers(outsider_identity, csrf=False))

        assert allowed.status_code == 200
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_transfer(self, client: AsyncClient, auth_headers, owner_identity):
        response = await client.get(
            f"/api/ownership/transfers/{uuid4()}", headers=auth_headers(owner_identity, csrf=False)
        )

        assert response.status_code == 404
        assert response.json() == {"message": "Transfer not found", "code": "NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_list_transfers_filters_by_status(
        self, client: AsyncClient, auth_headers, test_organization, owner_identity, recipient_identity
    ):
        organization_id = test_organization.id
        first = await _create_transfer(
            client, auth_headers, organization_id, owner_identity, recipient_identity
        )
        await client.post(
            f"/api/ownership/transfers/{first.json()['id']}/reject",
            headers=auth_headers(recipient_identity),
        )
        await _create_transfer(client, auth_headers, organization_id, owner_identity, recipient_identity)

        url = f"/api/organizations/{organization_id}/ownership/transfers"
        headers = auth_headers(owner_identity, csrf=False)
        everything = await client.get(url, headers=headers)
        pending = await client.get(url, params={"status": "pending"}, headers=headers)

        assert len(everything.json()) == 2
        assert [item["status"] for item in pending.json()] == ["pending"]
