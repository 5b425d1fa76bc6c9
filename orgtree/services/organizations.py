"""Organization lifecycle

Creating an organization records its creator but inserts no membership row;
the creator's owner access comes from the evaluator's creator bypass.
``list_audit_entries`` exposes the organization-level audit trail to admins.
``backfill_owner_memberships`` is the explicit repair that materializes the
missing owner rows for tooling that relies on a complete membership table.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

from orgtree.errors import PermissionDeniedError, ValidationError
from orgtree.models import AuditAction, AuditLog, OrgRole, Organization, UserIdentity
from orgtree.repositories.base import OrgRepository
from orgtree.services.access import AccessEvaluator

logger = logging.getLogger(__name__)


class OrganizationService:
    """Organization creation, audit trail and owner-membership repair"""

    def __init__(self, repository: OrgRepository, evaluator: Optional[AccessEvaluator] = None):
        self.repository = repository
        self.evaluator = evaluator or AccessEvaluator(repository)

    async def create_organization(
        self, name: str, creator: UserIdentity, is_public: bool = False
    ) -> Organization:
        """Create an organization owned (via creator bypass) by creator"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Organization name is required")

        async with self.repository.transaction():
            organization = await self.repository.create_organization(
                name=name, created_by_id=creator.id, is_public=is_public
            )

        logger.info(f"Organization {organization.id} created by {creator.id}")
        return organization

    async def list_audit_entries(
        self,
        organization_id: UUID,
        acting_user: UserIdentity,
        action: Optional[AuditAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AuditLog]:
        """Audit entries recorded against the organization, newest first

        Covers membership changes, owner repairs and transfer transitions.

        Raises:
            NotFoundError: Unknown organization, or caller has no access
            PermissionDeniedError: Caller is below admin
        """
        await self.evaluator.require_permission(acting_user, organization_id, OrgRole.ADMIN)
        return await self.repository.list_audit_entries_for_organization(
            organization_id, action=action, limit=limit, offset=offset
        )

    async def backfill_owner_memberships(
        self,
        actor: UserIdentity,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> list[UUID]:
        """Insert an owner membership for every creator that lacks one

        Organizations whose ownership has moved to another member are skipped.
        Superuser only.

        Returns:
            IDs of the organizations that were repaired
        """
        if not actor.is_superuser:
            raise PermissionDeniedError("Superuser access required")

        candidates = [
            (organization.id, organization.created_by_id)
            for organization in await self.repository.list_organizations_without_creator_membership()
        ]

        repaired: list[UUID] = []
        async with self.repository.transaction():
            for organization_id, creator_id in candidates:
                if await self.repository.get_owner_membership(organization_id) is not None:
                    continue

                await self.repository.add_membership(
                    organization_id, creator_id, OrgRole.OWNER, added_by_id=creator_id
                )
                await self.repository.append_audit_entry(
                    action=AuditAction.OWNER_MEMBERSHIP_BACKFILLED,
                    actor_id=actor.id,
                    actor_role=actor.system_role.value,
                    organization_id=organization_id,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    details={"user_id": str(creator_id)},
                )
                repaired.append(organization_id)

        logger.info(
            f"Owner membership backfill complete: {len(repaired)} of {len(candidates)} organization(s) repaired"
        )
        return repaired
