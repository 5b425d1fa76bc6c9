"""Organization membership management

Admins and owners add, re-role and remove members. The owner role is never
granted, changed or removed here; it only moves through an ownership transfer.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

from orgtree.errors import ConflictError, NotFoundError, ValidationError
from orgtree.models import AuditAction, OrgRole, OrganizationMember, UserIdentity
from orgtree.repositories.base import OrgRepository
from orgtree.services.access import AccessEvaluator

logger = logging.getLogger(__name__)


def _ensure_assignable(role: OrgRole) -> None:
    if role == OrgRole.OWNER:
        raise ValidationError("The owner role can only be assigned through an ownership transfer")


class MembershipService:
    """Membership operations guarded by the access evaluator"""

    def __init__(self, repository: OrgRepository, evaluator: Optional[AccessEvaluator] = None):
        self.repository = repository
        self.evaluator = evaluator or AccessEvaluator(repository)

    async def list_members(
        self, organization_id: UUID, acting_user: UserIdentity
    ) -> Sequence[OrganizationMember]:
        await self.evaluator.require_permission(acting_user, organization_id, OrgRole.VIEWER)
        return await self.repository.list_memberships(organization_id)

    async def add_member(
        self,
        organization_id: UUID,
        acting_user: UserIdentity,
        member_user_id: UUID,
        role: OrgRole,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OrganizationMember:
        """Add a user to the organization

        Raises:
            NotFoundError: Unknown organization/user, or caller has no access
            PermissionDeniedError: Caller is below admin
            ValidationError: Role is owner
            ConflictError: User is already the owner or a member
        """
        await self.evaluator.require_permission(acting_user, organization_id, OrgRole.ADMIN)
        _ensure_assignable(role)

        user = await self.repository.get_user(member_user_id)
        if user is None:
            raise NotFoundError("User not found")

        target = await self.evaluator.evaluate_access(UserIdentity.from_user(user), organization_id)
        if target.is_owner:
            raise ConflictError("User is already the owner of this organization")
        if await self.repository.get_membership(organization_id, member_user_id) is not None:
            raise ConflictError("User is already a member of this organization")

        async with self.repository.transaction():
            member = await self.repository.add_membership(
                organization_id, member_user_id, role, added_by_id=acting_user.id
            )
            await self.repository.append_audit_entry(
                action=AuditAction.MEMBER_ADDED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"user_id": str(member_user_id), "role": role.value},
            )

        logger.info(f"User {member_user_id} added to org {organization_id} as {role.value}")
        return member

    async def update_member_role(
        self,
        organization_id: UUID,
        acting_user: UserIdentity,
        member_user_id: UUID,
        role: OrgRole,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OrganizationMember:
        """Change a member's role (never to or from owner)"""
        await self.evaluator.require_permission(acting_user, organization_id, OrgRole.ADMIN)
        _ensure_assignable(role)

        member = await self.repository.get_membership(organization_id, member_user_id)
        if member is None:
            raise NotFoundError("Member not found")

        previous_role = OrgRole(member.role)
        if previous_role == OrgRole.OWNER:
            raise ValidationError("The owner's role can only change through an ownership transfer")

        async with self.repository.transaction():
            member = await self.repository.set_membership_role(member, role)
            await self.repository.append_audit_entry(
                action=AuditAction.MEMBER_ROLE_CHANGED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={
                    "user_id": str(member_user_id),
                    "previous_role": previous_role.value,
                    "role": role.value,
                },
            )

        return member

    async def remove_member(
        self,
        organization_id: UUID,
        acting_user: UserIdentity,
        member_user_id: UUID,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Remove a non-owner member"""
        await self.evaluator.require_permission(acting_user, organization_id, OrgRole.ADMIN)

        member = await self.repository.get_membership(organization_id, member_user_id)
        if member is None:
            raise NotFoundError("Member not found")

        role = OrgRole(member.role)
        if role == OrgRole.OWNER:
            raise ValidationError("The organization owner cannot be removed")

        async with self.repository.transaction():
            await self.repository.delete_membership(member)
            await self.repository.append_audit_entry(
                action=AuditAction.MEMBER_REMOVED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"user_id": str(member_user_id), "role": role.value},
            )

        logger.info(f"User {member_user_id} removed from org {organization_id}")
