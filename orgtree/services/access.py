"""Organization Access Evaluator

Purpose: Decide, per request, what a user may do inside an organization

Decision precedence (first match wins):
1. Superuser system role -> owner-level access, not recorded as owner
2. Organization creator -> owner, unless another user currently holds the
   owner membership (ownership was transferred away)
3. Membership row -> the stored role
4. Otherwise -> no access

Decisions are computed fresh on every call; roles change between requests
through transfers and membership edits, so nothing is cached.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional
from uuid import UUID

from orgtree.errors import NotFoundError, PermissionDeniedError
from orgtree.models import OrgRole, UserIdentity
from orgtree.models.roles import capabilities_for, role_at_least
from orgtree.repositories.base import OrgRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access evaluation

    Attributes:
        has_access: Whether the user may read the organization at all
        role: Effective organization role (None when denied)
        is_owner: Whether the user is the recorded owner (superusers are not)
        can_edit / can_delete / can_invite / can_manage_members: Capability
            flags derived from the role table
    """
    has_access: bool
    role: Optional[OrgRole]
    is_owner: bool
    can_edit: bool = False
    can_delete: bool = False
    can_invite: bool = False
    can_manage_members: bool = False

    @classmethod
    def granted(cls, role: OrgRole, is_owner: bool) -> "AccessDecision":
        capabilities = capabilities_for(role)
        return cls(has_access=True, role=role, is_owner=is_owner, **asdict(capabilities))

    @classmethod
    def denied(cls) -> "AccessDecision":
        return cls(has_access=False, role=None, is_owner=False)


class AccessEvaluator:
    """Evaluates organization access for a user

    Depends only on the repository for organization and membership lookups.
    """

    def __init__(self, repository: OrgRepository):
        """Initialize evaluator

        Args:
            repository: Storage collaborator for organization/membership lookups
        """
        self.repository = repository

    async def evaluate_access(self, user: UserIdentity, organization_id: UUID) -> AccessDecision:
        """Resolve the user's effective role in an organization

        Args:
            user: Current user identity
            organization_id: Target organization

        Returns:
            AccessDecision (a missing membership is a normal denial)

        Raises:
            NotFoundError: If the organization does not exist
        """
        organization = await self.repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        if user.is_superuser:
            return AccessDecision.granted(OrgRole.OWNER, is_owner=False)

        if organization.created_by_id == user.id:
            owner_row = await self.repository.get_owner_membership(organization_id)
            if owner_row is None or owner_row.user_id == user.id:
                return AccessDecision.granted(OrgRole.OWNER, is_owner=True)

        membership = await self.repository.get_membership(organization_id, user.id)
        if membership is None:
            return AccessDecision.denied()

        role = OrgRole(membership.role)
        return AccessDecision.granted(role, is_owner=role == OrgRole.OWNER)

    async def is_recorded_owner(self, user: UserIdentity, organization_id: UUID) -> bool:
        """Whether the user holds ownership of the organization

        Ignores the superuser shortcut, so a superuser counts only when they
        are the creator (with no other owner row) or hold the owner row.

        Raises:
            NotFoundError: If the organization does not exist
        """
        organization = await self.repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        owner_row = await self.repository.get_owner_membership(organization_id)
        if owner_row is not None:
            return owner_row.user_id == user.id
        return organization.created_by_id == user.id

    async def require_permission(
        self,
        user: UserIdentity,
        organization_id: UUID,
        min_role: OrgRole = OrgRole.VIEWER,
    ) -> AccessDecision:
        """Require at least min_role in the organization

        Users without any access get NotFoundError, so an inaccessible
        organization is indistinguishable from a missing one.

        Raises:
            NotFoundError: If the organization does not exist or is inaccessible
            PermissionDeniedError: If the effective role ranks below min_role
        """
        decision = await self.evaluate_access(user, organization_id)

        if not decision.has_access:
            raise NotFoundError("Organization not found")

        if not role_at_least(decision.role, min_role):
            logger.warning(
                f"Permission denied: user {user.id} has role '{decision.role.value}' "
                f"but '{min_role.value}' is required for org {organization_id}",
                extra={
                    "user_id": str(user.id),
                    "organization_id": str(organization_id),
                    "required_role": min_role.value,
                },
            )
            raise PermissionDeniedError("Insufficient permissions")

        return decision
