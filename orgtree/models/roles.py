"""
Role, status and capability definitions.

This module is the single source of truth for role ordering and for the
capabilities each organization role grants. Call sites must consult
ROLE_CAPABILITIES / role_at_least instead of comparing role names directly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SystemRole(str, Enum):
    """System-wide role carried on the user record."""

    USER = "user"
    ADMIN = "admin"
    SUPERUSER = "superuser"


class OrgRole(str, Enum):
    """Per-organization membership role."""

    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class TransferStatus(str, Enum):
    """Ownership transfer lifecycle state."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not TransferStatus.PENDING


class AuditAction(str, Enum):
    """Security-relevant actions recorded in the audit log."""

    TRANSFER_INITIATED = "ownership_transfer_initiated"
    TRANSFER_ACCEPTED = "ownership_transfer_accepted"
    TRANSFER_REJECTED = "ownership_transfer_rejected"
    TRANSFER_CANCELLED = "ownership_transfer_cancelled"
    TRANSFER_EXPIRED = "ownership_transfer_expired"
    MEMBER_ADDED = "member_added"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    MEMBER_REMOVED = "member_removed"
    OWNER_MEMBERSHIP_BACKFILLED = "owner_membership_backfilled"


# Higher rank wins: owner > admin > editor > viewer
ROLE_RANK: dict[OrgRole, int] = {
    OrgRole.VIEWER: 0,
    OrgRole.EDITOR: 1,
    OrgRole.ADMIN: 2,
    OrgRole.OWNER: 3,
}


@dataclass(frozen=True)
class Capabilities:
    """Capability flags derived from an organization role."""

    can_edit: bool = False
    can_delete: bool = False
    can_invite: bool = False
    can_manage_members: bool = False


NO_CAPABILITIES = Capabilities()

ROLE_CAPABILITIES: dict[OrgRole, Capabilities] = {
    OrgRole.OWNER: Capabilities(can_edit=True, can_delete=True, can_invite=True, can_manage_members=True),
    OrgRole.ADMIN: Capabilities(can_edit=True, can_delete=True, can_invite=True, can_manage_members=True),
    OrgRole.EDITOR: Capabilities(can_edit=True),
    OrgRole.VIEWER: NO_CAPABILITIES,
}


def capabilities_for(role: Optional[OrgRole]) -> Capabilities:
    """Return the capability flags for a role (none for a missing role)."""
    if role is None:
        return NO_CAPABILITIES
    return ROLE_CAPABILITIES[role]


def role_at_least(role: Optional[OrgRole], minimum: OrgRole) -> bool:
    """Check whether role ranks at or above minimum."""
    if role is None:
        return False
    return ROLE_RANK[role] >= ROLE_RANK[minimum]
