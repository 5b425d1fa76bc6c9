"""
Database models and domain enumerations.

- Users with a system-wide role
- Organizations and their memberships
- Ownership transfers
- Append-only audit log
"""

from orgtree.models.base import Base
from orgtree.models.user import User
from orgtree.models.organization import Organization, OrganizationMember
from orgtree.models.transfer import OwnershipTransfer
from orgtree.models.audit import AuditLog
from orgtree.models.identity import UserIdentity
from orgtree.models.roles import (
    AuditAction,
    Capabilities,
    OrgRole,
    SystemRole,
    TransferStatus,
)

__all__ = [
    "Base",
    "User",
    "Organization",
    "OrganizationMember",
    "OwnershipTransfer",
    "AuditLog",
    "UserIdentity",
    "AuditAction",
    "Capabilities",
    "OrgRole",
    "SystemRole",
    "TransferStatus",
]
