"""Storage collaborator interface

Purpose: Define the persistence operations the access core depends on

Services receive an OrgRepository instance at construction time, so the
evaluator and the transfer workflow can run against any backend, including
test doubles. All mutations performed inside ``transaction()`` are applied
together or not at all.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncContextManager, Optional, Sequence
from uuid import UUID

from orgtree.models import (
    AuditAction,
    AuditLog,
    OrgRole,
    Organization,
    OrganizationMember,
    OwnershipTransfer,
    TransferStatus,
    User,
)


class OrgRepository(ABC):
    """Persistence operations for organizations, memberships, transfers and audit entries"""

    # Unit of work

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Open a unit of work; commit on success, roll back on any exception"""

    # Users and organizations

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        ...

    @abstractmethod
    async def get_organization(self, organization_id: UUID) -> Optional[Organization]:
        ...

    @abstractmethod
    async def create_organization(
        self, name: str, created_by_id: UUID, is_public: bool = False
    ) -> Organization:
        ...

    @abstractmethod
    async def list_organizations_without_creator_membership(self) -> Sequence[Organization]:
        """Organizations whose creator has no membership row at all"""

    # Memberships

    @abstractmethod
    async def get_membership(
        self, organization_id: UUID, user_id: UUID
    ) -> Optional[OrganizationMember]:
        ...

    @abstractmethod
    async def get_owner_membership(self, organization_id: UUID) -> Optional[OrganizationMember]:
        """Any membership row holding the owner role"""

    @abstractmethod
    async def list_memberships(self, organization_id: UUID) -> Sequence[OrganizationMember]:
        ...

    @abstractmethod
    async def add_membership(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrgRole,
        added_by_id: Optional[UUID] = None,
    ) -> OrganizationMember:
        ...

    @abstractmethod
    async def upsert_membership(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrgRole,
        added_by_id: Optional[UUID] = None,
    ) -> OrganizationMember:
        """Insert the membership or overwrite the role of the existing row"""

    @abstractmethod
    async def set_membership_role(self, member: OrganizationMember, role: OrgRole) -> OrganizationMember:
        ...

    @abstractmethod
    async def delete_membership(self, member: OrganizationMember) -> None:
        ...

    # Ownership transfers

    @abstractmethod
    async def get_transfer(self, transfer_id: UUID) -> Optional[OwnershipTransfer]:
        """Load a transfer with its current persisted state"""

    @abstractmethod
    async def get_pending_transfer_for_organization(
        self, organization_id: UUID
    ) -> Optional[OwnershipTransfer]:
        ...

    @abstractmethod
    async def list_pending_transfers_for_recipient(self, user_id: UUID) -> Sequence[OwnershipTransfer]:
        """Pending transfers addressed to user_id, newest first"""

    @abstractmethod
    async def list_transfers_for_organization(
        self,
        organization_id: UUID,
        status: Optional[TransferStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[OwnershipTransfer]:
        """Transfers of one organization, newest first"""

    @abstractmethod
    async def list_overdue_pending_transfers(self, now: datetime) -> Sequence[OwnershipTransfer]:
        ...

    @abstractmethod
    async def create_transfer(
        self,
        organization_id: UUID,
        from_user_id: UUID,
        to_user_id: UUID,
        expires_at: datetime,
        reason: Optional[str] = None,
    ) -> OwnershipTransfer:
        ...

    @abstractmethod
    async def resolve_pending_transfer(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        resolved_at: datetime,
        **fields,
    ) -> bool:
        """Move a transfer out of pending (compare-and-set)

        Returns:
            True if this call performed the transition, False if the transfer
            was no longer pending when the update ran
        """

    # Audit log

    @abstractmethod
    async def append_audit_entry(
        self,
        action: AuditAction,
        actor_id: Optional[UUID],
        actor_role: str,
        organization_id: Optional[UUID] = None,
        transfer_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> AuditLog:
        ...

    @abstractmethod
    async def list_audit_entries_for_transfer(self, transfer_id: UUID) -> Sequence[AuditLog]:
        """Audit entries of one transfer, oldest first"""

    @abstractmethod
    async def list_audit_entries_for_organization(
        self,
        organization_id: UUID,
        action: Optional[AuditAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AuditLog]:
        """Audit entries of one organization, newest first"""
