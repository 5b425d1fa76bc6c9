"""Ownership Transfer Workflow

Purpose: Move the owner role of an organization from one user to another

Lifecycle:
    pending -> accepted | rejected | cancelled | expired   (all terminal)

Key Features:
- Only the current owner may initiate; one pending transfer per organization
- Only the recipient may accept or reject; only the initiator may cancel
- Accepting swaps roles in one transaction: recipient becomes owner, the
  previous owner is demoted to admin (never removed)
- Every transition appends an audit entry with the resolver's IP/user agent

Concurrency:
Each transition is a conditional update from ``pending`` executed inside the
repository transaction. When two requests race on the same transfer exactly
one update matches; the other raises InvalidStateError.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence
from uuid import UUID

from orgtree.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from orgtree.models import (
    AuditAction,
    AuditLog,
    OrgRole,
    OwnershipTransfer,
    TransferStatus,
    UserIdentity,
)
from orgtree.models.base import utc_now
from orgtree.repositories.base import OrgRepository
from orgtree.services.access import AccessEvaluator

logger = logging.getLogger(__name__)

DEFAULT_TRANSFER_EXPIRY = timedelta(days=7)
SYSTEM_ACTOR_ROLE = "system"


def _clean_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    reason = reason.strip()
    return reason or None


class OwnershipTransferService:
    """Ownership transfer state machine

    Args:
        repository: Storage collaborator
        evaluator: Access evaluator (built from the repository if omitted)
        expiry: How long a transfer stays acceptable
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        repository: OrgRepository,
        evaluator: Optional[AccessEvaluator] = None,
        expiry: timedelta = DEFAULT_TRANSFER_EXPIRY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.evaluator = evaluator or AccessEvaluator(repository)
        self.expiry = expiry
        self.clock = clock

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def create_transfer(
        self,
        organization_id: UUID,
        from_user: UserIdentity,
        to_user_id: UUID,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OwnershipTransfer:
        """Initiate a pending ownership transfer

        Raises:
            NotFoundError: Unknown organization or recipient
            PermissionDeniedError: Initiator is not the organization owner
            ConflictError: A transfer is already pending for the organization
            ValidationError: Initiator and recipient are the same user
        """
        decision = await self.evaluator.evaluate_access(from_user, organization_id)
        if not decision.has_access:
            raise PermissionDeniedError("Only the organization owner can initiate an ownership transfer")

        if await self.repository.get_pending_transfer_for_organization(organization_id) is not None:
            raise ConflictError("A pending transfer already exists for this organization")

        if not await self.evaluator.is_recorded_owner(from_user, organization_id):
            raise PermissionDeniedError("Only the organization owner can initiate an ownership transfer")

        if to_user_id == from_user.id:
            raise ValidationError("Cannot transfer ownership to yourself")

        if await self.repository.get_user(to_user_id) is None:
            raise NotFoundError("Target user not found")

        now = self.clock()
        reason = _clean_reason(reason)

        async with self.repository.transaction():
            transfer = await self.repository.create_transfer(
                organization_id=organization_id,
                from_user_id=from_user.id,
                to_user_id=to_user_id,
                expires_at=now + self.expiry,
                reason=reason,
            )
            await self.repository.append_audit_entry(
                action=AuditAction.TRANSFER_INITIATED,
                actor_id=from_user.id,
                actor_role=from_user.system_role.value,
                organization_id=organization_id,
                transfer_id=transfer.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={
                    "to_user_id": str(to_user_id),
                    "reason": reason,
                    "expires_at": (now + self.expiry).isoformat(),
                },
            )

        logger.info(
            f"Ownership transfer {transfer.id} initiated for org {organization_id}",
            extra={
                "transfer_id": str(transfer.id),
                "organization_id": str(organization_id),
                "from_user_id": str(from_user.id),
                "to_user_id": str(to_user_id),
            },
        )
        return transfer

    async def accept_transfer(
        self,
        transfer_id: UUID,
        acting_user: UserIdentity,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OwnershipTransfer:
        """Accept a transfer and swap owner/admin roles atomically

        Raises:
            NotFoundError: Unknown transfer
            PermissionDeniedError: Actor is not the recipient
            InvalidStateError: Transfer is not pending (or has just expired)
        """
        transfer = await self._get_transfer(transfer_id)

        if transfer.to_user_id != acting_user.id:
            raise PermissionDeniedError("Only the designated recipient can accept this transfer")
        self._ensure_pending(transfer, "accepted")

        now = self.clock()
        if transfer.is_expired_at(now):
            await self._expire(transfer.id, transfer.organization_id, now)
            raise InvalidStateError("This transfer has expired")

        organization_id = transfer.organization_id
        previous_owner_id = transfer.from_user_id

        async with self.repository.transaction():
            await self._resolve(
                transfer_id,
                TransferStatus.ACCEPTED,
                now,
                resolved_by_ip=ip_address,
                resolved_by_user_agent=user_agent,
            )
            await self.repository.upsert_membership(
                organization_id, acting_user.id, OrgRole.OWNER, added_by_id=previous_owner_id
            )
            await self.repository.upsert_membership(
                organization_id, previous_owner_id, OrgRole.ADMIN, added_by_id=acting_user.id
            )
            await self.repository.append_audit_entry(
                action=AuditAction.TRANSFER_ACCEPTED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                transfer_id=transfer_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={
                    "previous_owner_id": str(previous_owner_id),
                    "new_owner_id": str(acting_user.id),
                },
            )

        logger.info(
            f"Ownership transfer {transfer_id} accepted: org {organization_id} now owned by {acting_user.id}",
            extra={
                "transfer_id": str(transfer_id),
                "organization_id": str(organization_id),
                "previous_owner_id": str(previous_owner_id),
            },
        )
        return await self._get_transfer(transfer_id)

    async def reject_transfer(
        self,
        transfer_id: UUID,
        acting_user: UserIdentity,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OwnershipTransfer:
        """Reject a transfer; memberships are left untouched

        Raises:
            NotFoundError: Unknown transfer
            PermissionDeniedError: Actor is not the recipient
            InvalidStateError: Transfer is not pending
        """
        transfer = await self._get_transfer(transfer_id)

        if transfer.to_user_id != acting_user.id:
            raise PermissionDeniedError("Only the designated recipient can reject this transfer")
        self._ensure_pending(transfer, "rejected")

        reason = _clean_reason(reason)
        organization_id = transfer.organization_id

        async with self.repository.transaction():
            await self._resolve(
                transfer_id,
                TransferStatus.REJECTED,
                self.clock(),
                rejection_reason=reason,
                resolved_by_ip=ip_address,
                resolved_by_user_agent=user_agent,
            )
            await self.repository.append_audit_entry(
                action=AuditAction.TRANSFER_REJECTED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                transfer_id=transfer_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": reason} if reason else None,
            )

        logger.info(f"Ownership transfer {transfer_id} rejected by {acting_user.id}")
        return await self._get_transfer(transfer_id)

    async def cancel_transfer(
        self,
        transfer_id: UUID,
        acting_user: UserIdentity,
        reason: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> OwnershipTransfer:
        """Cancel a pending transfer (initiator only, reason required)

        Raises:
            NotFoundError: Unknown transfer
            PermissionDeniedError: Actor is not the initiator
            InvalidStateError: Transfer is not pending
            ValidationError: Reason is empty or whitespace
        """
        transfer = await self._get_transfer(transfer_id)

        if transfer.from_user_id != acting_user.id:
            raise PermissionDeniedError("Only the initiator can cancel this transfer")
        self._ensure_pending(transfer, "cancelled")

        reason = _clean_reason(reason)
        if reason is None:
            raise ValidationError("Cancellation reason is required")

        organization_id = transfer.organization_id

        async with self.repository.transaction():
            await self._resolve(
                transfer_id,
                TransferStatus.CANCELLED,
                self.clock(),
                cancellation_reason=reason,
                resolved_by_ip=ip_address,
                resolved_by_user_agent=user_agent,
            )
            await self.repository.append_audit_entry(
                action=AuditAction.TRANSFER_CANCELLED,
                actor_id=acting_user.id,
                actor_role=acting_user.system_role.value,
                organization_id=organization_id,
                transfer_id=transfer_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": reason},
            )

        logger.info(f"Ownership transfer {transfer_id} cancelled by {acting_user.id}")
        return await self._get_transfer(transfer_id)

    async def expire_stale_transfers(self) -> int:
        """Expire every pending transfer past its deadline

        Returns:
            Number of transfers this call expired
        """
        now = self.clock()
        overdue = [
            (transfer.id, transfer.organization_id)
            for transfer in await self.repository.list_overdue_pending_transfers(now)
        ]

        expired = 0
        for transfer_id, organization_id in overdue:
            if await self._expire(transfer_id, organization_id, now):
                expired += 1

        if expired:
            logger.info(f"Expired {expired} stale ownership transfer(s)")
        return expired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_transfer_by_id(
        self, transfer_id: UUID, requesting_user: UserIdentity
    ) -> OwnershipTransfer:
        """Get a transfer visible to the requester

        The requester must be the initiator, the recipient, or have access to
        the organization.

        Raises:
            NotFoundError: Unknown transfer
            PermissionDeniedError: Requester is unrelated to the transfer
        """
        transfer = await self._get_transfer(transfer_id)

        if requesting_user.id in (transfer.from_user_id, transfer.to_user_id):
            return transfer

        decision = await self.evaluator.evaluate_access(requesting_user, transfer.organization_id)
        if not decision.has_access:
            raise PermissionDeniedError("Insufficient permissions to view this transfer")

        return transfer

    async def get_audit_log(
        self, transfer_id: UUID, requesting_user: UserIdentity
    ) -> Sequence[AuditLog]:
        """Audit entries of a transfer, oldest first (same visibility as the transfer)"""
        await self.get_transfer_by_id(transfer_id, requesting_user)
        return await self.repository.list_audit_entries_for_transfer(transfer_id)

    async def get_pending_transfers_for_user(self, user_id: UUID) -> Sequence[OwnershipTransfer]:
        """Pending transfers addressed to the user, newest first"""
        return await self.repository.list_pending_transfers_for_recipient(user_id)

    async def list_transfers(
        self,
        organization_id: UUID,
        requesting_user: UserIdentity,
        status: Optional[TransferStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[OwnershipTransfer]:
        """List an organization's transfers (admin or owner only)"""
        await self.evaluator.require_permission(requesting_user, organization_id, OrgRole.ADMIN)
        return await self.repository.list_transfers_for_organization(
            organization_id, status=status, limit=limit, offset=offset
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_transfer(self, transfer_id: UUID) -> OwnershipTransfer:
        transfer = await self.repository.get_transfer(transfer_id)
        if transfer is None:
            raise NotFoundError("Transfer not found")
        return transfer

    @staticmethod
    def _ensure_pending(transfer: OwnershipTransfer, target: str) -> None:
        if not transfer.is_pending:
            raise InvalidStateError(
                f"Transfer cannot be {target}. Current status: {TransferStatus(transfer.status).value}"
            )

    async def _resolve(
        self, transfer_id: UUID, status: TransferStatus, now: datetime, **fields
    ) -> None:
        resolved = await self.repository.resolve_pending_transfer(transfer_id, status, now, **fields)
        if not resolved:
            logger.warning(f"Lost race resolving transfer {transfer_id} as {status.value}")
            raise InvalidStateError("Transfer is no longer pending")

    async def _expire(self, transfer_id: UUID, organization_id: UUID, now: datetime) -> bool:
        async with self.repository.transaction():
            expired = await self.repository.resolve_pending_transfer(
                transfer_id, TransferStatus.EXPIRED, now
            )
            if expired:
                await self.repository.append_audit_entry(
                    action=AuditAction.TRANSFER_EXPIRED,
                    actor_id=None,
                    actor_role=SYSTEM_ACTOR_ROLE,
                    organization_id=organization_id,
                    transfer_id=transfer_id,
                    details={"reason": "Acceptance window elapsed"},
                )
        return expired
