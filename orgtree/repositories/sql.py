"""SQLAlchemy implementation of the storage collaborator

One repository instance wraps one AsyncSession, i.e. one request.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Sequence
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgtree.errors import ConflictError
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
from orgtree.repositories.base import OrgRepository

logger = logging.getLogger(__name__)


class SQLAlchemyOrgRepository(OrgRepository):
    """Repository backed by an async SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        """Initialize repository

        Args:
            session: Database session scoped to the current request
        """
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    # Users and organizations

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_organization(self, organization_id: UUID) -> Optional[Organization]:
        return await self.session.get(Organization, organization_id)

    async def create_organization(
        self, name: str, created_by_id: UUID, is_public: bool = False
    ) -> Organization:
        organization = Organization(name=name, created_by_id=created_by_id, is_public=is_public)
        self.session.add(organization)
        await self.session.flush()
        return organization

    async def list_organizations_without_creator_membership(self) -> Sequence[Organization]:
        creator_row = exists().where(
            OrganizationMember.organization_id == Organization.id,
            OrganizationMember.user_id == Organization.created_by_id,
        )
        result = await self.session.execute(
            select(Organization).where(~creator_row).order_by(Organization.created_at)
        )
        return result.scalars().all()

    # Memberships

    async def get_membership(
        self, organization_id: UUID, user_id: UUID
    ) -> Optional[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_owner_membership(self, organization_id: UUID) -> Optional[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role == OrgRole.OWNER,
            )
            .order_by(OrganizationMember.updated_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_memberships(self, organization_id: UUID) -> Sequence[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.created_at.desc())
        )
        return result.scalars().all()

    async def add_membership(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrgRole,
        added_by_id: Optional[UUID] = None,
    ) -> OrganizationMember:
        member = OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            role=role,
            added_by_id=added_by_id,
        )
        self.session.add(member)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError("User is already a member of this organization") from e
        return member

    async def upsert_membership(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrgRole,
        added_by_id: Optional[UUID] = None,
    ) -> OrganizationMember:
        member = await self.get_membership(organization_id, user_id)
        if member is None:
            return await self.add_membership(organization_id, user_id, role, added_by_id)
        return await self.set_membership_role(member, role)

    async def set_membership_role(self, member: OrganizationMember, role: OrgRole) -> OrganizationMember:
        member.role = role
        await self.session.flush()
        return member

    async def delete_membership(self, member: OrganizationMember) -> None:
        await self.session.delete(member)
        await self.session.flush()

    # Ownership transfers

    async def get_transfer(self, transfer_id: UUID) -> Optional[OwnershipTransfer]:
        result = await self.session.execute(
            select(OwnershipTransfer)
            .where(OwnershipTransfer.id == transfer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_pending_transfer_for_organization(
        self, organization_id: UUID
    ) -> Optional[OwnershipTransfer]:
        result = await self.session.execute(
            select(OwnershipTransfer)
            .where(
                OwnershipTransfer.organization_id == organization_id,
                OwnershipTransfer.status == TransferStatus.PENDING,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_pending_transfers_for_recipient(self, user_id: UUID) -> Sequence[OwnershipTransfer]:
        result = await self.session.execute(
            select(OwnershipTransfer)
            .where(
                OwnershipTransfer.to_user_id == user_id,
                OwnershipTransfer.status == TransferStatus.PENDING,
            )
            .order_by(OwnershipTransfer.requested_at.desc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_transfers_for_organization(
        self,
        organization_id: UUID,
        status: Optional[TransferStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[OwnershipTransfer]:
        query = select(OwnershipTransfer).where(OwnershipTransfer.organization_id == organization_id)
        if status is not None:
            query = query.where(OwnershipTransfer.status == status)

        query = query.order_by(OwnershipTransfer.requested_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalars().all()

    async def list_overdue_pending_transfers(self, now: datetime) -> Sequence[OwnershipTransfer]:
        result = await self.session.execute(
            select(OwnershipTransfer).where(
                OwnershipTransfer.status == TransferStatus.PENDING,
                OwnershipTransfer.expires_at < now,
            )
        )
        return result.scalars().all()

    async def create_transfer(
        self,
        organization_id: UUID,
        from_user_id: UUID,
        to_user_id: UUID,
        expires_at: datetime,
        reason: Optional[str] = None,
    ) -> OwnershipTransfer:
        transfer = OwnershipTransfer(
            organization_id=organization_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=TransferStatus.PENDING,
            reason=reason,
            expires_at=expires_at,
        )
        self.session.add(transfer)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Partial unique index: another pending transfer won the race
            raise ConflictError("A pending transfer already exists for this organization") from e
        await self.session.refresh(transfer, attribute_names=["organization", "from_user", "to_user"])
        return transfer

    async def resolve_pending_transfer(
        self,
        transfer_id: UUID,
        status: TransferStatus,
        resolved_at: datetime,
        **fields,
    ) -> bool:
        # Conditional update: only the first request to reach the row wins
        result = await self.session.execute(
            update(OwnershipTransfer)
            .where(
                OwnershipTransfer.id == transfer_id,
                OwnershipTransfer.status == TransferStatus.PENDING,
            )
            .values(status=status, resolved_at=resolved_at, **fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.debug(f"Transfer {transfer_id} was no longer pending (target status: {status.value})")
            return False
        return True

    # Audit log

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
        entry = AuditLog(
            action=action,
            actor_id=actor_id,
            actor_role=actor_role,
            organization_id=organization_id,
            transfer_id=transfer_id,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_audit_entries_for_transfer(self, transfer_id: UUID) -> Sequence[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.transfer_id == transfer_id)
            .order_by(AuditLog.created_at.asc())
        )
        return result.scalars().all()

    async def list_audit_entries_for_organization(
        self,
        organization_id: UUID,
        action: Optional[AuditAction] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AuditLog]:
        query = select(AuditLog).where(AuditLog.organization_id == organization_id)
        if action is not None:
            query = query.where(AuditLog.action == action)
        result = await self.session.execute(
            query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        )
        return result.scalars().all()
