"""
Ownership transfer model.

A transfer moves the ``owner`` role from one member to another. It is created
by the current owner, resolved by the recipient (accept/reject) or the
initiator (cancel), and immutable once it leaves ``pending``.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, ForeignKey, Text, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from orgtree.models.base import Base, as_utc, enum_column, utc_now
from orgtree.models.roles import TransferStatus


class OwnershipTransfer(Base):
    """
    Ownership transfer request.

    At most one transfer per organization may be pending; the partial unique
    index enforces this even when two requests race past the service check.
    """

    __tablename__ = "ownership_transfers"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    # Foreign keys
    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    from_user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False
    )
    to_user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    status: Mapped[TransferStatus] = mapped_column(
        enum_column(TransferStatus, length=20),
        default=TransferStatus.PENDING,
        nullable=False,
        index=True
    )

    # Reasons
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # Initiator's context
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle timestamps
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Resolver request context (audit)
    resolved_by_ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 support
    resolved_by_user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships (eagerly loaded)
    organization: Mapped["Organization"] = relationship("Organization", lazy="selectin")
    from_user: Mapped["User"] = relationship("User", foreign_keys=[from_user_id], lazy="selectin")
    to_user: Mapped["User"] = relationship("User", foreign_keys=[to_user_id], lazy="selectin")

    __table_args__ = (
        Index(
            "uq_pending_transfer_per_org",
            "organization_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<OwnershipTransfer(id={self.id}, org_id={self.organization_id}, status={self.status})>"

    @property
    def is_pending(self) -> bool:
        return self.status == TransferStatus.PENDING

    @property
    def organization_name(self) -> str:
        return self.organization.name

    @property
    def from_user_name(self) -> str:
        return self.from_user.name

    @property
    def from_user_email(self) -> str:
        return self.from_user.email

    @property
    def to_user_name(self) -> str:
        return self.to_user.name

    @property
    def to_user_email(self) -> str:
        return self.to_user.email

    def is_expired_at(self, moment: datetime) -> bool:
        """Check whether the transfer's acceptance window has passed."""
        return as_utc(self.expires_at) < moment
