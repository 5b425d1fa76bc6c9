"""
User model.

Users are created at signup and never deleted; the system role is changed by
admin tooling only.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from orgtree.models.base import Base, enum_column, utc_now
from orgtree.models.roles import SystemRole


class User(Base):
    """
    Identity record.

    A system role of ``superuser`` grants unconditional access to every
    organization.
    """

    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    system_role: Mapped[SystemRole] = mapped_column(
        enum_column(SystemRole, length=20),
        default=SystemRole.USER,
        nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, system_role={self.system_role})>"
