"""
SQLAlchemy declarative base for OrgTree models.

Models run on PostgreSQL in production and SQLite in development/tests.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import Enum
from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def enum_column(enum_cls: Type[PyEnum], length: int = 32) -> Enum:
    """String-backed column type storing enum values (not member names)."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        validate_strings=True,
        length=length,
    )


class Base(DeclarativeBase):
    """
    Base class for all OrgTree SQLAlchemy models.
    """

    pass
