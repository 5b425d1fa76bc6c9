"""Request identity

The identity collaborator (JWT middleware) hands services an immutable
snapshot of the current user rather than a live ORM object.
"""

from dataclasses import dataclass
from uuid import UUID

from orgtree.models.roles import SystemRole
from orgtree.models.user import User


@dataclass(frozen=True)
class UserIdentity:
    """Current user for one request

    Attributes:
        id: User identifier
        email: User email address
        name: Display name
        system_role: System-wide role (user, admin, superuser)
    """
    id: UUID
    email: str
    name: str
    system_role: SystemRole = SystemRole.USER

    @property
    def is_superuser(self) -> bool:
        return self.system_role == SystemRole.SUPERUSER

    @classmethod
    def from_user(cls, user: User) -> "UserIdentity":
        """Snapshot a persisted user"""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            system_role=SystemRole(user.system_role),
        )
