"""Storage collaborators for the access core"""

from orgtree.repositories.base import OrgRepository
from orgtree.repositories.sql import SQLAlchemyOrgRepository

__all__ = ["OrgRepository", "SQLAlchemyOrgRepository"]
