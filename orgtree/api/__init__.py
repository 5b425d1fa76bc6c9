"""API routes for the OrgTree access core"""

from orgtree.api.admin import router as admin_router
from orgtree.api.csrf import router as csrf_router
from orgtree.api.organizations import router as organizations_router
from orgtree.api.ownership_transfers import router as ownership_transfers_router

__all__ = [
    "admin_router",
    "csrf_router",
    "organizations_router",
    "ownership_transfers_router",
]
