"""
Administrative repair routes (superuser only).
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from orgtree.api.dependencies import RequestContext, get_organization_service, get_request_context
from orgtree.middleware.auth import require_superuser
from orgtree.middleware.csrf import require_csrf
from orgtree.models import UserIdentity
from orgtree.services import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class BackfillResponse(BaseModel):
    """Schema for owner membership backfill result."""
    repaired_count: int
    organization_ids: List[UUID]


@router.post(
    "/repair/owner-memberships",
    response_model=BackfillResponse,
    dependencies=[Depends(require_csrf)],
)
async def backfill_owner_memberships(
    current_user: UserIdentity = Depends(require_superuser),
    service: OrganizationService = Depends(get_organization_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Materialize missing owner memberships.

    Inserts an owner row for every organization creator that has none,
    skipping organizations whose ownership has been transferred.
    """
    logger.info(f"Owner membership backfill requested by {current_user.id}")
    repaired = await service.backfill_owner_memberships(
        current_user, ip_address=context.ip_address, user_agent=context.user_agent
    )
    return BackfillResponse(repaired_count=len(repaired), organization_ids=repaired)
