"""
Organization API routes.

Provides organization creation, access evaluation for the caller, the
organization audit trail and member management. Ownership itself moves only
through the transfer routes.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from orgtree.api.dependencies import (
    RequestContext,
    get_access_evaluator,
    get_membership_service,
    get_organization_service,
    get_request_context,
)
from orgtree.api.ownership_transfers import AuditLogResponse
from orgtree.middleware.auth import get_current_user
from orgtree.middleware.csrf import require_csrf
from orgtree.models import AuditAction, OrgRole, UserIdentity
from orgtree.services import AccessEvaluator, MembershipService, OrganizationService

router = APIRouter(prefix="/api/organizations", tags=["organizations"])


# Pydantic schemas
class OrganizationCreate(BaseModel):
    """Schema for creating a new organization."""
    name: str = Field(..., min_length=1, max_length=255)
    is_public: bool = False


class OrganizationResponse(BaseModel):
    """Schema for organization response."""
    id: UUID
    name: str
    created_by_id: UUID
    is_public: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AccessResponse(BaseModel):
    """Schema for the caller's effective access."""
    has_access: bool
    role: Optional[OrgRole]
    is_owner: bool
    can_edit: bool
    can_delete: bool
    can_invite: bool
    can_manage_members: bool

    class Config:
        from_attributes = True


class MemberCreate(BaseModel):
    """Schema for adding a member."""
    user_id: UUID
    role: OrgRole = OrgRole.VIEWER


class MemberUpdate(BaseModel):
    """Schema for changing a member's role."""
    role: OrgRole


class MemberResponse(BaseModel):
    """Schema for membership response."""
    id: UUID
    organization_id: UUID
    user_id: UUID
    role: OrgRole
    added_by_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf)],
)
async def create_organization(
    organization: OrganizationCreate,
    current_user: UserIdentity = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """
    Create a new organization.

    The caller becomes its owner through the creator rule; no membership row
    is written.
    """
    return await service.create_organization(
        name=organization.name, creator=current_user, is_public=organization.is_public
    )


@router.get("/{org_id}/access", response_model=AccessResponse)
async def get_access(
    org_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
):
    """
    Evaluate the caller's access to an organization.

    A caller without access receives ``has_access: false`` rather than an
    error; an unknown organization is a 404.
    """
    return await evaluator.evaluate_access(current_user, org_id)


@router.get("/{org_id}/audit-logs", response_model=List[AuditLogResponse])
async def list_audit_logs(
    org_id: UUID,
    action: Optional[AuditAction] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: UserIdentity = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Organization audit trail, newest first (admin or owner)."""
    return await service.list_audit_entries(
        org_id, current_user, action=action, limit=limit, offset=offset
    )


@router.get("/{org_id}/members", response_model=List[MemberResponse])
async def list_members(
    org_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """List membership rows (viewer or above)."""
    return await service.list_members(org_id, current_user)


@router.post(
    "/{org_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf)],
)
async def add_member(
    org_id: UUID,
    member: MemberCreate,
    current_user: UserIdentity = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
    context: RequestContext = Depends(get_request_context),
):
    """Add a member (admin or owner)."""
    return await service.add_member(
        org_id,
        current_user,
        member.user_id,
        member.role,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )


@router.put(
    "/{org_id}/members/{user_id}",
    response_model=MemberResponse,
    dependencies=[Depends(require_csrf)],
)
async def update_member_role(
    org_id: UUID,
    user_id: UUID,
    update: MemberUpdate,
    current_user: UserIdentity = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
    context: RequestContext = Depends(get_request_context),
):
    """Change a member's role (admin or owner)."""
    return await service.update_member_role(
        org_id,
        current_user,
        user_id,
        update.role,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )


@router.delete(
    "/{org_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf)],
)
async def remove_member(
    org_id: UUID,
    user_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
    context: RequestContext = Depends(get_request_context),
):
    """Remove a non-owner member (admin or owner)."""
    await service.remove_member(
        org_id,
        current_user,
        user_id,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
