"""
Ownership transfer API routes.

Transfers are created under their organization and resolved by ID. Every
state-changing route requires a valid CSRF token.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from orgtree.api.dependencies import RequestContext, get_request_context, get_transfer_service
from orgtree.middleware.auth import get_current_user
from orgtree.middleware.csrf import require_csrf
from orgtree.models import AuditAction, TransferStatus, UserIdentity
from orgtree.services import OwnershipTransferService

router = APIRouter(prefix="/api", tags=["ownership-transfers"])


# Pydantic schemas
class TransferCreate(BaseModel):
    """Schema for initiating an ownership transfer."""
    to_user_id: UUID
    reason: Optional[str] = Field(None, max_length=1000)


class TransferResolution(BaseModel):
    """Schema for rejecting or cancelling a transfer."""
    reason: Optional[str] = Field(None, max_length=1000)


class TransferResponse(BaseModel):
    """Schema for ownership transfer response."""
    id: UUID
    organization_id: UUID
    organization_name: str
    from_user_id: UUID
    from_user_name: str
    from_user_email: str
    to_user_id: UUID
    to_user_name: str
    to_user_email: str
    status: TransferStatus
    reason: Optional[str]
    rejection_reason: Optional[str]
    cancellation_reason: Optional[str]
    requested_at: datetime
    expires_at: datetime
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    """Schema for audit log entry response."""
    id: UUID
    organization_id: Optional[UUID]
    transfer_id: Optional[UUID]
    actor_id: Optional[UUID]
    action: AuditAction
    actor_role: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    details: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post(
    "/organizations/{org_id}/ownership/transfers",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf)],
)
async def create_transfer(
    org_id: UUID,
    transfer: TransferCreate,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Initiate an ownership transfer.

    Only the current owner may initiate, and only one transfer may be pending
    per organization.
    """
    return await service.create_transfer(
        org_id,
        current_user,
        transfer.to_user_id,
        reason=transfer.reason,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )


@router.get(
    "/organizations/{org_id}/ownership/transfers",
    response_model=List[TransferResponse],
)
async def list_transfers(
    org_id: UUID,
    transfer_status: Optional[TransferStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
):
    """List an organization's transfers, newest first (admin or owner)."""
    return await service.list_transfers(
        org_id, current_user, status=transfer_status, limit=limit, offset=offset
    )


@router.get("/ownership/transfers/pending", response_model=List[TransferResponse])
async def list_pending_transfers(
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
):
    """List pending transfers addressed to the caller."""
    return await service.get_pending_transfers_for_user(current_user.id)


@router.get("/ownership/transfers/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    transfer_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
):
    """Get a transfer visible to the caller."""
    return await service.get_transfer_by_id(transfer_id, current_user)


@router.post(
    "/ownership/transfers/{transfer_id}/accept",
    response_model=TransferResponse,
    dependencies=[Depends(require_csrf)],
)
async def accept_transfer(
    transfer_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Accept a transfer (recipient only).

    The caller becomes owner and the previous owner is demoted to admin.
    """
    return await service.accept_transfer(
        transfer_id, current_user, ip_address=context.ip_address, user_agent=context.user_agent
    )


@router.post(
    "/ownership/transfers/{transfer_id}/reject",
    response_model=TransferResponse,
    dependencies=[Depends(require_csrf)],
)
async def reject_transfer(
    transfer_id: UUID,
    resolution: Optional[TransferResolution] = None,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
    context: RequestContext = Depends(get_request_context),
):
    """Reject a transfer (recipient only, reason optional)."""
    return await service.reject_transfer(
        transfer_id,
        current_user,
        reason=resolution.reason if resolution else None,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )


@router.post(
    "/ownership/transfers/{transfer_id}/cancel",
    response_model=TransferResponse,
    dependencies=[Depends(require_csrf)],
)
async def cancel_transfer(
    transfer_id: UUID,
    resolution: TransferResolution,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
    context: RequestContext = Depends(get_request_context),
):
    """Cancel a transfer (initiator only, reason required)."""
    return await service.cancel_transfer(
        transfer_id,
        current_user,
        reason=resolution.reason,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )


@router.get(
    "/ownership/transfers/{transfer_id}/audit-log",
    response_model=List[AuditLogResponse],
)
async def get_transfer_audit_log(
    transfer_id: UUID,
    current_user: UserIdentity = Depends(get_current_user),
    service: OwnershipTransferService = Depends(get_transfer_service),
):
    """Audit entries for a transfer, oldest first."""
    return await service.get_audit_log(transfer_id, current_user)
