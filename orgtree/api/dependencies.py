"""
Shared route dependencies.

Each request gets its own repository bound to the request's database
session; services are built on top of it per request.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orgtree.config.settings import get_settings
from orgtree.database import get_db
from orgtree.repositories import OrgRepository, SQLAlchemyOrgRepository
from orgtree.services import (
    AccessEvaluator,
    MembershipService,
    OrganizationService,
    OwnershipTransferService,
)


@dataclass(frozen=True)
class RequestContext:
    """Client details recorded in audit entries"""
    ip_address: Optional[str]
    user_agent: Optional[str]


def get_request_context(request: Request) -> RequestContext:
    """Extract client IP and user agent from the request

    Trusts exactly one proxy hop: the rightmost X-Forwarded-For entry is the
    address our proxy saw, everything left of it is client supplied.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()] if forwarded_for else []
    if hops:
        ip_address = hops[-1]
    elif request.client:
        ip_address = request.client.host
    else:
        ip_address = None
    return RequestContext(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


def get_repository(db: AsyncSession = Depends(get_db)) -> OrgRepository:
    return SQLAlchemyOrgRepository(db)


def get_access_evaluator(repository: OrgRepository = Depends(get_repository)) -> AccessEvaluator:
    return AccessEvaluator(repository)


def get_membership_service(
    repository: OrgRepository = Depends(get_repository),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
) -> MembershipService:
    return MembershipService(repository, evaluator)


def get_organization_service(
    repository: OrgRepository = Depends(get_repository),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
) -> OrganizationService:
    return OrganizationService(repository, evaluator)


def get_transfer_service(
    repository: OrgRepository = Depends(get_repository),
    evaluator: AccessEvaluator = Depends(get_access_evaluator),
) -> OwnershipTransferService:
    settings = get_settings()
    return OwnershipTransferService(
        repository,
        evaluator,
        expiry=timedelta(days=settings.transfer_expiry_days),
    )
