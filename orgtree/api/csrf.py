"""
CSRF token API route.

Issues the signed double-submit token. No authentication required.
"""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from orgtree.config.settings import get_settings
from orgtree.middleware.csrf import get_csrf_service
from orgtree.services.csrf import CsrfTokenService

router = APIRouter(prefix="/api", tags=["csrf"])


class CsrfTokenResponse(BaseModel):
    """Schema for CSRF token response."""
    csrfToken: str
    expiresIn: int


@router.get("/csrf-token", response_model=CsrfTokenResponse)
async def get_csrf_token(
    response: Response,
    csrf_service: CsrfTokenService = Depends(get_csrf_service)
):
    """
    Issue a CSRF token.

    The signed token is set as a script-readable cookie and returned in the
    body; clients echo it in the CSRF header on state-changing requests.
    """
    settings = get_settings()
    pair = csrf_service.issue()

    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=pair.signed_token,
        max_age=csrf_service.ttl_seconds,
        httponly=False,  # Client script must read it to set the header
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )

    return CsrfTokenResponse(csrfToken=pair.signed_token, expiresIn=csrf_service.ttl_seconds)
