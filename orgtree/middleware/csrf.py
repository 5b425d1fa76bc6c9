"""
CSRF protection dependency.

State-changing routes declare ``Depends(require_csrf)``. Safe methods pass
through; everything else must echo the signed token from the CSRF cookie in
the CSRF header.
"""

import logging

from fastapi import Depends, Request

from orgtree.config.settings import get_settings
from orgtree.errors import CsrfValidationError
from orgtree.services.csrf import CsrfTokenService

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def get_csrf_service() -> CsrfTokenService:
    """Build the token service from current settings"""
    settings = get_settings()
    return CsrfTokenService(
        secret=settings.effective_csrf_secret,
        ttl_seconds=settings.csrf_token_ttl_seconds,
    )


async def require_csrf(
    request: Request,
    csrf_service: CsrfTokenService = Depends(get_csrf_service)
) -> None:
    """
    Enforce the double-submit check on unsafe methods.

    Raises:
        CsrfValidationError: With code CSRF_TOKEN_MISSING when the header or
            cookie is absent, CSRF_TOKEN_INVALID when they mismatch or the
            signature/age check fails
    """
    if request.method in SAFE_METHODS:
        return

    settings = get_settings()
    header_token = request.headers.get(settings.csrf_header_name)
    cookie_token = request.cookies.get(settings.csrf_cookie_name)

    if not header_token or not cookie_token:
        logger.warning(
            "CSRF token missing",
            extra={"path": request.url.path, "method": request.method}
        )
        raise CsrfValidationError(code="CSRF_TOKEN_MISSING")

    if not csrf_service.verify(header_token, cookie_token):
        logger.warning(
            "CSRF token validation failed",
            extra={"path": request.url.path, "method": request.method}
        )
        raise CsrfValidationError(code="CSRF_TOKEN_INVALID")
