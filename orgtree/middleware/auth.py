"""
JWT authentication middleware.

Provides FastAPI dependencies for:
- JWT token validation
- Resolving the current user identity
- Superuser-only endpoints
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from orgtree.database import get_db
from orgtree.errors import AuthenticationError, PermissionDeniedError
from orgtree.models import User, UserIdentity
from orgtree.security import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme (missing credentials handled below as 401)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> UserIdentity:
    """
    Validate JWT token and return the current user identity.

    Args:
        credentials: HTTP Authorization header with Bearer token
        db: Database session

    Returns:
        Immutable identity of the authenticated user

    Raises:
        AuthenticationError: If token is missing/invalid or user not found
    """
    credentials_exception = AuthenticationError("Could not validate credentials")

    if credentials is None:
        raise credentials_exception

    try:
        payload = verify_token(credentials.credentials)
        user_id = UUID(payload["sub"])
    except (JWTError, ValueError, KeyError):
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        logger.info(f"Token subject {user_id} does not match any user")
        raise credentials_exception

    return UserIdentity.from_user(user)


async def require_superuser(
    current_user: UserIdentity = Depends(get_current_user)
) -> UserIdentity:
    """
    Require the current user to hold the superuser system role.

    Raises:
        PermissionDeniedError: If user is not a superuser
    """
    if not current_user.is_superuser:
        raise PermissionDeniedError("Superuser access required")
    return current_user
