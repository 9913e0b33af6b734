"""
Authentication

FastAPI dependencies for JWT bearer authentication.
User info is taken from token claims; no database lookup is made.
"""

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from genstack.core.security import decode_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class UserPrincipal:
    """Authenticated user extracted from an access token."""
    user_id: UUID
    email: str
    organization_id: UUID | None = None
    name: str = ""


def _principal_from_token(token: str) -> UserPrincipal | None:
    payload = decode_token(token, expected_type="access")
    if payload is None:
        return None

    user_id_str = payload.get("sub")
    if not user_id_str:
        return None

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        return None

    if "email" not in payload:
        logger.warning(f"Token for user {user_id} missing email claim")
        return None

    org_id = None
    org_id_str = payload.get("org_id")
    if org_id_str:
        try:
            org_id = UUID(org_id_str)
        except ValueError:
            logger.warning(f"Token for user {user_id} has invalid org_id format: {org_id_str}")
            return None

    return UserPrincipal(
        user_id=user_id,
        email=payload["email"],
        organization_id=org_id,
        name=payload.get("name", ""),
    )


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPrincipal | None:
    """
    Get the current user from a JWT token (optional).

    Checks the Authorization: Bearer header first, then the access_token
    cookie. Returns None if no token is provided or the token is invalid.
    """
    token = None
    if credentials:
        token = credentials.credentials
    elif "access_token" in request.cookies:
        token = request.cookies["access_token"]

    if not token:
        return None

    return _principal_from_token(token)


async def get_current_user(
    user: Annotated[UserPrincipal | None, Depends(get_current_user_optional)],
) -> UserPrincipal:
    """
    Get the current user from a JWT token (required).

    Raises:
        HTTPException: 401 if not authenticated or the token is invalid
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[UserPrincipal, Depends(get_current_user)]
