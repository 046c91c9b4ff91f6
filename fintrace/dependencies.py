"""
FinTrace Forensics - FastAPI Dependencies

Shared dependencies for authentication, database sessions and
investigation access control.

This module provides dependency injection for:
1. Current user authentication (bearer JWT)
2. Investigation ownership checks through the access gate
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Path, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrace.database import get_async_session
from fintrace.models.forensic import Investigation
from fintrace.models.user import User
from fintrace.services.access_gate import InvestigationAccessGate
from fintrace.utils.error_handling import AuthenticationException, ErrorCode
from fintrace.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Get the current authenticated user from JWT token.

    Token can be provided via:
    1. Authorization: Bearer <token> header
    2. access_token cookie

    Raises:
        AuthenticationException: missing, invalid or expired token, or unknown user
        HTTPException: user account is deactivated
    """
    token = None

    # Try Bearer header first
    if credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[7:]

    if not token:
        raise AuthenticationException("Not authenticated")

    payload = verify_access_token(token)
    if not payload:
        raise AuthenticationException("Invalid or expired token", code=ErrorCode.TOKEN_INVALID)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationException("Invalid token payload", code=ErrorCode.TOKEN_INVALID)

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise AuthenticationException("Invalid user ID in token", code=ErrorCode.TOKEN_INVALID)

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationException("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


async def get_authorized_investigation(
    investigation_id: uuid.UUID = Path(..., description="Investigation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> Investigation:
    """
    Resolve the investigation in the path and verify the caller owns it.

    Every investigation-scoped route depends on this, so the ownership
    check runs before any read or write.
    """
    gate = InvestigationAccessGate(db)
    return await gate.require(investigation_id, current_user.id)
