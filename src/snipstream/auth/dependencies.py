"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snipstream.auth.jwt import verify_token
from snipstream.database import get_session, get_session_factory
from snipstream.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def _resolve_user(db: AsyncSession, credentials: HTTPAuthorizationCredentials | None) -> User:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    result = await db.execute(select(User).where(User.id == payload["sub"]))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User.

    Raises 401 on a missing/invalid token or an unknown user.
    """
    return await _resolve_user(db, credentials)


async def get_streaming_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> User:
    """Like ``get_current_user`` for long-lived responses.

    The lookup session is closed before the dependency returns, so no
    pooled connection is held for the lifetime of the stream. The returned
    User is detached; only its loaded columns are usable.
    """
    async with get_session_factory()() as db:
        return await _resolve_user(db, credentials)
