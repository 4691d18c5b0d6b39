"""
FastAPI dependencies: auth guard, database session and rate limiter.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from garage.core.config import settings
from garage.core.exceptions import Unauthorized
from garage.core.security import decode_access_token
from garage.db.session import async_session_factory
from garage.models.user import User

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
def _token_from_cookie(access_token: str | None) -> str | None:
    if not access_token:
        return None
    # Set by the auth endpoints as "Bearer <token>"
    if access_token.startswith("Bearer "):
        return access_token.split(" ", 1)[1]
    return access_token


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""

    # Priority: Header > Cookie
    final_token = token or _token_from_cookie(access_token)

    credentials_exc = Unauthorized(
        "not authorized to access this route",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise credentials_exc from None

    user = await db.get(User, user_id)
    if user is None:
        raise credentials_exc
    return user
