"""
Auth endpoints: register, login (OAuth2 password flow), logout and
password change.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage.api.v1.deps import get_current_user, get_db, limiter
from garage.core.config import settings
from garage.core.exceptions import BadRequest, Unauthorized
from garage.core.security import (PASSWORD_POLICY_MESSAGE,
                                  create_access_token, get_password_hash,
                                  is_strong_password, verify_password)
from garage.models.user import User
from garage.schemas.common import MessageResponse
from garage.schemas.token import Token
from garage.schemas.user import PasswordChange, UserCreate

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _issue_token(user: User, response: Response) -> Token:
    """Create an access token and mirror it into an HttpOnly cookie."""
    access_token = create_access_token(user.id)
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return Token(token=access_token)


@router.post("/register", response_model=Token, status_code=201)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,
    response: Response,
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Create an account and log it in."""
    if not is_strong_password(body.password):
        raise BadRequest(PASSWORD_POLICY_MESSAGE)

    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise BadRequest("Email already registered")

    user = User(
        user_name=body.user_name,
        email=body.email,
        hashed_password=get_password_hash(body.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered user %d (%s)", user.id, user.email)
    return _issue_token(user, response)


@router.post("/login", response_model=Token)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Authenticate with email/pass. Returns the token and sets an HttpOnly cookie."""
    result = await db.execute(
        select(User).where(User.email == form_data.username.lower().strip())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(form_data.password, user.hashed_password):
        raise Unauthorized(
            "Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _issue_token(user, response)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie and end the session."""
    response.delete_cookie("access_token")
    return MessageResponse(message="User successfully logged out")


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    if body.old_password == body.new_password:
        raise BadRequest("Old and new password cannot be similar")
    if not is_strong_password(body.new_password):
        raise BadRequest(PASSWORD_POLICY_MESSAGE)
    if not verify_password(body.old_password, current_user.hashed_password):
        raise Unauthorized("Entered password does not match with current password")

    current_user.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("Password changed for user %d", current_user.id)
    return MessageResponse(message="Password changed successfully")
