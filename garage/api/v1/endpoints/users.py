"""
User endpoints: profile, listing, self-edit and self-delete.

All routes require an authenticated user; edits and deletes are limited
to the caller's own account.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from garage.api.v1.advanced_results import AdvancedResults
from garage.api.v1.deps import get_current_user, get_db
from garage.core.checkout import can_modify
from garage.core.exceptions import BadRequest, Forbidden, NotFound
from garage.models.device import Device
from garage.models.user import User
from garage.schemas.common import DataEnvelope, ListEnvelope, MessageResponse
from garage.schemas.user import UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

USER_QUERY_FIELDS = {
    "id": User.id,
    "user_name": User.user_name,
    "email": User.email,
    "checked_out": User.checked_out_id,
    "created_at": User.created_at,
}

user_results = AdvancedResults(User, "users", UserRead, fields=USER_QUERY_FIELDS)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User does not exist")
    return user


def _envelope(user: User) -> DataEnvelope[UserRead]:
    return DataEnvelope[UserRead](data=UserRead.model_validate(user))


@router.get("", response_model=ListEnvelope, response_model_exclude_unset=True)
async def list_users(results: ListEnvelope = Depends(user_results)) -> ListEnvelope:
    return results


@router.get("/me", response_model=DataEnvelope[UserRead])
async def read_current_user(
    current_user: User = Depends(get_current_user),
) -> DataEnvelope[UserRead]:
    """Return profile of the currently authenticated user."""
    return _envelope(current_user)


@router.get("/{user_id}", response_model=DataEnvelope[UserRead])
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> DataEnvelope[UserRead]:
    return _envelope(await _get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=DataEnvelope[UserRead])
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DataEnvelope[UserRead]:
    user = await _get_user_or_404(db, user_id)
    if not can_modify(current_user, user):
        raise Forbidden("Current user cannot modify another user")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes and changes["email"] != user.email:
        taken = await db.execute(select(User.id).where(User.email == changes["email"]))
        if taken.scalar_one_or_none() is not None:
            raise BadRequest("Email already registered")

    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d", user_id)
    return _envelope(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Delete the caller's account, its devices, and check in anything it borrowed."""
    user = await _get_user_or_404(db, user_id)
    if not can_modify(current_user, user):
        raise Forbidden("Current user cannot remove another user")

    owned = select(Device.id).where(Device.user_id == user.id)
    await db.execute(
        update(User)
        .where(User.checked_out_id.in_(owned))
        .values(checked_out_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Device)
        .where(Device.last_checkedout_by_id == user.id)
        .values(is_checkedout=False, last_checkedout_by_id=None, last_checkedout_date=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Device)
        .where(Device.user_id == user.id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %d", user_id)
    return MessageResponse(message="User successfully removed")
