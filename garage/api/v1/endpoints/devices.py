"""
Device CRUD, checkout / checkin and image endpoints.

- Every route requires an authenticated user.
- General edits, deletes and image uploads are limited to the owner.
- ``PUT /devices/{id}?check`` is the checkout route: any user may check out
  an available device, only the borrower may check it back in.
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from garage.api.v1.advanced_results import AdvancedResults
from garage.api.v1.deps import get_current_user, get_db
from garage.core.checkout import (CheckoutState, DeviceUpdatePlan, can_modify,
                                  conflict_for, plan_checkout, plan_edit)
from garage.core.config import Settings, get_settings
from garage.core.exceptions import BadRequest, NotFound, Unauthorized
from garage.models.device import Device
from garage.models.user import User
from garage.schemas.common import DataEnvelope, ListEnvelope, MessageResponse
from garage.schemas.device import DeviceCreate, DeviceRead, DeviceUpdate
from garage.schemas.user import UserRead

router = APIRouter(prefix="/devices", tags=["devices"])
logger = logging.getLogger(__name__)

_IMAGE_TYPE_RE = re.compile(r"(jpg|jpeg|png)", re.IGNORECASE)

DEVICE_QUERY_FIELDS = {
    "id": Device.id,
    "device": Device.device,
    "os": Device.os,
    "manufacturer": Device.manufacturer,
    "is_checkedout": Device.is_checkedout,
    "last_checkedout_date": Device.last_checkedout_date,
    "last_checkedout_by": Device.last_checkedout_by_id,
    "user": Device.user_id,
    "created_at": Device.created_at,
}

device_results = AdvancedResults(
    Device,
    "devices",
    DeviceRead,
    fields=DEVICE_QUERY_FIELDS,
    populate={"user": UserRead, "last_checkedout_by": UserRead},
)


async def _get_device_or_404(db: AsyncSession, device_id: int) -> Device:
    device = await db.get(Device, device_id)
    if device is None:
        raise NotFound("Device does not exist")
    return device


def _envelope(device: Device) -> DataEnvelope[DeviceRead]:
    return DataEnvelope[DeviceRead](data=DeviceRead.model_validate(device))


async def _apply_transition(
    db: AsyncSession, device: Device, plan: DeviceUpdatePlan, caller: User
) -> None:
    """Write a checkout / checkin only if the device is still in the expected state."""
    device_id = device.id
    stmt = update(Device).where(
        Device.id == device_id,
        Device.is_checkedout == (plan.expected_state is CheckoutState.CHECKED_OUT),
    )
    if plan.target_state is CheckoutState.CHECKED_IN:
        stmt = stmt.where(Device.last_checkedout_by_id == caller.id)
    result = await db.execute(
        stmt.values(**plan.values).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.info("Lost checkout race on device %d", device_id)
        raise conflict_for(plan.target_state)

    if plan.target_state is CheckoutState.CHECKED_OUT:
        caller.checked_out_id = device_id
    elif caller.checked_out_id == device_id:
        caller.checked_out_id = None
    await db.commit()
    logger.info(
        "Device %d %s by user %d", device_id, plan.target_state.value, caller.id
    )


# ── Listing ─────────────────────────────────────────────────────────
@router.get("", response_model=ListEnvelope, response_model_exclude_unset=True)
async def list_devices(results: ListEnvelope = Depends(device_results)) -> ListEnvelope:
    return results


# ── CRUD ────────────────────────────────────────────────────────────
@router.post("", response_model=DataEnvelope[DeviceRead], status_code=201)
async def create_device(
    body: DeviceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DataEnvelope[DeviceRead]:
    device = Device(**body.model_dump(), user_id=current_user.id)
    db.add(device)
    await db.commit()
    await db.refresh(device)
    logger.info("Created device %d (%s) for user %d", device.id, device.device, current_user.id)
    return _envelope(device)


@router.get("/{device_id}", response_model=DataEnvelope[DeviceRead])
async def get_device(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> DataEnvelope[DeviceRead]:
    return _envelope(await _get_device_or_404(db, device_id))


@router.put("/{device_id}", response_model=DataEnvelope[DeviceRead])
async def update_device(
    device_id: int,
    body: DeviceUpdate,
    check: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DataEnvelope[DeviceRead]:
    """General edit, or checkout / checkin when ``check`` is present (any value)."""
    device = await _get_device_or_404(db, device_id)

    if check is not None:
        plan = plan_checkout(device, current_user, body.is_checkedout)
    else:
        plan = plan_edit(device, current_user, body.edits(), body.carries_checkout_flag)

    if plan.is_transition:
        await _apply_transition(db, device, plan, current_user)
    elif plan.values:
        for field, value in plan.values.items():
            setattr(device, field, value)
        await db.commit()
        logger.info("Updated device %d", device_id)

    await db.refresh(device)
    return _envelope(device)


@router.delete("/{device_id}", response_model=MessageResponse)
async def delete_device(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    device = await _get_device_or_404(db, device_id)
    if not can_modify(current_user, device):
        raise Unauthorized("You cannot remove device added by another person")

    # The borrower no longer holds anything
    await db.execute(
        update(User)
        .where(User.checked_out_id == device_id)
        .values(checked_out_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(device)
    await db.commit()
    logger.info("Deleted device %d", device_id)
    return MessageResponse(message="device successfully removed")


# ── Image ───────────────────────────────────────────────────────────
@router.put("/{device_id}/image", response_model=DataEnvelope[DeviceRead])
async def upload_device_image(
    device_id: int,
    file: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> DataEnvelope[DeviceRead]:
    """Attach a jpg / jpeg / png image (stored in the device row)."""
    device = await _get_device_or_404(db, device_id)
    if not can_modify(current_user, device):
        raise Unauthorized("You cannot modify device added by another person")

    if file is None:
        raise BadRequest("please upload a file")
    if not _IMAGE_TYPE_RE.search(file.content_type or ""):
        raise BadRequest("please upload an image file")

    too_large = BadRequest(f"please upload an image less than {settings.IMAGE_SIZE_MB:g} MB")
    # Reject on the declared size before buffering the upload
    if file.size is not None and file.size > settings.image_size_limit_bytes:
        raise too_large
    data = await file.read()
    if len(data) > settings.image_size_limit_bytes:
        raise too_large

    device.image_data = data
    device.image_content_type = file.content_type
    await db.commit()
    await db.refresh(device)
    logger.info("Stored %d byte image for device %d", len(data), device_id)
    return _envelope(device)


@router.get("/{device_id}/image")
async def get_device_image(
    device_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Response:
    device = await _get_device_or_404(db, device_id)
    if device.image_data is None:
        raise NotFound("Device has no image")
    return Response(
        content=device.image_data,
        media_type=device.image_content_type or "application/octet-stream",
    )
