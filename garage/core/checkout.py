"""
Device checkout / checkin rules and ownership checks.

``plan_checkout`` and ``plan_edit`` decide, without touching the database,
which column values a ``PUT /devices/{id}`` request may write. The caller persists them
with a conditional UPDATE on the device's current checkout state, so two
concurrent checkouts cannot both win.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from garage.core.exceptions import BadRequest, Conflict, Unauthorized


class Owned(Protocol):
    owner_id: int


class Caller(Protocol):
    id: int


class CheckoutState(str, enum.Enum):
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"

    @classmethod
    def of(cls, is_checkedout: bool) -> "CheckoutState":
        return cls.CHECKED_OUT if is_checkedout else cls.CHECKED_IN


@dataclass(frozen=True)
class DeviceUpdatePlan:
    values: dict[str, Any]
    # Set for checkout / checkin: the state the device must still be in
    expected_state: CheckoutState | None = None
    target_state: CheckoutState | None = None

    @property
    def is_transition(self) -> bool:
        return self.target_state is not None


def can_modify(caller: Caller, entity: Owned) -> bool:
    return caller.id == entity.owner_id


def conflict_for(target: CheckoutState) -> Conflict:
    if target is CheckoutState.CHECKED_OUT:
        return Conflict("Already checked out by someone")
    return Conflict("Already checked in by someone")


def plan_checkout(device: Any, caller: Caller, target: bool | None,
                  now: datetime | None = None) -> DeviceUpdatePlan:
    """Checkout route (``?check``): validate the transition to *target*."""
    if target is None:
        raise BadRequest("provide check in / out details")

    current = CheckoutState.of(device.is_checkedout)
    wanted = CheckoutState.of(target)
    if wanted is current:
        raise conflict_for(wanted)

    if wanted is CheckoutState.CHECKED_IN:
        if device.last_checkedout_by_id != caller.id:
            raise Unauthorized("Cannot check in as someone else has checked out this device")
        values = {
            "is_checkedout": False,
            "last_checkedout_by_id": None,
            "last_checkedout_date": None,
        }
    else:
        # Any authenticated user may check out an available device
        values = {
            "is_checkedout": True,
            "last_checkedout_by_id": caller.id,
            "last_checkedout_date": now or datetime.now(timezone.utc),
        }
    return DeviceUpdatePlan(
        values=values,
        expected_state=current,
        target_state=wanted,
    )


def plan_edit(device: Owned, caller: Caller, edits: dict[str, Any],
              carries_checkout_flag: bool) -> DeviceUpdatePlan:
    """General edit route: owner only, checkout flag not allowed."""
    if carries_checkout_flag:
        raise BadRequest("Cannot check in / out for this route")
    if not can_modify(caller, device):
        raise Unauthorized("Current user is not authorized to update this Device")
    return DeviceUpdatePlan(values=dict(edits))
