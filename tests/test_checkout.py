"""Tests for the checkout / checkin rules (no database)."""

from datetime import datetime, timezone

import pytest

from garage.core.checkout import (CheckoutState, can_modify, plan_checkout,
                                  plan_edit)
from garage.core.exceptions import BadRequest, Conflict, Unauthorized
from garage.models.device import Device
from garage.models.user import User

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

OWNER = User(id=1, user_name="owner", email="owner@example.com")
BORROWER = User(id=2, user_name="borrower", email="borrower@example.com")
OTHER = User(id=3, user_name="other", email="other@example.com")


def _device(checked_out_by: User | None = None) -> Device:
    return Device(
        id=10,
        user_id=OWNER.id,
        device="Pixel 8",
        os="android",
        manufacturer="Google",
        is_checkedout=checked_out_by is not None,
        last_checkedout_by_id=checked_out_by.id if checked_out_by else None,
        last_checkedout_date=NOW if checked_out_by else None,
    )


def test_checkout_available_device():
    plan = plan_checkout(_device(), BORROWER, True, now=NOW)
    assert plan.is_transition
    assert plan.expected_state is CheckoutState.CHECKED_IN
    assert plan.target_state is CheckoutState.CHECKED_OUT
    assert plan.values == {
        "is_checkedout": True,
        "last_checkedout_by_id": BORROWER.id,
        "last_checkedout_date": NOW,
    }


def test_owner_may_check_out_own_device():
    plan = plan_checkout(_device(), OWNER, True, now=NOW)
    assert plan.values["last_checkedout_by_id"] == OWNER.id


def test_checkout_defaults_to_current_time():
    plan = plan_checkout(_device(), BORROWER, True)
    assert plan.values["last_checkedout_date"].tzinfo is not None


def test_double_checkout_conflicts():
    device = _device(checked_out_by=BORROWER)
    for caller in (BORROWER, OTHER):
        with pytest.raises(Conflict) as exc:
            plan_checkout(device, caller, True)
        assert exc.value.status_code == 409
        assert exc.value.message == "Already checked out by someone"
    assert device.last_checkedout_by_id == BORROWER.id


def test_checkin_when_already_in_conflicts():
    with pytest.raises(Conflict) as exc:
        plan_checkout(_device(), BORROWER, False)
    assert exc.value.message == "Already checked in by someone"


def test_checkin_by_someone_else_rejected():
    with pytest.raises(Unauthorized) as exc:
        plan_checkout(_device(checked_out_by=BORROWER), OWNER, False)
    assert exc.value.status_code == 401


def test_checkin_by_borrower_clears_checkout_details():
    plan = plan_checkout(_device(checked_out_by=BORROWER), BORROWER, False)
    assert plan.expected_state is CheckoutState.CHECKED_OUT
    assert plan.target_state is CheckoutState.CHECKED_IN
    assert plan.values == {
        "is_checkedout": False,
        "last_checkedout_by_id": None,
        "last_checkedout_date": None,
    }


def test_checkout_route_needs_flag():
    with pytest.raises(BadRequest) as exc:
        plan_checkout(_device(), BORROWER, None)
    assert exc.value.message == "provide check in / out details"


# ── General edits ───────────────────────────────────────────────────
def test_owner_edit():
    plan = plan_edit(_device(), OWNER, {"os": "ios"}, carries_checkout_flag=False)
    assert not plan.is_transition
    assert plan.values == {"os": "ios"}


def test_edit_by_non_owner_rejected():
    with pytest.raises(Unauthorized):
        plan_edit(_device(), BORROWER, {"os": "ios"}, carries_checkout_flag=False)


def test_edit_with_checkout_flag_rejected_even_for_owner():
    with pytest.raises(BadRequest) as exc:
        plan_edit(_device(), OWNER, {}, carries_checkout_flag=True)
    assert exc.value.message == "Cannot check in / out for this route"


def test_can_modify():
    device = _device()
    assert can_modify(OWNER, device)
    assert not can_modify(BORROWER, device)
    assert can_modify(OWNER, OWNER)
    assert not can_modify(OWNER, BORROWER)
