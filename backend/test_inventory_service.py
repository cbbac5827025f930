"""Inventory service: adding batches, dashboard, status changes and the expiry sweep."""
from datetime import date, timedelta

import pytest

from medicycle.core.exceptions import InvalidStateError, NotFoundError, ValidationFailedError
from medicycle.models.enums import MedicineStatus
from medicycle.services import inventory_service, transfer_service


def test_add_medicine_defaults(db, make_user):
    owner = make_user()
    med = inventory_service.add_medicine(
        db, owner, name="  Paracetamol ", quantity=20, expiry_date=date.today() + timedelta(days=100)
    )
    assert med.name == "Paracetamol"
    assert med.status == "active"
    assert med.redistribution_status == "none"
    assert med.owner_id == owner.id


@pytest.mark.parametrize("name, quantity", [("", 5), ("Insulin", 0), ("Insulin", -3)])
def test_add_medicine_validation(db, make_user, name, quantity):
    owner = make_user()
    with pytest.raises(ValidationFailedError):
        inventory_service.add_medicine(db, owner, name=name, quantity=quantity, expiry_date=date.today())


def test_list_inventory_is_per_owner(db, make_user, make_medicine):
    a, b = make_user(), make_user()
    first = make_medicine(a, name="First")
    second = make_medicine(a, name="Second")
    make_medicine(b, name="Other")

    names = [m.name for m in inventory_service.list_inventory(db, a)]
    assert names == ["Second", "First"]
    assert [m.id for m in inventory_service.list_inventory(db, a)] == [second.id, first.id]


def test_get_owned_hides_other_owners(db, make_user, make_medicine):
    a, b = make_user(), make_user()
    med = make_medicine(a)
    with pytest.raises(NotFoundError):
        inventory_service.get_owned(db, b, med.id)


def test_dashboard_sorted_by_expiry_with_stats(db, make_user, make_medicine):
    today = date(2026, 3, 1)
    owner = make_user()
    make_medicine(owner, days=90, quantity=10, name="Safe", today=today)
    make_medicine(owner, days=15, quantity=4, name="Critical", today=today)
    make_medicine(owner, days=45, quantity=6, name="Warning", today=today)
    sold = make_medicine(owner, days=5, name="Sold", today=today)
    sold.status = MedicineStatus.SOLD.value
    db.commit()

    result = inventory_service.dashboard(db, owner, today=today)

    assert [m["name"] for m in result["inventory"]] == ["Critical", "Warning", "Safe"]
    assert [m["risk"]["level"] for m in result["inventory"]] == ["CRITICAL", "WARNING", "SAFE"]
    assert result["stats"]["critical"] == 1
    assert result["stats"]["warning"] == 1
    assert result["stats"]["safe"] == 1
    assert result["stats"]["units_at_risk"] == 4


def test_set_status_removes_from_market(db, make_user, make_medicine):
    owner = make_user()
    med = make_medicine(owner, redistribution_status="available")
    updated = inventory_service.set_status(db, owner, med.id, MedicineStatus.SOLD)
    assert updated.status == "sold"
    assert updated.redistribution_status == "none"


def test_set_status_blocked_while_requested(db, make_user, make_medicine):
    owner, requester = make_user(), make_user()
    med = make_medicine(owner, redistribution_status="available")
    transfer_service.request_transfer(db, requester, med.id)
    with pytest.raises(InvalidStateError):
        inventory_service.set_status(db, owner, med.id, MedicineStatus.SOLD)


def test_expire_stale_marks_past_batches(db, make_user, make_medicine):
    today = date(2026, 3, 1)
    owner, requester = make_user(), make_user()
    past = make_medicine(owner, days=-2, redistribution_status="available", today=today)
    fresh = make_medicine(owner, days=10, today=today)
    pending = make_medicine(owner, days=-1, redistribution_status="requested", today=today)

    expired = inventory_service.expire_stale(db, owner, today=today)

    assert [m.id for m in expired] == [past.id]
    db.refresh(past)
    db.refresh(fresh)
    db.refresh(pending)
    assert past.status == "expired"
    assert past.redistribution_status == "none"
    assert fresh.status == "active"
    assert pending.status == "active"
