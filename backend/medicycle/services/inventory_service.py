"""Inventory read/update for a single owner's medicine batches."""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from medicycle.core.exceptions import NotFoundError, InvalidStateError, ValidationFailedError
from medicycle.models.medicine import Medicine
from medicycle.models.user import User
from medicycle.models.enums import MedicineStatus, RedistributionStatus
from medicycle.services.risk_classifier import classify_expiry, summarize

logger = logging.getLogger(__name__)


def add_medicine(
    db: Session,
    owner: User,
    name: str,
    quantity: int,
    expiry_date: date,
    batch_number: Optional[str] = None,
    condition: Optional[str] = None,
) -> Medicine:
    if not name or not name.strip():
        raise ValidationFailedError("Required fields missing")
    if quantity is None or quantity <= 0:
        raise ValidationFailedError("Quantity must be positive")
    if expiry_date is None:
        raise ValidationFailedError("Required fields missing")

    medicine = Medicine(
        owner_id=owner.id,
        name=name.strip(),
        quantity=quantity,
        expiry_date=expiry_date,
        batch_number=batch_number,
        condition=condition,
        status=MedicineStatus.ACTIVE.value,
        redistribution_status=RedistributionStatus.NONE.value,
    )
    db.add(medicine)
    db.commit()
    db.refresh(medicine)
    logger.info(f"Medicine {medicine.id} ({medicine.name}) added by user {owner.id}")
    return medicine


def get_owned(db: Session, owner: User, medicine_id: int) -> Medicine:
    """Load a medicine owned by the caller. Someone else's batch reads as not found."""
    medicine = (
        db.query(Medicine)
        .filter(Medicine.id == medicine_id, Medicine.owner_id == owner.id)
        .first()
    )
    if not medicine:
        raise NotFoundError("Medicine not found")
    return medicine


def list_inventory(db: Session, owner: User) -> List[Medicine]:
    return (
        db.query(Medicine)
        .filter(Medicine.owner_id == owner.id)
        .order_by(Medicine.created_at.desc(), Medicine.id.desc())
        .all()
    )


def with_risk(medicine: Medicine, today: Optional[date] = None) -> dict:
    """Serialize a medicine together with its risk tier."""
    return {
        "id": medicine.id,
        "owner_id": medicine.owner_id,
        "name": medicine.name,
        "batch_number": medicine.batch_number,
        "expiry_date": medicine.expiry_date,
        "quantity": medicine.quantity,
        "condition": medicine.condition,
        "status": medicine.status,
        "redistribution_status": medicine.redistribution_status,
        "created_at": medicine.created_at,
        "risk": classify_expiry(medicine.expiry_date, today).as_dict(),
    }


def dashboard(db: Session, owner: User, today: Optional[date] = None) -> dict:
    """Active batches with risk, most urgent first, plus tier counters."""
    today = today or date.today()
    active = (
        db.query(Medicine)
        .filter(Medicine.owner_id == owner.id, Medicine.status == MedicineStatus.ACTIVE.value)
        .order_by(Medicine.expiry_date.asc(), Medicine.id.asc())
        .all()
    )
    return {
        "inventory": [with_risk(m, today) for m in active],
        "stats": summarize(active, today),
    }


def set_status(db: Session, owner: User, medicine_id: int, status: MedicineStatus) -> Medicine:
    medicine = get_owned(db, owner, medicine_id)
    if medicine.redistribution_status == RedistributionStatus.REQUESTED.value:
        raise InvalidStateError("Medicine has an outstanding transfer request")

    medicine.status = MedicineStatus(status).value
    if medicine.status != MedicineStatus.ACTIVE.value:
        # Sold or expired stock can't stay on the market
        medicine.redistribution_status = RedistributionStatus.NONE.value
    db.commit()
    db.refresh(medicine)
    logger.info(f"Medicine {medicine.id} status set to {medicine.status} by user {owner.id}")
    return medicine


def expire_stale(db: Session, owner: User, today: Optional[date] = None) -> List[Medicine]:
    """Mark the owner's active batches past their expiry date as expired.

    Batches with a pending transfer request are left alone; the request has to be
    answered first.
    """
    today = today or date.today()
    stale = (
        db.query(Medicine)
        .filter(
            Medicine.owner_id == owner.id,
            Medicine.status == MedicineStatus.ACTIVE.value,
            Medicine.expiry_date < today,
            Medicine.redistribution_status != RedistributionStatus.REQUESTED.value,
        )
        .all()
    )
    for medicine in stale:
        medicine.status = MedicineStatus.EXPIRED.value
        medicine.redistribution_status = RedistributionStatus.NONE.value
    db.commit()
    if stale:
        logger.info(f"Expired {len(stale)} batches for user {owner.id}")
    return stale
