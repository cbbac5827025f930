"""
Redistribution workflow: surplus batches listed on the market and handed over
to another user after the owner approves.

Medicine.redistribution_status:  none -> available -> requested -> none | available
TransferRequest.status:          pending -> accepted | rejected

Request and respond claim their rows with a conditional UPDATE guarded by the
expected current status; a zero row count means another caller got there
first. The request and the medicine are committed together and a failure
rolls both back.
"""
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from medicycle.core.audit import AuditLog
from medicycle.core.exceptions import (
    NotFoundError,
    InvalidStateError,
    PermissionDeniedError,
)
from medicycle.models.medicine import Medicine
from medicycle.models.transfer import TransferRequest
from medicycle.models.user import User
from medicycle.models.enums import MedicineStatus, RedistributionStatus, TransferStatus
from medicycle.services.inventory_service import get_owned, with_risk

logger = logging.getLogger(__name__)


class TransferAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


def _commit(db: Session):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _tradable(today: date):
    """Filter for batches that may change hands: active and not past expiry."""
    return (
        Medicine.status == MedicineStatus.ACTIVE.value,
        Medicine.expiry_date >= today,
    )


def list_for_redistribution(
    db: Session, owner: User, medicine_id: int, today: Optional[date] = None
) -> Medicine:
    """Put an owned, active, unexpired batch on the market."""
    today = today or date.today()
    medicine = get_owned(db, owner, medicine_id)
    if medicine.status != MedicineStatus.ACTIVE.value:
        raise InvalidStateError(f"Medicine is {medicine.status}")
    if medicine.expiry_date < today:
        raise InvalidStateError("Expired medicine cannot be redistributed")
    if medicine.redistribution_status != RedistributionStatus.NONE.value:
        raise InvalidStateError(f"Medicine is already {medicine.redistribution_status}")

    medicine.redistribution_status = RedistributionStatus.AVAILABLE.value
    _commit(db)
    db.refresh(medicine)
    AuditLog.log_action("list", "medicine", medicine.id, owner)
    return medicine


def withdraw_listing(db: Session, owner: User, medicine_id: int) -> Medicine:
    medicine = get_owned(db, owner, medicine_id)
    if medicine.redistribution_status != RedistributionStatus.AVAILABLE.value:
        raise InvalidStateError("Medicine is not listed on the market")

    medicine.redistribution_status = RedistributionStatus.NONE.value
    _commit(db)
    db.refresh(medicine)
    AuditLog.log_action("withdraw", "medicine", medicine.id, owner)
    return medicine


def market(db: Session, viewer: User, today: Optional[date] = None) -> List[dict]:
    """Batches other users have listed, soonest expiry first. Listings that expired are hidden."""
    today = today or date.today()
    listings = (
        db.query(Medicine)
        .options(joinedload(Medicine.owner))
        .filter(
            Medicine.owner_id != viewer.id,
            Medicine.redistribution_status == RedistributionStatus.AVAILABLE.value,
            *_tradable(today),
        )
        .order_by(Medicine.expiry_date.asc(), Medicine.id.asc())
        .all()
    )
    result = []
    for medicine in listings:
        item = with_risk(medicine, today)
        item["owner"] = {
            "id": medicine.owner.id,
            "username": medicine.owner.username,
            "location": medicine.owner.location,
        }
        result.append(item)
    return result


def request_transfer(
    db: Session, requester: User, medicine_id: int, today: Optional[date] = None
) -> TransferRequest:
    """Ask for a listed batch. Only allowed while the batch is available, active and unexpired."""
    today = today or date.today()
    medicine = db.query(Medicine).filter(Medicine.id == medicine_id).first()
    if not medicine:
        raise NotFoundError("Medicine not found")
    owner_id = medicine.owner_id
    if owner_id == requester.id:
        raise InvalidStateError("Cannot request your own medicine")
    if medicine.status != MedicineStatus.ACTIVE.value or medicine.expiry_date < today:
        raise InvalidStateError("Medicine is no longer available for redistribution")

    try:
        claimed = (
            db.query(Medicine)
            .filter(
                Medicine.id == medicine_id,
                Medicine.owner_id == owner_id,
                Medicine.redistribution_status == RedistributionStatus.AVAILABLE.value,
                *_tradable(today),
            )
            .update(
                {Medicine.redistribution_status: RedistributionStatus.REQUESTED.value},
                synchronize_session=False,
            )
        )
        if claimed != 1:
            db.rollback()
            raise InvalidStateError("Unavailable")

        request = TransferRequest(
            medicine_id=medicine_id,
            from_user_id=owner_id,
            to_user_id=requester.id,
            status=TransferStatus.PENDING.value,
        )
        db.add(request)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(request)

    logger.info(f"Transfer {request.id} requested: medicine {medicine_id} from {owner_id} to {requester.id}")
    AuditLog.log_action("request", "transfer", request.id, requester, changes={"medicine_id": medicine_id})
    return request


def _party(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "location": user.location}


def transfer_as_dict(request: TransferRequest) -> dict:
    medicine = request.medicine
    return {
        "id": request.id,
        "medicine_id": request.medicine_id,
        "from_user_id": request.from_user_id,
        "to_user_id": request.to_user_id,
        "status": request.status,
        "request_date": request.request_date,
        "responded_at": request.responded_at,
        "medicine": {
            "id": medicine.id,
            "name": medicine.name,
            "batch_number": medicine.batch_number,
            "expiry_date": medicine.expiry_date,
            "quantity": medicine.quantity,
        } if medicine is not None else None,
        "owner": _party(request.from_user),
        "requester": _party(request.to_user),
    }


def _with_details(query):
    return query.options(
        joinedload(TransferRequest.medicine),
        joinedload(TransferRequest.from_user),
        joinedload(TransferRequest.to_user),
    )


def pending_for_owner(db: Session, owner: User) -> List[TransferRequest]:
    """Incoming requests waiting for the caller's decision."""
    return (
        _with_details(db.query(TransferRequest))
        .filter(
            TransferRequest.from_user_id == owner.id,
            TransferRequest.status == TransferStatus.PENDING.value,
        )
        .order_by(TransferRequest.request_date.desc(), TransferRequest.id.desc())
        .all()
    )


def outgoing_for_requester(db: Session, requester: User) -> List[TransferRequest]:
    return (
        _with_details(db.query(TransferRequest))
        .filter(TransferRequest.to_user_id == requester.id)
        .order_by(TransferRequest.request_date.desc(), TransferRequest.id.desc())
        .all()
    )


def all_transfers(db: Session, status: Optional[TransferStatus] = None, limit: int = 100) -> List[TransferRequest]:
    query = _with_details(db.query(TransferRequest))
    if status is not None:
        query = query.filter(TransferRequest.status == TransferStatus(status).value)
    return query.order_by(TransferRequest.request_date.desc(), TransferRequest.id.desc()).limit(limit).all()


def respond(db: Session, responder: User, request_id: int, action: TransferAction) -> TransferRequest:
    """
    Source owner accepts or rejects a pending request.

    accept: request -> accepted, medicine owner -> requester, redistribution -> none
    reject: request -> rejected, redistribution -> available (back on the market)
    """
    action = TransferAction(action)
    request = db.query(TransferRequest).filter(TransferRequest.id == request_id).first()
    if not request:
        raise NotFoundError("Request not found")
    if request.from_user_id != responder.id:
        AuditLog.log_access_denied("respond", "transfer", request.id, responder.id, "Not the source owner")
        raise PermissionDeniedError(f"User {responder.id} does not own transfer {request.id}")
    if request.status != TransferStatus.PENDING.value:
        raise InvalidStateError(f"Request already {request.status}")

    medicine_id = request.medicine_id
    from_user_id = request.from_user_id
    to_user_id = request.to_user_id
    if action is TransferAction.ACCEPT:
        new_status = TransferStatus.ACCEPTED.value
        medicine_changes = {
            Medicine.owner_id: to_user_id,
            Medicine.redistribution_status: RedistributionStatus.NONE.value,
        }
    else:
        new_status = TransferStatus.REJECTED.value
        medicine_changes = {Medicine.redistribution_status: RedistributionStatus.AVAILABLE.value}

    try:
        answered = (
            db.query(TransferRequest)
            .filter(
                TransferRequest.id == request_id,
                TransferRequest.status == TransferStatus.PENDING.value,
            )
            .update(
                {
                    TransferRequest.status: new_status,
                    TransferRequest.responded_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if answered != 1:
            db.rollback()
            db.refresh(request)
            raise InvalidStateError(f"Request already {request.status}")

        moved = (
            db.query(Medicine)
            .filter(
                Medicine.id == medicine_id,
                Medicine.owner_id == from_user_id,
                Medicine.redistribution_status == RedistributionStatus.REQUESTED.value,
            )
            .update(medicine_changes, synchronize_session=False)
        )
        if moved != 1:
            db.rollback()
            raise InvalidStateError("Medicine changed since the request was made")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Transfer {request_id} {action.value} failed, rolled back")
        raise

    db.refresh(request)
    logger.info(f"Transfer {request.id} {request.status} by user {responder.id}")
    AuditLog.log_action(
        action.value,
        "transfer",
        request.id,
        responder,
        changes={"medicine_id": medicine_id, "status": request.status},
    )
    return request
