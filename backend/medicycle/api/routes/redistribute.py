"""
Redistribution market: list surplus batches, request them, and let the
owner accept or reject. Ownership moves only after the owner accepts.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medicycle.api.deps import get_db, get_current_user
from medicycle.core.exceptions import BusinessError, WorkflowError
from medicycle.models.user import User
from medicycle.schemas.medicine import MedicineResponse, MarketListing
from medicycle.schemas.transfer import TransferCreate, TransferRespond, TransferResponse, TransferResult
from medicycle.services import inventory_service, transfer_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/market", response_model=List[MarketListing])
def market(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Batches listed by other users."""
    return transfer_service.market(db, current_user)


@router.post("/list/{medicine_id}", response_model=MedicineResponse)
def list_medicine(medicine_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Owner offers an active batch on the market."""
    try:
        medicine = transfer_service.list_for_redistribution(db, current_user, medicine_id)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        raise BusinessError.server_error(e)
    return inventory_service.with_risk(medicine)


@router.post("/withdraw/{medicine_id}", response_model=MedicineResponse)
def withdraw_medicine(medicine_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        medicine = transfer_service.withdraw_listing(db, current_user, medicine_id)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        raise BusinessError.server_error(e)
    return inventory_service.with_risk(medicine)


@router.post("/request", response_model=TransferResult, status_code=status.HTTP_201_CREATED)
def request_medicine(data: TransferCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        request = transfer_service.request_transfer(db, current_user, data.medicine_id)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        raise BusinessError.server_error(e)
    return {"msg": "Request Sent", "request": transfer_service.transfer_as_dict(request)}


@router.get("/pending", response_model=List[TransferResponse])
def pending(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Requests for the caller's batches awaiting a decision."""
    return [transfer_service.transfer_as_dict(r) for r in transfer_service.pending_for_owner(db, current_user)]


@router.get("/outgoing", response_model=List[TransferResponse])
def outgoing(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Requests the caller has made, any status."""
    return [transfer_service.transfer_as_dict(r) for r in transfer_service.outgoing_for_requester(db, current_user)]


@router.put("/respond", response_model=TransferResult)
def respond(data: TransferRespond, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Owner accepts (ownership moves to the requester) or rejects (batch returns to market)."""
    try:
        request = transfer_service.respond(db, current_user, data.request_id, data.action)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        raise BusinessError.server_error(e)
    return {"msg": "Processed", "request": transfer_service.transfer_as_dict(request)}
