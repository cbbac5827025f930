"""Transactions: the approve/reject flavour of the redistribution API used by the Requests page."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medicycle.api.deps import get_db, get_current_user
from medicycle.core.exceptions import BusinessError, WorkflowError
from medicycle.models.user import User
from medicycle.schemas.transfer import TransactionUpdate, TransferResponse, TransferResult
from medicycle.services import transfer_service

router = APIRouter()


@router.get("/pending", response_model=List[TransferResponse])
def pending(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [transfer_service.transfer_as_dict(r) for r in transfer_service.pending_for_owner(db, current_user)]


@router.put("/{transaction_id}", response_model=TransferResult)
def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """`approved` accepts the request, `rejected` releases the batch back to the market."""
    try:
        request = transfer_service.respond(db, current_user, transaction_id, data.status.as_action())
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        raise BusinessError.server_error(e)
    return {"msg": f"Request {data.status.value}", "request": transfer_service.transfer_as_dict(request)}
