"""Inventory: the caller's own medicine batches, each annotated with its expiry risk."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medicycle.api.deps import get_db, get_current_user
from medicycle.core.audit import AuditLog
from medicycle.core.exceptions import BusinessError, WorkflowError
from medicycle.models.user import User
from medicycle.schemas.medicine import (
    MedicineCreate,
    MedicineResponse,
    MedicineStatusUpdate,
    DashboardResponse,
    ExpireResult,
)
from medicycle.services import inventory_service

router = APIRouter()


@router.post("", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def add_medicine(data: MedicineCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        medicine = inventory_service.add_medicine(
            db,
            current_user,
            name=data.name,
            quantity=data.quantity,
            expiry_date=data.expiry_date,
            batch_number=data.batch_number,
            condition=data.condition,
        )
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise BusinessError.server_error(e)
    AuditLog.log_action("create", "medicine", medicine.id, current_user, changes={"name": medicine.name})
    return inventory_service.with_risk(medicine)


@router.get("", response_model=List[MedicineResponse])
def list_inventory(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """All of the caller's batches, newest first."""
    return [inventory_service.with_risk(m) for m in inventory_service.list_inventory(db, current_user)]


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Active batches sorted by expiry, with critical/warning/safe counters."""
    return inventory_service.dashboard(db, current_user)


@router.post("/expire", response_model=ExpireResult)
def expire_stale(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Mark active batches past their expiry date as expired."""
    try:
        expired = inventory_service.expire_stale(db, current_user)
    except SQLAlchemyError as e:
        db.rollback()
        raise BusinessError.server_error(e)
    return ExpireResult(expired=len(expired), ids=[m.id for m in expired])


@router.get("/{medicine_id}", response_model=MedicineResponse)
def get_medicine(medicine_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    try:
        medicine = inventory_service.get_owned(db, current_user, medicine_id)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    return inventory_service.with_risk(medicine)


@router.patch("/{medicine_id}/status", response_model=MedicineResponse)
def update_status(
    medicine_id: int,
    data: MedicineStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark a batch sold, expired or active again."""
    try:
        medicine = inventory_service.set_status(db, current_user, medicine_id, data.status)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise BusinessError.server_error(e)
    AuditLog.log_action("status", "medicine", medicine.id, current_user, changes={"status": medicine.status})
    return inventory_service.with_risk(medicine)
