"""Admin overview of users and transfers. Read-only."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from medicycle.api.deps import get_db, require_role
from medicycle.models.user import User
from medicycle.models.enums import TransferStatus, UserRole
from medicycle.schemas.transfer import TransferResponse
from medicycle.schemas.user import UserResponse
from medicycle.services import transfer_service

router = APIRouter()

admin_only = require_role(UserRole.ADMIN)


@router.get("/users", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db), _admin: User = Depends(admin_only)):
    return db.query(User).order_by(User.id.asc()).all()


@router.get("/transfers", response_model=List[TransferResponse])
def list_transfers(
    status: Optional[TransferStatus] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    return [transfer_service.transfer_as_dict(r) for r in transfer_service.all_transfers(db, status, limit)]
