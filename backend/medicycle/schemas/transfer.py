from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from medicycle.services.transfer_service import TransferAction


class TransferCreate(BaseModel):
    medicine_id: int = Field(alias="medicineId")

    class Config:
        populate_by_name = True


class TransferRespond(BaseModel):
    request_id: int = Field(alias="requestId")
    action: TransferAction

    class Config:
        populate_by_name = True


class TransactionDecision(str, Enum):
    """Status vocabulary of the /api/transactions variant."""
    APPROVED = "approved"
    REJECTED = "rejected"

    def as_action(self) -> TransferAction:
        return TransferAction.ACCEPT if self is TransactionDecision.APPROVED else TransferAction.REJECT


class TransactionUpdate(BaseModel):
    status: TransactionDecision


class PartyInfo(BaseModel):
    id: int
    username: str
    location: Optional[str] = None


class MedicineBrief(BaseModel):
    id: int
    name: str
    batch_number: Optional[str] = Field(default=None, alias="batchNumber")
    expiry_date: date = Field(alias="expiryDate")
    quantity: int

    class Config:
        populate_by_name = True


class TransferResponse(BaseModel):
    id: int
    medicine_id: int = Field(alias="medicineId")
    from_user_id: int = Field(alias="fromUser")
    to_user_id: int = Field(alias="toUser")
    status: str
    request_date: Optional[datetime] = Field(default=None, alias="requestDate")
    responded_at: Optional[datetime] = Field(default=None, alias="respondedAt")
    medicine: Optional[MedicineBrief] = None
    owner: Optional[PartyInfo] = None
    requester: Optional[PartyInfo] = None

    class Config:
        populate_by_name = True


class TransferResult(BaseModel):
    msg: str
    request: TransferResponse
