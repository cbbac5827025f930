from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field

from medicycle.models.enums import MedicineStatus


class MedicineCreate(BaseModel):
    """Request body of POST /api/inventory. Accepts the client's camelCase keys."""
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(gt=0)
    expiry_date: date = Field(alias="expiryDate")
    batch_number: Optional[str] = Field(default=None, alias="batchNumber", max_length=128)
    condition: Optional[str] = Field(default=None, max_length=255)

    class Config:
        populate_by_name = True


class MedicineStatusUpdate(BaseModel):
    status: MedicineStatus


class RiskInfo(BaseModel):
    level: str
    color: str
    days_remaining: int = Field(alias="daysRemaining")

    class Config:
        populate_by_name = True


class OwnerInfo(BaseModel):
    id: int
    username: str
    location: Optional[str] = None


class MedicineResponse(BaseModel):
    id: int
    owner_id: int = Field(alias="ownerId")
    name: str
    batch_number: Optional[str] = Field(default=None, alias="batchNumber")
    expiry_date: date = Field(alias="expiryDate")
    quantity: int
    condition: Optional[str] = None
    status: str
    redistribution_status: str = Field(alias="redistributionStatus")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    risk: Optional[RiskInfo] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class MarketListing(MedicineResponse):
    owner: OwnerInfo


class DashboardStats(BaseModel):
    expired: int = 0
    critical: int = 0
    warning: int = 0
    safe: int = 0
    units_at_risk: int = Field(default=0, alias="unitsAtRisk")

    class Config:
        populate_by_name = True


class DashboardResponse(BaseModel):
    inventory: List[MedicineResponse]
    stats: DashboardStats


class ExpireResult(BaseModel):
    expired: int
    ids: List[int]
