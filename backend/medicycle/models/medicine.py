from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from medicycle.db.base import Base
from medicycle.models.enums import MedicineStatus, RedistributionStatus


class Medicine(Base):
    """
    A medicine batch held by one owner.

    Two independent lifecycles:
    - status: active | sold | expired
    - redistribution_status: none | available | requested | transferred
    A batch in "requested" has exactly one pending TransferRequest.
    """
    __tablename__ = "medicines"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_medicines_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    batch_number = Column(String(128), nullable=True)
    expiry_date = Column(Date, nullable=False)
    quantity = Column(Integer, nullable=False)
    condition = Column(String(255), nullable=True)  # e.g. "sealed", "opened box"
    status = Column(String(32), nullable=False, default=MedicineStatus.ACTIVE.value)
    redistribution_status = Column(
        String(32), nullable=False, default=RedistributionStatus.NONE.value, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", backref="medicines")
