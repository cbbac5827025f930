from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from medicycle.db.base import Base
from medicycle.models.enums import UserRole


class User(Base):
    """Pharmacy, individual or admin account. Role only partitions access."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=UserRole.INDIVIDUAL.value)
    location = Column(String(255), default="Local Area")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
