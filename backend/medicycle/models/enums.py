"""Status vocabularies shared by models, schemas and services."""
from enum import Enum


class UserRole(str, Enum):
    INDIVIDUAL = "individual"
    PHARMACY = "pharmacy"
    ADMIN = "admin"


class MedicineStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"


class RedistributionStatus(str, Enum):
    """Marketplace lifecycle, independent of MedicineStatus."""
    NONE = "none"
    AVAILABLE = "available"
    REQUESTED = "requested"
    TRANSFERRED = "transferred"


class TransferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RiskLevel(str, Enum):
    EXPIRED = "EXPIRED"
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    SAFE = "SAFE"
