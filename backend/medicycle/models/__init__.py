from medicycle.models.user import User
from medicycle.models.medicine import Medicine
from medicycle.models.transfer import TransferRequest

__all__ = ["User", "Medicine", "TransferRequest"]
