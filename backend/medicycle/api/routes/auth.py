"""Auth: register, login and current user.

- Passwords hashed with bcrypt
- Same error for unknown email and wrong password
- Admin accounts cannot be self-registered
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medicycle.api.deps import get_db, get_current_user
from medicycle.core.audit import AuditLog
from medicycle.core.config import settings
from medicycle.core.exceptions import BusinessError
from medicycle.core.security import verify_password, get_password_hash, create_access_token
from medicycle.models.user import User
from medicycle.models.enums import UserRole
from medicycle.schemas.user import UserCreate, UserLogin, UserResponse, Token, Message

logger = logging.getLogger(__name__)
router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=Message, status_code=status.HTTP_201_CREATED)
def register(data: UserCreate, request: Request, db: Session = Depends(get_db)):
    """Register a pharmacy or individual account."""
    if data.role == UserRole.ADMIN:
        raise BusinessError.bad_request("Admin accounts cannot be self-registered")
    if len(data.password) < settings.MIN_PASSWORD_LENGTH:
        raise BusinessError.bad_request(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )

    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        AuditLog.log_authentication("register", email, _client_ip(request), False, reason="duplicate email")
        raise BusinessError.bad_request("User already exists")

    user = User(
        username=data.username,
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role.value,
    )
    if data.location:
        user.location = data.location
    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise BusinessError.server_error(e)

    AuditLog.log_authentication("register", email, _client_ip(request), True)
    return Message(msg="User registered successfully")


@router.post("/login", response_model=Token)
def login(data: UserLogin, request: Request, db: Session = Depends(get_db)):
    email = data.email.lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        AuditLog.log_authentication("failed_login", email, _client_ip(request), False, reason="bad credentials")
        raise BusinessError.bad_request("Invalid Credentials")

    token = create_access_token(subject=str(user.id), role=user.role)
    AuditLog.log_authentication("login", email, _client_ip(request), True)
    return Token(token=token, user={"id": user.id, "username": user.username, "role": user.role})


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user
