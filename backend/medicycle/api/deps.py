"""FastAPI dependencies: DB session and current user from JWT.

The token is accepted from:
1. Authorization: Bearer <token> (API clients)
2. x-auth-token header (web client)
There is no anonymous fallback identity.
"""
from typing import Generator, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from medicycle.db.session import SessionLocal
from medicycle.core.exceptions import BusinessError
from medicycle.core.security import decode_access_token
from medicycle.models.user import User
from medicycle.models.enums import UserRole

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_auth_token: Optional[str] = Header(default=None),
) -> int:
    """Extract the user id from the token. Authorization header takes precedence."""
    token = credentials.credentials if credentials else x_auth_token
    if not token:
        raise BusinessError.unauthorized("No token")

    payload = decode_access_token(token)
    if not payload:
        raise BusinessError.unauthorized("Invalid or expired token", reason="bad token")

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise BusinessError.unauthorized("Invalid token", reason="non-numeric subject")


def get_current_user(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> User:
    """Load current user from DB."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise BusinessError.unauthorized("User not found", reason=f"token for missing user {user_id}")
    return user


def require_role(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""
    allowed = {UserRole(r).value for r in roles}

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise BusinessError.forbidden(f"user {current_user.id} with role {current_user.role} not in {sorted(allowed)}")
        return current_user

    return checker
