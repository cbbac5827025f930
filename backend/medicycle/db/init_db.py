"""Create all tables. Run on app startup.

A default admin account is created on first start with a random password,
logged once so the operator can sign in and review transfers.
"""
import logging
import secrets

from medicycle.db.base import Base
from medicycle.db.session import engine, SessionLocal
from medicycle.models import user, medicine, transfer  # noqa: F401 - register models
from medicycle.models.user import User
from medicycle.models.enums import UserRole
from medicycle.core.security import get_password_hash

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@medicycle.app"


def init_db(bind=None, session_factory=None):
    Base.metadata.create_all(bind=bind or engine)

    db = (session_factory or SessionLocal)()
    try:
        has_admin = db.query(User).filter(User.role == UserRole.ADMIN.value).first()
        if not has_admin:
            default_password = secrets.token_urlsafe(16)
            db.add(
                User(
                    username="Administrator",
                    email=DEFAULT_ADMIN_EMAIL,
                    hashed_password=get_password_hash(default_password),
                    role=UserRole.ADMIN.value,
                )
            )
            db.commit()
            logger.warning(
                f"Default admin user created: {DEFAULT_ADMIN_EMAIL} / {default_password} "
                "- change this password after first login"
            )
    finally:
        db.close()
