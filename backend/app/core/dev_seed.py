import logging
import os

from sqlalchemy.orm import Session

from backend.app.core.security import get_password_hash
from backend.app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_DEV_PASSWORD = "Secret123!"
DEFAULT_DEV_ADMIN = ("admin@example.com", "admin")


def ensure_default_dev_admin(db: Session) -> None:
    """
    Create a default admin for local development if it does not exist.
    Skips execution when running under pytest to avoid altering test expectations.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return

    email, username = DEFAULT_DEV_ADMIN
    if db.query(User).filter(User.email == email).first():
        return

    db.add(
        User(
            email=email,
            username=username,
            hashed_password=get_password_hash(DEFAULT_DEV_PASSWORD),
            is_active=True,
            is_admin=True,
        )
    )
    db.commit()
    logger.info("Seeded development admin %s", email)
