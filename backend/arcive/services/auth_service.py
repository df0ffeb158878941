"""Authentication service — registration, credential checks, session tokens.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. Endpoints are thin wrappers around these functions.
"""

import logging
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from . import permission_service
from ..core.config import settings
from ..core.token_factory import create_session_token
from ..exceptions import ValidationError, AuthenticationError
from ..models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def register_user(
    db: Session,
    email: str,
    password: str,
    name: str = "",
    image: Optional[str] = None,
) -> User:
    """Create a new user account.

    The first user registered becomes the application admin with uploads
    enabled. Everyone after starts as a regular user without upload access
    until an admin turns it on.

    Raises ValidationError if email is already taken or inputs are invalid.
    """
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )

    if db.query(User).filter(User.email == email).first() is not None:
        raise ValidationError("Email already registered", field="email")

    is_first_user = db.query(User).with_for_update().count() == 0

    user = User(
        name=(name or "").strip() or email.split("@")[0],
        email=email,
        image=image,
        password_hash=bcrypt.hash(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    permission = permission_service.get_or_create_permission(db, user.id)
    if is_first_user:
        permission.role = "admin"
        permission.upload_enabled = True
        db.commit()
        logger.info("First user registered as admin: %s", email)

    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown email or wrong password.
    """
    email = (email or "").strip().lower()
    user = db.query(User).filter(User.email == email).first()

    if user is None or user.password_hash is None:
        raise AuthenticationError("Invalid email or password")

    if not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    return user


def issue_session(user: User) -> str:
    return create_session_token(
        user.id, settings.session_secret_key, expires_hours=settings.session_ttl_hours
    )


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()
