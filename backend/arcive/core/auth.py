"""Authentication module — deep module exposing FastAPI dependencies.

Public interface:
    ``require_auth``  — returns AuthContext or raises 401.
    ``require_admin`` — returns AuthContext, raises 403 if not admin.

The session token is read from an ``Authorization: Bearer`` header first,
then from the session cookie set by login.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .logging_config import user_id_var
from .token_factory import decode_session_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context available to every endpoint."""

    user_id: str
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name) or None


def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid session and return the user's AuthContext."""
    token = _extract_token(request, credentials)
    if token is None:
        raise AuthenticationError()

    payload = decode_session_token(token, settings.session_secret_key)
    if payload is None:
        raise AuthenticationError()

    return _load_auth_context(payload.sub, db)


def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the authenticated user to be an admin. Raises 403 otherwise."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


def _load_auth_context(user_id: str, db: Session) -> AuthContext:
    """Load the user and their role. The permission row is created lazily."""
    from ..models import User
    from ..services import permission_service

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info("Session references unknown user", extra={"user_id": user_id})
        raise AuthenticationError()

    permission = permission_service.get_or_create_permission(db, user.id)
    user_id_var.set(user.id)

    return AuthContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=permission.role,
    )
