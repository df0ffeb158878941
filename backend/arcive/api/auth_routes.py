"""Authentication API endpoints.

Public endpoints:
    POST /api/auth/register  — create account and start a session
    POST /api/auth/login     — authenticate and start a session
    POST /api/auth/logout    — clear the session cookie
    GET  /api/auth/me        — current user

The session token is returned in the body and set as an HttpOnly cookie.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.config import settings
from ..database import get_db
from ..exceptions import UserNotFoundError
from ..models import User
from ..schemas.user import LoginRequest, RegisterRequest, SessionResponse, UserResponse
from ..services import auth_service, permission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def _user_out(db: Session, user: User) -> UserResponse:
    permission = permission_service.get_or_create_permission(db, user.id)
    return UserResponse(
        id=user.id, name=user.name, email=user.email, image=user.image, role=permission.role,
    )


@router.post("/register", response_model=SessionResponse, status_code=201)
def register(body: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account. The first account becomes the admin."""
    user = auth_service.register_user(db, body.email, body.password, body.name, body.image)
    token = auth_service.issue_session(user)
    _set_session_cookie(response, token)
    logger.info("User registered", extra={"user_id": user.id})
    return SessionResponse(user=_user_out(db, user), token=token)


@router.post("/login", response_model=SessionResponse)
def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, body.email, body.password)
    token = auth_service.issue_session(user)
    _set_session_cookie(response, token)
    return SessionResponse(user=_user_out(db, user), token=token)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.session_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
def me(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        raise UserNotFoundError()
    return _user_out(db, user)
