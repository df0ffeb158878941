"""Dashboard endpoints: stats, own permission, search, upload access requests."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .serializers import file_out, folder_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import UserNotFoundError
from ..schemas.user import PermissionResponse, RequestAccessResponse, SearchResponse, StatsResponse
from ..services import auth_service, notification_service, permission_service
from ..services.file_service import FileService
from ..services.storage_service import LocalObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    return StatsResponse(**FileService(db, store).get_stats(auth.user_id))


@router.get("/permission", response_model=PermissionResponse)
def get_permission(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Caller's role, upload flag and quota snapshot."""
    permission = permission_service.get_or_create_permission(db, auth.user_id)
    return PermissionResponse(
        role=permission.role,
        upload_enabled=permission.upload_enabled,
        max_file_size=permission.max_file_size,
        **permission_service.storage_summary(permission),
    )


@router.get("/search", response_model=SearchResponse)
def search(
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    starred: bool = Query(False),
    date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Search the caller's files and folders by name.

    Filters: ``type`` (image, video, audio, document, folder), ``starred``,
    ``date`` (today, week, month, year).
    """
    service = FileService(db, store)
    result = service.search(auth.user_id, q=q, file_type=type, starred=starred, date_range=date)
    return SearchResponse(
        files=[file_out(f, service.signed_url(f)) for f in result.files],
        folders=[folder_out(f) for f in result.folders],
    )


@router.post("/request-access", response_model=RequestAccessResponse)
def request_access(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Ask every admin to enable uploads for the caller."""
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        raise UserNotFoundError()
    notified = notification_service.notify_admins_of_access_request(db, user)
    return RequestAccessResponse(notified=notified)
