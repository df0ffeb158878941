"""Folder API: list, create, rename/star, delete, move.

Single router. Delegates to FolderService (deep module).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .serializers import folder_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.file import SuccessResponse
from ..schemas.folder import (
    FolderCreateRequest,
    FolderIdRequest,
    FolderListResponse,
    FolderMoveRequest,
    FolderResponse,
    FolderUpdateRequest,
)
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=FolderListResponse)
def list_folders(
    parent_id: Optional[str] = Query(None, alias="parentId"),
    starred: bool = Query(False),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Children of ``parentId`` (root when omitted), or every starred folder.

    When a parent is given the response also carries its breadcrumb.
    """
    service = FolderService(db)
    folders = service.list_folders(auth.user_id, parent_id=parent_id, starred=starred)
    breadcrumb = []
    if parent_id and not starred:
        breadcrumb = [folder_out(f) for f in service.breadcrumb(parent_id, auth.user_id)]
    return FolderListResponse(folders=[folder_out(f) for f in folders], breadcrumb=breadcrumb)


@router.post("", response_model=FolderResponse, status_code=201)
def create_folder(
    body: FolderCreateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    folder = FolderService(db).create_folder(body.name, body.parent_id, auth.user_id)
    return folder_out(folder)


@router.patch("", response_model=FolderResponse)
def update_folder(
    body: FolderUpdateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Rename and/or set the star flag."""
    if body.name is None and body.is_starred is None:
        raise ValidationError("Nothing to update", field="name")

    service = FolderService(db)
    folder = service.get_folder(body.folder_id, auth.user_id)
    if body.name is not None:
        folder = service.rename_folder(body.folder_id, body.name, auth.user_id)
    if body.is_starred is not None:
        folder = service.toggle_star(body.folder_id, auth.user_id, body.is_starred)
    return folder_out(folder)


@router.delete("", response_model=SuccessResponse)
def delete_folder(
    body: FolderIdRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Delete a folder. Its files and subfolders move to the root."""
    FolderService(db).delete_folder(body.folder_id, auth.user_id)
    return SuccessResponse()


@router.put("", response_model=FolderResponse)
def move_folder(
    body: FolderMoveRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    folder = FolderService(db).move_folder(body.folder_id, body.parent_id, auth.user_id)
    return folder_out(folder)
