"""Trash API: list trashed files, restore one, purge one or all."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .serializers import file_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.file import FileIdRequest, FileListResponse, FileResponse, TrashDeleteRequest
from ..services.file_service import FileService
from ..services.storage_service import LocalObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trash", tags=["trash"])


@router.get("", response_model=FileListResponse)
def list_trash(
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    files = FileService(db, store).list_trash(auth.user_id)
    return FileListResponse(files=[file_out(f) for f in files])


@router.post("", response_model=FileResponse)
def restore_file(
    body: FileIdRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Restore a trashed file."""
    return file_out(FileService(db, store).restore(body.file_id, auth.user_id))


@router.delete("")
def purge(
    body: TrashDeleteRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Permanently delete one trashed file, or all of them with ``emptyTrash``."""
    service = FileService(db, store)
    if body.empty_trash:
        count, freed = service.empty_trash(auth.user_id)
        return {"success": True, "deleted": count, "freedBytes": freed}
    if not body.file_id:
        raise ValidationError("fileId or emptyTrash is required", field="fileId")
    freed = service.permanently_delete(body.file_id, auth.user_id)
    return {"success": True, "deleted": 1, "freedBytes": freed}
