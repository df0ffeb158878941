"""File API: list, upload, rename/star, soft delete, move.

Thin handlers. Ownership checks, quota accounting and activity logging
happen in FileService.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File as FormFile, Form, Query, UploadFile
from sqlalchemy.orm import Session

from .serializers import file_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.file import (
    FileIdRequest,
    FileListResponse,
    FileMoveRequest,
    FileResponse,
    FileUpdateRequest,
    SuccessResponse,
    UploadResponse,
)
from ..services.file_service import FileService
from ..services.storage_service import LocalObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("", response_model=FileListResponse)
def list_files(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    starred: bool = Query(False),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Active files of the caller, newest first, each with a signed URL."""
    service = FileService(db, store)
    files = service.list_files(auth.user_id, folder_id=folder_id, starred=starred)
    return FileListResponse(files=[file_out(f, service.signed_url(f)) for f in files])


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = FormFile(...),
    folder_id: Optional[str] = Form(None, alias="folderId"),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Upload one file (multipart field ``file``, optional ``folderId``)."""
    if not file.filename:
        raise ValidationError("No file provided", field="file")
    data = await file.read()

    service = FileService(db, store)
    record = service.upload(
        owner_id=auth.user_id,
        name=file.filename,
        data=data,
        mime_type=file.content_type,
        folder_id=folder_id or None,
    )
    return UploadResponse(file=file_out(record, service.signed_url(record)))


@router.patch("", response_model=FileResponse)
def update_file(
    body: FileUpdateRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Rename and/or set the star flag."""
    if body.name is None and body.is_starred is None:
        raise ValidationError("Nothing to update", field="name")

    service = FileService(db, store)
    record = service.get_file(body.file_id, auth.user_id)
    if body.name is not None:
        record = service.rename_file(body.file_id, body.name, auth.user_id)
    if body.is_starred is not None:
        record = service.toggle_star(body.file_id, auth.user_id, body.is_starred)
    return file_out(record)


@router.delete("", response_model=SuccessResponse)
def delete_file(
    body: FileIdRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Move a file to the trash."""
    FileService(db, store).soft_delete(body.file_id, auth.user_id)
    return SuccessResponse()


@router.put("", response_model=FileResponse)
def move_file(
    body: FileMoveRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Move a file into a folder, or to the root with ``folderId: null``."""
    record = FileService(db, store).move_file(body.file_id, body.folder_id, auth.user_id)
    return file_out(record)
