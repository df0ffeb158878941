"""Shared-with-me API."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .serializers import shared_by_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.file import FileResponse
from ..schemas.folder import FolderResponse
from ..schemas.share import SharedFileEntry, SharedFolderEntry, SharedWithMeResponse
from ..services.sharing_service import SharingService, TargetKind
from ..services.storage_service import LocalObjectStore, get_object_store

router = APIRouter(prefix="/api/shared", tags=["sharing"])


@router.get("", response_model=SharedWithMeResponse)
def list_shared_with_me(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Items other users shared with the caller, or the contents of a shared folder."""
    service = SharingService(db, store)
    items = service.list_shared_with(auth.user_id, folder_id)

    files, folders = [], []
    for entry in items:
        extra = {
            "permission": entry.permission,
            "shared_by": shared_by_out(entry.shared_by),
            "shared_at": entry.shared_at,
        }
        if entry.kind == TargetKind.FILE:
            base = FileResponse.model_validate(entry.item).model_dump()
            base["url"] = service.file_url(entry.item)
            files.append(SharedFileEntry(**base, **extra))
        else:
            base = FolderResponse.model_validate(entry.item).model_dump()
            folders.append(SharedFolderEntry(**base, **extra))
    return SharedWithMeResponse(files=files, folders=folders)
