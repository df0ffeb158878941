"""File schemas."""

from datetime import datetime
from typing import List, Optional

from .base import CamelModel


class FileResponse(CamelModel):
    """File metadata. ``url`` is a signed download URL when included."""
    id: str
    name: str
    mime_type: str
    size: int
    folder_id: Optional[str] = None
    owner_id: str
    is_starred: bool
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    url: Optional[str] = None


class UploadResponse(CamelModel):
    success: bool = True
    file: FileResponse


class FileListResponse(CamelModel):
    files: List[FileResponse]


class FileUpdateRequest(CamelModel):
    """PATCH body: rename and/or star."""
    file_id: str
    name: Optional[str] = None
    is_starred: Optional[bool] = None


class FileMoveRequest(CamelModel):
    file_id: str
    folder_id: Optional[str] = None


class FileIdRequest(CamelModel):
    file_id: str


class TrashDeleteRequest(CamelModel):
    """DELETE /api/trash body: one file, or everything with emptyTrash."""
    file_id: Optional[str] = None
    empty_trash: bool = False


class SuccessResponse(CamelModel):
    success: bool = True
