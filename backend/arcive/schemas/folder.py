"""Folder schemas."""

from datetime import datetime
from typing import List, Optional

from .base import CamelModel


class FolderResponse(CamelModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    owner_id: str
    is_starred: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FolderListResponse(CamelModel):
    folders: List[FolderResponse]
    breadcrumb: List[FolderResponse] = []


class FolderCreateRequest(CamelModel):
    name: Optional[str] = None
    parent_id: Optional[str] = None


class FolderUpdateRequest(CamelModel):
    """PATCH body: rename and/or star."""
    folder_id: str
    name: Optional[str] = None
    is_starred: Optional[bool] = None


class FolderMoveRequest(CamelModel):
    """PUT body. ``parentId`` null moves the folder to the root."""
    folder_id: str
    parent_id: Optional[str] = None


class FolderIdRequest(CamelModel):
    folder_id: str
