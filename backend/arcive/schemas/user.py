"""Auth, permission, admin and dashboard schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import CamelModel
from .file import FileResponse
from .folder import FolderResponse


class RegisterRequest(CamelModel):
    email: str
    password: str
    name: str = ""
    image: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    role: str = "user"


class SessionResponse(CamelModel):
    """Login/register result. The token is also set as an HttpOnly cookie."""
    user: UserResponse
    token: str


class PermissionResponse(CamelModel):
    role: str
    upload_enabled: bool
    storage_limit: int
    storage_used: int
    storage_remaining: int
    max_file_size: int
    percent_used: float
    storage_used_formatted: str
    storage_limit_formatted: str


class StatsResponse(CamelModel):
    total_files: int
    total_size: int
    total_folders: int
    trashed_files: int
    storage_used: int
    storage_limit: int
    storage_remaining: int
    percent_used: float
    storage_used_formatted: str
    storage_limit_formatted: str


class SearchResponse(CamelModel):
    files: List[FileResponse]
    folders: List[FolderResponse]


class AdminUserEntry(CamelModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    role: str
    upload_enabled: bool
    storage_limit: int
    storage_used: int
    max_file_size: int


class AdminUserListResponse(CamelModel):
    users: List[AdminUserEntry]


class AdminUserUpdateRequest(CamelModel):
    user_id: str
    upload_enabled: Optional[bool] = None
    storage_limit: Optional[int] = Field(default=None, ge=0)
    max_file_size: Optional[int] = Field(default=None, gt=0)
    role: Optional[str] = None


class RequestAccessResponse(CamelModel):
    success: bool = True
    notified: int
