"""Sharing schemas: public links, internal grants, shared-with-me."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import model_validator

from .base import CamelModel
from .file import FileResponse
from .folder import FolderResponse


class TargetRequest(CamelModel):
    """Exactly one of fileId / folderId."""
    file_id: Optional[str] = None
    folder_id: Optional[str] = None

    @model_validator(mode="after")
    def one_target(self):
        if bool(self.file_id) == bool(self.folder_id):
            raise ValueError("Provide exactly one of fileId or folderId")
        return self


class ShareLinkCreateRequest(TargetRequest):
    password: Optional[str] = None
    expires_in: Optional[str] = None
    allow_download: bool = True


class ShareLinkResponse(CamelModel):
    id: str
    token: str
    url: str
    target_type: str
    target_id: str
    has_password: bool
    expires_at: Optional[datetime] = None
    allow_download: bool
    created_at: Optional[datetime] = None


class ShareLinkListResponse(CamelModel):
    links: List[ShareLinkResponse]


class ShareLinkDeleteRequest(CamelModel):
    link_id: str


class PublicShareResponse(CamelModel):
    """What an anonymous visitor sees for a valid token."""
    type: Literal["file", "folder"]
    allow_download: bool
    expires_at: Optional[datetime] = None
    file: Optional[FileResponse] = None
    folder: Optional[FolderResponse] = None
    files: List[FileResponse] = []
    folders: List[FolderResponse] = []


class InternalShareRequest(CamelModel):
    """Share one file, several files, or one folder with a registered user."""
    email: Optional[str] = None
    permission: str = "view"
    file_id: Optional[str] = None
    file_ids: Optional[List[str]] = None
    folder_id: Optional[str] = None


class InternalShareResponse(CamelModel):
    success: bool = True
    shared: int


class RevokeRequest(TargetRequest):
    user_id: str


class Collaborator(CamelModel):
    user_id: str
    name: str
    email: str
    image: Optional[str] = None
    permission: str
    shared_at: Optional[datetime] = None


class AccessListResponse(CamelModel):
    users: List[Collaborator]


class SharedBy(CamelModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None


class SharedFileEntry(FileResponse):
    permission: str
    shared_by: Optional[SharedBy] = None
    shared_at: Optional[datetime] = None


class SharedFolderEntry(FolderResponse):
    permission: str
    shared_by: Optional[SharedBy] = None
    shared_at: Optional[datetime] = None


class SharedWithMeResponse(CamelModel):
    files: List[SharedFileEntry]
    folders: List[SharedFolderEntry]
