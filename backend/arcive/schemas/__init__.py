"""Pydantic schemas for API validation."""

from .base import CamelModel
from .file import FileResponse, FileListResponse, UploadResponse
from .folder import FolderResponse, FolderListResponse

__all__ = [
    "CamelModel",
    "FileResponse",
    "FileListResponse",
    "UploadResponse",
    "FolderResponse",
    "FolderListResponse",
]
