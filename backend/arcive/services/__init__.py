"""Business logic services."""

from .file_service import FileService
from .folder_service import FolderService
from .sharing_service import SharingService, ShareTarget, TargetKind

__all__ = ["FileService", "FolderService", "SharingService", "ShareTarget", "TargetKind"]
