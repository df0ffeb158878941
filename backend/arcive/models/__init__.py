"""Database models."""

from .user import User, Permission
from .folder import Folder
from .file import File, FileState
from .sharing import ShareLink, AccessGrant
from .activity import ActivityLog, Notification

__all__ = [
    "User", "Permission",
    "Folder",
    "File", "FileState",
    "ShareLink", "AccessGrant",
    "ActivityLog", "Notification",
]
