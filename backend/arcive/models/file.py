"""File metadata model. File bytes live in the object store under storage_key."""

from enum import Enum

from sqlalchemy import Column, Index, String, Boolean, BigInteger, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base
from .user import new_id


class FileState(str, Enum):
    """Lifecycle of a file record.

    ACTIVE -> TRASHED  (soft delete, reversible, quota unchanged)
    TRASHED -> ACTIVE  (restore)
    TRASHED -> PURGED  (row and blob removed, quota released)

    PURGED is never stored; it is the absence of the row.
    """
    ACTIVE = "active"
    TRASHED = "trashed"
    PURGED = "purged"


_ALLOWED_TRANSITIONS = {
    FileState.ACTIVE: {FileState.TRASHED},
    FileState.TRASHED: {FileState.ACTIVE, FileState.PURGED},
    FileState.PURGED: set(),
}


def can_transition(current: FileState, target: FileState) -> bool:
    return target in _ALLOWED_TRANSITIONS[current]


class File(Base):
    """Uploaded file metadata."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_owner_deleted", "owner_id", "is_deleted"),
        Index("ix_files_folder_id", "folder_id"),
    )

    id = Column(String(50), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    mime_type = Column(String(255), nullable=False, default="application/octet-stream")
    size = Column(BigInteger, nullable=False)
    storage_key = Column(String(1024), nullable=False, unique=True)
    # NULL = root. Deleting a folder detaches its files instead of deleting them.
    folder_id = Column(String(50), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True)
    owner_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_starred = Column(Boolean, nullable=False, default=False)

    # Soft delete
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True, default=None)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def state(self) -> FileState:
        return FileState.TRASHED if self.is_deleted else FileState.ACTIVE
