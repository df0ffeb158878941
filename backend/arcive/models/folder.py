"""Folder model — a forest of folders per owner."""

from sqlalchemy import Column, Index, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from ..database import Base
from .user import new_id


class Folder(Base):
    """A folder in an owner's tree.

    parent_id NULL means the folder sits at the owner's root. The parent chain
    must stay acyclic; FolderService checks this on every move.
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_owner_parent", "owner_id", "parent_id"),
    )

    id = Column(String(50), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(50), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True)
    owner_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_starred = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
