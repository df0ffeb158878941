"""ActivityLog and Notification models."""

from sqlalchemy import Column, Index, Integer, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from ..database import Base
from .user import new_id


class ActivityLog(Base):
    """Append-only record of a user's mutating actions.

    Written by the service layer, never modified. Fields:
        action      — upload, delete, restore, permanent_delete, empty_trash,
                      create_folder, delete_folder, rename, move, star, unstar,
                      share, unshare, share_link_create, share_link_delete
        target_type — file or folder
        metadata    — JSON string with additional context
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(50), nullable=False)
    target_type = Column(String(10), nullable=False)
    target_id = Column(String(50), nullable=False)
    target_name = Column(String(255), nullable=False, default="")
    # "metadata" is reserved on declarative classes.
    details = Column("metadata", Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Notification(Base):
    """In-app notification for a recipient."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id = Column(String(50), primary_key=True, default=new_id)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)  # share_file, share_folder, download, system
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
