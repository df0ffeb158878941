"""Sharing models: public share links and internal access grants.

Both are keyed by (target_type, target_id) so one code path handles files and
folders alike.
"""

from sqlalchemy import Column, Index, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from ..database import Base
from .user import new_id


class ShareLink(Base):
    """Public tokenized link. Anyone holding the token (and the password, if
    set) may view the target until expires_at."""

    __tablename__ = "share_links"
    __table_args__ = (
        Index("ix_share_links_target", "target_type", "target_id"),
    )

    id = Column(String(50), primary_key=True, default=new_id)
    token = Column(String(64), nullable=False, unique=True)
    target_type = Column(String(10), nullable=False)  # 'file' or 'folder'
    target_id = Column(String(50), nullable=False)
    password_hash = Column(Text, nullable=True)  # bcrypt, never plaintext
    expires_at = Column(DateTime(timezone=True), nullable=True)
    allow_download = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None


class AccessGrant(Base):
    """Durable internal share of a file or folder with another user."""

    __tablename__ = "access_grants"
    __table_args__ = (
        Index(
            "ix_access_grants_target_user",
            "target_type", "target_id", "shared_with_user_id",
            unique=True,
        ),
        Index("ix_access_grants_shared_with", "shared_with_user_id"),
    )

    id = Column(String(50), primary_key=True, default=new_id)
    target_type = Column(String(10), nullable=False)
    target_id = Column(String(50), nullable=False)
    shared_with_user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    permission = Column(String(10), nullable=False, default="view")  # 'view' or 'edit'
    shared_by = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shared_at = Column(DateTime(timezone=True), server_default=func.now())
