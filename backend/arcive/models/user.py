"""User and Permission models.

Users are created by the identity layer (register) and referenced by every
other table. Each user has exactly one Permission row for this application,
created lazily on first access with the configured defaults.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Boolean, BigInteger, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """Account identity: id, name, email, image."""

    __tablename__ = "users"

    id = Column(String(50), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=False)
    image = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    permission = relationship(
        "Permission",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )


class Permission(Base):
    """Per-user application permission and storage quota.

    Roles:
        admin — can list users and toggle upload access / quotas
        user  — regular account

    storage_used is maintained with atomic SQL increments and must equal the
    total size of the user's files that have not been purged.
    """

    __tablename__ = "permissions"
    __table_args__ = (
        CheckConstraint("storage_used >= 0", name="ck_permissions_storage_used_non_negative"),
    )

    user_id = Column(
        String(50),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role = Column(String(20), nullable=False, default="user")
    upload_enabled = Column(Boolean, nullable=False, default=False)
    storage_limit = Column(BigInteger, nullable=False)
    storage_used = Column(BigInteger, nullable=False, default=0)
    max_file_size = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="permission")

    @property
    def storage_remaining(self) -> int:
        return max(0, self.storage_limit - self.storage_used)
