"""Permission and storage quota rules.

This is the ONE place where upload admission and quota accounting live.

Design:
    - Every user has exactly one Permission row, created lazily with defaults
    - Upload admission is a pure check over that row (no mutation)
    - storage_used only moves through atomic SQL increments, never
      read-modify-write, so concurrent uploads cannot lose updates
    - storage_used counts every file that has not been purged; trashing a
      file keeps its bytes reserved
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import UserNotFoundError, ValidationError
from ..models import File, Permission, User

logger = logging.getLogger(__name__)

ROLES = ("user", "admin")
_MB = 1024 * 1024


@dataclass(frozen=True)
class UploadDecision:
    """Outcome of the admission check. ``reason`` is a short machine tag."""
    valid: bool
    error: Optional[str] = None
    reason: Optional[str] = None


def get_or_create_permission(db: Session, user_id: str) -> Permission:
    """Return the user's permission row, creating it with defaults if absent."""
    permission = db.query(Permission).filter(Permission.user_id == user_id).first()
    if permission is not None:
        return permission

    permission = Permission(
        user_id=user_id,
        role="user",
        upload_enabled=False,
        storage_limit=settings.default_storage_limit,
        storage_used=0,
        max_file_size=settings.default_max_file_size,
    )
    db.add(permission)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first.
        db.rollback()
        return db.query(Permission).filter(Permission.user_id == user_id).one()
    db.refresh(permission)
    return permission


def validate_upload(permission: Permission, file_size: int) -> UploadDecision:
    """Check whether *file_size* bytes may be uploaded.

    Checks run in order and the first failure wins:
        1. uploads disabled
        2. file larger than max_file_size
        3. storage_used + file_size over storage_limit
    """
    if not permission.upload_enabled:
        return UploadDecision(
            valid=False,
            error="Upload is not enabled for this account. Please request access from an administrator.",
            reason="upload_disabled",
        )

    if file_size > permission.max_file_size:
        max_mb = round(permission.max_file_size / _MB)
        return UploadDecision(
            valid=False,
            error=f"File exceeds the maximum size of {max_mb} MB per file.",
            reason="file_too_large",
        )

    if permission.storage_used + file_size > permission.storage_limit:
        remaining_mb = max(0, permission.storage_limit - permission.storage_used) / _MB
        return UploadDecision(
            valid=False,
            error=f"Not enough storage quota. Remaining: {remaining_mb:.2f} MB.",
            reason="quota_exceeded",
        )

    return UploadDecision(valid=True)


def adjust_storage_used(db: Session, user_id: str, delta: int) -> None:
    """Atomically add *delta* bytes to storage_used, never dropping below zero.

    Does not commit; the caller's transaction decides.
    """
    if delta == 0:
        return
    new_value = Permission.storage_used + delta
    if delta < 0:
        new_value = case((Permission.storage_used + delta < 0, 0), else_=Permission.storage_used + delta)
    db.execute(
        update(Permission)
        .where(Permission.user_id == user_id)
        .values(storage_used=new_value)
        .execution_options(synchronize_session=False)
    )


def reserve_storage(db: Session, user_id: str, size: int) -> bool:
    """Add *size* bytes only if the result stays within storage_limit.

    The limit is checked in the UPDATE itself, so concurrent uploads cannot
    both pass. Returns False when no row was updated. Does not commit.
    """
    result = db.execute(
        update(Permission)
        .where(
            Permission.user_id == user_id,
            Permission.storage_used + size <= Permission.storage_limit,
        )
        .values(storage_used=Permission.storage_used + size)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def recalculate_storage_used(db: Session, user_id: str) -> int:
    """Recompute storage_used from the user's non-purged files and persist it."""
    total = (
        db.query(func.coalesce(func.sum(File.size), 0))
        .filter(File.owner_id == user_id)
        .scalar()
    )
    total = int(total or 0)
    get_or_create_permission(db, user_id)
    db.execute(
        update(Permission)
        .where(Permission.user_id == user_id)
        .values(storage_used=total)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return total


def update_user_permission(
    db: Session,
    user_id: str,
    upload_enabled: Optional[bool] = None,
    storage_limit: Optional[int] = None,
    max_file_size: Optional[int] = None,
    role: Optional[str] = None,
) -> Permission:
    """Admin update of a user's permission row. Creates the row if needed."""
    if db.query(User).filter(User.id == user_id).first() is None:
        raise UserNotFoundError()
    if role is not None and role not in ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be user or admin.", field="role")
    if storage_limit is not None and storage_limit < 0:
        raise ValidationError("Storage limit must be non-negative", field="storageLimit")
    if max_file_size is not None and max_file_size <= 0:
        raise ValidationError("Max file size must be positive", field="maxFileSize")

    permission = get_or_create_permission(db, user_id)
    if upload_enabled is not None:
        permission.upload_enabled = upload_enabled
    if storage_limit is not None:
        permission.storage_limit = storage_limit
    if max_file_size is not None:
        permission.max_file_size = max_file_size
    if role is not None:
        permission.role = role
    db.commit()
    db.refresh(permission)

    logger.info(
        "Permission updated",
        extra={"user_id": user_id, "upload_enabled": permission.upload_enabled, "role": permission.role},
    )
    return permission


def list_users_with_permissions(db: Session) -> list[tuple[User, Optional[Permission]]]:
    """All users, newest first, with their permission row (None if never created)."""
    return (
        db.query(User, Permission)
        .outerjoin(Permission, Permission.user_id == User.id)
        .order_by(User.created_at.desc())
        .all()
    )


def format_bytes(size: int) -> str:
    """Human-readable size: 0 B, 1.5 KB, 12.3 MB, ..."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return f"{int(value)} B"
    return f"{value:.1f} {units[index]}"


def storage_summary(permission: Permission) -> dict:
    """Quota snapshot used by the permission and stats endpoints."""
    limit = permission.storage_limit
    used = permission.storage_used
    percent = round(used / limit * 100, 1) if limit > 0 else 0.0
    return {
        "storageUsed": used,
        "storageLimit": limit,
        "storageRemaining": permission.storage_remaining,
        "percentUsed": min(percent, 100.0),
        "storageUsedFormatted": format_bytes(used),
        "storageLimitFormatted": format_bytes(limit),
    }
