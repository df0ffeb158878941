"""Activity trail — records every mutating action a user performs.

Entries are append-only. Writing an entry never breaks the operation that
triggered it: failures are logged and rolled back.

Usage in service layer:
    activity_service.log_activity(db, user_id="abc", action="upload", target_type="file",
                                  target_id="f-1", target_name="report.pdf",
                                  metadata={"size": 1024})
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..models import ActivityLog

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


def log_activity(
    db: Session,
    user_id: str,
    action: str,
    target_type: str,
    target_id: str,
    target_name: str = "",
    metadata: Optional[dict] = None,
) -> None:
    """Write an activity entry. Never raises."""
    try:
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            target_name=target_name,
            details=json.dumps(metadata) if metadata else None,
        )
        db.add(entry)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to write activity log: %s", e)
        db.rollback()


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


def get_user_activities(db: Session, user_id: str, limit: Optional[int] = None) -> list[ActivityLog]:
    """Most recent activity entries of a user, newest first."""
    return (
        db.query(ActivityLog)
        .filter(ActivityLog.user_id == user_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(clamp_limit(limit))
        .all()
    )


def parse_metadata(entry: ActivityLog) -> Optional[dict]:
    if not entry.details:
        return None
    try:
        return json.loads(entry.details)
    except ValueError:
        return None


def purge_old_entries(db: Session, days: int) -> int:
    """Delete entries older than `days`. Returns count of deleted rows.

    Skipped when days <= 0 (keep forever). Never raises — logs failures.
    """
    if days <= 0:
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        count = db.query(ActivityLog).filter(ActivityLog.created_at < cutoff).delete()
        db.commit()
        return count
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge activity log: %s", e)
        db.rollback()
        return 0
