"""In-app notifications with optional email delivery.

Creating a notification never breaks the operation that triggered it.
"""

import logging
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from . import email_service
from ..core.config import settings
from ..models import Notification, Permission, User

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("share_file", "share_folder", "download", "system")
LIST_LIMIT = 20


def create_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    email_to: Optional[str] = None,
    email_html: Optional[str] = None,
) -> Optional[Notification]:
    """Store a notification and optionally email it. Never raises.

    Unknown *type* values are logged and dropped; nothing is stored or sent.
    """
    if type not in NOTIFICATION_TYPES:
        logger.warning("Unknown notification type", extra={"type": type, "user_id": user_id})
        return None

    notification = None
    try:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
        )
        db.add(notification)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to create notification: %s", e)
        db.rollback()
        notification = None

    if email_to:
        email_service.send_email(email_to, title, email_html or f"<p>{message}</p>")

    return notification


def list_notifications(db: Session, user_id: str) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(LIST_LIMIT)
        .all()
    )


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, user_id: str, notification_id: Optional[str] = None, all: bool = False) -> int:
    """Mark one or all of the user's notifications as read. Returns rows touched."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if not all:
        query = query.filter(Notification.id == notification_id)
    count = query.update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return count


def delete(db: Session, user_id: str, notification_id: Optional[str] = None, all: bool = False) -> int:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if not all:
        query = query.filter(Notification.id == notification_id)
    count = query.delete(synchronize_session=False)
    db.commit()
    return count


def notify_admins_of_access_request(db: Session, requester: User) -> int:
    """Send a system notification (and email) to every admin. Returns admins notified."""
    admins = (
        db.query(User)
        .join(Permission, Permission.user_id == User.id)
        .filter(Permission.role == "admin", User.id != requester.id)
        .all()
    )
    link = f"{settings.public_app_url}/admin"
    name = requester.name or requester.email
    for admin in admins:
        create_notification(
            db,
            user_id=admin.id,
            type="system",
            title="Upload access requested",
            message=f"{name} ({requester.email}) requested upload access.",
            link="/admin",
            email_to=admin.email,
            email_html=email_service.render_access_request_email(name, requester.email, link),
        )
    logger.info("Access request sent", extra={"user_id": requester.id, "admins": len(admins)})
    return len(admins)
