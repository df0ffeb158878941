"""Activity trail and notification endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .serializers import activity_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import NotFoundError, ValidationError
from ..schemas.activity import (
    ActivityListResponse,
    NotificationCountResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationTargetRequest,
    NotificationUpdateResponse,
)
from ..services import activity_service, notification_service

router = APIRouter(prefix="/api/activity", tags=["activity"])
notifications_router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=ActivityListResponse)
def list_activity(
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Caller's recent activity. ``limit`` defaults to 20 and is clamped to 1..50."""
    entries = activity_service.get_user_activities(db, auth.user_id, limit)
    return ActivityListResponse(activities=[activity_out(e) for e in entries])


# -- Notifications --------------------------------------------------------

def _check_target(body: NotificationTargetRequest) -> None:
    if not body.all and not body.id:
        raise ValidationError("id or all is required", field="id")


@notifications_router.get("", response_model=NotificationListResponse)
def list_notifications(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Latest 20 notifications with the unread count."""
    rows = notification_service.list_notifications(db, auth.user_id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        unread_count=notification_service.unread_count(db, auth.user_id),
    )


@notifications_router.get("/count", response_model=NotificationCountResponse)
def unread_count(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return NotificationCountResponse(count=notification_service.unread_count(db, auth.user_id))


@notifications_router.patch("", response_model=NotificationUpdateResponse)
def mark_read(
    body: NotificationTargetRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    _check_target(body)
    updated = notification_service.mark_read(db, auth.user_id, body.id, all=body.all)
    if not body.all and updated == 0:
        raise NotFoundError("Notification not found")
    return NotificationUpdateResponse(updated=updated)


@notifications_router.delete("", response_model=NotificationUpdateResponse)
def delete_notifications(
    body: NotificationTargetRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    _check_target(body)
    deleted = notification_service.delete(db, auth.user_id, body.id, all=body.all)
    if not body.all and deleted == 0:
        raise NotFoundError("Notification not found")
    return NotificationUpdateResponse(updated=deleted)
