"""Activity and notification schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import CamelModel


class ActivityResponse(CamelModel):
    id: int
    action: str
    target_type: str
    target_id: str
    target_name: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ActivityListResponse(CamelModel):
    activities: List[ActivityResponse]


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    unread_count: int


class NotificationCountResponse(CamelModel):
    count: int


class NotificationTargetRequest(CamelModel):
    """Body of PATCH/DELETE /api/notifications: one id, or all."""
    id: Optional[str] = None
    all: bool = False


class NotificationUpdateResponse(CamelModel):
    success: bool = True
    updated: int
