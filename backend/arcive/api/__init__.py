"""API routes."""

from .activity import router as activity_router, notifications_router
from .admin import router as admin_router
from .auth_routes import router as auth_router
from .blobs import router as blobs_router
from .dashboard import router as dashboard_router
from .files import router as files_router
from .folders import router as folders_router
from .share import router as share_router
from .shared import router as shared_router
from .trash import router as trash_router

__all__ = [
    "activity_router",
    "notifications_router",
    "admin_router",
    "auth_router",
    "blobs_router",
    "dashboard_router",
    "files_router",
    "folders_router",
    "share_router",
    "shared_router",
    "trash_router",
]
