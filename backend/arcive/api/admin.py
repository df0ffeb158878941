"""Admin endpoints: list users with their permissions, toggle uploads and quotas."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..core.config import settings
from ..database import get_db
from ..schemas.user import AdminUserEntry, AdminUserListResponse, AdminUserUpdateRequest
from ..services import permission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=AdminUserListResponse)
def list_users(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    """Every user, newest first. Users without a permission row show defaults."""
    entries = []
    for user, permission in permission_service.list_users_with_permissions(db):
        entries.append(AdminUserEntry(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            created_at=user.created_at,
            role=permission.role if permission else "user",
            upload_enabled=permission.upload_enabled if permission else False,
            storage_limit=permission.storage_limit if permission else settings.default_storage_limit,
            storage_used=permission.storage_used if permission else 0,
            max_file_size=permission.max_file_size if permission else settings.default_max_file_size,
        ))
    return AdminUserListResponse(users=entries)


@router.patch("/users")
def update_user(
    body: AdminUserUpdateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    """Toggle upload access or change quotas / role of a user."""
    permission = permission_service.update_user_permission(
        db,
        body.user_id,
        upload_enabled=body.upload_enabled,
        storage_limit=body.storage_limit,
        max_file_size=body.max_file_size,
        role=body.role,
    )
    logger.info("Admin updated user", extra={"admin_id": auth.user_id, "user_id": body.user_id})
    return {
        "success": True,
        "permission": {
            "userId": permission.user_id,
            "role": permission.role,
            "uploadEnabled": permission.upload_enabled,
            "storageLimit": permission.storage_limit,
            "storageUsed": permission.storage_used,
            "maxFileSize": permission.max_file_size,
        },
    }
