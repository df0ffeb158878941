"""ORM row -> response schema helpers shared by the routers."""

from typing import Optional

from ..models import ActivityLog, File, Folder, ShareLink, User
from ..schemas.activity import ActivityResponse
from ..schemas.file import FileResponse
from ..schemas.folder import FolderResponse
from ..schemas.share import SharedBy, ShareLinkResponse
from ..services import activity_service
from ..core.config import settings


def file_out(file: File, url: Optional[str] = None) -> FileResponse:
    out = FileResponse.model_validate(file)
    out.url = url
    return out


def folder_out(folder: Folder) -> FolderResponse:
    return FolderResponse.model_validate(folder)


def share_link_out(link: ShareLink, base_url: str) -> ShareLinkResponse:
    return ShareLinkResponse(
        id=link.id,
        token=link.token,
        url=f"{settings.public_app_url or base_url}/share/{link.token}",
        target_type=link.target_type,
        target_id=link.target_id,
        has_password=link.has_password,
        expires_at=link.expires_at,
        allow_download=link.allow_download,
        created_at=link.created_at,
    )


def shared_by_out(user: Optional[User]) -> Optional[SharedBy]:
    if user is None:
        return None
    return SharedBy(id=user.id, name=user.name, email=user.email, image=user.image)


def activity_out(entry: ActivityLog) -> ActivityResponse:
    # ActivityLog.metadata is the declarative MetaData, so map fields by hand.
    return ActivityResponse(
        id=entry.id,
        action=entry.action,
        target_type=entry.target_type,
        target_id=entry.target_id,
        target_name=entry.target_name,
        metadata=activity_service.parse_metadata(entry),
        created_at=entry.created_at,
    )
