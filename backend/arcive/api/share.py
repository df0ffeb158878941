"""Sharing API.

Authenticated:
    POST   /api/share            — create a public link
    GET    /api/share            — list public links of a file or folder
    DELETE /api/share            — delete a public link
    POST   /api/share/internal   — share with registered users
    DELETE /api/share/internal   — revoke a user's access
    GET    /api/share/access     — collaborators on a file or folder

Public:
    GET    /api/share/{token}    — resolve a link (``?password=`` when protected)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from .serializers import file_out, folder_out, share_link_out
from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.file import SuccessResponse
from ..schemas.share import (
    AccessListResponse,
    Collaborator,
    InternalShareRequest,
    InternalShareResponse,
    PublicShareResponse,
    RevokeRequest,
    ShareLinkCreateRequest,
    ShareLinkDeleteRequest,
    ShareLinkListResponse,
    ShareLinkResponse,
    TargetRequest,
)
from ..services.sharing_service import SharingService, ShareTarget, TargetKind
from ..services.storage_service import LocalObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/share", tags=["sharing"])


def _target(file_id: Optional[str], folder_id: Optional[str]) -> ShareTarget:
    if file_id and not folder_id:
        return ShareTarget.file(file_id)
    if folder_id and not file_id:
        return ShareTarget.folder(folder_id)
    raise ValidationError("Provide exactly one of fileId or folderId", field="fileId")


def _target_from_query(
    file_id: Optional[str] = Query(None, alias="fileId"),
    folder_id: Optional[str] = Query(None, alias="folderId"),
) -> ShareTarget:
    return _target(file_id, folder_id)


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.post("", response_model=ShareLinkResponse, status_code=201)
def create_share_link(
    body: ShareLinkCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    link = SharingService(db, store).create_public_link(
        _target(body.file_id, body.folder_id),
        auth.user_id,
        password=body.password,
        expires_in=body.expires_in,
        allow_download=body.allow_download,
    )
    return share_link_out(link, _base_url(request))


@router.get("", response_model=ShareLinkListResponse)
def list_share_links(
    request: Request,
    target: ShareTarget = Depends(_target_from_query),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    links = SharingService(db, store).list_public_links(target, auth.user_id)
    base = _base_url(request)
    return ShareLinkListResponse(links=[share_link_out(link, base) for link in links])


@router.delete("", response_model=SuccessResponse)
def delete_share_link(
    body: ShareLinkDeleteRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    SharingService(db, store).delete_public_link(body.link_id, auth.user_id)
    return SuccessResponse()


@router.post("/internal", response_model=InternalShareResponse)
def share_internal(
    body: InternalShareRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    """Share a file, several files, or a folder with a registered user by email."""
    if body.folder_id:
        targets = [ShareTarget.folder(body.folder_id)]
    elif body.file_ids:
        targets = [ShareTarget.file(fid) for fid in dict.fromkeys(body.file_ids)]
    elif body.file_id:
        targets = [ShareTarget.file(body.file_id)]
    else:
        raise ValidationError("fileId, fileIds or folderId is required", field="fileId")

    SharingService(db, store).grant_internal_access(
        auth.user_id, body.email, targets, body.permission
    )
    return InternalShareResponse(shared=len(targets))


@router.delete("/internal", response_model=SuccessResponse)
def revoke_internal(
    body: RevokeRequest,
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    SharingService(db, store).revoke_internal_access(
        _target(body.file_id, body.folder_id), body.user_id, auth.user_id
    )
    return SuccessResponse()


@router.get("/access", response_model=AccessListResponse)
def list_access(
    target: ShareTarget = Depends(_target_from_query),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
    auth: AuthContext = Depends(require_auth),
):
    rows = SharingService(db, store).list_access(target, auth.user_id)
    return AccessListResponse(users=[
        Collaborator(
            user_id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            permission=grant.permission,
            shared_at=grant.shared_at,
        )
        for grant, user in rows
    ])


@router.get("/{token}", response_model=PublicShareResponse)
def resolve_share_link(
    token: str,
    password: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Resolve a public link. No session required."""
    service = SharingService(db, store)
    resolved = service.resolve_public_link(token, password)
    link = resolved.link

    if resolved.file is not None:
        return PublicShareResponse(
            type=TargetKind.FILE.value,
            allow_download=link.allow_download,
            expires_at=link.expires_at,
            file=file_out(resolved.file, resolved.url),
        )

    return PublicShareResponse(
        type=TargetKind.FOLDER.value,
        allow_download=link.allow_download,
        expires_at=link.expires_at,
        folder=folder_out(resolved.folder),
        files=[
            file_out(f, service.file_url(f) if link.allow_download else None)
            for f in resolved.files
        ],
        folders=[folder_out(f) for f in resolved.subfolders],
    )
