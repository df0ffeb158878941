"""Sharing: public tokenized links and internal access grants.

Files and folders are shared through the same code paths. A ShareTarget
names what is being shared; the target type is stored next to the id in
both the share_links and access_grants tables.

Folder grants are not copied down the tree at share time beyond the files
the folder holds right now. Files added later are reached through
FolderService.has_access, which walks the folder's ancestors.
"""

import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from . import activity_service, email_service, notification_service
from .folder_service import FolderService
from .storage_service import LocalObjectStore
from ..core.config import settings
from ..exceptions import (
    FileRecordNotFoundError,
    FolderNotFoundError,
    ForbiddenError,
    NotFoundError,
    PasswordRequiredError,
    ShareLinkExpiredError,
    ShareLinkNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from ..models import AccessGrant, File, Folder, ShareLink, User
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository

logger = logging.getLogger(__name__)

_TOKEN_ALPHABET = string.ascii_letters + string.digits

EXPIRY_OPTIONS = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
_NO_EXPIRY = (None, "", "never")

GRANT_PERMISSIONS = ("view", "edit")


class TargetKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class ShareTarget:
    """What is being shared: a file or a folder, by id."""
    kind: TargetKind
    id: str

    @classmethod
    def file(cls, file_id: str) -> "ShareTarget":
        return cls(TargetKind.FILE, file_id)

    @classmethod
    def folder(cls, folder_id: str) -> "ShareTarget":
        return cls(TargetKind.FOLDER, folder_id)


@dataclass
class ResolvedShare:
    """A public link that passed every check, with its target loaded."""
    link: ShareLink
    file: Optional[File] = None
    folder: Optional[Folder] = None
    files: List[File] = field(default_factory=list)
    subfolders: List[Folder] = field(default_factory=list)
    url: Optional[str] = None


@dataclass
class SharedItem:
    """One entry of a shared-with-me listing."""
    kind: TargetKind
    item: object
    permission: str
    shared_by: Optional[User] = None
    shared_at: Optional[datetime] = None


def generate_share_token(length: Optional[int] = None) -> str:
    length = length or settings.share_token_length
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def parse_expiry(expires_in: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Map an expiry option to an absolute time. Unknown options are rejected."""
    if expires_in in _NO_EXPIRY:
        return None
    if expires_in not in EXPIRY_OPTIONS:
        raise ValidationError(
            f"Invalid expiresIn: {expires_in}. Must be one of {', '.join(EXPIRY_OPTIONS)}",
            field="expiresIn",
        )
    now = now or datetime.now(timezone.utc)
    return now + EXPIRY_OPTIONS[expires_in]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SharingService:
    """Public links and internal grants behind one interface.

    Public methods:
        create_public_link
        resolve_public_link     -- no auth; 404 / 410 / 401 checks
        list_public_links
        delete_public_link
        grant_internal_access   -- upsert grants, notify and email grantee
        revoke_internal_access
        list_access             -- collaborators on a target
        list_shared_with        -- root grants or drill-down into a shared folder
    """

    def __init__(self, db: Session, store: LocalObjectStore):
        self.db = db
        self.store = store
        self.file_repo = FileRepository(db)
        self.folder_repo = FolderRepository(db)

    # ------------------------------------------------------------------
    # Public links
    # ------------------------------------------------------------------

    def create_public_link(
        self,
        target: ShareTarget,
        owner_id: str,
        password: Optional[str] = None,
        expires_in: Optional[str] = None,
        allow_download: bool = True,
        now: Optional[datetime] = None,
    ) -> ShareLink:
        item = self._get_owned_target(target, owner_id)
        expires_at = parse_expiry(expires_in, now)

        link = ShareLink(
            token=generate_share_token(),
            target_type=target.kind.value,
            target_id=target.id,
            password_hash=bcrypt.hash(password) if password else None,
            expires_at=expires_at,
            allow_download=allow_download,
            created_by=owner_id,
        )
        self.db.add(link)
        self.db.commit()
        self.db.refresh(link)

        activity_service.log_activity(
            self.db, owner_id, "share_link_create", target.kind.value, target.id, item.name,
            {"linkId": link.id, "expiresIn": expires_in, "hasPassword": link.has_password},
        )
        return link

    def resolve_public_link(
        self,
        token: str,
        password: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ResolvedShare:
        """Check a token and load what it points at.

        Order: unknown token (404), expired (410), password (401).
        """
        link = self.db.query(ShareLink).filter(ShareLink.token == token).first()
        if link is None:
            raise ShareLinkNotFoundError()

        now = now or datetime.now(timezone.utc)
        if link.expires_at is not None and now > _as_utc(link.expires_at):
            raise ShareLinkExpiredError()

        if link.password_hash is not None:
            if not password or not bcrypt.verify(password, link.password_hash):
                raise PasswordRequiredError()

        resolved = ResolvedShare(link=link)
        if link.target_type == TargetKind.FILE.value:
            file = self.file_repo.get_by_id_optional(link.target_id)
            if file is None:
                raise FileRecordNotFoundError(link.target_id)
            resolved.file = file
            if link.allow_download:
                resolved.url = self.store.signed_url(file.storage_key)
        else:
            folder = self.folder_repo.get_by_id_optional(link.target_id)
            if folder is None:
                raise FolderNotFoundError(link.target_id)
            resolved.folder = folder
            resolved.files = self.file_repo.list_in_folder(folder.id)
            resolved.subfolders = (
                self.db.query(Folder)
                .filter(Folder.parent_id == folder.id)
                .order_by(Folder.name.asc())
                .all()
            )
        return resolved

    def file_url(self, file: File) -> str:
        return self.store.signed_url(file.storage_key)

    def list_public_links(self, target: ShareTarget, owner_id: str) -> List[ShareLink]:
        self._get_owned_target(target, owner_id)
        return (
            self.db.query(ShareLink)
            .filter(
                ShareLink.target_type == target.kind.value,
                ShareLink.target_id == target.id,
                ShareLink.created_by == owner_id,
            )
            .order_by(ShareLink.created_at.desc())
            .all()
        )

    def delete_public_link(self, link_id: str, owner_id: str) -> None:
        link = (
            self.db.query(ShareLink)
            .filter(ShareLink.id == link_id, ShareLink.created_by == owner_id)
            .first()
        )
        if link is None:
            raise ShareLinkNotFoundError()
        target_type, target_id = link.target_type, link.target_id
        self.db.delete(link)
        self.db.commit()

        activity_service.log_activity(
            self.db, owner_id, "share_link_delete", target_type, target_id, "",
            {"linkId": link_id},
        )

    # ------------------------------------------------------------------
    # Internal grants
    # ------------------------------------------------------------------

    def grant_internal_access(
        self,
        owner_id: str,
        email: Optional[str],
        targets: List[ShareTarget],
        permission: str = "view",
    ) -> List[AccessGrant]:
        """Share *targets* with the user registered under *email*.

        Folder targets also grant every file currently inside the folder.
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Email is required", field="email")
        if permission not in GRANT_PERMISSIONS:
            raise ValidationError("Permission must be view or edit", field="permission")
        if not targets:
            raise ValidationError("Nothing to share", field="fileId")

        items = [(target, self._get_owned_target(target, owner_id)) for target in targets]

        grantee = self.db.query(User).filter(User.email == email).first()
        if grantee is None:
            raise UserNotFoundError("No user found with that email")
        if grantee.id == owner_id:
            raise ValidationError("You cannot share with yourself", field="email")

        grants: List[AccessGrant] = []
        for target, item in items:
            grants.append(self._upsert_grant(target, grantee.id, owner_id, permission))
            if target.kind == TargetKind.FOLDER:
                for file in self.file_repo.list_in_folder(target.id):
                    self._upsert_grant(ShareTarget.file(file.id), grantee.id, owner_id, permission)
        self.db.commit()

        sharer = self.db.query(User).filter(User.id == owner_id).first()
        self._notify_grantee(sharer, grantee, items)

        for target, item in items:
            activity_service.log_activity(
                self.db, owner_id, "share", target.kind.value, target.id, item.name,
                {"sharedWith": grantee.email, "permission": permission},
            )
        return grants

    def revoke_internal_access(self, target: ShareTarget, grantee_id: str, owner_id: str) -> None:
        """Remove a grant. Revoking a folder also removes the file grants it created."""
        item = self._get_owned_target(target, owner_id)
        grant = self._find_grant(target, grantee_id)
        if grant is None:
            raise NotFoundError("Access grant not found")
        self.db.delete(grant)

        if target.kind == TargetKind.FOLDER:
            file_ids = [f.id for f in self.file_repo.list_in_folder(target.id)]
            if file_ids:
                self.db.query(AccessGrant).filter(
                    AccessGrant.target_type == TargetKind.FILE.value,
                    AccessGrant.target_id.in_(file_ids),
                    AccessGrant.shared_with_user_id == grantee_id,
                    AccessGrant.shared_by == owner_id,
                ).delete(synchronize_session=False)
        self.db.commit()

        activity_service.log_activity(
            self.db, owner_id, "unshare", target.kind.value, target.id, item.name,
            {"userId": grantee_id},
        )

    def list_access(self, target: ShareTarget, owner_id: str) -> List[tuple]:
        """``(grant, user)`` pairs for everyone the target is shared with."""
        self._get_owned_target(target, owner_id)
        return (
            self.db.query(AccessGrant, User)
            .join(User, User.id == AccessGrant.shared_with_user_id)
            .filter(
                AccessGrant.target_type == target.kind.value,
                AccessGrant.target_id == target.id,
            )
            .order_by(AccessGrant.shared_at.asc())
            .all()
        )

    def list_shared_with(self, user_id: str, folder_id: Optional[str] = None) -> List[SharedItem]:
        """Items shared with *user_id*.

        Without *folder_id*: everything granted directly, except files that sit
        in a folder that is itself shared with the user.
        With *folder_id*: the folder's active files and subfolders, provided the
        user reaches it through a grant on it or an ancestor.
        """
        if folder_id is not None:
            return self._list_shared_folder(user_id, folder_id)

        grants = (
            self.db.query(AccessGrant)
            .filter(AccessGrant.shared_with_user_id == user_id)
            .order_by(AccessGrant.shared_at.desc())
            .all()
        )
        sharer_ids = {g.shared_by for g in grants}
        sharers = {u.id: u for u in self.db.query(User).filter(User.id.in_(sharer_ids)).all()} if sharer_ids else {}

        folder_grants = [g for g in grants if g.target_type == TargetKind.FOLDER.value]
        file_grants = [g for g in grants if g.target_type == TargetKind.FILE.value]
        shared_folder_ids = {g.target_id for g in folder_grants}

        items: List[SharedItem] = []
        if folder_grants:
            folders = {
                f.id: f for f in
                self.db.query(Folder).filter(Folder.id.in_(shared_folder_ids)).all()
            }
            for grant in folder_grants:
                folder = folders.get(grant.target_id)
                if folder is not None:
                    items.append(SharedItem(
                        TargetKind.FOLDER, folder, grant.permission,
                        sharers.get(grant.shared_by), grant.shared_at,
                    ))
        if file_grants:
            files = {
                f.id: f for f in
                self.db.query(File).filter(
                    File.id.in_([g.target_id for g in file_grants]),
                    File.is_deleted.is_(False),
                ).all()
            }
            for grant in file_grants:
                file = files.get(grant.target_id)
                if file is None or file.folder_id in shared_folder_ids:
                    continue
                items.append(SharedItem(
                    TargetKind.FILE, file, grant.permission,
                    sharers.get(grant.shared_by), grant.shared_at,
                ))
        return items

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _list_shared_folder(self, user_id: str, folder_id: str) -> List[SharedItem]:
        folder_service = FolderService(self.db)
        if not folder_service.has_access(folder_id, user_id, "view"):
            raise ForbiddenError("You do not have access to this folder")
        permission = "edit" if folder_service.has_access(folder_id, user_id, "edit") else "view"

        folder = self.folder_repo.get_by_id(folder_id)
        owner = self.db.query(User).filter(User.id == folder.owner_id).first()
        subfolders = (
            self.db.query(Folder)
            .filter(Folder.parent_id == folder_id)
            .order_by(Folder.name.asc())
            .all()
        )
        items = [SharedItem(TargetKind.FOLDER, sub, permission, owner) for sub in subfolders]
        items.extend(
            SharedItem(TargetKind.FILE, file, permission, owner)
            for file in self.file_repo.list_in_folder(folder_id)
        )
        return items

    def _get_owned_target(self, target: ShareTarget, owner_id: str):
        if target.kind == TargetKind.FILE:
            return self.file_repo.get_owned(target.id, owner_id)
        return self.folder_repo.get_owned(target.id, owner_id)

    def _find_grant(self, target: ShareTarget, grantee_id: str) -> Optional[AccessGrant]:
        return (
            self.db.query(AccessGrant)
            .filter(
                AccessGrant.target_type == target.kind.value,
                AccessGrant.target_id == target.id,
                AccessGrant.shared_with_user_id == grantee_id,
            )
            .first()
        )

    def _upsert_grant(
        self, target: ShareTarget, grantee_id: str, owner_id: str, permission: str
    ) -> AccessGrant:
        grant = self._find_grant(target, grantee_id)
        if grant is not None:
            grant.permission = permission
            grant.shared_by = owner_id
            return grant
        grant = AccessGrant(
            target_type=target.kind.value,
            target_id=target.id,
            shared_with_user_id=grantee_id,
            permission=permission,
            shared_by=owner_id,
        )
        self.db.add(grant)
        self.db.flush()
        return grant

    def _notify_grantee(self, sharer: Optional[User], grantee: User, items: list) -> None:
        sharer_name = (sharer.name or sharer.email) if sharer else "Someone"
        if len(items) == 1:
            target, item = items[0]
            kind = target.kind.value
            item_name = item.name
            link = f"/shared?folderId={target.id}" if target.kind == TargetKind.FOLDER else "/shared"
        else:
            kind = "file"
            item_name = f"{len(items)} files"
            link = "/shared"

        notification_service.create_notification(
            self.db,
            user_id=grantee.id,
            type=f"share_{kind}",
            title=f"{sharer_name} shared a {kind} with you",
            message=f"{sharer_name} shared \"{item_name}\" with you",
            link=link,
            email_to=grantee.email,
            email_html=email_service.render_share_email(
                sharer_name, item_name, kind, f"{settings.public_app_url}{link}"
            ),
        )
