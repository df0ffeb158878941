"""Deep module for file records: upload, listing, rename, star, move and the
trash lifecycle.

Lifecycle (see models.file.FileState):
    upload          -> ACTIVE
    soft_delete     ACTIVE  -> TRASHED   quota unchanged
    restore         TRASHED -> ACTIVE
    permanently_delete / empty_trash
                    TRASHED -> PURGED    blob removed, quota released

Bytes are only removed from the object store on the PURGED transition.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import activity_service, permission_service
from .folder_service import FolderService
from .storage_service import LocalObjectStore, generate_file_key
from ..exceptions import (
    ArciveException,
    FileRecordNotFoundError,
    FolderNotFoundError,
    QuotaExceededError,
    ValidationError,
)
from ..models import AccessGrant, File, FileState, Folder, ShareLink
from ..models.file import can_transition
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
SEARCH_MIN_LENGTH = 2
SEARCH_FILE_LIMIT = 20
SEARCH_FOLDER_LIMIT = 10

FILE_TYPES = ("image", "video", "audio", "document", "folder")
DATE_RANGES = ("today", "week", "month", "year")

_DOCUMENT_MIME_PATTERNS = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument%",
    "application/vnd.ms-%",
    "application/vnd.oasis.opendocument%",
    "application/rtf",
    "text/%",
)


@dataclass
class SearchResult:
    files: List[File]
    folders: List[Folder]


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("File name is required", field="name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"File name must be at most {MAX_NAME_LENGTH} characters", field="name")
    return name


def _date_cutoff(date_range: str, now: datetime) -> datetime:
    if date_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return now - timedelta(days=30)
    return now - timedelta(days=365)


class FileService:
    """All file record operations behind a simple interface.

    Public methods:
        upload              -- admission, store bytes, insert row, charge quota
        list_files          -- active files (optionally one folder / starred only)
        list_trash
        get_file            -- owned, active
        rename_file
        toggle_star
        move_file
        soft_delete
        restore
        permanently_delete
        empty_trash
        search
        get_stats
    """

    def __init__(self, db: Session, store: LocalObjectStore):
        self.db = db
        self.store = store
        self.file_repo = FileRepository(db)
        self.folder_repo = FolderRepository(db)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload(
        self,
        owner_id: str,
        name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> File:
        """Store *data* as a new file owned by *owner_id*.

        Raises QuotaExceededError when admission fails and FolderNotFoundError
        when the target folder is neither owned nor shared with edit rights.
        """
        clean = _clean_name(name)
        size = len(data)

        permission = permission_service.get_or_create_permission(self.db, owner_id)
        decision = permission_service.validate_upload(permission, size)
        if not decision.valid:
            logger.info(
                "Upload rejected",
                extra={"user_id": owner_id, "size": size, "reason": decision.reason},
            )
            raise QuotaExceededError(decision.error, decision.reason)

        if folder_id and not FolderService(self.db).has_access(folder_id, owner_id, "edit"):
            raise FolderNotFoundError(folder_id)

        key = generate_file_key(owner_id, clean)
        content_type = mime_type or "application/octet-stream"
        self.store.put(key, data, content_type)

        file = File(
            name=clean,
            mime_type=content_type,
            size=size,
            storage_key=key,
            folder_id=folder_id or None,
            owner_id=owner_id,
        )
        try:
            self.db.add(file)
            self.db.flush()
            reserved = permission_service.reserve_storage(self.db, owner_id, size)
            if reserved:
                self.db.commit()
            else:
                self.db.rollback()
        except SQLAlchemyError:
            self.db.rollback()
            self._discard_blob(key)
            raise

        if not reserved:
            # Another upload used the remaining quota after admission.
            self._discard_blob(key)
            self.db.refresh(permission)
            decision = permission_service.validate_upload(permission, size)
            logger.info("Upload lost quota race", extra={"user_id": owner_id, "size": size})
            raise QuotaExceededError(decision.error or "Not enough storage quota.", "quota_exceeded")
        self.db.refresh(file)

        logger.info("File uploaded", extra={"file_id": file.id, "user_id": owner_id, "size": size})
        activity_service.log_activity(
            self.db, owner_id, "upload", "file", file.id, file.name,
            {"size": size, "mimeType": content_type, "folderId": file.folder_id},
        )
        return file

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_files(
        self,
        owner_id: str,
        folder_id: Optional[str] = None,
        starred: bool = False,
    ) -> List[File]:
        return self.file_repo.list_active(owner_id, folder_id=folder_id or None, starred=starred)

    def list_trash(self, owner_id: str) -> List[File]:
        return self.file_repo.list_trashed(owner_id)

    def get_file(self, file_id: str, owner_id: str) -> File:
        return self.file_repo.get_owned(file_id, owner_id)

    def signed_url(self, file: File) -> str:
        return self.store.signed_url(file.storage_key)

    # ------------------------------------------------------------------
    # Metadata mutations
    # ------------------------------------------------------------------

    def rename_file(self, file_id: str, name: Optional[str], owner_id: str) -> File:
        file = self.file_repo.get_owned(file_id, owner_id)
        clean = _clean_name(name)
        old_name = file.name
        file.name = clean
        file.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(file)

        activity_service.log_activity(
            self.db, owner_id, "rename", "file", file.id, file.name, {"oldName": old_name},
        )
        return file

    def toggle_star(self, file_id: str, owner_id: str, starred: Optional[bool] = None) -> File:
        """Set the star flag, or flip it when *starred* is None."""
        file = self.file_repo.get_owned(file_id, owner_id)
        file.is_starred = (not file.is_starred) if starred is None else starred
        self.db.commit()
        self.db.refresh(file)

        activity_service.log_activity(
            self.db, owner_id, "star" if file.is_starred else "unstar", "file", file.id, file.name,
        )
        return file

    def move_file(self, file_id: str, new_folder_id: Optional[str], owner_id: str) -> File:
        """Move a file into an owned folder, or to the root when None."""
        file = self.file_repo.get_owned(file_id, owner_id)
        new_folder_id = new_folder_id or None
        if new_folder_id is not None:
            self.folder_repo.get_owned(new_folder_id, owner_id)

        old_folder_id = file.folder_id
        file.folder_id = new_folder_id
        file.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(file)

        activity_service.log_activity(
            self.db, owner_id, "move", "file", file.id, file.name,
            {"fromFolderId": old_folder_id, "toFolderId": new_folder_id},
        )
        return file

    # ------------------------------------------------------------------
    # Trash lifecycle
    # ------------------------------------------------------------------

    def soft_delete(self, file_id: str, owner_id: str) -> File:
        file = self.file_repo.get_owned(file_id, owner_id)
        self._check_transition(file, FileState.TRASHED)
        file.is_deleted = True
        file.deleted_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(file)

        activity_service.log_activity(
            self.db, owner_id, "delete", "file", file.id, file.name, {"size": file.size},
        )
        return file

    def restore(self, file_id: str, owner_id: str) -> File:
        file = self.file_repo.get_trashed(file_id, owner_id)
        self._check_transition(file, FileState.ACTIVE)
        file.is_deleted = False
        file.deleted_at = None
        self.db.commit()
        self.db.refresh(file)

        activity_service.log_activity(
            self.db, owner_id, "restore", "file", file.id, file.name,
        )
        return file

    def permanently_delete(self, file_id: str, owner_id: str) -> int:
        """Purge one trashed file. Returns the bytes released.

        The row is purged and committed before the blob is removed, so a
        failed purge leaves a restorable file with its bytes intact.
        """
        file = self.file_repo.get_trashed(file_id, owner_id)
        self._check_transition(file, FileState.PURGED)
        name, size, key = file.name, file.size, file.storage_key

        try:
            self._purge_row(file)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self._discard_blob(key)

        activity_service.log_activity(
            self.db, owner_id, "permanent_delete", "file", file_id, name, {"size": size},
        )
        return size

    def empty_trash(self, owner_id: str) -> tuple[int, int]:
        """Purge every trashed file. Returns ``(count, freed_bytes)``.

        Rows are purged in one transaction; blobs are removed after it
        commits. A blob that cannot be deleted is logged and does not stop
        the rest.
        """
        trashed = self.file_repo.list_trashed(owner_id)
        if not trashed:
            return 0, 0

        keys = [file.storage_key for file in trashed]
        freed = sum(file.size for file in trashed)
        try:
            for file in trashed:
                self._purge_row(file)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        for key in keys:
            self._discard_blob(key)

        activity_service.log_activity(
            self.db, owner_id, "empty_trash", "file", "bulk", f"{len(keys)} files",
            {"freedBytes": freed, "count": len(keys)},
        )
        return len(keys), freed

    # ------------------------------------------------------------------
    # Search & stats
    # ------------------------------------------------------------------

    def search(
        self,
        owner_id: str,
        q: Optional[str] = None,
        file_type: Optional[str] = None,
        starred: bool = False,
        date_range: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SearchResult:
        """Name search over the owner's active files and folders.

        A query shorter than two characters is allowed only when at least one
        filter is set.
        """
        term = (q or "").strip()
        has_filter = bool(file_type or starred or date_range)
        if len(term) < SEARCH_MIN_LENGTH and not has_filter:
            raise ValidationError(
                f"Search query must be at least {SEARCH_MIN_LENGTH} characters", field="q"
            )
        if file_type and file_type not in FILE_TYPES:
            raise ValidationError(f"Invalid type: {file_type}", field="type")
        if date_range and date_range not in DATE_RANGES:
            raise ValidationError(f"Invalid date range: {date_range}", field="date")

        now = now or datetime.now(timezone.utc)
        cutoff = _date_cutoff(date_range, now) if date_range else None

        files: List[File] = []
        if file_type != "folder":
            query = self.db.query(File).filter(File.owner_id == owner_id, File.is_deleted.is_(False))
            if term:
                query = query.filter(File.name.ilike(f"%{term}%"))
            if file_type in ("image", "video", "audio"):
                query = query.filter(File.mime_type.like(f"{file_type}/%"))
            elif file_type == "document":
                query = query.filter(or_(*[File.mime_type.like(p) for p in _DOCUMENT_MIME_PATTERNS]))
            if starred:
                query = query.filter(File.is_starred.is_(True))
            if cutoff is not None:
                query = query.filter(File.created_at >= cutoff)
            files = query.order_by(File.updated_at.desc()).limit(SEARCH_FILE_LIMIT).all()

        folders: List[Folder] = []
        if file_type in (None, "", "folder"):
            query = self.db.query(Folder).filter(Folder.owner_id == owner_id)
            if term:
                query = query.filter(Folder.name.ilike(f"%{term}%"))
            if starred:
                query = query.filter(Folder.is_starred.is_(True))
            if cutoff is not None:
                query = query.filter(Folder.created_at >= cutoff)
            folders = query.order_by(Folder.updated_at.desc()).limit(SEARCH_FOLDER_LIMIT).all()

        return SearchResult(files=files, folders=folders)

    def get_stats(self, owner_id: str) -> dict:
        total_files, total_size = self.file_repo.active_totals(owner_id)
        permission = permission_service.get_or_create_permission(self.db, owner_id)
        return {
            "totalFiles": total_files,
            "totalSize": total_size,
            "totalFolders": self.folder_repo.count_for_owner(owner_id),
            "trashedFiles": len(self.file_repo.list_trashed(owner_id)),
            **permission_service.storage_summary(permission),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_transition(file: File, target: FileState) -> None:
        if not can_transition(file.state, target):
            raise FileRecordNotFoundError(file.id)

    def _purge_row(self, file: File) -> None:
        """Delete the row and anything that points at it, and release its quota."""
        self.db.query(AccessGrant).filter(
            AccessGrant.target_type == "file", AccessGrant.target_id == file.id
        ).delete(synchronize_session=False)
        self.db.query(ShareLink).filter(
            ShareLink.target_type == "file", ShareLink.target_id == file.id
        ).delete(synchronize_session=False)
        permission_service.adjust_storage_used(self.db, file.owner_id, -file.size)
        self.db.delete(file)

    def _discard_blob(self, key: str) -> None:
        try:
            self.store.delete(key)
        except ArciveException as e:
            logger.warning("Failed to delete blob %s: %s", key, e.message)
