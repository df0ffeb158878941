"""Deep module for folder operations: CRUD, move with cycle guard, delete, access.

Every public method is scoped to an owner. A folder that exists but belongs to
someone else is reported exactly like a missing folder.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from . import activity_service
from ..exceptions import (
    CircularMoveError,
    FolderNotFoundError,
    SelfParentError,
    ValidationError,
)
from ..models import AccessGrant, File, Folder, ShareLink
from ..repositories.folder_repository import FolderRepository

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255

# A grant of the key permission satisfies any requirement in the value set.
_SATISFIES = {
    "edit": {"edit", "view"},
    "view": {"view"},
}


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Folder name is required", field="name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Folder name must be at most {MAX_NAME_LENGTH} characters", field="name")
    return name


class FolderService:
    """Folder hierarchy behind a narrow interface.

    Public methods:
        list_folders     -- children of a parent (None = root) or starred
        get_folder       -- owned lookup
        create_folder    -- name trimmed, parent must be owned
        rename_folder
        toggle_star
        move_folder      -- self-parent and cycle guards
        delete_folder    -- contents move to root
        get_ancestor_ids
        breadcrumb
        has_access       -- owner or grant on the folder or an ancestor
    """

    def __init__(self, db: Session):
        self.db = db
        self.folder_repo = FolderRepository(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_folders(
        self,
        owner_id: str,
        parent_id: Optional[str] = None,
        starred: bool = False,
    ) -> List[Folder]:
        if starred:
            return self.folder_repo.list_starred(owner_id)
        return self.folder_repo.list_children(owner_id, parent_id or None)

    def get_folder(self, folder_id: str, owner_id: str) -> Folder:
        return self.folder_repo.get_owned(folder_id, owner_id)

    def get_ancestor_ids(self, folder_id: str) -> List[str]:
        return self.folder_repo.ancestor_ids(folder_id)

    def breadcrumb(self, folder_id: str, owner_id: str) -> List[Folder]:
        self.folder_repo.get_owned(folder_id, owner_id)
        return self.folder_repo.breadcrumb(folder_id)

    def has_access(self, folder_id: str, user_id: str, required: str = "view") -> bool:
        """Whether *user_id* may act on *folder_id* with *required* permission.

        Owners always may. Otherwise a grant on the folder or any ancestor
        whose permission satisfies *required* is needed.
        """
        folder = self.folder_repo.get_by_id_optional(folder_id)
        if folder is None:
            return False
        if folder.owner_id == user_id:
            return True

        ancestor_ids = self.folder_repo.ancestor_ids(folder_id)
        grants = (
            self.db.query(AccessGrant.permission)
            .filter(
                AccessGrant.target_type == "folder",
                AccessGrant.target_id.in_(ancestor_ids),
                AccessGrant.shared_with_user_id == user_id,
            )
            .all()
        )
        return any(required in _SATISFIES.get(perm, set()) for (perm,) in grants)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(self, name: Optional[str], parent_id: Optional[str], owner_id: str) -> Folder:
        clean = _clean_name(name)
        if parent_id:
            parent = self.folder_repo.get_by_id_optional(parent_id)
            if parent is None or parent.owner_id != owner_id:
                raise FolderNotFoundError(parent_id, "Parent folder not found")

        folder = Folder(name=clean, parent_id=parent_id or None, owner_id=owner_id)
        self.db.add(folder)
        self.db.commit()
        self.db.refresh(folder)

        activity_service.log_activity(
            self.db, owner_id, "create_folder", "folder", folder.id, folder.name,
            {"parentId": folder.parent_id},
        )
        return folder

    def rename_folder(self, folder_id: str, name: Optional[str], owner_id: str) -> Folder:
        folder = self.folder_repo.get_owned(folder_id, owner_id)
        clean = _clean_name(name)
        old_name = folder.name
        folder.name = clean
        folder.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(folder)

        activity_service.log_activity(
            self.db, owner_id, "rename", "folder", folder.id, folder.name,
            {"oldName": old_name},
        )
        return folder

    def toggle_star(self, folder_id: str, owner_id: str, starred: Optional[bool] = None) -> Folder:
        """Set the star flag, or flip it when *starred* is None."""
        folder = self.folder_repo.get_owned(folder_id, owner_id)
        folder.is_starred = (not folder.is_starred) if starred is None else starred
        self.db.commit()
        self.db.refresh(folder)

        activity_service.log_activity(
            self.db, owner_id, "star" if folder.is_starred else "unstar",
            "folder", folder.id, folder.name,
        )
        return folder

    def move_folder(self, folder_id: str, new_parent_id: Optional[str], owner_id: str) -> Folder:
        """Re-parent a folder. None moves it to the root.

        Order of checks: folder owned, not its own parent, new parent owned,
        new parent not inside the folder's subtree.
        """
        folder = self.folder_repo.get_owned(folder_id, owner_id)

        new_parent_id = new_parent_id or None
        if new_parent_id is not None:
            if new_parent_id == folder_id:
                raise SelfParentError(folder_id)
            parent = self.folder_repo.get_by_id_optional(new_parent_id)
            if parent is None or parent.owner_id != owner_id:
                raise FolderNotFoundError(new_parent_id, "Target folder not found")
            if folder_id in self.folder_repo.ancestor_ids(new_parent_id):
                raise CircularMoveError(folder_id, new_parent_id)

        old_parent_id = folder.parent_id
        folder.parent_id = new_parent_id
        folder.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(folder)

        logger.info(
            "Folder moved",
            extra={"folder_id": folder_id, "from_parent": old_parent_id, "to_parent": new_parent_id},
        )
        activity_service.log_activity(
            self.db, owner_id, "move", "folder", folder.id, folder.name,
            {"fromParentId": old_parent_id, "toParentId": new_parent_id},
        )
        return folder

    def delete_folder(self, folder_id: str, owner_id: str) -> None:
        """Delete a folder. Its files and direct subfolders move to the root."""
        folder = self.folder_repo.get_owned(folder_id, owner_id)
        name = folder.name

        moved_files = (
            self.db.query(File)
            .filter(File.folder_id == folder_id)
            .update({File.folder_id: None}, synchronize_session=False)
        )
        moved_folders = (
            self.db.query(Folder)
            .filter(Folder.parent_id == folder_id)
            .update({Folder.parent_id: None}, synchronize_session=False)
        )
        self.db.query(AccessGrant).filter(
            AccessGrant.target_type == "folder", AccessGrant.target_id == folder_id
        ).delete(synchronize_session=False)
        self.db.query(ShareLink).filter(
            ShareLink.target_type == "folder", ShareLink.target_id == folder_id
        ).delete(synchronize_session=False)

        self.db.delete(folder)
        self.db.commit()

        activity_service.log_activity(
            self.db, owner_id, "delete_folder", "folder", folder_id, name,
            {"movedFiles": moved_files, "movedFolders": moved_folders},
        )
