"""Repository for file metadata operations.

The default query hides trashed files. Trash views use the explicit
``*_trashed`` helpers.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query

from .base import BaseRepository
from ..exceptions import FileRecordNotFoundError
from ..models import File


class FileRepository(BaseRepository[File]):
    """Data access layer for file metadata."""

    model_class = File
    not_found_error = FileRecordNotFoundError

    def _base_query(self) -> Query:
        return self.db.query(File).filter(File.is_deleted.is_(False))

    def list_active(
        self,
        owner_id: str,
        folder_id: Optional[str] = None,
        starred: bool = False,
    ) -> List[File]:
        """Active files, newest first. *folder_id* narrows to one folder."""
        query = self._base_query().filter(File.owner_id == owner_id)
        if folder_id is not None:
            query = query.filter(File.folder_id == folder_id)
        if starred:
            query = query.filter(File.is_starred.is_(True))
        return query.order_by(File.created_at.desc()).all()

    def list_in_folder(self, folder_id: str) -> List[File]:
        """Active files directly inside a folder, regardless of owner."""
        return (
            self._base_query()
            .filter(File.folder_id == folder_id)
            .order_by(File.name.asc())
            .all()
        )

    def get_trashed(self, file_id: str, owner_id: str) -> File:
        file = (
            self.db.query(File)
            .filter(File.id == file_id, File.owner_id == owner_id, File.is_deleted.is_(True))
            .first()
        )
        if file is None:
            raise FileRecordNotFoundError(file_id, "File not found in trash")
        return file

    def list_trashed(self, owner_id: str) -> List[File]:
        return (
            self.db.query(File)
            .filter(File.owner_id == owner_id, File.is_deleted.is_(True))
            .order_by(File.deleted_at.desc())
            .all()
        )

    def active_totals(self, owner_id: str) -> tuple[int, int]:
        """(count, bytes) of active files."""
        count, size = (
            self.db.query(func.count(File.id), func.coalesce(func.sum(File.size), 0))
            .filter(File.owner_id == owner_id, File.is_deleted.is_(False))
            .one()
        )
        return int(count or 0), int(size or 0)
