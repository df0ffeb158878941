"""Repository for folder database operations."""

from typing import List, Optional

from sqlalchemy import select

from .base import BaseRepository
from ..exceptions import FolderNotFoundError
from ..models import Folder


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def list_children(self, owner_id: str, parent_id: Optional[str]) -> List[Folder]:
        """Direct children of *parent_id* (None = root), sorted by name."""
        query = self.db.query(Folder).filter(Folder.owner_id == owner_id)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        return query.order_by(Folder.name.asc()).all()

    def list_starred(self, owner_id: str) -> List[Folder]:
        return (
            self.db.query(Folder)
            .filter(Folder.owner_id == owner_id, Folder.is_starred.is_(True))
            .order_by(Folder.name.asc())
            .all()
        )

    def ancestor_ids(self, folder_id: str) -> List[str]:
        """Ids on the parent chain of *folder_id*, including itself.

        Recursive CTE with UNION (not UNION ALL) so a corrupted cycle
        terminates instead of looping.
        """
        chain = (
            select(Folder.id, Folder.parent_id)
            .where(Folder.id == folder_id)
            .cte(name="ancestors", recursive=True)
        )
        chain = chain.union(
            select(Folder.id, Folder.parent_id).where(Folder.id == chain.c.parent_id)
        )
        return [row[0] for row in self.db.execute(select(chain.c.id)).all()]

    def breadcrumb(self, folder_id: str) -> List[Folder]:
        """Folders from the root down to *folder_id*."""
        path: List[Folder] = []
        seen = set()
        current = self.get_by_id_optional(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            path.append(current)
            if current.parent_id is None:
                break
            current = self.get_by_id_optional(current.parent_id)
        path.reverse()
        return path

    def search(self, owner_id: str, term: str, limit: int = 10) -> List[Folder]:
        pattern = f"%{term}%"
        return (
            self.db.query(Folder)
            .filter(Folder.owner_id == owner_id, Folder.name.ilike(pattern))
            .order_by(Folder.updated_at.desc())
            .limit(limit)
            .all()
        )

    def count_for_owner(self, owner_id: str) -> int:
        return self.db.query(Folder).filter(Folder.owner_id == owner_id).count()
