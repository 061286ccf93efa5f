"""Script repository for store operations."""

from collections import Counter
from typing import Dict, Iterable, List

from ..exceptions import ScriptNotFoundError
from ..schemas.script import Script
from .base import BaseRepository
from .document_store import ASCENDING, DESCENDING, Filter

SCRIPT_SORT_FIELDS = ("created_at", "updated_at", "title")


class ScriptRepository(BaseRepository[Script]):
    """Repository for script documents (version history embedded)."""

    collection = "scripts"
    schema = Script
    not_found_error = ScriptNotFoundError
    indexes = (
        ("scripts_by_owner_updated_at", ("owner_id", "updated_at"), False),
        ("scripts_by_owner_project_folder", ("owner_id", "project_id", "folder_id"), False),
        ("scripts_by_project", ("project_id",), False),
        ("scripts_by_status", ("metadata.status",), False),
        ("scripts_by_content_type", ("metadata.content_type",), False),
        ("scripts_by_created_at", ("created_at",), False),
    )
    text_fields = ("title", "content", "metadata.tags")

    def search(
        self,
        criteria: Filter,
        skip: int = 0,
        limit: int = 50,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
    ) -> List[Script]:
        direction = ASCENDING if sort_order == "asc" else DESCENDING
        return self.find(criteria, sort=[(sort_by, direction)], skip=skip, limit=limit)

    def get_in_folders(self, project_id: str, folder_ids: Iterable[str]) -> List[Script]:
        return self.find({"project_id": project_id, "folder_id": list(folder_ids)})

    def count_by_folder(self, project_id: str) -> Dict[str, int]:
        """Number of scripts per folder_id within a project."""
        return dict(Counter(s.folder_id for s in self.find({"project_id": project_id})))

    def delete_by_project(self, project_id: str) -> int:
        return self.store.delete_many({"project_id": project_id})

    def delete_in_folders(self, project_id: str, folder_ids: Iterable[str]) -> int:
        return self.store.delete_many({"project_id": project_id, "folder_id": list(folder_ids)})
