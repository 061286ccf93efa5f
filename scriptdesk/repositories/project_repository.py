"""Project repository for store operations."""

from typing import List

from ..exceptions import ProjectNotFoundError
from ..schemas.project import Project
from .base import BaseRepository
from .document_store import ASCENDING, DESCENDING

PROJECT_SORT_FIELDS = ("created_at", "updated_at", "title")


class ProjectRepository(BaseRepository[Project]):
    """Repository for project documents (folder forest embedded)."""

    collection = "projects"
    schema = Project
    not_found_error = ProjectNotFoundError
    indexes = (
        ("projects_by_owner_updated_at", ("owner_id", "updated_at"), False),
        ("projects_by_owner", ("owner_id",), False),
        ("projects_by_created_at", ("created_at",), False),
    )
    text_fields = ("title", "description")

    def get_by_owner(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 50,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
    ) -> List[Project]:
        direction = ASCENDING if sort_order == "asc" else DESCENDING
        return self.find({"owner_id": owner_id}, sort=[(sort_by, direction)], skip=skip, limit=limit)

    def count_by_owner(self, owner_id: str) -> int:
        return self.count({"owner_id": owner_id})
