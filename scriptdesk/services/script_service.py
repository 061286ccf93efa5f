"""Script service: deep module for script lifecycle and version history.

Owns create, content updates, revert, move and delete.  History rules live
in versioned_script; this module loads and saves documents around them and
keeps the owning project's folder counters in step.
"""

import logging
from collections import Counter
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.identity import Clock, IdFactory, new_id, utc_now
from ..exceptions import (
    FolderNotFoundError,
    ProjectNotFoundError,
    ScriptNotFoundError,
    ValidationError,
)
from ..repositories import ProjectRepository, ScriptRepository
from ..repositories.document_store import Filter
from ..repositories.script_repository import SCRIPT_SORT_FIELDS
from ..schemas.script import (
    BulkStatusResult,
    ContentType,
    Script,
    ScriptContentUpdate,
    ScriptCreate,
    ScriptMoveRequest,
    ScriptStats,
    ScriptStatus,
    ScriptUpdate,
    ScriptVersion,
)
from . import folder_tree, versioned_script
from .project_service import ProjectService
from .validation import validate_script

logger = logging.getLogger(__name__)


class ScriptService:
    """Deep module for script operations.

    Each public method handles the complete operation, including the folder
    script-count bookkeeping on the owning project, and commits once.
    """

    def __init__(self, db: Session, clock: Clock = utc_now, id_factory: IdFactory = new_id):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory
        self.script_repo = ScriptRepository(db)
        self.project_repo = ProjectRepository(db)
        self.project_service = ProjectService(db, clock=clock, id_factory=id_factory)

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    def create_script(self, data: ScriptCreate) -> Script:
        """Create a script in an existing folder and bump that folder's count."""
        project = self.project_repo.get_by_id(data.project_id)
        folder_tree.require_folder(project.folders, data.folder_id)

        script = versioned_script.create_with_initial_version(
            data, script_id=self.id_factory(), now=self.clock()
        )
        created = self.script_repo.create(script)
        self.project_service.adjust_folder_script_count(
            data.project_id, data.folder_id, 1, commit=False
        )
        self.db.commit()

        logger.info(
            "Created script",
            extra={
                "script_id": created.id,
                "project_id": created.project_id,
                "folder_id": created.folder_id,
                "versions": len(created.versions),
            },
        )
        return created

    def get_script(self, script_id: str) -> Script:
        return self.script_repo.get_by_id(script_id)

    def list_scripts(
        self,
        owner_id: Optional[str] = None,
        project_id: Optional[str] = None,
        folder_id: Optional[str] = None,
        status: Optional[ScriptStatus] = None,
        content_type: Optional[ContentType] = None,
        skip: int = 0,
        limit: int = 50,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Script], int]:
        """Filtered page of scripts plus the total number of matches."""
        if not owner_id and not project_id:
            raise ValidationError("owner_id or project_id is required", field="owner_id")
        if sort_by not in SCRIPT_SORT_FIELDS:
            raise ValidationError(f"Cannot sort scripts by {sort_by}", field="sort_by")

        criteria: Filter = {}
        if owner_id:
            criteria["owner_id"] = owner_id
        if project_id:
            criteria["project_id"] = project_id
        if folder_id:
            criteria["folder_id"] = folder_id
        if status:
            criteria["metadata.status"] = status.value
        if content_type:
            criteria["metadata.content_type"] = content_type.value

        scripts = self.script_repo.search(criteria, skip, limit, sort_by, sort_order)
        return scripts, self.script_repo.count(criteria)

    def search_scripts(
        self,
        owner_id: str,
        query: str,
        project_id: Optional[str] = None,
        status: Optional[ScriptStatus] = None,
        content_type: Optional[ContentType] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Script], int]:
        """Owner's scripts with *query* in the title, content or a tag."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query cannot be empty", field="q")

        criteria: Filter = {"owner_id": owner_id}
        if project_id:
            criteria["project_id"] = project_id
        if status:
            criteria["metadata.status"] = status.value
        if content_type:
            criteria["metadata.content_type"] = content_type.value
        return self.script_repo.text_search(query, criteria, skip, limit)

    # ------------------------------------------------------------------
    # Content and history
    # ------------------------------------------------------------------

    def update_script(self, script_id: str, data: ScriptUpdate) -> Script:
        """Change title and/or metadata. Does not create a version."""
        script = self.script_repo.get_by_id(script_id)

        patch = {"updated_at": self.clock()}
        if data.title is not None:
            patch["title"] = data.title
        if data.metadata is not None:
            patch["metadata"] = versioned_script.merge_metadata(script.metadata, data.metadata)

        updated = script.model_copy(update=patch)
        validate_script(updated)

        saved = self.script_repo.save(updated, expected_revision=data.expected_revision)
        self.db.commit()
        logger.info("Updated script", extra={"script_id": script_id, "fields": sorted(patch)})
        return saved

    def update_content(self, script_id: str, data: ScriptContentUpdate) -> Script:
        """Set new content, appending it as the next version."""
        script = self.script_repo.get_by_id(script_id)
        updated = versioned_script.append_version(
            script, data.content, data.metadata, now=self.clock()
        )
        saved = self.script_repo.save(updated, expected_revision=data.expected_revision)
        self.db.commit()
        logger.info(
            "Appended script version",
            extra={"script_id": script_id, "version": saved.versions[-1].version},
        )
        return saved

    def revert_to_version(
        self, script_id: str, version: int, expected_revision: Optional[int] = None
    ) -> Script:
        """Carry an old version's content forward as a new version."""
        script = self.script_repo.get_by_id(script_id)
        updated = versioned_script.revert_to_version(script, version, now=self.clock())
        saved = self.script_repo.save(updated, expected_revision=expected_revision)
        self.db.commit()
        logger.info(
            "Reverted script",
            extra={
                "script_id": script_id,
                "from_version": version,
                "new_version": saved.versions[-1].version,
            },
        )
        return saved

    def bulk_update_status(self, script_ids: List[str], status: ScriptStatus) -> BulkStatusResult:
        """Set metadata.status on many scripts in one commit.

        Missing ids are skipped with a warning; the rest are still updated.
        """
        now = self.clock()
        updated = 0
        missing = []
        for script_id in dict.fromkeys(script_ids):
            try:
                script = self.script_repo.get_by_id(script_id)
            except ScriptNotFoundError:
                logger.warning("Skipping status update for missing script", extra={"script_id": script_id})
                missing.append(script_id)
                continue
            metadata = script.metadata.model_copy(update={"status": status})
            self.script_repo.save(script.model_copy(update={"metadata": metadata, "updated_at": now}))
            updated += 1

        self.db.commit()
        logger.info(
            "Bulk updated script status",
            extra={"status": status.value, "updated": updated, "missing": len(missing)},
        )
        return BulkStatusResult(updated=updated, missing_ids=missing)

    def get_version_history(self, script_id: str) -> List[ScriptVersion]:
        return versioned_script.version_history(self.script_repo.get_by_id(script_id))

    def get_version(self, script_id: str, version: int) -> ScriptVersion:
        return versioned_script.get_version(self.script_repo.get_by_id(script_id), version)

    # ------------------------------------------------------------------
    # Move / delete
    # ------------------------------------------------------------------

    def move_script(self, script_id: str, data: ScriptMoveRequest) -> Script:
        """Move a script to another folder, optionally in another project."""
        script = self.script_repo.get_by_id(script_id)
        target_project_id = data.project_id or script.project_id

        target = self.project_repo.get_by_id(target_project_id)
        if target.owner_id != script.owner_id:
            raise ValidationError(
                "Cannot move a script into a project with a different owner",
                field="project_id",
            )
        folder_tree.require_folder(target.folders, data.folder_id)

        if target_project_id == script.project_id and data.folder_id == script.folder_id:
            return script

        moved = script.model_copy(update={
            "project_id": target_project_id,
            "folder_id": data.folder_id,
            "updated_at": self.clock(),
        })
        saved = self.script_repo.save(moved)

        self._release_count(script)
        self.project_service.adjust_folder_script_count(
            target_project_id, data.folder_id, 1, commit=False
        )
        self.db.commit()
        logger.info(
            "Moved script",
            extra={
                "script_id": script_id,
                "from_folder": script.folder_id,
                "to_folder": data.folder_id,
                "to_project": target_project_id,
            },
        )
        return saved

    def delete_script(self, script_id: str) -> None:
        script = self.script_repo.get_by_id(script_id)
        self.script_repo.delete(script_id)
        self._release_count(script)
        self.db.commit()
        logger.info("Deleted script", extra={"script_id": script_id})

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_script_stats(self, owner_id: str) -> ScriptStats:
        scripts = self.script_repo.find({"owner_id": owner_id})

        by_status = Counter(s.metadata.status.value for s in scripts)
        by_type = Counter(s.metadata.content_type.value for s in scripts)

        return ScriptStats(
            total_scripts=len(scripts),
            scripts_by_status={status.value: by_status.get(status.value, 0) for status in ScriptStatus},
            scripts_by_content_type={ct.value: by_type.get(ct.value, 0) for ct in ContentType},
            recent_activity=max((s.updated_at for s in scripts), default=None),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _release_count(self, script: Script) -> None:
        """Decrement the count of the folder the script is leaving.

        A project or folder that no longer exists has no counter to fix;
        the drift is logged and left to reconcile_script_counts.
        """
        try:
            self.project_service.adjust_folder_script_count(
                script.project_id, script.folder_id, -1, commit=False
            )
        except (ProjectNotFoundError, FolderNotFoundError) as e:
            logger.warning(
                "Could not decrement folder script count",
                extra={"script_id": script.id, "reason": e.message},
            )
