"""Project service: deep module for projects and their folder forests.

Every folder operation follows the same read-validate-commit shape: load the
project, compute the new forest with the pure functions in folder_tree,
refresh the cached totals, validate the whole document, then write it back
in a single store update.  Callers never touch the forest directly.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.identity import Clock, IdFactory, new_id, utc_now
from ..exceptions import FolderNotFoundError, ValidationError
from ..repositories import ProjectRepository, ScriptRepository
from ..repositories.project_repository import PROJECT_SORT_FIELDS
from ..schemas.project import (
    FolderCreate,
    FolderDeleteAction,
    FolderDeleteResponse,
    FolderNode,
    FolderScriptCount,
    FolderUpdate,
    Project,
    ProjectCreate,
    ProjectStats,
    ProjectStatsResponse,
    ProjectUpdate,
)
from . import folder_tree
from .validation import validate_folder_name, validate_project

DEFAULT_FOLDER_NAME = "Scripts"

logger = logging.getLogger(__name__)


class ProjectService:
    """Projects and folder hierarchy behind a narrow interface.

    Public methods:
        create_project / get_project / list_projects / update_project / delete_project
        search_projects   -- text match on title and description
        get_project_stats -- folder and script aggregates
        add_folder      -- insert a root or nested folder
        rename_folder   -- change a folder's name
        delete_folder   -- remove a subtree; scripts are deleted or reassigned
        get_folder      -- lookup by id
        adjust_folder_script_count -- clamped delta on a folder's counter
        reconcile_script_counts    -- recount scripts per folder from the store
    """

    def __init__(self, db: Session, clock: Clock = utc_now, id_factory: IdFactory = new_id):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory
        self.project_repo = ProjectRepository(db)
        self.script_repo = ScriptRepository(db)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, data: ProjectCreate) -> Project:
        """Create a project; a missing folder list becomes one default root folder."""
        now = self.clock()
        folders = data.folders
        if folders is None:
            folders = [FolderNode(id=self.id_factory(), name=DEFAULT_FOLDER_NAME, created_at=now)]

        project = Project(
            id=self.id_factory(),
            owner_id=data.owner_id,
            title=data.title,
            description=data.description,
            folders=folders,
            settings=data.settings,
            stats=ProjectStats(total_scripts=folder_tree.total_scripts(folders), last_activity=now),
            created_at=now,
            updated_at=now,
        )
        validate_project(project)

        created = self.project_repo.create(project)
        self.db.commit()
        logger.info("Created project", extra={"project_id": created.id, "owner_id": created.owner_id})
        return created

    def get_project(self, project_id: str) -> Project:
        return self.project_repo.get_by_id(project_id)

    def list_projects(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 50,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Project], int]:
        """Page of an owner's projects plus the owner's total project count."""
        if sort_by not in PROJECT_SORT_FIELDS:
            raise ValidationError(f"Cannot sort projects by {sort_by}", field="sort_by")
        projects = self.project_repo.get_by_owner(owner_id, skip, limit, sort_by, sort_order)
        return projects, self.project_repo.count_by_owner(owner_id)

    def search_projects(
        self, owner_id: str, query: str, skip: int = 0, limit: int = 20
    ) -> Tuple[List[Project], int]:
        """Owner's projects whose title or description contains *query*."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query cannot be empty", field="q")
        return self.project_repo.text_search(query, {"owner_id": owner_id}, skip, limit)

    def get_project_stats(self, project_id: str) -> ProjectStatsResponse:
        """Folder counts, depth and per-folder script totals for one project."""
        project = self.project_repo.get_by_id(project_id)
        counts = self.script_repo.count_by_folder(project_id)

        per_folder = [
            FolderScriptCount(
                folder_id=node.id, folder_name=node.name, script_count=counts.get(node.id, 0)
            )
            for node in folder_tree.iter_folders(project.folders)
        ]
        return ProjectStatsResponse(
            project_id=project_id,
            total_scripts=project.stats.total_scripts,
            total_folders=len(per_folder),
            folder_depth=folder_tree.depth(project.folders),
            last_activity=project.stats.last_activity,
            scripts_per_folder=per_folder,
            empty_folder_ids=[f.folder_id for f in per_folder if f.script_count == 0],
        )

    def update_project(self, project_id: str, data: ProjectUpdate) -> Project:
        project = self.project_repo.get_by_id(project_id)

        patch = data.model_dump(exclude_unset=True, exclude={"expected_revision"})
        if data.settings is None:
            patch.pop("settings", None)
        else:
            patch["settings"] = data.settings
        patch["updated_at"] = self.clock()

        updated = project.model_copy(update=patch)
        validate_project(updated)

        saved = self.project_repo.save(updated, expected_revision=data.expected_revision)
        self.db.commit()
        logger.info("Updated project", extra={"project_id": project_id, "fields": sorted(patch)})
        return saved

    def delete_project(self, project_id: str) -> int:
        """Delete a project and every script in it. Returns the scripts removed."""
        self.project_repo.get_by_id(project_id)
        removed = self.script_repo.delete_by_project(project_id)
        self.project_repo.delete(project_id)
        self.db.commit()
        logger.info("Deleted project", extra={"project_id": project_id, "deleted_scripts": removed})
        return removed

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def get_folder(self, project_id: str, folder_id: str) -> FolderNode:
        project = self.project_repo.get_by_id(project_id)
        return folder_tree.require_folder(project.folders, folder_id)

    def add_folder(self, project_id: str, data: FolderCreate) -> FolderNode:
        """Insert a folder as a new root or as the last child of data.parent_id."""
        project = self.project_repo.get_by_id(project_id)
        now = self.clock()

        folder = FolderNode(
            id=self.id_factory(),
            name=validate_folder_name(data.name),
            created_at=now,
        )
        forest = folder_tree.insert_folder(project.folders, folder, data.parent_id)

        self._commit_forest(project, forest)
        logger.info(
            "Added folder",
            extra={"project_id": project_id, "folder_id": folder.id, "parent_id": data.parent_id},
        )
        return folder_tree.require_folder(forest, folder.id)

    def rename_folder(self, project_id: str, folder_id: str, data: FolderUpdate) -> FolderNode:
        project = self.project_repo.get_by_id(project_id)
        forest = folder_tree.update_folder(project.folders, folder_id, name=data.name)
        self._commit_forest(project, forest)
        logger.info("Renamed folder", extra={"project_id": project_id, "folder_id": folder_id})
        return folder_tree.require_folder(forest, folder_id)

    def delete_folder(
        self,
        project_id: str,
        folder_id: str,
        action: FolderDeleteAction = FolderDeleteAction.DELETE_ALL,
        target_folder_id: Optional[str] = None,
    ) -> FolderDeleteResponse:
        """Remove a folder subtree and deal with the scripts filed under it.

        action='delete_all' -- scripts in the removed folders are deleted.
        action='reassign'   -- scripts move to *target_folder_id*, which must
                               survive the removal.
        """
        project = self.project_repo.get_by_id(project_id)
        removed_ids = folder_tree.subtree_ids(project.folders, folder_id)
        forest = folder_tree.remove_folder(project.folders, folder_id)

        if action == FolderDeleteAction.REASSIGN:
            if not target_folder_id:
                raise ValidationError(
                    "target_folder_id is required to reassign scripts", field="target_folder_id"
                )
            if target_folder_id in removed_ids:
                raise ValidationError(
                    "Cannot reassign scripts into a folder that is being deleted",
                    field="target_folder_id",
                )
            folder_tree.require_folder(forest, target_folder_id)

            scripts = self.script_repo.get_in_folders(project_id, removed_ids)
            now = self.clock()
            for script in scripts:
                self.script_repo.save(
                    script.model_copy(update={"folder_id": target_folder_id, "updated_at": now})
                )
            affected = len(scripts)
            if affected:
                forest = folder_tree.adjust_script_count(forest, target_folder_id, affected)
        else:
            target_folder_id = None
            affected = self.script_repo.delete_in_folders(project_id, removed_ids)

        saved = self._commit_forest(project, forest)
        logger.info(
            "Deleted folder",
            extra={
                "project_id": project_id,
                "folder_id": folder_id,
                "removed_folders": len(removed_ids),
                "action": action.value,
                "affected_scripts": affected,
            },
        )
        return FolderDeleteResponse(
            folder_id=folder_id,
            action=action,
            removed_folder_ids=removed_ids,
            affected_scripts=affected,
            target_folder_id=target_folder_id,
            project=saved,
        )

    def adjust_folder_script_count(
        self, project_id: str, folder_id: str, delta: int, commit: bool = True
    ) -> Project:
        """Apply a clamped delta to a folder's script count and refresh the total."""
        project = self.project_repo.get_by_id(project_id)
        forest = folder_tree.adjust_script_count(project.folders, folder_id, delta)
        logger.debug(
            "Adjusted folder script count",
            extra={"project_id": project_id, "folder_id": folder_id, "delta": delta},
        )
        return self._commit_forest(project, forest, commit=commit)

    def reconcile_script_counts(self, project_id: str) -> Project:
        """Rewrite every folder's script_count from the scripts actually stored.

        Repairs drift left behind when a script write and its count update
        did not both land.
        """
        project = self.project_repo.get_by_id(project_id)
        counts = self.script_repo.count_by_folder(project_id)

        known = {node.id for node in folder_tree.iter_folders(project.folders)}
        orphaned = {fid: n for fid, n in counts.items() if fid not in known}
        if orphaned:
            logger.warning(
                "Scripts reference folders missing from the project",
                extra={"project_id": project_id, "orphaned": orphaned},
            )

        before = folder_tree.total_scripts(project.folders)
        forest = folder_tree.set_script_counts(project.folders, counts)
        saved = self._commit_forest(project, forest)
        logger.info(
            "Reconciled script counts",
            extra={
                "project_id": project_id,
                "before": before,
                "after": saved.stats.total_scripts,
            },
        )
        return saved

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _commit_forest(
        self, project: Project, forest: List[FolderNode], commit: bool = True
    ) -> Project:
        """Validate the project with its new forest, then persist it in one write."""
        now = self.clock()
        total = folder_tree.total_scripts(forest)
        stats = project.stats.model_copy(update={"total_scripts": total})
        if total != project.stats.total_scripts:
            stats = stats.model_copy(update={"last_activity": now})

        updated = project.model_copy(update={"folders": forest, "stats": stats, "updated_at": now})
        validate_project(updated)

        saved = self.project_repo.save(updated)
        if commit:
            self.db.commit()
        return saved
