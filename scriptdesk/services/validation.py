"""Structural and semantic checks for project and script documents.

This is the one place where document invariants are enforced.  Every
mutation path computes the new document first and runs it through these
functions before anything is written, so a failure never leaves a partially
applied change behind.

Failures are raised, never corrected:
    - InvalidHierarchyError: duplicate folder ids, a parent_id that does not
      match the enclosing folder, or a folder reachable from itself.
    - ValidationError: empty or oversized names and titles, negative counts,
      duplicate or out-of-order version numbers.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set, TYPE_CHECKING

from ..exceptions import InvalidHierarchyError, ValidationError

if TYPE_CHECKING:
    from ..schemas.project import FolderNode, Project
    from ..schemas.script import Script, ScriptVersion

FOLDER_NAME_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
MAX_TAGS = 20
TAG_MAX_LENGTH = 50


def validate_folder_name(name: Optional[str]) -> str:
    """Return the trimmed folder name or raise ValidationError."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Folder name cannot be empty", field="name")
    if len(trimmed) > FOLDER_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Folder name cannot exceed {FOLDER_NAME_MAX_LENGTH} characters", field="name"
        )
    return trimmed


def validate_title(title: Optional[str], field: str = "title") -> str:
    trimmed = (title or "").strip()
    if not trimmed:
        raise ValidationError("Title cannot be empty", field=field)
    if len(trimmed) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title cannot exceed {TITLE_MAX_LENGTH} characters", field=field
        )
    return trimmed


def validate_forest(forest: Iterable[FolderNode]) -> None:
    """Check a folder forest: unique ids, consistent parents, valid names and counts.

    Walks depth-first keeping the chain of ancestor ids; a node whose id is
    already on that chain would be its own ancestor.
    """
    seen: Set[str] = set()

    def visit(node: FolderNode, parent_id: Optional[str], ancestors: List[str]) -> None:
        if node.id in ancestors:
            raise InvalidHierarchyError(
                f"Folder {node.id} would become its own ancestor", folder_id=node.id
            )
        if node.id in seen:
            raise InvalidHierarchyError(f"Duplicate folder id: {node.id}", folder_id=node.id)
        seen.add(node.id)

        if node.parent_id != parent_id:
            raise InvalidHierarchyError(
                f"Folder {node.id} has parent_id {node.parent_id!r} "
                f"but is nested under {parent_id!r}",
                folder_id=node.id,
            )

        validate_folder_name(node.name)
        if node.script_count < 0:
            raise ValidationError(
                f"Folder {node.id} has a negative script count", field="script_count"
            )

        for child in node.children or []:
            visit(child, node.id, ancestors + [node.id])

    for root in forest:
        visit(root, None, [])


def validate_project(project: Project) -> None:
    validate_title(project.title)
    if project.description is not None and len(project.description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            field="description",
        )
    if project.stats.total_scripts < 0:
        raise ValidationError("Total scripts cannot be negative", field="stats.total_scripts")
    validate_forest(project.folders)


def validate_versions(versions: Iterable[ScriptVersion]) -> None:
    """Version numbers must be positive, unique and strictly increasing in stored order."""
    previous = 0
    for entry in versions:
        if entry.version < 1:
            raise ValidationError(
                f"Version numbers must be positive, got {entry.version}", field="versions"
            )
        if entry.version <= previous:
            raise ValidationError(
                f"Version {entry.version} is duplicated or out of order", field="versions"
            )
        previous = entry.version


def validate_script(script: Script) -> None:
    validate_title(script.title)

    metadata = script.metadata
    if metadata.duration is not None and metadata.duration < 0:
        raise ValidationError("Duration cannot be negative", field="metadata.duration")
    if len(metadata.tags) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags are allowed", field="metadata.tags")
    for tag in metadata.tags:
        if not tag or len(tag) > TAG_MAX_LENGTH:
            raise ValidationError(
                f"Tags must be 1-{TAG_MAX_LENGTH} characters", field="metadata.tags"
            )

    validate_versions(script.versions)
