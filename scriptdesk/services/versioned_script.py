"""Append-only version history for scripts.

Content only changes by appending a version.  Reverting appends a new
version carrying the old content forward; nothing is ever truncated or
edited in place.  Version numbers are derived from the current maximum, not
from the list length, so appends stay strictly increasing even if an entry
was removed out of band.

All functions are pure and return new Script values.
"""

from datetime import datetime
from typing import List, Optional

from ..exceptions import VersionNotFoundError
from ..schemas.script import (
    Script,
    ScriptCreate,
    ScriptMetadata,
    ScriptMetadataPatch,
    ScriptVersion,
)
from .validation import validate_script


def next_version_number(script: Script) -> int:
    return max((v.version for v in script.versions), default=0) + 1


def create_with_initial_version(data: ScriptCreate, *, script_id: str, now: datetime) -> Script:
    """Build a new Script whose history is version 1, or the supplied versions verbatim."""
    versions = list(data.versions or []) or [
        ScriptVersion(version=1, content=data.content, created_at=now)
    ]
    script = Script(
        id=script_id,
        owner_id=data.owner_id,
        project_id=data.project_id,
        folder_id=data.folder_id,
        title=data.title,
        content=data.content,
        metadata=data.metadata,
        versions=versions,
        created_at=now,
        updated_at=now,
    )
    validate_script(script)
    return script


# Metadata fields an explicit null clears; a null for any other field is ignored.
_CLEARABLE_METADATA = frozenset({"duration"})


def merge_metadata(metadata: ScriptMetadata, patch: Optional[ScriptMetadataPatch]) -> ScriptMetadata:
    if patch is None:
        return metadata
    update = {
        key: value
        for key, value in patch.model_dump(exclude_unset=True).items()
        if value is not None or key in _CLEARABLE_METADATA
    }
    return metadata.model_copy(update=update)


def append_version(
    script: Script,
    new_content: str,
    metadata_patch: Optional[ScriptMetadataPatch] = None,
    *,
    now: datetime,
) -> Script:
    """Set new content and append it to the history as the next version."""
    entry = ScriptVersion(
        version=next_version_number(script),
        content=new_content,
        created_at=now,
    )
    updated = script.model_copy(update={
        "content": new_content,
        "versions": list(script.versions) + [entry],
        "metadata": merge_metadata(script.metadata, metadata_patch),
        "updated_at": now,
    })
    validate_script(updated)
    return updated


def get_version(script: Script, version: int) -> ScriptVersion:
    for entry in script.versions:
        if entry.version == version:
            return entry
    raise VersionNotFoundError(script.id, version)


def revert_to_version(script: Script, target_version: int, *, now: datetime) -> Script:
    """Re-apply an old version's content as a new version."""
    target = get_version(script, target_version)
    return append_version(script, target.content, now=now)


def version_history(script: Script) -> List[ScriptVersion]:
    """Versions, most recent first."""
    return sorted(script.versions, key=lambda v: v.version, reverse=True)


def latest_version(script: Script) -> Optional[ScriptVersion]:
    history = version_history(script)
    return history[0] if history else None
