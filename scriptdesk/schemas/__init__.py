"""Pydantic schemas for stored documents and API validation."""

from .project import (
    FolderNode,
    ProjectSettings,
    ProjectStats,
    Project,
    ProjectCreate,
    ProjectUpdate,
    FolderCreate,
    FolderUpdate,
    FolderDeleteAction,
    FolderDeleteResponse,
    ProjectListResponse,
    FolderScriptCount,
    ProjectStatsResponse,
)
from .script import (
    ContentType,
    ScriptStatus,
    ScriptMetadata,
    ScriptMetadataPatch,
    ScriptVersion,
    Script,
    ScriptCreate,
    ScriptUpdate,
    ScriptContentUpdate,
    ScriptMoveRequest,
    RevertRequest,
    ScriptListResponse,
    ScriptStats,
    BulkStatusUpdate,
    BulkStatusResult,
)

__all__ = [
    "FolderNode",
    "ProjectSettings",
    "ProjectStats",
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "FolderCreate",
    "FolderUpdate",
    "FolderDeleteAction",
    "FolderDeleteResponse",
    "ProjectListResponse",
    "FolderScriptCount",
    "ProjectStatsResponse",
    "ContentType",
    "ScriptStatus",
    "ScriptMetadata",
    "ScriptMetadataPatch",
    "ScriptVersion",
    "Script",
    "ScriptCreate",
    "ScriptUpdate",
    "ScriptContentUpdate",
    "ScriptMoveRequest",
    "RevertRequest",
    "ScriptListResponse",
    "ScriptStats",
    "BulkStatusUpdate",
    "BulkStatusResult",
]
