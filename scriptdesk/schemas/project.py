"""Project and folder schemas.

``Project`` is the stored document shape; the folder forest is embedded in it
as nested ``FolderNode`` values.
"""

from enum import Enum
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List


class FolderNode(BaseModel):
    """One folder of a project's forest. Roots have no parent_id."""
    id: str
    name: str
    parent_id: Optional[str] = None
    children: Optional[List['FolderNode']] = None  # absent == empty
    script_count: int = 0
    created_at: datetime


FolderNode.model_rebuild()


class ProjectSettings(BaseModel):
    is_public: bool = False
    allow_collaboration: bool = False


class ProjectStats(BaseModel):
    """Cached aggregates; total_scripts is recomputed from folder counts."""
    total_scripts: int = 0
    last_activity: Optional[datetime] = None


class Project(BaseModel):
    """Stored project document."""
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    folders: List[FolderNode] = Field(default_factory=list)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    stats: ProjectStats = Field(default_factory=ProjectStats)
    created_at: datetime
    updated_at: datetime
    revision: int = 1  # store write counter, used for conflict detection


# --- Request schemas ---

class ProjectCreate(BaseModel):
    """Create a project. Omitting folders yields a single default root folder."""
    owner_id: str
    title: str
    description: Optional[str] = None
    folders: Optional[List[FolderNode]] = None
    settings: ProjectSettings = Field(default_factory=ProjectSettings)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    @field_validator('description')
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class ProjectUpdate(BaseModel):
    """Partial update of project fields. Folders change only via folder operations."""
    title: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[ProjectSettings] = None
    expected_revision: Optional[int] = None  # omit to skip conflict check

    @field_validator('title', 'description')
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class FolderCreate(BaseModel):
    """Add a folder; no parent_id means a new root."""
    name: str
    parent_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class FolderUpdate(BaseModel):
    """Mutable folder fields."""
    name: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class FolderDeleteAction(str, Enum):
    """What happens to scripts filed under a deleted subtree."""
    DELETE_ALL = "delete_all"
    REASSIGN = "reassign"


class FolderDeleteResponse(BaseModel):
    """Result of removing a folder subtree."""
    folder_id: str
    action: FolderDeleteAction
    removed_folder_ids: List[str]
    affected_scripts: int
    target_folder_id: Optional[str] = None
    project: Project


class ProjectListResponse(BaseModel):
    projects: List[Project]
    total: int
    skip: int
    limit: int


class FolderScriptCount(BaseModel):
    folder_id: str
    folder_name: str
    script_count: int


class ProjectStatsResponse(BaseModel):
    """Folder and script aggregates for one project.

    script counts come from the script collection, not the cached
    script_count on each folder.
    """
    project_id: str
    total_scripts: int
    total_folders: int
    folder_depth: int
    last_activity: Optional[datetime] = None
    scripts_per_folder: List[FolderScriptCount]
    empty_folder_ids: List[str]
