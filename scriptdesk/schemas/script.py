"""Script and version schemas."""

from enum import Enum
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, Optional, List


class ContentType(str, Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    GENERAL = "general"


class ScriptStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    FINAL = "final"
    PUBLISHED = "published"


class ScriptMetadata(BaseModel):
    content_type: ContentType = ContentType.GENERAL
    duration: Optional[int] = None  # estimated duration in seconds
    tags: List[str] = []
    status: ScriptStatus = ScriptStatus.DRAFT


class ScriptMetadataPatch(BaseModel):
    """Field-by-field metadata changes; unset fields are left alone."""
    content_type: Optional[ContentType] = None
    duration: Optional[int] = None
    tags: Optional[List[str]] = None
    status: Optional[ScriptStatus] = None


class ScriptVersion(BaseModel):
    """Immutable snapshot of a script's content."""
    version: int
    content: str
    created_at: datetime


class Script(BaseModel):
    """Stored script document."""
    id: str
    owner_id: str
    project_id: str
    folder_id: str
    title: str
    content: str
    metadata: ScriptMetadata = Field(default_factory=ScriptMetadata)
    versions: List[ScriptVersion] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    revision: int = 1  # store write counter, used for conflict detection


# --- Request schemas ---

class ScriptCreate(BaseModel):
    """Create a script.

    A non-empty ``versions`` list (imports, migrations) is stored verbatim
    instead of the synthetic version 1.
    """
    owner_id: str
    project_id: str
    folder_id: str
    title: str
    content: str = ""
    metadata: ScriptMetadata = Field(default_factory=ScriptMetadata)
    versions: Optional[List[ScriptVersion]] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class ScriptUpdate(BaseModel):
    """Title and metadata changes. Content changes go through ScriptContentUpdate."""
    title: Optional[str] = None
    metadata: Optional[ScriptMetadataPatch] = None
    expected_revision: Optional[int] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class ScriptContentUpdate(BaseModel):
    """New content; appends a version."""
    content: str
    metadata: Optional[ScriptMetadataPatch] = None
    expected_revision: Optional[int] = None


class ScriptMoveRequest(BaseModel):
    """Move to another folder, optionally in another project."""
    folder_id: str
    project_id: Optional[str] = None  # None = stay in the current project


class RevertRequest(BaseModel):
    expected_revision: Optional[int] = None


class ScriptListResponse(BaseModel):
    scripts: List[Script]
    total: int
    skip: int
    limit: int


class ScriptStats(BaseModel):
    """Per-owner aggregates over the script collection."""
    total_scripts: int
    scripts_by_status: Dict[str, int]
    scripts_by_content_type: Dict[str, int]
    recent_activity: Optional[datetime] = None


class BulkStatusUpdate(BaseModel):
    script_ids: List[str] = Field(..., min_length=1)
    status: ScriptStatus


class BulkStatusResult(BaseModel):
    updated: int
    missing_ids: List[str] = []
