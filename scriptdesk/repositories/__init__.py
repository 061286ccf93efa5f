"""Data access repositories."""

from .document_store import DocumentStore
from .base import BaseRepository
from .project_repository import ProjectRepository
from .script_repository import ScriptRepository

__all__ = [
    "DocumentStore",
    "BaseRepository",
    "ProjectRepository",
    "ScriptRepository",
]
