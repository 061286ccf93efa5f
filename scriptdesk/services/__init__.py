"""Business logic services."""

from .project_service import ProjectService
from .script_service import ScriptService

__all__ = ["ProjectService", "ScriptService"]
