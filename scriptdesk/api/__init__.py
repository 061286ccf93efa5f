"""API routes."""

from .projects import router as projects_router
from .folders import router as folders_router
from .scripts import router as scripts_router
from .versions import router as versions_router

__all__ = [
    "projects_router",
    "folders_router",
    "scripts_router",
    "versions_router",
]
