"""Shared route dependencies: services wired from app.state, page size bounds."""

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import ProjectService, ScriptService


def get_project_service(request: Request, db: Session = Depends(get_db)) -> ProjectService:
    state = request.app.state
    return ProjectService(db, clock=state.clock, id_factory=state.id_factory)


def get_script_service(request: Request, db: Session = Depends(get_db)) -> ScriptService:
    state = request.app.state
    return ScriptService(db, clock=state.clock, id_factory=state.id_factory)


def page_limit(request: Request, limit: Optional[int] = Query(None, ge=1)) -> int:
    """Requested page size, defaulted and capped by settings."""
    settings = request.app.state.settings
    if limit is None:
        return settings.default_page_size
    return min(limit, settings.max_page_size)
