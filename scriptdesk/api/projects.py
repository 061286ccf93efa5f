"""Project API: CRUD, search, stats and script-count reconciliation.

Thin routes over ProjectService; folder routes live in folders.py.
"""

from fastapi import APIRouter, Depends, Query

from ..schemas.project import (
    Project,
    ProjectCreate,
    ProjectListResponse,
    ProjectStatsResponse,
    ProjectUpdate,
)
from ..services import ProjectService
from .deps import get_project_service, page_limit

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("", response_model=Project, status_code=201)
def create_project(
    data: ProjectCreate,
    service: ProjectService = Depends(get_project_service),
):
    """Create a project. Without folders it starts with one root folder."""
    return service.create_project(data)


@router.get("", response_model=ProjectListResponse)
def list_projects(
    owner_id: str = Query(..., min_length=1),
    skip: int = Query(0, ge=0),
    limit: int = Depends(page_limit),
    sort_by: str = Query("updated_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: ProjectService = Depends(get_project_service),
):
    projects, total = service.list_projects(owner_id, skip, limit, sort_by, sort_order)
    return ProjectListResponse(projects=projects, total=total, skip=skip, limit=limit)


@router.get("/search", response_model=ProjectListResponse)
def search_projects(
    owner_id: str = Query(..., min_length=1),
    q: str = Query(..., min_length=1),
    skip: int = Query(0, ge=0),
    limit: int = Depends(page_limit),
    service: ProjectService = Depends(get_project_service),
):
    """Case-insensitive match on title and description."""
    projects, total = service.search_projects(owner_id, q, skip, limit)
    return ProjectListResponse(projects=projects, total=total, skip=skip, limit=limit)


@router.get("/{project_id}", response_model=Project)
def get_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    return service.get_project(project_id)


@router.put("/{project_id}", response_model=Project)
def update_project(
    project_id: str,
    data: ProjectUpdate,
    service: ProjectService = Depends(get_project_service),
):
    """Update title, description or settings. Send expected_revision to guard against lost updates."""
    return service.update_project(project_id, data)


@router.delete("/{project_id}", status_code=204)
def delete_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Delete a project together with all of its scripts."""
    service.delete_project(project_id)
    return None


@router.post("/{project_id}/reconcile", response_model=Project)
def reconcile_script_counts(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
):
    """Recount every folder's scripts from the script collection."""
    return service.reconcile_script_counts(project_id)


@router.get("/{project_id}/stats", response_model=ProjectStatsResponse)
def get_project_stats(project_id: str, service: ProjectService = Depends(get_project_service)):
    return service.get_project_stats(project_id)
