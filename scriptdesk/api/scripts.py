"""Script API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas.script import (
    BulkStatusResult,
    BulkStatusUpdate,
    ContentType,
    Script,
    ScriptContentUpdate,
    ScriptCreate,
    ScriptListResponse,
    ScriptMoveRequest,
    ScriptStats,
    ScriptStatus,
    ScriptUpdate,
)
from ..services import ScriptService
from .deps import get_script_service, page_limit

router = APIRouter(prefix="/api/scripts", tags=["scripts"])


@router.post("", response_model=Script, status_code=201)
def create_script(data: ScriptCreate, service: ScriptService = Depends(get_script_service)):
    """Create a script in a project folder. Starts at version 1 unless versions are supplied."""
    return service.create_script(data)


@router.get("", response_model=ScriptListResponse)
def list_scripts(
    owner_id: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    folder_id: Optional[str] = Query(None),
    status: Optional[ScriptStatus] = Query(None),
    content_type: Optional[ContentType] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Depends(page_limit),
    sort_by: str = Query("updated_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: ScriptService = Depends(get_script_service),
):
    """List scripts by owner or project, with optional folder/status/type filters."""
    scripts, total = service.list_scripts(
        owner_id=owner_id,
        project_id=project_id,
        folder_id=folder_id,
        status=status,
        content_type=content_type,
        skip=skip,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ScriptListResponse(scripts=scripts, total=total, skip=skip, limit=limit)


@router.get("/stats", response_model=ScriptStats)
def get_script_stats(
    owner_id: str = Query(..., min_length=1),
    service: ScriptService = Depends(get_script_service),
):
    return service.get_script_stats(owner_id)


@router.get("/search", response_model=ScriptListResponse)
def search_scripts(
    owner_id: str = Query(..., min_length=1),
    q: str = Query(..., min_length=1),
    project_id: Optional[str] = Query(None),
    status: Optional[ScriptStatus] = Query(None),
    content_type: Optional[ContentType] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Depends(page_limit),
    service: ScriptService = Depends(get_script_service),
):
    """Case-insensitive match on title, content and tags, most recently updated first."""
    scripts, total = service.search_scripts(
        owner_id, q, project_id=project_id, status=status,
        content_type=content_type, skip=skip, limit=limit,
    )
    return ScriptListResponse(scripts=scripts, total=total, skip=skip, limit=limit)


@router.post("/bulk-status", response_model=BulkStatusResult)
def bulk_update_status(
    data: BulkStatusUpdate,
    service: ScriptService = Depends(get_script_service),
):
    """Set the status of many scripts at once. Unknown ids are reported, not fatal."""
    return service.bulk_update_status(data.script_ids, data.status)


@router.get("/{script_id}", response_model=Script)
def get_script(script_id: str, service: ScriptService = Depends(get_script_service)):
    return service.get_script(script_id)


@router.put("/{script_id}", response_model=Script)
def update_script(
    script_id: str,
    data: ScriptUpdate,
    service: ScriptService = Depends(get_script_service),
):
    """Update title and metadata. Content changes go through /content."""
    return service.update_script(script_id, data)


@router.put("/{script_id}/content", response_model=Script)
def update_content(
    script_id: str,
    data: ScriptContentUpdate,
    service: ScriptService = Depends(get_script_service),
):
    """Save new content as the next version."""
    return service.update_content(script_id, data)


@router.put("/{script_id}/move", response_model=Script)
def move_script(
    script_id: str,
    data: ScriptMoveRequest,
    service: ScriptService = Depends(get_script_service),
):
    return service.move_script(script_id, data)


@router.delete("/{script_id}", status_code=204)
def delete_script(script_id: str, service: ScriptService = Depends(get_script_service)):
    service.delete_script(script_id)
    return None
