"""Version API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path

from ..schemas.script import RevertRequest, Script, ScriptVersion
from ..services import ScriptService
from .deps import get_script_service

router = APIRouter(prefix="/api/scripts/{script_id}/versions", tags=["versions"])


@router.get("", response_model=List[ScriptVersion])
def list_versions(script_id: str, service: ScriptService = Depends(get_script_service)):
    """Version history, newest first."""
    return service.get_version_history(script_id)


@router.get("/{version}", response_model=ScriptVersion)
def get_version(
    script_id: str,
    version: int = Path(..., ge=1),
    service: ScriptService = Depends(get_script_service),
):
    return service.get_version(script_id, version)


@router.post("/{version}/revert", response_model=Script)
def revert_to_version(
    script_id: str,
    version: int = Path(..., ge=1),
    data: Optional[RevertRequest] = Body(None),
    service: ScriptService = Depends(get_script_service),
):
    """Copy an old version's content forward as a new version. History is never truncated."""
    expected_revision = data.expected_revision if data else None
    return service.revert_to_version(script_id, version, expected_revision)
