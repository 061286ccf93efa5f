"""Folder API: add, read, rename and delete folders inside a project.

Single router for all folder operations. Delegates to ProjectService (deep module).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas.project import (
    FolderCreate,
    FolderDeleteAction,
    FolderDeleteResponse,
    FolderNode,
    FolderUpdate,
)
from ..services import ProjectService
from .deps import get_project_service

router = APIRouter(prefix="/api/projects/{project_id}/folders", tags=["folders"])


@router.post("", response_model=FolderNode, status_code=201)
def add_folder(
    project_id: str,
    data: FolderCreate,
    service: ProjectService = Depends(get_project_service),
):
    """Add a root folder, or a child of parent_id."""
    return service.add_folder(project_id, data)


@router.get("/{folder_id}", response_model=FolderNode)
def get_folder(
    project_id: str,
    folder_id: str,
    service: ProjectService = Depends(get_project_service),
):
    return service.get_folder(project_id, folder_id)


@router.put("/{folder_id}", response_model=FolderNode)
def rename_folder(
    project_id: str,
    folder_id: str,
    data: FolderUpdate,
    service: ProjectService = Depends(get_project_service),
):
    return service.rename_folder(project_id, folder_id, data)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
def delete_folder(
    project_id: str,
    folder_id: str,
    action: FolderDeleteAction = Query(FolderDeleteAction.DELETE_ALL),
    target_folder_id: Optional[str] = Query(None),
    service: ProjectService = Depends(get_project_service),
):
    """Delete a folder and its subfolders. action='delete_all' or 'reassign'."""
    return service.delete_folder(project_id, folder_id, action, target_folder_id)
