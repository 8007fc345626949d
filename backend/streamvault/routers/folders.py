"""
Folder management API endpoints.

Folders form a forest: a folder with no parent is a root folder. Listing
without a parentId returns the roots; listing with one returns that
folder's direct children.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.auth import require_auth
from streamvault.crud import FolderCRUD
from streamvault.database import get_db
from streamvault.exceptions import FolderCycleError, FolderNotFoundError
from streamvault.schemas.base import MessageResponse
from streamvault.schemas.folders import (
    FolderCreateRequest,
    FolderResponse,
    FolderUpdateRequest,
)

router = APIRouter(
    prefix="/api/folders",
    tags=["folders"],
    dependencies=[Depends(require_auth)],
)


def optional_id(value: Optional[str]) -> Optional[int]:
    """Query ids arrive as strings; empty means "root level"."""
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid id '{value}'")


@router.get("", response_model=list[FolderResponse])
async def list_folders(
    parent_id: Optional[str] = Query(None, alias="parentId"),
    db: AsyncSession = Depends(get_db),
):
    """List the children of parentId, or root folders when it is omitted."""
    folders = await FolderCRUD(db).list_by_parent(optional_id(parent_id))
    return [FolderResponse.model_validate(f) for f in folders]


@router.get("/all", response_model=list[FolderResponse])
async def list_all_folders(db: AsyncSession = Depends(get_db)):
    """Every folder, ordered by name (the client builds the tree)."""
    folders = await FolderCRUD(db).list_all()
    return [FolderResponse.model_validate(f) for f in folders]


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(folder_id: int, db: AsyncSession = Depends(get_db)):
    folder = await FolderCRUD(db).get(folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return FolderResponse.model_validate(folder)


@router.post("", response_model=FolderResponse, status_code=201)
async def create_folder(body: FolderCreateRequest, db: AsyncSession = Depends(get_db)):
    try:
        folder = await FolderCRUD(db).create(name=body.name, parent_id=body.parent_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=400, detail="Parent folder does not exist")
    return FolderResponse.model_validate(folder)


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    body: FolderUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rename and/or move a folder. Moving under itself or a descendant is rejected."""
    changes = body.model_dump(exclude_unset=True)
    try:
        folder = await FolderCRUD(db).update(folder_id, **changes)
    except FolderNotFoundError:
        raise HTTPException(status_code=400, detail="Parent folder does not exist")
    except FolderCycleError:
        raise HTTPException(
            status_code=400,
            detail="A folder cannot be moved into itself or one of its subfolders",
        )
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return FolderResponse.model_validate(folder)


@router.delete("/{folder_id}", response_model=MessageResponse)
async def delete_folder(folder_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a folder. Its subfolders and videos move up to its parent."""
    deleted = await FolderCRUD(db).delete(folder_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Folder not found")
    return MessageResponse(message="Folder deleted successfully")
