"""
Video management API endpoints.

These handle the lifecycle of library videos:
1. Upload a video file (multipart) with a user-chosen customId
2. List videos at the root or inside a folder, or all of them
3. Get details about a specific video
4. Rename/move a video
5. Delete a video and its stored file

Design notes:
- Request parsing and file checks (type, size) live here, queries live in crud/
- Any failure after the file hits the disk removes that file again
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.auth import require_auth
from streamvault.config import settings
from streamvault.crud import VideoCRUD
from streamvault.database import get_db
from streamvault.exceptions import (
    DuplicateCustomIdError,
    FolderNotFoundError,
    UploadTooLargeError,
)
from streamvault.routers.folders import optional_id
from streamvault.schemas.base import MessageResponse
from streamvault.schemas.videos import VideoResponse, VideoUpdateRequest
from streamvault.services.rate_limit import rate_limit
from streamvault.services.storage import LocalStorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/videos",
    tags=["videos"],
    dependencies=[Depends(require_auth)],
)

ALLOWED_TYPE_PREFIX = "video/"


@router.post(
    "/upload",
    response_model=VideoResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_video(
    video: Optional[UploadFile] = File(None),
    custom_id: Optional[str] = Form(None, alias="customId"),
    title: Optional[str] = Form(None),
    folder_id: Optional[str] = Form(None, alias="folderId"),
    description: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorageService = Depends(get_storage_service),
):
    """Upload a video file.

    Form fields:
        video: The file (any video/* MIME type, up to MAX_UPLOAD_SIZE)
        customId: Unique identifier used in the stream URL
        title: Display title
        folderId: Optional folder to place the video in
        description: Optional, stored in the video's metadata
    """
    if video is None:
        raise HTTPException(status_code=400, detail="No video file provided")

    # content_type comes from the multipart part header, which the browser
    # sets from the file extension. Good enough as a first filter.
    mime_type = (video.content_type or "").split(";")[0].strip().lower()
    if not mime_type.startswith(ALLOWED_TYPE_PREFIX):
        raise HTTPException(status_code=400, detail="Only video files are allowed!")

    try:
        stored = await storage.save_upload(video, max_size=settings.MAX_UPLOAD_SIZE)
    except UploadTooLargeError as e:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (limit {e.limit} bytes)",
        )
    except OSError:
        logger.exception("Failed to write upload %r", video.filename)
        raise HTTPException(status_code=500, detail="Failed to upload video")

    # From here on, every rejection must also remove stored.filename
    try:
        custom_id = (custom_id or "").strip()
        title = (title or "").strip()
        if not custom_id or not title:
            raise HTTPException(status_code=400, detail="Custom ID and title are required")

        try:
            target_folder = optional_id(folder_id)
        except HTTPException:
            raise HTTPException(status_code=400, detail="Invalid folder id")

        crud = VideoCRUD(db)
        # Fast path only; the unique constraint is what actually guarantees this
        if await crud.get_by_custom_id(custom_id):
            raise HTTPException(status_code=400, detail="Custom ID already exists")

        record = await crud.create(
            custom_id=custom_id,
            title=title,
            filename=stored.filename,
            original_name=video.filename or stored.filename,
            mime_type=mime_type,
            size=stored.size,
            folder_id=target_folder,
            duration=None,  # no duration extraction
            metadata={"description": description} if description else None,
        )
    except HTTPException:
        await storage.discard(stored.filename)
        raise
    except DuplicateCustomIdError:
        await storage.discard(stored.filename)
        raise HTTPException(status_code=400, detail="Custom ID already exists")
    except FolderNotFoundError:
        await storage.discard(stored.filename)
        raise HTTPException(status_code=400, detail="Folder does not exist")
    except Exception:
        logger.exception("Upload of %r failed after the file was stored", custom_id)
        await storage.discard(stored.filename)
        raise HTTPException(status_code=500, detail="Failed to upload video")

    logger.info("Uploaded video %s (%d bytes)", record.custom_id, record.size)
    return VideoResponse.model_validate(record)



@router.get("", response_model=list[VideoResponse])
async def list_videos(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    db: AsyncSession = Depends(get_db),
):
    """List videos in folderId, or root-level videos when it is omitted. Newest first."""
    videos = await VideoCRUD(db).list_by_folder(optional_id(folder_id))
    return [VideoResponse.model_validate(v) for v in videos]


@router.get("/all", response_model=list[VideoResponse])
async def list_all_videos(db: AsyncSession = Depends(get_db)):
    videos = await VideoCRUD(db).list_all()
    return [VideoResponse.model_validate(v) for v in videos]


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(video_id: int, db: AsyncSession = Depends(get_db)):
    """Get details about a specific video."""
    video = await VideoCRUD(db).get(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return VideoResponse.model_validate(video)


@router.patch("/{video_id}", response_model=VideoResponse)
async def update_video(
    video_id: int,
    body: VideoUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rename a video and/or move it to another folder (folderId: null = root)."""
    changes = body.model_dump(exclude_unset=True)
    try:
        video = await VideoCRUD(db).update(video_id, **changes)
    except FolderNotFoundError:
        raise HTTPException(status_code=400, detail="Folder does not exist")
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return VideoResponse.model_validate(video)


@router.delete("/{video_id}", response_model=MessageResponse)
async def delete_video(
    video_id: int,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorageService = Depends(get_storage_service),
):
    """Delete a video and its stored file."""
    crud = VideoCRUD(db)
    video = await crud.get(video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    # File first, then the row
    await storage.delete_file(video.filename)

    if not await crud.delete(video_id):
        raise HTTPException(status_code=404, detail="Video not found")

    logger.info("Deleted video %s", video.custom_id)
    return MessageResponse(message="Video deleted successfully")
