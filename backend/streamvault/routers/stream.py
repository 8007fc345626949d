"""
Video streaming and live stream analytics.

GET /api/stream/{customId} serves the stored file with byte-range support.
It answers 206 Partial Content for every request, including requests
without a Range header (the range is then the whole file), and keeps an
ActiveStream record on app.state.streams while bytes are flowing.

GET /api/stream-analytics reports what the tracker currently holds.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.auth import require_auth
from streamvault.config import settings
from streamvault.crud import VideoCRUD
from streamvault.database import get_db
from streamvault.schemas.stats import StreamAnalytics, StreamDetail
from streamvault.services.rate_limit import client_ip, rate_limit
from streamvault.services.storage import LocalStorageService, get_storage_service
from streamvault.services.stream_tracker import StreamTracker
from streamvault.services.streaming import (
    GraceDelays,
    RangeNotSatisfiable,
    TrackedStreamingResponse,
    parse_range,
    tracked_file_body,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stream"])

DEFAULT_MIME_TYPE = "video/mp4"

BASE_HEADERS = {
    "Cache-Control": "public, max-age=3600",
    "Accept-Ranges": "bytes",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Range",
}


def get_stream_tracker(request: Request) -> StreamTracker:
    return request.app.state.streams


def grace_delays() -> GraceDelays:
    return GraceDelays(
        end=settings.STREAM_GRACE_END_SECONDS,
        error=settings.STREAM_GRACE_ERROR_SECONDS,
        disconnect=settings.STREAM_GRACE_DISCONNECT_SECONDS,
    )


# Rate limit is checked before auth
@router.get(
    "/stream/{custom_id}",
    dependencies=[Depends(rate_limit("stream")), Depends(require_auth)],
)
async def stream_video(
    custom_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorageService = Depends(get_storage_service),
    tracker: StreamTracker = Depends(get_stream_tracker),
):
    """Stream a video by its customId. Supports Range requests for seeking."""
    crud = VideoCRUD(db)
    video = await crud.get_by_custom_id(custom_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    if not await storage.file_exists(video.filename):
        raise HTTPException(status_code=404, detail="Video file not found")
    path = storage.path_for(video.filename)

    stream = tracker.open(video.custom_id, client_ip(request))
    try:
        # Every open counts as a view, finished or not
        try:
            await crud.increment_views(video.id)
        except Exception:
            logger.warning("Failed to increment view count for %s", video.custom_id, exc_info=True)
            await db.rollback()

        file_size = path.stat().st_size
        try:
            byte_range = parse_range(request.headers.get("range"), file_size)
        except RangeNotSatisfiable:
            tracker.discard(stream.stream_id)
            return Response(
                status_code=416,
                headers={**BASE_HEADERS, "Content-Range": f"bytes */{file_size}"},
            )

        headers = {
            **BASE_HEADERS,
            "Content-Range": byte_range.content_range,
            "Content-Length": str(byte_range.length),
        }
        delays = grace_delays()
        body = tracked_file_body(
            path,
            byte_range,
            tracker,
            stream,
            chunk_size=settings.STREAM_CHUNK_SIZE,
            delays=delays,
        )
    except Exception:
        logger.exception("Streaming error for %s", custom_id)
        tracker.discard(stream.stream_id)
        raise HTTPException(status_code=500, detail="Streaming error")

    return TrackedStreamingResponse(
        body,
        tracker=tracker,
        stream=stream,
        delays=delays,
        status_code=206,
        media_type=video.mime_type or DEFAULT_MIME_TYPE,
        headers=headers,
    )


@router.get(
    "/stream-analytics",
    response_model=StreamAnalytics,
    dependencies=[Depends(require_auth)],
)
async def stream_analytics(tracker: StreamTracker = Depends(get_stream_tracker)):
    """Streams currently tracked by this process (including ones in their grace delay)."""
    details = [
        StreamDetail(
            id=s.custom_id,
            duration=s.duration_ms(),
            client_id=s.client_id,
            bytes_streamed=s.bytes_streamed,
        )
        for s in tracker.snapshot()
    ]
    return StreamAnalytics(
        active_streams=len(details),
        stream_details=details,
        total_concurrent_limit=tracker.concurrent_limit,
    )
