"""
Library statistics for the dashboard.

GET /api/stats combines three sources:
1. The database (video/folder counts, stored bytes, average duration)
2. The upload directory (bytes actually on disk)
3. The host (CPU, memory, uptime) and the in-process stream tracker

Nothing is cached; the dashboard polls this every few seconds.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.auth import require_auth
from streamvault.crud import FolderCRUD, VideoCRUD
from streamvault.database import get_db
from streamvault.routers.stream import get_stream_tracker
from streamvault.schemas.stats import LibraryStats
from streamvault.services import host_metrics
from streamvault.services.storage import LocalStorageService, get_storage_service
from streamvault.services.stream_tracker import StreamTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stats"], dependencies=[Depends(require_auth)])


@router.get("/stats", response_model=LibraryStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    storage: LocalStorageService = Depends(get_storage_service),
    tracker: StreamTracker = Depends(get_stream_tracker),
):
    """Aggregate library and host numbers into one snapshot."""
    totals = await VideoCRUD(db).totals()
    total_folders = await FolderCRUD(db).count()

    try:
        disk_usage = storage.disk_usage()
    except OSError as e:
        logger.warning("Could not measure upload directory: %s", e)
        disk_usage = totals.total_size

    host = host_metrics.collect(totals.video_count)

    return LibraryStats(
        total_videos=totals.video_count,
        total_folders=total_folders,
        total_storage=totals.total_size,
        disk_usage=disk_usage,
        avg_duration=round(totals.avg_duration),
        uptime=host.uptime,
        cpu_usage=host.cpu_usage,
        memory_usage=host.memory_usage,
        total_memory=host.total_memory,
        active_streams=tracker.active_count,
        total_bandwidth=tracker.total_bandwidth,
        host_metrics_estimated=host.estimated,
    )
