"""
Pydantic schemas for the dashboard's analytics endpoints.
"""

from streamvault.schemas.base import CamelModel


class LibraryStats(CamelModel):
    """Snapshot returned by GET /api/stats.

    cpu_usage/memory_usage are percentages; host_metrics_estimated is true
    when the OS probes were unavailable and those two are synthetic.
    """
    total_videos: int
    total_folders: int
    total_storage: int
    disk_usage: int
    avg_duration: int
    uptime: float
    cpu_usage: float
    memory_usage: float
    total_memory: int
    active_streams: int
    total_bandwidth: int
    host_metrics_estimated: bool = False


class StreamDetail(CamelModel):
    id: str                 # the video's customId
    duration: int           # ms since the stream opened
    client_id: str
    bytes_streamed: int


class StreamAnalytics(CamelModel):
    active_streams: int
    stream_details: list[StreamDetail]
    total_concurrent_limit: int
