"""
In-memory bookkeeping for in-flight video streams.

One StreamTracker lives on ``app.state.streams`` for the lifetime of the
process. It records every open stream response, how many bytes each has
sent, and a process-wide bandwidth total.

Records are not removed the instant a stream finishes. release() keeps a
record around for a short grace delay so a dashboard polling
/api/stream-analytics every few seconds still sees streams that ended
between two polls.

Scope: this state is process-local. Running the API under several worker
processes gives each worker its own tracker, and the analytics endpoints
then report only the calling worker's slice of traffic. Deploy with a
single worker when these numbers matter.
"""

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class ActiveStream:
    """One in-progress streaming response."""
    stream_id: str
    custom_id: str
    client_id: str
    started_at: float = field(default_factory=time.time)
    bytes_streamed: int = 0

    def duration_ms(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return int((now - self.started_at) * 1000)


class StreamTracker:
    def __init__(self, concurrent_limit: int = 250):
        self.concurrent_limit = concurrent_limit
        self.total_bandwidth = 0
        self._streams: dict[str, ActiveStream] = {}
        self._pending: dict[str, asyncio.TimerHandle] = {}

    @staticmethod
    def new_stream_id(custom_id: str) -> str:
        token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
        return f"{custom_id}-{int(time.time() * 1000)}-{token}"

    def open(self, custom_id: str, client_id: str) -> ActiveStream:
        """Register a new stream and return its record."""
        stream = ActiveStream(
            stream_id=self.new_stream_id(custom_id),
            custom_id=custom_id,
            client_id=client_id,
        )
        self._streams[stream.stream_id] = stream
        logger.debug("Stream opened: %s for %s", stream.stream_id, client_id)
        return stream

    def record_chunk(self, stream_id: str, nbytes: int) -> None:
        """Account for a chunk sent. Chunks for already-removed streams are ignored."""
        stream = self._streams.get(stream_id)
        if stream is None:
            return
        stream.bytes_streamed += nbytes
        self.total_bandwidth += nbytes

    def release(self, stream_id: str, delay: float = 0.0) -> None:
        """Remove a stream record, optionally after a grace delay.

        Releasing twice keeps the earlier deadline; a stream that ended and
        then saw its connection close is not kept around any longer.
        """
        if stream_id not in self._streams or stream_id in self._pending:
            return
        if delay <= 0:
            self.discard(stream_id)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.discard(stream_id)
            return
        self._pending[stream_id] = loop.call_later(delay, self.discard, stream_id)

    def discard(self, stream_id: str) -> None:
        """Remove a stream record now, cancelling any pending delayed removal."""
        handle = self._pending.pop(stream_id, None)
        if handle is not None:
            handle.cancel()
        stream = self._streams.pop(stream_id, None)
        if stream is not None:
            logger.debug(
                "Stream closed: %s (%d bytes)", stream_id, stream.bytes_streamed
            )

    def get(self, stream_id: str) -> ActiveStream | None:
        return self._streams.get(stream_id)

    @property
    def active_count(self) -> int:
        return len(self._streams)

    def snapshot(self) -> list[ActiveStream]:
        return list(self._streams.values())

    def reset(self) -> None:
        """Drop all records and counters, cancelling pending removals."""
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._streams.clear()
        self.total_bandwidth = 0
