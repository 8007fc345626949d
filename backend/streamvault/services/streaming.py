"""
Byte-range parsing and the tracked file body for video streaming.

The stream endpoint always answers 206 Partial Content, even when the client
sent no Range header. In that case the range is the whole file.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import anyio
from starlette.responses import StreamingResponse

from streamvault.services.stream_tracker import ActiveStream, StreamTracker

logger = logging.getLogger(__name__)

RANGE_PATTERN = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$")


class RangeNotSatisfiable(Exception):
    def __init__(self, file_size: int):
        super().__init__(f"Requested range not satisfiable for {file_size} bytes")
        self.file_size = file_size


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive
    file_size: int

    @property
    def length(self) -> int:
        return max(self.end - self.start + 1, 0)

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.file_size}"


def parse_range(header: Optional[str], file_size: int) -> ByteRange:
    """Resolve a Range header against a file size.

    - no header           -> whole file
    - bytes=START-END     -> START..END, END clamped to the last byte
    - bytes=START-        -> START..EOF
    - bytes=-N            -> the last N bytes
    Only the first range of a multi-range header is honoured. An empty file
    has no satisfiable range, with or without a header.
    """
    if file_size == 0:
        raise RangeNotSatisfiable(file_size)
    if not header:
        return ByteRange(0, file_size - 1, file_size)

    first = header.split(",", 1)[0]
    match = RANGE_PATTERN.match(first)
    if not match:
        raise RangeNotSatisfiable(file_size)

    start_s, end_s = match.groups()
    if not start_s and not end_s:
        raise RangeNotSatisfiable(file_size)

    if not start_s:
        suffix = int(end_s)
        if suffix == 0:
            raise RangeNotSatisfiable(file_size)
        start = max(file_size - suffix, 0)
        end = file_size - 1
    else:
        start = int(start_s)
        end = int(end_s) if end_s else file_size - 1
        end = min(end, file_size - 1)

    if start >= file_size or start > end:
        raise RangeNotSatisfiable(file_size)
    return ByteRange(start, end, file_size)


@dataclass(frozen=True)
class GraceDelays:
    """How long a finished stream stays visible, per way of finishing."""
    end: float = 5.0
    error: float = 1.0
    disconnect: float = 2.0


async def tracked_file_body(
    path: Path,
    byte_range: ByteRange,
    tracker: StreamTracker,
    stream: ActiveStream,
    chunk_size: int,
    delays: GraceDelays,
) -> AsyncIterator[bytes]:
    """Yield the requested bytes of a file while updating the tracker.

    The record is released with a delay that depends on how streaming ended:
    read to the end, failed on a read error, or was torn down because the
    client went away (cancellation / generator close).
    """
    outcome = "disconnect"
    try:
        async with await anyio.open_file(path, "rb") as f:
            await f.seek(byte_range.start)
            remaining = byte_range.length
            while remaining > 0:
                data = await f.read(min(chunk_size, remaining))
                if not data:
                    break
                remaining -= len(data)
                tracker.record_chunk(stream.stream_id, len(data))
                yield data
        outcome = "end"
    except OSError:
        # Headers are already out; the connection just ends short
        logger.exception("Stream error while sending %s", stream.custom_id)
        outcome = "error"
    finally:
        tracker.release(stream.stream_id, delay=getattr(delays, outcome))


class TrackedStreamingResponse(StreamingResponse):
    """StreamingResponse that always releases its stream record.

    tracked_file_body releases the record itself once it starts running.
    If the client goes away before the first chunk is pulled, the body
    never starts, so the response releases it as a disconnect.
    """

    def __init__(
        self,
        content: AsyncIterator[bytes],
        tracker: StreamTracker,
        stream: ActiveStream,
        delays: GraceDelays,
        **kwargs,
    ):
        super().__init__(content, **kwargs)
        self.tracker = tracker
        self.stream = stream
        self.delays = delays

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.tracker.release(self.stream.stream_id, delay=self.delays.disconnect)
