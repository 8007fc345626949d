"""
Per-IP rate limits for login, streaming and upload.

Built on the ``limits`` package (the engine underneath Flask-Limiter and
SlowAPI) with a moving window over in-memory storage. Like the stream
tracker, the counters are process-local.

Usage in a route:
    @router.post("/upload", dependencies=[Depends(rate_limit("upload"))])
"""

import logging
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from streamvault.config import Settings

logger = logging.getLogger(__name__)

LOGIN_MESSAGE = "Too many login attempts, please try again later."
STREAM_MESSAGE = "Too many stream requests from this IP, slow down."
UPLOAD_MESSAGE = "Too many uploads, please wait before trying again."


@dataclass(frozen=True)
class Rule:
    limit: RateLimitItem
    message: str


class RateLimits:
    """The named limits of the application, sharing one storage."""

    def __init__(self, login: str, stream: str, upload: str):
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.rules = {
            "login": Rule(parse(login), LOGIN_MESSAGE),
            "stream": Rule(parse(stream), STREAM_MESSAGE),
            "upload": Rule(parse(upload), UPLOAD_MESSAGE),
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimits":
        return cls(
            login=settings.LOGIN_RATE_LIMIT,
            stream=settings.STREAM_RATE_LIMIT,
            upload=settings.UPLOAD_RATE_LIMIT,
        )

    def hit(self, name: str, client_key: str) -> None:
        """Count one request; raise 429 once the client is over quota."""
        rule = self.rules[name]
        if self.limiter.hit(rule.limit, name, client_key):
            return

        stats = self.limiter.get_window_stats(rule.limit, name, client_key)
        reset_in = max(int(stats.reset_time - time.time()), 0)
        logger.warning("Rate limit %r exceeded by %s", name, client_key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=rule.message,
            headers={
                "RateLimit-Limit": str(rule.limit.amount),
                "RateLimit-Remaining": str(stats.remaining),
                "RateLimit-Reset": str(reset_in),
                "Retry-After": str(reset_in),
            },
        )

    def reset(self) -> None:
        self.storage.reset()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(name: str):
    """FastAPI dependency factory enforcing the named limit for the caller's IP."""

    async def dependency(request: Request) -> None:
        limits: RateLimits = request.app.state.rate_limits
        limits.hit(name, client_ip(request))

    dependency.__name__ = f"rate_limit_{name}"
    return dependency
