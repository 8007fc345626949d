"""
Unit tests for the per-IP rate limits.
"""

import pytest
from fastapi import HTTPException

from streamvault.services.rate_limit import (
    LOGIN_MESSAGE,
    UPLOAD_MESSAGE,
    RateLimits,
)


@pytest.fixture
def limits():
    return RateLimits(login="3 per minute", stream="5 per minute", upload="2 per minute")


def test_allows_up_to_the_limit(limits):
    for _ in range(3):
        limits.hit("login", "10.0.0.1")


def test_over_limit_raises_429(limits):
    for _ in range(3):
        limits.hit("login", "10.0.0.1")

    with pytest.raises(HTTPException) as exc_info:
        limits.hit("login", "10.0.0.1")

    exc = exc_info.value
    assert exc.status_code == 429
    assert exc.detail == LOGIN_MESSAGE
    assert exc.headers["RateLimit-Limit"] == "3"
    assert exc.headers["RateLimit-Remaining"] == "0"
    assert 0 <= int(exc.headers["Retry-After"]) <= 60


def test_limits_are_per_client(limits):
    for _ in range(2):
        limits.hit("upload", "10.0.0.1")

    limits.hit("upload", "10.0.0.2")
    with pytest.raises(HTTPException) as exc_info:
        limits.hit("upload", "10.0.0.1")
    assert exc_info.value.detail == UPLOAD_MESSAGE


def test_limits_are_per_rule(limits):
    for _ in range(3):
        limits.hit("login", "10.0.0.1")

    # Exhausting login does not touch the stream budget
    for _ in range(5):
        limits.hit("stream", "10.0.0.1")


def test_reset_clears_windows(limits):
    for _ in range(3):
        limits.hit("login", "10.0.0.1")

    limits.reset()

    limits.hit("login", "10.0.0.1")
