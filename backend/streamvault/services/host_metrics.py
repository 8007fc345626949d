"""
Host CPU/memory probes for the stats endpoint.

psutil does the real measuring. Some sandboxes and containers refuse those
probes; then we fall back to a bounded, randomized estimate that grows
with library size so the dashboard still has something to draw. The
estimate is not a measurement and the response marks it as such.
"""

import logging
import random
import time
from dataclasses import dataclass

import psutil

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_MEMORY = 2 * 1024**3  # 2GB
MAX_CPU_PERCENT = 95.0

_started_at = time.time()


@dataclass
class HostMetrics:
    cpu_usage: float
    memory_usage: float
    total_memory: int
    uptime: float
    estimated: bool = False


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def cpu_usage_percent(video_count: int) -> tuple[float, bool]:
    """1-minute load average scaled to a percentage, or an estimate."""
    try:
        load_1m = psutil.getloadavg()[0]
        return min(load_1m * 25, MAX_CPU_PERCENT), False
    except (OSError, AttributeError, psutil.Error) as e:
        logger.debug("CPU probe unavailable: %s", e)
        base = 15 + video_count * 2
        return _clamp(base + random.uniform(-10, 10), 5, 85), True


def memory_usage(video_count: int) -> tuple[float, int, bool]:
    """(percent used, total bytes, estimated?)"""
    try:
        mem = psutil.virtual_memory()
        used = mem.total - mem.available
        return used / mem.total * 100, int(mem.total), False
    except (OSError, AttributeError, ZeroDivisionError, psutil.Error) as e:
        logger.debug("Memory probe unavailable: %s", e)
        base = 30 + video_count * 1.5
        return _clamp(base + random.uniform(-7.5, 7.5), 20, 80), DEFAULT_TOTAL_MEMORY, True


def process_uptime() -> float:
    """Seconds since this process started."""
    try:
        return time.time() - psutil.Process().create_time()
    except (OSError, psutil.Error):
        return time.time() - _started_at


def collect(video_count: int) -> HostMetrics:
    cpu, cpu_estimated = cpu_usage_percent(video_count)
    mem_percent, total_memory, mem_estimated = memory_usage(video_count)
    return HostMetrics(
        cpu_usage=round(cpu, 2),
        memory_usage=round(mem_percent, 2),
        total_memory=total_memory,
        uptime=round(process_uptime(), 2),
        estimated=cpu_estimated or mem_estimated,
    )
