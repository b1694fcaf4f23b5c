"""Transmissible points in time, as integer nanoseconds since the Unix epoch."""

import logging
import time

from tracebuild.errors import ClockSkew, InvalidTimestamp

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000


def now() -> int:
    """Current time in nanoseconds since Unix epoch."""
    return time.time_ns()


def format_timestamp(ns: int) -> str:
    return str(ns)


def parse_timestamp(text: str) -> int:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidTimestamp(
            text, "expected a non-negative integer (nanoseconds since epoch)"
        )
    return int(text)


def duration_ns(start: int, end: int) -> int:
    if end < start:
        raise ClockSkew(start, end)
    return end - start


def elapsed_seconds(start: int, end: int) -> float:
    """Duration between two timestamps in seconds, never negative."""
    try:
        return duration_ns(start, end) / NANOS_PER_SECOND
    except ClockSkew as e:
        logger.warning(f"Clock skew: {e}. Using a duration of zero.")
        return 0.0
