"""Wall-clock access for rate-limited scheduling."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def monitor_cutoff(min_interval: timedelta, *, clock: Clock = utcnow) -> datetime:
    """Return the instant before which a block counts as due for a recheck.

    The clock is read exactly once.
    """

    if min_interval < timedelta(0):
        raise ValueError("Minimum monitor interval must be non-negative")
    now = clock()
    if now.tzinfo is None:
        raise ValueError("Clock must return timezone-aware datetimes")
    return now.astimezone(UTC) - min_interval


__all__ = ["Clock", "monitor_cutoff", "utcnow"]
