"""Injectable wall clock.

Alert ids and chart time labels are derived from wall-clock time; tests
pass a frozen clock instead of ``utc_now``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)
