from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of message timestamps; always timezone-aware."""

    def now(self) -> datetime: ...


class UtcClock:
    def now(self) -> datetime:
        # Server timestamps without an offset are read as UTC too.
        return datetime.now(tz=timezone.utc)
