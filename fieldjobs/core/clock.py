from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current time, injected so leases and dates are testable."""

    def now(self) -> datetime:
        """Return the current aware UTC timestamp."""

    def today(self) -> date:
        """Return the current calendar date of the device."""


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return date.today()
