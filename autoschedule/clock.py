"""Time sources passed into the scheduler instead of reading the wall clock."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Protocol


class Clock(Protocol):
    tz: tzinfo

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Always returns the same instant. Naive instants are taken to be in *tz*."""

    def __init__(self, instant: datetime, tz: tzinfo | None = None) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=tz or timezone.utc)
        self.tz = tz or instant.tzinfo
        self.instant = instant.astimezone(self.tz)

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()
