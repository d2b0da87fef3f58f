"""Injectable time source.

Stored timestamps are naive UTC, matching the ``datetime.utcnow`` defaults on
the ORM models. Calendar-day decisions (recurrence, allowance due dates) are
made in ``FAMILYBANK_TIMEZONE``. Weekday numbers run 0 = Sunday to 6 = Saturday.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "UTC"


def _ResolveTimezone(value: str | None) -> ZoneInfo:
    name = (value or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"Unknown timezone: {name}") from exc


def DayOfWeek(on_date: date) -> int:
    return on_date.isoweekday() % 7


class Clock(ABC):
    def __init__(self, tz_name: str | None = None) -> None:
        self.Timezone = _ResolveTimezone(tz_name if tz_name is not None else os.getenv("FAMILYBANK_TIMEZONE"))

    @abstractmethod
    def Now(self) -> datetime:
        ...

    def Today(self) -> date:
        return self.LocalDate(self.Now())

    def LocalDate(self, moment: datetime) -> date:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.Timezone).date()

    def StartOfDay(self, on_date: date) -> datetime:
        local = datetime.combine(on_date, time.min, tzinfo=self.Timezone)
        return local.astimezone(timezone.utc).replace(tzinfo=None)


class SystemClock(Clock):
    def Now(self) -> datetime:
        return datetime.now(tz=timezone.utc).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock pinned to a given instant; used by tests and backfills."""

    def __init__(self, now: datetime, tz_name: str | None = DEFAULT_TIMEZONE) -> None:
        super().__init__(tz_name)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        self._now = now

    def Now(self) -> datetime:
        return self._now

    def Set(self, now: datetime) -> None:
        self._now = now

    def Advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


_system_clock: Clock | None = None


def GetClock() -> Clock:
    global _system_clock
    if _system_clock is None:
        _system_clock = SystemClock()
    return _system_clock
