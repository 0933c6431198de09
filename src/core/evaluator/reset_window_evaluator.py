import logging
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from core.schema.reset_config_schema import ResetScheduleConfig

logger = logging.getLogger("ResetWindowEvaluator")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class ResetWindow:
    """Half-open minute-of-day interval [start, start + length), wrapping at midnight."""

    name: str
    start_minute: int
    length_minutes: int

    def contains(self, local_now: datetime) -> bool:
        minute_of_day = local_now.hour * 60 + local_now.minute
        return (minute_of_day - self.start_minute) % MINUTES_PER_DAY < self.length_minutes

    def describe(self) -> str:
        end_minute = (self.start_minute + self.length_minutes) % MINUTES_PER_DAY
        return f"{self.name}[{_fmt_minute(self.start_minute)}, {_fmt_minute(end_minute)})"


def _fmt_minute(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


class ResetWindowEvaluator:
    """
    Timezone-aware checks for the daily reset window.

    - primary:   [hh:mm, hh:mm + window_minutes)
    - pre_check: [hh:mm - lead, hh:mm + window_minutes + tail), overlapping both ends of primary
    """

    def __init__(self, schedule: ResetScheduleConfig):
        self._schedule = schedule
        self._tz: ZoneInfo = schedule.tzinfo

        start: int = schedule.hour * 60 + schedule.minute
        self.primary = ResetWindow("primary", start, schedule.window_minutes)
        self.pre_check = ResetWindow(
            "pre_check",
            (start - schedule.pre_check_lead_minutes) % MINUTES_PER_DAY,
            schedule.pre_check_lead_minutes + schedule.window_minutes + schedule.pre_check_tail_minutes,
        )

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def localize(self, now: datetime | None = None) -> datetime:
        """Return `now` (or the current time) in the configured timezone; naive values are taken as local."""
        if now is None:
            return self.now()
        if now.tzinfo is None:
            return now.replace(tzinfo=self._tz)
        return now.astimezone(self._tz)

    def in_primary_window(self, now: datetime | None = None) -> bool:
        return self.primary.contains(self.localize(now))

    def in_pre_check_window(self, now: datetime | None = None) -> bool:
        return self.pre_check.contains(self.localize(now))

    def today(self, now: datetime | None = None) -> date:
        return self.localize(now).date()

    def describe(self) -> str:
        return f"{self.primary.describe()} {self.pre_check.describe()} tz={self._schedule.timezone}"
