import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Jakarta"
TIMEZONE_INFO = ZoneInfo(DEFAULT_TIMEZONE)


def seconds_until_next_tick(interval_sec: int | float, now: datetime) -> float:
    """
    Seconds from `now` to the next wall-clock multiple of interval.
    Example: interval=60, now=16:24:23.5 -> 36.5
    """
    interval = float(interval_sec)
    if interval <= 0:
        raise ValueError(f"interval_sec must be positive, got {interval_sec}")
    timestamp: float = now.timestamp()
    next_timestamp: float = (timestamp // interval + 1) * interval
    return max(0.0, next_timestamp - timestamp)


async def sleep_until_next_tick(interval_sec: int | float, tz: ZoneInfo = TIMEZONE_INFO) -> datetime:
    """
    Align wall clock to the next interval tick before waking up.
    Returns the wake-up time (with TZ).
    """
    datetime_now: datetime = datetime.now(tz)
    sleep_sec: float = seconds_until_next_tick(interval_sec, datetime_now)
    await asyncio.sleep(sleep_sec)
    return datetime.now(tz)
