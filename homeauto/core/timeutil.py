from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from .config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return now_utc().astimezone(local_tz())


def next_daily_occurrence(now: datetime, hour: int, minute: int = 0) -> datetime:
    """Next time-of-day ``hour:minute`` strictly after ``now`` (today or tomorrow)."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate
