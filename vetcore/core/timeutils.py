from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
from vetcore.core.config import settings

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)

def local_now(now: datetime | None = None) -> datetime:
    return (now or now_utc()).astimezone(local_zone())

def as_aware(dt: datetime) -> datetime:
    # SQLite hands back naive values for TIMESTAMP columns; they are stored in UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute

def from_minutes(m: int) -> time:
    return time(hour=m // 60, minute=m % 60)

def month_start(d: date) -> date:
    return d.replace(day=1)

def month_end(d: date) -> date:
    nxt = add_months(month_start(d), 1)
    return nxt - timedelta(days=1)

def add_months(d: date, months: int) -> date:
    idx = d.month - 1 + months
    year, month = d.year + idx // 12, idx % 12 + 1
    last = (date(year + month // 12, month % 12 + 1, 1) - timedelta(days=1)).day
    return date(year, month, min(d.day, last))

def on_minute(t: time) -> bool:
    return t.second == 0 and t.microsecond == 0
