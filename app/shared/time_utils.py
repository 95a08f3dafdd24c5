"""Date and time helpers shared by bookings, payments and reports"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from ..config import REPORT_TZ_OFFSET_HOURS


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns store naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month"""
    return value + relativedelta(months=months)


def month_difference(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def parse_time(value: Optional[str]) -> tuple[int, int]:
    """Parse 'HH:MM' (or 'HH:MM:SS'); invalid or empty values read as midnight"""
    if not value:
        return 0, 0
    try:
        parts = value.split(":")
        return int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except (ValueError, IndexError):
        return 0, 0


def hours_until(target: datetime, now: Optional[datetime] = None) -> float:
    now = now or utcnow()
    return (target - now).total_seconds() / 3600


def day_bounds(day: Union[date, datetime]) -> tuple[datetime, datetime]:
    """Return [start, end) of a calendar day"""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def eastern_day_range(
    start_date: Optional[str], end_date: Optional[str]
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Convert YYYY-MM-DD filter strings (US Eastern days) into a UTC [start, end] range"""
    offset = timedelta(hours=REPORT_TZ_OFFSET_HOURS)
    start = None
    end = None
    if start_date:
        start = datetime.strptime(start_date[:10], "%Y-%m-%d") + offset
    if end_date:
        end = datetime.strptime(end_date[:10], "%Y-%m-%d") + offset + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timezone-aware input is converted to naive UTC; naive input is assumed UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date(value: str) -> datetime:
    """Parse YYYY-MM-DD (or an ISO datetime) into a naive UTC datetime"""
    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return datetime.strptime(value[:10], "%Y-%m-%d")


def derive_status(status: str, scheduled_date: datetime, now: Optional[datetime] = None) -> str:
    """A booking whose date has passed reads as COMPLETED unless it was cancelled"""
    now = now or utcnow()
    if scheduled_date < now and status != "CANCELLED":
        return "COMPLETED"
    return status


def format_time_12h(value: Optional[str]) -> str:
    """'14:30' -> '2:30 PM'; values already carrying AM/PM or not parseable are returned unchanged"""
    if not value:
        return ""
    value = value.strip()
    if "AM" in value.upper() or "PM" in value.upper():
        return value
    parts = value.split(":")
    if len(parts) < 2:
        return value
    try:
        hour = int(parts[0])
    except ValueError:
        return value
    if not 0 <= hour <= 23:
        return value
    period = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    return f"{hour}:{parts[1].zfill(2)} {period}"


def format_duration_hours(duration: Optional[float]) -> str:
    """1.5 -> '1 hr 30 min', 2 -> '2 hr', 0.5 -> '30 min'"""
    if not duration or duration <= 0:
        return "0 min"
    hours = int(duration)
    minutes = round((duration - hours) * 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours} hr")
    if minutes > 0:
        parts.append(f"{minutes} min")
    return " ".join(parts) or "0 min"
