from datetime import date, datetime, time, timezone, timedelta

from restopos.core.config import settings

try:
    from zoneinfo import ZoneInfo
    LOCAL_TZ = ZoneInfo(settings.LOCAL_TIMEZONE)
except Exception:
    # fallback to a fixed +07:00 offset if the tz database isn't available
    LOCAL_TZ = timezone(timedelta(hours=7))


def utc_now() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_local() -> date:
    return datetime.now(LOCAL_TZ).date()


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize a datetime for storage.

    Aware values are converted to UTC; naive values are assumed to already
    be UTC.
    """
    if dt is None:
        return None
    if getattr(dt, 'tzinfo', None) is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt: datetime) -> datetime:
    """Convert a stored (naive UTC) datetime to the restaurant's zone."""
    if dt is None:
        return None
    if getattr(dt, 'tzinfo', None) is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(LOCAL_TZ)


def local_day_range_to_utc(day: date):
    """Return (start_utc, end_utc) naive datetimes covering one local day.

    The end bound is exclusive.
    """
    start_local = datetime.combine(day, time.min).replace(tzinfo=LOCAL_TZ)
    end_local = start_local + timedelta(days=1)
    return to_utc_naive(start_local), to_utc_naive(end_local)


def local_range_to_utc(start_day: date, end_day: date):
    """UTC bounds for an inclusive range of local days (end exclusive in UTC)."""
    start_utc, _ = local_day_range_to_utc(start_day)
    _, end_utc = local_day_range_to_utc(end_day)
    return start_utc, end_utc


def parse_date(value: str | None, default: date | None = None) -> date | None:
    """Parse a YYYY-MM-DD (or ISO datetime) string; fall back to default."""
    if not value:
        return default
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value).date()
    except ValueError:
        return default


def month_bounds(day: date):
    """First and last day of the month containing `day`."""
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, next_first - timedelta(days=1)
