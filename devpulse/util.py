import datetime as dt
import math

def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a dashboard would: .5 always goes up, never to even."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor

def hours_between(start: dt.datetime, end: dt.datetime) -> int:
    # whole hours, truncated toward zero
    return int((end - start).total_seconds() / 3600)

def day_bounds(day: dt.date) -> tuple[dt.datetime, dt.datetime]:
    return dt.datetime.combine(day, dt.time.min), dt.datetime.combine(day, dt.time.max)

def days_in_range(start: dt.date, end: dt.date) -> list[dt.date]:
    return [start + dt.timedelta(days=i) for i in range((end - start).days + 1)]

def is_weekend(ts: dt.datetime) -> bool:
    return ts.weekday() >= 5

def is_late_night(ts: dt.datetime) -> bool:
    return ts.hour >= 22 or ts.hour < 6

def sunday_weekday(ts: dt.datetime) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (ts.weekday() + 1) % 7
