"""Clock-free time arithmetic for shifts expressed as HH:mm strings."""
from datetime import date, datetime, timedelta

from turnofacil.utils.validators import time_to_minutes

MINUTES_PER_DAY = 1440


def crosses_midnight(start_time: str, end_time: str) -> bool:
    """A shift whose end is not after its start runs into the next day."""
    return time_to_minutes(end_time) <= time_to_minutes(start_time)


def shift_minutes(start_time: str, end_time: str):
    """Return (start, end) in minutes, end pushed past 1440 for overnight shifts."""
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if end <= start:
        end += MINUTES_PER_DAY
    return start, end


def shift_duration_hours(start_time: str, end_time: str) -> float:
    start, end = shift_minutes(start_time, end_time)
    return (end - start) / 60


def shift_bounds(shift_date: date, start_time: str, end_time: str):
    """Absolute (start, end) datetimes of a shift on its calendar date."""
    start, end = shift_minutes(start_time, end_time)
    midnight = datetime.combine(shift_date, datetime.min.time())
    return midnight + timedelta(minutes=start), midnight + timedelta(minutes=end)


def day_index(value: date) -> int:
    """Weekday with Sunday as 0, the convention used by availability entries."""
    return (value.weekday() + 1) % 7


def week_start(value: date) -> date:
    """Sunday that opens the week containing value."""
    return value - timedelta(days=day_index(value))
