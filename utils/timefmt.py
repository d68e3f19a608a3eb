# utils/timefmt.py
from datetime import datetime, time

from models.schedule import WEEKDAYS


def parse_hhmm(value) -> time:
    """'08:30' → time(8, 30). Raises ValueError on anything else."""
    if isinstance(value, time):
        return value
    return datetime.strptime(str(value).strip(), "%H:%M").time()


def parse_optional_hhmm(value) -> time | None:
    if value is None or str(value).strip() == "":
        return None
    return parse_hhmm(value)


def fmt_hhmm(t: time | None) -> str | None:
    return t.strftime("%H:%M") if t else None


def parse_days(values) -> list[str]:
    """
    Normalise a days_of_week payload: lowercase, de-duplicated, week order.
    Raises ValueError when empty or when a name is not a weekday.
    """
    if not isinstance(values, (list, tuple, set)) or not values:
        raise ValueError("days_of_week must be a non-empty list")
    days = {str(d).strip().lower() for d in values}
    bad = sorted(days - set(WEEKDAYS))
    if bad:
        raise ValueError(f"invalid day(s): {', '.join(bad)}")
    return [d for d in WEEKDAYS if d in days]
