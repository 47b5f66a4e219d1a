from datetime import datetime
from typing import Optional

from utils.exceptions import ValidationException
from utils.mongo_helper import utcnow

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def event_starts_at(date: Optional[str], time: Optional[str]) -> Optional[datetime]:
    """Combine the stored date and time strings; None when either is unparsable."""
    if not date or not time:
        return None
    try:
        return datetime.strptime(f"{date} {time[:5]}", f"{DATE_FORMAT} {TIME_FORMAT}")
    except ValueError:
        return None


def validate_schedule(date: str, time: str) -> datetime:
    starts_at = event_starts_at(date, time)
    if starts_at is None:
        raise ValidationException("Invalid date or time format (expected YYYY-MM-DD and HH:MM)")
    return starts_at


def is_in_future(date: Optional[str], time: Optional[str], now: Optional[datetime] = None) -> bool:
    starts_at = event_starts_at(date, time)
    return starts_at is not None and starts_at > (now or utcnow())
