"""
Data validation helpers
"""

from datetime import date, datetime
from typing import Optional, Tuple, Union


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Accepts YYYY-MM-DD strings, ISO datetimes (the web client sometimes sends
    "2025-03-01T00:00:00.000Z") or date objects. Returns None if unparsable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def validate_stay_dates(check_in: date, check_out: date) -> Tuple[bool, Optional[str]]:
    """
    Validate check-in/check-out dates.
    Returns (is_valid, error_message)
    """
    if check_out <= check_in:
        return False, "Check-out date must be after check-in date"
    return True, None

