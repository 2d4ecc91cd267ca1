from datetime import datetime

DATE_FORMAT = "%Y-%m-%d"


def parse_timestamp(value) -> datetime:
    """
    Parse an order timestamp.

    Accepts a datetime or an ISO 8601 string; a trailing 'Z' is read as UTC.
    Raises ValueError for anything else, including empty values.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Missing timestamp: {value!r}")
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))

def calendar_date_of(value) -> str:
    """
    Calendar date (YYYY-MM-DD) of a timestamp in the local timezone.
    Naive timestamps are taken to be local already.
    """
    dt = parse_timestamp(value)
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime(DATE_FORMAT)

def is_date_key(value) -> bool:
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return True
