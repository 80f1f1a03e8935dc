from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime = None) -> str:
    """
    Render a datetime as an ISO-8601 string in UTC.
    Naive values (SQLite drops tzinfo) are treated as UTC.
    dt=None renders the current time.
    """
    if dt is None:
        dt = utc_now()
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat()
