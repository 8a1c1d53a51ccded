from datetime import datetime, timezone


def local_now() -> datetime:
    """Current local time, timezone aware."""
    return datetime.now().astimezone()


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
