from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Any, default: Optional[datetime] = None) -> datetime:
    """Normalize a stored timestamp to an aware UTC datetime.

    Some backends (sqlite) hand back naive datetimes; those are UTC by
    construction. Missing or unparseable values fall back to ``default``,
    or to now when no default is given.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            value = None

    if not isinstance(value, datetime):
        return default if default is not None else utcnow()

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_utc_or_none(value: Any) -> Optional[datetime]:
    """Like ``as_utc`` but keeps absent values absent."""
    if value is None:
        return None
    return as_utc(value)
