"""UTC datetime utilities and the engine clock."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Whole seconds since the epoch, UTC."""
    return int(utc_now().timestamp())
