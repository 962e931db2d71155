"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_seconds(dt: datetime) -> int:
    """Whole seconds since the epoch, the unit of the indexer's ingested_at."""
    return int(dt.timestamp())


def elapsed_ms(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() * 1000
