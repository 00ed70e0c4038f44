import datetime
import math


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp; every column in the store holds naive UTC."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def hours_remaining(expires_at, now) -> int:
    """Whole hours (rounded up) until `expires_at`, never negative."""
    if not expires_at:
        return 0
    seconds = (expires_at - now).total_seconds()
    return max(0, math.ceil(seconds / 3600))


def isoformat(value):
    return value.isoformat() if value else None
