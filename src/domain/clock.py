from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC now; timestamps are stored without tzinfo"""
    return datetime.now(UTC).replace(tzinfo=None)
