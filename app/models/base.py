from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import String

GUID_LENGTH = 36
GUID_TYPE = String(GUID_LENGTH)


def default_uuid() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    # Naive UTC; SQLite drops tzinfo on the way back anyway.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


__all__ = ["GUID_TYPE", "GUID_LENGTH", "as_naive_utc", "default_uuid", "utcnow"]
