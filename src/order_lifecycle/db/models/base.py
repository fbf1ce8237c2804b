"""
Base class and shared column types for all SQLAlchemy ORM models.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


def new_id() -> str:
    """Generate a unique primary key for domain records."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column.

    SQLite has no timezone-aware storage, so values are normalised to UTC
    on the way in and tagged as UTC on the way out. Naive values are taken
    to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Uses SQLAlchemy 2.0 declarative base pattern. All models inherit from this
    class to gain common functionality and metadata management.
    """

    pass
