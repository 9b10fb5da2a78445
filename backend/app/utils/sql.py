"""
Helpers for reading and writing SQLAlchemy values in the stores.

COUNT queries may come back as a bare int or as a 1-tuple/Row depending on
how the statement was executed; conditional UPDATE/DELETE callers only care
how many rows were touched. Timestamp columns use UTCDateTime so reads always
hand back aware UTC values, whatever the driver stores.
"""
from typing import Any

from sqlalchemy.types import DateTime, TypeDecorator

from app.utils.timestamps import as_utc


def scalar_int(x: Any) -> int:
    """Convert a COUNT result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except (TypeError, IndexError):
        return int(x)


def affected_rows(result: Any) -> int:
    """Rows touched by an UPDATE/DELETE; drivers that cannot tell report 0."""
    count = getattr(result, "rowcount", None)
    if count is None or count < 0:
        return 0
    return int(count)


class UTCDateTime(TypeDecorator):
    """DATETIME column holding UTC; naive in the database, aware in Python."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        return as_utc(value)
