"""
Timestamp helpers

Instants are stored as fixed-width UTC text ("YYYY-MM-DD HH:MM:SS.ffffff") so
that SQL range comparisons on the column are plain string comparisons.
"""
from datetime import datetime
from typing import Optional

import pytz

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def to_db_timestamp(value: datetime) -> str:
    """
    Format an instant for storage / SQL comparison.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(pytz.utc).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", ""))
    if parsed.tzinfo is None:
        return pytz.utc.localize(parsed)
    return parsed.astimezone(pytz.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with millisecond precision and a Z suffix, e.g. 2025-01-30T09:15:00.000Z"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(pytz.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sql_utc_timestamp(column: str) -> str:
    """
    SQL expression rewriting a stored instant into DB_TIMESTAMP_FORMAT

    Rows written as ISO text ("2025-01-29T05:00:00Z", "+02:00" offsets) are
    converted to UTC by sqlite, so range comparisons agree with
    from_db_timestamp. Resolution is one millisecond.
    """
    return f"(strftime('%Y-%m-%d %H:%M:%f', {column}) || '000')"
