"""
Temporal buckets

Splits time into six mutually exclusive, collectively exhaustive buckets
relative to ``now`` in a given time zone:

    today | yesterday | this_week | last_week | this_month | older

Boundaries are local midnights converted to UTC, weeks start on Monday. Each
bucket's end is one microsecond before the start of the next newer bucket, so
every stored timestamp lands in exactly one bucket.

Pure functions, no I/O.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Dict, Iterator, List, Optional, Tuple, Union

import pytz

from journalwatch.errors import InvalidArgumentError
from journalwatch.utils import to_db_timestamp, to_iso

TEMPORAL_BUCKETS = ("today", "yesterday", "this_week", "last_week", "this_month", "older")

BUCKET_DISPLAY_NAMES = {
    "today": "Today",
    "yesterday": "Yesterday",
    "this_week": "This Week",
    "last_week": "Last Week",
    "this_month": "This Month",
    "older": "Older",
}

ONE_MICROSECOND = timedelta(microseconds=1)
DEFAULT_TIMEZONE = "UTC"


@dataclass(frozen=True)
class TemporalBucket:
    """
    One bucket; ``start``/``end`` are inclusive UTC instants.

    Empty buckets have both bounds None. ``older`` has no start.
    """
    key: str
    display_name: str
    start: Optional[datetime]
    end: Optional[datetime]

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, ts: datetime) -> bool:
        if self.is_empty:
            return False
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True

    def to_dict(self) -> Dict:
        return {
            "key": self.key,
            "displayName": self.display_name,
            "startDate": to_iso(self.start),
            "endDate": to_iso(self.end),
        }


class TemporalBuckets:
    """The six buckets for one (now, timezone), newest first"""

    def __init__(self, buckets: List[TemporalBucket], timezone: str, local_date: date):
        self._buckets = tuple(buckets)
        self._by_key = {bucket.key: bucket for bucket in self._buckets}
        self.timezone = timezone
        self.local_date = local_date

    def __getitem__(self, key: str) -> TemporalBucket:
        return self._by_key[key]

    def __iter__(self) -> Iterator[TemporalBucket]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def lower_bounds(self) -> List[Tuple[str, Optional[str]]]:
        """
        (key, start as db timestamp) of the non-empty buckets, newest first

        ``older`` comes last with a None bound. Used to build the grouped
        CASE expression in the activity store.
        """
        return [
            (bucket.key, to_db_timestamp(bucket.start) if bucket.start is not None else None)
            for bucket in self._buckets
            if not bucket.is_empty
        ]

    def windows(self) -> List[Tuple[str, Optional[str], Optional[str]]]:
        """
        (key, start, exclusive upper) as db timestamps for the non-empty buckets

        ``today`` has no upper bound so future instants fall in it, and
        ``older`` has no start. Used for the entry overlap counts.
        """
        result = []
        for bucket in self._buckets:
            if bucket.is_empty:
                continue
            start = to_db_timestamp(bucket.start) if bucket.start is not None else None
            upper = None if bucket.key == "today" else to_db_timestamp(bucket.end + ONE_MICROSECOND)
            result.append((bucket.key, start, upper))
        return result

    def classify(self, ts: datetime) -> str:
        """
        Key of the single bucket containing ``ts``

        Instants after the end of local today count as today, everything before
        the earliest bounded bucket counts as older.
        """
        if ts.tzinfo is None:
            ts = pytz.utc.localize(ts)
        for bucket in self._buckets:
            if bucket.is_empty or bucket.start is None:
                continue
            if ts >= bucket.start:
                return bucket.key
        return "older"


def validate_timezone(name: Optional[str]) -> str:
    """
    Check an IANA zone name; None/blank means UTC

    Raises:
        InvalidArgumentError: unknown zone
    """
    if name is None or not str(name).strip():
        return DEFAULT_TIMEZONE
    name = str(name).strip()
    if name not in pytz.all_timezones_set:
        raise InvalidArgumentError(f"Invalid timezone '{name}'")
    return name


def _local_midnight(tz: tzinfo, day: date) -> datetime:
    """Start of ``day`` in ``tz`` as a UTC instant"""
    local = datetime.combine(day, time.min)
    if hasattr(tz, "localize"):
        local = tz.localize(local)
    else:
        local = local.replace(tzinfo=tz)
    return local.astimezone(pytz.utc)


def compute_buckets(now: datetime, timezone: Union[str, tzinfo, None] = None) -> TemporalBuckets:
    """
    Compute the six buckets for ``now`` in ``timezone``

    Args:
        now: reference instant (naive means UTC)
        timezone: IANA name or tzinfo, validated beforehand; None means UTC

    Returns:
        TemporalBuckets in TEMPORAL_BUCKETS order
    """
    if timezone is None:
        tz, tz_name = pytz.utc, DEFAULT_TIMEZONE
    elif isinstance(timezone, str):
        tz, tz_name = pytz.timezone(timezone), timezone
    else:
        tz, tz_name = timezone, str(timezone)

    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    local_today = now.astimezone(tz).date()
    monday = local_today - timedelta(days=local_today.weekday())
    month_first = local_today.replace(day=1)

    tomorrow_start = _local_midnight(tz, local_today + timedelta(days=1))
    today_start = _local_midnight(tz, local_today)
    yesterday_start = _local_midnight(tz, local_today - timedelta(days=1))
    # every lower bound is clipped to the next newer one, keeping the chain descending
    this_week_start = min(_local_midnight(tz, monday), yesterday_start)
    last_week_start = min(_local_midnight(tz, monday - timedelta(days=7)), this_week_start)
    this_month_start = min(_local_midnight(tz, month_first), last_week_start)

    lower_bounds = [
        ("today", today_start),
        ("yesterday", yesterday_start),
        ("this_week", this_week_start),
        ("last_week", last_week_start),
        ("this_month", this_month_start),
        ("older", None),
    ]

    buckets = []
    upper = tomorrow_start
    for key, lower in lower_bounds:
        if lower is not None and lower >= upper:
            buckets.append(TemporalBucket(key, BUCKET_DISPLAY_NAMES[key], None, None))
            continue
        buckets.append(TemporalBucket(key, BUCKET_DISPLAY_NAMES[key], lower, upper - ONE_MICROSECOND))
        if lower is not None:
            upper = lower

    return TemporalBuckets(buckets, tz_name, local_today)


def classify_timestamp(ts: datetime, buckets: TemporalBuckets) -> str:
    """Bucket key for ``ts``"""
    return buckets.classify(ts)
