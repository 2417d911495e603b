from .logger import get_logger
from .lazy_singleton import LazySingleton
from .time_utils import to_db_timestamp, from_db_timestamp, to_iso, utc_now, sql_utc_timestamp

__all__ = [
    "get_logger",
    "LazySingleton",
    "to_db_timestamp",
    "from_db_timestamp",
    "to_iso",
    "utc_now",
    "sql_utc_timestamp",
]
