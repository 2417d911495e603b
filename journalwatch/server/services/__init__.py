"""
Business logic services

- ActivityQueryService / JournalService are created per app via the API
  dependencies so tests can swap the providers
- temporal_buckets is a pure function module
"""

from .activity_service import ActivityQueryService, normalize_pagination
from .journal_service import JournalService
from .response_builder import QueryResult, ResponseBuilder
from .store_resolver import StoreResolution, StoreResolver
from .concurrency import Deadline, run_concurrently
from . import temporal_buckets

__all__ = [
    "ActivityQueryService",
    "JournalService",
    "QueryResult",
    "ResponseBuilder",
    "StoreResolution",
    "StoreResolver",
    "Deadline",
    "run_concurrently",
    "normalize_pagination",
    "temporal_buckets",
]
