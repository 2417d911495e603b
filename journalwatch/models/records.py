"""
Row level records returned by the providers
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from journalwatch.models.store import StoreMode


@dataclass(frozen=True)
class ActivityRecord:
    """One unit of external tool work evidence (immutable once ingested)"""
    id: str
    user_id: str
    source: str
    source_id: str
    title: str
    timestamp: datetime          # aware, UTC
    source_url: Optional[str] = None
    description: Optional[str] = None
    cross_tool_refs: List[str] = field(default_factory=list)
    raw_data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class JournalEntryRecord:
    """
    An authored grouping of activities

    ``source_mode`` is fixed at creation; every id in ``activity_ids`` lives in
    that store.
    """
    id: str
    author_id: str
    title: str
    source_mode: StoreMode
    activity_ids: List[str] = field(default_factory=list)
    description: Optional[str] = None
    grouping_method: str = "manual"
    time_range_start: Optional[datetime] = None
    time_range_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
