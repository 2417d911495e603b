from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from journalwatch.models import JournalEntryRecord
from journalwatch.server.schemas.activity_schemas import ActivityMetaSummary
from journalwatch.server.schemas.common_schemas import Pagination
from journalwatch.utils import to_iso


class JournalEntryItem(BaseModel):
    """Journal entry in the author's listing"""
    id: str
    title: str
    description: Optional[str] = None
    source_mode: Literal["sandbox", "live"] = Field(..., alias="sourceMode")
    grouping_method: str = Field(default="manual", alias="groupingMethod")
    activity_ids: List[str] = Field(default=[], description="ordered activity ids", alias="activityIds")
    time_range_start: Optional[str] = Field(default=None, alias="timeRangeStart")
    time_range_end: Optional[str] = Field(default=None, alias="timeRangeEnd")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    activity_meta: Optional[ActivityMetaSummary] = Field(
        default=None,
        description="present when includeActivityMeta=true",
        alias="activityMeta"
    )

    class Config:
        populate_by_name = True

    @classmethod
    def from_record(cls, record: JournalEntryRecord, activity_meta: Optional[ActivityMetaSummary] = None):
        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            source_mode=record.source_mode.value,
            grouping_method=record.grouping_method,
            activity_ids=list(record.activity_ids),
            time_range_start=to_iso(record.time_range_start),
            time_range_end=to_iso(record.time_range_end),
            created_at=to_iso(record.created_at),
            updated_at=to_iso(record.updated_at),
            activity_meta=activity_meta,
        )


class JournalListMeta(BaseModel):
    include_activity_meta: bool = Field(default=False, alias="includeActivityMeta")
    filter_by_source: Optional[str] = Field(default=None, alias="filterBySource")

    class Config:
        populate_by_name = True


class JournalListResponse(BaseModel):
    data: List[JournalEntryItem] = Field(default=[], description="entries, newest first")
    pagination: Pagination
    meta: JournalListMeta
