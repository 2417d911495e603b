from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

from journalwatch.models import ActivityRecord
from journalwatch.server.schemas.common_schemas import Pagination
from journalwatch.utils import to_iso

# ============================================================================
# Activity items
# ============================================================================

class ActivityItem(BaseModel):
    """One activity as returned to clients"""
    id: str = Field(..., description="activity id (unique within its store)")
    source: str = Field(..., description="source tool id, e.g. github")
    source_id: str = Field(..., description="id inside the source tool", alias="sourceId")
    source_url: Optional[str] = Field(default=None, description="link back to the source", alias="sourceUrl")
    title: str = Field(..., description="activity title")
    description: Optional[str] = Field(default=None, description="activity description")
    timestamp: str = Field(..., description="ISO-8601 UTC instant")
    cross_tool_refs: List[str] = Field(default=[], description="references to other tools", alias="crossToolRefs")
    raw_data: Optional[Dict[str, Any]] = Field(default=None, description="source payload", alias="rawData")

    class Config:
        populate_by_name = True

    @classmethod
    def from_record(cls, record: ActivityRecord, **extra) -> "ActivityItem":
        return cls(
            id=record.id,
            source=record.source,
            source_id=record.source_id,
            source_url=record.source_url,
            title=record.title,
            description=record.description,
            timestamp=to_iso(record.timestamp),
            cross_tool_refs=list(record.cross_tool_refs or []),
            raw_data=record.raw_data,
            **extra,
        )


class FeedActivityItem(ActivityItem):
    """Activity in the user feed, with its story assignment"""
    story_id: Optional[str] = Field(default=None, description="journal entry holding this activity", alias="storyId")
    story_title: Optional[str] = Field(default=None, description="title of that entry", alias="storyTitle")


class StoryMetadata(BaseModel):
    """The journal entry behind a story group"""
    id: str
    title: str
    description: Optional[str] = None
    time_range_start: Optional[str] = Field(default=None, alias="timeRangeStart")
    time_range_end: Optional[str] = Field(default=None, alias="timeRangeEnd")
    grouping_method: str = Field(..., description="time | cluster | manual", alias="groupingMethod")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


class ActivityGroup(BaseModel):
    """Feed activities grouped by bucket, source or story"""
    key: str = Field(..., description="bucket key, source id, entry id or unassigned")
    label: str = Field(..., description="display label")
    count: int = Field(..., description="activities in this group; for a story, every activity of the entry")
    activities: List[FeedActivityItem] = Field(default=[], description="activities, newest first")
    story_metadata: Optional[StoryMetadata] = Field(default=None, description="set for story groups", alias="storyMetadata")

    class Config:
        populate_by_name = True


# ============================================================================
# Entry activities
# ============================================================================

class EntryActivitiesMeta(BaseModel):
    source_mode: Literal["sandbox", "live"] = Field(..., description="store the entry's activities live in", alias="sourceMode")
    entry_id: str = Field(..., description="journal entry id", alias="entryId")

    class Config:
        populate_by_name = True


class EntryActivitiesResponse(BaseModel):
    data: List[ActivityItem] = Field(default=[], description="activities of the entry, newest first")
    pagination: Pagination
    meta: EntryActivitiesMeta


# ============================================================================
# Stats
# ============================================================================

class SourceStatItem(BaseModel):
    """Per source aggregate"""
    source: str = Field(..., description="source id")
    display_name: str = Field(..., description="registry display name (source id when unknown)", alias="displayName")
    color: Optional[str] = Field(default=None, description="registry color, null when unknown")
    icon: Optional[str] = Field(default=None, description="registry icon, null when unknown")
    activity_count: int = Field(..., description="activities of this source", alias="activityCount")
    journal_entry_count: int = Field(..., description="entries referencing at least one of them", alias="journalEntryCount")

    class Config:
        populate_by_name = True


class SourceStatsMeta(BaseModel):
    source_mode: Literal["sandbox", "live"] = Field(..., alias="sourceMode")
    group_by: Literal["source"] = Field(default="source", alias="groupBy")
    max_sources: int = Field(..., description="cap on returned groups", alias="maxSources")
    source_count: int = Field(..., description="groups before the cap", alias="sourceCount")
    total_activities: int = Field(..., description="activities across all groups", alias="totalActivities")
    total_journal_entries: int = Field(..., description="distinct entries", alias="totalJournalEntries")
    truncated: bool = Field(..., description="groups were dropped by the cap")

    class Config:
        populate_by_name = True


class SourceStatsResponse(BaseModel):
    data: List[SourceStatItem] = Field(default=[], description="largest source first")
    meta: SourceStatsMeta


class TemporalStatItem(BaseModel):
    """Per bucket aggregate"""
    bucket: str = Field(..., description="bucket key")
    display_name: str = Field(..., alias="displayName")
    start_date: Optional[str] = Field(default=None, description="inclusive start, null when unbounded or empty", alias="startDate")
    end_date: Optional[str] = Field(default=None, description="inclusive end, null when empty", alias="endDate")
    activity_count: int = Field(..., alias="activityCount")
    journal_entry_count: int = Field(..., description="entries whose time span overlaps the bucket", alias="journalEntryCount")

    class Config:
        populate_by_name = True


class TemporalStatsMeta(BaseModel):
    source_mode: Literal["sandbox", "live"] = Field(..., alias="sourceMode")
    group_by: Literal["temporal"] = Field(default="temporal", alias="groupBy")
    timezone: str = Field(..., description="IANA zone the buckets were computed in")
    total_activities: int = Field(..., alias="totalActivities")
    total_journal_entries: int = Field(..., description="distinct entries", alias="totalJournalEntries")

    class Config:
        populate_by_name = True


class TemporalStatsResponse(BaseModel):
    data: List[TemporalStatItem] = Field(default=[], description="the six buckets, newest first")
    meta: TemporalStatsMeta


# ============================================================================
# Activity feed
# ============================================================================

class ActivityFeedMeta(BaseModel):
    source_mode: Literal["sandbox", "live"] = Field(..., alias="sourceMode")
    group_by: Optional[Literal["temporal", "source", "story"]] = Field(default=None, alias="groupBy")
    timezone: Optional[str] = Field(default=None, description="set for temporal grouping")

    class Config:
        populate_by_name = True


class ActivityFeedResponse(BaseModel):
    data: Union[List[ActivityGroup], List[FeedActivityItem]] = Field(
        default=[],
        description="flat activities, or groups when groupBy is set"
    )
    pagination: Pagination
    meta: ActivityFeedMeta


# ============================================================================
# Batch meta for journal listings
# ============================================================================

class SourceCount(BaseModel):
    source: str
    count: int


class DateRange(BaseModel):
    earliest: str = Field(..., description="oldest activity timestamp")
    latest: str = Field(..., description="newest activity timestamp")


class ActivityMetaSummary(BaseModel):
    """Activity summary attached to one journal entry"""
    total_count: int = Field(..., alias="totalCount")
    sources: List[SourceCount] = Field(default=[], description="per source counts, largest first")
    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")

    class Config:
        populate_by_name = True


# ============================================================================
# Source registry
# ============================================================================

class SourceInfo(BaseModel):
    id: str
    display_name: str = Field(..., alias="displayName")
    color: Optional[str] = None
    icon: Optional[str] = None

    class Config:
        populate_by_name = True


class SourcesResponse(BaseModel):
    data: List[SourceInfo] = Field(default=[], description="registered sources")
    meta: Dict[str, Any] = Field(default={}, description="count")
