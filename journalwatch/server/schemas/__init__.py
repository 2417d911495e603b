"""
Pydantic schemas for response models
"""

from .common_schemas import Pagination, ErrorResponse
from .activity_schemas import (
    ActivityItem,
    FeedActivityItem,
    StoryMetadata,
    ActivityGroup,
    EntryActivitiesMeta,
    EntryActivitiesResponse,
    SourceStatItem,
    SourceStatsMeta,
    SourceStatsResponse,
    TemporalStatItem,
    TemporalStatsMeta,
    TemporalStatsResponse,
    ActivityFeedMeta,
    ActivityFeedResponse,
    SourceCount,
    DateRange,
    ActivityMetaSummary,
    SourceInfo,
    SourcesResponse,
)
from .journal_schemas import (
    JournalEntryItem,
    JournalListMeta,
    JournalListResponse,
)

__all__ = [
    "Pagination",
    "ErrorResponse",
    "ActivityItem",
    "FeedActivityItem",
    "StoryMetadata",
    "ActivityGroup",
    "EntryActivitiesMeta",
    "EntryActivitiesResponse",
    "SourceStatItem",
    "SourceStatsMeta",
    "SourceStatsResponse",
    "TemporalStatItem",
    "TemporalStatsMeta",
    "TemporalStatsResponse",
    "ActivityFeedMeta",
    "ActivityFeedResponse",
    "SourceCount",
    "DateRange",
    "ActivityMetaSummary",
    "SourceInfo",
    "SourcesResponse",
    "JournalEntryItem",
    "JournalListMeta",
    "JournalListResponse",
]
