"""
Activity Query Service

Per-entry activity pages, per-source and per-bucket aggregates, the user
activity feed and the batch helpers used by the journal listing.
"""
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from journalwatch.config.settings_manager import settings
from journalwatch.models import ActivityRecord, JournalEntryRecord, StoreHandle, StoreMode
from journalwatch.server.schemas import (
    ActivityFeedMeta,
    ActivityFeedResponse,
    ActivityGroup,
    ActivityItem,
    ActivityMetaSummary,
    DateRange,
    EntryActivitiesMeta,
    EntryActivitiesResponse,
    FeedActivityItem,
    Pagination,
    SourceCount,
    SourceStatItem,
    SourceStatsMeta,
    SourceStatsResponse,
    StoryMetadata,
    TemporalStatItem,
    TemporalStatsMeta,
    TemporalStatsResponse,
)
from journalwatch.server.services.concurrency import Deadline, run_concurrently
from journalwatch.server.services.response_builder import QueryResult
from journalwatch.server.services.store_resolver import StoreResolver
from journalwatch.server.services.temporal_buckets import TemporalBuckets, compute_buckets
from journalwatch.utils import from_db_timestamp, get_logger, to_iso, utc_now

logger = get_logger(__name__)

STATS_GROUP_BY_OPTIONS = ("temporal", "source")
FEED_GROUP_BY_OPTIONS = ("temporal", "source", "story")
UNASSIGNED_STORY = "unassigned"


def normalize_pagination(page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    """
    Clamp page to >= 1 and page_size to [1, max_page_size]

    A missing page_size means default_page_size.
    """
    page = max(1, int(page)) if page is not None else 1
    limit = settings.default_page_size if page_size is None else int(page_size)
    limit = min(max(1, limit), settings.max_page_size)
    return page, limit


class ActivityQueryService:
    """Activity reads on behalf of one authenticated user"""

    def __init__(
        self,
        activity_provider=None,
        entry_provider=None,
        registry=None,
        resolver: Optional[StoreResolver] = None,
        timeout: Optional[float] = None,
        clock: Optional[Callable] = None,
    ):
        if activity_provider is None or entry_provider is None or registry is None:
            from journalwatch.server.providers import (
                activity_store_provider,
                journal_entry_provider,
                source_registry,
            )
            activity_provider = activity_provider or activity_store_provider
            entry_provider = entry_provider or journal_entry_provider
            registry = registry or source_registry
        self.activity_provider = activity_provider
        self.entry_provider = entry_provider
        self.registry = registry
        self.resolver = resolver or StoreResolver(entry_provider)
        self.timeout = timeout
        self.clock = clock or utc_now

    def new_deadline(self) -> Deadline:
        seconds = self.timeout if self.timeout is not None else settings.request_timeout_seconds
        return Deadline.after(seconds)

    def warn_unknown_source(self, source: Optional[str]) -> None:
        if source and not self.registry.is_known(source):
            logger.warning(f"Unknown source filter '{source}'")

    # ========================================================================
    # (a) activities of one journal entry
    # ========================================================================

    async def list_activities_for_entry(
        self,
        entry_id: str,
        user_id: str,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
        source: Optional[str] = None
    ) -> QueryResult:
        """
        One page of an entry's activities from the store the entry names

        Args:
            entry_id: journal entry id
            user_id: authenticated caller, must own the entry
            page: 1-based page
            page_size: rows per page (default 20, at most 100)
            source: optional source filter

        Returns:
            QueryResult wrapping EntryActivitiesResponse

        Raises:
            NotFoundError / ForbiddenError from the resolver
        """
        page, limit = normalize_pagination(page, page_size)
        logger.info(f"list_activities_for_entry entry={entry_id} user={user_id} page={page} limit={limit} source={source}")
        deadline = self.new_deadline()

        (resolution,) = await run_concurrently(
            deadline, partial(self.resolver.resolve_store, entry_id, user_id)
        )
        handle = resolution.handle
        self.warn_unknown_source(source)

        if resolution.entry.activity_ids:
            records, total = await run_concurrently(
                deadline,
                partial(self.activity_provider.find_entry_activities, handle, entry_id, source, (page - 1) * limit, limit),
                partial(self.activity_provider.count_entry_activities, handle, entry_id, source),
            )
        else:
            records, total = [], 0

        payload = EntryActivitiesResponse(
            data=[ActivityItem.from_record(record) for record in records],
            pagination=Pagination.build(page, limit, total),
            meta=EntryActivitiesMeta(source_mode=handle.source_mode, entry_id=entry_id),
        )
        etag_parts = (
            "entry-activities", entry_id, to_iso(resolution.entry.updated_at), page, limit, source or "",
        )
        return QueryResult(payload=payload, etag_parts=etag_parts)

    # ========================================================================
    # (b) aggregate by source
    # ========================================================================

    async def stats_by_source(self, user_id: str, mode: StoreMode) -> QueryResult:
        """
        Activity and journal entry counts per source, largest first

        Groups beyond max_sources are dropped; totals still cover every group.
        """
        handle = StoreHandle.for_mode(mode)
        max_sources = settings.max_sources
        logger.info(f"stats_by_source user={user_id} mode={handle.source_mode}")
        deadline = self.new_deadline()

        groups, entry_counts, linked_entries, freshness, latest_entry = await run_concurrently(
            deadline,
            partial(self.activity_provider.count_by_source, handle, user_id),
            partial(self.activity_provider.count_entries_by_source, handle, user_id),
            partial(self.activity_provider.count_linked_entries, handle, user_id),
            partial(self.activity_provider.get_freshness, handle, user_id),
            partial(self.entry_provider.get_latest_update, user_id, handle.mode),
        )

        groups = sorted(groups, key=lambda g: (-g['activity_count'], g['source']))
        total_activities = sum(g['activity_count'] for g in groups)

        data = []
        for group in groups[:max_sources]:
            source = group['source']
            meta = self.registry.get(source)
            if meta is None:
                logger.warning(f"Source '{source}' is not in the registry")
            data.append(SourceStatItem(
                source=source,
                display_name=meta.display_name if meta else source,
                color=meta.color if meta else None,
                icon=meta.icon if meta else None,
                activity_count=group['activity_count'],
                journal_entry_count=entry_counts.get(source, 0),
            ))

        payload = SourceStatsResponse(
            data=data,
            meta=SourceStatsMeta(
                source_mode=handle.source_mode,
                max_sources=max_sources,
                source_count=len(groups),
                total_activities=total_activities,
                total_journal_entries=linked_entries,
                truncated=len(groups) > max_sources,
            ),
        )
        etag_parts = (
            "activity-stats", user_id, handle.source_mode, "source",
            freshness.get('latest_created'), freshness.get('activity_count'), latest_entry,
        )
        return QueryResult(payload=payload, etag_parts=etag_parts)

    # ========================================================================
    # (c) aggregate by time bucket
    # ========================================================================

    async def stats_by_temporal(self, user_id: str, mode: StoreMode, timezone: Optional[str] = None) -> QueryResult:
        """
        Activity and journal entry counts for the six temporal buckets

        ``timezone`` must already be validated. An entry counts toward every
        bucket its time range overlaps (its creation instant when it has no
        range), so entry counts may sum to more than ``totalJournalEntries``.
        """
        handle = StoreHandle.for_mode(mode)
        buckets = compute_buckets(self.clock(), timezone)
        logger.info(f"stats_by_temporal user={user_id} mode={handle.source_mode} timezone={buckets.timezone}")
        deadline = self.new_deadline()

        counts, (entry_counts, total_entries), freshness, latest_entry = await run_concurrently(
            deadline,
            partial(self.activity_provider.count_by_buckets, handle, user_id, buckets.lower_bounds()),
            partial(self.entry_provider.count_entries_by_windows, user_id, handle.mode, buckets.windows()),
            partial(self.activity_provider.get_freshness, handle, user_id),
            partial(self.entry_provider.get_latest_update, user_id, handle.mode),
        )

        data = [
            TemporalStatItem(
                bucket=bucket.key,
                display_name=bucket.display_name,
                start_date=to_iso(bucket.start),
                end_date=to_iso(bucket.end),
                activity_count=counts.get(bucket.key, 0),
                journal_entry_count=entry_counts.get(bucket.key, 0),
            )
            for bucket in buckets
        ]
        payload = TemporalStatsResponse(
            data=data,
            meta=TemporalStatsMeta(
                source_mode=handle.source_mode,
                timezone=buckets.timezone,
                total_activities=sum(item.activity_count for item in data),
                total_journal_entries=total_entries,
            ),
        )
        etag_parts = (
            "activity-stats", user_id, handle.source_mode, "temporal", buckets.timezone,
            buckets.local_date.isoformat(),
            freshness.get('latest_created'), freshness.get('activity_count'), latest_entry,
        )
        return QueryResult(payload=payload, etag_parts=etag_parts)

    # ========================================================================
    # (d) batch activity meta for journal listings
    # ========================================================================

    async def get_activity_meta_for_entries(
        self,
        user_id: str,
        entry_ids: Sequence[str],
        deadline: Optional[Deadline] = None
    ) -> Dict[str, ActivityMetaSummary]:
        """
        Activity summary for many entries, one store query per mode

        Only entries authored by ``user_id`` are returned; entries without
        activities get a zero summary.
        """
        if not entry_ids:
            return {}
        deadline = deadline or self.new_deadline()

        (modes,) = await run_concurrently(
            deadline, partial(self.entry_provider.get_entry_modes, user_id, list(entry_ids))
        )
        ids_by_mode: Dict[StoreMode, List[str]] = {}
        for entry_id in entry_ids:
            if entry_id in modes:
                ids_by_mode.setdefault(modes[entry_id], []).append(entry_id)

        mode_order = list(ids_by_mode)
        frames = await run_concurrently(
            deadline,
            *[
                partial(self.activity_provider.get_entry_activity_frame, StoreHandle.for_mode(mode), ids_by_mode[mode])
                for mode in mode_order
            ]
        )

        result = {
            entry_id: ActivityMetaSummary(total_count=0, sources=[], date_range=None)
            for entry_id in entry_ids if entry_id in modes
        }
        for frame in frames:
            if frame.empty:
                continue
            for entry_id, group in frame.groupby('entry_id'):
                source_counts = sorted(group['source'].value_counts().items(), key=lambda item: (-item[1], item[0]))
                result[entry_id] = ActivityMetaSummary(
                    total_count=len(group),
                    sources=[SourceCount(source=source, count=int(count)) for source, count in source_counts],
                    date_range=DateRange(
                        earliest=to_iso(from_db_timestamp(group['timestamp'].min())),
                        latest=to_iso(from_db_timestamp(group['timestamp'].max())),
                    ),
                )
        return result

    # ========================================================================
    # (e) entries referencing a source
    # ========================================================================

    async def get_entry_ids_with_source(
        self,
        user_id: str,
        source: str,
        deadline: Optional[Deadline] = None
    ) -> List[str]:
        """Ids of the user's entries (either mode) with at least one activity of ``source``"""
        deadline = deadline or self.new_deadline()
        self.warn_unknown_source(source)
        sandbox_ids, live_ids = await run_concurrently(
            deadline,
            partial(self.activity_provider.find_entry_ids_with_source, StoreHandle(StoreMode.SANDBOX), user_id, source),
            partial(self.activity_provider.find_entry_ids_with_source, StoreHandle(StoreMode.LIVE), user_id, source),
        )
        return list(dict.fromkeys(sandbox_ids + live_ids))

    # ========================================================================
    # (f) user activity feed
    # ========================================================================

    @staticmethod
    def _pick_stories(rows: List[Dict]) -> Dict[str, Tuple[str, str]]:
        """
        activity id -> (entry id, entry title)

        Cluster entries win over time/manual ones; within a kind the most
        recently created entry wins (rows arrive newest first).
        """
        stories: Dict[str, Tuple[str, str]] = {}
        ordered = [r for r in rows if r['grouping_method'] == 'cluster'] + \
                  [r for r in rows if r['grouping_method'] != 'cluster']
        for row in ordered:
            stories.setdefault(row['activity_id'], (row['entry_id'], row['title']))
        return stories

    def _group_items(
        self,
        records: List[ActivityRecord],
        items: List[FeedActivityItem],
        group_by: str,
        buckets: Optional[TemporalBuckets]
    ) -> List[ActivityGroup]:
        if group_by == "temporal":
            grouped: Dict[str, List[FeedActivityItem]] = {bucket.key: [] for bucket in buckets}
            for record, item in zip(records, items):
                grouped[buckets.classify(record.timestamp)].append(item)
            return [
                ActivityGroup(key=bucket.key, label=bucket.display_name, count=len(grouped[bucket.key]),
                              activities=grouped[bucket.key])
                for bucket in buckets
                if grouped[bucket.key]
            ]

        grouped = {}
        for item in items:
            grouped.setdefault(item.source, []).append(item)
        ordered = sorted(grouped.items(), key=lambda kv: (-len(kv[1]), kv[0]))
        return [
            ActivityGroup(key=source, label=self.registry.display_name(source), count=len(group), activities=group)
            for source, group in ordered
        ]

    @staticmethod
    def _story_groups(
        entries: List[JournalEntryRecord],
        entry_activities: List[ActivityRecord],
        page_records: List[ActivityRecord]
    ) -> List[ActivityGroup]:
        """
        One group per entry, then the page's activities no entry references

        An activity shared by several entries appears in each of their groups.
        A story's count is the length of its activity id list even when some of
        those activities are missing from the store.
        """
        by_id = {record.id: record for record in entry_activities}
        assigned = set()
        groups = []
        for entry in entries:
            assigned.update(entry.activity_ids)
            records = sorted(
                (by_id[activity_id] for activity_id in entry.activity_ids if activity_id in by_id),
                key=lambda record: record.timestamp,
                reverse=True,
            )
            activities = [
                FeedActivityItem.from_record(record, story_id=entry.id, story_title=entry.title)
                for record in records
            ]
            groups.append(ActivityGroup(
                key=entry.id,
                label=entry.title,
                count=len(entry.activity_ids),
                activities=activities,
                story_metadata=StoryMetadata(
                    id=entry.id,
                    title=entry.title,
                    description=entry.description,
                    time_range_start=to_iso(entry.time_range_start),
                    time_range_end=to_iso(entry.time_range_end),
                    grouping_method=entry.grouping_method,
                    created_at=to_iso(entry.created_at),
                ),
            ))

        unassigned = [FeedActivityItem.from_record(record) for record in page_records if record.id not in assigned]
        if unassigned:
            groups.append(ActivityGroup(
                key=UNASSIGNED_STORY, label="Unassigned", count=len(unassigned), activities=unassigned
            ))
        return groups

    async def list_all_activities(
        self,
        user_id: str,
        mode: StoreMode,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
        source: Optional[str] = None,
        group_by: Optional[str] = None,
        timezone: Optional[str] = None
    ) -> QueryResult:
        """
        The user's activities in one store, newest first, with story assignment

        Args:
            group_by: None, "temporal", "source" or "story"; temporal and
                source grouping apply to the current page only, story grouping
                lists every entry of the mode followed by the page's
                unassigned activities
            timezone: validated zone for temporal grouping (default UTC)
        """
        handle = StoreHandle.for_mode(mode)
        page, limit = normalize_pagination(page, page_size)
        logger.info(
            f"list_all_activities user={user_id} mode={handle.source_mode} page={page} "
            f"limit={limit} source={source} group_by={group_by}"
        )
        deadline = self.new_deadline()
        self.warn_unknown_source(source)

        records, total, freshness, latest_entry = await run_concurrently(
            deadline,
            partial(self.activity_provider.find_user_activities, handle, user_id, source, (page - 1) * limit, limit),
            partial(self.activity_provider.count_user_activities, handle, user_id, source),
            partial(self.activity_provider.get_freshness, handle, user_id),
            partial(self.entry_provider.get_latest_update, user_id, handle.mode),
        )

        stories: Dict[str, Tuple[str, str]] = {}
        if records:
            (rows,) = await run_concurrently(
                deadline,
                partial(self.activity_provider.find_story_assignments, handle, user_id, [r.id for r in records]),
            )
            stories = self._pick_stories(rows)

        items = []
        for record in records:
            story_id, story_title = stories.get(record.id, (None, None))
            items.append(FeedActivityItem.from_record(record, story_id=story_id, story_title=story_title))

        buckets = compute_buckets(self.clock(), timezone) if group_by == "temporal" else None
        if group_by == "story":
            entries, entry_activities = await run_concurrently(
                deadline,
                partial(self.entry_provider.get_entries_for_mode, user_id, handle.mode),
                partial(self.activity_provider.find_activities_in_entries, handle, user_id),
            )
            data = self._story_groups(entries, entry_activities, records)
        elif group_by:
            data = self._group_items(records, items, group_by, buckets)
        else:
            data = items

        payload = ActivityFeedResponse(
            data=data,
            pagination=Pagination.build(page, limit, total),
            meta=ActivityFeedMeta(
                source_mode=handle.source_mode,
                group_by=group_by,
                timezone=buckets.timezone if buckets else None,
            ),
        )
        etag_parts = (
            "activities", user_id, handle.source_mode, page, limit, source or "", group_by or "",
            buckets.timezone if buckets else "", buckets.local_date.isoformat() if buckets else "",
            freshness.get('latest_created'), freshness.get('activity_count'), latest_entry,
        )
        return QueryResult(payload=payload, etag_parts=etag_parts)
