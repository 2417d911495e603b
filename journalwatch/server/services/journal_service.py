"""
Journal listing service

Author's entries (both modes), newest first, optionally restricted to entries
referencing a source and optionally enriched with batch activity meta.
"""
from functools import partial
from typing import Optional

from journalwatch.models import StoreMode
from journalwatch.server.schemas import (
    JournalEntryItem,
    JournalListMeta,
    JournalListResponse,
    Pagination,
)
from journalwatch.server.services.activity_service import ActivityQueryService, normalize_pagination
from journalwatch.server.services.concurrency import run_concurrently
from journalwatch.server.services.response_builder import QueryResult
from journalwatch.utils import get_logger, to_iso

logger = get_logger(__name__)


class JournalService:
    """Enriched journal entry listing"""

    def __init__(self, query_service: Optional[ActivityQueryService] = None):
        self.query_service = query_service or ActivityQueryService()
        self.entry_provider = self.query_service.entry_provider

    async def list_entries(
        self,
        user_id: str,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
        include_activity_meta: bool = False,
        filter_by_source: Optional[str] = None
    ) -> QueryResult:
        """
        List the user's journal entries

        Args:
            user_id: author
            page: 1-based page
            page_size: rows per page (default 20, at most 100)
            include_activity_meta: attach ActivityMetaSummary per entry (batched)
            filter_by_source: only entries with at least one activity of this source

        Returns:
            QueryResult wrapping JournalListResponse
        """
        page, limit = normalize_pagination(page, page_size)
        logger.info(
            f"list_entries user={user_id} page={page} limit={limit} "
            f"include_activity_meta={include_activity_meta} filter_by_source={filter_by_source}"
        )
        deadline = self.query_service.new_deadline()
        self.query_service.warn_unknown_source(filter_by_source)

        (entries, total), latest_sandbox, latest_live = await run_concurrently(
            deadline,
            partial(self.entry_provider.get_entries_for_author, user_id, page, limit, filter_by_source),
            partial(self.entry_provider.get_latest_update, user_id, StoreMode.SANDBOX),
            partial(self.entry_provider.get_latest_update, user_id, StoreMode.LIVE),
        )

        meta_by_entry = {}
        if include_activity_meta and entries:
            meta_by_entry = await self.query_service.get_activity_meta_for_entries(
                user_id, [entry.id for entry in entries], deadline
            )

        payload = JournalListResponse(
            data=[JournalEntryItem.from_record(entry, meta_by_entry.get(entry.id)) for entry in entries],
            pagination=Pagination.build(page, limit, total),
            meta=JournalListMeta(include_activity_meta=include_activity_meta, filter_by_source=filter_by_source),
        )
        etag_parts = (
            "journal", user_id, page, limit, include_activity_meta, filter_by_source or "",
            total, latest_sandbox, latest_live,
            ",".join(f"{entry.id}@{to_iso(entry.updated_at)}" for entry in entries),
        )
        return QueryResult(payload=payload, etag_parts=etag_parts)
