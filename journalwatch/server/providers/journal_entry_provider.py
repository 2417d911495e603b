"""
Journal entry reads
Lookup by id, author listings, per-bucket entry counts and the freshness
data used by cache validators
"""
from typing import Dict, List, Optional, Sequence, Tuple

from journalwatch.models import JournalEntryRecord, StoreHandle, StoreMode
from journalwatch.storage import JWBaseDataProvider
from journalwatch.utils import get_logger, from_db_timestamp, sql_utc_timestamp

logger = get_logger(__name__)

ENTRY_COLUMNS = """
    id, author_id, title, description, source_mode, grouping_method,
    time_range_start, time_range_end, created_at, updated_at
"""


class JournalEntryProvider(JWBaseDataProvider):
    """Read access to journal_entry / journal_entry_activity"""

    def _to_record(self, row, activity_ids: List[str]) -> JournalEntryRecord:
        return JournalEntryRecord(
            id=row['id'],
            author_id=row['author_id'],
            title=row['title'],
            description=row['description'],
            source_mode=StoreMode(row['source_mode']),
            grouping_method=row['grouping_method'] or 'manual',
            activity_ids=activity_ids,
            time_range_start=from_db_timestamp(row['time_range_start']),
            time_range_end=from_db_timestamp(row['time_range_end']),
            created_at=from_db_timestamp(row['created_at']),
            updated_at=from_db_timestamp(row['updated_at'] or row['created_at']),
        )

    def _get_activity_ids(self, entry_ids: List[str]) -> Dict[str, List[str]]:
        """Ordered activity ids for several entries in one query"""
        if not entry_ids:
            return {}
        rows = self.db.fetch_all(
            f"""
            SELECT entry_id, activity_id
            FROM journal_entry_activity
            WHERE entry_id IN ({self.placeholders(entry_ids)})
            ORDER BY entry_id, position
            """,
            list(entry_ids)
        )
        result: Dict[str, List[str]] = {entry_id: [] for entry_id in entry_ids}
        for row in rows:
            result[row['entry_id']].append(row['activity_id'])
        return result

    def get_entry(self, entry_id: str) -> Optional[JournalEntryRecord]:
        """
        Get one entry by id, regardless of its author

        Ownership is checked by the caller (store resolver).

        Returns:
            JournalEntryRecord, or None when the entry does not exist
        """
        row = self.db.fetch_one(
            f"SELECT {ENTRY_COLUMNS} FROM journal_entry WHERE id = ?",
            [entry_id]
        )
        if row is None:
            return None
        activity_ids = self._get_activity_ids([entry_id])[entry_id]
        return self._to_record(row, activity_ids)

    @staticmethod
    def _source_filter() -> str:
        """
        Entries referencing at least one activity of a source, one ``?`` per store

        Each entry is joined only against the store its own mode names.
        """
        selects = [
            f"""
            SELECT jea.entry_id
            FROM journal_entry_activity jea
            JOIN journal_entry src ON src.id = jea.entry_id
            JOIN {handle.table_name} a ON a.id = jea.activity_id
            WHERE src.source_mode = '{handle.source_mode}' AND a.source = ?
            """
            for handle in (StoreHandle(StoreMode.SANDBOX), StoreHandle(StoreMode.LIVE))
        ]
        return "id IN (" + " UNION ".join(selects) + ")"

    def get_entries_for_author(
        self,
        author_id: str,
        page: int,
        page_size: int,
        source: Optional[str] = None
    ) -> Tuple[List[JournalEntryRecord], int]:
        """
        Page through an author's entries (both modes), newest first

        Args:
            author_id: owner
            page: 1-based page number
            page_size: rows per page
            source: only entries with at least one activity of this source

        Returns:
            (entries, total)
        """
        where = ["author_id = ?"]
        params: list = [author_id]
        if source:
            where.append(self._source_filter())
            params.extend([source, source])
        where_clause = " AND ".join(where)

        total_row = self.db.fetch_one(
            f"SELECT COUNT(*) AS total FROM journal_entry WHERE {where_clause}",
            params
        )
        rows = self.db.fetch_all(
            f"""
            SELECT {ENTRY_COLUMNS} FROM journal_entry
            WHERE {where_clause}
            ORDER BY created_at DESC, id
            LIMIT ? OFFSET ?
            """,
            params + [page_size, (page - 1) * page_size]
        )
        activity_ids = self._get_activity_ids([row['id'] for row in rows])
        entries = [self._to_record(row, activity_ids[row['id']]) for row in rows]
        return entries, total_row['total']

    def get_entry_modes(self, author_id: str, entry_ids: List[str]) -> Dict[str, StoreMode]:
        """entry id -> store mode, for the author's entries among ``entry_ids``"""
        if not entry_ids:
            return {}
        rows = self.db.fetch_all(
            f"""
            SELECT id, source_mode FROM journal_entry
            WHERE author_id = ? AND id IN ({self.placeholders(entry_ids)})
            """,
            [author_id] + list(entry_ids)
        )
        return {row['id']: StoreMode(row['source_mode']) for row in rows}

    def get_entries_for_mode(self, author_id: str, mode: StoreMode) -> List[JournalEntryRecord]:
        """
        Every entry of an author in one mode, cluster entries first, then newest first

        Activity id lists are loaded in one batched query.
        """
        rows = self.db.fetch_all(
            f"""
            SELECT {ENTRY_COLUMNS} FROM journal_entry
            WHERE author_id = ? AND source_mode = ?
            ORDER BY CASE WHEN grouping_method = 'cluster' THEN 0 ELSE 1 END, created_at DESC, id
            """,
            [author_id, mode.value]
        )
        activity_ids = self._get_activity_ids([row['id'] for row in rows])
        return [self._to_record(row, activity_ids[row['id']]) for row in rows]

    def count_entries_by_windows(
        self,
        author_id: str,
        mode: StoreMode,
        windows: Sequence[Tuple[str, Optional[str], Optional[str]]]
    ) -> Tuple[Dict[str, int], int]:
        """
        Entries overlapping each time window, in one pass

        An entry spans [time_range_start, time_range_end]; a missing end makes
        it a single instant, and an entry without a range is the instant of its
        created_at. It counts toward every window the span touches.

        Args:
            windows: (key, start, exclusive upper) as db timestamps, None for open ends

        Returns:
            ({key: entry count}, entries of the author in this mode)
        """
        span_start = sql_utc_timestamp("COALESCE(time_range_start, created_at)")
        span_end = sql_utc_timestamp("COALESCE(time_range_end, time_range_start, created_at)")

        columns = []
        params: list = []
        for key, start, upper in windows:
            conditions = []
            if start is not None:
                conditions.append("span_end >= ?")
                params.append(start)
            if upper is not None:
                conditions.append("span_start < ?")
                params.append(upper)
            columns.append(
                f"SUM(CASE WHEN {' AND '.join(conditions) or '1'} THEN 1 ELSE 0 END) AS {key}"
            )

        row = self.db.fetch_one(
            f"""
            SELECT COUNT(*) AS total{''.join(', ' + column for column in columns)}
            FROM (
                SELECT {span_start} AS span_start, {span_end} AS span_end
                FROM journal_entry
                WHERE author_id = ? AND source_mode = ?
            )
            """,
            params + [author_id, mode.value]
        )
        counts = {key: row[key] or 0 for key, _, _ in windows}
        return counts, row['total']

    def get_latest_update(self, author_id: str, mode: StoreMode) -> Optional[str]:
        """Most recent entry change for an author in one mode (raw db text)"""
        row = self.db.fetch_one(
            """
            SELECT MAX(COALESCE(updated_at, created_at)) AS latest
            FROM journal_entry
            WHERE author_id = ? AND source_mode = ?
            """,
            [author_id, mode.value]
        )
        return row['latest'] if row else None
