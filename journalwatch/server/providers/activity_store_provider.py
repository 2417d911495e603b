"""
Activity store reads

Every method takes a StoreHandle; the handle alone decides which physical
table (sandbox_tool_activity / tool_activity) is read. Journal entry joins are
restricted to entries of the same mode so the two stores never mix.
"""
import pandas as pd
from typing import Dict, List, Optional, Sequence, Tuple

from journalwatch.models import ActivityRecord, StoreHandle
from journalwatch.storage import JWBaseDataProvider
from journalwatch.utils import get_logger, from_db_timestamp, sql_utc_timestamp

logger = get_logger(__name__)

ACTIVITY_COLUMNS = """
    a.id, a.user_id, a.source, a.source_id, a.source_url, a.title,
    a.description, a.timestamp, a.cross_tool_refs, a.raw_data
"""

# (bucket key, lower bound as db timestamp or None for "unbounded")
BucketBound = Tuple[str, Optional[str]]


class ActivityStoreProvider(JWBaseDataProvider):
    """
    Read API over either activity store

    Supports: filter by entry (id set), by owner, by source;
    group by source or time bucket; ordered paginated reads; counts.
    """

    def _to_record(self, row) -> ActivityRecord:
        return ActivityRecord(
            id=row['id'],
            user_id=row['user_id'],
            source=row['source'],
            source_id=row['source_id'],
            source_url=row['source_url'],
            title=row['title'],
            description=row['description'],
            timestamp=from_db_timestamp(row['timestamp']),
            cross_tool_refs=self.load_json(row['cross_tool_refs'], []),
            raw_data=self.load_json(row['raw_data'], None),
        )

    # ==================== entry scoped ====================

    @staticmethod
    def _entry_filter(entry_id: str, source: Optional[str]) -> Tuple[str, list]:
        """Shared predicate for the page read and its count"""
        where = "a.id IN (SELECT activity_id FROM journal_entry_activity WHERE entry_id = ?)"
        params: list = [entry_id]
        if source:
            where += " AND a.source = ?"
            params.append(source)
        return where, params

    def find_entry_activities(
        self,
        handle: StoreHandle,
        entry_id: str,
        source: Optional[str],
        offset: int,
        limit: int
    ) -> List[ActivityRecord]:
        """One page of an entry's activities, newest first"""
        where, params = self._entry_filter(entry_id, source)
        rows = self.db.fetch_all(
            f"""
            SELECT {ACTIVITY_COLUMNS}
            FROM {handle.table_name} a
            WHERE {where}
            ORDER BY a.timestamp DESC, a.id
            LIMIT ? OFFSET ?
            """,
            params + [limit, offset]
        )
        return [self._to_record(row) for row in rows]

    def count_entry_activities(self, handle: StoreHandle, entry_id: str, source: Optional[str]) -> int:
        where, params = self._entry_filter(entry_id, source)
        row = self.db.fetch_one(
            f"SELECT COUNT(*) AS total FROM {handle.table_name} a WHERE {where}",
            params
        )
        return row['total']

    # ==================== user scoped ====================

    @staticmethod
    def _user_filter(user_id: str, source: Optional[str]) -> Tuple[str, list]:
        where = "a.user_id = ?"
        params: list = [user_id]
        if source:
            where += " AND a.source = ?"
            params.append(source)
        return where, params

    def find_user_activities(
        self,
        handle: StoreHandle,
        user_id: str,
        source: Optional[str],
        offset: int,
        limit: int
    ) -> List[ActivityRecord]:
        where, params = self._user_filter(user_id, source)
        rows = self.db.fetch_all(
            f"""
            SELECT {ACTIVITY_COLUMNS}
            FROM {handle.table_name} a
            WHERE {where}
            ORDER BY a.timestamp DESC, a.id
            LIMIT ? OFFSET ?
            """,
            params + [limit, offset]
        )
        return [self._to_record(row) for row in rows]

    def count_user_activities(self, handle: StoreHandle, user_id: str, source: Optional[str] = None) -> int:
        where, params = self._user_filter(user_id, source)
        row = self.db.fetch_one(
            f"SELECT COUNT(*) AS total FROM {handle.table_name} a WHERE {where}",
            params
        )
        return row['total']

    # ==================== grouping by source ====================

    def count_by_source(self, handle: StoreHandle, user_id: str) -> List[Dict]:
        """
        Activity count per source for one user

        Returns:
            list[dict]: {source, activity_count}, largest first (ties by source)
        """
        rows = self.db.fetch_all(
            f"""
            SELECT a.source AS source, COUNT(*) AS activity_count
            FROM {handle.table_name} a
            WHERE a.user_id = ?
            GROUP BY a.source
            ORDER BY activity_count DESC, a.source
            """,
            [user_id]
        )
        return self.rows_to_dicts(rows)

    def _entry_join(self, handle: StoreHandle) -> str:
        return f"""
            FROM journal_entry je
            JOIN journal_entry_activity jea ON jea.entry_id = je.id
            JOIN {handle.table_name} a ON a.id = jea.activity_id
            WHERE je.author_id = ? AND je.source_mode = ? AND a.user_id = ?
        """

    def count_entries_by_source(self, handle: StoreHandle, user_id: str) -> Dict[str, int]:
        """source -> number of distinct entries referencing at least one activity of it"""
        rows = self.db.fetch_all(
            f"""
            SELECT a.source AS source, COUNT(DISTINCT je.id) AS entry_count
            {self._entry_join(handle)}
            GROUP BY a.source
            """,
            [user_id, handle.source_mode, user_id]
        )
        return {row['source']: row['entry_count'] for row in rows}

    def count_linked_entries(self, handle: StoreHandle, user_id: str) -> int:
        """Distinct entries referencing at least one of the user's activities"""
        row = self.db.fetch_one(
            f"SELECT COUNT(DISTINCT je.id) AS total {self._entry_join(handle)}",
            [user_id, handle.source_mode, user_id]
        )
        return row['total']

    # ==================== grouping by time bucket ====================

    @staticmethod
    def _bucket_case(bounds: Sequence[BucketBound]) -> Tuple[str, list]:
        """
        CASE expression assigning each row to one bucket

        ``bounds`` are ordered newest first; a row goes to the first bucket whose
        lower bound it reaches, and a None bound catches everything left.
        """
        timestamp = sql_utc_timestamp("a.timestamp")
        clauses = []
        params: list = []
        fallback = None
        for key, lower in bounds:
            if lower is None:
                fallback = key
                continue
            clauses.append(f"WHEN {timestamp} >= ? THEN ?")
            params.extend([lower, key])
        case_sql = "CASE " + " ".join(clauses)
        if fallback is not None:
            case_sql += " ELSE ?"
            params.append(fallback)
        case_sql += " END"
        return case_sql, params

    def count_by_buckets(self, handle: StoreHandle, user_id: str, bounds: Sequence[BucketBound]) -> Dict[str, int]:
        """Activity count per bucket in a single grouped pass"""
        case_sql, case_params = self._bucket_case(bounds)
        rows = self.db.fetch_all(
            f"""
            SELECT {case_sql} AS bucket, COUNT(*) AS activity_count
            FROM {handle.table_name} a
            WHERE a.user_id = ?
            GROUP BY bucket
            """,
            case_params + [user_id]
        )
        return {row['bucket']: row['activity_count'] for row in rows}

    # ==================== batch helpers for entry listings ====================

    def get_entry_activity_frame(self, handle: StoreHandle, entry_ids: Sequence[str]) -> pd.DataFrame:
        """
        (entry_id, source, timestamp) for every activity of the given entries

        One query for all entries; the caller groups the frame.
        """
        if not entry_ids:
            return pd.DataFrame(columns=['entry_id', 'source', 'timestamp'])
        return self.db.read_frame(
            f"""
            SELECT jea.entry_id AS entry_id, a.source AS source, {sql_utc_timestamp('a.timestamp')} AS timestamp
            FROM journal_entry_activity jea
            JOIN journal_entry je ON je.id = jea.entry_id
            JOIN {handle.table_name} a ON a.id = jea.activity_id
            WHERE je.source_mode = ? AND jea.entry_id IN ({self.placeholders(entry_ids)})
            """,
            [handle.source_mode] + list(entry_ids)
        )

    def find_entry_ids_with_source(self, handle: StoreHandle, user_id: str, source: str) -> List[str]:
        """Ids of the user's entries (this mode) referencing an activity of ``source``"""
        rows = self.db.fetch_all(
            f"""
            SELECT DISTINCT je.id AS entry_id
            FROM journal_entry je
            JOIN journal_entry_activity jea ON jea.entry_id = je.id
            JOIN {handle.table_name} a ON a.id = jea.activity_id
            WHERE je.author_id = ? AND je.source_mode = ? AND a.source = ?
            """,
            [user_id, handle.source_mode, source]
        )
        return [row['entry_id'] for row in rows]

    def find_story_assignments(
        self,
        handle: StoreHandle,
        user_id: str,
        activity_ids: Sequence[str]
    ) -> List[Dict]:
        """
        Entries (this mode) that reference any of ``activity_ids``

        Returns:
            list[dict]: {activity_id, entry_id, title, grouping_method, created_at}
        """
        if not activity_ids:
            return []
        rows = self.db.fetch_all(
            f"""
            SELECT jea.activity_id AS activity_id, je.id AS entry_id, je.title AS title,
                   je.grouping_method AS grouping_method, je.created_at AS created_at
            FROM journal_entry je
            JOIN journal_entry_activity jea ON jea.entry_id = je.id
            WHERE je.author_id = ? AND je.source_mode = ?
              AND jea.activity_id IN ({self.placeholders(activity_ids)})
            ORDER BY je.created_at DESC, je.id
            """,
            [user_id, handle.source_mode] + list(activity_ids)
        )
        return self.rows_to_dicts(rows)

    def find_activities_in_entries(self, handle: StoreHandle, user_id: str) -> List[ActivityRecord]:
        """The user's activities referenced by any of the user's entries of this mode"""
        rows = self.db.fetch_all(
            f"""
            SELECT {ACTIVITY_COLUMNS}
            FROM {handle.table_name} a
            WHERE a.user_id = ?
              AND a.id IN (
                SELECT jea.activity_id
                FROM journal_entry_activity jea
                JOIN journal_entry je ON je.id = jea.entry_id
                WHERE je.author_id = ? AND je.source_mode = ?
              )
            ORDER BY a.timestamp DESC, a.id
            """,
            [user_id, user_id, handle.source_mode]
        )
        return [self._to_record(row) for row in rows]

    # ==================== freshness ====================

    def get_freshness(self, handle: StoreHandle, user_id: str) -> Dict:
        """
        Data used to derive aggregate cache validators

        Returns:
            dict: {activity_count, latest_created}
        """
        row = self.db.fetch_one(
            f"""
            SELECT COUNT(*) AS activity_count, MAX(a.created_at) AS latest_created
            FROM {handle.table_name} a
            WHERE a.user_id = ?
            """,
            [user_id]
        )
        return self.row_to_dict(row)
