"""Pytest configuration: temporary database, seeding helpers, test client."""

import json
import sys
from datetime import datetime
from pathlib import Path

import pytest
import pytz
from fastapi.testclient import TestClient

# Ensure project root is on PYTHONPATH
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from journalwatch.config.settings_manager import settings
from journalwatch.models import StoreHandle, StoreMode
from journalwatch.server.providers import ActivityStoreProvider, JournalEntryProvider, SourceRegistry
from journalwatch.server.services import ActivityQueryService
from journalwatch.storage import DatabaseManager
from journalwatch.utils import to_db_timestamp

# Thursday; the current ISO week started on Monday 2025-01-27
FIXED_NOW = datetime(2025, 1, 30, 12, 0, 0, tzinfo=pytz.utc)


class Seeder:
    """Writes activities and journal entries straight into the test database."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self._counter = 0

    def add_activity(
        self,
        activity_id: str,
        timestamp: datetime,
        user_id: str = "user-1",
        source: str = "github",
        mode: StoreMode = StoreMode.LIVE,
        title: str = None,
        cross_tool_refs=None,
        raw_data=None,
        created_at: datetime = None,
    ) -> str:
        self._counter += 1
        row = {
            "id": activity_id,
            "user_id": user_id,
            "source": source,
            "source_id": f"{source}-{self._counter}",
            "source_url": f"https://example.com/{source}/{self._counter}",
            "title": title or f"{source} activity {activity_id}",
            "description": None,
            "timestamp": timestamp if isinstance(timestamp, str) else to_db_timestamp(timestamp),
            "cross_tool_refs": json.dumps(cross_tool_refs or []),
            "raw_data": json.dumps(raw_data) if raw_data is not None else None,
        }
        if created_at is not None:
            row["created_at"] = to_db_timestamp(created_at)
        self.db.insert_many(StoreHandle(mode).table_name, [row])
        return activity_id

    def add_entry(
        self,
        entry_id: str,
        activity_ids=(),
        author_id: str = "user-1",
        mode: StoreMode = StoreMode.LIVE,
        title: str = None,
        grouping_method: str = "manual",
        created_at: datetime = None,
        updated_at: datetime = None,
        time_range: tuple = None,
        description: str = None,
    ) -> str:
        created_at = created_at or FIXED_NOW
        range_start, range_end = time_range or (None, None)
        self.db.insert_many("journal_entry", [{
            "id": entry_id,
            "author_id": author_id,
            "title": title or f"Entry {entry_id}",
            "description": description,
            "source_mode": StoreMode(mode).value,
            "grouping_method": grouping_method,
            "time_range_start": to_db_timestamp(range_start) if range_start else None,
            "time_range_end": to_db_timestamp(range_end) if range_end else None,
            "created_at": to_db_timestamp(created_at),
            "updated_at": to_db_timestamp(updated_at or created_at),
        }])
        self.db.insert_many("journal_entry_activity", [
            {"entry_id": entry_id, "activity_id": activity_id, "position": position}
            for position, activity_id in enumerate(activity_ids)
        ])
        return entry_id

    def touch_entry(self, entry_id: str, updated_at: datetime) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                "UPDATE journal_entry SET updated_at = ? WHERE id = ?",
                [to_db_timestamp(updated_at), entry_id]
            )


@pytest.fixture(autouse=True)
def reset_settings():
    """Every test starts from the file/default settings."""
    settings.reset_overrides()
    yield
    settings.reset_overrides()


@pytest.fixture
def db_manager(tmp_path):
    return DatabaseManager(str(tmp_path / "journalwatch_test.db"))


@pytest.fixture
def seeder(db_manager):
    return Seeder(db_manager)


@pytest.fixture
def registry():
    return SourceRegistry()


@pytest.fixture
def activity_provider(db_manager):
    return ActivityStoreProvider(db_manager)


@pytest.fixture
def entry_provider(db_manager):
    return JournalEntryProvider(db_manager)


@pytest.fixture
def query_service(activity_provider, entry_provider, registry):
    return ActivityQueryService(
        activity_provider=activity_provider,
        entry_provider=entry_provider,
        registry=registry,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def client(query_service):
    """TestClient wired to the temporary database (lifespan not run)."""
    from journalwatch.server.api.dependencies import get_activity_query_service
    from journalwatch.server.main import app

    app.dependency_overrides[get_activity_query_service] = lambda: query_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
