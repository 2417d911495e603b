"""
Activity Query Service tests against a temporary sqlite database
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
import pytz

from conftest import FIXED_NOW
from journalwatch.config.settings_manager import settings
from journalwatch.errors import ForbiddenError, NotFoundError
from journalwatch.models import StoreMode
from journalwatch.server.services.activity_service import normalize_pagination


def run(coro):
    return asyncio.run(coro)


class TestNormalizePagination:

    def test_defaults(self):
        assert normalize_pagination(None, None) == (1, 20)

    def test_clamping(self):
        assert normalize_pagination(0, 0) == (1, 1)
        assert normalize_pagination(2, 500) == (2, 100)
        assert normalize_pagination(3, 20) == (3, 20)


class TestListActivitiesForEntry:

    def test_page_three_of_forty_five(self, query_service, seeder):
        ids = [
            seeder.add_activity(f"a{i}", FIXED_NOW - timedelta(hours=i))
            for i in range(45)
        ]
        seeder.add_entry("entry-1", ids)

        payload = run(query_service.list_activities_for_entry("entry-1", "user-1", page=3, page_size=20)).payload

        assert payload.pagination.total == 45
        assert payload.pagination.total_pages == 3
        assert payload.pagination.has_more is False
        assert len(payload.data) == 5
        # newest first: page 3 holds a40..a44
        assert [item.id for item in payload.data] == [f"a{i}" for i in range(40, 45)]

    def test_has_more_matches_page_arithmetic(self, query_service, seeder):
        ids = [seeder.add_activity(f"a{i}", FIXED_NOW - timedelta(minutes=i)) for i in range(7)]
        seeder.add_entry("entry-1", ids)

        for page in range(1, 5):
            payload = run(query_service.list_activities_for_entry("entry-1", "user-1", page=page, page_size=3)).payload
            assert payload.pagination.has_more == (page * 3 < 7)
            assert len(payload.data) <= 3

    def test_reused_id_resolves_in_the_entry_store(self, query_service, seeder):
        seeder.add_activity("a2", FIXED_NOW, mode=StoreMode.SANDBOX, title="sandbox row", source="jira")
        seeder.add_activity("a2", FIXED_NOW, mode=StoreMode.LIVE, title="live row", source="github")
        seeder.add_entry("entry-sandbox", ["a2"], mode=StoreMode.SANDBOX)

        payload = run(query_service.list_activities_for_entry("entry-sandbox", "user-1")).payload

        assert [item.title for item in payload.data] == ["sandbox row"]
        assert payload.meta.source_mode == "sandbox"

    def test_source_filter(self, query_service, seeder):
        seeder.add_activity("a1", FIXED_NOW, source="github")
        seeder.add_activity("a2", FIXED_NOW - timedelta(hours=1), source="jira")
        seeder.add_entry("entry-1", ["a1", "a2"])

        payload = run(query_service.list_activities_for_entry("entry-1", "user-1", source="jira")).payload

        assert [item.id for item in payload.data] == ["a2"]
        assert payload.pagination.total == 1

    def test_empty_entry_short_circuits(self, query_service, seeder, activity_provider):
        seeder.add_entry("entry-empty", [])

        with patch.object(activity_provider, "find_entry_activities") as mock_find:
            payload = run(query_service.list_activities_for_entry("entry-empty", "user-1")).payload

        mock_find.assert_not_called()
        assert payload.data == []
        assert payload.pagination.total == 0
        assert payload.pagination.total_pages == 0
        assert payload.pagination.has_more is False

    def test_missing_and_foreign_entries(self, query_service, seeder):
        seeder.add_activity("a1", FIXED_NOW, user_id="user-2")
        seeder.add_entry("entry-2", ["a1"], author_id="user-2")

        with pytest.raises(NotFoundError):
            run(query_service.list_activities_for_entry("nope", "user-1"))
        with pytest.raises(ForbiddenError):
            run(query_service.list_activities_for_entry("entry-2", "user-1"))

    def test_unknown_source_filter_is_only_logged(self, query_service, seeder):
        seeder.add_activity("a1", FIXED_NOW, source="github")
        seeder.add_entry("entry-1", ["a1"])

        with patch("journalwatch.server.services.activity_service.logger") as mock_logger:
            payload = run(query_service.list_activities_for_entry("entry-1", "user-1", source="myspace")).payload

        assert payload.data == []
        mock_logger.warning.assert_called()

    def test_activity_fields(self, query_service, seeder):
        seeder.add_activity(
            "a1", FIXED_NOW, cross_tool_refs=["PROJ-1"], raw_data={"state": "merged"}
        )
        seeder.add_entry("entry-1", ["a1"])

        item = run(query_service.list_activities_for_entry("entry-1", "user-1")).payload.data[0]

        assert item.timestamp == "2025-01-30T12:00:00.000Z"
        assert item.cross_tool_refs == ["PROJ-1"]
        assert item.raw_data == {"state": "merged"}


class TestStatsBySource:

    def _seed(self, seeder):
        for i in range(3):
            seeder.add_activity(f"gh{i}", FIXED_NOW - timedelta(hours=i), source="github")
        for i in range(2):
            seeder.add_activity(f"jr{i}", FIXED_NOW - timedelta(hours=i), source="jira")
        seeder.add_activity("mx0", FIXED_NOW, source="myspace")
        # other user and other store never count
        seeder.add_activity("other", FIXED_NOW, user_id="user-2", source="github")
        seeder.add_activity("sb0", FIXED_NOW, mode=StoreMode.SANDBOX, source="github")

        seeder.add_entry("e1", ["gh0", "gh1", "jr0"])
        seeder.add_entry("e2", ["gh2"])
        seeder.add_entry("e-sandbox", ["sb0"], mode=StoreMode.SANDBOX)

    def test_counts_and_registry_metadata(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.stats_by_source("user-1", StoreMode.LIVE)).payload

        assert [item.source for item in payload.data] == ["github", "jira", "myspace"]
        github, jira, unknown = payload.data
        assert (github.activity_count, github.journal_entry_count) == (3, 2)
        assert (jira.activity_count, jira.journal_entry_count) == (2, 1)
        assert github.display_name == "GitHub"
        assert unknown.display_name == "myspace"
        assert unknown.color is None and unknown.icon is None

        assert payload.meta.total_activities == 6
        assert payload.meta.total_journal_entries == 2
        assert payload.meta.source_count == 3
        assert payload.meta.truncated is False
        assert payload.meta.source_mode == "live"

    def test_sandbox_mode(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.stats_by_source("user-1", StoreMode.SANDBOX)).payload

        assert [(item.source, item.activity_count, item.journal_entry_count) for item in payload.data] == [
            ("github", 1, 1)
        ]
        assert payload.meta.source_mode == "sandbox"

    def test_cap_keeps_totals(self, query_service, seeder):
        self._seed(seeder)
        settings.set("max_sources", 2)

        payload = run(query_service.stats_by_source("user-1", StoreMode.LIVE)).payload

        assert len(payload.data) == 2
        assert payload.meta.max_sources == 2
        assert payload.meta.source_count == 3
        assert payload.meta.truncated is True
        assert payload.meta.total_activities == 6

    def test_ties_ordered_by_source(self, query_service, seeder):
        seeder.add_activity("s1", FIXED_NOW, source="slack")
        seeder.add_activity("c1", FIXED_NOW, source="confluence")

        payload = run(query_service.stats_by_source("user-1", StoreMode.LIVE)).payload

        assert [item.source for item in payload.data] == ["confluence", "slack"]

    def test_data_is_stable_for_unchanged_inputs(self, query_service, seeder):
        self._seed(seeder)

        first = run(query_service.stats_by_source("user-1", StoreMode.LIVE))
        second = run(query_service.stats_by_source("user-1", StoreMode.LIVE))

        assert first.payload == second.payload
        assert first.etag_parts == second.etag_parts


class TestStatsByTemporal:

    def test_scenario_distribution(self, query_service, seeder):
        for days in (0, 1, 3, 17, 40):
            seeder.add_activity(f"d{days}", FIXED_NOW - timedelta(days=days))
        seeder.add_entry("e1", ["d0", "d40"])

        payload = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "UTC")).payload
        counts = {item.bucket: item.activity_count for item in payload.data}
        entries = {item.bucket: item.journal_entry_count for item in payload.data}

        assert counts == {
            "today": 1, "yesterday": 1, "this_week": 1,
            "last_week": 0, "this_month": 1, "older": 1,
        }
        # no time range, so the entry is placed by its creation instant
        assert entries == {
            "today": 1, "yesterday": 0, "this_week": 0,
            "last_week": 0, "this_month": 0, "older": 0,
        }
        assert payload.meta.total_activities == 5
        assert payload.meta.total_journal_entries == 1
        assert payload.meta.timezone == "UTC"
        assert payload.meta.group_by == "temporal"

    def test_bucket_sum_equals_total_with_future_activity(self, query_service, seeder):
        seeder.add_activity("future", FIXED_NOW + timedelta(days=2))
        seeder.add_activity("past", FIXED_NOW - timedelta(days=400))

        payload = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "UTC")).payload
        counts = {item.bucket: item.activity_count for item in payload.data}

        assert counts["today"] == 1
        assert counts["older"] == 1
        assert sum(counts.values()) == 2

    def test_timezone_moves_boundaries(self, query_service, seeder):
        # 02:00 UTC on the 30th is still the 29th in Los Angeles
        seeder.add_activity("early", FIXED_NOW.replace(hour=2))

        utc = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "UTC")).payload
        la = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "America/Los_Angeles")).payload

        assert {i.bucket: i.activity_count for i in utc.data}["today"] == 1
        assert {i.bucket: i.activity_count for i in la.data}["yesterday"] == 1

    def test_empty_buckets_are_reported(self, query_service):
        payload = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, None)).payload

        assert [item.bucket for item in payload.data] == [
            "today", "yesterday", "this_week", "last_week", "this_month", "older"
        ]
        assert all(item.activity_count == 0 for item in payload.data)
        assert payload.data[-1].start_date is None

    def test_entry_counts_follow_time_range(self, query_service, seeder):
        seeder.add_activity("a1", FIXED_NOW)
        # Monday of last week through midnight today
        seeder.add_entry("e-span", ["a1"], time_range=(datetime(2025, 1, 20, tzinfo=pytz.utc),
                                                      datetime(2025, 1, 30, tzinfo=pytz.utc)))
        seeder.add_entry("e-empty", [], created_at=FIXED_NOW - timedelta(days=40))
        seeder.add_entry("e-future", [], time_range=(FIXED_NOW + timedelta(days=1), None))
        seeder.add_entry("e-sandbox", [], mode=StoreMode.SANDBOX)
        seeder.add_entry("e-foreign", [], author_id="user-2")

        payload = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "UTC")).payload
        entries = {item.bucket: item.journal_entry_count for item in payload.data}

        assert entries == {
            "today": 2, "yesterday": 1, "this_week": 1,
            "last_week": 1, "this_month": 0, "older": 1,
        }
        assert payload.meta.total_journal_entries == 3

    def test_entry_range_is_read_in_the_request_timezone(self, query_service, seeder):
        # 2025-01-29 05:00 UTC is the evening of the 28th in Los Angeles
        seeder.add_entry("e1", [], time_range=(FIXED_NOW - timedelta(days=1, hours=7), None))

        payload = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "America/Los_Angeles")).payload
        entries = {item.bucket: item.journal_entry_count for item in payload.data}

        assert entries["this_week"] == 1
        assert entries["yesterday"] == 0

    def test_iso_stored_timestamp_matches_feed_grouping(self, query_service, seeder):
        seeder.add_activity("iso", "2025-01-29T05:00:00Z")

        stats = run(query_service.stats_by_temporal("user-1", StoreMode.LIVE, "America/Los_Angeles")).payload
        feed = run(query_service.list_all_activities("user-1", StoreMode.LIVE, group_by="temporal",
                                                     timezone="America/Los_Angeles")).payload

        counts = {item.bucket: item.activity_count for item in stats.data}
        assert counts["this_week"] == 1
        assert counts["yesterday"] == 0
        assert [group.key for group in feed.data] == ["this_week"]


class TestActivityMetaForEntries:

    def test_batch_meta_one_query_per_mode(self, query_service, seeder, activity_provider):
        seeder.add_activity("a1", FIXED_NOW - timedelta(days=2), source="github")
        seeder.add_activity("a2", FIXED_NOW, source="jira")
        seeder.add_activity("a3", FIXED_NOW - timedelta(days=1), source="github")
        seeder.add_activity("s1", FIXED_NOW, mode=StoreMode.SANDBOX, source="slack")
        seeder.add_entry("e1", ["a1", "a2", "a3"])
        seeder.add_entry("e2", ["a2"])
        seeder.add_entry("e3", ["s1"], mode=StoreMode.SANDBOX)
        seeder.add_entry("e4", [])
        seeder.add_entry("foreign", ["a1"], author_id="user-2")

        with patch.object(
            activity_provider, "get_entry_activity_frame", wraps=activity_provider.get_entry_activity_frame
        ) as spy:
            meta = run(query_service.get_activity_meta_for_entries("user-1", ["e1", "e2", "e3", "e4", "foreign"]))

        assert spy.call_count == 2
        assert set(meta) == {"e1", "e2", "e3", "e4"}

        e1 = meta["e1"]
        assert e1.total_count == 3
        assert [(s.source, s.count) for s in e1.sources] == [("github", 2), ("jira", 1)]
        assert e1.date_range.earliest == "2025-01-28T12:00:00.000Z"
        assert e1.date_range.latest == "2025-01-30T12:00:00.000Z"

        assert meta["e3"].sources[0].source == "slack"
        assert meta["e4"].total_count == 0
        assert meta["e4"].date_range is None

    def test_no_entries(self, query_service):
        assert run(query_service.get_activity_meta_for_entries("user-1", [])) == {}


class TestEntryIdsWithSource:

    def test_both_modes(self, query_service, seeder):
        seeder.add_activity("a1", FIXED_NOW, source="github")
        seeder.add_activity("a1", FIXED_NOW, source="jira", mode=StoreMode.SANDBOX)
        seeder.add_entry("live-entry", ["a1"])
        seeder.add_entry("sandbox-entry", ["a1"], mode=StoreMode.SANDBOX)

        assert run(query_service.get_entry_ids_with_source("user-1", "github")) == ["live-entry"]
        assert run(query_service.get_entry_ids_with_source("user-1", "jira")) == ["sandbox-entry"]
        assert run(query_service.get_entry_ids_with_source("user-2", "github")) == []


class TestListAllActivities:

    def _seed(self, seeder):
        seeder.add_activity("a1", FIXED_NOW, source="github")
        seeder.add_activity("a2", FIXED_NOW - timedelta(days=1), source="jira")
        seeder.add_activity("a3", FIXED_NOW - timedelta(days=40), source="github")
        seeder.add_entry("time-entry", ["a1", "a2"], grouping_method="time", title="Week recap",
                         created_at=FIXED_NOW)
        seeder.add_entry("cluster-entry", ["a1"], grouping_method="cluster", title="Auth rewrite",
                         created_at=FIXED_NOW - timedelta(days=5))

    def test_story_assignment_prefers_cluster_entries(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE)).payload
        stories = {item.id: (item.story_id, item.story_title) for item in payload.data}

        assert stories["a1"] == ("cluster-entry", "Auth rewrite")
        assert stories["a2"] == ("time-entry", "Week recap")
        assert stories["a3"] == (None, None)
        assert payload.meta.group_by is None

    def test_group_by_temporal(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE, group_by="temporal",
                                                        timezone="UTC")).payload

        assert [(group.key, group.count) for group in payload.data] == [
            ("today", 1), ("yesterday", 1), ("older", 1)
        ]
        assert payload.data[0].label == "Today"
        assert payload.meta.timezone == "UTC"

    def test_group_by_source(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE, group_by="source")).payload

        assert [(group.key, group.label, group.count) for group in payload.data] == [
            ("github", "GitHub", 2), ("jira", "Jira", 1)
        ]
        assert payload.meta.timezone is None

    def test_pagination_and_filter(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE, page=1, page_size=2,
                                                        source="github")).payload

        assert [item.id for item in payload.data] == ["a1", "a3"]
        assert payload.pagination.total == 2
        assert payload.pagination.has_more is False

    def test_sandbox_store_is_separate(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.SANDBOX)).payload

        assert payload.data == []
        assert payload.meta.source_mode == "sandbox"

    def test_group_by_story(self, query_service, seeder):
        self._seed(seeder)
        seeder.add_entry("draft", ["a2", "gone"], title="Draft", description="Two busy days",
                         created_at=FIXED_NOW - timedelta(days=1),
                         time_range=(FIXED_NOW - timedelta(days=2), FIXED_NOW))
        seeder.add_entry("sandbox-entry", [], mode=StoreMode.SANDBOX)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE, group_by="story")).payload

        assert [(group.key, group.count) for group in payload.data] == [
            ("cluster-entry", 1), ("time-entry", 2), ("draft", 2), ("unassigned", 1)
        ]
        cluster, recap, draft, unassigned = payload.data
        assert [item.id for item in recap.activities] == ["a1", "a2"]
        assert {item.story_id for item in recap.activities} == {"time-entry"}
        assert cluster.activities[0].story_title == "Auth rewrite"

        # the missing activity still counts toward the story
        assert [item.id for item in draft.activities] == ["a2"]
        assert draft.story_metadata.description == "Two busy days"
        assert draft.story_metadata.time_range_start == "2025-01-28T12:00:00.000Z"
        assert draft.story_metadata.time_range_end == "2025-01-30T12:00:00.000Z"
        assert draft.story_metadata.grouping_method == "manual"
        assert cluster.story_metadata.grouping_method == "cluster"

        assert unassigned.label == "Unassigned"
        assert [item.id for item in unassigned.activities] == ["a3"]
        assert unassigned.activities[0].story_id is None
        assert unassigned.story_metadata is None
        assert payload.meta.group_by == "story"

    def test_story_groups_list_every_entry_on_any_page(self, query_service, seeder):
        self._seed(seeder)

        payload = run(query_service.list_all_activities("user-1", StoreMode.LIVE, page=1, page_size=1,
                                                        group_by="story")).payload

        # a1 is the only activity on the page and it is assigned
        assert [group.key for group in payload.data] == ["cluster-entry", "time-entry"]
        assert payload.pagination.total == 3
