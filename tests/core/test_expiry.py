"""Unit tests for report expiry logic.

Pure function tests - no mocks needed.
"""

import pytest

from parkpal.core.expiry import (
    DEFAULT_RETENTION_MS,
    is_expired,
    partition_expired,
    prune_requested,
    select_deletions_to_request,
)
from parkpal.core.report import Report


NOW_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


def make_report(report_id: str, age_ms: int | None) -> Report:
    """Create a report created `age_ms` before NOW_MS."""
    return Report(
        id=report_id,
        latitude=43.0731,
        longitude=-89.4012,
        is_available=True,
        timestamp=None if age_ms is None else NOW_MS - age_ms,
    )


class TestIsExpired:
    """Tests for is_expired() function."""

    def test_retention_is_two_hours(self):
        assert DEFAULT_RETENTION_MS == 2 * HOUR_MS

    def test_fresh_report(self):
        assert is_expired(make_report("r1", 0), NOW_MS) is False

    def test_three_hour_old_report_expired(self):
        assert is_expired(make_report("r1", 3 * HOUR_MS), NOW_MS) is True

    def test_exactly_at_retention_is_fresh(self):
        """Expiry requires strictly more than the retention window."""
        assert is_expired(make_report("r1", 2 * HOUR_MS), NOW_MS) is False

    def test_one_ms_past_retention_expired(self):
        assert is_expired(make_report("r1", 2 * HOUR_MS + 1), NOW_MS) is True

    def test_missing_timestamp_never_expires(self):
        assert is_expired(make_report("r1", None), NOW_MS) is False

    def test_custom_retention(self):
        report = make_report("r1", 30 * 60 * 1000)
        assert is_expired(report, NOW_MS, retention_ms=15 * 60 * 1000) is True


class TestPartitionExpired:
    """Tests for partition_expired() function."""

    def test_splits_reports(self):
        reports = [
            make_report("fresh", 10 * 60 * 1000),
            make_report("old", 3 * HOUR_MS),
            make_report("undated", None),
        ]

        partition = partition_expired(reports, NOW_MS)

        assert [r.id for r in partition.fresh] == ["fresh", "undated"]
        assert [r.id for r in partition.expired] == ["old"]
        assert partition.expired_ids == {"old"}

    def test_empty_input(self):
        partition = partition_expired([], NOW_MS)
        assert partition.fresh == []
        assert partition.expired == []


class TestSelectDeletionsToRequest:
    """Tests for select_deletions_to_request() function."""

    def test_requests_new_expired_ids(self):
        assert select_deletions_to_request({"a", "b"}, set()) == {"a", "b"}

    def test_skips_already_requested(self):
        """Each expired report is requested once."""
        assert select_deletions_to_request({"a", "b"}, {"a"}) == {"b"}


class TestPruneRequested:
    """Tests for prune_requested() function."""

    def test_forgets_ids_gone_from_snapshot(self):
        assert prune_requested({"a", "b"}, {"b", "c"}) == {"b"}
