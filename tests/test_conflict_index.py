"""
Tests for ConflictIndex - busy-interval lookup.

Tests cover:
- Strictly positive overlap
- Touching endpoints
- Unknown participants
- Nested and out-of-order intervals
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.scheduling.conflict_index import BusyInterval, ConflictIndex


def at(hour, minute=0):
    return datetime(2025, 10, 20, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def index():
    return ConflictIndex(
        {
            "ana@example.com": [
                BusyInterval("ana@example.com", at(14), at(15), event_id="e2", title="Review"),
                BusyInterval("ana@example.com", at(9), at(12), event_id="e1", title="Workshop"),
                BusyInterval("ana@example.com", at(10), at(10, 30), event_id="e3", title="Call"),
            ],
            "ben@example.com": [],
        }
    )


class TestIsBusy:
    """Tests for is_busy."""

    def test_overlap_is_busy(self, index):
        assert index.is_busy("ana@example.com", at(14, 30), at(15, 30))
        assert index.is_busy("ana@example.com", at(13, 30), at(14, 1))

    def test_touching_endpoints_do_not_conflict(self, index):
        assert not index.is_busy("ana@example.com", at(15), at(16))
        assert not index.is_busy("ana@example.com", at(13), at(14))
        assert not index.is_busy("ana@example.com", at(12), at(14))

    def test_long_interval_hides_behind_later_short_one(self, index):
        # 11:00-11:30 only overlaps the 09:00-12:00 workshop, which starts
        # before the 10:00 call but ends after it
        assert index.is_busy("ana@example.com", at(11), at(11, 30))

    def test_free_participant(self, index):
        assert not index.is_busy("ben@example.com", at(9), at(17))

    def test_unknown_participant_is_free(self, index):
        assert not index.is_busy("nobody@example.com", at(9), at(17))

    def test_any_busy(self, index):
        people = ["ana@example.com", "ben@example.com"]
        assert index.any_busy(people, at(14), at(14, 30))
        assert not index.any_busy(people, at(12), at(14))


class TestConflicts:
    """Tests for conflict listing."""

    def test_conflicts_lists_every_overlapping_event(self, index):
        conflicts = index.conflicts("ana@example.com", at(10, 15), at(14, 15))
        assert [c.event_id for c in conflicts] == ["e1", "e3", "e2"]

    def test_no_conflicts_when_touching(self, index):
        assert index.conflicts("ana@example.com", at(15), at(16)) == []

    def test_conflicts_agree_with_is_busy(self, index):
        start = at(8)
        while start < at(17):
            end = start + timedelta(minutes=45)
            assert bool(index.conflicts("ana@example.com", start, end)) == index.is_busy(
                "ana@example.com", start, end
            )
            start += timedelta(minutes=15)

    def test_participants(self, index):
        assert set(index.participants) == {"ana@example.com", "ben@example.com"}

    def test_interval_overlaps_helper(self):
        interval = BusyInterval("ana@example.com", at(9), at(10))
        assert interval.overlaps(at(9, 59), at(11))
        assert not interval.overlaps(at(10), at(11))
