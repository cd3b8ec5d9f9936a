"""
Tests for the deterministic scheduling-conflict detector.
"""
from foldera.detection.scheduling import detect_scheduling_conflicts
from foldera.models.conflict import ConflictType, Severity
from foldera.models.signal import WorkSignal


def event(signal_id: str, when: str | None, source: str = "gmail", kind: str = "calendar_event") -> WorkSignal:
    return WorkSignal(id=signal_id, type=kind, source=source, datetime=when)


class TestSchedulingDetection:
    """Test suite for exact-instant double bookings."""

    def test_gmail_outlook_double_booking(self, double_booked_signals):
        conflicts = detect_scheduling_conflicts(double_booked_signals)

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.SCHEDULING
        assert conflict.severity == Severity.HIGH
        assert conflict.signals_involved == ("gmail:123", "outlook:456")
        assert conflict.datetime == "2024-01-15T09:00:00Z"
        assert conflict.recommended_action

    def test_different_times_no_conflict(self):
        signals = [
            event("gmail:123", "2024-01-15T09:00:00Z"),
            event("gmail:456", "2024-01-15T10:00:00Z"),
        ]
        assert detect_scheduling_conflicts(signals) == []

    def test_email_without_datetime_ignored(self):
        signals = [WorkSignal(id="gmail:123", type="email", source="gmail", content="Some email content")]
        assert detect_scheduling_conflicts(signals) == []

    def test_email_with_datetime_never_conflicts(self):
        """Only calendar events take part, even when an email shares the instant."""
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("gmail:2", "2024-01-15T09:00:00Z", kind="email"),
        ]
        assert detect_scheduling_conflicts(signals) == []

    def test_same_source_double_booking_flagged(self):
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("gmail:2", "2024-01-15T09:00:00Z"),
        ]
        conflicts = detect_scheduling_conflicts(signals)
        assert len(conflicts) == 1
        assert "in gmail" in conflicts[0].summary

    def test_equivalent_offsets_collide(self):
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("outlook:2", "2024-01-15T10:00:00+01:00", source="outlook"),
        ]
        conflicts = detect_scheduling_conflicts(signals)
        assert len(conflicts) == 1
        assert conflicts[0].datetime == "2024-01-15T09:00:00Z"

    def test_one_minute_apart_is_not_a_conflict(self):
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("gmail:2", "2024-01-15T09:01:00Z"),
        ]
        assert detect_scheduling_conflicts(signals) == []

    def test_three_way_collision_is_one_conflict(self):
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("outlook:2", "2024-01-15T09:00:00Z", source="outlook"),
            event("gmail:3", "2024-01-15T09:00:00Z"),
        ]
        conflicts = detect_scheduling_conflicts(signals)
        assert len(conflicts) == 1
        assert conflicts[0].signals_involved == ("gmail:1", "outlook:2", "gmail:3")

    def test_groups_in_first_seen_order(self):
        signals = [
            event("a:1", "2024-01-15T11:00:00Z"),
            event("b:1", "2024-01-15T09:00:00Z"),
            event("a:2", "2024-01-15T11:00:00Z"),
            event("b:2", "2024-01-15T09:00:00Z"),
        ]
        conflicts = detect_scheduling_conflicts(signals)
        assert [c.signals_involved for c in conflicts] == [("a:1", "a:2"), ("b:1", "b:2")]

    def test_unparsable_datetime_excluded(self):
        signals = [
            event("gmail:1", "2024-01-15T09:00:00Z"),
            event("gmail:2", "tomorrow at nine"),
            event("gmail:3", None),
        ]
        assert detect_scheduling_conflicts(signals) == []

    def test_out_of_range_offset_excluded(self):
        signals = [
            event("gmail:1", "0001-01-01T00:00:00+05:00"),
            event("gmail:2", "0001-01-01T00:00:00+05:00"),
            event("outlook:3", "2024-01-15T09:00:00Z"),
            event("outlook:4", "2024-01-15T09:00:00Z"),
        ]

        conflicts = detect_scheduling_conflicts(signals)

        assert [c.signals_involved for c in conflicts] == [("outlook:3", "outlook:4")]

    def test_empty_batch(self):
        assert detect_scheduling_conflicts([]) == []

    def test_referenced_ids_come_from_input(self, double_booked_signals):
        ids = {s.id for s in double_booked_signals}
        for conflict in detect_scheduling_conflicts(double_booked_signals):
            assert len(conflict.signals_involved) >= 2
            assert set(conflict.signals_involved) <= ids

    def test_idempotent_and_non_mutating(self, double_booked_signals):
        snapshot = [s.model_dump() for s in double_booked_signals]

        first = detect_scheduling_conflicts(double_booked_signals)
        second = detect_scheduling_conflicts(double_booked_signals)

        assert first == second
        assert [s.model_dump() for s in double_booked_signals] == snapshot
