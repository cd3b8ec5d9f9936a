"""
Tests for Conflict, Severity ordering and the report view.
"""
import pytest
from pydantic import ValidationError
from foldera.models.conflict import Conflict, ConflictType, Severity
from foldera.models.report import ConflictReport


def make_conflict(**overrides) -> Conflict:
    data = {
        "type": "scheduling_conflict",
        "severity": Severity.HIGH,
        "signals_involved": ("gmail:1", "outlook:2"),
        "summary": "Double booking",
    }
    data.update(overrides)
    return Conflict(**data)


class TestSeverity:
    """Severity is an explicit total order, not a lexical one."""

    def test_total_order(self):
        assert Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL

    def test_not_lexical(self):
        # Lexically "critical" < "high"; by rank it is greater
        assert Severity.CRITICAL > Severity.HIGH
        assert Severity.MEDIUM <= Severity.MEDIUM

    def test_sorting(self):
        ordered = sorted([Severity.HIGH, Severity.LOW, Severity.CRITICAL, Severity.MEDIUM])
        assert ordered == [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]

    @pytest.mark.parametrize("raw,expected", [
        ("high", Severity.HIGH),
        (" CRITICAL ", Severity.CRITICAL),
        (Severity.LOW, Severity.LOW),
        ("urgent", Severity.MEDIUM),
        (None, Severity.MEDIUM),
        (5, Severity.MEDIUM),
    ])
    def test_coerce(self, raw, expected):
        assert Severity.coerce(raw) is expected


class TestConflict:
    """Test suite for the Conflict record."""

    def test_known_type_becomes_enum(self):
        assert make_conflict().type is ConflictType.SCHEDULING

    def test_unknown_type_kept(self):
        assert make_conflict(type="stalled_thread").type == "stalled_thread"

    def test_requires_two_signals(self):
        with pytest.raises(ValidationError):
            make_conflict(signals_involved=("gmail:1",))

    def test_invalid_severity_rejected(self):
        with pytest.raises(ValidationError):
            make_conflict(severity="urgent")

    def test_serializes_to_plain_json(self):
        data = make_conflict(datetime="2024-01-15T09:00:00Z").model_dump(mode="json")
        assert data == {
            "type": "scheduling_conflict",
            "severity": "high",
            "signals_involved": ["gmail:1", "outlook:2"],
            "summary": "Double booking",
            "recommended_action": "",
            "datetime": "2024-01-15T09:00:00Z",
        }

    def test_natural_key_ignores_signal_order(self):
        a = make_conflict(signals_involved=("gmail:1", "outlook:2"))
        b = make_conflict(signals_involved=("outlook:2", "gmail:1"), summary="Other words")
        assert a.natural_key() == b.natural_key()

    def test_natural_key_canonicalizes_datetime(self):
        a = make_conflict(datetime="2024-01-15T09:00:00Z")
        b = make_conflict(datetime="2024-01-15T10:00:00+01:00")
        assert a.natural_key() == b.natural_key()

    def test_natural_key_distinguishes_type(self):
        a = make_conflict()
        b = make_conflict(type="content_conflict")
        assert a.natural_key() != b.natural_key()


class TestConflictReport:
    """Test suite for the downstream report view."""

    def test_orders_most_severe_first_stably(self):
        first_high = make_conflict(summary="first high")
        low = make_conflict(severity=Severity.LOW, summary="low")
        critical = make_conflict(severity=Severity.CRITICAL, summary="critical")
        second_high = make_conflict(summary="second high")

        report = ConflictReport.build(4, [first_high, low, critical, second_high])

        assert [c.summary for c in report.conflicts] == ["critical", "first high", "second high", "low"]

    def test_summary_counts(self):
        report = ConflictReport.build(5, [
            make_conflict(),
            make_conflict(type="financial_mismatch", severity=Severity.CRITICAL),
        ])
        data = report.model_dump(mode="json")

        assert data["signals_analyzed"] == 5
        assert data["total_conflicts"] == 2
        assert data["critical_conflicts"] == 1
        assert data["by_type"] == {"financial_mismatch": 1, "scheduling_conflict": 1}
        assert data["by_severity"] == {"low": 0, "medium": 0, "high": 1, "critical": 1}

    def test_empty_report(self):
        report = ConflictReport.build(0, [])
        assert report.total_conflicts == 0
        assert report.by_type == {}
