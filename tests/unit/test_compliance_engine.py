"""
Unit Tests for Compliance Classifier
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.models import ComplianceStatus, Policy, ShiftRecord
from app.domain.services.compliance_engine import ComplianceClassifier

KYIV = "Europe/Kyiv"

pytestmark = pytest.mark.unit


def _kyiv_winter(hour, minute):
    """Kyiv wall-clock time on 2026-02-10 (UTC+2) as a UTC instant"""
    return datetime(2026, 2, 10, hour - 2, minute, tzinfo=timezone.utc)


@pytest.fixture
def classifier():
    """Fixture for ComplianceClassifier"""
    return ComplianceClassifier()


@pytest.fixture
def policy():
    return Policy.from_strings("UA", "09:00", grace_minutes=5, end="18:00")


class TestClassify:
    """On-time / late classification"""

    def test_late_after_grace(self, classifier, policy):
        result = classifier.classify(_kyiv_winter(9, 7), policy, KYIV)

        assert result.status == ComplianceStatus.LATE
        # Measured from the nominal start, not from the end of grace
        assert result.late_by == timedelta(minutes=7)
        assert result.label == "Late (7m)"

    def test_grace_boundary_is_on_time(self, classifier, policy):
        result = classifier.classify(_kyiv_winter(9, 5), policy, KYIV)

        assert result.status == ComplianceStatus.ON_TIME
        assert result.late_by is None
        assert result.label == "On time"

    def test_one_minute_past_grace_is_late(self, classifier, policy):
        result = classifier.classify(_kyiv_winter(9, 6), policy, KYIV)

        assert result.status == ComplianceStatus.LATE
        assert result.late_by == timedelta(minutes=6)

    def test_early_clock_in_is_on_time(self, classifier, policy):
        result = classifier.classify(_kyiv_winter(8, 30), policy, KYIV)

        assert result.status == ComplianceStatus.ON_TIME

    def test_late_label_with_hours(self, classifier, policy):
        result = classifier.classify(_kyiv_winter(10, 20), policy, KYIV)

        assert result.late_by == timedelta(minutes=80)
        assert result.label == "Late (1h 20m)"

    def test_reference_timezone_is_explicit(self, classifier, policy):
        """07:07 UTC is on time against a UTC policy, late against Kyiv"""
        instant = _kyiv_winter(9, 7)

        assert classifier.classify(instant, policy, "UTC").status == ComplianceStatus.ON_TIME
        assert classifier.classify(instant, policy, KYIV).status == ComplianceStatus.LATE

    def test_store_formatted_string_is_accepted(self, classifier, policy):
        result = classifier.classify("2026-02-10 07:07:00+00", policy, KYIV)

        assert result.status == ComplianceStatus.LATE

    @pytest.mark.parametrize("clock_in", [None, "", "not-a-date"])
    def test_missing_clock_in_is_unknown(self, classifier, policy, clock_in):
        result = classifier.classify(clock_in, policy, KYIV)

        assert result.status == ComplianceStatus.UNKNOWN
        assert result.late_by is None
        assert result.label == "—"

    def test_missing_policy_is_unknown(self, classifier):
        assert classifier.classify(_kyiv_winter(9, 7), None, KYIV).status == ComplianceStatus.UNKNOWN

    def test_policy_without_start_is_unknown(self, classifier):
        policy = Policy.from_strings("UA", None)

        assert classifier.classify(_kyiv_winter(9, 7), policy, KYIV).status == ComplianceStatus.UNKNOWN

    def test_negative_grace_rejected(self):
        with pytest.raises(ValueError, match="Grace minutes cannot be negative"):
            Policy(entity_id="UA", nominal_start_of_day=540, grace_minutes=-1)


class TestClassifyShift:
    """Policy lookup by shift entity"""

    def test_uses_entity_policy(self, classifier, policy):
        shift = ShiftRecord(clock_in=_kyiv_winter(9, 20), entity_id="UA", subject_id="m1")

        result = classifier.classify_shift(shift, {"UA": policy}, KYIV)

        assert result.status == ComplianceStatus.LATE
        assert result.late_by == timedelta(minutes=20)

    def test_shift_without_entity_is_unknown(self, classifier, policy):
        shift = ShiftRecord(clock_in=_kyiv_winter(9, 20), entity_id=None, subject_id="m1")

        assert classifier.classify_shift(shift, {"UA": policy}, KYIV).status == ComplianceStatus.UNKNOWN

    def test_entity_without_policy_is_unknown(self, classifier, policy):
        shift = ShiftRecord(clock_in=_kyiv_winter(9, 20), entity_id="PL", subject_id="m1")

        assert classifier.classify_shift(shift, {"UA": policy}, KYIV).status == ComplianceStatus.UNKNOWN


class TestClockInWindow:
    """Shift window validation with early buffer"""

    @pytest.mark.parametrize(
        "hour,minute,allowed",
        [
            (8, 44, False),
            (8, 45, True),
            (12, 0, True),
            (17, 59, True),
            (18, 0, False),
        ],
    )
    def test_day_shift(self, classifier, policy, hour, minute, allowed):
        result = classifier.clock_in_allowed(_kyiv_winter(hour, minute), policy, KYIV)

        assert result.allowed is allowed

    @pytest.mark.parametrize(
        "hour,minute,allowed",
        [
            (21, 44, False),
            (21, 45, True),
            (23, 30, True),
            (3, 0, True),
            (5, 59, True),
            (6, 0, False),
            (12, 0, False),
        ],
    )
    def test_night_shift_wraps_midnight(self, classifier, hour, minute, allowed):
        policy = Policy.from_strings("US", "22:00", end="06:00")
        # Build the Kyiv wall clock directly to allow early-morning hours
        instant = datetime(2026, 2, 10, hour, minute).replace(
            tzinfo=timezone(timedelta(hours=2))
        )

        result = classifier.clock_in_allowed(instant, policy, KYIV)

        assert result.allowed is allowed

    def test_rejection_message_names_shift(self, classifier):
        policy = Policy.from_strings("US", "22:00", end="06:00")

        result = classifier.clock_in_allowed(_kyiv_winter(12, 0), policy, KYIV)

        assert result.message == "Shift US: 22:00 - 06:00"

    def test_policy_without_end_always_allows(self, classifier):
        policy = Policy.from_strings("UA", "09:00")

        assert classifier.clock_in_allowed(_kyiv_winter(3, 0), policy, KYIV).allowed is True

    def test_custom_buffer(self, classifier, policy):
        result = classifier.clock_in_allowed(
            _kyiv_winter(8, 31), policy, KYIV, early_buffer_minutes=30
        )

        assert result.allowed is True
