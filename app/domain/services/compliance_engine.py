"""
COMPLIANCE ENGINE (ENGINE-2)
Classify clock-ins against entity shift policies

RESPONSIBILITIES:
- On-time / late classification of a clock-in
- Clock-in window validation (early buffer, night shifts)
- NO SCHEDULE LOOKUPS, NO WRITES

RULES:
❌ No browser/local timezone
❌ No exceptions for missing data
✅ Fixed reference timezone passed by the caller
✅ Deterministic output
"""

from datetime import datetime, timedelta
from typing import Mapping, Optional

from app.domain.models import (
    ClockInWindow,
    ComplianceResult,
    ComplianceStatus,
    Policy,
    ShiftRecord,
)
from app.utils.time import ZoneLike, format_minutes, minutes_of_day, parse_instant


class ComplianceClassifier:
    """
    Compliance Classifier
    Compares clock-in time-of-day to a policy's nominal start
    """

    UNKNOWN = ComplianceResult(status=ComplianceStatus.UNKNOWN)

    def classify(
        self,
        clock_in: Optional[datetime],
        policy: Optional[Policy],
        tz: ZoneLike,
    ) -> ComplianceResult:
        """
        Classify a single clock-in

        Args:
            clock_in: Clock-in instant (may be missing)
            policy: Shift policy of the entity (may be missing)
            tz: Reference timezone the policy times are expressed in

        Returns:
            ComplianceResult; late_by is measured from the nominal start,
            not from the end of the grace period
        """
        instant = parse_instant(clock_in)
        if instant is None or policy is None or policy.nominal_start_of_day is None:
            return self.UNKNOWN

        clock_in_mins = minutes_of_day(instant, tz)
        start_mins = policy.nominal_start_of_day

        # Single-day policy: no wraparound past midnight
        if clock_in_mins <= start_mins + policy.grace_minutes:
            return ComplianceResult(status=ComplianceStatus.ON_TIME)

        return ComplianceResult(
            status=ComplianceStatus.LATE,
            late_by=timedelta(minutes=clock_in_mins - start_mins),
        )

    def classify_shift(
        self,
        shift: ShiftRecord,
        policies: Mapping[str, Policy],
        tz: ZoneLike,
    ) -> ComplianceResult:
        """Classify a shift record using its entity's policy"""
        if not shift.entity_id:
            return self.UNKNOWN
        return self.classify(shift.clock_in, policies.get(shift.entity_id), tz)

    @staticmethod
    def clock_in_allowed(
        instant: datetime,
        policy: Optional[Policy],
        tz: ZoneLike,
        early_buffer_minutes: int = 15,
    ) -> ClockInWindow:
        """
        Check whether a clock-in falls inside the entity's shift window

        Logic:
        - Day shift (start < end): start - buffer <= now < end
        - Night shift (start >= end): now >= start - buffer OR now < end
        - Policy without start/end: allowed
        """
        if (
            policy is None
            or policy.nominal_start_of_day is None
            or policy.nominal_end_of_day is None
        ):
            return ClockInWindow(allowed=True)

        now_mins = minutes_of_day(instant, tz)
        start_mins = policy.nominal_start_of_day
        end_mins = policy.nominal_end_of_day

        if start_mins < end_mins:
            allowed = start_mins - early_buffer_minutes <= now_mins < end_mins
        else:
            allowed = now_mins >= start_mins - early_buffer_minutes or now_mins < end_mins

        if allowed:
            return ClockInWindow(allowed=True)

        return ClockInWindow(
            allowed=False,
            message=(
                f"Shift {policy.entity_id}: "
                f"{format_minutes(start_mins)} - {format_minutes(end_mins)}"
            ),
        )
