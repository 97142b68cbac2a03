"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Constants
    SLOTS_PER_DAY,
    SLOT_MINUTES,

    # Enums
    ComplianceStatus,
    DayStatus,
    RosterSource,
    StatusAction,
    Tier,

    # Inputs
    Entity,
    Policy,
    ScheduleAssignment,
    ShiftRecord,
    StaticProfile,
    StatusEvent,
    TimestampedRecord,

    # Derived values
    ClockInWindow,
    ComplianceResult,
    GroupDensity,
    IntervalBucket,
    PeakWindow,
    RosterEntry,
    Segment,
    TaggedRecord,
)

__all__ = [
    # Constants
    "SLOTS_PER_DAY",
    "SLOT_MINUTES",

    # Enums
    "ComplianceStatus",
    "DayStatus",
    "RosterSource",
    "StatusAction",
    "Tier",

    # Inputs
    "Entity",
    "Policy",
    "ScheduleAssignment",
    "ShiftRecord",
    "StaticProfile",
    "StatusEvent",
    "TimestampedRecord",

    # Derived values
    "ClockInWindow",
    "ComplianceResult",
    "GroupDensity",
    "IntervalBucket",
    "PeakWindow",
    "RosterEntry",
    "Segment",
    "TaggedRecord",
]
