"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from app.utils.time import format_minutes, parse_time_of_day


SLOTS_PER_DAY = 96
SLOT_MINUTES = 15


class StatusAction(str, Enum):
    """Entry type of an entity status log"""
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"


class DayStatus(str, Enum):
    """Derived status of an entity"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ComplianceStatus(str, Enum):
    """Clock-in compliance against a policy"""
    ON_TIME = "ok"
    LATE = "late"
    UNKNOWN = "unknown"


class Tier(str, Enum):
    """Density tier of a histogram slot"""
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class RosterSource(str, Enum):
    """Why a subject is on a roster"""
    SCHEDULE = "schedule"
    PROFILE = "profile"


# ---------------------------------------------------------------------------
# Raw inputs (read-only)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatusEvent:
    """One entry of an append-only status log"""
    action: StatusAction
    occurred_at: Optional[datetime]
    actor: str = ""


@dataclass(frozen=True)
class Entity:
    """
    Monitored object (e.g. an operating region).

    `current_status` is the live flag; `status_log` is history and may be
    empty for a freshly created entity.
    """
    id: str
    current_status: bool
    status_log: Tuple[StatusEvent, ...] = ()
    name: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("Entity id cannot be empty")
        # Accept any iterable, store an immutable snapshot
        object.__setattr__(self, "status_log", tuple(self.status_log))


@dataclass(frozen=True)
class TimestampedRecord:
    """Payment or clock-in as fed to the density bucketer"""
    occurred_at: Optional[datetime]
    subject_id: Optional[str] = None
    amount: Optional[Decimal] = None
    entity_id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False)

    def get(self, key: str) -> Any:
        """Attribute lookup across the fixed fields and free-form attributes"""
        if key in ("occurred_at", "subject_id", "amount", "entity_id"):
            return getattr(self, key)
        return self.attributes.get(key)


@dataclass(frozen=True)
class ScheduleAssignment:
    """Day-granularity fact: subject works for entity on date"""
    date: date
    subject_id: str
    entity_id: str


@dataclass(frozen=True)
class ShiftRecord:
    """Clock-in of a subject for an entity"""
    clock_in: Optional[datetime]
    entity_id: Optional[str]
    subject_id: str
    clock_out: Optional[datetime] = None


@dataclass(frozen=True)
class Policy:
    """
    Shift policy of an entity. Times are minutes since midnight in the
    reference timezone.
    """
    entity_id: str
    nominal_start_of_day: Optional[int]
    grace_minutes: int = 5
    nominal_end_of_day: Optional[int] = None

    def __post_init__(self):
        if self.grace_minutes < 0:
            raise ValueError("Grace minutes cannot be negative")

    @staticmethod
    def from_strings(
        entity_id: str,
        start: Optional[str],
        grace_minutes: int = 5,
        end: Optional[str] = None,
    ) -> "Policy":
        """Build a policy from "HH:MM" strings as stored on the entity"""
        return Policy(
            entity_id=entity_id,
            nominal_start_of_day=parse_time_of_day(start),
            grace_minutes=grace_minutes,
            nominal_end_of_day=parse_time_of_day(end),
        )


@dataclass(frozen=True)
class StaticProfile:
    """Subject profile with declared entity membership"""
    subject_id: str
    name: str
    role: str
    entity_ids: Tuple[str, ...] = ()
    status: str = "active"
    handle: str = ""

    def __post_init__(self):
        object.__setattr__(self, "entity_ids", tuple(self.entity_ids))

    @property
    def is_inactive(self) -> bool:
        return (self.status or "").strip().lower() == "inactive"


# ---------------------------------------------------------------------------
# Derived values (never persisted)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ComplianceResult:
    """Lateness classification of one clock-in"""
    status: ComplianceStatus
    late_by: Optional[timedelta] = None

    @property
    def label(self) -> str:
        if self.status == ComplianceStatus.ON_TIME:
            return "On time"
        if self.status == ComplianceStatus.LATE and self.late_by is not None:
            total = int(self.late_by.total_seconds() // 60)
            hours, minutes = divmod(total, 60)
            diff = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
            return f"Late ({diff})"
        return "—"


@dataclass(frozen=True)
class Segment:
    """Maximal run of same-tier slots; both ends inclusive"""
    tier: Tier
    start_slot: int
    end_slot: int
    total_count: int

    @property
    def length(self) -> int:
        return self.end_slot - self.start_slot + 1

    @property
    def start_time(self) -> str:
        return format_minutes(self.start_slot * SLOT_MINUTES)

    @property
    def end_time(self) -> str:
        return format_minutes((self.end_slot + 1) * SLOT_MINUTES)

    @property
    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"


@dataclass(frozen=True)
class PeakWindow:
    """Best circular window of the daily histogram"""
    start_slot: int
    sum: int
    window_slots: int = 8

    @property
    def end_slot(self) -> int:
        """Last slot of the window (wraps past midnight)"""
        return (self.start_slot + self.window_slots - 1) % SLOTS_PER_DAY

    @property
    def label(self) -> str:
        if self.sum == 0:
            return "—"
        start = self.start_slot * SLOT_MINUTES
        end = (self.start_slot + self.window_slots) * SLOT_MINUTES
        return f"{format_minutes(start)} - {format_minutes(end)}"


@dataclass(frozen=True)
class IntervalBucket:
    """Hour-granularity bucket of the interval breakdown"""
    label: str
    count: int
    pct: int


@dataclass(frozen=True)
class TaggedRecord:
    """Record paired with the tier of its slot"""
    record: TimestampedRecord
    tier: Tier
    slot: int


@dataclass(frozen=True)
class GroupDensity:
    """Density summary of one record group (e.g. one region)"""
    key: str
    total_count: int
    subject_count: int
    counts: Tuple[int, ...]
    peak: PeakWindow


@dataclass(frozen=True)
class RosterEntry:
    """Subject considered currently staffed for an entity"""
    subject_id: str
    name: str
    role: str
    handle: str
    source: RosterSource
    shift_count: int = 0


@dataclass(frozen=True)
class ClockInWindow:
    """Clock-in validation outcome"""
    allowed: bool
    message: str = ""

