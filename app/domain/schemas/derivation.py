from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.domain.models import StatusAction


# ======================
# Status
# ======================

class StatusEventIn(BaseModel):
    action: StatusAction
    at: Optional[str] = None
    by: str = ""


class EntityIn(BaseModel):
    id: str = Field(min_length=1)
    current_status: bool = True
    status_log: List[StatusEventIn] = []


class StatusDayRequest(BaseModel):
    entity: EntityIn
    day: date
    timezone: Optional[str] = None


class StatusDayResponse(BaseModel):
    entity_id: str
    day: date
    status: str


class StatusMonthRequest(BaseModel):
    entity: EntityIn
    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)
    timezone: Optional[str] = None


class StatusMonthResponse(BaseModel):
    entity_id: str
    current_status: str
    last_deactivated: Optional[date] = None
    days: Dict[date, str]


# ======================
# Compliance
# ======================

class ShiftIn(BaseModel):
    subject_id: str
    entity_id: Optional[str] = None
    clock_in: Optional[str] = None


class ComplianceRequest(BaseModel):
    shifts: List[ShiftIn]
    timezone: Optional[str] = None


class ComplianceItem(BaseModel):
    subject_id: str
    entity_id: Optional[str] = None
    status: str
    late_by_minutes: Optional[int] = None
    label: str


# ======================
# Density
# ======================

class RecordIn(BaseModel):
    occurred_at: Optional[str] = None
    subject_id: Optional[str] = None
    entity_id: Optional[str] = None
    amount: Optional[Decimal] = None


class DensityRequest(BaseModel):
    records: List[RecordIn]
    timezone: Optional[str] = None
    group_by: Optional[str] = "entity_id"
    interval_hours: int = Field(default=2, ge=1, le=24)


class SegmentOut(BaseModel):
    tier: str
    start_slot: int
    end_slot: int
    total_count: int
    label: str


class PeakOut(BaseModel):
    start_slot: int
    sum: int
    label: str


class IntervalOut(BaseModel):
    label: str
    count: int
    pct: int


class GroupOut(BaseModel):
    key: str
    total_count: int
    subject_count: int
    peak: PeakOut


class DensityResponse(BaseModel):
    counts: List[int]
    segments: List[SegmentOut]
    peak: PeakOut
    intervals: List[IntervalOut]
    groups: List[GroupOut] = []


# ======================
# Roster
# ======================

class AssignmentIn(BaseModel):
    date: Optional[str] = None
    subject_id: Optional[str] = None
    entity_id: Optional[str] = None


class ProfileIn(BaseModel):
    subject_id: str
    name: str
    role: str
    entity_ids: List[str] = []
    status: str = "active"
    handle: str = ""


class RosterRequest(BaseModel):
    assignments: List[AssignmentIn]
    profiles: List[ProfileIn] = []
    today: Optional[date] = None
    entity_ids: List[str] = []
    timezone: Optional[str] = None


class RosterEntryOut(BaseModel):
    subject_id: str
    name: str
    role: str
    handle: str
    source: str
    shift_count: int


class RosterResponse(BaseModel):
    today: date
    rosters: Dict[str, List[RosterEntryOut]]
