"""
Derivation API Routes
Stateless read-only views over raw records: nothing is stored,
every call recomputes from the request body
"""

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, HTTPException

from app.domain.models import (
    Entity,
    ShiftRecord,
    StaticProfile,
    StatusEvent,
    TimestampedRecord,
)
from app.domain.schemas.derivation import (
    ComplianceItem,
    ComplianceRequest,
    DensityRequest,
    DensityResponse,
    EntityIn,
    GroupOut,
    IntervalOut,
    PeakOut,
    RosterEntryOut,
    RosterRequest,
    RosterResponse,
    SegmentOut,
    StatusDayRequest,
    StatusDayResponse,
    StatusMonthRequest,
    StatusMonthResponse,
)
from app.domain.services.compliance_engine import ComplianceClassifier
from app.domain.services.config_engine import ConfigEngine
from app.domain.services.density_engine import DensityEngine
from app.domain.services.roster_engine import RosterEngine, expand_assignments
from app.domain.services.status_engine import StatusReconstructor
from app.utils.time import local_date, parse_instant, resolve_zone

logger = logging.getLogger(__name__)

router = APIRouter()

status_reconstructor = StatusReconstructor()
compliance_classifier = ComplianceClassifier()
density_engine = DensityEngine()
roster_engine = RosterEngine()


def _config_engine() -> ConfigEngine:
    from app.main import config_engine

    if config_engine is None:
        raise HTTPException(status_code=500, detail="Configuration not loaded")
    return config_engine


def _zone(requested: str | None) -> str:
    """Requested timezone, falling back to the configured one"""
    name = requested or _config_engine().timezone
    try:
        resolve_zone(name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return name


def _entity(payload: EntityIn) -> Entity:
    return Entity(
        id=payload.id,
        current_status=payload.current_status,
        status_log=[
            StatusEvent(action=e.action, occurred_at=parse_instant(e.at), actor=e.by)
            for e in payload.status_log
        ],
    )


def _peak_out(peak) -> PeakOut:
    return PeakOut(start_slot=peak.start_slot, sum=peak.sum, label=peak.label)


@router.post("/status/day", response_model=StatusDayResponse)
async def status_on_day(request: StatusDayRequest):
    """
    Was the entity active on the given day
    """
    tz = _zone(request.timezone)
    status = status_reconstructor.status_on_day(_entity(request.entity), request.day, tz)
    return StatusDayResponse(entity_id=request.entity.id, day=request.day, status=status.value)


@router.post("/status/month", response_model=StatusMonthResponse)
async def status_month(request: StatusMonthRequest):
    """
    Calendar view: status for every day of a month
    """
    tz = _zone(request.timezone)
    entity = _entity(request.entity)
    days = status_reconstructor.month_calendar(entity, request.year, request.month, tz)
    return StatusMonthResponse(
        entity_id=entity.id,
        current_status=status_reconstructor.current_status(entity).value,
        last_deactivated=status_reconstructor.last_deactivated(entity, tz),
        days={day: status.value for day, status in days.items()},
    )


@router.post("/compliance", response_model=List[ComplianceItem])
async def compliance(request: ComplianceRequest):
    """
    Classify clock-ins against the configured entity policies
    """
    tz = _zone(request.timezone)
    policies = _config_engine().config.policies

    items = []
    for shift in request.shifts:
        result = compliance_classifier.classify_shift(
            ShiftRecord(
                clock_in=parse_instant(shift.clock_in),
                entity_id=shift.entity_id,
                subject_id=shift.subject_id,
            ),
            policies,
            tz,
        )
        late_by = int(result.late_by.total_seconds() // 60) if result.late_by is not None else None
        items.append(
            ComplianceItem(
                subject_id=shift.subject_id,
                entity_id=shift.entity_id,
                status=result.status.value,
                late_by_minutes=late_by,
                label=result.label,
            )
        )
    return items


@router.post("/density", response_model=DensityResponse)
async def density(request: DensityRequest):
    """
    Time-of-day density profile, segments and peak window
    """
    tz = _zone(request.timezone)
    settings = _config_engine().config.density

    records = [
        TimestampedRecord(
            occurred_at=parse_instant(r.occurred_at),
            subject_id=r.subject_id,
            amount=r.amount,
            entity_id=r.entity_id,
        )
        for r in request.records
    ]

    counts = density_engine.bucketize(records, tz)
    segments = density_engine.merge_segments(counts, green_ratio=settings.green_ratio)
    peak = density_engine.peak_window(counts, settings.peak_window_slots)
    intervals = density_engine.interval_breakdown(records, tz, request.interval_hours)

    groups = []
    if request.group_by:
        groups = [
            GroupOut(
                key=g.key,
                total_count=g.total_count,
                subject_count=g.subject_count,
                peak=_peak_out(g.peak),
            )
            for g in density_engine.group_density(
                records, tz, key=request.group_by, window_slots=settings.peak_window_slots
            )
        ]

    return DensityResponse(
        counts=counts,
        segments=[
            SegmentOut(
                tier=s.tier.value,
                start_slot=s.start_slot,
                end_slot=s.end_slot,
                total_count=s.total_count,
                label=s.label,
            )
            for s in segments
        ],
        peak=_peak_out(peak),
        intervals=[IntervalOut(label=b.label, count=b.count, pct=b.pct) for b in intervals],
        groups=groups,
    )


@router.post("/roster", response_model=RosterResponse)
async def roster(request: RosterRequest):
    """
    Currently staffed subjects per entity
    """
    tz = _zone(request.timezone)
    settings = _config_engine().config.roster
    today = request.today or local_date(datetime.now(timezone.utc), tz)

    assignments = expand_assignments(a.model_dump() for a in request.assignments)
    profiles = [
        StaticProfile(
            subject_id=p.subject_id,
            name=p.name,
            role=p.role,
            entity_ids=p.entity_ids,
            status=p.status,
            handle=p.handle,
        )
        for p in request.profiles
    ]

    rosters = roster_engine.active_roster(
        assignments,
        profiles,
        today,
        recent_dates_count=settings.recent_dates_count,
        role_priority=settings.role_priority,
        profile_driven_roles=settings.profile_driven_roles,
        entity_ids=request.entity_ids,
    )
    logger.debug("Roster computed for %d entities", len(rosters))

    return RosterResponse(
        today=today,
        rosters={
            entity_id: [
                RosterEntryOut(
                    subject_id=e.subject_id,
                    name=e.name,
                    role=e.role,
                    handle=e.handle,
                    source=e.source.value,
                    shift_count=e.shift_count,
                )
                for e in entries
            ]
            for entity_id, entries in rosters.items()
        },
    )
