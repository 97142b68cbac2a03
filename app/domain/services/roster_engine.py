"""
ROSTER ENGINE (ENGINE-4)
Infer who currently staffs each entity

RESPONSIBILITIES:
- Recency-weighted membership from schedule assignments
- Profile-declared membership for roles outside the schedule
- De-duplicated, role-ordered rosters per entity

RULES:
❌ No mutation of inputs
❌ No None results (empty list when nobody qualifies)
✅ Pure calculation
✅ Deterministic output
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.domain.models import (
    RosterEntry,
    RosterSource,
    ScheduleAssignment,
    StaticProfile,
)

logger = logging.getLogger(__name__)

DEFAULT_RECENT_DATES = 4

DEFAULT_ROLE_PRIORITY = (
    "SeniorSales",
    "Sales",
    "SalesTaro",
    "Consultant",
    "SeniorSMM",
    "SMM",
)

DEFAULT_PROFILE_DRIVEN_ROLES = ("SeniorSMM", "SMM")


def expand_assignments(rows: Iterable[Mapping[str, Any]]) -> List[ScheduleAssignment]:
    """
    Normalize raw schedule rows into one assignment per entity

    A row may name several entities as a comma-separated list
    ("UA, PL"). Rows without a usable date, subject or entity are skipped.
    """
    assignments: List[ScheduleAssignment] = []
    for row in rows:
        day = _parse_day(row.get("date"))
        subject_id = row.get("subject_id")
        raw_entities = row.get("entity_id")
        if day is None or not subject_id or not raw_entities:
            continue
        for entity_id in str(raw_entities).split(","):
            entity_id = entity_id.strip()
            if entity_id:
                assignments.append(
                    ScheduleAssignment(date=day, subject_id=str(subject_id), entity_id=entity_id)
                )
    return assignments


def _parse_day(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class RosterEngine:
    """
    Roster Inference
    Combines recent schedule density with static profile membership
    """

    def active_roster(
        self,
        assignments: Sequence[ScheduleAssignment],
        profiles: Sequence[StaticProfile],
        today: date,
        recent_dates_count: int = DEFAULT_RECENT_DATES,
        role_priority: Sequence[str] = DEFAULT_ROLE_PRIORITY,
        profile_driven_roles: Iterable[str] = DEFAULT_PROFILE_DRIVEN_ROLES,
        entity_ids: Optional[Iterable[str]] = None,
    ) -> Dict[str, List[RosterEntry]]:
        """
        Build the "currently staffed" roster of every entity

        Args:
            assignments: Schedule assignments (any order)
            profiles: Static subject profiles
            today: Reference day; later assignments are ignored
            recent_dates_count: Distinct recent dates to look at
            role_priority: Role order of the output (unknown roles last)
            profile_driven_roles: Roles whose membership comes from profiles
            entity_ids: Entities that must appear in the result

        Returns:
            entity_id -> role-ordered list of RosterEntry
        """
        if recent_dates_count < 1:
            raise ValueError("recent_dates_count must be at least 1")

        profiles_by_id = {p.subject_id: p for p in profiles}
        priority = {role: idx for idx, role in enumerate(role_priority)}
        driven_roles = set(profile_driven_roles)

        by_entity: Dict[str, List[ScheduleAssignment]] = {}
        for assignment in assignments:
            by_entity.setdefault(assignment.entity_id, []).append(assignment)

        declared: Dict[str, List[StaticProfile]] = {}
        for profile in profiles:
            if profile.role not in driven_roles or profile.is_inactive:
                continue
            for entity_id in profile.entity_ids:
                declared.setdefault(entity_id, []).append(profile)

        keys = list(by_entity)
        for entity_id in list(declared) + list(entity_ids or ()):
            if entity_id not in keys:
                keys.append(entity_id)

        result: Dict[str, List[RosterEntry]] = {}
        for entity_id in keys:
            merged: Dict[str, RosterEntry] = {}

            for subject_id, shift_count in self._scheduled_subjects(
                by_entity.get(entity_id, []), today, recent_dates_count
            ):
                profile = profiles_by_id.get(subject_id)
                if profile is None:
                    logger.debug(
                        "Dropping scheduled subject %s on %s: no profile", subject_id, entity_id
                    )
                    continue
                merged[subject_id] = self._entry(profile, RosterSource.SCHEDULE, shift_count)

            for profile in declared.get(entity_id, []):
                if profile.subject_id not in merged:
                    merged[profile.subject_id] = self._entry(profile, RosterSource.PROFILE, 0)

            result[entity_id] = sorted(
                merged.values(),
                key=lambda e: priority.get(e.role, len(priority)),
            )

        return result

    @staticmethod
    def _scheduled_subjects(
        assignments: Sequence[ScheduleAssignment],
        today: date,
        recent_dates_count: int,
    ) -> List[Tuple[str, int]]:
        """
        Subjects qualifying by recent schedule density

        Logic:
        - Take the N most recent distinct dates up to today
        - shift_count = selected dates the subject is assigned on
        - Threshold: 1 if at most 2 dates exist, else 2 (filters one-off
          substitutes)
        """
        past = [a for a in assignments if a.date <= today]
        recent_dates = set(sorted({a.date for a in past}, reverse=True)[:recent_dates_count])
        min_shifts = 1 if len(recent_dates) <= 2 else 2

        dates_by_subject: Dict[str, set] = {}
        for a in past:
            if a.date in recent_dates:
                dates_by_subject.setdefault(a.subject_id, set()).add(a.date)

        return [
            (subject_id, len(days))
            for subject_id, days in dates_by_subject.items()
            if len(days) >= min_shifts
        ]

    @staticmethod
    def _entry(profile: StaticProfile, source: RosterSource, shift_count: int) -> RosterEntry:
        return RosterEntry(
            subject_id=profile.subject_id,
            name=profile.name,
            role=profile.role,
            handle=profile.handle,
            source=source,
            shift_count=shift_count,
        )
