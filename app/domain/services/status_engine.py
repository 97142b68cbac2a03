"""
STATUS ENGINE (ENGINE-1)
Reconstruct point-in-time entity status from the status log

RESPONSIBILITIES:
- Derive Active/Inactive for a calendar day
- Build month calendars for the calendar view
- Report the last deactivation date
- NO PERSISTENCE, NO WRITES TO THE LOG

RULES:
❌ No stored derived state
❌ No ambient timezone
✅ Pure calculation
✅ Deterministic output
"""

import calendar
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from app.domain.models import DayStatus, Entity, StatusAction, StatusEvent
from app.utils.time import ZoneLike, day_bounds, local_date, parse_instant

logger = logging.getLogger(__name__)


class StatusReconstructor:
    """
    Status Reconstructor
    Answers "was this entity active on day D" from an append-only log
    """

    def status_on_day(
        self,
        entity: Entity,
        day: date,
        tz: ZoneLike,
    ) -> DayStatus:
        """
        Derive the status of an entity for one calendar day

        Args:
            entity: Entity with its status log
            day: Calendar day to evaluate
            tz: Reference timezone for day boundaries

        Returns:
            DayStatus.ACTIVE if the entity was active at the start of the
            day or was activated at any point during it
        """
        day_start, day_end = day_bounds(day, tz)
        history = self._sorted_history(entity.status_log)

        if self._baseline(entity, history, day_start):
            return DayStatus.ACTIVE

        # Any activation during the day marks the whole day active
        for occurred_at, event in history:
            if day_start <= occurred_at < day_end and event.action == StatusAction.ACTIVATED:
                return DayStatus.ACTIVE

        return DayStatus.INACTIVE

    def month_calendar(
        self,
        entity: Entity,
        year: int,
        month: int,
        tz: ZoneLike,
    ) -> Dict[date, DayStatus]:
        """Status for every day of a month (calendar view)"""
        _, num_days = calendar.monthrange(year, month)
        return {
            date(year, month, d): self.status_on_day(entity, date(year, month, d), tz)
            for d in range(1, num_days + 1)
        }

    def last_deactivated(
        self,
        entity: Entity,
        tz: ZoneLike,
    ) -> Optional[date]:
        """
        Local date of the most recent deactivation

        Scans from the tail of the log as recorded; entries without a
        timestamp are skipped.
        """
        for event in reversed(entity.status_log):
            if event.action != StatusAction.DEACTIVATED:
                continue
            occurred_at = parse_instant(event.occurred_at)
            if occurred_at is None:
                continue
            return local_date(occurred_at, tz)
        return None

    @staticmethod
    def current_status(entity: Entity) -> DayStatus:
        """Live status; the log never overrides the authoritative flag"""
        return DayStatus.ACTIVE if entity.current_status else DayStatus.INACTIVE

    @staticmethod
    def _sorted_history(log) -> List[Tuple[datetime, StatusEvent]]:
        """
        Events with usable timestamps, ascending (stable for ties)
        """
        history = []
        for event in log:
            occurred_at = parse_instant(event.occurred_at)
            if occurred_at is None:
                logger.debug("Skipping status event without timestamp: %s", event)
                continue
            history.append((occurred_at, event))
        history.sort(key=lambda item: item[0])
        return history

    @staticmethod
    def _baseline(
        entity: Entity,
        history: List[Tuple[datetime, StatusEvent]],
        day_start: datetime,
    ) -> bool:
        """
        Status immediately before day_start

        Logic:
        - Last event before the day decides
        - No earlier event: invert the first recorded transition
          (a log starting with DEACTIVATED implies it was active before)
        - Empty log: the live flag
        """
        prior: Optional[StatusEvent] = None
        for occurred_at, event in history:
            if occurred_at >= day_start:
                break
            prior = event

        if prior is not None:
            return prior.action == StatusAction.ACTIVATED

        if history:
            first_event = history[0][1]
            return first_event.action == StatusAction.DEACTIVATED

        return bool(entity.current_status)
