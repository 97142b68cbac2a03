"""
DENSITY ENGINE (ENGINE-3)
Daily time-of-day histograms and peak windows

RESPONSIBILITIES:
- Bucket timestamped records into 96 fifteen-minute slots
- Tier slots (red / yellow / green) and merge them into segments
- Find the best circular peak window
- Hour-interval breakdowns and per-group summaries

RULES:
❌ No rendering concerns beyond labels
❌ No exceptions for missing timestamps (records are skipped)
✅ Pure calculation
✅ Deterministic output
"""

import logging
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from app.domain.models import (
    SLOT_MINUTES,
    SLOTS_PER_DAY,
    GroupDensity,
    IntervalBucket,
    PeakWindow,
    Segment,
    TaggedRecord,
    Tier,
    TimestampedRecord,
)
from app.utils.time import ZoneLike, minutes_of_day, parse_instant, to_zone

logger = logging.getLogger(__name__)

DEFAULT_GREEN_RATIO = 0.6
DEFAULT_WINDOW_SLOTS = 8  # 2 hours


class DensityEngine:
    """
    Density Bucketer & Peak Finder
    Turns record timestamps into a time-of-day density profile
    """

    @staticmethod
    def slot_index(instant: Optional[datetime], tz: ZoneLike) -> int:
        """Slot of an instant in the reference zone, -1 if missing"""
        parsed = parse_instant(instant)
        if parsed is None:
            return -1
        return minutes_of_day(parsed, tz) // SLOT_MINUTES

    def bucketize(
        self,
        records: Iterable[TimestampedRecord],
        tz: ZoneLike,
    ) -> List[int]:
        """
        Count records per 15-minute slot

        Args:
            records: Timestamped records
            tz: Reference timezone for time-of-day

        Returns:
            List of 96 counts (slot = hour * 4 + minute // 15)
        """
        counts = [0] * SLOTS_PER_DAY
        skipped = 0
        for record in records:
            idx = self.slot_index(record.occurred_at, tz)
            if 0 <= idx < SLOTS_PER_DAY:
                counts[idx] += 1
            else:
                skipped += 1
        if skipped:
            logger.debug("bucketize skipped %d records without timestamp", skipped)
        return counts

    @staticmethod
    def max_count(counts: Sequence[int]) -> int:
        """Busiest slot, floored at 1 so tiering never divides by zero"""
        return max(max(counts, default=0), 1)

    @staticmethod
    def tier(
        count: int,
        max_count: int,
        green_ratio: float = DEFAULT_GREEN_RATIO,
    ) -> Tier:
        """
        Tier of one slot relative to the busiest slot

        Logic:
        - RED: count == 0
        - GREEN: count / max_count >= green_ratio
        - YELLOW: otherwise
        """
        if count == 0:
            return Tier.RED
        if count / max(max_count, 1) >= green_ratio:
            return Tier.GREEN
        return Tier.YELLOW

    def merge_segments(
        self,
        counts: Sequence[int],
        green_ratio: float = DEFAULT_GREEN_RATIO,
    ) -> List[Segment]:
        """
        Merge consecutive same-tier slots into segments

        Segments partition slots 0..95 in order; their total counts sum to
        sum(counts).
        """
        self._check_counts(counts)
        max_count = self.max_count(counts)

        segments: List[Segment] = []
        current_tier: Optional[Tier] = None
        start = 0
        total = 0

        for i, count in enumerate(counts):
            slot_tier = self.tier(count, max_count, green_ratio)
            if slot_tier == current_tier:
                total += count
                continue
            if current_tier is not None:
                segments.append(Segment(current_tier, start, i - 1, total))
            current_tier, start, total = slot_tier, i, count

        segments.append(Segment(current_tier, start, SLOTS_PER_DAY - 1, total))
        return segments

    def peak_window(
        self,
        counts: Sequence[int],
        window_slots: int = DEFAULT_WINDOW_SLOTS,
    ) -> PeakWindow:
        """
        Best circular window of `window_slots` consecutive slots

        Windows starting near midnight wrap past slot 95 back to slot 0.
        Ties resolve to the earliest start slot.
        """
        self._check_counts(counts)
        if not 0 < window_slots <= SLOTS_PER_DAY:
            raise ValueError(f"window_slots must be in 1..{SLOTS_PER_DAY}")

        best_sum = -1
        best_start = 0
        for start in range(SLOTS_PER_DAY):
            window_sum = sum(
                counts[(start + j) % SLOTS_PER_DAY] for j in range(window_slots)
            )
            if window_sum > best_sum:
                best_sum = window_sum
                best_start = start

        return PeakWindow(start_slot=best_start, sum=best_sum, window_slots=window_slots)

    @staticmethod
    def interval_breakdown(
        records: Sequence[TimestampedRecord],
        tz: ZoneLike,
        interval_hours: int = 2,
    ) -> List[IntervalBucket]:
        """
        Hour-interval breakdown with share of all records

        Percentages are of len(records), rounded half up; records without
        a timestamp count toward the total but not toward any bucket.
        """
        if not 1 <= interval_hours <= 24:
            raise ValueError("interval_hours must be in 1..24")

        buckets_count = math.ceil(24 / interval_hours)
        counts = [0] * buckets_count
        for record in records:
            instant = parse_instant(record.occurred_at)
            if instant is None:
                continue
            idx = to_zone(instant, tz).hour // interval_hours
            if 0 <= idx < buckets_count:
                counts[idx] += 1

        total = len(records)
        result = []
        for i, count in enumerate(counts):
            start = i * interval_hours
            end = min(start + interval_hours, 24)
            if total:
                pct = int(
                    (Decimal(count) * 100 / Decimal(total)).quantize(
                        Decimal("1"), rounding=ROUND_HALF_UP
                    )
                )
            else:
                pct = 0
            result.append(
                IntervalBucket(label=f"{start:02d}:00 - {end:02d}:00", count=count, pct=pct)
            )
        return result

    def tag_records(
        self,
        records: Sequence[TimestampedRecord],
        tz: ZoneLike,
        green_ratio: float = DEFAULT_GREEN_RATIO,
    ) -> List[TaggedRecord]:
        """Pair each record with its slot tier, newest first"""
        counts = self.bucketize(records, tz)
        max_count = self.max_count(counts)

        tagged = []
        for record in records:
            idx = self.slot_index(record.occurred_at, tz)
            count = counts[idx] if idx >= 0 else 0
            tagged.append(
                TaggedRecord(
                    record=record,
                    tier=self.tier(count, max_count, green_ratio),
                    slot=idx,
                )
            )

        # Missing timestamps sort last
        def sort_key(item: TaggedRecord):
            instant = parse_instant(item.record.occurred_at)
            return (instant is not None, instant.timestamp() if instant else 0.0)

        tagged.sort(key=sort_key, reverse=True)
        return tagged

    def group_density(
        self,
        records: Iterable[TimestampedRecord],
        tz: ZoneLike,
        key: str = "entity_id",
        window_slots: int = DEFAULT_WINDOW_SLOTS,
    ) -> List[GroupDensity]:
        """
        Per-group density summary, busiest group first

        Records with no value for `key` are grouped under "Unknown".
        """
        groups: Dict[str, List[TimestampedRecord]] = {}
        for record in records:
            group_key = record.get(key) or "Unknown"
            groups.setdefault(str(group_key), []).append(record)

        summaries = []
        for group_key, members in groups.items():
            counts = self.bucketize(members, tz)
            subjects = {r.subject_id for r in members if r.subject_id}
            summaries.append(
                GroupDensity(
                    key=group_key,
                    total_count=len(members),
                    subject_count=len(subjects),
                    counts=tuple(counts),
                    peak=self.peak_window(counts, window_slots),
                )
            )

        summaries.sort(key=lambda g: g.total_count, reverse=True)
        return summaries

    @staticmethod
    def _check_counts(counts: Sequence[int]) -> None:
        if len(counts) != SLOTS_PER_DAY:
            raise ValueError(f"Histogram must have {SLOTS_PER_DAY} slots, got {len(counts)}")
