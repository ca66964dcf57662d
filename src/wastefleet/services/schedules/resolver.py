"""Recurring collection schedules and due-bin resolution."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ...errors import ConflictError, DuplicateIdError, NotFoundError
from ...models.domain import CollectionSchedule, Frequency, Location, Priority, TimeWindow
from ..bins.registry import BinRegistry
from ..clock import as_utc

logger = logging.getLogger(__name__)

REASON_CALENDAR = "calendar"
REASON_FILL = "fill"
REASON_BOTH = "both"


@dataclass(slots=True, frozen=True)
class DueBin:
    """A bin that needs collection, with everything the route builder ranks on."""

    bin_id: str
    location: Location
    priority: Priority
    fill_ratio: float
    reason: str
    next_due: Optional[datetime]
    window: Optional[TimeWindow]


def urgency_key(due: DueBin) -> tuple[int, float, str]:
    """High priority first, then fuller bins, then bin id ascending."""

    return (-due.priority.rank, -due.fill_ratio, due.bin_id)


class ScheduleResolver:
    def __init__(self, bins: BinRegistry) -> None:
        self._bins = bins
        self._schedules: dict[str, CollectionSchedule] = {}

    def create(self, schedule: CollectionSchedule) -> CollectionSchedule:
        schedule_id = schedule.schedule_id or uuid.uuid4().hex[:12]
        if schedule_id in self._schedules:
            raise DuplicateIdError("Schedule", schedule_id)
        if schedule.bin_id not in self._bins:
            raise NotFoundError("Bin", schedule.bin_id)
        existing = self.for_bin(schedule.bin_id)
        if existing is not None:
            raise ConflictError(
                f"Bin '{schedule.bin_id}' already has schedule '{existing.schedule_id}'."
            )
        stored = replace(schedule, schedule_id=schedule_id)
        self._schedules[schedule_id] = stored
        logger.info("Created schedule %s for bin %s (%s)", schedule_id, stored.bin_id, stored.frequency.value)
        return replace(stored)

    def update(
        self,
        schedule_id: str,
        *,
        frequency: Frequency | None = None,
        preferred_window: TimeWindow | None = None,
        priority: Priority | None = None,
    ) -> CollectionSchedule:
        current = self._require(schedule_id)
        updated = replace(
            current,
            frequency=frequency or current.frequency,
            preferred_window=preferred_window or current.preferred_window,
            priority=priority or current.priority,
        )
        self._schedules[schedule_id] = updated
        return replace(updated)

    def delete(self, schedule_id: str) -> None:
        self._require(schedule_id)
        del self._schedules[schedule_id]
        logger.info("Deleted schedule %s", schedule_id)

    def get(self, schedule_id: str) -> CollectionSchedule:
        return replace(self._require(schedule_id))

    def list(self) -> list[CollectionSchedule]:
        return [replace(self._schedules[key]) for key in sorted(self._schedules)]

    def search(self, query: str | None = None, frequency: Frequency | None = None) -> list[CollectionSchedule]:
        """Filter by case-insensitive bin id substring and optional frequency."""

        needle = (query or "").strip().lower()
        return [
            schedule
            for schedule in self.list()
            if needle in schedule.bin_id.lower()
            and (frequency is None or schedule.frequency is frequency)
        ]

    def for_bin(self, bin_id: str) -> Optional[CollectionSchedule]:
        for schedule in self._schedules.values():
            if schedule.bin_id == bin_id:
                return replace(schedule)
        return None

    def ranked_due(self, as_of: datetime) -> list[DueBin]:
        as_of = as_utc(as_of)
        full = self._bins.thresholds.full
        by_bin = {schedule.bin_id: schedule for schedule in self._schedules.values()}
        due: list[DueBin] = []

        for bin_ in self._bins.list():
            schedule = by_bin.pop(bin_.bin_id, None)
            fill_triggered = bin_.fill_ratio >= full
            next_due: Optional[datetime] = None
            calendar_triggered = False
            if schedule is not None:
                if bin_.last_collected is not None:
                    next_due = bin_.last_collected + schedule.frequency.interval
                    calendar_triggered = as_of >= next_due
                else:
                    calendar_triggered = True

            if not (calendar_triggered or fill_triggered):
                continue
            if calendar_triggered and fill_triggered:
                reason = REASON_BOTH
            elif calendar_triggered:
                reason = REASON_CALENDAR
            else:
                reason = REASON_FILL

            due.append(
                DueBin(
                    bin_id=bin_.bin_id,
                    location=bin_.location,
                    priority=schedule.priority if schedule else Priority.LOW,
                    fill_ratio=bin_.fill_ratio,
                    reason=reason,
                    next_due=next_due,
                    window=schedule.preferred_window if schedule else None,
                )
            )

        for orphan in by_bin.values():
            logger.warning("Schedule %s references unknown bin %s", orphan.schedule_id, orphan.bin_id)

        due.sort(key=urgency_key)
        return due

    def due_bins(self, as_of: datetime) -> set[str]:
        return {item.bin_id for item in self.ranked_due(as_of)}

    def _require(self, schedule_id: str) -> CollectionSchedule:
        try:
            return self._schedules[schedule_id]
        except KeyError:
            raise NotFoundError("Schedule", schedule_id) from None
