from datetime import datetime, time, timedelta, timezone

import pytest

from wastefleet.errors import ConflictError, DuplicateIdError, NotFoundError
from wastefleet.models.domain import Bin, CollectionSchedule, Frequency, Location, Priority, TimeWindow
from wastefleet.services.bins.registry import BinRegistry, FillThresholds
from wastefleet.services.schedules.resolver import ScheduleResolver

AS_OF = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
MORNING = TimeWindow(start=time(9, 0), end=time(12, 0))


def _bin(bid: str, level: float = 10.0, days_ago: float | None = 1.0) -> Bin:
    return Bin(
        bin_id=bid,
        location=Location(latitude=51.5, longitude=-0.12),
        capacity=100.0,
        current_level=level,
        last_collected=None if days_ago is None else AS_OF - timedelta(days=days_ago),
    )


def _schedule(sid: str, bid: str, frequency: Frequency = Frequency.WEEKLY, priority: Priority = Priority.MEDIUM) -> CollectionSchedule:
    return CollectionSchedule(
        schedule_id=sid,
        bin_id=bid,
        frequency=frequency,
        preferred_window=MORNING,
        priority=priority,
    )


def _resolver(*bins: Bin) -> ScheduleResolver:
    registry = BinRegistry(FillThresholds(full=0.8, partial=0.3))
    registry.register_many(bins)
    return ScheduleResolver(registry)


def test_weekly_schedule_due_after_eight_days():
    resolver = _resolver(_bin("B1", days_ago=8))
    resolver.create(_schedule("S1", "B1", Frequency.WEEKLY))

    assert resolver.due_bins(AS_OF) == {"B1"}


def test_weekly_schedule_not_due_after_six_days():
    resolver = _resolver(_bin("B1", days_ago=6))
    resolver.create(_schedule("S1", "B1", Frequency.WEEKLY))

    assert resolver.due_bins(AS_OF) == set()


def test_bin_is_due_exactly_at_next_due():
    resolver = _resolver(_bin("B1", days_ago=1))
    resolver.create(_schedule("S1", "B1", Frequency.DAILY))

    [due] = resolver.ranked_due(AS_OF)
    assert due.next_due == AS_OF
    assert due.reason == "calendar"


def test_fill_level_overrides_calendar():
    resolver = _resolver(_bin("B1", level=85, days_ago=1))
    resolver.create(_schedule("S1", "B1", Frequency.MONTHLY))

    [due] = resolver.ranked_due(AS_OF)
    assert due.bin_id == "B1"
    assert due.reason == "fill"


def test_never_collected_scheduled_bin_is_due():
    resolver = _resolver(_bin("B1", days_ago=None))
    resolver.create(_schedule("S1", "B1"))

    assert resolver.due_bins(AS_OF) == {"B1"}


def test_unscheduled_bin_is_due_only_when_full():
    resolver = _resolver(_bin("FULL", level=80), _bin("HALF", level=50))

    [due] = resolver.ranked_due(AS_OF)
    assert due.bin_id == "FULL"
    assert due.priority is Priority.LOW
    assert due.window is None


def test_ranked_due_orders_by_priority_then_fill_then_id():
    resolver = _resolver(
        _bin("A", level=50, days_ago=10),
        _bin("B", level=90, days_ago=10),
        _bin("C", level=90, days_ago=10),
        _bin("D", level=90, days_ago=10),
    )
    resolver.create(_schedule("S1", "A", priority=Priority.HIGH))
    resolver.create(_schedule("S2", "B", priority=Priority.MEDIUM))
    resolver.create(_schedule("S3", "D", priority=Priority.HIGH))
    resolver.create(_schedule("S4", "C", priority=Priority.HIGH))

    assert [item.bin_id for item in resolver.ranked_due(AS_OF)] == ["C", "D", "A", "B"]


def test_create_validates_bin_reference():
    resolver = _resolver(_bin("B1"))
    resolver.create(_schedule("S1", "B1"))

    with pytest.raises(NotFoundError):
        resolver.create(_schedule("S2", "missing"))
    with pytest.raises(DuplicateIdError):
        resolver.create(_schedule("S1", "B1"))
    with pytest.raises(ConflictError):
        resolver.create(_schedule("S3", "B1"))


def test_create_generates_identifier_when_blank():
    resolver = _resolver(_bin("B1"))

    created = resolver.create(_schedule("", "B1"))

    assert created.schedule_id
    assert resolver.get(created.schedule_id).bin_id == "B1"


def test_update_changes_only_given_fields():
    resolver = _resolver(_bin("B1"))
    resolver.create(_schedule("S1", "B1", Frequency.WEEKLY, Priority.LOW))

    updated = resolver.update("S1", priority=Priority.HIGH)

    assert updated.priority is Priority.HIGH
    assert updated.frequency is Frequency.WEEKLY
    assert updated.preferred_window == MORNING


def test_delete_removes_schedule_only():
    resolver = _resolver(_bin("B1", days_ago=30))
    resolver.create(_schedule("S1", "B1"))

    resolver.delete("S1")

    with pytest.raises(NotFoundError):
        resolver.get("S1")
    assert resolver.due_bins(AS_OF) == set()


def test_search_by_bin_id_and_frequency():
    resolver = _resolver(_bin("BIN-1"), _bin("BIN-12"), _bin("X-3"))
    resolver.create(_schedule("S1", "BIN-1", Frequency.WEEKLY))
    resolver.create(_schedule("S2", "BIN-12", Frequency.DAILY))
    resolver.create(_schedule("S3", "X-3", Frequency.WEEKLY))

    assert [s.schedule_id for s in resolver.search("bin-1")] == ["S1", "S2"]
    assert [s.schedule_id for s in resolver.search(frequency=Frequency.WEEKLY)] == ["S1", "S3"]
    assert [s.schedule_id for s in resolver.search("bin", Frequency.DAILY)] == ["S2"]
