"""Domain models for bins, schedules, drivers and routes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional


class BinStatus(str, Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    FULL = "full"


class BinType(str, Enum):
    GENERAL = "general"
    RECYCLABLE = "recyclable"
    ORGANIC = "organic"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"

    @property
    def interval(self) -> timedelta:
        return FREQUENCY_INTERVALS[self]


FREQUENCY_INTERVALS: dict[Frequency, timedelta] = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BI_WEEKLY: timedelta(days=14),
    Frequency.MONTHLY: timedelta(days=30),
}


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK: dict[Priority, int] = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


class DriverStatus(str, Enum):
    AVAILABLE = "available"
    ON_ROUTE = "on-route"
    OFF_DUTY = "off-duty"


class RouteStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str = ""


@dataclass(slots=True, frozen=True)
class TimeWindow:
    """Clock window within a single day, start inclusive, end exclusive."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Time window start {self.start} must be earlier than end {self.end}.")

    def intersect(self, other: "TimeWindow") -> Optional["TimeWindow"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return None
        return TimeWindow(start=start, end=end)


@dataclass(slots=True)
class Bin:
    """A waste receptacle. Status is derived from the fill ratio, never stored."""

    bin_id: str
    location: Location
    capacity: float
    current_level: float
    bin_type: BinType = BinType.GENERAL
    last_collected: Optional[datetime] = None

    @property
    def fill_ratio(self) -> float:
        return self.current_level / self.capacity


@dataclass(slots=True)
class CollectionSchedule:
    schedule_id: str
    bin_id: str
    frequency: Frequency
    preferred_window: TimeWindow
    priority: Priority = Priority.MEDIUM


@dataclass(slots=True)
class Driver:
    driver_id: str
    name: str
    contact: str = ""
    active_status: DriverStatus = DriverStatus.AVAILABLE
    current_route: Optional[str] = None


@dataclass(slots=True)
class Route:
    """An ordered visit sequence. Holds bin ids only, the registry owns bin state."""

    route_id: str
    route_date: date
    bin_ids: list[str]
    estimated_duration: float
    estimated_distance_km: float = 0.0
    time_window: Optional[TimeWindow] = None
    status: RouteStatus = RouteStatus.PENDING
    driver_id: Optional[str] = None
    actual_duration: Optional[float] = None
    dispatched_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is not RouteStatus.COMPLETED
