"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ...models.domain import Priority, Route

DEFER_CAPACITY = "capacity"
DEFER_TIME_WINDOW = "time_window"
DEFER_NO_DRIVERS = "no_available_drivers"
DEFER_REMOVED = "removed"


@dataclass(slots=True)
class DeferredBin:
    bin_id: str
    reason: str
    priority: Priority


@dataclass(slots=True)
class PlanningResult:
    routes: List[Route]
    deferred: List[DeferredBin]
    metadata: dict = field(default_factory=dict)

    @property
    def deferred_bin_ids(self) -> list[str]:
        return [item.bin_id for item in self.deferred]
