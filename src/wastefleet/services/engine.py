"""Composition root owning every registry plus the locks that guard them."""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path

from ..config import settings
from ..errors import ConflictError, NoAvailableDriversError
from ..models.domain import Bin, CollectionSchedule, Driver, Frequency, Priority, Route, RouteStatus, TimeWindow
from ..persistence.filesystem import FileStorage
from ..persistence.state import load_state
from .bins.registry import BinRegistry, FillThresholds
from .clock import as_utc, utc_now
from .drivers.pool import DriverPool
from .outputs.routing_formatter import planning_result_to_csv, planning_result_to_json
from .routing.builder import BuilderConstraints, build_routes, reestimate_route
from .routing.lifecycle import RouteLifecycleManager
from .routing.models import DEFER_NO_DRIVERS, DEFER_REMOVED, DeferredBin, PlanningResult
from .routing.sequencing import get_sequencer
from .schedules.resolver import DueBin, ScheduleResolver

logger = logging.getLogger(__name__)

_ROUTE_INDEX = re.compile(r"-(\d+)$")


class CollectionEngine:
    """Single owner of bin, driver, schedule and route state.

    Every mutation holds ``lock``. Planning cycles additionally hold
    ``planning_lock`` so two cycles never interleave; the build step itself
    runs outside ``lock`` on a snapshot of the due bins, so reads are not
    blocked while routes are being sequenced.
    """

    def __init__(self, thresholds: FillThresholds | None = None) -> None:
        self.lock = threading.RLock()
        self.planning_lock = threading.Lock()
        self.bins = BinRegistry(thresholds)
        self.drivers = DriverPool()
        self.schedules = ScheduleResolver(self.bins)
        self.routes = RouteLifecycleManager(self.bins, self.drivers)

    # Bins

    def register_bin(self, bin_: Bin) -> Bin:
        with self.lock:
            return self.bins.register(bin_)

    def record_level(self, bin_id: str, level: float) -> Bin:
        with self.lock:
            return self.bins.record_level(bin_id, level)

    def remove_bin(self, bin_id: str) -> Bin:
        """Remove a bin and its schedule. Bins on a pending or in-progress route are kept."""
        with self.lock:
            if bin_id in self.routes.active_bin_ids():
                raise ConflictError(f"Bin '{bin_id}' is on a route that is not completed.")
            removed = self.bins.remove(bin_id)
            schedule = self.schedules.for_bin(bin_id)
            if schedule is not None:
                self.schedules.delete(schedule.schedule_id)
            return removed

    # Drivers

    def register_driver(self, driver: Driver) -> Driver:
        with self.lock:
            return self.drivers.register(driver)

    def set_driver_off_duty(self, driver_id: str, off_duty: bool) -> Driver:
        with self.lock:
            return self.drivers.set_off_duty(driver_id, off_duty)

    # Schedules

    def create_schedule(self, schedule: CollectionSchedule) -> CollectionSchedule:
        with self.lock:
            return self.schedules.create(schedule)

    def update_schedule(
        self,
        schedule_id: str,
        *,
        frequency: Frequency | None = None,
        preferred_window: TimeWindow | None = None,
        priority: Priority | None = None,
    ) -> CollectionSchedule:
        with self.lock:
            return self.schedules.update(
                schedule_id,
                frequency=frequency,
                preferred_window=preferred_window,
                priority=priority,
            )

    def delete_schedule(self, schedule_id: str) -> None:
        with self.lock:
            self.schedules.delete(schedule_id)

    # Routes

    def plan(
        self,
        as_of: datetime | None = None,
        *,
        constraints: BuilderConstraints | None = None,
        sequencing: str | None = None,
        persist: bool | None = None,
    ) -> PlanningResult:
        """Run one planning cycle and store the resulting pending routes.

        Bins already on a pending or in-progress route are never planned
        again. Each pending route from an earlier cycle holds one of the
        available drivers, so only the remainder can take new routes.
        """
        as_of = as_utc(as_of or utc_now())
        route_date = as_of.date()
        prefix = f"R{route_date:%Y%m%d}"
        sequencer = get_sequencer(sequencing)

        with self.planning_lock:
            with self.lock:
                claimed = self.routes.active_bin_ids()
                due = [item for item in self.schedules.ranked_due(as_of) if item.bin_id not in claimed]
                pending = [route for route in self.routes.list() if route.status is RouteStatus.PENDING]
                drivers = self.drivers.available_drivers()[len(pending):]
                first_index = self._next_route_index(prefix)

            try:
                result = build_routes(
                    due=due,
                    drivers=drivers,
                    route_date=route_date,
                    constraints=constraints,
                    sequencer=sequencer,
                    id_prefix=prefix,
                    first_index=first_index,
                )
            except NoAvailableDriversError as exc:
                logger.warning("Planning cycle at %s: %s", as_of.isoformat(), exc)
                result = PlanningResult(
                    routes=[],
                    deferred=[DeferredBin(item.bin_id, DEFER_NO_DRIVERS, item.priority) for item in due],
                    metadata={
                        "status": DEFER_NO_DRIVERS,
                        "due_bins": len(due),
                        "drivers_available": 0,
                        "sequencing": sequencer.name,
                    },
                )

            with self.lock:
                committed = self.routes.snapshot()
                try:
                    self._drop_vanished_bins(result, due, constraints)
                    for route in result.routes:
                        route.created_at = as_of
                        self.routes.add(route)
                except Exception:
                    self.routes.restore(committed)
                    raise

        result.metadata["as_of"] = as_of.isoformat()
        result.metadata["pending_routes_held"] = len(pending)
        if settings.persist_plans if persist is None else persist:
            self._persist_plan(result, prefix)
        return result

    def dispatch(self, route_id: str, driver_id: str) -> Route:
        with self.lock:
            return self.routes.dispatch(route_id, driver_id)

    def complete(self, route_id: str, actual_duration: float, completed_at: datetime | None = None) -> Route:
        with self.lock:
            return self.routes.complete(route_id, actual_duration, completed_at)

    def cancel(self, route_id: str) -> None:
        with self.lock:
            self.routes.cancel(route_id)

    def _drop_vanished_bins(
        self,
        result: PlanningResult,
        due: list[DueBin],
        constraints: BuilderConstraints | None,
    ) -> None:
        """Defer bins removed while the cycle was building instead of failing the commit.

        Runs under ``lock``. Routes keep their visit order and are re-estimated;
        a route left with no bins is dropped.
        """
        priorities = {item.bin_id: item.priority for item in due}
        kept: list[Route] = []
        vanished: list[str] = []
        for route in result.routes:
            remaining = [bin_id for bin_id in route.bin_ids if bin_id in self.bins]
            if len(remaining) == len(route.bin_ids):
                kept.append(route)
                continue
            vanished.extend(bin_id for bin_id in route.bin_ids if bin_id not in self.bins)
            if remaining:
                points = [
                    (location.latitude, location.longitude)
                    for location in (self.bins.get(bin_id).location for bin_id in remaining)
                ]
                kept.append(reestimate_route(route, remaining, points, constraints))
        if not vanished:
            return
        logger.warning("Bins %s were removed during planning and are deferred", ", ".join(vanished))
        result.routes = kept
        result.deferred.extend(DeferredBin(bin_id, DEFER_REMOVED, priorities[bin_id]) for bin_id in vanished)
        result.metadata["status"] = "partial"

    def _next_route_index(self, prefix: str) -> int:
        indices = [
            int(match.group(1))
            for route_id in self.routes.route_ids()
            if route_id.startswith(prefix) and (match := _ROUTE_INDEX.search(route_id))
        ]
        return max(indices, default=0) + 1

    def _persist_plan(self, result: PlanningResult, prefix: str) -> Path:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=f"plan_{prefix}")
        storage.write_json(run_dir / "summary.json", planning_result_to_json(result))
        storage.write_csv(run_dir / "routes.csv", planning_result_to_csv(result))
        result.metadata["output_dir"] = str(run_dir)
        logger.info("Planning outputs written to %s", run_dir)
        return run_dir


def build_engine(seed_file: Path | None = None) -> CollectionEngine:
    """Create an engine and load the seed file when one exists."""
    engine = CollectionEngine()
    path = seed_file or settings.seed_file
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            load_state(engine, json.load(handle))
        logger.info(
            "Loaded seed %s: %d bins, %d drivers, %d schedules",
            path,
            len(engine.bins),
            len(engine.drivers.list()),
            len(engine.schedules.list()),
        )
    else:
        logger.info("No seed file at %s, starting with an empty engine", path)
    return engine
