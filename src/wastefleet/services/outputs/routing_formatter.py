"""Serializers for planning cycle outputs."""

from __future__ import annotations

import csv
import io

from ...models.domain import Route
from ..routing.models import PlanningResult


def _window_to_json(route: Route) -> dict | None:
    if route.time_window is None:
        return None
    return {
        "start": route.time_window.start.strftime("%H:%M"),
        "end": route.time_window.end.strftime("%H:%M"),
    }


def planning_result_to_json(result: PlanningResult) -> dict:
    return {
        "metadata": result.metadata,
        "routes": [
            {
                "route_id": route.route_id,
                "date": route.route_date.isoformat(),
                "status": route.status.value,
                "bin_ids": list(route.bin_ids),
                "estimated_duration": route.estimated_duration,
                "estimated_distance_km": route.estimated_distance_km,
                "time_window": _window_to_json(route),
            }
            for route in result.routes
        ],
        "deferred": [
            {"bin_id": item.bin_id, "reason": item.reason, "priority": item.priority.value}
            for item in result.deferred
        ],
    }


def planning_result_to_csv(result: PlanningResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "route_id",
        "date",
        "sequence",
        "bin_id",
        "estimated_duration",
        "estimated_distance_km",
        "bin_count",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    for route in result.routes:
        for sequence, bin_id in enumerate(route.bin_ids, start=1):
            writer.writerow(
                {
                    "route_id": route.route_id,
                    "date": route.route_date.isoformat(),
                    "sequence": sequence,
                    "bin_id": bin_id,
                    "estimated_duration": route.estimated_duration,
                    "estimated_distance_km": route.estimated_distance_km,
                    "bin_count": len(route.bin_ids),
                }
            )
    return buffer.getvalue()
