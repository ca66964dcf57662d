"""Visit ordering strategies for the bins inside a single route.

Nearest-neighbour is the default: a greedy walk from the depot that always
moves to the closest unvisited bin. It is O(n^2) per route and gives no
optimality guarantee. ``OrToolsSequencer`` solves the same single-vehicle tour
as a TSP with OR-Tools when a better ordering is worth the solver time.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from ortools.constraint_solver import pywrapcp, routing_enums_pb2

from ...config import settings
from ..geospatial import haversine_km
from ..schedules.resolver import DueBin

logger = logging.getLogger(__name__)

Coordinate = tuple[float, float]


class SequencingStrategy(ABC):
    """Contract for ordering a route's stops starting from the depot."""

    name: str = "abstract"

    @abstractmethod
    def sequence(self, *, depot: Coordinate, stops: Sequence[DueBin]) -> list[DueBin]:
        raise NotImplementedError


class NearestNeighborSequencer(SequencingStrategy):
    name = "nearest_neighbor"

    def sequence(self, *, depot: Coordinate, stops: Sequence[DueBin]) -> list[DueBin]:
        remaining = list(stops)
        ordered: list[DueBin] = []
        current = depot
        while remaining:
            nearest = min(
                remaining,
                key=lambda stop: (
                    haversine_km(current[0], current[1], stop.location.latitude, stop.location.longitude),
                    stop.bin_id,
                ),
            )
            remaining.remove(nearest)
            ordered.append(nearest)
            current = (nearest.location.latitude, nearest.location.longitude)
        return ordered


def _distance_matrix_m(depot: Coordinate, stops: Sequence[DueBin]) -> list[list[int]]:
    points = [depot] + [(stop.location.latitude, stop.location.longitude) for stop in stops]
    return [
        [int(round(haversine_km(a[0], a[1], b[0], b[1]) * 1000.0)) for b in points]
        for a in points
    ]


class OrToolsSequencer(SequencingStrategy):
    """Single-vehicle TSP over straight-line distances, depot at node 0."""

    name = "ortools"

    def __init__(self, time_limit_seconds: int | None = None) -> None:
        self.time_limit_seconds = (
            settings.solver_time_limit_seconds if time_limit_seconds is None else time_limit_seconds
        )

    def sequence(self, *, depot: Coordinate, stops: Sequence[DueBin]) -> list[DueBin]:
        if len(stops) < 2:
            return list(stops)

        distance_matrix = _distance_matrix_m(depot, stops)
        manager = pywrapcp.RoutingIndexManager(len(distance_matrix), 1, 0)
        routing = pywrapcp.RoutingModel(manager)

        def distance_callback(from_index: int, to_index: int) -> int:
            from_node = manager.IndexToNode(from_index)
            to_node = manager.IndexToNode(to_index)
            return distance_matrix[from_node][to_node]

        transit_callback_index = routing.RegisterTransitCallback(distance_callback)
        routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

        search_parameters = pywrapcp.DefaultRoutingSearchParameters()
        search_parameters.first_solution_strategy = (
            routing_enums_pb2.FirstSolutionStrategy.PATH_CHEAPEST_ARC
        )
        if self.time_limit_seconds > 0:
            search_parameters.local_search_metaheuristic = (
                routing_enums_pb2.LocalSearchMetaheuristic.GUIDED_LOCAL_SEARCH
            )
            search_parameters.time_limit.FromSeconds(self.time_limit_seconds)

        assignment = routing.SolveWithParameters(search_parameters)
        if not assignment:
            logger.warning("OR-Tools found no tour for %d stops, using nearest neighbour order", len(stops))
            return NearestNeighborSequencer().sequence(depot=depot, stops=stops)

        ordered: list[DueBin] = []
        index = routing.Start(0)
        while not routing.IsEnd(index):
            node = manager.IndexToNode(index)
            if node != 0:
                ordered.append(stops[node - 1])
            index = assignment.Value(routing.NextVar(index))
        return ordered


def get_sequencer(method: str | None = None) -> SequencingStrategy:
    match method or settings.sequencing_method:
        case "nearest_neighbor":
            return NearestNeighborSequencer()
        case "ortools":
            return OrToolsSequencer()
        case other:
            raise ValueError(f"Unknown sequencing method '{other}'.")
