"""In-memory bin registry with derived fill status."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from ...config import settings
from ...errors import DuplicateIdError, NotFoundError, OutOfRangeError, ValidationError
from ...models.domain import Bin, BinStatus
from ..clock import as_utc

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FillThresholds:
    """Single threshold table for status bands and the fill-triggered collection override."""

    full: float = settings.full_threshold
    partial: float = settings.partial_threshold

    def __post_init__(self) -> None:
        if not 0.0 <= self.partial < self.full <= 1.0:
            raise ValueError("Thresholds must satisfy 0 <= partial < full <= 1.")


def derive_status(bin_: Bin, thresholds: FillThresholds | None = None) -> BinStatus:
    thresholds = thresholds or FillThresholds()
    ratio = bin_.fill_ratio
    if ratio >= thresholds.full:
        return BinStatus.FULL
    if ratio >= thresholds.partial:
        return BinStatus.PARTIAL
    return BinStatus.EMPTY


def _check_level(bin_id: str, level: float, capacity: float) -> None:
    if level < 0 or level > capacity:
        raise OutOfRangeError(f"Level {level} for bin '{bin_id}' is outside [0, {capacity}].")


class BinRegistry:
    """Owns bin state. Reads hand out copies so callers cannot drift the registry."""

    def __init__(self, thresholds: FillThresholds | None = None) -> None:
        self.thresholds = thresholds or FillThresholds()
        self._bins: dict[str, Bin] = {}

    def __contains__(self, bin_id: object) -> bool:
        return bin_id in self._bins

    def __len__(self) -> int:
        return len(self._bins)

    def register(self, bin_: Bin) -> Bin:
        if bin_.bin_id in self._bins:
            raise DuplicateIdError("Bin", bin_.bin_id)
        if bin_.capacity <= 0:
            raise ValidationError(f"Bin '{bin_.bin_id}' capacity must be positive.")
        _check_level(bin_.bin_id, bin_.current_level, bin_.capacity)
        stored = replace(bin_)
        if stored.last_collected is not None:
            stored.last_collected = as_utc(stored.last_collected)
        self._bins[bin_.bin_id] = stored
        logger.debug("Registered bin %s", bin_.bin_id)
        return replace(stored)

    def register_many(self, bins: Iterable[Bin]) -> None:
        for bin_ in bins:
            self.register(bin_)

    def get(self, bin_id: str) -> Bin:
        return replace(self._require(bin_id))

    def list(self) -> list[Bin]:
        return [replace(self._bins[bin_id]) for bin_id in sorted(self._bins)]

    def remove(self, bin_id: str) -> Bin:
        """Drop a bin. Callers check route membership first."""
        removed = self._bins.pop(bin_id, None)
        if removed is None:
            raise NotFoundError("Bin", bin_id)
        logger.info("Removed bin %s", bin_id)
        return removed

    def record_level(self, bin_id: str, new_level: float) -> Bin:
        bin_ = self._require(bin_id)
        _check_level(bin_id, new_level, bin_.capacity)
        bin_.current_level = new_level
        return replace(bin_)

    def mark_collected(self, bin_id: str, timestamp: datetime) -> Bin:
        bin_ = self._require(bin_id)
        bin_.current_level = 0
        bin_.last_collected = as_utc(timestamp)
        return replace(bin_)

    def status_of(self, bin_id: str) -> BinStatus:
        return derive_status(self._require(bin_id), self.thresholds)

    def derive_status(self, bin_: Bin) -> BinStatus:
        return derive_status(bin_, self.thresholds)

    def snapshot(self) -> dict[str, Bin]:
        return {bin_id: replace(bin_) for bin_id, bin_ in self._bins.items()}

    def restore(self, snapshot: dict[str, Bin]) -> None:
        self._bins = {bin_id: replace(bin_) for bin_id, bin_ in snapshot.items()}

    def _require(self, bin_id: str) -> Bin:
        try:
            return self._bins[bin_id]
        except KeyError:
            raise NotFoundError("Bin", bin_id) from None
