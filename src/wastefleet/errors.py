"""Domain error taxonomy shared by the engine components."""

from __future__ import annotations

from typing import Sequence


class EngineError(Exception):
    """Base class for every error raised by the collection engine."""


class ValidationError(EngineError, ValueError):
    """Input rejected before any state mutation."""


class OutOfRangeError(ValidationError):
    pass


class NotFoundError(EngineError, LookupError):
    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found.")
        self.kind = kind
        self.identifier = identifier


class ConflictError(EngineError):
    """Operation clashes with current state; the caller may retry with another target."""


class DuplicateIdError(ConflictError):
    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' already exists.")
        self.kind = kind
        self.identifier = identifier


class DriverUnavailableError(ConflictError):
    pass


class NotAssignedError(ConflictError):
    pass


class InvalidTransitionError(ConflictError):
    pass


class NoAvailableDriversError(EngineError):
    """Due bins exist but nobody can drive them. Reported as a partial result."""

    def __init__(self, deferred_bin_ids: Sequence[str]) -> None:
        super().__init__(f"No available drivers for {len(deferred_bin_ids)} due bin(s).")
        self.deferred_bin_ids = list(deferred_bin_ids)
