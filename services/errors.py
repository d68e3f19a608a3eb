# services/errors.py
"""
Outcomes of the scheduling / sequencing core that callers must handle.

Everything except InvariantViolation is a user-recoverable condition and is
answered with a 422; InvariantViolation means the core itself is broken.
"""
from __future__ import annotations


class TransitError(Exception):
    message = "Transit error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ScheduleConflict(TransitError):
    def __init__(self, resource: str, conflicts: list):
        self.resource = resource
        self.conflicts = list(conflicts)
        super().__init__(
            f"{resource.capitalize()} is already scheduled during this time on these days"
        )


class DuplicateStation(TransitError):
    message = "Station is already in this route"


class StationNotAttached(TransitError):
    message = "Station is not in this route"


class InvariantViolation(TransitError):
    message = "Route station order is not contiguous"
