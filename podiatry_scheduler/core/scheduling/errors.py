"""
Scheduling Errors

Input errors are user-facing and never retried. Concurrency errors mean the
caller must re-resolve from scratch. StoreError wraps infrastructure failures
and is fatal to the current request only.
"""

from typing import Optional, Sequence


class SchedulingError(Exception):
    """Base class for scheduling errors."""

    code = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# === Input errors ===

class IncompleteRequest(SchedulingError):
    """Raised when a command lacks required fields."""

    code = "incomplete"

    def __init__(self, missing_fields: Sequence[str], message: Optional[str] = None):
        self.missing_fields = list(missing_fields)
        super().__init__(
            message or f"Missing required fields: {', '.join(self.missing_fields)}"
        )


class ServiceNotFound(SchedulingError):
    """Raised when no service name matches the requested service text."""

    code = "service_not_found"

    def __init__(self, requested: str, available: Sequence[str] = ()):
        self.requested = requested
        self.available = list(available)
        super().__init__(f'No service matches "{requested}"')


class NotFound(SchedulingError):
    """Raised when an appointment lookup matches nothing."""

    code = "not_found"


class InvalidTransition(SchedulingError):
    """Raised when a status change is not allowed from the current status."""

    code = "invalid_transition"


class AmbiguousMatch(SchedulingError):
    """Raised when an appointment lookup matches more than one appointment."""

    code = "ambiguous"

    def __init__(self, message: str, matches: Sequence = ()):
        super().__init__(message)
        self.matches = list(matches)


# === Concurrency errors ===

class ConflictDetected(SchedulingError):
    """Raised when a booking landed on the professional/interval before commit."""

    code = "conflict"


class ScheduleConflict(SchedulingError):
    """Raised when a reschedule target interval is unavailable."""

    code = "schedule_conflict"


# === Infrastructure ===

class StoreError(SchedulingError):
    """Raised when the data store is unreachable or a write fails."""

    code = "store_error"
