"""
Scheduling Module

Availability resolution and booking for the podiatry clinic: calendar model,
overlap detection, resolver, booking commander, command router and reply
rendering.

Usage:
    from podiatry_scheduler.core.scheduling import (
        BookingCommander,
        CommandIntentRouter,
        get_response_renderer,
    )

    router = CommandIntentRouter(store, BookingCommander(store))
    result = await router.dispatch(parsed, current_date=today)
    print(get_response_renderer().render(result))
"""

# Domain types
from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    AppointmentStatus,
    Assignment,
    BookingRequest,
    DayOfWeek,
    ExistingBooking,
    NoAvailability,
    OverrideType,
    ProfessionalSpec,
    ScheduleOverride,
    ServiceSpec,
    WeeklyShift,
    WorkDaySpec,
)

# Errors
from podiatry_scheduler.core.scheduling.errors import (
    AmbiguousMatch,
    ConflictDetected,
    IncompleteRequest,
    InvalidTransition,
    NotFound,
    ScheduleConflict,
    SchedulingError,
    ServiceNotFound,
    StoreError,
)

# Availability
from podiatry_scheduler.core.scheduling.calendar import resolve_work_day
from podiatry_scheduler.core.scheduling.overlap import contains, find_conflicts, overlaps
from podiatry_scheduler.core.scheduling.resolver import (
    check_professional,
    eligible_professionals,
    match_service,
    resolve,
)

# Store boundary
from podiatry_scheduler.core.scheduling.store import (
    AppointmentPatch,
    AppointmentStore,
    PatientRef,
)

# Commands
from podiatry_scheduler.core.scheduling.commander import BookingCommander, CancelledBy
from podiatry_scheduler.core.scheduling.router import (
    CommandIntentRouter,
    Outcome,
    RouterResult,
)
from podiatry_scheduler.core.scheduling.response import (
    ResponseRenderer,
    get_response_renderer,
)

__all__ = [
    # Types
    "AppointmentRecord",
    "AppointmentStatus",
    "Assignment",
    "BookingRequest",
    "DayOfWeek",
    "ExistingBooking",
    "NoAvailability",
    "OverrideType",
    "ProfessionalSpec",
    "ScheduleOverride",
    "ServiceSpec",
    "WeeklyShift",
    "WorkDaySpec",
    # Errors
    "AmbiguousMatch",
    "ConflictDetected",
    "IncompleteRequest",
    "InvalidTransition",
    "NotFound",
    "ScheduleConflict",
    "SchedulingError",
    "ServiceNotFound",
    "StoreError",
    # Availability
    "resolve_work_day",
    "contains",
    "find_conflicts",
    "overlaps",
    "check_professional",
    "eligible_professionals",
    "match_service",
    "resolve",
    # Store
    "AppointmentPatch",
    "AppointmentStore",
    "PatientRef",
    # Commands
    "BookingCommander",
    "CancelledBy",
    "CommandIntentRouter",
    "Outcome",
    "RouterResult",
    "ResponseRenderer",
    "get_response_renderer",
]
