"""Appointment status state machine."""

from typing import Set

from podiatry_scheduler.core.scheduling.types import AppointmentStatus


# Valid status transitions
VALID_TRANSITIONS: dict[AppointmentStatus, Set[AppointmentStatus]] = {
    AppointmentStatus.BOOKED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED_STAFF,
        AppointmentStatus.CANCELLED_PATIENT,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED_STAFF,
        AppointmentStatus.CANCELLED_PATIENT,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),  # Terminal
    AppointmentStatus.CANCELLED_STAFF: set(),  # Terminal
    AppointmentStatus.CANCELLED_PATIENT: set(),  # Terminal
    AppointmentStatus.NO_SHOW: set(),  # Terminal
}


def can_transition(from_status: AppointmentStatus, to_status: AppointmentStatus) -> bool:
    """Check if a status transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


def is_terminal_status(status: AppointmentStatus) -> bool:
    """Check if status is terminal (no further transitions)."""
    return not VALID_TRANSITIONS.get(status)


def is_movable(status: AppointmentStatus) -> bool:
    """Only appointments that have not happened or ended can be rescheduled."""
    return status in {AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED}
