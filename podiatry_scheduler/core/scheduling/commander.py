"""
Booking Commander.

Performs every persisted appointment state change: creation, reschedule and
status transitions. Creation and reschedule re-validate non-overlap against
a fresh snapshot right before the write, under the professional's lock.
The store's atomic primitive remains the final guarantee.
"""

import logging
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from podiatry_scheduler.core.scheduling.errors import (
    ConflictDetected,
    InvalidTransition,
    NotFound,
    ScheduleConflict,
)
from podiatry_scheduler.core.scheduling.locks import LocalProfessionalLocks
from podiatry_scheduler.core.scheduling.overlap import find_conflicts
from podiatry_scheduler.core.scheduling.resolver import check_professional
from podiatry_scheduler.core.scheduling.status import can_transition, is_movable
from podiatry_scheduler.core.scheduling.store import AppointmentPatch, AppointmentStore
from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    AppointmentStatus,
    Assignment,
)

logger = logging.getLogger(__name__)


class CancelledBy(str, Enum):
    """Who requested a cancellation."""

    STAFF = "staff"
    PATIENT = "patient"


CANCEL_STATUS = {
    CancelledBy.STAFF: AppointmentStatus.CANCELLED_STAFF,
    CancelledBy.PATIENT: AppointmentStatus.CANCELLED_PATIENT,
}


class BookingCommander:
    """
    Creates and mutates appointment records.

    Callers receiving ConflictDetected or ScheduleConflict must re-resolve
    from scratch; the commander never retries a stale assignment.
    """

    def __init__(
        self,
        store: AppointmentStore,
        locks: Optional[LocalProfessionalLocks] = None,
    ):
        """Initialize commander.

        Args:
            store: appointment store
            locks: per-professional locks (in-process only if not provided;
                pass infra.redis.ProfessionalLocks to serialize across workers)
        """
        self._store = store
        self._locks = locks or LocalProfessionalLocks()

    async def create(self, assignment: Assignment) -> AppointmentRecord:
        """Persist a resolved assignment.

        Raises:
            ConflictDetected: a booking landed on the interval since resolution
            StoreError: the store failed (nothing written)
        """
        professional_id = assignment.professional.id

        async with self._locks.hold(professional_id):
            snapshot = await self._store.list_bookings_for_date(assignment.start.date())
            conflicts = find_conflicts(
                snapshot, professional_id, assignment.start, assignment.end
            )
            if conflicts:
                logger.info(
                    f"Conflict before commit for {professional_id} at "
                    f"{assignment.start:%Y-%m-%d %H:%M}"
                )
                raise ConflictDetected(
                    f"{assignment.professional.name} was booked at "
                    f"{conflicts[0].start:%H:%M} in the meantime"
                )

            record = await self._store.insert_appointment_atomic(assignment)

        logger.info(
            f"Appointment {record.id} booked: {assignment.service.name} with "
            f"{professional_id} at {record.start:%Y-%m-%d %H:%M}"
        )
        return record

    async def reschedule(
        self,
        appointment_id: str,
        new_date: date,
        new_time: time,
    ) -> AppointmentRecord:
        """Move an appointment to a new start, keeping its professional.

        Raises:
            NotFound: unknown appointment or professional
            ScheduleConflict: the professional cannot take the new interval
        """
        record = await self._get(appointment_id)
        if not is_movable(record.status):
            raise ScheduleConflict(
                f"Appointment {appointment_id} is {record.status.value} and cannot be moved"
            )

        professional = await self._store.get_professional(record.professional_id)
        if professional is None:
            raise NotFound(f"Professional {record.professional_id} not found")

        new_start = datetime.combine(new_date, new_time)
        new_end = new_start + timedelta(minutes=record.duration_minutes)

        async with self._locks.hold(professional.id):
            snapshot = await self._store.list_bookings_for_date(new_date)
            reason = check_professional(
                professional,
                new_start,
                new_end,
                snapshot,
                exclude_booking_id=appointment_id,
            )
            if reason is not None:
                logger.info(f"Reschedule of {appointment_id} rejected: {reason}")
                raise ScheduleConflict(
                    f"{professional.name} is not available at "
                    f"{new_start:%Y-%m-%d %H:%M}: {reason}"
                )

            updated = await self._store.update_appointment(
                appointment_id, AppointmentPatch(start=new_start)
            )

        logger.info(
            f"Appointment {appointment_id} moved from {record.start:%Y-%m-%d %H:%M} "
            f"to {updated.start:%Y-%m-%d %H:%M}"
        )
        return updated

    async def cancel(
        self,
        appointment_id: str,
        reason: Optional[str] = None,
        cancelled_by: CancelledBy = CancelledBy.STAFF,
    ) -> AppointmentRecord:
        """Cancel an appointment. Cancelling twice is a no-op success.

        Raises:
            NotFound: unknown appointment
            InvalidTransition: the appointment already ended
        """
        record = await self._get(appointment_id)
        if record.status.is_cancelled:
            logger.debug(f"Appointment {appointment_id} already {record.status.value}")
            return record

        target = CANCEL_STATUS[cancelled_by]
        if not can_transition(record.status, target):
            raise InvalidTransition(
                f"Appointment {appointment_id} is {record.status.value} and cannot be cancelled"
            )

        updated = await self._store.update_appointment(
            appointment_id,
            AppointmentPatch(status=target, cancellation_reason=reason),
        )
        logger.info(f"Appointment {appointment_id} {target.value}: {reason or 'no reason'}")
        return updated

    async def set_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> AppointmentRecord:
        """Move an appointment along its lifecycle (confirm, complete, no-show).

        Raises:
            NotFound: unknown appointment
            InvalidTransition: transition not allowed from the current status
        """
        if status.is_cancelled:
            by = CancelledBy.PATIENT if status == AppointmentStatus.CANCELLED_PATIENT else CancelledBy.STAFF
            return await self.cancel(appointment_id, cancelled_by=by)

        record = await self._get(appointment_id)
        if record.status == status:
            return record
        if not can_transition(record.status, status):
            raise InvalidTransition(
                f"Cannot change appointment {appointment_id} "
                f"from {record.status.value} to {status.value}"
            )

        return await self._store.update_appointment(
            appointment_id, AppointmentPatch(status=status)
        )

    async def _get(self, appointment_id: str) -> AppointmentRecord:
        record = await self._store.get_appointment(appointment_id)
        if record is None:
            raise NotFound(f"Appointment {appointment_id} not found")
        return record
