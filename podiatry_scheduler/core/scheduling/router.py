"""
Command Intent Router

Maps a parsed command (schedule / reschedule / cancel / query) onto the
resolver, the commander and the store lookups, and reports the outcome as a
RouterResult. Every channel (dictation, email, WhatsApp, staff form) goes
through this one path.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from podiatry_scheduler.config import settings
from podiatry_scheduler.core.intelligence.intent.types import Intent, ParsedIntent
from podiatry_scheduler.core.scheduling.calendar import resolve_work_day
from podiatry_scheduler.core.scheduling.commander import BookingCommander, CancelledBy
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
from podiatry_scheduler.core.scheduling.resolver import match_service, resolve
from podiatry_scheduler.core.scheduling.store import AppointmentStore
from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    Assignment,
    BookingRequest,
    ProfessionalSpec,
    ServiceSpec,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result categories reported to channels."""

    BOOKED = "booked"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    LISTED = "listed"
    NO_AVAILABILITY = "no_availability"
    INCOMPLETE = "incomplete"
    SERVICE_NOT_FOUND = "service_not_found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    CONFLICT = "conflict"
    ERROR = "error"

    @property
    def is_success(self) -> bool:
        return self in (
            Outcome.BOOKED,
            Outcome.RESCHEDULED,
            Outcome.CANCELLED,
            Outcome.LISTED,
        )


# Exception -> outcome (most specific first)
_ERROR_OUTCOMES: list[tuple[type[SchedulingError], Outcome]] = [
    (IncompleteRequest, Outcome.INCOMPLETE),
    (ServiceNotFound, Outcome.SERVICE_NOT_FOUND),
    (NotFound, Outcome.NOT_FOUND),
    (AmbiguousMatch, Outcome.AMBIGUOUS),
    (ConflictDetected, Outcome.CONFLICT),
    (ScheduleConflict, Outcome.CONFLICT),
    (InvalidTransition, Outcome.CONFLICT),
    (StoreError, Outcome.ERROR),
]


@dataclass
class RouterResult:
    """Outcome of one routed command."""

    outcome: Outcome
    intent: Intent
    message: str
    appointment: Optional[AppointmentRecord] = None
    appointments: Optional[list[AppointmentRecord]] = None
    missing_fields: Optional[list[str]] = None
    candidates: Optional[list[AppointmentRecord]] = None
    rejections: Optional[dict[str, str]] = None
    professional_name: Optional[str] = None
    service_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome.is_success

    @classmethod
    def from_error(cls, intent: Intent, error: SchedulingError) -> "RouterResult":
        """Build a result from a scheduling error."""
        outcome = Outcome.ERROR
        for error_type, mapped in _ERROR_OUTCOMES:
            if isinstance(error, error_type):
                outcome = mapped
                break

        result = cls(outcome=outcome, intent=intent, message=error.message)
        if isinstance(error, IncompleteRequest):
            result.missing_fields = error.missing_fields
        elif isinstance(error, AmbiguousMatch):
            result.candidates = error.matches
        return result

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        result = {
            "outcome": self.outcome.value,
            "intent": self.intent.value,
            "message": self.message,
        }

        if self.appointment:
            result["appointment"] = self.appointment.to_dict()
        if self.appointments is not None:
            result["appointments"] = [a.to_dict() for a in self.appointments]
        if self.missing_fields:
            result["missing_fields"] = self.missing_fields
        if self.candidates:
            result["candidates"] = [a.to_dict() for a in self.candidates]
        if self.rejections:
            result["rejections"] = self.rejections
        if self.professional_name:
            result["professional_name"] = self.professional_name
        if self.service_name:
            result["service_name"] = self.service_name

        return result


def _missing(**fields: object) -> list[str]:
    return [name for name, value in fields.items() if value is None or value == ""]


class CommandIntentRouter:
    """
    Routes structured commands to the scheduling core.

    Usage:
        router = CommandIntentRouter(store, BookingCommander(store))
        result = await router.dispatch(parsed, current_date=today)
    """

    def __init__(
        self,
        store: AppointmentStore,
        commander: BookingCommander,
        max_attempts: Optional[int] = None,
        default_location_id: Optional[str] = None,
    ):
        """Initialize router.

        Args:
            store: appointment store
            commander: booking commander sharing the same store
            max_attempts: re-resolution attempts after ConflictDetected
            default_location_id: location used when a command carries none
        """
        self._store = store
        self._commander = commander
        self._max_attempts = max(1, max_attempts or settings.booking_max_attempts)
        self._default_location_id = default_location_id or settings.default_location_id

    async def dispatch(
        self,
        parsed: ParsedIntent,
        current_date: date,
        location_id: Optional[str] = None,
    ) -> RouterResult:
        """
        Execute a parsed command.

        Args:
            parsed: parser output (untrusted, possibly incomplete)
            current_date: clinic-local today
            location_id: channel location, overrides the parsed one

        Returns:
            RouterResult; scheduling errors are reported, never raised
        """
        location_id = location_id or parsed.location_id or self._default_location_id

        handlers = {
            Intent.SCHEDULE: self._schedule,
            Intent.RESCHEDULE: self._reschedule,
            Intent.CANCEL: self._cancel,
            Intent.QUERY: self._query,
        }

        try:
            handler = handlers.get(parsed.intent)
            if handler is None:
                raise IncompleteRequest(
                    ["intent"],
                    "Could not tell whether to schedule, reschedule, cancel or list",
                )
            return await handler(parsed, current_date, location_id)

        except SchedulingError as e:
            self._log_error(parsed.intent, e)
            return RouterResult.from_error(parsed.intent, e)

    # === Staff form entry points ===

    async def book(self, request: BookingRequest) -> RouterResult:
        """Book from a structured form request (service given by id)."""
        try:
            missing = _missing(
                patient_name=request.patient_name.strip(),
                service_id=request.service_id,
            )
            if missing:
                raise IncompleteRequest(missing)

            services = await self._store.list_services()
            service = next((s for s in services if s.id == request.service_id), None)
            if service is None:
                raise ServiceNotFound(request.service_id, [s.name for s in services])

            return await self._book(
                patient_name=request.patient_name,
                service=service,
                requested_date=request.requested_date,
                requested_time=request.requested_time,
                preferred_professional_id=request.preferred_professional_id,
                location_id=request.location_id or self._default_location_id,
            )

        except SchedulingError as e:
            self._log_error(Intent.SCHEDULE, e)
            return RouterResult.from_error(Intent.SCHEDULE, e)

    async def reschedule_appointment(
        self,
        appointment_id: str,
        new_date: date,
        new_time: time,
    ) -> RouterResult:
        """Reschedule an appointment selected by id."""
        try:
            record = await self._commander.reschedule(appointment_id, new_date, new_time)
        except SchedulingError as e:
            self._log_error(Intent.RESCHEDULE, e)
            return RouterResult.from_error(Intent.RESCHEDULE, e)
        return self._rescheduled(record)

    async def cancel_appointment(
        self,
        appointment_id: str,
        reason: Optional[str] = None,
        cancelled_by: CancelledBy = CancelledBy.STAFF,
    ) -> RouterResult:
        """Cancel an appointment selected by id."""
        try:
            record = await self._commander.cancel(appointment_id, reason, cancelled_by)
        except SchedulingError as e:
            self._log_error(Intent.CANCEL, e)
            return RouterResult.from_error(Intent.CANCEL, e)
        return self._cancelled(record)

    async def list_day(
        self,
        target_date: date,
        location_id: Optional[str] = None,
    ) -> RouterResult:
        """List active appointments of a date."""
        parsed = ParsedIntent(intent=Intent.QUERY, requested_date=target_date)
        return await self.dispatch(parsed, current_date=target_date, location_id=location_id)

    # === Intent handlers ===

    async def _schedule(
        self,
        parsed: ParsedIntent,
        current_date: date,
        location_id: Optional[str],
    ) -> RouterResult:
        patient_name = (parsed.patient_name or "").strip()
        missing = _missing(
            patient_name=patient_name,
            service=parsed.requested_service,
            date=parsed.requested_date,
            time=parsed.requested_time,
        )
        if missing:
            raise IncompleteRequest(missing)

        service = match_service(await self._store.list_services(), parsed.requested_service)
        preferred = await self._match_professional(parsed.professional_name)

        return await self._book(
            patient_name=patient_name,
            service=service,
            requested_date=parsed.requested_date,
            requested_time=parsed.requested_time,
            preferred_professional_id=preferred,
            location_id=location_id,
        )

    async def _reschedule(
        self,
        parsed: ParsedIntent,
        current_date: date,
        location_id: Optional[str],
    ) -> RouterResult:
        patient_name = (parsed.patient_name or "").strip()
        missing = _missing(
            patient_name=patient_name,
            date=parsed.requested_date,
            new_date=parsed.new_date,
            new_time=parsed.new_time,
        )
        if missing:
            raise IncompleteRequest(missing)

        target = await self._find_single(patient_name, parsed.requested_date)
        record = await self._commander.reschedule(target.id, parsed.new_date, parsed.new_time)
        return self._rescheduled(record)

    async def _cancel(
        self,
        parsed: ParsedIntent,
        current_date: date,
        location_id: Optional[str],
    ) -> RouterResult:
        patient_name = (parsed.patient_name or "").strip()
        missing = _missing(patient_name=patient_name, date=parsed.requested_date)
        if missing:
            raise IncompleteRequest(missing)

        target = await self._find_single(patient_name, parsed.requested_date)
        record = await self._commander.cancel(target.id, reason="requested by command")
        return self._cancelled(record)

    async def _query(
        self,
        parsed: ParsedIntent,
        current_date: date,
        location_id: Optional[str],
    ) -> RouterResult:
        target_date = parsed.requested_date
        if target_date is None:
            if location_id is None:
                raise IncompleteRequest(["date"])
            target_date = current_date

        appointments = await self._store.list_appointments_for_date(target_date, location_id)
        return RouterResult(
            outcome=Outcome.LISTED,
            intent=Intent.QUERY,
            message=f"{len(appointments)} appointment(s) on {target_date.isoformat()}",
            appointments=appointments,
        )

    # === Helpers ===

    async def _book(
        self,
        patient_name: str,
        service: ServiceSpec,
        requested_date: date,
        requested_time: time,
        preferred_professional_id: Optional[str],
        location_id: Optional[str],
    ) -> RouterResult:
        """Resolve and commit, re-resolving from scratch after a conflict."""
        patient = None
        last_conflict: Optional[ConflictDetected] = None

        for attempt in range(1, self._max_attempts + 1):
            bookings = await self._store.list_bookings_for_date(requested_date)
            candidates = await self._candidates(requested_date, location_id)

            chosen = resolve(
                service,
                requested_date,
                requested_time,
                candidates,
                bookings,
                preferred_professional_id=preferred_professional_id,
            )
            if not chosen:
                return RouterResult(
                    outcome=Outcome.NO_AVAILABILITY,
                    intent=Intent.SCHEDULE,
                    message=(
                        f"No professional available for {service.name} at "
                        f"{chosen.start:%Y-%m-%d %H:%M}"
                    ),
                    rejections=dict(chosen.rejections),
                    service_name=service.name,
                )

            if patient is None:
                patient = await self._store.find_or_create_patient(patient_name)

            assignment = Assignment(
                patient_id=patient.id,
                patient_name=patient.full_name,
                service=service,
                professional=chosen,
                start=datetime.combine(requested_date, requested_time),
                location_id=location_id or resolve_work_day(chosen, requested_date).working_location_id,
            )

            try:
                record = await self._commander.create(assignment)
            except ConflictDetected as e:
                last_conflict = e
                logger.info(
                    f"Attempt {attempt}/{self._max_attempts} lost a race for "
                    f"{chosen.id}, re-resolving"
                )
                continue

            return RouterResult(
                outcome=Outcome.BOOKED,
                intent=Intent.SCHEDULE,
                message=f"Booked {service.name} with {chosen.name}",
                appointment=record,
                professional_name=chosen.name,
                service_name=service.name,
            )

        raise last_conflict or ConflictDetected("Booking could not be committed")

    async def _candidates(
        self,
        target_date: date,
        location_id: Optional[str],
    ) -> list[ProfessionalSpec]:
        """Professionals working at the location on the date (transfers included)."""
        professionals = await self._store.list_professionals()
        if location_id is None:
            return professionals
        return [
            p for p in professionals
            if (resolve_work_day(p, target_date).working_location_id or p.location_id) == location_id
        ]

    async def _match_professional(self, name: Optional[str]) -> Optional[str]:
        """Preferred professional id from a free-text name (soft, may be None)."""
        if not name:
            return None
        needle = name.strip().lower()
        for professional in await self._store.list_professionals():
            if needle in professional.name.lower():
                return professional.id
        logger.debug(f"Preferred professional '{name}' not recognized, ignoring")
        return None

    async def _find_single(self, patient_name: str, target_date: date) -> AppointmentRecord:
        """Exactly one active appointment for the patient on the date."""
        matches = [
            record
            for record in await self._store.find_appointments(patient_name, target_date)
            if record.status.is_active
        ]
        if not matches:
            raise NotFound(
                f"No appointment for '{patient_name}' on {target_date.isoformat()}"
            )
        if len(matches) > 1:
            raise AmbiguousMatch(
                f"{len(matches)} appointments match '{patient_name}' on "
                f"{target_date.isoformat()}",
                matches,
            )
        return matches[0]

    def _rescheduled(self, record: AppointmentRecord) -> RouterResult:
        return RouterResult(
            outcome=Outcome.RESCHEDULED,
            intent=Intent.RESCHEDULE,
            message=f"Appointment moved to {record.start:%Y-%m-%d %H:%M}",
            appointment=record,
        )

    def _cancelled(self, record: AppointmentRecord) -> RouterResult:
        return RouterResult(
            outcome=Outcome.CANCELLED,
            intent=Intent.CANCEL,
            message=f"Appointment on {record.start:%Y-%m-%d %H:%M} cancelled",
            appointment=record,
        )

    def _log_error(self, intent: Intent, error: SchedulingError) -> None:
        if isinstance(error, StoreError):
            logger.error(f"Store failure handling {intent.value}: {error}", exc_info=True)
        else:
            logger.info(f"{intent.value} not executed ({error.code}): {error.message}")
