"""
In-memory appointment store.

Used in development without PostgreSQL and in tests. Writes are serialized
with an asyncio.Lock so check-then-insert is atomic within one process.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional

from podiatry_scheduler.core.scheduling.errors import (
    ConflictDetected,
    NotFound,
    ScheduleConflict,
)
from podiatry_scheduler.core.scheduling.overlap import find_conflicts
from podiatry_scheduler.core.scheduling.status import is_movable
from podiatry_scheduler.core.scheduling.store import (
    AppointmentPatch,
    AppointmentStore,
    PatientRef,
)
from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    Assignment,
    ExistingBooking,
    ProfessionalSpec,
    ServiceSpec,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryAppointmentStore(AppointmentStore):
    """Process-local store backed by dicts."""

    def __init__(
        self,
        services: Iterable[ServiceSpec] = (),
        professionals: Iterable[ProfessionalSpec] = (),
    ):
        self._services: dict[str, ServiceSpec] = {s.id: s for s in services}
        self._professionals: dict[str, ProfessionalSpec] = {
            p.id: p for p in professionals
        }
        self._patients: dict[str, PatientRef] = {}
        self._appointments: dict[str, AppointmentRecord] = {}
        self._write_lock = asyncio.Lock()

    # === Seeding ===

    def add_service(self, service: ServiceSpec) -> None:
        self._services[service.id] = service

    def add_professional(self, professional: ProfessionalSpec) -> None:
        self._professionals[professional.id] = professional

    def add_appointment(self, record: AppointmentRecord) -> None:
        """Insert a record as-is (no conflict check); for fixtures and imports."""
        self._appointments[record.id] = record

    # === Reference data ===

    async def list_services(self) -> list[ServiceSpec]:
        return list(self._services.values())

    async def list_professionals(
        self, location_id: Optional[str] = None
    ) -> list[ProfessionalSpec]:
        return [
            p for p in self._professionals.values()
            if location_id is None or p.location_id == location_id
        ]

    async def get_professional(self, professional_id: str) -> Optional[ProfessionalSpec]:
        return self._professionals.get(professional_id)

    async def find_or_create_patient(self, full_name: str) -> PatientRef:
        normalized = " ".join(full_name.split()).lower()
        for patient in self._patients.values():
            if patient.full_name.lower() == normalized:
                return patient

        patient = PatientRef(id=_new_id(), full_name=" ".join(full_name.split()))
        self._patients[patient.id] = patient
        logger.debug(f"Registered patient {patient.id}")
        return patient

    # === Bookings ===

    def _on_date(
        self, target_date: date, location_id: Optional[str]
    ) -> list[AppointmentRecord]:
        records = [
            r for r in self._appointments.values()
            if r.start.date() == target_date
            and (location_id is None or r.location_id == location_id)
        ]
        return sorted(records, key=lambda r: (r.start, r.id))

    async def list_bookings_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[ExistingBooking]:
        return [
            r.as_booking() for r in self._on_date(target_date, location_id)
            if r.status.is_active
        ]

    async def list_appointments_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[AppointmentRecord]:
        return [
            replace(r) for r in self._on_date(target_date, location_id)
            if r.status.is_active
        ]

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        record = self._appointments.get(appointment_id)
        return replace(record) if record else None

    async def find_appointments(
        self, patient_name_substring: str, target_date: date
    ) -> list[AppointmentRecord]:
        needle = patient_name_substring.strip().lower()
        return [
            replace(r) for r in self._on_date(target_date, None)
            if needle in r.patient_name.lower()
        ]

    async def insert_appointment_atomic(self, assignment: Assignment) -> AppointmentRecord:
        async with self._write_lock:
            bookings = [r.as_booking() for r in self._appointments.values()]
            conflicts = find_conflicts(
                bookings,
                assignment.professional.id,
                assignment.start,
                assignment.end,
            )
            if conflicts:
                raise ConflictDetected(
                    f"Professional {assignment.professional.id} already booked "
                    f"at {conflicts[0].start:%Y-%m-%d %H:%M}"
                )

            record = AppointmentRecord(
                id=_new_id(),
                patient_id=assignment.patient_id,
                patient_name=assignment.patient_name,
                professional_id=assignment.professional.id,
                service_id=assignment.service.id,
                location_id=assignment.location_id,
                start=assignment.start,
                duration_minutes=assignment.duration_minutes,
            )
            self._appointments[record.id] = record
            return replace(record)

    async def update_appointment(
        self, appointment_id: str, patch: AppointmentPatch
    ) -> AppointmentRecord:
        async with self._write_lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                raise NotFound(f"Appointment {appointment_id} not found")
            if patch.moves_interval and not is_movable(current.status):
                raise ScheduleConflict(
                    f"Appointment {appointment_id} is {current.status.value} and cannot be moved"
                )

            updated = replace(
                current,
                start=patch.start or current.start,
                professional_id=patch.professional_id or current.professional_id,
                status=patch.status or current.status,
                cancellation_reason=(
                    patch.cancellation_reason
                    if patch.cancellation_reason is not None
                    else current.cancellation_reason
                ),
            )

            if patch.moves_interval and updated.status.is_active:
                bookings = [r.as_booking() for r in self._appointments.values()]
                conflicts = find_conflicts(
                    bookings,
                    updated.professional_id,
                    updated.start,
                    updated.end,
                    exclude_id=appointment_id,
                )
                if conflicts:
                    raise ScheduleConflict(
                        f"Professional {updated.professional_id} already booked "
                        f"at {conflicts[0].start:%Y-%m-%d %H:%M}"
                    )

            self._appointments[appointment_id] = updated
            return replace(updated)
