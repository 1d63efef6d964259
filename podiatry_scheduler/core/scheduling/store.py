"""
Appointment store boundary.

The scheduling core only talks to persistence through this interface.
Implementations must make insert_appointment_atomic a single atomic
"insert if no active overlapping booking for this professional" step.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    AppointmentStatus,
    Assignment,
    ExistingBooking,
    ProfessionalSpec,
    ServiceSpec,
)


@dataclass(frozen=True)
class AppointmentPatch:
    """Fields changed by a reschedule or status transition."""

    start: Optional[datetime] = None
    professional_id: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    cancellation_reason: Optional[str] = None

    @property
    def moves_interval(self) -> bool:
        return self.start is not None or self.professional_id is not None


@dataclass(frozen=True)
class PatientRef:
    """Minimal patient identity returned by find_or_create_patient."""

    id: str
    full_name: str


class AppointmentStore(ABC):
    """Data store operations consumed by the scheduling core."""

    # === Reference data ===

    @abstractmethod
    async def list_services(self) -> list[ServiceSpec]:
        """All bookable services."""

    @abstractmethod
    async def list_professionals(
        self, location_id: Optional[str] = None
    ) -> list[ProfessionalSpec]:
        """Professionals, optionally restricted to a base location."""

    @abstractmethod
    async def get_professional(self, professional_id: str) -> Optional[ProfessionalSpec]:
        """Single professional or None."""

    @abstractmethod
    async def find_or_create_patient(self, full_name: str) -> PatientRef:
        """Reuse the patient with the same name or register a new one."""

    # === Bookings ===

    @abstractmethod
    async def list_bookings_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[ExistingBooking]:
        """Snapshot of active bookings starting on target_date."""

    @abstractmethod
    async def list_appointments_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[AppointmentRecord]:
        """Active appointments on target_date, ordered by start."""

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        """Single appointment or None."""

    @abstractmethod
    async def find_appointments(
        self, patient_name_substring: str, target_date: date
    ) -> list[AppointmentRecord]:
        """Appointments on target_date whose patient name contains the substring."""

    @abstractmethod
    async def insert_appointment_atomic(self, assignment: Assignment) -> AppointmentRecord:
        """
        Insert the appointment unless an active booking of the same
        professional overlaps it.

        Raises:
            ConflictDetected: an overlapping active booking exists
            StoreError: infrastructure failure (nothing written)
        """

    @abstractmethod
    async def update_appointment(
        self, appointment_id: str, patch: AppointmentPatch
    ) -> AppointmentRecord:
        """
        Apply a patch atomically.

        Raises:
            NotFound: unknown appointment
            ScheduleConflict: the moved interval overlaps another active booking
            StoreError: infrastructure failure (nothing written)
        """
