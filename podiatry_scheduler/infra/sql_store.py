"""
SQL appointment store.

PostgreSQL implementation of AppointmentStore on SQLAlchemy async sessions.
The atomic insert locks the professional row (SELECT ... FOR UPDATE) before
the overlap query, so two transactions booking the same professional are
serialized by the database itself.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, time, timedelta
from typing import AsyncGenerator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from podiatry_scheduler.core.scheduling.errors import (
    ConflictDetected,
    NotFound,
    ScheduleConflict,
    StoreError,
)
from podiatry_scheduler.core.scheduling.status import is_movable
from podiatry_scheduler.core.scheduling.store import (
    AppointmentPatch,
    AppointmentStore,
    PatientRef,
)
from podiatry_scheduler.core.scheduling.types import (
    CANCELLED_STATUSES,
    AppointmentRecord,
    AppointmentStatus,
    Assignment,
    DayOfWeek,
    ExistingBooking,
    ProfessionalSpec,
    ScheduleOverride,
    ServiceSpec,
    WeeklyShift,
)
from podiatry_scheduler.models.database import (
    Appointment,
    Patient,
    Professional,
    Service,
)

logger = logging.getLogger(__name__)

_CANCELLED = sorted(CANCELLED_STATUSES, key=lambda s: s.value)


# === Row -> domain conversion ===

def _parse_clock(value) -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def weekly_template_from_json(data: Optional[dict]) -> dict[DayOfWeek, WeeklyShift]:
    """Decode the work_schedule JSON column; unknown weekday keys are ignored."""
    template: dict[DayOfWeek, WeeklyShift] = {}
    for key, entry in (data or {}).items():
        try:
            weekday = DayOfWeek(str(key).lower())
        except ValueError:
            logger.warning(f"Ignoring unknown weekday key in work schedule: {key}")
            continue
        entry = entry or {}
        template[weekday] = WeeklyShift(
            start_time=_parse_clock(entry.get("start")),
            end_time=_parse_clock(entry.get("end")),
            is_working=bool(entry.get("is_working", True)),
        )
    return template


def weekly_template_to_json(template: dict[DayOfWeek, WeeklyShift]) -> dict:
    """Encode a weekly template for the work_schedule JSON column."""
    return {
        weekday.value: {
            "start": shift.start_time.strftime("%H:%M") if shift.start_time else None,
            "end": shift.end_time.strftime("%H:%M") if shift.end_time else None,
            "is_working": shift.is_working,
        }
        for weekday, shift in template.items()
    }


def _professional_spec(row: Professional) -> ProfessionalSpec:
    return ProfessionalSpec(
        id=row.id,
        name=row.name,
        location_id=row.location_id,
        is_manager=row.is_manager,
        work_schedule=weekly_template_from_json(row.work_schedule),
        schedule_overrides=tuple(
            ScheduleOverride(
                date=o.override_date,
                is_working=o.is_working,
                override_type=o.override_type,
                start_time=o.start_time,
                end_time=o.end_time,
                location_id=o.location_id,
                notes=o.notes,
            )
            for o in row.overrides
        ),
        contract_start=row.contract_start,
        contract_end=row.contract_end,
    )


def _record(row: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=row.id,
        patient_id=row.patient_id,
        patient_name=row.patient.full_name if row.patient else "",
        professional_id=row.professional_id,
        service_id=row.service_id,
        location_id=row.location_id,
        start=row.scheduled_start,
        duration_minutes=row.duration_minutes,
        status=row.status,
        cancellation_reason=row.cancellation_reason,
    )


def _day_bounds(target_date: date) -> tuple[datetime, datetime]:
    start = datetime.combine(target_date, time.min)
    return start, start + timedelta(days=1)


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    return parts[0], " ".join(parts[1:])


class SqlAppointmentStore(AppointmentStore):
    """AppointmentStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize store.

        Args:
            session_factory: async session factory (see infra.database)
        """
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction; SQLAlchemy failures surface as StoreError."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database operation failed: {e}", exc_info=True)
            raise StoreError("Appointment store is unavailable") from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # === Reference data ===

    async def list_services(self) -> list[ServiceSpec]:
        async with self._session() as session:
            result = await session.execute(
                select(Service).where(Service.is_active.is_(True)).order_by(Service.name)
            )
            return [
                ServiceSpec(id=s.id, name=s.name, duration_minutes=s.duration_minutes)
                for s in result.scalars().all()
            ]

    async def list_professionals(
        self, location_id: Optional[str] = None
    ) -> list[ProfessionalSpec]:
        query = (
            select(Professional)
            .options(selectinload(Professional.overrides))
            .order_by(Professional.id)
        )
        if location_id is not None:
            query = query.where(Professional.location_id == location_id)

        async with self._session() as session:
            result = await session.execute(query)
            return [_professional_spec(row) for row in result.scalars().all()]

    async def get_professional(self, professional_id: str) -> Optional[ProfessionalSpec]:
        async with self._session() as session:
            result = await session.execute(
                select(Professional)
                .options(selectinload(Professional.overrides))
                .where(Professional.id == professional_id)
            )
            row = result.scalar_one_or_none()
            return _professional_spec(row) if row else None

    async def find_or_create_patient(self, full_name: str) -> PatientRef:
        first_name, last_name = _split_name(full_name)

        async with self._session() as session:
            result = await session.execute(
                select(Patient)
                .where(func.lower(Patient.first_name) == first_name.lower())
                .where(func.lower(Patient.last_name) == last_name.lower())
                .order_by(Patient.created_at)
                .limit(1)
            )
            patient = result.scalar_one_or_none()
            if patient is None:
                patient = Patient(first_name=first_name, last_name=last_name)
                session.add(patient)
                await session.flush()
                logger.debug(f"Registered patient {patient.id}")

            return PatientRef(id=patient.id, full_name=patient.full_name)

    # === Bookings ===

    def _appointments_on(self, target_date: date, location_id: Optional[str] = None):
        day_start, day_end = _day_bounds(target_date)
        query = (
            select(Appointment)
            .options(selectinload(Appointment.patient))
            .where(Appointment.scheduled_start >= day_start)
            .where(Appointment.scheduled_start < day_end)
            .order_by(Appointment.scheduled_start, Appointment.id)
        )
        if location_id is not None:
            query = query.where(Appointment.location_id == location_id)
        return query

    async def list_bookings_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[ExistingBooking]:
        query = self._appointments_on(target_date, location_id).where(
            Appointment.status.not_in(_CANCELLED)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [_record(row).as_booking() for row in result.scalars().all()]

    async def list_appointments_for_date(
        self, target_date: date, location_id: Optional[str] = None
    ) -> list[AppointmentRecord]:
        query = self._appointments_on(target_date, location_id).where(
            Appointment.status.not_in(_CANCELLED)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [_record(row) for row in result.scalars().all()]

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(Appointment)
                .options(selectinload(Appointment.patient))
                .where(Appointment.id == appointment_id)
            )
            row = result.scalar_one_or_none()
            return _record(row) if row else None

    async def find_appointments(
        self, patient_name_substring: str, target_date: date
    ) -> list[AppointmentRecord]:
        needle = " ".join(patient_name_substring.split()).lower()
        full_name = func.lower(Patient.first_name + " " + Patient.last_name)
        query = (
            self._appointments_on(target_date)
            .join(Patient, Appointment.patient_id == Patient.id)
            .where(full_name.contains(needle, autoescape=True))
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [_record(row) for row in result.scalars().all()]

    async def _overlapping(
        self,
        session: AsyncSession,
        professional_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> Optional[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.professional_id == professional_id)
            .where(Appointment.status.not_in(_CANCELLED))
            .where(Appointment.scheduled_start < end)
            .where(Appointment.scheduled_end > start)
            .limit(1)
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def _lock_professional(self, session: AsyncSession, professional_id: str) -> None:
        result = await session.execute(
            select(Professional.id)
            .where(Professional.id == professional_id)
            .with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise NotFound(f"Professional {professional_id} not found")

    async def insert_appointment_atomic(self, assignment: Assignment) -> AppointmentRecord:
        professional_id = assignment.professional.id

        async with self._session() as session:
            await self._lock_professional(session, professional_id)

            clash = await self._overlapping(
                session, professional_id, assignment.start, assignment.end
            )
            if clash is not None:
                raise ConflictDetected(
                    f"Professional {professional_id} already booked "
                    f"at {clash.scheduled_start:%Y-%m-%d %H:%M}"
                )

            row = Appointment(
                patient_id=assignment.patient_id,
                professional_id=professional_id,
                service_id=assignment.service.id,
                location_id=assignment.location_id,
                scheduled_start=assignment.start,
                scheduled_end=assignment.end,
                duration_minutes=assignment.duration_minutes,
                status=AppointmentStatus.BOOKED,
            )
            session.add(row)
            await session.flush()

            return AppointmentRecord(
                id=row.id,
                patient_id=row.patient_id,
                patient_name=assignment.patient_name,
                professional_id=row.professional_id,
                service_id=row.service_id,
                location_id=row.location_id,
                start=row.scheduled_start,
                duration_minutes=row.duration_minutes,
                status=row.status,
            )

    async def update_appointment(
        self, appointment_id: str, patch: AppointmentPatch
    ) -> AppointmentRecord:
        async with self._session() as session:
            result = await session.execute(
                select(Appointment)
                .options(selectinload(Appointment.patient))
                .where(Appointment.id == appointment_id)
                .with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise NotFound(f"Appointment {appointment_id} not found")

            if patch.moves_interval:
                if not is_movable(row.status):
                    raise ScheduleConflict(
                        f"Appointment {appointment_id} is {row.status.value} and cannot be moved"
                    )
                professional_id = patch.professional_id or row.professional_id
                start = patch.start or row.scheduled_start
                end = start + timedelta(minutes=row.duration_minutes)

                await self._lock_professional(session, professional_id)
                clash = await self._overlapping(
                    session, professional_id, start, end, exclude_id=appointment_id
                )
                if clash is not None:
                    raise ScheduleConflict(
                        f"Professional {professional_id} already booked "
                        f"at {clash.scheduled_start:%Y-%m-%d %H:%M}"
                    )

                row.professional_id = professional_id
                row.scheduled_start = start
                row.scheduled_end = end

            if patch.status is not None and patch.status != row.status:
                row.status = patch.status
                if patch.status.is_cancelled:
                    row.cancelled_at = datetime.now()
            if patch.cancellation_reason is not None:
                row.cancellation_reason = patch.cancellation_reason

            await session.flush()
            return _record(row)
