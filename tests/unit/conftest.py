"""
Shared fixtures for unit tests.

Clinic used throughout:
- Ana Torres (pro-a, loc-1): Monday 09:00-18:00, Tuesday 09:00-13:00
- Bruno Diaz (pro-b, loc-1): Monday 09:00-18:00
- Marta Ruiz (mgr, loc-1): manager, works every weekday
"""

from datetime import date, datetime, time

import pytest

from podiatry_scheduler.core.scheduling.types import (
    AppointmentRecord,
    AppointmentStatus,
    DayOfWeek,
    ProfessionalSpec,
    ServiceSpec,
    WeeklyShift,
)
from podiatry_scheduler.infra.memory_store import InMemoryAppointmentStore

MONDAY = date(2024, 6, 10)
TUESDAY = date(2024, 6, 11)
WEDNESDAY = date(2024, 6, 12)


def shift(start: str, end: str) -> WeeklyShift:
    return WeeklyShift(start_time=time.fromisoformat(start), end_time=time.fromisoformat(end))


def at(day: date, clock: str) -> datetime:
    return datetime.combine(day, time.fromisoformat(clock))


def make_record(
    record_id: str,
    professional_id: str,
    start: datetime,
    duration: int = 30,
    patient_name: str = "Carlos Sanchez",
    status: AppointmentStatus = AppointmentStatus.BOOKED,
) -> AppointmentRecord:
    return AppointmentRecord(
        id=record_id,
        patient_id=f"pat-{record_id}",
        patient_name=patient_name,
        professional_id=professional_id,
        service_id="svc-pedi",
        start=start,
        duration_minutes=duration,
        status=status,
        location_id="loc-1",
    )


@pytest.fixture
def pedicure():
    return ServiceSpec(id="svc-pedi", name="Pedicure", duration_minutes=30)


@pytest.fixture
def quiropodia():
    return ServiceSpec(id="svc-quir", name="Quiropodia", duration_minutes=60)


@pytest.fixture
def professional_a():
    return ProfessionalSpec(
        id="pro-a",
        name="Ana Torres",
        location_id="loc-1",
        work_schedule={
            DayOfWeek.MONDAY: shift("09:00", "18:00"),
            DayOfWeek.TUESDAY: shift("09:00", "13:00"),
        },
    )


@pytest.fixture
def professional_b():
    return ProfessionalSpec(
        id="pro-b",
        name="Bruno Diaz",
        location_id="loc-1",
        work_schedule={DayOfWeek.MONDAY: shift("09:00", "18:00")},
    )


@pytest.fixture
def manager():
    return ProfessionalSpec(
        id="mgr",
        name="Marta Ruiz",
        location_id="loc-1",
        is_manager=True,
        work_schedule={day: shift("08:00", "20:00") for day in DayOfWeek},
    )


@pytest.fixture
def store(pedicure, quiropodia, professional_a, professional_b, manager):
    return InMemoryAppointmentStore(
        services=[pedicure, quiropodia],
        professionals=[professional_a, professional_b, manager],
    )
