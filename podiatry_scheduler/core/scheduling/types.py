"""Scheduling domain types."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional


class DayOfWeek(str, Enum):
    """Weekday keys used by weekly work schedules (Monday first)."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_date(cls, target_date: date) -> "DayOfWeek":
        """Weekday key for a calendar date."""
        return list(cls)[target_date.weekday()]


class OverrideType(str, Enum):
    """Kinds of date-specific schedule overrides."""

    DAY_OFF = "day_off"
    SPECIAL_SHIFT = "special_shift"
    TRANSFER = "transfer"  # Working at another location that day


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    BOOKED = "booked"
    CONFIRMED = "confirmed"      # Patient arrival confirmed
    COMPLETED = "completed"
    CANCELLED_STAFF = "cancelled_staff"
    CANCELLED_PATIENT = "cancelled_patient"
    NO_SHOW = "no_show"

    @property
    def is_cancelled(self) -> bool:
        return self in CANCELLED_STATUSES

    @property
    def is_active(self) -> bool:
        """Active appointments occupy their slot for overlap purposes."""
        return not self.is_cancelled


CANCELLED_STATUSES = frozenset({
    AppointmentStatus.CANCELLED_STAFF,
    AppointmentStatus.CANCELLED_PATIENT,
})


@dataclass(frozen=True)
class WorkDaySpec:
    """Effective working hours of a professional on one calendar date."""

    is_working: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: str = ""
    working_location_id: Optional[str] = None

    @classmethod
    def off(cls, reason: str) -> "WorkDaySpec":
        return cls(is_working=False, reason=reason)

    def bounds(self, target_date: date) -> tuple[datetime, datetime]:
        """Work interval as datetimes on the given date."""
        if not self.is_working or self.start_time is None or self.end_time is None:
            raise ValueError("Non-working day has no bounds")
        return (
            datetime.combine(target_date, self.start_time),
            datetime.combine(target_date, self.end_time),
        )


@dataclass(frozen=True)
class WeeklyShift:
    """Weekly template entry for one weekday."""

    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_working: bool = True


@dataclass(frozen=True)
class ScheduleOverride:
    """Date-specific replacement of a professional's weekly template."""

    date: date
    is_working: bool
    override_type: OverrideType = OverrideType.SPECIAL_SHIFT
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ServiceSpec:
    """Bookable service (reference data)."""

    id: str
    name: str
    duration_minutes: int

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValueError(f"Service {self.id} must have a positive duration")


@dataclass(frozen=True)
class ProfessionalSpec:
    """Professional with weekly template and per-date overrides."""

    id: str
    name: str
    location_id: str
    is_manager: bool = False
    work_schedule: dict[DayOfWeek, WeeklyShift] = field(default_factory=dict)
    schedule_overrides: tuple[ScheduleOverride, ...] = ()
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None

    def override_for(self, target_date: date) -> Optional[ScheduleOverride]:
        """Override whose date equals target_date, if any."""
        for override in self.schedule_overrides:
            if override.date == target_date:
                return override
        return None


@dataclass(frozen=True)
class ExistingBooking:
    """Snapshot of a booked interval used for conflict checks."""

    id: str
    professional_id: str
    start: datetime
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.BOOKED

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status.is_active


@dataclass(frozen=True)
class BookingRequest:
    """Structured booking request built by an adapter; never persisted."""

    patient_name: str
    service_id: str
    requested_date: date
    requested_time: time
    preferred_professional_id: Optional[str] = None
    location_id: Optional[str] = None

    @property
    def start(self) -> datetime:
        return datetime.combine(self.requested_date, self.requested_time)


@dataclass(frozen=True)
class Assignment:
    """A fully resolved booking: who, what, with whom, and when."""

    patient_id: str
    patient_name: str
    service: ServiceSpec
    professional: ProfessionalSpec
    start: datetime
    location_id: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return self.service.duration_minutes

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.service.duration_minutes)


@dataclass
class AppointmentRecord:
    """Persisted appointment."""

    id: str
    patient_id: str
    professional_id: str
    service_id: str
    start: datetime
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.BOOKED
    patient_name: str = ""
    location_id: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def as_booking(self) -> ExistingBooking:
        """View of this record as a conflict-check booking."""
        return ExistingBooking(
            id=self.id,
            professional_id=self.professional_id,
            start=self.start,
            duration_minutes=self.duration_minutes,
            status=self.status,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        result = {
            "id": self.id,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "professional_id": self.professional_id,
            "service_id": self.service_id,
            "start": self.start.isoformat(),
            "duration_minutes": self.duration_minutes,
            "status": self.status.value,
        }
        if self.location_id:
            result["location_id"] = self.location_id
        if self.cancellation_reason:
            result["cancellation_reason"] = self.cancellation_reason
        return result


@dataclass(frozen=True)
class NoAvailability:
    """Resolver outcome when no professional can take the slot.

    Not an error: callers render it as "no slot available, try another time".
    """

    start: datetime
    end: datetime
    rejections: dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return False
