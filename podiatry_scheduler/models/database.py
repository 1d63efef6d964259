"""
Database Models

SQLAlchemy ORM models for the podiatry clinic scheduling service.
Appointment times are clinic-local wall-clock values (single timezone).
"""

import uuid
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import (
    JSON, Boolean, Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer,
    String, Text, Time, UniqueConstraint, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from podiatry_scheduler.core.scheduling.types import AppointmentStatus, OverrideType


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class Location(Base, TimestampMixin):
    """Clinic location (sede)."""

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    professionals: Mapped[List["Professional"]] = relationship(
        "Professional",
        back_populates="location"
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name='{self.name}')>"


class Service(Base, TimestampMixin):
    """Bookable service with a fixed duration."""

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}', duration={self.duration_minutes})>"


class Professional(Base, TimestampMixin):
    """
    Professional (podiatrist or manager).

    work_schedule holds the weekly template as JSON:
        {"tuesday": {"start": "09:00", "end": "13:00", "is_working": true}, ...}
    """

    __tablename__ = "professionals"
    __table_args__ = (
        Index("idx_professional_location", "location_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False
    )
    is_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    work_schedule: Mapped[dict] = mapped_column(JSON, default=dict)
    contract_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contract_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Relationships
    location: Mapped["Location"] = relationship("Location", back_populates="professionals")
    overrides: Mapped[List["ScheduleOverrideRow"]] = relationship(
        "ScheduleOverrideRow",
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="ScheduleOverrideRow.override_date",
    )
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="professional"
    )

    def __repr__(self) -> str:
        return f"<Professional(id={self.id}, name='{self.name}', manager={self.is_manager})>"


class ScheduleOverrideRow(Base, TimestampMixin):
    """Date-specific replacement of a professional's weekly template."""

    __tablename__ = "schedule_overrides"
    __table_args__ = (
        UniqueConstraint("professional_id", "date", name="uq_override_professional_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    professional_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("professionals.id", ondelete="CASCADE"),
        nullable=False
    )
    override_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    override_type: Mapped[OverrideType] = mapped_column(
        SQLEnum(OverrideType),
        default=OverrideType.SPECIAL_SHIFT
    )
    is_working: Mapped[bool] = mapped_column(Boolean, nullable=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    location_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    professional: Mapped["Professional"] = relationship("Professional", back_populates="overrides")


class Patient(Base, TimestampMixin):
    """Patient, identified by first and last name."""

    __tablename__ = "patients"
    __table_args__ = (
        Index("idx_patient_name", "first_name", "last_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="patient"
    )

    @property
    def full_name(self) -> str:
        """Return full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.full_name}')>"


class Appointment(Base, TimestampMixin):
    """
    Appointment model.

    Never deleted: cancellation is a status change. scheduled_end is stored
    so overlap checks run as a single indexed range query.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointment_professional_start", "professional_id", "scheduled_start"),
        Index("idx_appointment_patient", "patient_id"),
        Index("idx_appointment_start", "scheduled_start"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    patient_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False
    )
    professional_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("professionals.id", ondelete="RESTRICT"),
        nullable=False
    )
    service_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False
    )
    location_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True
    )
    scheduled_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    scheduled_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus),
        default=AppointmentStatus.BOOKED,
        nullable=False
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    patient: Mapped["Patient"] = relationship("Patient", back_populates="appointments")
    professional: Mapped["Professional"] = relationship("Professional", back_populates="appointments")
    service: Mapped["Service"] = relationship("Service")

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, "
            f"professional_id={self.professional_id}, start={self.scheduled_start}, "
            f"status={self.status.value})>"
        )
