"""
Appointment API Endpoints.

Structured staff-form operations. They share the router and commander with
the free-text channels, so the same availability rule applies everywhere.
"""

import logging
import datetime as dt
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from podiatry_scheduler.api.channel import result_response
from podiatry_scheduler.api.dependencies import get_commander, get_renderer, get_router
from podiatry_scheduler.core.scheduling.commander import BookingCommander, CancelledBy
from podiatry_scheduler.core.scheduling.errors import (
    InvalidTransition,
    NotFound,
    SchedulingError,
    StoreError,
)
from podiatry_scheduler.core.scheduling.response import ResponseRenderer
from podiatry_scheduler.core.scheduling.router import CommandIntentRouter
from podiatry_scheduler.core.scheduling.types import AppointmentStatus, BookingRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


class BookingForm(BaseModel):
    """New appointment from the staff form."""

    patient_name: str = Field(..., min_length=1, max_length=200, examples=["Carlos Sanchez"])
    service_id: str = Field(..., min_length=1)
    date: dt.date
    time: dt.time = Field(..., examples=["09:00"])
    preferred_professional_id: Optional[str] = None
    location_id: Optional[str] = None


class RescheduleForm(BaseModel):
    """New start for an existing appointment."""

    date: dt.date
    time: dt.time


class CancelForm(BaseModel):
    """Cancellation details."""

    reason: Optional[str] = Field(default=None, max_length=500)
    cancelled_by: Literal["staff", "patient"] = "staff"


class StatusForm(BaseModel):
    """Lifecycle update (confirm, complete, no-show)."""

    status: AppointmentStatus


@router.post("", summary="Book an appointment")
async def book_appointment(
    form: BookingForm,
    command_router: CommandIntentRouter = Depends(get_router),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> JSONResponse:
    """Resolve a professional for the slot and book it."""
    request = BookingRequest(
        patient_name=form.patient_name,
        service_id=form.service_id,
        requested_date=form.date,
        requested_time=form.time,
        preferred_professional_id=form.preferred_professional_id,
        location_id=form.location_id,
    )
    result = await command_router.book(request)
    return result_response(result, renderer)


@router.get("", summary="List appointments of a date")
async def list_appointments(
    target_date: dt.date = Query(..., alias="date"),
    location_id: Optional[str] = Query(default=None),
    command_router: CommandIntentRouter = Depends(get_router),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> JSONResponse:
    """Active appointments of the date, ordered by start."""
    result = await command_router.list_day(target_date, location_id=location_id)
    return result_response(result, renderer)


@router.post("/{appointment_id}/reschedule", summary="Move an appointment")
async def reschedule_appointment(
    appointment_id: str,
    form: RescheduleForm,
    command_router: CommandIntentRouter = Depends(get_router),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> JSONResponse:
    """Move the appointment, keeping its professional."""
    result = await command_router.reschedule_appointment(appointment_id, form.date, form.time)
    return result_response(result, renderer)


@router.post("/{appointment_id}/cancel", summary="Cancel an appointment")
async def cancel_appointment(
    appointment_id: str,
    form: CancelForm,
    command_router: CommandIntentRouter = Depends(get_router),
    renderer: ResponseRenderer = Depends(get_renderer),
) -> JSONResponse:
    """Cancel the appointment. Cancelling twice succeeds."""
    result = await command_router.cancel_appointment(
        appointment_id,
        reason=form.reason,
        cancelled_by=CancelledBy(form.cancelled_by),
    )
    return result_response(result, renderer)


@router.post("/{appointment_id}/status", summary="Update appointment status")
async def update_status(
    appointment_id: str,
    form: StatusForm,
    commander: BookingCommander = Depends(get_commander),
) -> dict:
    """Confirm, complete or mark an appointment as no-show."""
    try:
        record = await commander.set_status(appointment_id, form.status)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except SchedulingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return record.to_dict()
