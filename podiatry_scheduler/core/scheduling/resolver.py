"""
Availability Resolver

Selects the professional who takes a requested service/date/time. Only the
exact requested time is evaluated; no alternative slots are suggested.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Optional, Sequence, Union

from podiatry_scheduler.core.scheduling.calendar import resolve_work_day
from podiatry_scheduler.core.scheduling.errors import ServiceNotFound
from podiatry_scheduler.core.scheduling.overlap import contains, find_conflicts
from podiatry_scheduler.core.scheduling.types import (
    ExistingBooking,
    NoAvailability,
    ProfessionalSpec,
    ServiceSpec,
)

logger = logging.getLogger(__name__)

SHORTHAND_LENGTH = 4


def match_service(services: Sequence[ServiceSpec], requested: str) -> ServiceSpec:
    """
    Find the service named by free text.

    Match order: exact name, case-insensitive substring, then the 4-letter
    shorthand staff use when dictating ("quir" -> "Quiropodia").

    Raises:
        ServiceNotFound: if nothing matches
    """
    needle = (requested or "").strip().lower()
    names = [s.name for s in services]
    if not needle:
        raise ServiceNotFound(requested or "", names)

    for service in services:
        if service.name.lower() == needle:
            return service
    for service in services:
        if needle in service.name.lower():
            return service
    for service in services:
        if service.name[:SHORTHAND_LENGTH].lower() == needle:
            return service

    raise ServiceNotFound(requested, names)


def check_professional(
    professional: ProfessionalSpec,
    start: datetime,
    end: datetime,
    bookings: Iterable[ExistingBooking],
    exclude_booking_id: Optional[str] = None,
) -> Optional[str]:
    """
    Check one professional against the proposed interval.

    Returns:
        None if the professional can take [start, end), else the rejection reason
    """
    if professional.is_manager:
        return "manager"

    work_day = resolve_work_day(professional, start.date())
    if not work_day.is_working:
        return work_day.reason or "not working"

    work_start, work_end = work_day.bounds(start.date())
    if not contains(work_start, work_end, start, end):
        return (
            f"outside working hours "
            f"{work_day.start_time:%H:%M}-{work_day.end_time:%H:%M}"
        )

    conflicts = find_conflicts(
        bookings, professional.id, start, end, exclude_id=exclude_booking_id
    )
    if conflicts:
        return f"busy ({conflicts[0].start:%H:%M}, {conflicts[0].duration_minutes} min)"

    return None


def _candidate_order(
    candidates: Iterable[ProfessionalSpec],
    preferred_professional_id: Optional[str],
) -> list[ProfessionalSpec]:
    """Managers removed, preferred professional first, the rest by id."""
    bookable = sorted(
        (p for p in candidates if not p.is_manager),
        key=lambda p: p.id,
    )
    if preferred_professional_id is None:
        return bookable

    preferred = [p for p in bookable if p.id == preferred_professional_id]
    others = [p for p in bookable if p.id != preferred_professional_id]
    return preferred + others


def eligible_professionals(
    service: ServiceSpec,
    requested_date: date,
    requested_time: time,
    candidates: Iterable[ProfessionalSpec],
    existing_bookings: Sequence[ExistingBooking],
    preferred_professional_id: Optional[str] = None,
    rejections: Optional[dict[str, str]] = None,
) -> Iterator[ProfessionalSpec]:
    """
    Yield every professional able to take the slot, in resolution order.

    Args:
        rejections: optional dict filled with {professional_id: reason}
            for candidates that were skipped
    """
    start = datetime.combine(requested_date, requested_time)
    end = start + timedelta(minutes=service.duration_minutes)

    for professional in _candidate_order(candidates, preferred_professional_id):
        reason = check_professional(professional, start, end, existing_bookings)
        if reason is None:
            yield professional
        else:
            logger.debug(f"Professional {professional.id} rejected: {reason}")
            if rejections is not None:
                rejections[professional.id] = reason


def resolve(
    service: ServiceSpec,
    requested_date: date,
    requested_time: time,
    candidates: Iterable[ProfessionalSpec],
    existing_bookings: Sequence[ExistingBooking],
    preferred_professional_id: Optional[str] = None,
) -> Union[ProfessionalSpec, NoAvailability]:
    """
    Pick the professional for a requested service/date/time.

    The preferred professional, if any, is tried first; when unavailable the
    general scan continues over the remaining candidates ordered by id.

    Returns:
        first eligible ProfessionalSpec, or NoAvailability (a normal outcome)
    """
    rejections: dict[str, str] = {}
    chosen = next(
        eligible_professionals(
            service,
            requested_date,
            requested_time,
            candidates,
            existing_bookings,
            preferred_professional_id=preferred_professional_id,
            rejections=rejections,
        ),
        None,
    )

    start = datetime.combine(requested_date, requested_time)
    if chosen is None:
        logger.info(
            f"No availability for {service.name} at {start:%Y-%m-%d %H:%M} "
            f"({len(rejections)} candidates rejected)"
        )
        return NoAvailability(
            start=start,
            end=start + timedelta(minutes=service.duration_minutes),
            rejections=rejections,
        )

    if preferred_professional_id and chosen.id != preferred_professional_id:
        logger.info(
            f"Preferred professional {preferred_professional_id} unavailable, "
            f"falling back to {chosen.id}"
        )
    return chosen
