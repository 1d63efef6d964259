"""
Overlap Detection

Half-open interval tests used for work-hours containment and double-booking
checks. An appointment ending exactly when another begins does not overlap.
"""

from datetime import datetime
from typing import Iterable, Optional

from podiatry_scheduler.core.scheduling.types import ExistingBooking


def overlaps(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """True iff [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and b_start < a_end


def contains(
    outer_start: datetime,
    outer_end: datetime,
    inner_start: datetime,
    inner_end: datetime,
) -> bool:
    """True iff [inner_start, inner_end) lies fully inside [outer_start, outer_end)."""
    return outer_start <= inner_start and inner_end <= outer_end


def find_conflicts(
    bookings: Iterable[ExistingBooking],
    professional_id: str,
    start: datetime,
    end: datetime,
    exclude_id: Optional[str] = None,
) -> list[ExistingBooking]:
    """
    Active bookings of a professional that overlap [start, end).

    Args:
        bookings: booking snapshot (any professionals, any status)
        professional_id: professional whose calendar is checked
        start: proposed start
        end: proposed end
        exclude_id: booking to ignore (the appointment being moved)

    Returns:
        list of conflicting bookings, in snapshot order
    """
    return [
        booking
        for booking in bookings
        if booking.professional_id == professional_id
        and booking.is_active
        and booking.id != exclude_id
        and overlaps(start, end, booking.start, booking.end)
    ]
