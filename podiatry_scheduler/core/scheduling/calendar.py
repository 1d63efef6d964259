"""
Calendar Model

Effective working hours of a professional on a calendar date, merging the
weekly template with date-specific overrides. An override always wins.
"""

import logging
from datetime import date

from podiatry_scheduler.core.scheduling.types import (
    DayOfWeek,
    ProfessionalSpec,
    WorkDaySpec,
)

logger = logging.getLogger(__name__)


def _contract_active(professional: ProfessionalSpec, target_date: date) -> bool:
    """Professionals without a recorded contract are not restricted."""
    if professional.contract_start and target_date < professional.contract_start:
        return False
    if professional.contract_end and target_date > professional.contract_end:
        return False
    return True


def resolve_work_day(professional: ProfessionalSpec, target_date: date) -> WorkDaySpec:
    """
    Resolve the working hours of a professional for one date.

    Args:
        professional: professional with weekly template and overrides
        target_date: calendar date (clinic-local)

    Returns:
        WorkDaySpec; is_working=False short-circuits availability checks

    Rules:
        1. Outside a recorded contract period -> not working
        2. Override for the exact date replaces the template entirely;
           a working override without hours keeps the template hours
        3. Template entry for the weekday, if working and with hours
        4. Otherwise not working
    """
    if not _contract_active(professional, target_date):
        return WorkDaySpec.off("contract inactive")

    weekday = DayOfWeek.for_date(target_date)
    template = professional.work_schedule.get(weekday)
    override = professional.override_for(target_date)

    if override is not None:
        notes = override.notes or "unspecified"
        if not override.is_working:
            return WorkDaySpec(
                is_working=False,
                reason=f"day off (override: {notes})",
                working_location_id=override.location_id or professional.location_id,
            )

        start_time = override.start_time
        end_time = override.end_time
        if start_time is None or end_time is None:
            # Working override without hours: fall back to template hours
            if template is not None:
                start_time, end_time = template.start_time, template.end_time

        if start_time is not None and end_time is not None and start_time < end_time:
            return WorkDaySpec(
                is_working=True,
                start_time=start_time,
                end_time=end_time,
                reason=f"override: {notes}",
                working_location_id=override.location_id or professional.location_id,
            )

        logger.debug(
            f"Override for {professional.id} on {target_date} has no usable hours"
        )
        return WorkDaySpec.off(f"override without hours: {notes}")

    if (
        template is not None
        and template.is_working
        and template.start_time is not None
        and template.end_time is not None
        and template.start_time < template.end_time
    ):
        return WorkDaySpec(
            is_working=True,
            start_time=template.start_time,
            end_time=template.end_time,
            reason="base schedule",
            working_location_id=professional.location_id,
        )

    return WorkDaySpec.off(f"day off (base schedule: {weekday.value})")
