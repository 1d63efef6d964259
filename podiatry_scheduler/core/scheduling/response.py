"""
Response rendering for scheduling outcomes.

Turns a RouterResult into the short text sent back to staff, email senders
and WhatsApp users. Template-only: replies must be exact about dates, times
and names, so no LLM rewriting happens here.
"""

import logging
from typing import Optional

from podiatry_scheduler.core.scheduling.router import Outcome, RouterResult
from podiatry_scheduler.core.scheduling.types import AppointmentRecord

logger = logging.getLogger(__name__)


# Readable names for missing fields
FIELD_LABELS = {
    "intent": "what you want to do (book, move, cancel or list)",
    "patient_name": "the patient's name",
    "service": "the service",
    "service_id": "the service",
    "date": "the date",
    "time": "the time",
    "new_date": "the new date",
    "new_time": "the new time",
}


class ResponseRenderer:
    """Template renderer for RouterResult."""

    def render(self, result: RouterResult) -> str:
        """Render a result as reply text.

        Args:
            result: router outcome

        Returns:
            Reply text
        """
        outcome = result.outcome

        if outcome == Outcome.BOOKED:
            return self.booking_confirmed(result)
        elif outcome == Outcome.RESCHEDULED:
            return f"Done. {self._describe(result.appointment)} is now at {self._when(result.appointment)}."
        elif outcome == Outcome.CANCELLED:
            return f"Cancelled: {self._describe(result.appointment)} on {self._when(result.appointment)}."
        elif outcome == Outcome.LISTED:
            return self.format_day(result.appointments or [])
        elif outcome == Outcome.NO_AVAILABILITY:
            service = result.service_name or "that service"
            return (
                f"Sorry, no professional is available for {service} at that time. "
                "Please try another time."
            )
        elif outcome == Outcome.INCOMPLETE:
            return self.ask_for(result.missing_fields or [])
        elif outcome == Outcome.SERVICE_NOT_FOUND:
            return f"{result.message}. Please check the service name."
        elif outcome == Outcome.NOT_FOUND:
            return f"{result.message}. Please check the patient name and date."
        elif outcome == Outcome.AMBIGUOUS:
            return self.format_candidates(result.candidates or [])
        elif outcome == Outcome.CONFLICT:
            return f"That could not be done: {result.message}. Please try another time."

        logger.debug(f"Generic reply for outcome {outcome.value}")
        return "Sorry, something went wrong while saving. Please try again in a moment."

    # === Convenience Methods ===

    def booking_confirmed(self, result: RouterResult) -> str:
        """Confirmation text for a new booking."""
        appointment = result.appointment
        with_part = f" with {result.professional_name}" if result.professional_name else ""
        service = result.service_name or "Appointment"
        return (
            f"Booked: {service} for {appointment.patient_name}{with_part} "
            f"on {self._when(appointment)} ({appointment.duration_minutes} min)."
        )

    def ask_for(self, missing_fields: list[str]) -> str:
        """Ask for the missing fields of a command."""
        if not missing_fields:
            return "Could you give me a bit more detail?"
        labels = [FIELD_LABELS.get(name, name.replace("_", " ")) for name in missing_fields]
        if len(labels) == 1:
            return f"I still need {labels[0]}."
        return f"I still need {', '.join(labels[:-1])} and {labels[-1]}."

    def format_day(self, appointments: list[AppointmentRecord]) -> str:
        """Format a day's appointment list."""
        if not appointments:
            return "No appointments for that day."

        lines = [f"{len(appointments)} appointment(s):"]
        for appointment in appointments:
            lines.append(
                f"  - {appointment.start:%H:%M} {appointment.patient_name} "
                f"({appointment.duration_minutes} min)"
            )
        return "\n".join(lines)

    def format_candidates(self, candidates: list[AppointmentRecord]) -> str:
        """Ask the sender to pick one of several matching appointments."""
        lines = ["More than one appointment matches. Which one do you mean?"]
        for appointment in candidates:
            lines.append(f"  - {appointment.patient_name} at {appointment.start:%H:%M}")
        return "\n".join(lines)

    def _describe(self, appointment: Optional[AppointmentRecord]) -> str:
        if appointment is None:
            return "The appointment"
        return f"{appointment.patient_name}'s appointment"

    def _when(self, appointment: Optional[AppointmentRecord]) -> str:
        if appointment is None:
            return "the requested time"
        return appointment.start.strftime("%Y-%m-%d %H:%M")


# Singleton
_renderer: Optional[ResponseRenderer] = None


def get_response_renderer() -> ResponseRenderer:
    """Get singleton ResponseRenderer."""
    global _renderer
    if _renderer is None:
        _renderer = ResponseRenderer()
    return _renderer
