"""Intent types produced by the intent parser."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional


class Intent(str, Enum):
    """Scheduling command categories."""

    SCHEDULE = "schedule"        # Book new appointment
    RESCHEDULE = "reschedule"    # Move existing appointment
    CANCEL = "cancel"            # Cancel existing appointment
    QUERY = "query"              # List appointments of a date

    # Fallback
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Intent":
        """Lenient conversion; anything unrecognized is UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


_TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?:\s*[:h.\s]\s*(\d{2}))?\s*$")


def parse_date_field(value: Any) -> Optional[date]:
    """YYYY-MM-DD string (or date) to date; anything else is None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_time_field(value: Any) -> Optional[time]:
    """HH:MM, "9", "9 30" or "9h30" to time; anything else is None."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    match = _TIME_PATTERN.match(str(value))
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    if not text or text.lower() in ("null", "none"):
        return None
    return text


@dataclass
class ParsedIntent:
    """Structured command extracted from free text.

    Every field is optional and untrusted: the router validates completeness.
    """

    intent: Intent = Intent.UNKNOWN

    patient_name: Optional[str] = None
    requested_service: Optional[str] = None
    requested_date: Optional[date] = None     # Booking date, or original date
    requested_time: Optional[time] = None
    new_date: Optional[date] = None           # Reschedule target
    new_time: Optional[time] = None
    professional_name: Optional[str] = None   # Soft preference
    location_id: Optional[str] = None

    # Raw LLM output for debugging
    raw_response: Optional[str] = None
    processing_time_ms: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ParsedIntent":
        """Build from parser JSON, normalizing every field."""
        return cls(
            intent=Intent.parse(data.get("intent")),
            patient_name=_clean_text(data.get("patient_name")),
            requested_service=_clean_text(data.get("requested_service")),
            requested_date=parse_date_field(data.get("requested_date")),
            requested_time=parse_time_field(data.get("requested_time")),
            new_date=parse_date_field(data.get("new_date")),
            new_time=parse_time_field(data.get("new_time")),
            professional_name=_clean_text(data.get("professional_name")),
            location_id=_clean_text(data.get("location_id")),
        )

    @property
    def is_booking_related(self) -> bool:
        return self.intent != Intent.UNKNOWN

    def to_dict(self) -> dict:
        """Convert to dict, excluding None values."""
        result: dict[str, Any] = {"intent": self.intent.value}
        if self.patient_name:
            result["patient_name"] = self.patient_name
        if self.requested_service:
            result["requested_service"] = self.requested_service
        if self.requested_date:
            result["requested_date"] = self.requested_date.isoformat()
        if self.requested_time:
            result["requested_time"] = self.requested_time.strftime("%H:%M")
        if self.new_date:
            result["new_date"] = self.new_date.isoformat()
        if self.new_time:
            result["new_time"] = self.new_time.strftime("%H:%M")
        if self.professional_name:
            result["professional_name"] = self.professional_name
        if self.location_id:
            result["location_id"] = self.location_id
        return result
