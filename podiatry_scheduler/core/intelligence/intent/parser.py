"""
LLM-based intent parser using Claude.

Turns a staff dictation, email body or WhatsApp message into a ParsedIntent.
The parser never decides whether a command is complete; the router does.
"""

import logging
import time
from datetime import date
from typing import Optional, Sequence

from podiatry_scheduler.infra.claude import ClaudeClient, ClaudeClientError, get_claude_client
from .types import Intent, ParsedIntent

logger = logging.getLogger(__name__)


PARSE_PROMPT = """You extract appointment commands for a podiatry clinic.
Today is {current_date} ({current_weekday}). Messages may be in Spanish or English.

## Intents
- schedule: book a NEW appointment
- reschedule: MOVE an existing appointment to another date/time
- cancel: CANCEL an existing appointment
- query: LIST appointments of a date
- unknown: anything else

## Interpretation rules
1. Staff shorthand is usually "[HOUR] [PATIENT NAME] [SERVICE]", e.g. "9 carlos sanchez podo".
2. A bare hour from 9 to 12 is morning (09:00-12:00). A bare hour from 1 to 8 is
   afternoon: convert to 24h (1 -> 13:00, 8 -> 20:00). "9 30" means 09:30.
3. If no date is given for schedule, use today. "mañana"/"tomorrow" is the day after
   today; weekday names mean the next such day.
4. Services offered (abbreviations are the first letters of the name; "podo" means Quiropodia):
{service_list}
5. For reschedule/cancel, requested_date is the ORIGINAL appointment date and
   new_date/new_time the target.
6. Leave fields null when not mentioned. Never invent a patient name.

## Message
\"\"\"{message}\"\"\"

## Response
Respond with ONLY valid JSON:
{{
    "intent": "<schedule|reschedule|cancel|query|unknown>",
    "patient_name": "<full name or null>",
    "requested_service": "<service name or null>",
    "requested_date": "<YYYY-MM-DD or null>",
    "requested_time": "<HH:MM or null>",
    "new_date": "<YYYY-MM-DD or null>",
    "new_time": "<HH:MM or null>",
    "professional_name": "<name or null>"
}}"""


class IntentParser:
    """Claude-backed parser from free text to ParsedIntent."""

    def __init__(self, claude_client: Optional[ClaudeClient] = None):
        """Initialize parser.

        Args:
            claude_client: Optional Claude client (for testing)
        """
        self._client = claude_client

    async def _get_client(self) -> ClaudeClient:
        """Get or create Claude client."""
        if self._client is None:
            self._client = await get_claude_client()
        return self._client

    async def parse(
        self,
        text: str,
        current_date: date,
        service_names: Sequence[str] = (),
    ) -> ParsedIntent:
        """
        Parse a command.

        Args:
            text: raw message
            current_date: clinic-local today, for relative dates
            service_names: catalog names to help map abbreviations

        Returns:
            ParsedIntent (intent UNKNOWN when the text is empty)

        Raises:
            ClaudeClientError: if the model is unreachable or returns garbage
        """
        text = text.strip()
        start_time = time.time()

        if not text:
            return ParsedIntent(intent=Intent.UNKNOWN)

        prompt = self._build_prompt(text, current_date, service_names)
        client = await self._get_client()

        data, raw = await client.generate_json(prompt, max_tokens=300, temperature=0)

        parsed = ParsedIntent.from_dict(data)
        parsed.raw_response = raw
        parsed.processing_time_ms = (time.time() - start_time) * 1000

        logger.debug(
            f"Parsed intent={parsed.intent.value} date={parsed.requested_date} "
            f"time={parsed.requested_time} service={parsed.requested_service}"
        )
        return parsed

    def _build_prompt(
        self,
        text: str,
        current_date: date,
        service_names: Sequence[str],
    ) -> str:
        """Fill the prompt template."""
        if service_names:
            service_list = "\n".join(
                f'   - "{name}" (abbreviation: {name[:4].lower()})' for name in service_names
            )
        else:
            service_list = "   (catalog unavailable)"

        return PARSE_PROMPT.format(
            current_date=current_date.isoformat(),
            current_weekday=current_date.strftime("%A"),
            service_list=service_list,
            message=text.replace('"""', "'''"),
        )


# Singleton
_parser: Optional[IntentParser] = None


def get_intent_parser() -> IntentParser:
    """Get singleton IntentParser."""
    global _parser
    if _parser is None:
        _parser = IntentParser()
    return _parser


async def parse_intent(
    text: str,
    current_date: date,
    service_names: Sequence[str] = (),
) -> ParsedIntent:
    """Convenience function to parse a command."""
    return await get_intent_parser().parse(text, current_date, service_names)


__all__ = [
    "IntentParser",
    "get_intent_parser",
    "parse_intent",
    "ClaudeClientError",
]
