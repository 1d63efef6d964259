"""Intent parsing module."""

from .types import Intent, ParsedIntent, parse_date_field, parse_time_field
from .parser import (
    IntentParser,
    get_intent_parser,
    parse_intent,
)

__all__ = [
    # Types
    "Intent",
    "ParsedIntent",
    "parse_date_field",
    "parse_time_field",
    # Parser
    "IntentParser",
    "get_intent_parser",
    "parse_intent",
]
