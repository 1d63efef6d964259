"""
Intelligence Module

Natural-language command parsing for scheduling channels.

Usage:
    from podiatry_scheduler.core.intelligence import parse_intent

    parsed = await parse_intent("9 carlos sanchez podo", current_date=today)
    print(parsed.intent)  # Intent.SCHEDULE
"""

from podiatry_scheduler.core.intelligence.intent import (
    Intent,
    IntentParser,
    ParsedIntent,
    get_intent_parser,
    parse_intent,
)

__all__ = [
    "Intent",
    "IntentParser",
    "ParsedIntent",
    "get_intent_parser",
    "parse_intent",
]
