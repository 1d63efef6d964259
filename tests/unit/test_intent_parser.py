"""Tests for intent types and the Claude-backed intent parser."""

from datetime import date, time
from unittest.mock import AsyncMock, MagicMock

import pytest

from podiatry_scheduler.core.intelligence.intent import (
    Intent,
    IntentParser,
    ParsedIntent,
    parse_date_field,
    parse_time_field,
)
from podiatry_scheduler.infra.claude import ClaudeClientError


class TestFieldParsing:
    """Lenient normalization of parser output."""

    def test_time_formats(self):
        assert parse_time_field("09:30") == time(9, 30)
        assert parse_time_field("9") == time(9, 0)
        assert parse_time_field("9 30") == time(9, 30)
        assert parse_time_field("9h30") == time(9, 30)
        assert parse_time_field("14.15") == time(14, 15)

    def test_invalid_times(self):
        assert parse_time_field("25:00") is None
        assert parse_time_field("morning") is None
        assert parse_time_field(None) is None

    def test_dates(self):
        assert parse_date_field("2024-06-11") == date(2024, 6, 11)
        assert parse_date_field("2024-06-11T10:00:00") == date(2024, 6, 11)
        assert parse_date_field("next tuesday") is None
        assert parse_date_field("") is None

    def test_intent_parse(self):
        assert Intent.parse("Schedule") == Intent.SCHEDULE
        assert Intent.parse("book") == Intent.UNKNOWN
        assert Intent.parse(None) == Intent.UNKNOWN


class TestParsedIntent:
    """ParsedIntent construction and serialization."""

    def test_from_dict_normalizes(self):
        parsed = ParsedIntent.from_dict({
            "intent": "reschedule",
            "patient_name": "  carlos   sanchez ",
            "requested_service": "null",
            "requested_date": "2024-06-10",
            "new_date": "2024-06-11",
            "new_time": "9 30",
        })

        assert parsed.intent == Intent.RESCHEDULE
        assert parsed.patient_name == "carlos sanchez"
        assert parsed.requested_service is None
        assert parsed.new_time == time(9, 30)
        assert parsed.is_booking_related

    def test_to_dict_skips_empty(self):
        parsed = ParsedIntent(
            intent=Intent.SCHEDULE,
            patient_name="Carlos Sanchez",
            requested_time=time(16, 0),
        )

        assert parsed.to_dict() == {
            "intent": "schedule",
            "patient_name": "Carlos Sanchez",
            "requested_time": "16:00",
        }


class TestIntentParser:
    """Test the parser against a mocked Claude client."""

    @pytest.fixture
    def mock_claude(self):
        """Create mock Claude client."""
        mock = MagicMock()
        mock.generate_json = AsyncMock()
        return mock

    @pytest.fixture
    def parser(self, mock_claude):
        return IntentParser(claude_client=mock_claude)

    @pytest.mark.asyncio
    async def test_staff_shorthand(self, parser, mock_claude):
        """Test '4 carlos sanchez quir' dictation."""
        mock_claude.generate_json.return_value = (
            {
                "intent": "schedule",
                "patient_name": "Carlos Sanchez",
                "requested_service": "Quiropodia",
                "requested_date": "2024-06-10",
                "requested_time": "16:00",
            },
            "{...}",
        )

        parsed = await parser.parse("4 carlos sanchez quir", date(2024, 6, 10), ["Quiropodia"])

        assert parsed.intent == Intent.SCHEDULE
        assert parsed.requested_time == time(16, 0)
        assert parsed.requested_date == date(2024, 6, 10)
        assert parsed.raw_response == "{...}"

    @pytest.mark.asyncio
    async def test_prompt_carries_context(self, parser, mock_claude):
        mock_claude.generate_json.return_value = ({"intent": "query"}, "{}")

        await parser.parse("what's on today", date(2024, 6, 11), ["Pedicure"])

        prompt = mock_claude.generate_json.call_args.args[0]
        assert "2024-06-11 (Tuesday)" in prompt
        assert '"Pedicure" (abbreviation: pedi)' in prompt
        assert "what's on today" in prompt

    @pytest.mark.asyncio
    async def test_empty_text_skips_model(self, parser, mock_claude):
        parsed = await parser.parse("   ", date(2024, 6, 10))

        assert parsed.intent == Intent.UNKNOWN
        mock_claude.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self, parser, mock_claude):
        mock_claude.generate_json.side_effect = ClaudeClientError("down")

        with pytest.raises(ClaudeClientError):
            await parser.parse("cancel carlos", date(2024, 6, 10))

    @pytest.mark.asyncio
    async def test_garbage_fields_become_none(self, parser, mock_claude):
        mock_claude.generate_json.return_value = (
            {"intent": "cancel", "requested_date": "tomorrow", "requested_time": "noonish"},
            "{}",
        )

        parsed = await parser.parse("cancel carlos tomorrow", date(2024, 6, 10))

        assert parsed.intent == Intent.CANCEL
        assert parsed.requested_date is None
        assert parsed.requested_time is None
