"""Tests for reply rendering."""

import pytest
from conftest import MONDAY, at, make_record

from podiatry_scheduler.core.intelligence.intent.types import Intent
from podiatry_scheduler.core.scheduling.response import ResponseRenderer
from podiatry_scheduler.core.scheduling.router import Outcome, RouterResult


class TestResponseRenderer:
    """Test template replies per outcome."""

    @pytest.fixture
    def renderer(self):
        return ResponseRenderer()

    def test_booked(self, renderer):
        result = RouterResult(
            outcome=Outcome.BOOKED,
            intent=Intent.SCHEDULE,
            message="Booked",
            appointment=make_record("1", "pro-a", at(MONDAY, "16:00"), duration=60),
            professional_name="Ana Torres",
            service_name="Quiropodia",
        )

        assert renderer.render(result) == (
            "Booked: Quiropodia for Carlos Sanchez with Ana Torres on 2024-06-10 16:00 (60 min)."
        )

    def test_no_availability(self, renderer):
        result = RouterResult(
            outcome=Outcome.NO_AVAILABILITY,
            intent=Intent.SCHEDULE,
            message="none",
            service_name="Pedicure",
        )

        reply = renderer.render(result)

        assert "Pedicure" in reply
        assert "another time" in reply

    def test_incomplete_lists_fields(self, renderer):
        result = RouterResult(
            outcome=Outcome.INCOMPLETE,
            intent=Intent.SCHEDULE,
            message="missing",
            missing_fields=["patient_name", "date", "time"],
        )

        assert renderer.render(result) == "I still need the patient's name, the date and the time."

    def test_single_missing_field(self, renderer):
        assert renderer.ask_for(["service"]) == "I still need the service."

    def test_day_listing(self, renderer):
        appointments = [
            make_record("1", "pro-a", at(MONDAY, "09:00")),
            make_record("2", "pro-a", at(MONDAY, "10:00"), patient_name="Lucia Perez"),
        ]

        text = renderer.format_day(appointments)

        assert text.splitlines() == [
            "2 appointment(s):",
            "  - 09:00 Carlos Sanchez (30 min)",
            "  - 10:00 Lucia Perez (30 min)",
        ]

    def test_empty_day(self, renderer):
        result = RouterResult(outcome=Outcome.LISTED, intent=Intent.QUERY, message="", appointments=[])

        assert renderer.render(result) == "No appointments for that day."

    def test_ambiguous_lists_candidates(self, renderer):
        result = RouterResult(
            outcome=Outcome.AMBIGUOUS,
            intent=Intent.CANCEL,
            message="2 match",
            candidates=[
                make_record("1", "pro-a", at(MONDAY, "09:00")),
                make_record("2", "pro-b", at(MONDAY, "11:30")),
            ],
        )

        reply = renderer.render(result)

        assert "09:00" in reply and "11:30" in reply

    def test_error_is_generic(self, renderer):
        result = RouterResult(outcome=Outcome.ERROR, intent=Intent.SCHEDULE, message="pool exhausted")

        reply = renderer.render(result)

        assert "pool exhausted" not in reply
        assert "try again" in reply

    def test_cancelled(self, renderer):
        result = RouterResult(
            outcome=Outcome.CANCELLED,
            intent=Intent.CANCEL,
            message="",
            appointment=make_record("1", "pro-a", at(MONDAY, "09:00")),
        )

        assert renderer.render(result) == "Cancelled: Carlos Sanchez's appointment on 2024-06-10 09:00."
