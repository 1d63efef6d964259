"""Tests for the command intent router."""

import asyncio
from dataclasses import replace
from datetime import time
from unittest.mock import AsyncMock, patch

import pytest
from conftest import MONDAY, TUESDAY, WEDNESDAY, at, make_record

from podiatry_scheduler.core.intelligence.intent.types import Intent, ParsedIntent
from podiatry_scheduler.core.scheduling.commander import BookingCommander
from podiatry_scheduler.core.scheduling.errors import ConflictDetected, StoreError
from podiatry_scheduler.core.scheduling.router import (
    CommandIntentRouter,
    Outcome,
    RouterResult,
)
from podiatry_scheduler.core.scheduling.types import (
    AppointmentStatus,
    BookingRequest,
    OverrideType,
    ScheduleOverride,
)


@pytest.fixture
def commander(store):
    return BookingCommander(store)


@pytest.fixture
def router(store, commander):
    return CommandIntentRouter(store, commander, max_attempts=3)


def schedule(name="Carlos Sanchez", service="pedicure", day=MONDAY, clock=time(10, 0), **extra):
    return ParsedIntent(
        intent=Intent.SCHEDULE,
        patient_name=name,
        requested_service=service,
        requested_date=day,
        requested_time=clock,
        **extra,
    )


class TestSchedule:
    """Schedule intent."""

    @pytest.mark.asyncio
    async def test_books_first_professional_by_id(self, router):
        result = await router.dispatch(schedule(), current_date=MONDAY)

        assert result.outcome == Outcome.BOOKED
        assert result.ok
        assert result.appointment.professional_id == "pro-a"
        assert result.professional_name == "Ana Torres"
        assert result.service_name == "Pedicure"

    @pytest.mark.asyncio
    async def test_tuesday_end_of_day(self, router):
        """Pedicure at 12:45 runs past 13:00; 12:00 fits once."""
        late = await router.dispatch(schedule(day=TUESDAY, clock=time(12, 45)), MONDAY)
        first = await router.dispatch(schedule(day=TUESDAY, clock=time(12, 0)), MONDAY)
        second = await router.dispatch(
            schedule(name="Lucia Perez", day=TUESDAY, clock=time(12, 0)), MONDAY
        )

        assert late.outcome == Outcome.NO_AVAILABILITY
        assert first.outcome == Outcome.BOOKED
        assert first.appointment.start == at(TUESDAY, "12:00")
        assert first.appointment.duration_minutes == 30
        assert second.outcome == Outcome.NO_AVAILABILITY
        assert "pro-a" in second.rejections

    @pytest.mark.asyncio
    async def test_preferred_professional_by_name(self, router):
        result = await router.dispatch(schedule(professional_name="bruno"), MONDAY)

        assert result.appointment.professional_id == "pro-b"

    @pytest.mark.asyncio
    async def test_unknown_professional_name_ignored(self, router):
        result = await router.dispatch(schedule(professional_name="Dr. Nobody"), MONDAY)

        assert result.appointment.professional_id == "pro-a"

    @pytest.mark.asyncio
    async def test_incomplete(self, router):
        parsed = ParsedIntent(intent=Intent.SCHEDULE, patient_name="Carlos Sanchez")

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.INCOMPLETE
        assert result.missing_fields == ["service", "date", "time"]

    @pytest.mark.asyncio
    async def test_blank_patient_name_is_missing(self, router, store):
        result = await router.dispatch(schedule(name="   "), MONDAY)

        assert result.outcome == Outcome.INCOMPLETE
        assert result.missing_fields == ["patient_name"]
        assert await store.list_bookings_for_date(MONDAY) == []

    @pytest.mark.asyncio
    async def test_patient_name_is_trimmed(self, router):
        result = await router.dispatch(schedule(name="  Carlos Sanchez "), MONDAY)

        assert result.appointment.patient_name == "Carlos Sanchez"

    @pytest.mark.asyncio
    async def test_unknown_intent(self, router):
        result = await router.dispatch(ParsedIntent(), MONDAY)

        assert result.outcome == Outcome.INCOMPLETE
        assert result.missing_fields == ["intent"]

    @pytest.mark.asyncio
    async def test_service_not_found(self, router):
        result = await router.dispatch(schedule(service="massage"), MONDAY)

        assert result.outcome == Outcome.SERVICE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_service_sharing_a_prefix_is_not_booked(self, router, store):
        result = await router.dispatch(schedule(service="Quirofano"), MONDAY)

        assert result.outcome == Outcome.SERVICE_NOT_FOUND
        assert await store.list_bookings_for_date(MONDAY) == []

    @pytest.mark.asyncio
    async def test_service_shorthand(self, router):
        result = await router.dispatch(schedule(service="quir"), MONDAY)

        assert result.service_name == "Quiropodia"
        assert result.appointment.duration_minutes == 60

    @pytest.mark.asyncio
    async def test_no_one_working(self, router):
        result = await router.dispatch(schedule(day=WEDNESDAY), MONDAY)

        assert result.outcome == Outcome.NO_AVAILABILITY
        assert not result.ok
        assert set(result.rejections) == {"pro-a", "pro-b"}

    @pytest.mark.asyncio
    async def test_patient_reused(self, router, store):
        first = await router.dispatch(schedule(clock=time(10, 0)), MONDAY)
        second = await router.dispatch(schedule(clock=time(11, 0)), MONDAY)

        assert first.appointment.patient_id == second.appointment.patient_id

    @pytest.mark.asyncio
    async def test_concurrent_schedules_use_different_professionals(self, router, store):
        results = await asyncio.gather(
            router.dispatch(schedule(name="Carlos Sanchez"), MONDAY),
            router.dispatch(schedule(name="Lucia Perez"), MONDAY),
        )

        assert {r.outcome for r in results} == {Outcome.BOOKED}
        assert {r.appointment.professional_id for r in results} == {"pro-a", "pro-b"}
        assert len(await store.list_bookings_for_date(MONDAY)) == 2


class TestConflictRetry:
    """Re-resolution after a lost race."""

    @pytest.mark.asyncio
    async def test_retries_after_conflict(self, router, commander, store):
        """A booking that lands between resolve and commit forces a fresh resolve."""
        real_create = commander.create
        attempted = []

        async def lose_first_race(assignment):
            attempted.append(assignment.professional.id)
            if len(attempted) == 1:
                store.add_appointment(make_record("race", assignment.professional.id, assignment.start))
                raise ConflictDetected("raced")
            return await real_create(assignment)

        with patch.object(commander, "create", side_effect=lose_first_race):
            result = await router.dispatch(schedule(), MONDAY)

        assert result.outcome == Outcome.BOOKED
        assert attempted == ["pro-a", "pro-b"]
        assert result.appointment.professional_id == "pro-b"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, store, commander):
        router = CommandIntentRouter(store, commander, max_attempts=2)

        with patch.object(
            commander, "create", AsyncMock(side_effect=ConflictDetected("raced"))
        ) as create:
            result = await router.dispatch(schedule(), MONDAY)

        assert result.outcome == Outcome.CONFLICT
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_store_failure_is_error(self, router, store):
        with patch.object(
            store, "list_bookings_for_date", AsyncMock(side_effect=StoreError("down"))
        ):
            result = await router.dispatch(schedule(), MONDAY)

        assert result.outcome == Outcome.ERROR
        assert result.message == "down"


class TestRescheduleAndCancel:
    """Lookup-based intents."""

    @pytest.mark.asyncio
    async def test_reschedule(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        parsed = ParsedIntent(
            intent=Intent.RESCHEDULE,
            patient_name="carlos",
            requested_date=MONDAY,
            new_date=TUESDAY,
            new_time=time(9, 30),
        )

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.RESCHEDULED
        assert result.appointment.start == at(TUESDAY, "09:30")

    @pytest.mark.asyncio
    async def test_blank_name_never_matches(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        cancel = ParsedIntent(intent=Intent.CANCEL, patient_name="  ", requested_date=MONDAY)
        move = ParsedIntent(
            intent=Intent.RESCHEDULE,
            patient_name=" ",
            requested_date=MONDAY,
            new_date=TUESDAY,
            new_time=time(9, 30),
        )

        cancelled = await router.dispatch(cancel, MONDAY)
        moved = await router.dispatch(move, MONDAY)

        assert cancelled.outcome == moved.outcome == Outcome.INCOMPLETE
        assert cancelled.missing_fields == moved.missing_fields == ["patient_name"]
        assert (await store.get_appointment("1")).status == AppointmentStatus.BOOKED

    @pytest.mark.asyncio
    async def test_reschedule_conflict(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        parsed = ParsedIntent(
            intent=Intent.RESCHEDULE,
            patient_name="Carlos Sanchez",
            requested_date=MONDAY,
            new_date=WEDNESDAY,
            new_time=time(10, 0),
        )

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.CONFLICT

    @pytest.mark.asyncio
    async def test_reschedule_incomplete(self, router):
        parsed = ParsedIntent(intent=Intent.RESCHEDULE, patient_name="Carlos", requested_date=MONDAY)

        result = await router.dispatch(parsed, MONDAY)

        assert result.missing_fields == ["new_date", "new_time"]

    @pytest.mark.asyncio
    async def test_cancel(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        parsed = ParsedIntent(intent=Intent.CANCEL, patient_name="Sanchez", requested_date=MONDAY)

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.CANCELLED
        assert result.appointment.status == AppointmentStatus.CANCELLED_STAFF

    @pytest.mark.asyncio
    async def test_cancel_not_found(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        parsed = ParsedIntent(intent=Intent.CANCEL, patient_name="Perez", requested_date=MONDAY)

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_cancelled_appointments_not_matched(self, router, store):
        store.add_appointment(
            make_record("1", "pro-a", at(MONDAY, "10:00"), status=AppointmentStatus.CANCELLED_PATIENT)
        )
        store.add_appointment(make_record("2", "pro-a", at(MONDAY, "11:00")))
        parsed = ParsedIntent(intent=Intent.CANCEL, patient_name="Carlos", requested_date=MONDAY)

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.CANCELLED
        assert result.appointment.id == "2"

    @pytest.mark.asyncio
    async def test_ambiguous(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        store.add_appointment(make_record("2", "pro-b", at(MONDAY, "11:00")))
        parsed = ParsedIntent(intent=Intent.CANCEL, patient_name="Carlos", requested_date=MONDAY)

        result = await router.dispatch(parsed, MONDAY)

        assert result.outcome == Outcome.AMBIGUOUS
        assert [c.id for c in result.candidates] == ["1", "2"]
        assert (await store.get_appointment("1")).status == AppointmentStatus.BOOKED


class TestQuery:
    """Query intent."""

    @pytest.mark.asyncio
    async def test_lists_day(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))
        store.add_appointment(make_record("2", "pro-a", at(TUESDAY, "10:00")))

        result = await router.dispatch(
            ParsedIntent(intent=Intent.QUERY, requested_date=MONDAY), MONDAY
        )

        assert result.outcome == Outcome.LISTED
        assert [a.id for a in result.appointments] == ["1"]

    @pytest.mark.asyncio
    async def test_without_date_or_location(self, router):
        result = await router.dispatch(ParsedIntent(intent=Intent.QUERY), MONDAY)

        assert result.outcome == Outcome.INCOMPLETE
        assert result.missing_fields == ["date"]

    @pytest.mark.asyncio
    async def test_without_date_uses_today_for_location(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))

        result = await router.dispatch(
            ParsedIntent(intent=Intent.QUERY), current_date=MONDAY, location_id="loc-1"
        )

        assert [a.id for a in result.appointments] == ["1"]


class TestLocations:
    """Candidates follow the working location of the day."""

    @pytest.fixture
    def transferred(self, store, professional_b):
        professional = replace(
            professional_b,
            schedule_overrides=(
                ScheduleOverride(
                    date=MONDAY,
                    is_working=True,
                    override_type=OverrideType.TRANSFER,
                    location_id="loc-2",
                ),
            ),
        )
        store.add_professional(professional)
        return professional

    @pytest.mark.asyncio
    async def test_transfer_counts_at_new_location(self, router, transferred):
        result = await router.dispatch(schedule(), MONDAY, location_id="loc-2")

        assert result.appointment.professional_id == "pro-b"
        assert result.appointment.location_id == "loc-2"

    @pytest.mark.asyncio
    async def test_transferred_professional_leaves_home_location(self, router, store, transferred):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))

        result = await router.dispatch(schedule(name="Lucia Perez"), MONDAY, location_id="loc-1")

        assert result.outcome == Outcome.NO_AVAILABILITY

    @pytest.mark.asyncio
    async def test_unknown_location_has_no_candidates(self, router):
        result = await router.dispatch(schedule(), MONDAY, location_id="loc-9")

        assert result.outcome == Outcome.NO_AVAILABILITY


class TestStaffEntryPoints:
    """book / reschedule_appointment / cancel_appointment / list_day."""

    @pytest.mark.asyncio
    async def test_book_by_service_id(self, router):
        request = BookingRequest(
            patient_name="Lucia Perez",
            service_id="svc-quir",
            requested_date=MONDAY,
            requested_time=time(9, 0),
            preferred_professional_id="pro-b",
        )

        result = await router.book(request)

        assert result.outcome == Outcome.BOOKED
        assert result.appointment.professional_id == "pro-b"
        assert result.appointment.end == at(MONDAY, "10:00")

    @pytest.mark.asyncio
    async def test_book_unknown_service(self, router):
        request = BookingRequest(
            patient_name="Lucia Perez",
            service_id="svc-none",
            requested_date=MONDAY,
            requested_time=time(9, 0),
        )

        result = await router.book(request)

        assert result.outcome == Outcome.SERVICE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_book_blank_patient(self, router):
        request = BookingRequest(
            patient_name="  ",
            service_id="svc-pedi",
            requested_date=MONDAY,
            requested_time=time(9, 0),
        )

        result = await router.book(request)

        assert result.missing_fields == ["patient_name"]

    @pytest.mark.asyncio
    async def test_cancel_appointment_twice(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))

        first = await router.cancel_appointment("1")
        second = await router.cancel_appointment("1")

        assert first.outcome == second.outcome == Outcome.CANCELLED

    @pytest.mark.asyncio
    async def test_reschedule_unknown_id(self, router):
        result = await router.reschedule_appointment("missing", MONDAY, time(10, 0))

        assert result.outcome == Outcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_day(self, router, store):
        store.add_appointment(make_record("1", "pro-a", at(MONDAY, "10:00")))

        result = await router.list_day(MONDAY)

        assert result.outcome == Outcome.LISTED
        assert len(result.appointments) == 1

    def test_to_dict(self):
        result = RouterResult(
            outcome=Outcome.NOT_FOUND, intent=Intent.CANCEL, message="No appointment"
        )

        assert result.to_dict() == {
            "outcome": "not_found",
            "intent": "cancel",
            "message": "No appointment",
        }
