"""Tests for the calendar model (weekly template + overrides)."""

from dataclasses import replace
from datetime import date, time

from conftest import MONDAY, TUESDAY, WEDNESDAY

from podiatry_scheduler.core.scheduling.calendar import resolve_work_day
from podiatry_scheduler.core.scheduling.types import (
    DayOfWeek,
    OverrideType,
    ScheduleOverride,
    WeeklyShift,
)


class TestWeeklyTemplate:
    """Days without overrides."""

    def test_template_day(self, professional_a):
        day = resolve_work_day(professional_a, TUESDAY)

        assert day.is_working
        assert day.start_time == time(9, 0)
        assert day.end_time == time(13, 0)
        assert day.reason == "base schedule"
        assert day.working_location_id == "loc-1"

    def test_day_without_template_entry_is_off(self, professional_a):
        day = resolve_work_day(professional_a, WEDNESDAY)

        assert not day.is_working

    def test_template_entry_marked_not_working(self, professional_a):
        professional = replace(
            professional_a,
            work_schedule={DayOfWeek.MONDAY: WeeklyShift(time(9), time(18), is_working=False)},
        )

        assert not resolve_work_day(professional, MONDAY).is_working

    def test_bounds(self, professional_a):
        start, end = resolve_work_day(professional_a, TUESDAY).bounds(TUESDAY)

        assert start.isoformat() == "2024-06-11T09:00:00"
        assert end.isoformat() == "2024-06-11T13:00:00"


class TestOverrides:
    """Date overrides always win over the template."""

    def test_day_off_override_wins(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(
                ScheduleOverride(
                    date=date(2024, 6, 10),
                    is_working=False,
                    override_type=OverrideType.DAY_OFF,
                    notes="vacation",
                ),
            ),
        )

        day = resolve_work_day(professional, MONDAY)

        assert not day.is_working
        assert "vacation" in day.reason

    def test_special_shift_on_day_off(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(
                ScheduleOverride(
                    date=WEDNESDAY,
                    is_working=True,
                    start_time=time(14, 0),
                    end_time=time(19, 0),
                ),
            ),
        )

        day = resolve_work_day(professional, WEDNESDAY)

        assert day.is_working
        assert (day.start_time, day.end_time) == (time(14, 0), time(19, 0))

    def test_working_override_without_hours_keeps_template_hours(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(ScheduleOverride(date=TUESDAY, is_working=True),),
        )

        day = resolve_work_day(professional, TUESDAY)

        assert day.is_working
        assert (day.start_time, day.end_time) == (time(9, 0), time(13, 0))

    def test_working_override_without_hours_or_template_is_off(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(ScheduleOverride(date=WEDNESDAY, is_working=True),),
        )

        assert not resolve_work_day(professional, WEDNESDAY).is_working

    def test_transfer_sets_working_location(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(
                ScheduleOverride(
                    date=MONDAY,
                    is_working=True,
                    override_type=OverrideType.TRANSFER,
                    start_time=time(9, 0),
                    end_time=time(14, 0),
                    location_id="loc-2",
                ),
            ),
        )

        day = resolve_work_day(professional, MONDAY)

        assert day.working_location_id == "loc-2"
        assert day.end_time == time(14, 0)

    def test_override_only_applies_to_its_date(self, professional_a):
        professional = replace(
            professional_a,
            schedule_overrides=(ScheduleOverride(date=MONDAY, is_working=False),),
        )

        assert resolve_work_day(professional, TUESDAY).is_working


class TestContract:
    """Recorded contract periods restrict working days."""

    def test_before_contract_start(self, professional_a):
        professional = replace(professional_a, contract_start=date(2024, 7, 1))

        day = resolve_work_day(professional, MONDAY)

        assert not day.is_working
        assert day.reason == "contract inactive"

    def test_after_contract_end(self, professional_a):
        professional = replace(professional_a, contract_end=date(2024, 6, 10))

        assert resolve_work_day(professional, MONDAY).is_working
        assert not resolve_work_day(professional, TUESDAY).is_working

    def test_no_contract_is_unrestricted(self, professional_a):
        assert resolve_work_day(professional_a, MONDAY).is_working
