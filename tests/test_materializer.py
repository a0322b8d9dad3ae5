"""Tests for CalendarMaterializationService."""

import logging
from datetime import date, datetime

import pytest

from planner import (
    CalendarMaterializationService,
    MaterializedEntry,
    OverrideType,
    Schedule,
    ScheduleEntry,
    SchedulePhase,
    build_override,
)
from planner.materializer import earliest_and_latest_phase_dates


@pytest.fixture
def service():
    return CalendarMaterializationService()


def skip(base_entry_id, on, override_id="skip-1"):
    return build_override(override_id, "S1", on, "SKIP", base_entry_id=base_entry_id)


def modify(base_entry_id, on, override_id="mod-1", **data):
    return build_override(override_id, "S1", on, "MODIFY", base_entry_id=base_entry_id, override_data=data)


def one_time(on, name, start, duration, override_id="one-1"):
    return build_override(
        override_id, "S1", on, "ONE_TIME",
        override_data={"name": name, "start_time_minutes": start, "duration_minutes": duration},
    )


def block(entry_id, start, duration):
    return MaterializedEntry(
        id=entry_id, name=entry_id, day_of_week=1,
        start_time_minutes=start, duration_minutes=duration, date="2024-07-01",
    )


class TestMaterializeForDate:

    def test_end_to_end_skip(self, service, schedule):
        overrides = [skip("E1", "2024-07-01")]

        assert service.materialize_schedule_for_date(schedule, date(2024, 7, 1), overrides) == []
        result = service.materialize_schedule_for_date(schedule, date(2024, 7, 8), overrides)
        assert result == [
            MaterializedEntry(
                id="E1", name="Gym", day_of_week=1, start_time_minutes=420,
                duration_minutes=60, date="2024-07-08", is_override=False, phase_id="P1",
            )
        ]

    def test_skip_only_targets_its_date(self, service, schedule):
        overrides = [skip("E1", "2024-07-08")]
        for day, expected in [("2024-07-01", ["E1"]), ("2024-07-08", []), ("2024-07-15", ["E1"])]:
            result = service.materialize_schedule_for_date(schedule, day, overrides)
            assert [e.id for e in result] == expected
        skipped_day = service.materialize_schedule_for_date(schedule, "2024-07-08", overrides)
        assert not any(e.base_entry_id == "E1" for e in skipped_day)

    def test_other_weekdays_are_empty(self, service, schedule):
        assert service.materialize_schedule_for_date(schedule, "2024-07-02", []) == []

    def test_modify_partial_fallback(self, service, schedule):
        overrides = [modify("E1", "2024-07-01", start_time_minutes=660)]

        [entry] = service.materialize_schedule_for_date(schedule, "2024-07-01", overrides)
        assert entry.id == "mod-1"
        assert entry.is_override is True
        assert entry.override_type is OverrideType.MODIFY
        assert entry.base_entry_id == "E1"
        assert entry.phase_id == "P1"
        assert entry.start_time_minutes == 660
        assert entry.duration_minutes == 60
        assert entry.name == "Gym"

    def test_modify_all_fields(self, service, schedule):
        overrides = [modify("E1", "2024-07-01", name="Yoga", start_time_minutes=600, duration_minutes=90)]
        [entry] = service.materialize_schedule_for_date(schedule, "2024-07-01", overrides)
        assert (entry.name, entry.start_time_minutes, entry.duration_minutes) == ("Yoga", 600, 90)

    def test_skip_wins_over_modify(self, service, schedule):
        overrides = [modify("E1", "2024-07-01", name="Yoga"), skip("E1", "2024-07-01")]
        assert service.materialize_schedule_for_date(schedule, "2024-07-01", overrides) == []

    def test_one_time_on_empty_day(self, service, schedule):
        overrides = [one_time("2024-07-03", "Dentist", 600, 30)]

        [entry] = service.materialize_schedule_for_date(schedule, "2024-07-03", overrides)
        assert entry.is_override is True
        assert entry.override_type is OverrideType.ONE_TIME
        assert entry.base_entry_id is None
        assert entry.phase_id is None
        assert entry.day_of_week == 3
        assert entry.date == "2024-07-03"

    def test_dangling_reference_is_ignored(self, service, schedule):
        overrides = [skip("gone", "2024-07-01"), modify("gone", "2024-07-01", override_id="m", name="X")]
        result = service.materialize_schedule_for_date(schedule, "2024-07-01", overrides)
        assert [e.id for e in result] == ["E1"]

    def test_entries_without_id_are_skipped(self, schedule, caplog):
        schedule.phases[0].add_entry(
            ScheduleEntry(name="Draft", day_of_week=1, start_time_minutes=0, duration_minutes=15)
        )
        service = CalendarMaterializationService(logger=logging.getLogger("test.materializer"))
        with caplog.at_level(logging.WARNING, logger="test.materializer"):
            result = service.materialize_schedule_for_date(schedule, "2024-07-01", [])
        assert [e.id for e in result] == ["E1"]
        assert "Draft" in caplog.text

    def test_sorted_by_start_with_stable_ties(self, service, schedule):
        schedule.phases[0].add_entry(
            ScheduleEntry(id="E2", name="Coffee", day_of_week=1, start_time_minutes=420, duration_minutes=15)
        )
        overrides = [
            one_time("2024-07-01", "Call", 420, 15, override_id="call"),
            one_time("2024-07-01", "Wake", 360, 15, override_id="wake"),
        ]
        result = service.materialize_schedule_for_date(schedule, "2024-07-01", overrides)
        assert [e.id for e in result] == ["wake", "E1", "E2", "call"]

    def test_phases_select_entries(self, service, phased_schedule):
        july = service.materialize_schedule_for_date(phased_schedule, "2024-07-01", [])
        assert [(e.id, e.phase_id) for e in july] == [
            ("swim", "summer"), ("camp", "summer"), ("piano", "always"),
        ]

        september = service.materialize_schedule_for_date(phased_schedule, "2024-09-02", [])
        assert [e.id for e in september] == ["bus", "piano"]

    def test_accepts_datetime(self, service, schedule):
        result = service.materialize_schedule_for_date(schedule, datetime(2024, 7, 1, 23, 30), [])
        assert [e.date for e in result] == ["2024-07-01"]

    def test_idempotent(self, service, phased_schedule):
        overrides = [modify("camp", "2024-07-01", duration_minutes=120), one_time("2024-07-01", "BBQ", 1080, 120)]
        first = service.materialize_schedule_for_date(phased_schedule, "2024-07-01", overrides)
        second = service.materialize_schedule_for_date(phased_schedule, "2024-07-01", overrides)
        assert first == second


class TestMaterializeForDateRange:

    def test_one_key_per_day(self, service, schedule):
        result = service.materialize_schedule_for_date_range(
            schedule, date(2024, 7, 1), date(2024, 7, 7), [skip("E1", "2024-07-08")]
        )
        assert list(result) == [f"2024-07-0{day}" for day in range(1, 8)]
        assert [len(v) for v in result.values()] == [1, 0, 0, 0, 0, 0, 0]

    def test_single_day_and_empty_range(self, service, schedule):
        assert list(service.materialize_schedule_for_date_range(schedule, "2024-07-01", "2024-07-01", [])) == ["2024-07-01"]
        assert service.materialize_schedule_for_date_range(schedule, "2024-07-02", "2024-07-01", []) == {}

    def test_consumes_generator_once(self, service, schedule):
        overrides = (o for o in [skip("E1", "2024-07-08")])
        result = service.materialize_schedule_for_date_range(schedule, "2024-07-01", "2024-07-14", overrides)
        assert len(result["2024-07-01"]) == 1
        assert result["2024-07-08"] == []


class TestFindConflicts:

    def test_touching_intervals_do_not_conflict(self, service):
        assert service.find_conflicts([block("a", 540, 60), block("b", 600, 60)]) == []

    def test_one_minute_overlap(self):
        a, b = block("a", 540, 61), block("b", 600, 60)
        conflicts = CalendarMaterializationService.find_conflicts([a, b])
        assert len(conflicts) == 1
        assert (conflicts[0].entry1, conflicts[0].entry2) == (a, b)

    def test_pairs_follow_input_order(self, service):
        a, b, c = block("a", 0, 120), block("b", 30, 30), block("c", 90, 60)
        pairs = [(p.entry1.id, p.entry2.id) for p in service.find_conflicts([a, b, c])]
        assert pairs == [("a", "b"), ("a", "c")]

    def test_containment(self, service):
        assert len(service.find_conflicts([block("a", 600, 15), block("b", 540, 180)])) == 1


class TestValidateOverride:

    def test_valid_override(self, service, schedule):
        result = service.validate_override_for_date(
            schedule, date(2024, 7, 1), one_time("2024-07-01", "Lunch", 720, 60), []
        )
        assert result.valid is True
        assert result.conflicts == []

    def test_conflicting_override(self, service, schedule):
        result = service.validate_override_for_date(
            schedule, date(2024, 7, 1), one_time("2024-07-01", "Call", 450, 30), []
        )
        assert result.valid is False
        assert [e.id for e in result.conflicts] == ["E1", "one-1"]

    def test_conflicts_are_deduplicated(self, service, schedule):
        existing = [one_time("2024-07-01", "Call", 420, 30, override_id="call")]
        result = service.validate_override_for_date(
            schedule, date(2024, 7, 1), one_time("2024-07-01", "Meet", 450, 30, override_id="meet"), existing
        )
        assert [e.id for e in result.conflicts] == ["E1", "call", "meet"]

    def test_skip_resolves_existing_conflict(self, service, schedule):
        existing = [one_time("2024-07-01", "Call", 420, 30)]
        result = service.validate_override_for_date(schedule, date(2024, 7, 1), skip("E1", "2024-07-01"), existing)
        assert result.valid is True

    def test_does_not_mutate_inputs(self, service, schedule):
        existing = [one_time("2024-07-01", "Call", 420, 30)]
        service.validate_override_for_date(schedule, date(2024, 7, 1), skip("E1", "2024-07-01"), existing)
        assert len(existing) == 1


def test_earliest_and_latest_phase_dates(phased_schedule, schedule):
    assert earliest_and_latest_phase_dates(phased_schedule) == (date(2024, 6, 1), date(2025, 6, 20))
    assert earliest_and_latest_phase_dates(schedule) == (None, None)


def test_to_dict_serializes_enum(service, schedule):
    [entry] = service.materialize_schedule_for_date(
        schedule, "2024-07-01", [modify("E1", "2024-07-01", name="Yoga")]
    )
    data = entry.to_dict()
    assert data["override_type"] == "MODIFY"
    assert data["base_entry_id"] == "E1"


def test_schedule_without_matching_phase(service):
    phase = SchedulePhase(id="P", schedule_id="S", start_date="2025-01-01", entries=[
        ScheduleEntry(id="E", name="Later", day_of_week=1, start_time_minutes=0, duration_minutes=15),
    ])
    schedule = Schedule(id="S", owner_id="o", name="n", time_zone="UTC", ical_url="i", phases=[phase])
    assert service.materialize_schedule_for_date(schedule, "2024-07-01", []) == []
