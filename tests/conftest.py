"""Shared fixtures: a gym schedule with a summer phase."""

import pytest

from planner import Schedule, ScheduleEntry, SchedulePhase


@pytest.fixture
def gym_entry():
    # Monday 07:00-08:00
    return ScheduleEntry(id="E1", name="Gym", day_of_week=1, start_time_minutes=420, duration_minutes=60)


@pytest.fixture
def schedule(gym_entry):
    phase = SchedulePhase(id="P1", schedule_id="S1", name="Default Phase", entries=[gym_entry])
    return Schedule(
        id="S1",
        owner_id="owner",
        name="Family",
        time_zone="Europe/Warsaw",
        ical_url="ical-abc",
        phases=[phase],
    )


@pytest.fixture
def phased_schedule():
    school = SchedulePhase(
        id="school",
        schedule_id="S2",
        name="School Year",
        start_date="2024-09-01",
        end_date="2025-06-20",
        entries=[
            ScheduleEntry(id="bus", name="School bus", day_of_week=1, start_time_minutes=450, duration_minutes=30),
        ],
    )
    summer = SchedulePhase(
        id="summer",
        schedule_id="S2",
        name="Summer",
        start_date="2024-06-01",
        end_date="2024-08-31",
        entries=[
            ScheduleEntry(id="camp", name="Camp", day_of_week=1, start_time_minutes=540, duration_minutes=240),
            ScheduleEntry(id="swim", name="Swim", day_of_week=1, start_time_minutes=480, duration_minutes=60),
        ],
    )
    always = SchedulePhase(
        id="always",
        schedule_id="S2",
        name="Default Phase",
        entries=[
            ScheduleEntry(id="piano", name="Piano", day_of_week=1, start_time_minutes=1020, duration_minutes=45),
        ],
    )
    return Schedule(
        id="S2",
        owner_id="owner",
        name="Kids",
        time_zone="America/New_York",
        ical_url="ical-kids",
        phases=[school, summer, always],
    )
