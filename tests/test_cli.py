"""Tests for the schedule2iCal command-line tool."""

import argparse
import json

import pytest

from planner import build_override
from schedule2iCal import format_clock, main, parse_clock, parse_date
from storage import ScheduleDocument, save_document


@pytest.fixture
def schedule_file(tmp_path, schedule):
    path = tmp_path / "family.json"
    overrides = [
        build_override("skip", "S1", "2024-07-08", "SKIP", base_entry_id="E1"),
        build_override("lunch", "S1", "2024-07-02", "ONE_TIME",
                       override_data={"name": "Lunch", "start_time_minutes": 720, "duration_minutes": 60}),
    ]
    save_document(path, ScheduleDocument(schedule=schedule, overrides=overrides))
    return str(path)


def test_parse_helpers():
    assert parse_clock("07:30") == 450
    assert format_clock(450) == "07:30"
    with pytest.raises(argparse.ArgumentTypeError):
        parse_clock("7.30")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_date("01/07/2024")


def test_feed_writes_ics(schedule_file, tmp_path, capsys):
    output = tmp_path / "family"
    main([
        "feed", schedule_file,
        "--start-date", "2024-07-01", "--end-date", "2024-07-14",
        "-o", str(output),
    ])

    ics = (tmp_path / "family.ics").read_bytes()
    assert ics.count(b"BEGIN:VEVENT") == 2
    out = capsys.readouterr().out
    assert "2 events" in out
    assert "Period: 2024-07-01 to 2024-07-14" in out


def test_feed_with_only_start_date(schedule_file, tmp_path, capsys):
    main([
        "feed", schedule_file, "--start-date", "2030-01-01", "--horizon-days", "14",
        "-o", str(tmp_path / "later.ics"),
    ])

    assert (tmp_path / "later.ics").exists()
    assert "Period: 2030-01-01 to 2030-01-14" in capsys.readouterr().out


def test_feed_rejects_reversed_dates(schedule_file, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([
            "feed", schedule_file,
            "--start-date", "2024-07-14", "--end-date", "2024-07-01",
            "-o", str(tmp_path / "x.ics"),
        ])
    assert excinfo.value.code == 1
    assert "Start date must not be after end date" in capsys.readouterr().err


def test_agenda_text(schedule_file, capsys):
    main(["agenda", schedule_file, "--start-date", "2024-07-01", "--end-date", "2024-07-02"])

    out = capsys.readouterr().out
    assert "2024-07-01 (Mon)" in out
    assert "07:00-08:00  Gym" in out
    assert "12:00-13:00  Lunch  [ONE_TIME]" in out


def test_agenda_json(schedule_file, capsys):
    main(["agenda", schedule_file, "--start-date", "2024-07-07", "--end-date", "2024-07-08", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload == {"2024-07-07": [], "2024-07-08": []}


def test_check_valid(schedule_file, capsys):
    main([
        "check", schedule_file, "--date", "2024-07-01", "--type", "ONE_TIME",
        "--name", "Dentist", "--start", "09:00", "--duration", "30",
    ])
    assert "OK" in capsys.readouterr().out


def test_check_conflict_exits_2(schedule_file, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([
            "check", schedule_file, "--date", "2024-07-01", "--type", "ONE_TIME",
            "--name", "Dentist", "--start", "07:30", "--duration", "30",
        ])
    assert excinfo.value.code == 2
    out = capsys.readouterr().out
    assert "Gym" in out and "Dentist" in out


def test_check_invalid_override(schedule_file, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["check", schedule_file, "--date", "2024-07-01", "--type", "SKIP"])
    assert excinfo.value.code == 1
    assert "baseEntryId" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["agenda", str(tmp_path / "nope.json"), "--start-date", "2024-07-01"])
    assert excinfo.value.code == 1
    assert "File not found" in capsys.readouterr().err
