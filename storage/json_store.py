"""JSON document codec for a schedule and its overrides.

A document file looks like::

    {
      "schedule": {
        "id": "...", "owner_id": "...", "shared_user_ids": [],
        "name": "...", "time_zone": "Europe/Warsaw", "ical_url": "ical-...",
        "phases": [
          {"id": "...", "name": "School Year",
           "start_date": "2024-09-01", "end_date": "2025-06-20",
           "entries": [{"id": "...", "name": "Gym", "day_of_week": 1,
                        "start_time_minutes": 420, "duration_minutes": 60}]}
        ]
      },
      "overrides": [
        {"id": "...", "schedule_id": "...", "override_date": "2024-07-01",
         "override_type": "SKIP", "base_entry_id": "...", "override_data": null}
      ]
    }

``override_data`` may also be a JSON-encoded string, as stored in database
rows.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from planner.errors import ScheduleValidationError
from planner.models import Schedule, ScheduleEntry, SchedulePhase
from planner.overrides import AnyOverride, ScheduleOverride, build_override

logger = logging.getLogger(__name__)


@dataclass
class ScheduleDocument:
    schedule: Schedule
    overrides: list[ScheduleOverride] = field(default_factory=list)


def entry_to_dict(entry: ScheduleEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "name": entry.name,
        "day_of_week": entry.day_of_week,
        "start_time_minutes": entry.start_time_minutes,
        "duration_minutes": entry.duration_minutes,
    }


def entry_from_dict(data: dict[str, Any]) -> ScheduleEntry:
    return ScheduleEntry(
        id=data.get("id"),
        name=data.get("name", ""),
        day_of_week=_require_int(data, "day_of_week"),
        start_time_minutes=_require_int(data, "start_time_minutes"),
        duration_minutes=_require_int(data, "duration_minutes"),
    )


def phase_to_dict(phase: SchedulePhase) -> dict[str, Any]:
    return {
        "id": phase.id,
        "name": phase.name,
        "start_date": phase.start_date,
        "end_date": phase.end_date,
        "entries": [entry_to_dict(entry) for entry in phase.entries],
    }


def phase_from_dict(data: dict[str, Any], schedule_id: str) -> SchedulePhase:
    return SchedulePhase(
        id=data.get("id", ""),
        schedule_id=data.get("schedule_id") or schedule_id,
        name=data.get("name"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
        entries=[entry_from_dict(entry) for entry in data.get("entries", [])],
    )


def schedule_to_dict(schedule: Schedule) -> dict[str, Any]:
    return {
        "id": schedule.id,
        "owner_id": schedule.owner_id,
        "shared_user_ids": sorted(schedule.shared_user_ids),
        "name": schedule.name,
        "time_zone": schedule.time_zone,
        "ical_url": schedule.ical_url,
        "phases": [phase_to_dict(phase) for phase in schedule.phases],
    }


def schedule_from_dict(data: dict[str, Any]) -> Schedule:
    schedule_id = data.get("id", "")
    return Schedule(
        id=schedule_id,
        owner_id=data.get("owner_id", ""),
        name=data.get("name", ""),
        time_zone=data.get("time_zone", ""),
        ical_url=data.get("ical_url", ""),
        phases=[phase_from_dict(phase, schedule_id) for phase in data.get("phases", [])],
        shared_user_ids=set(data.get("shared_user_ids", [])),
    )


def override_from_dict(data: dict[str, Any]) -> AnyOverride:
    override_data = data.get("override_data")
    if isinstance(override_data, str):
        try:
            override_data = json.loads(override_data)
        except json.JSONDecodeError as e:
            raise ScheduleValidationError(f"Override data is not valid JSON: {e}")
    return build_override(
        id=data.get("id", ""),
        schedule_id=data.get("schedule_id", ""),
        override_date=data.get("override_date", ""),
        override_type=data.get("override_type", ""),
        base_entry_id=data.get("base_entry_id"),
        override_data=override_data,
    )


def document_from_dict(data: dict[str, Any]) -> ScheduleDocument:
    if not isinstance(data, dict) or "schedule" not in data:
        raise ScheduleValidationError("Document must be an object with a 'schedule' key")
    return ScheduleDocument(
        schedule=schedule_from_dict(data["schedule"]),
        overrides=[override_from_dict(row) for row in data.get("overrides", [])],
    )


def document_to_dict(document: ScheduleDocument) -> dict[str, Any]:
    return {
        "schedule": schedule_to_dict(document.schedule),
        "overrides": [override.to_row() for override in document.overrides],
    }


def load_document(path: Union[str, Path]) -> ScheduleDocument:
    """Read and validate a schedule document.

    Raises:
        ScheduleValidationError: If the file is not valid JSON or any object
            in it fails validation.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ScheduleValidationError(f"{path} is not valid JSON: {e}")
    document = document_from_dict(data)
    logger.debug(
        "Loaded schedule %s with %d phases and %d overrides from %s",
        document.schedule.id, len(document.schedule.phases), len(document.overrides), path
    )
    return document


def save_document(path: Union[str, Path], document: ScheduleDocument) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document_to_dict(document), f, indent=2)
        f.write("\n")


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScheduleValidationError(f"Entry field {key!r} must be an integer, got {value!r}")
    return value
