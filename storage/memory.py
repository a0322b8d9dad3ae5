"""In-memory repositories."""

import copy
import logging
import threading
from typing import Optional

from planner.models import Schedule
from planner.overrides import ScheduleOverride

from .base import OverrideRepository, ScheduleRepository

logger = logging.getLogger(__name__)


class InMemoryScheduleRepository(ScheduleRepository):
    """Schedule store backed by a dict.

    Stored and returned schedules are deep copies, so changes only become
    visible after ``save``.
    """

    def __init__(self) -> None:
        self._schedules: dict[str, Schedule] = {}
        self._lock = threading.Lock()

    def find_by_id(self, schedule_id: str) -> Optional[Schedule]:
        with self._lock:
            schedule = self._schedules.get(schedule_id)
            return copy.deepcopy(schedule) if schedule else None

    def find_by_user_id(self, user_id: str) -> list[Schedule]:
        with self._lock:
            return [
                copy.deepcopy(schedule)
                for schedule in self._schedules.values()
                if schedule.is_accessible_by(user_id)
            ]

    def find_by_ical_url(self, ical_url: str) -> Optional[Schedule]:
        with self._lock:
            for schedule in self._schedules.values():
                if schedule.ical_url == ical_url:
                    return copy.deepcopy(schedule)
        return None

    def save(self, schedule: Schedule) -> None:
        with self._lock:
            self._schedules[schedule.id] = copy.deepcopy(schedule)
        logger.debug("Saved schedule %s", schedule.id)

    def delete(self, schedule_id: str) -> None:
        with self._lock:
            self._schedules.pop(schedule_id, None)
        logger.debug("Deleted schedule %s", schedule_id)


class InMemoryOverrideRepository(OverrideRepository):
    """Override store backed by a dict; overrides are immutable so no copying."""

    def __init__(self) -> None:
        self._overrides: dict[str, ScheduleOverride] = {}
        self._lock = threading.Lock()

    def _select(self, schedule_id: str) -> list[ScheduleOverride]:
        return sorted(
            (o for o in self._overrides.values() if o.schedule_id == schedule_id),
            key=lambda o: o.override_date,
        )

    def find_by_id(self, override_id: str) -> Optional[ScheduleOverride]:
        with self._lock:
            return self._overrides.get(override_id)

    def find_by_schedule_id(self, schedule_id: str) -> list[ScheduleOverride]:
        with self._lock:
            return self._select(schedule_id)

    def find_by_schedule_id_and_date_range(
        self,
        schedule_id: str,
        start_date: str,
        end_date: str
    ) -> list[ScheduleOverride]:
        with self._lock:
            return [
                o for o in self._select(schedule_id)
                if start_date <= o.override_date <= end_date
            ]

    def save(self, override: ScheduleOverride) -> None:
        with self._lock:
            self._overrides[override.id] = override
        logger.debug("Saved override %s (%s)", override.id, override.override_type.value)

    def delete(self, override_id: str) -> None:
        with self._lock:
            self._overrides.pop(override_id, None)

    def delete_by_schedule_id(self, schedule_id: str) -> None:
        with self._lock:
            for override_id in [
                o.id for o in self._overrides.values() if o.schedule_id == schedule_id
            ]:
                del self._overrides[override_id]
