"""Application service: access checks and writes around the schedule domain."""

import logging
import uuid
from datetime import date
from typing import Any, Callable, Optional, Union

from storage.base import OverrideRepository, ScheduleRepository

from .dates import DateLike, to_date
from .errors import (
    AccessDeniedError,
    EntryInUseError,
    OverrideConflictError,
    ScheduleNotFoundError,
)
from .materializer import (
    CalendarMaterializationService,
    MaterializedEntry,
    OverrideValidationResult,
)
from .models import Schedule, ScheduleEntry, SchedulePhase
from .overrides import AnyOverride, OverrideType, ScheduleOverride, build_override

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _new_id() -> str:
    return str(uuid.uuid4())


class ScheduleService:
    """Schedule, phase, entry and override operations for an acting user.

    Callers pass the id of an already authenticated user; every operation
    checks that the user may access the schedule.
    """

    def __init__(
        self,
        schedules: ScheduleRepository,
        overrides: OverrideRepository,
        materializer: Optional[CalendarMaterializationService] = None,
        id_factory: Callable[[], str] = _new_id
    ) -> None:
        self._schedules = schedules
        self._overrides = overrides
        self._materializer = materializer or CalendarMaterializationService()
        self._new_id = id_factory

    # Schedules

    def _load(self, schedule_id: str, user_id: str) -> Schedule:
        schedule = self._schedules.find_by_id(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(f"Schedule not found: {schedule_id}")
        if not schedule.is_accessible_by(user_id):
            raise AccessDeniedError("Not authorized to access this schedule")
        return schedule

    def _load_owned(self, schedule_id: str, owner_id: str, action: str) -> Schedule:
        schedule = self._load(schedule_id, owner_id)
        if schedule.owner_id != owner_id:
            raise AccessDeniedError(f"Only the owner can {action} this schedule")
        return schedule

    def create_schedule(self, user_id: str, name: str, time_zone: str) -> Schedule:
        schedule_id = self._new_id()
        schedule = Schedule.create(
            schedule_id=schedule_id,
            owner_id=user_id,
            name=name,
            time_zone=time_zone,
            ical_url=f"ical-{uuid.uuid4().hex}",
            phase_id=self._new_id(),
        )
        self._schedules.save(schedule)
        logger.info("Created schedule %s for user %s", schedule_id, user_id)
        return schedule

    def get_schedule(self, schedule_id: str, user_id: str) -> Schedule:
        return self._load(schedule_id, user_id)

    def list_schedules(self, user_id: str) -> list[Schedule]:
        return self._schedules.find_by_user_id(user_id)

    def find_by_ical_url(self, ical_url: str) -> Schedule:
        """Public feed lookup; the token itself grants read access."""
        schedule = self._schedules.find_by_ical_url(ical_url)
        if schedule is None:
            raise ScheduleNotFoundError("Calendar feed not found")
        return schedule

    def delete_schedule(self, schedule_id: str, owner_id: str) -> None:
        self._load_owned(schedule_id, owner_id, "delete")
        self._overrides.delete_by_schedule_id(schedule_id)
        self._schedules.delete(schedule_id)
        logger.info("Deleted schedule %s", schedule_id)

    def share_schedule(self, schedule_id: str, owner_id: str, target_user_id: str) -> None:
        schedule = self._load_owned(schedule_id, owner_id, "share")
        schedule.share_with_user(target_user_id)
        self._schedules.save(schedule)

    def unshare_schedule(self, schedule_id: str, owner_id: str, target_user_id: str) -> None:
        schedule = self._load_owned(schedule_id, owner_id, "unshare")
        schedule.unshare_with_user(target_user_id)
        self._schedules.save(schedule)

    # Phases

    def _phase(self, schedule: Schedule, phase_id: str) -> SchedulePhase:
        phase = schedule.find_phase_by_id(phase_id)
        if phase is None:
            raise ScheduleNotFoundError(f"Phase not found: {phase_id}")
        return phase

    def _referenced_entry_ids(self, schedule_id: str) -> set[str]:
        return {
            o.base_entry_id
            for o in self._overrides.find_by_schedule_id(schedule_id)
            if o.base_entry_id
        }

    def add_phase(
        self,
        schedule_id: str,
        user_id: str,
        name: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> SchedulePhase:
        schedule = self._load(schedule_id, user_id)
        phase = SchedulePhase(
            id=self._new_id(),
            schedule_id=schedule_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
        )
        schedule.add_phase(phase)
        self._schedules.save(schedule)
        return phase

    def update_phase(
        self,
        schedule_id: str,
        user_id: str,
        phase_id: str,
        name: Optional[str] = _UNSET,
        start_date: Optional[str] = _UNSET,
        end_date: Optional[str] = _UNSET
    ) -> SchedulePhase:
        """Change a phase's name and/or dates; omitted arguments stay as they are."""
        schedule = self._load(schedule_id, user_id)
        phase = self._phase(schedule, phase_id)
        if start_date is not _UNSET or end_date is not _UNSET:
            phase.update_date_range(
                phase.start_date if start_date is _UNSET else start_date,
                phase.end_date if end_date is _UNSET else end_date,
            )
        if name is not _UNSET:
            phase.update_name(name)
        self._schedules.save(schedule)
        return phase

    def remove_phase(self, schedule_id: str, user_id: str, phase_id: str) -> None:
        schedule = self._load(schedule_id, user_id)
        phase = self._phase(schedule, phase_id)
        in_use = self._referenced_entry_ids(schedule_id)
        if any(entry.id in in_use for entry in phase.entries):
            raise EntryInUseError("Phase has entries referenced by overrides")
        schedule.remove_phase(phase_id)
        self._schedules.save(schedule)

    # Entries

    def add_entry(
        self,
        schedule_id: str,
        user_id: str,
        phase_id: str,
        entry: ScheduleEntry
    ) -> ScheduleEntry:
        """Add an entry to a phase, assigning an id if it has none."""
        schedule = self._load(schedule_id, user_id)
        phase = self._phase(schedule, phase_id)
        if not entry.id:
            entry = entry.with_id(self._new_id())
        phase.add_entry(entry)
        self._schedules.save(schedule)
        return entry

    def update_entry(
        self,
        schedule_id: str,
        user_id: str,
        entry_id: str,
        entry: ScheduleEntry
    ) -> ScheduleEntry:
        schedule = self._load(schedule_id, user_id)
        phase = schedule.find_phase_for_entry(entry_id)
        if phase is None:
            raise ScheduleNotFoundError(f"Entry not found: {entry_id}")
        updated = entry.with_id(entry_id)
        phase.update_entry(phase.find_entry_index(entry_id), updated)
        self._schedules.save(schedule)
        return updated

    def remove_entry(self, schedule_id: str, user_id: str, entry_id: str) -> None:
        schedule = self._load(schedule_id, user_id)
        phase = schedule.find_phase_for_entry(entry_id)
        if phase is None:
            raise ScheduleNotFoundError(f"Entry not found: {entry_id}")
        if entry_id in self._referenced_entry_ids(schedule_id):
            raise EntryInUseError(f"Entry {entry_id} is referenced by overrides")
        phase.remove_entry(phase.find_entry_index(entry_id))
        self._schedules.save(schedule)

    # Overrides

    def _check_base_entry(self, schedule: Schedule, override: ScheduleOverride) -> None:
        base_entry_id = getattr(override, "base_entry_id", None)
        if base_entry_id and schedule.find_entry(base_entry_id) is None:
            raise ScheduleNotFoundError(f"Base entry not found: {base_entry_id}")

    def _store_override(
        self,
        schedule: Schedule,
        override: AnyOverride,
        check_conflicts: bool
    ) -> AnyOverride:
        self._check_base_entry(schedule, override)
        if check_conflicts:
            existing = [
                o for o in self._overrides.find_by_schedule_id(schedule.id)
                if o.id != override.id
            ]
            result = self._materializer.validate_override_for_date(
                schedule, override.get_date(), override, existing
            )
            if not result.valid:
                raise OverrideConflictError(
                    f"Override on {override.override_date} overlaps other entries",
                    result.conflicts,
                )
        self._overrides.save(override)
        logger.info(
            "Saved %s override %s on %s",
            override.override_type.value, override.id, override.override_date
        )
        return override

    def create_override(
        self,
        schedule_id: str,
        user_id: str,
        override_date: str,
        override_type: Union[OverrideType, str],
        base_entry_id: Optional[str] = None,
        override_data: Optional[dict[str, Any]] = None,
        check_conflicts: bool = False
    ) -> AnyOverride:
        """Validate and store a new override.

        Args:
            schedule_id: Schedule the override belongs to.
            user_id: Acting user.
            override_date: YYYY-MM-DD.
            override_type: SKIP, MODIFY or ONE_TIME.
            base_entry_id: Entry targeted by SKIP/MODIFY.
            override_data: MODIFY/ONE_TIME fields.
            check_conflicts: Refuse the write if it would leave overlapping
                entries on that date.

        Raises:
            ScheduleValidationError: Invalid override fields.
            ScheduleNotFoundError: Unknown schedule or base entry.
            AccessDeniedError: User cannot access the schedule.
            OverrideConflictError: ``check_conflicts`` found overlaps.
        """
        schedule = self._load(schedule_id, user_id)
        override = build_override(
            id=self._new_id(),
            schedule_id=schedule_id,
            override_date=override_date,
            override_type=override_type,
            base_entry_id=base_entry_id,
            override_data=override_data,
        )
        return self._store_override(schedule, override, check_conflicts)

    def update_override(
        self,
        override_id: str,
        user_id: str,
        check_conflicts: bool = False,
        **changes: Any
    ) -> AnyOverride:
        """Rebuild an override from its stored fields overlaid with ``changes``.

        Accepted keys are ``override_date``, ``override_type``,
        ``base_entry_id`` and ``override_data``. The id is kept and the result
        is validated as a fresh construction.
        """
        existing = self._overrides.find_by_id(override_id)
        if existing is None:
            raise ScheduleNotFoundError(f"Override not found: {override_id}")
        schedule = self._load(existing.schedule_id, user_id)

        row = existing.to_row()
        unknown = set(changes) - {"override_date", "override_type", "base_entry_id", "override_data"}
        if unknown:
            raise TypeError(f"Unexpected override fields: {', '.join(sorted(unknown))}")
        row.update(changes)
        updated = build_override(**row)
        return self._store_override(schedule, updated, check_conflicts)

    def delete_override(self, override_id: str, user_id: str) -> None:
        existing = self._overrides.find_by_id(override_id)
        if existing is None:
            raise ScheduleNotFoundError(f"Override not found: {override_id}")
        self._load(existing.schedule_id, user_id)
        self._overrides.delete(override_id)
        logger.info("Deleted override %s", override_id)

    def list_overrides(
        self,
        schedule_id: str,
        user_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None
    ) -> list[ScheduleOverride]:
        self._load(schedule_id, user_id)
        if start_date is None and end_date is None:
            return self._overrides.find_by_schedule_id(schedule_id)
        start = to_date(start_date).isoformat() if start_date is not None else date.min.isoformat()
        end = to_date(end_date).isoformat() if end_date is not None else date.max.isoformat()
        return self._overrides.find_by_schedule_id_and_date_range(schedule_id, start, end)

    # Materialized views

    def get_agenda(
        self,
        schedule_id: str,
        user_id: str,
        start_date: DateLike,
        end_date: DateLike
    ) -> dict[str, list[MaterializedEntry]]:
        schedule = self._load(schedule_id, user_id)
        start, end = to_date(start_date), to_date(end_date)
        overrides = self._overrides.find_by_schedule_id_and_date_range(
            schedule_id, start.isoformat(), end.isoformat()
        )
        return self._materializer.materialize_schedule_for_date_range(
            schedule, start, end, overrides
        )

    def preview_override(
        self,
        schedule_id: str,
        user_id: str,
        override_date: str,
        override_type: Union[OverrideType, str],
        base_entry_id: Optional[str] = None,
        override_data: Optional[dict[str, Any]] = None
    ) -> OverrideValidationResult:
        """Dry-run a prospective override without storing it."""
        schedule = self._load(schedule_id, user_id)
        override = build_override(
            id=self._new_id(),
            schedule_id=schedule_id,
            override_date=override_date,
            override_type=override_type,
            base_entry_id=base_entry_id,
            override_data=override_data,
        )
        existing = self._overrides.find_by_schedule_id_and_date_range(
            schedule_id, override_date, override_date
        )
        return self._materializer.validate_override_for_date(
            schedule, override.get_date(), override, existing
        )
