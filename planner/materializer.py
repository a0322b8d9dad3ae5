"""Calendar materialization: phases + entries + overrides -> dated instances."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from .dates import DateLike, iter_dates, sunday_based_weekday, to_date
from .models import Schedule
from .overrides import (
    ModifyOverride,
    OneTimeOverride,
    OverrideType,
    ScheduleOverride,
    SkipOverride,
)


@dataclass(frozen=True)
class MaterializedEntry:
    """One concrete occurrence on a specific date.

    ``id`` is the base entry id for an unmodified recurring occurrence and the
    override id for MODIFY and ONE_TIME instances.
    """

    id: str
    name: str
    day_of_week: int
    start_time_minutes: int
    duration_minutes: int
    date: str  # YYYY-MM-DD
    is_override: bool = False
    override_type: Optional[OverrideType] = None
    base_entry_id: Optional[str] = None
    phase_id: Optional[str] = None

    @property
    def end_time_minutes(self) -> int:
        return self.start_time_minutes + self.duration_minutes

    def overlaps(self, other: "MaterializedEntry") -> bool:
        """Half-open interval overlap; touching endpoints do not overlap."""
        return (
            self.start_time_minutes < other.end_time_minutes
            and self.end_time_minutes > other.start_time_minutes
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.override_type is not None:
            data["override_type"] = self.override_type.value
        return data


@dataclass(frozen=True)
class ConflictPair:
    entry1: MaterializedEntry
    entry2: MaterializedEntry


@dataclass(frozen=True)
class OverrideValidationResult:
    valid: bool
    conflicts: list[MaterializedEntry] = field(default_factory=list)


class CalendarMaterializationService:
    """Resolve a schedule and its overrides into concrete per-date entries.

    Every method is a pure function of its arguments; the service keeps no
    state between calls apart from its logger.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        """Initialize the service.

        Args:
            logger: Logger to report skipped entries on. Defaults to this
                module's logger.
        """
        self._logger = logger or logging.getLogger(__name__)

    def materialize_schedule_for_date(
        self,
        schedule: Schedule,
        day: DateLike,
        overrides: Iterable[ScheduleOverride]
    ) -> list[MaterializedEntry]:
        """Compute the entries that occur on one date.

        Args:
            schedule: Schedule with its phases and entries.
            day: The calendar date to materialize.
            overrides: Overrides of the schedule. Only those dated ``day`` are
                applied, so passing a wider set is safe.

        Returns:
            Entries sorted by start time. Ties keep recurring entries first,
            in phase order, followed by one-time entries.
        """
        target = to_date(day)
        date_str = target.isoformat()
        day_of_week = sunday_based_weekday(target)

        relevant = [o for o in overrides if o.override_date == date_str]
        skipped = {o.base_entry_id for o in relevant if isinstance(o, SkipOverride)}
        modified: dict[str, ModifyOverride] = {}
        for override in relevant:
            if isinstance(override, ModifyOverride):
                modified.setdefault(override.base_entry_id, override)

        materialized: list[MaterializedEntry] = []

        for phase in schedule.get_active_phases_for_date(date_str):
            for entry in phase.entries:
                if entry.day_of_week != day_of_week:
                    continue
                if not entry.id:
                    self._logger.warning("Skipping entry without ID: %s", entry.name)
                    continue
                if entry.id in skipped:
                    continue

                owner = schedule.find_phase_for_entry(entry.id)
                phase_id = owner.id if owner else None

                modify = modified.get(entry.id)
                if modify is not None:
                    materialized.append(MaterializedEntry(
                        id=modify.id,
                        name=modify.name if modify.name is not None else entry.name,
                        day_of_week=entry.day_of_week,
                        start_time_minutes=(
                            modify.start_time_minutes
                            if modify.start_time_minutes is not None
                            else entry.start_time_minutes
                        ),
                        duration_minutes=(
                            modify.duration_minutes
                            if modify.duration_minutes is not None
                            else entry.duration_minutes
                        ),
                        date=date_str,
                        is_override=True,
                        override_type=OverrideType.MODIFY,
                        base_entry_id=entry.id,
                        phase_id=phase_id,
                    ))
                else:
                    materialized.append(MaterializedEntry(
                        id=entry.id,
                        name=entry.name,
                        day_of_week=entry.day_of_week,
                        start_time_minutes=entry.start_time_minutes,
                        duration_minutes=entry.duration_minutes,
                        date=date_str,
                        phase_id=phase_id,
                    ))

        for override in relevant:
            if not isinstance(override, OneTimeOverride):
                continue
            materialized.append(MaterializedEntry(
                id=override.id,
                name=override.name,
                day_of_week=day_of_week,
                start_time_minutes=override.start_time_minutes,
                duration_minutes=override.duration_minutes,
                date=date_str,
                is_override=True,
                override_type=OverrideType.ONE_TIME,
            ))

        # list.sort is stable
        materialized.sort(key=lambda item: item.start_time_minutes)
        self._logger.debug(
            "Materialized %d entries for schedule %s on %s",
            len(materialized), schedule.id, date_str
        )
        return materialized

    def materialize_schedule_for_date_range(
        self,
        schedule: Schedule,
        start_date: DateLike,
        end_date: DateLike,
        overrides: Iterable[ScheduleOverride]
    ) -> dict[str, list[MaterializedEntry]]:
        """Materialize every date from start to end inclusive.

        Returns:
            Mapping of ISO date to that day's entries, in date order. Days
            without entries map to an empty list.
        """
        overrides = list(overrides)
        return {
            day.isoformat(): self.materialize_schedule_for_date(schedule, day, overrides)
            for day in iter_dates(to_date(start_date), to_date(end_date))
        }

    @staticmethod
    def find_conflicts(entries: list[MaterializedEntry]) -> list[ConflictPair]:
        """Every pair of overlapping entries, in input order."""
        return [
            ConflictPair(entries[i], entries[j])
            for i, j in _overlapping_positions(entries)
        ]

    def validate_override_for_date(
        self,
        schedule: Schedule,
        day: DateLike,
        new_override: ScheduleOverride,
        existing_overrides: Iterable[ScheduleOverride]
    ) -> OverrideValidationResult:
        """Dry-run an override and report any overlaps it would leave on ``day``.

        Args:
            schedule: Schedule the override belongs to.
            day: Date to re-materialize.
            new_override: The prospective override.
            existing_overrides: Overrides already stored for the schedule.

        Returns:
            Validation result; ``conflicts`` lists each entry involved in an
            overlap once, in the order it is first implicated.
        """
        candidates = [*existing_overrides, new_override]
        entries = self.materialize_schedule_for_date(schedule, day, candidates)

        positions: list[int] = []
        for i, j in _overlapping_positions(entries):
            for position in (i, j):
                if position not in positions:
                    positions.append(position)

        return OverrideValidationResult(
            valid=not positions,
            conflicts=[entries[position] for position in positions],
        )


def _overlapping_positions(entries: list[MaterializedEntry]) -> list[tuple[int, int]]:
    pairs = []
    for i in range(len(entries)):
        for j in range(i + 1, len(entries)):
            if entries[i].overlaps(entries[j]):
                pairs.append((i, j))
    return pairs


def earliest_and_latest_phase_dates(schedule: Schedule) -> tuple[Optional[date], Optional[date]]:
    """Earliest phase start and latest phase end, ignoring open bounds."""
    starts = [phase.start_date for phase in schedule.phases if phase.start_date]
    ends = [phase.end_date for phase in schedule.phases if phase.end_date]
    return (
        date.fromisoformat(min(starts)) if starts else None,
        date.fromisoformat(max(ends)) if ends else None,
    )
