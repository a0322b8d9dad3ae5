"""Domain models for recurring weekly schedules."""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .dates import DateLike, is_valid_iso_date, to_date
from .errors import ScheduleValidationError


def require_int(value: object, label: str) -> int:
    """Reject anything but a true int (bools included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScheduleValidationError(f"{label} must be an integer, got {value!r}")
    return value


def _validate_time_block(start_time_minutes: int, duration_minutes: int) -> None:
    require_int(start_time_minutes, "Start time")
    require_int(duration_minutes, "Duration")
    if not 0 <= start_time_minutes < ScheduleEntry.MINUTES_PER_DAY:
        raise ScheduleValidationError(
            f"Start time must be between 0 and 1439 minutes, got {start_time_minutes}"
        )
    if duration_minutes <= 0 or duration_minutes % ScheduleEntry.DURATION_STEP_MINUTES:
        raise ScheduleValidationError(
            f"Duration must be a positive multiple of 15 minutes, got {duration_minutes}"
        )


def _as_iso(value: DateLike) -> str:
    if isinstance(value, date):
        return to_date(value).isoformat()
    if not is_valid_iso_date(value):
        raise ScheduleValidationError(f"Invalid date format, must be YYYY-MM-DD, got {value!r}")
    return value


@dataclass(frozen=True)
class ScheduleEntry:
    """A named weekly time-block that recurs on one day of the week."""

    MINUTES_PER_DAY = 1440
    DURATION_STEP_MINUTES = 15

    name: str
    day_of_week: int  # 0-6: Sunday-Saturday
    start_time_minutes: int  # minutes since local midnight
    duration_minutes: int
    id: Optional[str] = field(default=None)  # None until persisted

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ScheduleValidationError("Entry name must not be empty")
        require_int(self.day_of_week, "Day of week")
        if not 0 <= self.day_of_week <= 6:
            raise ScheduleValidationError(
                f"Day of week must be between 0 (Sunday) and 6 (Saturday), got {self.day_of_week}"
            )
        _validate_time_block(self.start_time_minutes, self.duration_minutes)

    @property
    def end_time_minutes(self) -> int:
        return self.start_time_minutes + self.duration_minutes

    def with_id(self, entry_id: str) -> "ScheduleEntry":
        return replace(self, id=entry_id)


@dataclass
class SchedulePhase:
    """A date-bounded container of recurring entries.

    Missing start or end dates leave the phase unbounded in that direction.
    Dates are kept as ISO strings so activity checks can compare them
    lexicographically.
    """

    id: str
    schedule_id: str
    name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    entries: list[ScheduleEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.id:
            raise ScheduleValidationError("SchedulePhase must have an ID")
        if not self.schedule_id:
            raise ScheduleValidationError("SchedulePhase must have a schedule ID")
        self._check_date_range(self.start_date, self.end_date)
        self.entries = list(self.entries)

    @staticmethod
    def _check_date_range(start_date: Optional[str], end_date: Optional[str]) -> None:
        if start_date and not is_valid_iso_date(start_date):
            raise ScheduleValidationError("Invalid startDate format, must be YYYY-MM-DD")
        if end_date and not is_valid_iso_date(end_date):
            raise ScheduleValidationError("Invalid endDate format, must be YYYY-MM-DD")
        if start_date and end_date and start_date >= end_date:
            raise ScheduleValidationError("startDate must be before endDate")

    @property
    def is_unbounded(self) -> bool:
        return not self.start_date and not self.end_date

    def is_active(self, day: DateLike) -> bool:
        """Check whether the phase covers a date (both bounds inclusive).

        Args:
            day: ISO date string or date object.

        Raises:
            ScheduleValidationError: If a string is not a valid ISO date.
        """
        day_str = _as_iso(day)
        if self.start_date and day_str < self.start_date:
            return False
        if self.end_date and day_str > self.end_date:
            return False
        return True

    def is_currently_active(self, today: Optional[date] = None) -> bool:
        return self.is_active(today or date.today())

    def get_active_entries(self, day: DateLike) -> list[ScheduleEntry]:
        if not self.is_active(day):
            return []
        return list(self.entries)

    def find_entry_index(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return index
        return None

    def contains_entry(self, entry_id: str) -> bool:
        return self.find_entry_index(entry_id) is not None

    def add_entry(self, entry: ScheduleEntry) -> None:
        self.entries.append(entry)

    def remove_entry(self, entry_index: int) -> bool:
        """Remove the entry at a position.

        Returns:
            False if the index is out of range and nothing was removed.
        """
        if 0 <= entry_index < len(self.entries):
            del self.entries[entry_index]
            return True
        return False

    def update_entry(self, entry_index: int, new_entry: ScheduleEntry) -> bool:
        """Replace the entry at a position; False if the index is out of range."""
        if 0 <= entry_index < len(self.entries):
            self.entries[entry_index] = new_entry
            return True
        return False

    def update_name(self, new_name: Optional[str]) -> None:
        self.name = new_name

    def update_date_range(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> None:
        """Replace both bounds, leaving the phase untouched if they are invalid."""
        self._check_date_range(start_date, end_date)
        self.start_date = start_date
        self.end_date = end_date

    def describe_range(self) -> str:
        return f"{self.start_date or '...'} to {self.end_date or '...'}"


@dataclass
class Schedule:
    """Aggregate root: an ordered list of phases plus ownership and sharing.

    A schedule always has at least one phase. Use ``Schedule.create`` to build
    a new schedule with its initial unbounded phase.
    """

    DEFAULT_PHASE_NAME = "Default Phase"

    id: str
    owner_id: str
    name: str
    time_zone: str
    ical_url: str
    phases: list[SchedulePhase] = field(default_factory=list)
    shared_user_ids: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if not self.id:
            raise ScheduleValidationError("Schedule must have an ID")
        if not self.owner_id:
            raise ScheduleValidationError("Schedule must have an owner")
        if not self.time_zone:
            raise ScheduleValidationError("Schedule must have a timezone")
        if not self.ical_url:
            raise ScheduleValidationError("Schedule must have an iCal URL")
        if not is_valid_time_zone(self.time_zone):
            raise ScheduleValidationError(f"Invalid timezone: {self.time_zone!r}")
        if not self.phases:
            raise ScheduleValidationError("Schedule must have at least one phase")
        self.phases = list(self.phases)
        self.shared_user_ids = set(self.shared_user_ids)

    @classmethod
    def create(
        cls,
        schedule_id: str,
        owner_id: str,
        name: str,
        time_zone: str,
        ical_url: str,
        phase_id: Optional[str] = None
    ) -> "Schedule":
        """Build a new schedule holding one unbounded default phase."""
        default_phase = SchedulePhase(
            id=phase_id or f"{schedule_id}-default",
            schedule_id=schedule_id,
            name=cls.DEFAULT_PHASE_NAME,
        )
        return cls(
            id=schedule_id,
            owner_id=owner_id,
            name=name,
            time_zone=time_zone,
            ical_url=ical_url,
            phases=[default_phase],
        )

    def is_accessible_by(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.shared_user_ids

    def share_with_user(self, user_id: str) -> None:
        self.shared_user_ids.add(user_id)

    def unshare_with_user(self, user_id: str) -> None:
        self.shared_user_ids.discard(user_id)

    def find_phase_by_id(self, phase_id: str) -> Optional[SchedulePhase]:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def find_phase_for_entry(self, entry_id: str) -> Optional[SchedulePhase]:
        """First phase containing an entry with the given id."""
        for phase in self.phases:
            if phase.contains_entry(entry_id):
                return phase
        return None

    def find_entry(self, entry_id: str) -> Optional[ScheduleEntry]:
        phase = self.find_phase_for_entry(entry_id)
        if phase is None:
            return None
        return phase.entries[phase.find_entry_index(entry_id)]

    def get_active_phases_for_date(self, day: DateLike) -> list[SchedulePhase]:
        return [phase for phase in self.phases if phase.is_active(day)]

    def get_active_entries_for_date(self, day: DateLike) -> list[ScheduleEntry]:
        """Entries of every active phase, in phase order then entry order."""
        entries: list[ScheduleEntry] = []
        for phase in self.get_active_phases_for_date(day):
            entries.extend(phase.entries)
        return entries

    def all_entries(self) -> list[ScheduleEntry]:
        return [entry for phase in self.phases for entry in phase.entries]

    def add_phase(self, phase: SchedulePhase) -> None:
        if phase.schedule_id != self.id:
            raise ScheduleValidationError("Phase belongs to a different schedule")
        self.phases.append(phase)

    def remove_phase(self, phase_id: str) -> bool:
        phase = self.find_phase_by_id(phase_id)
        if phase is None:
            return False
        if len(self.phases) == 1:
            raise ScheduleValidationError("Schedule must have at least one phase")
        self.phases.remove(phase)
        return True

    # Single-phase accessors kept for callers that predate phases.

    @property
    def default_phase(self) -> Optional[SchedulePhase]:
        for phase in self.phases:
            if phase.is_unbounded:
                return phase
        for phase in self.phases:
            if phase.name == self.DEFAULT_PHASE_NAME:
                return phase
        return None

    @property
    def entries(self) -> list[ScheduleEntry]:
        phase = self.default_phase
        return list(phase.entries) if phase else []

    def add_entry(self, entry: ScheduleEntry) -> None:
        phase = self.default_phase
        if phase is None:
            raise ScheduleValidationError(
                "Schedule has no default phase; add the entry to a specific phase"
            )
        phase.add_entry(entry)

    def remove_entry(self, entry_index: int) -> bool:
        phase = self.default_phase
        return phase.remove_entry(entry_index) if phase else False

    def update_entry(self, entry_index: int, new_entry: ScheduleEntry) -> bool:
        phase = self.default_phase
        return phase.update_entry(entry_index, new_entry) if phase else False


def is_valid_time_zone(name: str) -> bool:
    """Check that a name resolves to an IANA zone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True
