"""Date-specific exceptions to a weekly recurrence.

Three variants share the common ``id``/``schedule_id``/``override_date``
fields:

- ``SkipOverride`` suppresses one occurrence of a recurring entry.
- ``ModifyOverride`` changes name, start or duration of one occurrence.
- ``OneTimeOverride`` injects a standalone instance on its date.

Each variant carries only the fields that are legal for it, so a SKIP with
data or a ONE_TIME bound to an entry cannot be represented. ``build_override``
constructs the right variant from loose, row-shaped input and rejects
forbidden combinations there.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from .dates import DateLike, parse_iso_date, to_date
from .errors import ScheduleValidationError
from .models import ScheduleEntry, require_int


class OverrideType(str, Enum):
    SKIP = "SKIP"
    MODIFY = "MODIFY"
    ONE_TIME = "ONE_TIME"


def _check_start_time(value: int) -> None:
    require_int(value, "Start time")
    if not 0 <= value < ScheduleEntry.MINUTES_PER_DAY:
        raise ScheduleValidationError(f"Start time must be between 0 and 1439 minutes, got {value}")
    if value % ScheduleEntry.DURATION_STEP_MINUTES:
        raise ScheduleValidationError(f"Start time must be in 15-minute increments, got {value}")


def _check_duration(value: int) -> None:
    require_int(value, "Duration")
    if value <= 0 or value % ScheduleEntry.DURATION_STEP_MINUTES:
        raise ScheduleValidationError(f"Duration must be a positive multiple of 15 minutes, got {value}")


@dataclass(frozen=True)
class ScheduleOverride:
    """Fields common to every override variant."""

    override_type: ClassVar[OverrideType]

    id: str
    schedule_id: str
    override_date: str  # YYYY-MM-DD

    def __post_init__(self) -> None:
        if not self.id:
            raise ScheduleValidationError("Override must have an ID")
        if not self.schedule_id:
            raise ScheduleValidationError("Override must have a schedule ID")
        if not self.override_date:
            raise ScheduleValidationError("Override must have a date")
        parse_iso_date(self.override_date, "Override date")

    def get_date(self) -> date:
        return date.fromisoformat(self.override_date)

    @property
    def override_data(self) -> Optional[dict[str, Any]]:
        return None

    def applies_to(self, day: DateLike) -> bool:
        return to_date(day).isoformat() == self.override_date

    def to_row(self) -> dict[str, Any]:
        """Persisted shape: common columns plus the type-specific data blob."""
        return {
            "id": self.id,
            "schedule_id": self.schedule_id,
            "override_date": self.override_date,
            "override_type": self.override_type.value,
            "base_entry_id": getattr(self, "base_entry_id", None),
            "override_data": self.override_data,
        }


@dataclass(frozen=True)
class SkipOverride(ScheduleOverride):
    override_type: ClassVar[OverrideType] = OverrideType.SKIP

    base_entry_id: str

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.base_entry_id:
            raise ScheduleValidationError("SKIP override must have a baseEntryId")


@dataclass(frozen=True)
class ModifyOverride(ScheduleOverride):
    """Partial replacement of one occurrence; unset fields keep the base value."""

    override_type: ClassVar[OverrideType] = OverrideType.MODIFY

    base_entry_id: str
    name: Optional[str] = None
    start_time_minutes: Optional[int] = None
    duration_minutes: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.base_entry_id:
            raise ScheduleValidationError("MODIFY override must have a baseEntryId")
        if self.name is None and self.start_time_minutes is None and self.duration_minutes is None:
            raise ScheduleValidationError("MODIFY override must specify at least one field to modify")
        if self.name is not None and (not isinstance(self.name, str) or not self.name.strip()):
            raise ScheduleValidationError("MODIFY override name must not be empty")
        if self.start_time_minutes is not None:
            _check_start_time(self.start_time_minutes)
        if self.duration_minutes is not None:
            _check_duration(self.duration_minutes)

    @property
    def override_data(self) -> dict[str, Any]:
        data = {
            "name": self.name,
            "start_time_minutes": self.start_time_minutes,
            "duration_minutes": self.duration_minutes,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class OneTimeOverride(ScheduleOverride):
    override_type: ClassVar[OverrideType] = OverrideType.ONE_TIME

    name: str
    start_time_minutes: int
    duration_minutes: int

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.name, str) or not self.name.strip():
            raise ScheduleValidationError("ONE_TIME override must have a name")
        _check_start_time(self.start_time_minutes)
        _check_duration(self.duration_minutes)

    @property
    def base_entry_id(self) -> None:
        return None

    @property
    def override_data(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start_time_minutes": self.start_time_minutes,
            "duration_minutes": self.duration_minutes,
        }


AnyOverride = Union[SkipOverride, ModifyOverride, OneTimeOverride]

# Older rows store the data blob with camelCase keys.
_DATA_KEY_ALIASES = {
    "name": "name",
    "start_time_minutes": "start_time_minutes",
    "startTimeMinutes": "start_time_minutes",
    "duration_minutes": "duration_minutes",
    "durationMinutes": "duration_minutes",
}


def _normalize_data(data: Optional[dict[str, Any]]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in (data or {}).items():
        if key not in _DATA_KEY_ALIASES:
            raise ScheduleValidationError(f"Unknown override data field: {key!r}")
        if value is not None:
            normalized[_DATA_KEY_ALIASES[key]] = value
    return normalized


def build_override(
    id: str,
    schedule_id: str,
    override_date: str,
    override_type: Union[OverrideType, str],
    base_entry_id: Optional[str] = None,
    override_data: Optional[dict[str, Any]] = None
) -> AnyOverride:
    """Construct the override variant named by ``override_type``.

    Args:
        id: Override identifier.
        schedule_id: Owning schedule.
        override_date: Date the override applies to (YYYY-MM-DD).
        override_type: SKIP, MODIFY or ONE_TIME (enum or string).
        base_entry_id: Targeted recurring entry; required for SKIP and MODIFY,
            forbidden for ONE_TIME.
        override_data: Type-specific fields; forbidden for SKIP.

    Returns:
        A validated SkipOverride, ModifyOverride or OneTimeOverride.

    Raises:
        ScheduleValidationError: If required fields are missing, forbidden
            fields are present, or any value is out of range.
    """
    try:
        kind = OverrideType(override_type)
    except ValueError:
        raise ScheduleValidationError("Override type must be MODIFY, SKIP, or ONE_TIME")

    if kind is OverrideType.SKIP:
        if override_data is not None:
            raise ScheduleValidationError("SKIP override should not have override data")
        return SkipOverride(
            id=id,
            schedule_id=schedule_id,
            override_date=override_date,
            base_entry_id=base_entry_id,
        )

    if kind is OverrideType.MODIFY:
        if not override_data:
            raise ScheduleValidationError("MODIFY override must have override data")
        return ModifyOverride(
            id=id,
            schedule_id=schedule_id,
            override_date=override_date,
            base_entry_id=base_entry_id,
            **_normalize_data(override_data),
        )

    if base_entry_id:
        raise ScheduleValidationError("ONE_TIME override should not have a baseEntryId")
    if not override_data:
        raise ScheduleValidationError("ONE_TIME override must have override data")
    data = _normalize_data(override_data)
    for required, label in (
        ("name", "a name"),
        ("start_time_minutes", "a start time"),
        ("duration_minutes", "a duration"),
    ):
        if required not in data:
            raise ScheduleValidationError(f"ONE_TIME override must have {label}")
    return OneTimeOverride(
        id=id,
        schedule_id=schedule_id,
        override_date=override_date,
        **data,
    )
