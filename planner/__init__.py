"""Recurring weekly schedules with phases, overrides and materialization."""

from .errors import (
    AccessDeniedError,
    EntryInUseError,
    OverrideConflictError,
    ScheduleNotFoundError,
    ScheduleValidationError,
)
from .materializer import (
    CalendarMaterializationService,
    ConflictPair,
    MaterializedEntry,
    OverrideValidationResult,
)
from .models import Schedule, ScheduleEntry, SchedulePhase
from .overrides import (
    ModifyOverride,
    OneTimeOverride,
    OverrideType,
    ScheduleOverride,
    SkipOverride,
    build_override,
)

__all__ = [
    "AccessDeniedError",
    "CalendarMaterializationService",
    "ConflictPair",
    "EntryInUseError",
    "MaterializedEntry",
    "ModifyOverride",
    "OneTimeOverride",
    "OverrideConflictError",
    "OverrideType",
    "OverrideValidationResult",
    "Schedule",
    "ScheduleEntry",
    "ScheduleNotFoundError",
    "ScheduleOverride",
    "SchedulePhase",
    "ScheduleValidationError",
    "SkipOverride",
    "build_override",
]
