"""Exception types raised by the schedule domain."""


class ScheduleValidationError(ValueError):
    """Raised when a domain object is constructed or updated with invalid data."""


class ScheduleNotFoundError(LookupError):
    """Raised when a schedule, phase, entry or override id does not resolve."""


class AccessDeniedError(PermissionError):
    """Raised when a user acts on a schedule they cannot access."""


class EntryInUseError(ScheduleValidationError):
    """Raised when removing an entry that overrides still reference."""


class OverrideConflictError(ScheduleValidationError):
    """Raised when an override would create overlapping entries on its date."""

    def __init__(self, message: str, conflicts: list) -> None:
        super().__init__(message)
        self.conflicts = conflicts
