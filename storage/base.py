"""Abstract repositories the application service persists through."""

from abc import ABC, abstractmethod
from typing import Optional

from planner.models import Schedule
from planner.overrides import ScheduleOverride


class ScheduleRepository(ABC):
    """Storage for schedule aggregates (phases and entries included).
    
    Extend this class to back schedules with a database, a key-value store
    or a file.
    """
    
    @abstractmethod
    def find_by_id(self, schedule_id: str) -> Optional[Schedule]:
        pass
    
    @abstractmethod
    def find_by_user_id(self, user_id: str) -> list[Schedule]:
        """Schedules the user owns or has been shared."""
        pass
    
    @abstractmethod
    def find_by_ical_url(self, ical_url: str) -> Optional[Schedule]:
        pass
    
    @abstractmethod
    def save(self, schedule: Schedule) -> None:
        """Insert or replace a schedule by id."""
        pass
    
    @abstractmethod
    def delete(self, schedule_id: str) -> None:
        pass


class OverrideRepository(ABC):
    """Storage for schedule overrides."""
    
    @abstractmethod
    def find_by_id(self, override_id: str) -> Optional[ScheduleOverride]:
        pass
    
    @abstractmethod
    def find_by_schedule_id(self, schedule_id: str) -> list[ScheduleOverride]:
        """All overrides of a schedule, ordered by date."""
        pass
    
    @abstractmethod
    def find_by_schedule_id_and_date_range(
        self,
        schedule_id: str,
        start_date: str,
        end_date: str
    ) -> list[ScheduleOverride]:
        """Overrides dated within [start_date, end_date], ordered by date."""
        pass
    
    @abstractmethod
    def save(self, override: ScheduleOverride) -> None:
        """Insert or replace an override by id."""
        pass
    
    @abstractmethod
    def delete(self, override_id: str) -> None:
        pass
    
    @abstractmethod
    def delete_by_schedule_id(self, schedule_id: str) -> None:
        pass
