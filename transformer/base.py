"""Abstract base class for schedule feed transformers."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Iterable, Optional

from planner.models import Schedule
from planner.overrides import ScheduleOverride


class BaseTransformer(ABC):
    """Abstract base class defining the interface for schedule transformers.
    
    Extend this class to render materialized schedules into other formats
    (e.g., iCalendar, JSON agenda, HTML).
    """
    
    @abstractmethod
    def transform(
        self,
        schedule: Schedule,
        overrides: Iterable[ScheduleOverride],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Any:
        """Transform a schedule and its overrides into the target format.
        
        Args:
            schedule: Schedule with its phases and entries.
            overrides: Overrides of the schedule.
            start_date: First day to render. Derived from the phases if None.
            end_date: Last day to render. Derived from the phases if None.
            
        Returns:
            Transformed data in the target format.
        """
        pass
    
    @abstractmethod
    def save(self, output_path: str) -> None:
        """Save the transformed data to a file.
        
        Args:
            output_path: Path to the output file.
        """
        pass
