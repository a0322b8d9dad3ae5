"""iCalendar transformer for materialized schedules."""

import hashlib
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from icalendar import Calendar, Event

from planner.materializer import (
    CalendarMaterializationService,
    MaterializedEntry,
    earliest_and_latest_phase_dates,
)
from planner.models import Schedule
from planner.overrides import ScheduleOverride
from .base import BaseTransformer

logger = logging.getLogger(__name__)


class ICalTransformer(BaseTransformer):
    """Transformer that renders every materialized occurrence as a VEVENT.

    Occurrences are emitted as standalone events rather than RRULEs so that
    skipped, modified and one-time instances show up exactly as materialized.
    """

    PRODID = "-//Schedule to iCal//schedule2ical//EN"
    UID_DOMAIN = "schedule2ical"
    DEFAULT_HORIZON_DAYS = 365

    def __init__(
        self,
        base_url: Optional[str] = None,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        materializer: Optional[CalendarMaterializationService] = None
    ) -> None:
        """Initialize the iCalendar transformer.

        Args:
            base_url: If set, each event description links back to
                ``<base_url>/schedule/<schedule id>``.
            horizon_days: Feed length used when no phase has an end date.
            materializer: Service used to resolve each day's entries.
        """
        if horizon_days < 1:
            raise ValueError("Horizon must be at least one day")
        self._calendar: Optional[Calendar] = None
        self._base_url = base_url.rstrip("/") if base_url else None
        self._horizon_days = horizon_days
        self._materializer = materializer or CalendarMaterializationService()

    def _generate_uid(self, schedule: Schedule, entry: MaterializedEntry) -> str:
        """Generate a stable unique identifier for one occurrence.

        Args:
            schedule: The schedule the occurrence belongs to.
            entry: The materialized occurrence.

        Returns:
            Unique identifier string.
        """
        unique_string = f"{schedule.id}-{entry.id}-{entry.date}"
        return hashlib.md5(unique_string.encode()).hexdigest() + f"@{self.UID_DOMAIN}"

    def feed_window(
        self,
        schedule: Schedule,
        today: Optional[date] = None,
        start_date: Optional[date] = None
    ) -> tuple[date, date]:
        """Date span a feed covers when explicit dates are missing.

        Runs from ``start_date`` (else the earliest phase start, else today)
        to the latest phase end. Without any phase end, or when it precedes
        the start, the span is ``horizon_days`` long counted from the start.

        Args:
            schedule: The schedule to inspect.
            today: Reference date, defaults to the current date.
            start_date: Explicit first day of the feed, if any.

        Returns:
            Tuple of (start_date, end_date), both inclusive.
        """
        earliest, latest = earliest_and_latest_phase_dates(schedule)
        start = start_date or earliest or today or date.today()
        if latest is None or latest < start:
            latest = start + timedelta(days=self._horizon_days - 1)
        return start, latest

    def _describe(self, schedule: Schedule, entry: MaterializedEntry) -> str:
        lines = [
            f"Schedule: {schedule.name}",
            f"Duration: {entry.duration_minutes} minutes",
        ]
        if entry.phase_id:
            phase = schedule.find_phase_by_id(entry.phase_id)
            if phase is not None:
                label = phase.name or "Unnamed phase"
                lines.append(f"Phase: {label} ({phase.describe_range()})")
        if entry.override_type is not None:
            lines.append(f"Override: {entry.override_type.value}")
        if self._base_url:
            lines.append("")
            lines.append(f"View and edit this schedule at: {self._base_url}/schedule/{schedule.id}")
        return "\n".join(lines)

    def transform(
        self,
        schedule: Schedule,
        overrides: Iterable[ScheduleOverride],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Calendar:
        """Transform a schedule into iCalendar format.

        Args:
            schedule: Schedule with its phases and entries.
            overrides: Overrides of the schedule.
            start_date: First day of the feed. Derived from phases if None.
            end_date: Last day of the feed. Derived from phases if None.

        Returns:
            iCalendar Calendar object.
        """
        default_start, default_end = self.feed_window(schedule, start_date=start_date)
        start_date = start_date or default_start
        end_date = end_date or default_end
        if start_date > end_date:
            raise ValueError("Start date must not be after end date")

        timezone = ZoneInfo(schedule.time_zone)

        self._calendar = Calendar()
        self._calendar.add("prodid", self.PRODID)
        self._calendar.add("version", "2.0")
        self._calendar.add("calscale", "GREGORIAN")
        self._calendar.add("method", "PUBLISH")
        self._calendar.add("x-wr-calname", schedule.name)
        self._calendar.add("x-wr-timezone", schedule.time_zone)

        by_date = self._materializer.materialize_schedule_for_date_range(
            schedule, start_date, end_date, list(overrides)
        )
        dtstamp = datetime.now(timezone)
        count = 0
        for day_str, entries in by_date.items():
            day = date.fromisoformat(day_str)
            for entry in entries:
                hours, minutes = divmod(entry.start_time_minutes, 60)
                start_datetime = datetime.combine(day, time(hours, minutes), tzinfo=timezone)
                end_datetime = start_datetime + timedelta(minutes=entry.duration_minutes)

                ical_event = Event()
                ical_event.add("uid", self._generate_uid(schedule, entry))
                ical_event.add("dtstart", start_datetime)
                ical_event.add("dtend", end_datetime)
                ical_event.add("dtstamp", dtstamp)
                ical_event.add("summary", entry.name)
                ical_event.add("description", self._describe(schedule, entry))

                self._calendar.add_component(ical_event)
                count += 1

        logger.debug(
            "Rendered %d events for schedule %s from %s to %s",
            count, schedule.id, start_date, end_date
        )
        return self._calendar

    def to_ical(self) -> bytes:
        """Serialized calendar, e.g. for serving as a feed.

        Raises:
            RuntimeError: If transform() hasn't been called yet.
        """
        if self._calendar is None:
            raise RuntimeError("No calendar data. Call transform() first.")
        return self._calendar.to_ical()

    def save(self, output_path: str) -> None:
        """Save the calendar to an .ics file.

        Args:
            output_path: Path to the output file.

        Raises:
            RuntimeError: If transform() hasn't been called yet.
        """
        data = self.to_ical()
        with open(output_path, "wb") as f:
            f.write(data)
