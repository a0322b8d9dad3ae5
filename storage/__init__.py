"""Persistence collaborators for schedules and overrides."""

from .base import OverrideRepository, ScheduleRepository
from .json_store import ScheduleDocument, load_document, save_document
from .memory import InMemoryOverrideRepository, InMemoryScheduleRepository

__all__ = [
    "InMemoryOverrideRepository",
    "InMemoryScheduleRepository",
    "OverrideRepository",
    "ScheduleDocument",
    "ScheduleRepository",
    "load_document",
    "save_document",
]
