"""Domain models persisted in data.json."""

from slimetodo.domain.app_data import AppData, DailyStats, PetMood, PetStatus, Statistics, UISettings
from slimetodo.domain.project import HashTag, Project
from slimetodo.domain.task import RecurrenceType, SubTask, Task


__all__ = [
    "AppData",
    "DailyStats",
    "HashTag",
    "PetMood",
    "PetStatus",
    "Project",
    "RecurrenceType",
    "Statistics",
    "SubTask",
    "Task",
    "UISettings",
]
