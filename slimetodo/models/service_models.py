"""Pydantic models for service layer return types.

These models provide type safety at service boundaries; none of them are
persisted to data.json.
"""

from datetime import date, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from slimetodo.domain.app_data import PetMood


class ParseResult(BaseModel):
    """Outcome of natural-language task entry."""

    title: str
    due_date: date | None = None
    tags: list[str] = Field(default_factory=list)


class BackupInfo(BaseModel):
    """A daily backup file available for restore."""

    path: Path
    file_name: str
    backup_date: datetime
    size_bytes: int

    @property
    def display_name(self) -> str:
        return self.backup_date.strftime("%Y-%m-%d %H:%M")


class Greeting(BaseModel):
    """Message shown by the pet when the app starts."""

    message: str
    mood: PetMood = PetMood.NORMAL


class DayData(BaseModel):
    """One bar of the weekly completion chart."""

    date: date
    day_label: str
    completed: int


class DayCell(BaseModel):
    """One cell of the monthly completion heatmap."""

    date: date
    completed: int
    intensity: int = Field(ge=0, le=4)


class StatisticsSummary(BaseModel):
    """Headline numbers for the statistics panel."""

    total_completed: int
    current_streak: int
    best_streak: int
