"""Aggregate root persisted as data.json, plus the engagement and statistics records it carries."""

from datetime import date
from enum import StrEnum

from pydantic import Field

from slimetodo.core.config import Constants
from slimetodo.domain.base import DateOnly, DomainModel
from slimetodo.domain.project import HashTag, Project
from slimetodo.domain.task import Task


class PetMood(StrEnum):
    """Mood of the companion character shown next to the task list."""

    NORMAL = "normal"
    RESTING = "resting"
    WORRIED = "worried"


class PetStatus(DomainModel):
    """Engagement counters read by the pet service."""

    level: int = Field(default=1, description="1 + total_completed // 10, capped at 999")
    total_completed: int = Field(default=0, description="Lifetime completions (never decremented)")
    today_completed: int = Field(default=0, description="Completions since last_active_date rolled over")
    last_active_date: DateOnly = Field(default_factory=date.today, description="Day the today counter belongs to")

    last_app_open_date: DateOnly | None = Field(default=None, description="Last day the greeting logic ran")
    yesterday_was_all_done: bool = Field(default=False, description="Previous day ended with an empty Today view")
    has_shown_greeting_today: bool = Field(default=False, description="Greeting already shown for today")


class DailyStats(DomainModel):
    """Per-day completion and creation counts."""

    date: DateOnly
    completed: int = 0
    created: int = 0


class Statistics(DomainModel):
    """Rolling 30-day history and completion streaks."""

    daily_history: list[DailyStats] = Field(default_factory=list)
    current_streak: int = 0
    best_streak: int = 0
    last_completion_date: DateOnly | None = None


class AppData(DomainModel):
    """Everything the engine owns; serialized and replaced as one unit."""

    schema_version: int = Field(default=Constants.SCHEMA_VERSION, description="Persisted schema version")
    tasks: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    hash_tags: list[HashTag] = Field(default_factory=list)
    pet_status: PetStatus = Field(default_factory=PetStatus)
    is_dark_mode: bool = False
    statistics: Statistics = Field(default_factory=Statistics)


class UISettings(DomainModel):
    """Sidebar expand/collapse preferences kept in ui_settings.json."""

    is_projects_expanded: bool = True
    is_hash_tags_expanded: bool = True
