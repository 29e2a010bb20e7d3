"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from slimetodo.domain.base import DateOnly, DomainModel, LocalDateTime, new_id


class RecurrenceType(StrEnum):
    """How often a completed task comes back."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Legacy data files stored the recurrence kind as its ordinal.
_RECURRENCE_BY_ORDINAL = list(RecurrenceType)


class SubTask(DomainModel):
    """Checklist item owned by exactly one task."""

    id: str = Field(default_factory=new_id, description="Unique subtask ID")
    title: str = Field(default="", description="Subtask title")
    is_completed: bool = Field(default=False, description="Whether the item is checked")
    order: int = Field(default=0, description="Manual sort position inside the parent task")


class Task(DomainModel):
    """A single to-do item."""

    id: str = Field(default_factory=new_id, description="Unique task ID, immutable after creation")
    title: str = Field(default="", description="Task title")
    is_completed: bool = Field(default=False, description="Completion flag")
    due_date: DateOnly | None = Field(default=None, description="Due date (time component ignored)")
    is_important: bool = Field(default=False, description="Importance flag")
    is_pinned_today: bool = Field(default=False, description="Forces the task into the Today view")
    created_at: LocalDateTime = Field(default_factory=datetime.now, description="Creation timestamp")
    completed_at: LocalDateTime | None = Field(default=None, description="Set iff the task is completed")
    order: int = Field(default=0, description="Manual sort position in the full task list")
    sub_tasks: list[SubTask] = Field(default_factory=list, description="Owned checklist items")

    project_id: str | None = Field(default=None, description="Owning project (None means Inbox)")
    tag_ids: list[str] = Field(default_factory=list, alias="hashTagIds", description="Attached tag IDs")

    recurrence: RecurrenceType = Field(default=RecurrenceType.NONE, description="Recurrence kind")
    recurrence_interval: int = Field(default=1, ge=1, description="Repeat every N units of the recurrence kind")

    reminder_time: LocalDateTime | None = Field(default=None, description="When to raise a reminder")
    reminder_notified: bool = Field(default=False, description="Whether the reminder has been delivered")

    notes: str = Field(default="", description="Rich-text note, stored opaquely")
    notes_modified_at: LocalDateTime | None = Field(default=None, description="Last note edit timestamp")

    @field_validator("recurrence", mode="before")
    @classmethod
    def accept_recurrence_ordinal(cls, v: Any) -> Any:
        """Accept the integer encoding written by older releases."""
        if isinstance(v, int) and not isinstance(v, bool) and 0 <= v < len(_RECURRENCE_BY_ORDINAL):
            return _RECURRENCE_BY_ORDINAL[v]
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def none_notes_to_empty(cls, v: Any) -> Any:
        """Older files wrote null for tasks without a note."""
        return "" if v is None else v

    @property
    def is_recurring(self) -> bool:
        """Whether completing this task spawns a successor."""
        return self.recurrence != RecurrenceType.NONE

    @property
    def has_notes(self) -> bool:
        return bool(self.notes.strip())
