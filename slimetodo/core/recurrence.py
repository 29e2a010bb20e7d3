"""Recurrence utilities for repeating tasks."""

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from slimetodo.domain.task import RecurrenceType, SubTask, Task


RECURRENCE_LABELS: dict[RecurrenceType, str] = {
    RecurrenceType.NONE: "없음",
    RecurrenceType.DAILY: "매일",
    RecurrenceType.WEEKLY: "매주",
    RecurrenceType.MONTHLY: "매월",
    RecurrenceType.YEARLY: "매년",
}


def calculate_next_due_date(base: date, kind: RecurrenceType, interval: int = 1) -> date:
    """Advance a date by one recurrence step.

    Month and year steps clamp to the end of shorter months
    (Jan 31 + 1 month is Feb 28/29).

    Args:
        base: Date to advance from
        kind: Recurrence kind
        interval: Number of units per step, must be >= 1

    Returns:
        The next due date (unchanged for RecurrenceType.NONE)

    Raises:
        ValueError: If interval is less than 1
    """
    if interval < 1:
        msg = f"Recurrence interval must be at least 1, got {interval}"
        raise ValueError(msg)

    match kind:
        case RecurrenceType.DAILY:
            return base + relativedelta(days=interval)
        case RecurrenceType.WEEKLY:
            return base + relativedelta(weeks=interval)
        case RecurrenceType.MONTHLY:
            return base + relativedelta(months=interval)
        case RecurrenceType.YEARLY:
            return base + relativedelta(years=interval)
        case _:
            return base


def recurrence_to_human(kind: RecurrenceType, interval: int = 1) -> str:
    """Short display label, e.g. "매주" or "3일마다"."""
    if kind == RecurrenceType.NONE:
        return RECURRENCE_LABELS[kind]
    if interval == 1:
        return RECURRENCE_LABELS[kind]

    unit = {
        RecurrenceType.DAILY: "일",
        RecurrenceType.WEEKLY: "주",
        RecurrenceType.MONTHLY: "개월",
        RecurrenceType.YEARLY: "년",
    }[kind]
    return f"{interval}{unit}마다"


def next_occurrence(task: Task, today: date, *, now: datetime | None = None) -> Task:
    """Build the successor of a completed recurring task.

    The next due date is computed from the task's due date, or from today when
    it has none. Subtasks are copied unchecked with fresh ids.

    Args:
        task: The recurring task that was just completed
        today: Base date for tasks without a due date
        now: Creation timestamp for the successor (defaults to datetime.now())

    Returns:
        A new, incomplete Task
    """
    base = task.due_date or today
    next_due = calculate_next_due_date(base, task.recurrence, task.recurrence_interval)

    return Task(
        title=task.title,
        due_date=next_due,
        is_important=task.is_important,
        project_id=task.project_id,
        tag_ids=list(task.tag_ids),
        recurrence=task.recurrence,
        recurrence_interval=task.recurrence_interval,
        created_at=now or datetime.now(),
        sub_tasks=[SubTask(title=st.title, order=st.order) for st in task.sub_tasks],
    )
