"""Bounded undo/redo history for user-initiated task mutations."""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from slimetodo.domain.task import Task
from slimetodo.services.task_service import TaskService


logger = logging.getLogger(__name__)

_KO_WEEKDAY_NAMES = ("월", "화", "수", "목", "금", "토", "일")


class UndoActionType(StrEnum):
    """Kind tag of a recorded action."""

    COMPLETED = "completed"
    UNCOMPLETED = "uncompleted"
    DELETED = "deleted"
    DATE_CHANGED = "date_changed"
    IMPORTANT_TOGGLED = "important_toggled"
    PINNED_TOGGLED = "pinned_toggled"
    CREATED = "created"


@dataclass(frozen=True)
class CompletionChanged:
    task: Task
    was_completed: bool
    previous_completed_at: datetime | None
    is_completed: bool
    new_completed_at: datetime | None
    description: str

    @property
    def kind(self) -> UndoActionType:
        return UndoActionType.COMPLETED if self.is_completed else UndoActionType.UNCOMPLETED


@dataclass(frozen=True)
class DueDateChanged:
    task: Task
    previous_due_date: date | None
    new_due_date: date | None
    description: str
    kind: UndoActionType = field(default=UndoActionType.DATE_CHANGED, init=False)


@dataclass(frozen=True)
class ImportantToggled:
    task: Task
    was_important: bool
    description: str
    kind: UndoActionType = field(default=UndoActionType.IMPORTANT_TOGGLED, init=False)


@dataclass(frozen=True)
class PinnedToggled:
    task: Task
    was_pinned: bool
    description: str
    kind: UndoActionType = field(default=UndoActionType.PINNED_TOGGLED, init=False)


@dataclass(frozen=True)
class TaskDeleted:
    task: Task
    description: str = "삭제"
    kind: UndoActionType = field(default=UndoActionType.DELETED, init=False)


@dataclass(frozen=True)
class TaskCreated:
    task: Task
    description: str = "생성"
    kind: UndoActionType = field(default=UndoActionType.CREATED, init=False)


UndoAction = CompletionChanged | DueDateChanged | ImportantToggled | PinnedToggled | TaskDeleted | TaskCreated


@dataclass(frozen=True)
class UndoResult:
    """Outcome of undo() or redo(); message is shown to the user as-is."""

    success: bool
    message: str = ""
    action: UndoAction | None = None


def describe_date_change(new_due_date: date | None, today: date) -> str:
    """Human-readable label for moving a task to new_due_date."""
    if new_due_date is None:
        return "날짜 없음으로 변경"
    if new_due_date == today:
        return "오늘로 변경"
    if new_due_date == today + timedelta(days=1):
        return "내일로 변경"
    if new_due_date == today - timedelta(days=1):
        return "어제로 변경"
    return f"{_KO_WEEKDAY_NAMES[new_due_date.weekday()]}요일로 옮겼어요"


class UndoService:
    """Two-stack command history over TaskService mutations.

    The undo stack keeps at most ``max_depth`` actions; recording past the
    cap drops the oldest one. Recording always clears the redo stack.
    Undoing a completion restores the flag and timestamp only: a recurrence
    successor created by the completion stays, and counters are untouched.
    """

    def __init__(
        self,
        task_service: TaskService,
        *,
        max_depth: int = 50,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._tasks = task_service
        self._clock = clock
        self._undo_stack: deque[UndoAction] = deque(maxlen=max_depth)
        self._redo_stack: deque[UndoAction] = deque(maxlen=max_depth)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_count(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_count(self) -> int:
        return len(self._redo_stack)

    def peek_undo(self) -> UndoAction | None:
        return self._undo_stack[-1] if self._undo_stack else None

    def clear(self) -> None:
        """Forget all history (e.g. after the aggregate was replaced)."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    def record(self, action: UndoAction) -> None:
        self._undo_stack.append(action)
        self._redo_stack.clear()

    # ------------------------------------------------------------------
    # Recording wrappers
    # ------------------------------------------------------------------

    def add_task(self, text: str, project_id: str | None = None) -> Task:
        task = self._tasks.add_task(text, project_id)
        self.record(TaskCreated(task=task))
        return task

    def toggle_complete(self, task: Task) -> bool:
        was_completed = task.is_completed
        previous_completed_at = task.completed_at
        if not self._tasks.toggle_complete(task):
            return False

        self.record(
            CompletionChanged(
                task=task,
                was_completed=was_completed,
                previous_completed_at=previous_completed_at,
                is_completed=task.is_completed,
                new_completed_at=task.completed_at,
                description="완료 취소" if was_completed else "완료 표시",
            )
        )
        return True

    def set_due_date(self, task: Task, due_date: date | None) -> bool:
        previous = task.due_date
        if not self._tasks.set_task_due_date(task, due_date):
            return False
        self.record(
            DueDateChanged(
                task=task,
                previous_due_date=previous,
                new_due_date=due_date,
                description=describe_date_change(due_date, self._clock().date()),
            )
        )
        return True

    def toggle_important(self, task: Task) -> bool:
        was_important = task.is_important
        if not self._tasks.toggle_important(task):
            return False
        self.record(
            ImportantToggled(
                task=task,
                was_important=was_important,
                description="중요 표시 해제" if was_important else "중요 표시",
            )
        )
        return True

    def toggle_pinned_today(self, task: Task) -> bool:
        was_pinned = task.is_pinned_today
        if not self._tasks.toggle_pinned_today(task):
            return False
        self.record(
            PinnedToggled(
                task=task,
                was_pinned=was_pinned,
                description="오늘 해제" if was_pinned else "오늘 추가",
            )
        )
        return True

    def delete_task(self, task: Task) -> bool:
        if not self._tasks.delete_task(task):
            return False
        self.record(TaskDeleted(task=task))
        return True

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def undo(self) -> UndoResult:
        """Revert the newest action and move it to the redo stack."""
        if not self._undo_stack:
            return UndoResult(success=False)

        action = self._undo_stack.pop()
        if not self._apply(action, forward=False):
            logger.warning(f"Undo of {action.kind} skipped: task {action.task.id} is not in the expected state")
            return UndoResult(success=False, action=action)

        self._redo_stack.append(action)
        logger.info(f"Undid {action.kind} on task {action.task.id}")
        return UndoResult(success=True, message=action.description, action=action)

    def redo(self) -> UndoResult:
        """Re-apply the newest undone action and move it back to the undo stack."""
        if not self._redo_stack:
            return UndoResult(success=False)

        action = self._redo_stack.pop()
        if not self._apply(action, forward=True):
            logger.warning(f"Redo of {action.kind} skipped: task {action.task.id} is not in the expected state")
            return UndoResult(success=False, action=action)

        self._undo_stack.append(action)
        logger.info(f"Redid {action.kind} on task {action.task.id}")
        return UndoResult(success=True, message=action.description, action=action)

    def _apply(self, action: UndoAction, *, forward: bool) -> bool:
        """Apply the after (forward) or before state of an action."""
        task = action.task

        match action:
            case TaskDeleted():
                return self._tasks.delete_task(task) if forward else self._tasks.restore_task(task)
            case TaskCreated():
                return self._tasks.restore_task(task) if forward else self._tasks.delete_task(task)

        if not self._tasks.owns(task):
            return False

        match action:
            case CompletionChanged():
                task.is_completed = action.is_completed if forward else action.was_completed
                task.completed_at = action.new_completed_at if forward else action.previous_completed_at
            case DueDateChanged():
                task.due_date = action.new_due_date if forward else action.previous_due_date
            case ImportantToggled():
                task.is_important = not action.was_important if forward else action.was_important
            case PinnedToggled():
                task.is_pinned_today = not action.was_pinned if forward else action.was_pinned

        return self._tasks.update_task(task)
