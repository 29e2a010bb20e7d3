"""Task engine: owns the AppData aggregate, answers view queries and applies mutations.

Every mutation persists through StorageService.save and then notifies
subscribers. Queries return new lists of the live model objects; callers may
read them freely but should mutate only through this service.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

from slimetodo.core.config import Constants
from slimetodo.core.logging import log_with_context, span
from slimetodo.core.natural_language_parser import parse
from slimetodo.core.recurrence import next_occurrence
from slimetodo.domain.app_data import AppData, DailyStats, PetStatus, Statistics
from slimetodo.domain.project import HashTag, Project
from slimetodo.domain.task import RecurrenceType, SubTask, Task
from slimetodo.models.service_models import ParseResult
from slimetodo.services.storage_service import StorageService


logger = logging.getLogger(__name__)

Subscriber = Callable[[], None]


def _default_sort_key(task: Task) -> tuple[Any, ...]:
    """Incomplete first, important first, earliest due (none last), manual order."""
    return (task.is_completed, not task.is_important, task.due_date or date.max, task.order)


def _importance_sort_key(task: Task) -> tuple[Any, ...]:
    return (task.is_completed, not task.is_important, task.order)


def _due_sort_key(task: Task) -> tuple[Any, ...]:
    return (task.is_completed, task.due_date or date.max, task.order)


def _week_sort_key(task: Task) -> tuple[Any, ...]:
    return (task.is_completed, task.due_date or date.max, not task.is_important, task.order)


class TaskService:
    """Sole owner and mutator of the in-memory AppData."""

    def __init__(
        self,
        storage: StorageService,
        *,
        parser: Callable[..., ParseResult] = parse,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.storage = storage
        self._parser = parser
        self._clock = clock
        self._subscribers: list[Subscriber] = []
        self._data = storage.load()

    # ------------------------------------------------------------------
    # Persistence & change notification
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception as e:
                log_with_context(logger, "error", "Change subscriber failed", subscriber=repr(callback), error=str(e))

    def _save(self) -> bool:
        saved = self.storage.save(self._data)
        self._notify()
        return saved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._clock().date()

    def owns(self, task: Task) -> bool:
        """Whether this exact task object is part of the live aggregate."""
        return any(t is task for t in self._data.tasks)

    def _index_of(self, task: Task) -> int:
        for index, t in enumerate(self._data.tasks):
            if t is task:
                return index
        return -1

    def _select(
        self,
        predicate: Callable[[Task], bool],
        sort_key: Callable[[Task], tuple[Any, ...]],
        include_completed: bool,
    ) -> list[Task]:
        tasks = [t for t in self._data.tasks if predicate(t)]
        if not include_completed:
            tasks = [t for t in tasks if not t.is_completed]
        return sorted(tasks, key=sort_key)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_tasks(self, include_completed: bool = False) -> list[Task]:
        return self._select(lambda t: True, _default_sort_key, include_completed)

    def get_inbox_tasks(self, include_completed: bool = False) -> list[Task]:
        return self._select(lambda t: t.project_id is None, _default_sort_key, include_completed)

    def get_today_tasks(self, include_completed: bool = False) -> list[Task]:
        """Inbox tasks pinned to today or due on or before today."""
        today = self._today()
        return self._select(
            lambda t: t.project_id is None and (t.is_pinned_today or (t.due_date is not None and t.due_date <= today)),
            _importance_sort_key,
            include_completed,
        )

    def get_upcoming_tasks(self, include_completed: bool = False) -> list[Task]:
        today = self._today()
        return self._select(
            lambda t: t.project_id is None and t.due_date is not None and t.due_date > today,
            _due_sort_key,
            include_completed,
        )

    def get_week_tasks(self, week_start: date, week_end: date, include_completed: bool = False) -> list[Task]:
        """Inbox tasks due within the inclusive range [week_start, week_end]."""
        return self._select(
            lambda t: t.project_id is None and t.due_date is not None and week_start <= t.due_date <= week_end,
            _week_sort_key,
            include_completed,
        )

    def get_unscheduled_tasks(self, include_completed: bool = False) -> list[Task]:
        return self._select(
            lambda t: t.project_id is None and t.due_date is None,
            _importance_sort_key,
            include_completed,
        )

    def get_project_tasks(self, project_id: str, include_completed: bool = False) -> list[Task]:
        return self._select(lambda t: t.project_id == project_id, _importance_sort_key, include_completed)

    def get_tasks_by_tag(self, tag_id: str, include_completed: bool = False) -> list[Task]:
        return self._select(lambda t: tag_id in t.tag_ids, _importance_sort_key, include_completed)

    def search_tasks(self, query: str, include_completed: bool = False) -> list[Task]:
        """Tasks whose title contains every whitespace-separated term (case-insensitive)."""
        terms = query.casefold().split() if query else []
        if not terms:
            return []
        return self._select(
            lambda t: all(term in t.title.casefold() for term in terms),
            _default_sort_key,
            include_completed,
        )

    def get_task_by_id(self, task_id: str) -> Task | None:
        return next((t for t in self._data.tasks if t.id == task_id), None)

    def get_tasks_with_pending_reminders(self, now: datetime | None = None) -> list[Task]:
        """Incomplete tasks whose reminder time has passed and was not yet delivered."""
        now = now or self._now()
        return [
            t
            for t in self._data.tasks
            if not t.is_completed
            and t.reminder_time is not None
            and t.reminder_time <= now
            and not t.reminder_notified
        ]

    def has_overdue_tasks(self) -> bool:
        today = self._today()
        return any(not t.is_completed and t.due_date is not None and t.due_date < today for t in self._data.tasks)

    def get_today_task_count(self) -> int:
        return len(self.get_today_tasks())

    def get_project_task_count(self, project_id: str) -> int:
        return sum(1 for t in self._data.tasks if t.project_id == project_id and not t.is_completed)

    def get_tag_task_count(self, tag_id: str) -> int:
        return sum(1 for t in self._data.tasks if tag_id in t.tag_ids and not t.is_completed)

    def get_first_tag_color(self, task: Task) -> str | None:
        if not task.tag_ids:
            return None
        tag = self.get_tag_by_id(task.tag_ids[0])
        return tag.color if tag else None

    def get_app_data(self) -> AppData:
        return self._data

    def get_statistics(self) -> Statistics:
        return self._data.statistics

    # ------------------------------------------------------------------
    # Task mutations
    # ------------------------------------------------------------------

    def add_task(self, text: str, project_id: str | None = None) -> Task:
        """Create a task from quick-add text.

        The text is run through the natural-language parser; parsed tags are
        matched to existing tags by name (case-insensitive) or created.

        Args:
            text: Raw user input, e.g. "회의 #work 내일"
            project_id: Owning project, None for the Inbox

        Returns:
            The new task
        """
        with span("task_service.add_task"):
            result = self._parser(text, today=self._today())

            task = Task(
                title=result.title,
                due_date=result.due_date,
                project_id=project_id,
                order=len(self._data.tasks),
                created_at=self._now(),
            )

            for name in result.tags:
                tag = self.get_tag_by_name(name) or self._create_tag(name)
                if tag.id not in task.tag_ids:
                    task.tag_ids.append(tag.id)

            self._data.tasks.append(task)
            self._record_statistics(created=1)
            self._save()

            log_with_context(
                logger, "info", "Task created", task_id=task.id, due_date=str(task.due_date), tag_count=len(task.tag_ids)
            )
            return task

    def toggle_complete(self, task: Task) -> bool:
        """Flip completion.

        Completing stamps completed_at, advances the pet counters, daily
        statistics and streak, and appends the next occurrence of a recurring
        task. Un-completing only clears completed_at; counters stay as they are.

        Returns:
            False if the task is not owned by this service
        """
        if not self.owns(task):
            return False

        with span("task_service.toggle_complete", task_id=task.id):
            task.is_completed = not task.is_completed

            if task.is_completed:
                now = self._now()
                task.completed_at = now

                pet = self._data.pet_status
                pet.total_completed += 1
                self._roll_pet_day(pet)
                pet.today_completed += 1
                pet.level = min(Constants.MAX_LEVEL, 1 + pet.total_completed // Constants.COMPLETIONS_PER_LEVEL)

                self._record_statistics(completed=1)

                if task.recurrence != RecurrenceType.NONE:
                    successor = next_occurrence(task, self._today(), now=now)
                    successor.order = len(self._data.tasks)
                    self._data.tasks.append(successor)
                    logger.info(f"Created next occurrence {successor.id} due {successor.due_date}")
            else:
                task.completed_at = None

            self._save()
            return True

    def set_task_due_date(self, task: Task, due_date: date | None) -> bool:
        if not self.owns(task):
            return False
        task.due_date = due_date
        self._save()
        return True

    def set_recurrence(self, task: Task, kind: RecurrenceType, interval: int = 1) -> bool:
        """Set the recurrence rule.

        Raises:
            ValueError: If interval is less than 1
        """
        if interval < 1:
            msg = f"Recurrence interval must be at least 1, got {interval}"
            raise ValueError(msg)
        if not self.owns(task):
            return False
        task.recurrence = kind
        task.recurrence_interval = interval
        self._save()
        return True

    def set_reminder(self, task: Task, reminder_time: datetime | None) -> bool:
        """Set or clear the reminder; a new time is delivered again even if an older one was."""
        if not self.owns(task):
            return False
        task.reminder_time = reminder_time
        task.reminder_notified = False
        self._save()
        return True

    def mark_reminder_notified(self, task: Task) -> bool:
        if not self.owns(task):
            return False
        task.reminder_notified = True
        self._save()
        return True

    def toggle_important(self, task: Task) -> bool:
        if not self.owns(task):
            return False
        task.is_important = not task.is_important
        self._save()
        return True

    def toggle_pinned_today(self, task: Task) -> bool:
        if not self.owns(task):
            return False
        task.is_pinned_today = not task.is_pinned_today
        self._save()
        return True

    def rename_task(self, task: Task, title: str) -> bool:
        if not self.owns(task) or not title.strip():
            return False
        task.title = title.strip()
        self._save()
        return True

    def set_task_notes(self, task: Task, notes: str) -> bool:
        if not self.owns(task):
            return False
        task.notes = notes
        task.notes_modified_at = self._now()
        self._save()
        return True

    def delete_task(self, task: Task) -> bool:
        index = self._index_of(task)
        if index < 0:
            return False
        del self._data.tasks[index]
        self._save()
        logger.info(f"Deleted task {task.id}")
        return True

    def restore_task(self, task: Task) -> bool:
        """Reinsert a previously deleted task; no-op if it is already present."""
        if self.owns(task) or self.get_task_by_id(task.id) is not None:
            return False
        self._data.tasks.append(task)
        self._save()
        return True

    def update_task(self, task: Task) -> bool:
        """Persist direct field edits made on an owned task."""
        if not self.owns(task):
            return False
        self._save()
        return True

    def reorder_task(self, task: Task, new_index: int) -> bool:
        """Move a task within the full list and renumber every task's order to its position."""
        tasks = self._data.tasks
        old_index = self._index_of(task)
        if old_index < 0 or old_index == new_index:
            return False

        tasks.pop(old_index)
        new_index = max(0, min(new_index, len(tasks)))
        tasks.insert(new_index, task)

        for position, t in enumerate(tasks):
            t.order = position

        self._save()
        return True

    def move_task_to_project(self, task: Task, project_id: str | None) -> bool:
        if not self.owns(task):
            return False
        task.project_id = project_id
        self._save()
        return True

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    @staticmethod
    def _find_subtask(task: Task, subtask_id: str) -> SubTask | None:
        return next((s for s in task.sub_tasks if s.id == subtask_id), None)

    def add_subtask(self, task: Task, title: str) -> SubTask | None:
        if not self.owns(task) or not title.strip():
            return None
        subtask = SubTask(title=title.strip(), order=len(task.sub_tasks))
        task.sub_tasks.append(subtask)
        self._save()
        return subtask

    def toggle_subtask(self, task: Task, subtask_id: str) -> bool:
        subtask = self._find_subtask(task, subtask_id) if self.owns(task) else None
        if subtask is None:
            return False
        subtask.is_completed = not subtask.is_completed
        self._save()
        return True

    def rename_subtask(self, task: Task, subtask_id: str, title: str) -> bool:
        subtask = self._find_subtask(task, subtask_id) if self.owns(task) else None
        if subtask is None or not title.strip():
            return False
        subtask.title = title.strip()
        self._save()
        return True

    def delete_subtask(self, task: Task, subtask_id: str) -> bool:
        subtask = self._find_subtask(task, subtask_id) if self.owns(task) else None
        if subtask is None:
            return False
        task.sub_tasks.remove(subtask)
        self._save()
        return True

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self) -> list[Project]:
        return sorted((p for p in self._data.projects if not p.is_deleted), key=lambda p: p.order)

    def get_deleted_projects(self) -> list[Project]:
        return [p for p in self._data.projects if p.is_deleted]

    def get_project_by_id(self, project_id: str | None) -> Project | None:
        if project_id is None:
            return None
        return next((p for p in self._data.projects if p.id == project_id), None)

    def get_project_by_name(self, name: str) -> Project | None:
        wanted = name.casefold()
        return next((p for p in self._data.projects if p.name.casefold() == wanted), None)

    def add_project(self, name: str) -> Project:
        project = Project(name=name, order=len(self._data.projects))
        self._data.projects.append(project)
        self._save()
        logger.info(f"Created project {project.id}")
        return project

    def rename_project(self, project_id: str, name: str) -> bool:
        project = self.get_project_by_id(project_id)
        if project is None:
            return False
        project.name = name
        self._save()
        return True

    def delete_project(self, project_id: str) -> bool:
        """Soft-delete a project and hard-delete all of its tasks."""
        project = self.get_project_by_id(project_id)
        if project is None:
            return False

        project.is_deleted = True
        project.deleted_at = self._now()

        before = len(self._data.tasks)
        self._data.tasks = [t for t in self._data.tasks if t.project_id != project_id]

        self._save()
        log_with_context(
            logger, "info", "Project deleted", project_id=project_id, tasks_removed=before - len(self._data.tasks)
        )
        return True

    def restore_project(self, project_id: str) -> bool:
        """Un-delete a soft-deleted project. Its tasks are not brought back."""
        project = self.get_project_by_id(project_id)
        if project is None or not project.is_deleted:
            return False
        project.is_deleted = False
        project.deleted_at = None
        self._save()
        return True

    def permanently_delete_project(self, project_id: str) -> bool:
        project = self.get_project_by_id(project_id)
        if project is None:
            return False
        self._data.projects.remove(project)
        self._save()
        return True

    def reorder_project(self, dragged_id: str, target_id: str) -> bool:
        """Move the dragged project to the target's slot among active projects."""
        if dragged_id == target_id:
            return False

        projects = self.get_projects()
        dragged = next((p for p in projects if p.id == dragged_id), None)
        target = next((p for p in projects if p.id == target_id), None)
        if dragged is None or target is None:
            return False

        new_index = projects.index(target)
        projects.remove(dragged)
        projects.insert(new_index, dragged)

        for position, p in enumerate(projects):
            p.order = position

        self._save()
        return True

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def get_tags(self) -> list[HashTag]:
        return sorted(self._data.hash_tags, key=lambda t: t.order)

    def get_tag_by_id(self, tag_id: str) -> HashTag | None:
        return next((t for t in self._data.hash_tags if t.id == tag_id), None)

    def get_tag_by_name(self, name: str) -> HashTag | None:
        wanted = name.casefold()
        return next((t for t in self._data.hash_tags if t.name.casefold() == wanted), None)

    def _create_tag(self, name: str, color: str | None = None) -> HashTag:
        palette = Constants.TAG_PALETTE
        tag = HashTag(
            name=name,
            color=color or palette[len(self._data.hash_tags) % len(palette)],
            order=len(self._data.hash_tags),
        )
        self._data.hash_tags.append(tag)
        return tag

    def add_tag(self, name: str, color: str | None = None) -> HashTag:
        """Create a tag, or return the existing one with the same name (case-insensitive)."""
        existing = self.get_tag_by_name(name)
        if existing is not None:
            return existing
        tag = self._create_tag(name, color)
        self._save()
        return tag

    def rename_tag(self, tag_id: str, name: str) -> bool:
        tag = self.get_tag_by_id(tag_id)
        if tag is None:
            return False
        tag.name = name
        self._save()
        return True

    def update_tag_color(self, tag_id: str, color: str) -> bool:
        tag = self.get_tag_by_id(tag_id)
        if tag is None:
            return False
        tag.color = color
        self._save()
        return True

    def hide_tag(self, tag_id: str) -> bool:
        tag = self.get_tag_by_id(tag_id)
        if tag is None:
            return False
        tag.is_hidden = True
        self._save()
        return True

    def restore_tag(self, tag_id: str) -> bool:
        tag = self.get_tag_by_id(tag_id)
        if tag is None:
            return False
        tag.is_hidden = False
        self._save()
        return True

    def delete_tag(self, tag_id: str) -> bool:
        """Detach the tag from every task, then remove it."""
        tag = self.get_tag_by_id(tag_id)
        if tag is None:
            return False
        for task in self._data.tasks:
            if tag_id in task.tag_ids:
                task.tag_ids = [t for t in task.tag_ids if t != tag_id]
        self._data.hash_tags.remove(tag)
        self._save()
        return True

    def add_tag_to_task(self, task: Task, tag_id: str) -> bool:
        if not self.owns(task) or tag_id in task.tag_ids:
            return False
        task.tag_ids.append(tag_id)
        self._save()
        return True

    def remove_tag_from_task(self, task: Task, tag_id: str) -> bool:
        if not self.owns(task) or tag_id not in task.tag_ids:
            return False
        task.tag_ids.remove(tag_id)
        self._save()
        return True

    # ------------------------------------------------------------------
    # Pet status & statistics
    # ------------------------------------------------------------------

    def _roll_pet_day(self, pet: PetStatus) -> bool:
        """Reset the per-day counters when the calendar day has changed."""
        today = self._today()
        if pet.last_active_date == today:
            return False
        pet.last_active_date = today
        pet.today_completed = 0
        pet.has_shown_greeting_today = False
        return True

    def get_pet_status(self) -> PetStatus:
        """Current pet status, rolled over (and persisted) on a new day."""
        pet = self._data.pet_status
        if self._roll_pet_day(pet):
            self._save()
        return pet

    def update_pet_status(self) -> bool:
        """Persist direct edits to the pet status."""
        return self._save()

    def _record_statistics(self, *, completed: int = 0, created: int = 0) -> None:
        stats = self._data.statistics
        today = self._today()

        entry = next((s for s in stats.daily_history if s.date == today), None)
        if entry is None:
            entry = DailyStats(date=today)
            stats.daily_history.append(entry)
        entry.completed += completed
        entry.created += created

        if completed > 0:
            yesterday = today - timedelta(days=1)
            last = stats.last_completion_date
            if last is None or last < yesterday:
                stats.current_streak = 1
            elif last == yesterday:
                stats.current_streak += 1
            stats.last_completion_date = today
            stats.best_streak = max(stats.best_streak, stats.current_streak)

        cutoff = today - timedelta(days=Constants.STATISTICS_WINDOW_DAYS)
        stats.daily_history = [s for s in stats.daily_history if s.date >= cutoff]

    # ------------------------------------------------------------------
    # Whole-aggregate operations
    # ------------------------------------------------------------------

    def replace_data(self, new_data: AppData) -> bool:
        """Swap in a whole new aggregate (import or reset) and persist it."""
        with span("task_service.replace_data", task_count=len(new_data.tasks)):
            self._data = new_data
            saved = self._save()
            logger.info(f"Replaced data with {len(new_data.tasks)} tasks")
            return saved

    def delete_all_backups(self) -> int:
        return self.storage.delete_all_backups()
