"""slimetodo - a small single-user task engine with natural-language quick add."""

import argparse
import logging
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from slimetodo.core.config import Settings, get_settings
from slimetodo.core.logging import configure_logfire
from slimetodo.domain.task import Task
from slimetodo.services.pet_service import PetService
from slimetodo.services.reminder_service import Notifier, ReminderService
from slimetodo.services.statistics_service import StatisticsService
from slimetodo.services.storage_service import StorageService
from slimetodo.services.task_service import TaskService
from slimetodo.services.undo_service import UndoService


logger = logging.getLogger(__name__)

VIEWS = ("inbox", "today", "upcoming", "unscheduled", "all")


@dataclass
class Application:
    """Every service, wired together once by build_application."""

    settings: Settings
    storage: StorageService
    tasks: TaskService
    undo: UndoService
    pet: PetService
    statistics: StatisticsService
    reminders: ReminderService


def _echo(text: str = "") -> None:
    print(text)  # noqa: T201


def _echo_reminder(task: Task) -> None:
    _echo(f"⏰ {task.title}")


def build_application(
    settings: Settings,
    *,
    storage: StorageService | None = None,
    notify: Notifier | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Application:
    """Construct all services and pass references explicitly.

    Args:
        settings: Application settings
        storage: Pre-built store (already locked by the caller); created from settings if omitted
        notify: Reminder delivery callback (defaults to printing the task title)
        clock: Time source shared by every service
    """
    storage = storage or StorageService(
        settings.data_dir,
        legacy_data_dir=settings.legacy_data_dir,
        backup_retention_days=settings.backup_retention_days,
        clock=clock,
    )
    tasks = TaskService(storage, clock=clock)
    return Application(
        settings=settings,
        storage=storage,
        tasks=tasks,
        undo=UndoService(tasks, max_depth=settings.undo_max_depth, clock=clock),
        pet=PetService(tasks, clock=clock),
        statistics=StatisticsService(tasks, clock=clock),
        reminders=ReminderService(
            tasks,
            notify or _echo_reminder,
            interval_seconds=settings.reminder_interval_seconds,
        ),
    )


# ----------------------------------------------------------------------
# Command handlers
# ----------------------------------------------------------------------


def _format_task(app: Application, task: Task) -> str:
    check = "x" if task.is_completed else " "
    star = "★ " if task.is_important else ""
    line = f"[{check}] {task.id[:8]}  {star}{task.title}"
    if task.due_date:
        line += f"  (due {task.due_date:%Y-%m-%d})"
    tag_names = [tag.name for tag_id in task.tag_ids if (tag := app.tasks.get_tag_by_id(tag_id))]
    if tag_names:
        line += "  " + " ".join(f"#{name}" for name in tag_names)
    return line


def _resolve_task(app: Application, reference: str) -> Task | None:
    """Find a task by full id or unique id prefix."""
    task = app.tasks.get_task_by_id(reference)
    if task is not None:
        return task
    matches = [t for t in app.tasks.get_all_tasks(include_completed=True) if t.id.startswith(reference)]
    return matches[0] if len(matches) == 1 else None


def _cmd_add(app: Application, args: argparse.Namespace) -> int:
    project_id = None
    if args.project:
        project = app.tasks.get_project_by_name(args.project) or app.tasks.add_project(args.project)
        project_id = project.id

    task = app.undo.add_task(" ".join(args.text), project_id)
    _echo(f"Added {_format_task(app, task)}")
    return 0


def _cmd_list(app: Application, args: argparse.Namespace) -> int:
    greeting = app.pet.get_app_start_greeting()
    if greeting:
        _echo(greeting.message)

    queries = {
        "inbox": app.tasks.get_inbox_tasks,
        "today": app.tasks.get_today_tasks,
        "upcoming": app.tasks.get_upcoming_tasks,
        "unscheduled": app.tasks.get_unscheduled_tasks,
        "all": app.tasks.get_all_tasks,
    }
    tasks = queries[args.view](include_completed=args.completed)
    if not tasks:
        _echo("No tasks.")
    for task in tasks:
        _echo(_format_task(app, task))
    return 0


def _cmd_done(app: Application, args: argparse.Namespace) -> int:
    task = _resolve_task(app, args.task_id)
    if task is None:
        _echo(f"No task matches '{args.task_id}'.")
        return 1

    app.undo.toggle_complete(task)
    state = "Completed" if task.is_completed else "Reopened"
    _echo(f"{state} {_format_task(app, task)}")
    return 0


def _cmd_search(app: Application, args: argparse.Namespace) -> int:
    for task in app.tasks.search_tasks(" ".join(args.query), include_completed=True):
        _echo(_format_task(app, task))
    return 0


def _cmd_export(app: Application, args: argparse.Namespace) -> int:
    if not app.storage.export_to_file(app.tasks.get_app_data(), Path(args.path)):
        error = app.storage.last_error
        _echo(f"Export failed: {error.message if error else 'unknown error'}")
        return 1
    _echo(f"Exported to {args.path}")
    return 0


def _cmd_import(app: Application, args: argparse.Namespace) -> int:
    data = app.storage.import_from_file(Path(args.path))
    if data is None:
        error = app.storage.last_error
        if error:
            _echo(f"Import failed: {error.message} {error.suggestion}")
        return 1

    app.tasks.replace_data(data)
    app.undo.clear()
    _echo(f"Imported {len(data.tasks)} tasks")
    return 0


def _cmd_stats(app: Application, _args: argparse.Namespace) -> int:
    summary = app.statistics.get_summary()
    _echo(f"Completed: {summary.total_completed}")
    _echo(f"Streak: {summary.current_streak} (best {summary.best_streak})")
    _echo(f"Level: {app.tasks.get_pet_status().level}")
    _echo()
    for day in app.statistics.get_weekly_data():
        _echo(f"{day.day_label} {day.date:%m/%d} {'■' * day.completed}")
    return 0


def _cmd_watch(app: Application, _args: argparse.Namespace) -> int:
    """Run the reminder scan in the foreground until interrupted."""
    stop = threading.Event()
    app.reminders.start()
    _echo("Watching reminders (Ctrl+C to stop)")
    try:
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        app.reminders.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slimetodo", description="Quick task manager with natural-language dates")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Add a task, e.g. 'slimetodo add 회의 #work 내일'")
    add.add_argument("text", nargs="+", help="Task text with optional date phrase and #tags")
    add.add_argument("--project", default=None, help="Project name (created if missing)")
    add.set_defaults(handler=_cmd_add)

    list_ = commands.add_parser("list", help="List tasks in a view")
    list_.add_argument("--view", choices=VIEWS, default="today", help="Which view to show (default: today)")
    list_.add_argument("--completed", action="store_true", help="Include completed tasks")
    list_.set_defaults(handler=_cmd_list)

    done = commands.add_parser("done", help="Toggle completion of a task")
    done.add_argument("task_id", help="Task id or unique id prefix")
    done.set_defaults(handler=_cmd_done)

    search = commands.add_parser("search", help="Search task titles")
    search.add_argument("query", nargs="+", help="Every term must appear in the title")
    search.set_defaults(handler=_cmd_search)

    export = commands.add_parser("export", help="Export all data to a JSON file")
    export.add_argument("path", help="Destination file")
    export.set_defaults(handler=_cmd_export)

    import_ = commands.add_parser("import", help="Replace all data with an exported JSON file")
    import_.add_argument("path", help="Source file")
    import_.set_defaults(handler=_cmd_import)

    stats = commands.add_parser("stats", help="Show completion statistics")
    stats.set_defaults(handler=_cmd_stats)

    watch = commands.add_parser("watch", help="Deliver reminders until interrupted")
    watch.set_defaults(handler=_cmd_watch)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point.

    Acquires the single-instance lock before touching any data file; if
    another instance holds it, exits with status 1.
    """
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logfire(settings)

    storage = StorageService(
        settings.data_dir,
        legacy_data_dir=settings.legacy_data_dir,
        backup_retention_days=settings.backup_retention_days,
    )
    crashed = storage.has_crash_recovery()

    if not storage.acquire_lock():
        logger.error("Another instance is already running")
        print("Another instance is already running. Close it and try again.", file=sys.stderr)  # noqa: T201
        return 1

    try:
        if crashed:
            logger.warning("Previous session did not exit cleanly")
        storage.migrate_from_legacy_folder()

        app = build_application(settings, storage=storage)
        return args.handler(app, args)
    finally:
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
