"""Periodic reminder scan driven by APScheduler."""

import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from slimetodo.core.logging import log_with_context, span
from slimetodo.domain.task import Task
from slimetodo.services.task_service import TaskService


logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "reminder_scan"

Notifier = Callable[[Task], None]


class ReminderService:
    """Delivers due reminders through an injected notifier.

    The scan only reads pending tasks and flags them notified. It runs on a
    single-instance interval job, so two scans never overlap.
    """

    def __init__(
        self,
        task_service: TaskService,
        notify: Notifier,
        *,
        interval_seconds: int = 60,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._tasks = task_service
        self._notify = notify
        self.interval_seconds = interval_seconds
        self._scheduler = scheduler or BackgroundScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def check_reminders(self, now: datetime | None = None) -> list[Task]:
        """Notify every pending reminder once and mark it delivered.

        A failing notifier is logged; the task is still marked so it is not
        reported again on the next scan.

        Returns:
            The tasks that were reported
        """
        with span("reminder_service.check_reminders"):
            pending = self._tasks.get_tasks_with_pending_reminders(now)

            for task in pending:
                try:
                    self._notify(task)
                except Exception as e:
                    log_with_context(logger, "error", "Reminder notification failed", task_id=task.id, error=str(e))
                self._tasks.mark_reminder_notified(task)

            if pending:
                logger.info("Delivered %d reminders", len(pending))
            return pending

    def start(self) -> None:
        """Scan once immediately, then every ``interval_seconds``."""
        logger.info("Starting reminder scheduler")
        self.check_reminders()

        self._scheduler.add_job(
            self.check_reminders,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=REMINDER_JOB_ID,
            name="Scan Pending Reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled reminder scan: every {self.interval_seconds}s")

        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("Reminder scheduler started successfully")

    def stop(self) -> None:
        if not self._scheduler.running:
            return
        logger.info("Stopping reminder scheduler")
        self._scheduler.shutdown(wait=True)
        logger.info("Reminder scheduler stopped")
