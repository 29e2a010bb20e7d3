"""Pytest configuration and fixtures for unit tests."""

from datetime import date, timedelta

import pytest

from slimetodo.services.task_service import TaskService


@pytest.fixture
def today() -> date:
    """The date the shared test clock starts on."""
    return date(2024, 1, 10)


@pytest.fixture
def populated_service(task_service: TaskService, today: date) -> TaskService:
    """Task engine holding one task per Inbox view plus a project task.

    Titles describe where each task should show up:
        pinned      - pinned to today, no due date
        due today   - due 2024-01-10
        overdue     - due 2024-01-08
        upcoming    - due 2024-01-15
        someday     - no due date
        project     - due today but filed under a project
    """
    project = task_service.add_project("Work")

    pinned = task_service.add_task("pinned")
    task_service.toggle_pinned_today(pinned)

    task_service.add_task("due today 오늘")

    overdue = task_service.add_task("overdue")
    task_service.set_task_due_date(overdue, today - timedelta(days=2))

    upcoming = task_service.add_task("upcoming")
    task_service.set_task_due_date(upcoming, today + timedelta(days=5))

    task_service.add_task("someday")
    task_service.add_task("project 오늘", project.id)
    return task_service
