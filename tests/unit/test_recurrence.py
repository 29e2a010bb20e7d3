"""Tests for recurrence date math and successor creation."""

from datetime import date, datetime

import pytest

from slimetodo.core.recurrence import calculate_next_due_date, next_occurrence, recurrence_to_human
from slimetodo.domain.task import RecurrenceType, SubTask, Task


@pytest.mark.unit
class TestCalculateNextDueDate:
    """calculate_next_due_date steps by kind and interval."""

    @pytest.mark.parametrize(
        ("base", "kind", "interval", "expected"),
        [
            (date(2024, 1, 10), RecurrenceType.DAILY, 1, date(2024, 1, 11)),
            (date(2024, 1, 10), RecurrenceType.DAILY, 3, date(2024, 1, 13)),
            (date(2024, 1, 10), RecurrenceType.WEEKLY, 2, date(2024, 1, 24)),
            (date(2024, 1, 31), RecurrenceType.MONTHLY, 1, date(2024, 2, 29)),
            (date(2024, 2, 29), RecurrenceType.YEARLY, 1, date(2025, 2, 28)),
            (date(2024, 1, 10), RecurrenceType.NONE, 1, date(2024, 1, 10)),
        ],
    )
    def test_steps(self, base: date, kind: RecurrenceType, interval: int, expected: date):
        """Month and year steps clamp to shorter months."""
        assert calculate_next_due_date(base, kind, interval) == expected

    def test_interval_below_one_rejected(self):
        """Zero is not a valid interval."""
        with pytest.raises(ValueError, match="at least 1"):
            calculate_next_due_date(date(2024, 1, 10), RecurrenceType.DAILY, 0)


@pytest.mark.unit
class TestNextOccurrence:
    """next_occurrence builds a fresh successor task."""

    def test_copies_rule_and_metadata(self):
        """Title, importance, project, tags and the rule carry over."""
        task = Task(
            title="물 주기",
            due_date=date(2024, 1, 10),
            is_important=True,
            is_completed=True,
            project_id="p1",
            tag_ids=["t1", "t2"],
            recurrence=RecurrenceType.WEEKLY,
            recurrence_interval=2,
        )
        now = datetime(2024, 1, 10, 9, 0)

        successor = next_occurrence(task, date(2024, 1, 10), now=now)

        assert successor.id != task.id
        assert successor.title == "물 주기"
        assert successor.due_date == date(2024, 1, 24)
        assert successor.is_important is True
        assert successor.is_completed is False
        assert successor.completed_at is None
        assert successor.project_id == "p1"
        assert successor.tag_ids == ["t1", "t2"]
        assert successor.tag_ids is not task.tag_ids
        assert successor.recurrence == RecurrenceType.WEEKLY
        assert successor.recurrence_interval == 2
        assert successor.created_at == now

    def test_without_due_date_counts_from_today(self):
        """A recurring task with no due date repeats from today."""
        task = Task(title="stretch", recurrence=RecurrenceType.DAILY)

        successor = next_occurrence(task, date(2024, 1, 10))

        assert successor.due_date == date(2024, 1, 11)

    def test_subtasks_reset(self):
        """Subtasks come back unchecked with new ids."""
        original = SubTask(title="step", is_completed=True, order=3)
        task = Task(title="routine", recurrence=RecurrenceType.DAILY, sub_tasks=[original])

        successor = next_occurrence(task, date(2024, 1, 10))

        assert len(successor.sub_tasks) == 1
        copied = successor.sub_tasks[0]
        assert copied.title == "step"
        assert copied.order == 3
        assert copied.is_completed is False
        assert copied.id != original.id


@pytest.mark.unit
class TestRecurrenceToHuman:
    """Display labels."""

    def test_single_interval_uses_label(self):
        assert recurrence_to_human(RecurrenceType.WEEKLY) == "매주"
        assert recurrence_to_human(RecurrenceType.NONE, 5) == "없음"

    def test_multi_interval(self):
        assert recurrence_to_human(RecurrenceType.DAILY, 3) == "3일마다"
        assert recurrence_to_human(RecurrenceType.MONTHLY, 2) == "2개월마다"
