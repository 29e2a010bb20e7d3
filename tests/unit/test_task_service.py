"""Tests for the task engine: creation, views, mutations, statistics and notifications."""

from datetime import date, datetime, timedelta

import pytest

from slimetodo.core.config import Constants
from slimetodo.domain import AppData, DailyStats, RecurrenceType, Task
from slimetodo.services.storage_service import StorageService
from slimetodo.services.task_service import TaskService


def _titles(tasks: list[Task]) -> list[str]:
    return [task.title for task in tasks]


@pytest.mark.unit
class TestAddTask:
    """AddTask runs the parser and finds or creates tags."""

    def test_parsed_title_date_and_tags(self, task_service: TaskService):
        task = task_service.add_task("회의 #work 내일")

        assert task.title == "회의"
        assert task.due_date == date(2024, 1, 11)
        assert task.created_at == datetime(2024, 1, 10, 9, 0)
        tag = task_service.get_tag_by_id(task.tag_ids[0])
        assert tag.name == "work"
        assert tag.color == Constants.TAG_PALETTE[0]

    def test_existing_tag_matched_case_insensitively(self, task_service: TaskService):
        existing = task_service.add_tag("Work")

        task = task_service.add_task("report #work")

        assert task.tag_ids == [existing.id]
        assert len(task_service.get_tags()) == 1

    def test_repeated_tag_attached_once(self, task_service: TaskService):
        task = task_service.add_task("x #a #A")

        assert len(task.tag_ids) == 1

    def test_order_is_task_count(self, task_service: TaskService):
        first = task_service.add_task("one")
        second = task_service.add_task("two")

        assert (first.order, second.order) == (0, 1)

    def test_project_assignment(self, task_service: TaskService):
        project = task_service.add_project("Home")

        task = task_service.add_task("dishes", project.id)

        assert task.project_id == project.id
        assert task_service.get_inbox_tasks() == []

    def test_persisted_immediately(self, task_service: TaskService, data_dir, clock):
        task_service.add_task("durable")

        reloaded = TaskService(StorageService(data_dir, clock=clock), clock=clock)

        assert _titles(reloaded.get_all_tasks()) == ["durable"]

    def test_records_created_statistic(self, task_service: TaskService):
        task_service.add_task("a")
        task_service.add_task("b")

        entry = task_service.get_statistics().daily_history[0]
        assert (entry.date, entry.created, entry.completed) == (date(2024, 1, 10), 2, 0)


@pytest.mark.unit
class TestViews:
    """Filtered and sorted task views."""

    def test_inbox_excludes_project_tasks(self, populated_service: TaskService):
        assert "project" not in _titles(populated_service.get_inbox_tasks())
        assert len(populated_service.get_inbox_tasks()) == 5

    def test_today(self, populated_service: TaskService):
        assert sorted(_titles(populated_service.get_today_tasks())) == ["due today", "overdue", "pinned"]

    def test_upcoming(self, populated_service: TaskService):
        assert _titles(populated_service.get_upcoming_tasks()) == ["upcoming"]

    def test_unscheduled(self, populated_service: TaskService):
        assert _titles(populated_service.get_unscheduled_tasks()) == ["pinned", "someday"]

    def test_week_range_is_inclusive(self, populated_service: TaskService, today: date):
        tasks = populated_service.get_week_tasks(today - timedelta(days=2), today + timedelta(days=5))

        assert _titles(tasks) == ["overdue", "due today", "upcoming"]

    def test_project_view(self, populated_service: TaskService):
        project = populated_service.get_projects()[0]

        assert _titles(populated_service.get_project_tasks(project.id)) == ["project"]
        assert populated_service.get_project_task_count(project.id) == 1

    def test_completed_hidden_by_default(self, populated_service: TaskService):
        task = populated_service.get_today_tasks()[0]
        populated_service.toggle_complete(task)

        assert task not in populated_service.get_today_tasks()
        assert task in populated_service.get_today_tasks(include_completed=True)

    def test_default_sort(self, task_service: TaskService):
        """Incomplete first, then important, then earliest due, then manual order."""
        task_service.add_task("plain")
        later = task_service.add_task("later")
        task_service.set_task_due_date(later, date(2024, 2, 1))
        sooner = task_service.add_task("sooner")
        task_service.set_task_due_date(sooner, date(2024, 1, 20))
        starred = task_service.add_task("starred")
        task_service.toggle_important(starred)
        done = task_service.add_task("done")
        task_service.toggle_complete(done)

        tasks = task_service.get_all_tasks(include_completed=True)

        assert _titles(tasks) == ["starred", "sooner", "later", "plain", "done"]

    def test_importance_sort_in_today(self, task_service: TaskService):
        first = task_service.add_task("first 오늘")
        second = task_service.add_task("second 오늘")
        task_service.toggle_important(second)

        assert task_service.get_today_tasks() == [second, first]

    def test_by_tag(self, task_service: TaskService):
        tagged = task_service.add_task("tagged #home")
        task_service.add_task("untagged")
        tag = task_service.get_tag_by_name("home")

        assert task_service.get_tasks_by_tag(tag.id) == [tagged]
        assert task_service.get_tag_task_count(tag.id) == 1
        assert task_service.get_first_tag_color(tagged) == tag.color

    def test_today_count_and_overdue(self, populated_service: TaskService):
        assert populated_service.get_today_task_count() == 3
        assert populated_service.has_overdue_tasks() is True


@pytest.mark.unit
class TestSearch:
    """Every query term must appear in the title."""

    def test_all_terms_required(self, task_service: TaskService):
        task_service.add_task("주간 보고서 작성하기")
        task_service.add_task("보고서 검토")

        assert _titles(task_service.search_tasks("보고서 작성")) == ["주간 보고서 작성하기"]
        assert task_service.search_tasks("보고서 회의") == []

    def test_case_insensitive(self, task_service: TaskService):
        task_service.add_task("Write Report")

        assert _titles(task_service.search_tasks("report WRITE")) == ["Write Report"]

    def test_blank_query_matches_nothing(self, task_service: TaskService):
        task_service.add_task("anything")

        assert task_service.search_tasks("  ") == []


@pytest.mark.unit
class TestToggleComplete:
    """Completion stamps, counters, streaks and recurrence."""

    def test_complete_and_reopen(self, task_service: TaskService, clock):
        task = task_service.add_task("a")

        assert task_service.toggle_complete(task) is True
        assert task.is_completed is True
        assert task.completed_at == clock()

        assert task_service.toggle_complete(task) is True
        assert task.is_completed is False
        assert task.completed_at is None

    def test_reopen_keeps_counters(self, task_service: TaskService):
        """Counters are never decremented."""
        task = task_service.add_task("a")
        task_service.toggle_complete(task)
        task_service.toggle_complete(task)

        pet = task_service.get_pet_status()
        assert pet.total_completed == 1
        assert pet.today_completed == 1
        assert task_service.get_statistics().daily_history[0].completed == 1

    def test_level_every_ten_completions(self, task_service: TaskService):
        for i in range(Constants.COMPLETIONS_PER_LEVEL):
            task_service.toggle_complete(task_service.add_task(f"t{i}"))

        assert task_service.get_pet_status().level == 2

    def test_today_counter_resets_on_new_day(self, task_service: TaskService, clock):
        task_service.toggle_complete(task_service.add_task("day1"))
        clock.advance(days=1)
        task_service.toggle_complete(task_service.add_task("day2"))

        pet = task_service.get_pet_status()
        assert pet.total_completed == 2
        assert pet.today_completed == 1
        assert pet.last_active_date == date(2024, 1, 11)

    def test_streak(self, task_service: TaskService, clock):
        task_service.toggle_complete(task_service.add_task("a"))
        task_service.toggle_complete(task_service.add_task("b"))
        assert task_service.get_statistics().current_streak == 1

        clock.advance(days=1)
        task_service.toggle_complete(task_service.add_task("c"))
        assert task_service.get_statistics().current_streak == 2

        clock.advance(days=2)
        task_service.toggle_complete(task_service.add_task("d"))
        stats = task_service.get_statistics()
        assert stats.current_streak == 1
        assert stats.best_streak == 2
        assert stats.last_completion_date == date(2024, 1, 13)

    def test_recurring_task_spawns_successor(self, task_service: TaskService):
        task = task_service.add_task("물 주기 #plants 오늘")
        task_service.set_recurrence(task, RecurrenceType.WEEKLY)

        task_service.toggle_complete(task)

        tasks = task_service.get_app_data().tasks
        assert len(tasks) == 2
        successor = tasks[1]
        assert successor.title == "물 주기"
        assert successor.due_date == date(2024, 1, 17)
        assert successor.tag_ids == task.tag_ids
        assert successor.is_completed is False
        assert successor.order == 1

    def test_reopening_does_not_spawn(self, task_service: TaskService):
        task = task_service.add_task("daily")
        task_service.set_recurrence(task, RecurrenceType.DAILY)
        task_service.toggle_complete(task)
        task_service.toggle_complete(task)

        assert len(task_service.get_app_data().tasks) == 2

    def test_foreign_task_rejected(self, task_service: TaskService):
        """A structurally equal copy is not the owned task."""
        task = task_service.add_task("a")

        assert task_service.toggle_complete(task.model_copy()) is False
        assert task_service.toggle_complete(Task(title="stranger")) is False
        assert task.is_completed is False


@pytest.mark.unit
class TestTaskMutations:
    """Field setters, delete/restore and reorder."""

    def test_set_recurrence_rejects_bad_interval(self, task_service: TaskService):
        task = task_service.add_task("a")

        with pytest.raises(ValueError, match="at least 1"):
            task_service.set_recurrence(task, RecurrenceType.DAILY, 0)

    def test_set_reminder_resets_notified(self, task_service: TaskService, clock):
        task = task_service.add_task("a")
        task_service.set_reminder(task, clock() - timedelta(minutes=5))
        task_service.mark_reminder_notified(task)

        task_service.set_reminder(task, clock() + timedelta(hours=1))

        assert task.reminder_notified is False

    def test_pending_reminders(self, task_service: TaskService, clock):
        due = task_service.add_task("due")
        future = task_service.add_task("future")
        done = task_service.add_task("done")
        task_service.set_reminder(due, clock() - timedelta(minutes=1))
        task_service.set_reminder(future, clock() + timedelta(minutes=1))
        task_service.set_reminder(done, clock() - timedelta(minutes=1))
        task_service.toggle_complete(done)

        assert task_service.get_tasks_with_pending_reminders() == [due]

        task_service.mark_reminder_notified(due)
        assert task_service.get_tasks_with_pending_reminders() == []

    def test_rename_rejects_blank(self, task_service: TaskService):
        task = task_service.add_task("a")

        assert task_service.rename_task(task, "   ") is False
        assert task_service.rename_task(task, " b ") is True
        assert task.title == "b"

    def test_notes_stamp_modified_time(self, task_service: TaskService, clock):
        task = task_service.add_task("a")

        task_service.set_task_notes(task, "<p>hello</p>")

        assert task.has_notes
        assert task.notes_modified_at == clock()

    def test_delete_and_restore(self, task_service: TaskService):
        task = task_service.add_task("a")

        assert task_service.delete_task(task) is True
        assert task_service.get_task_by_id(task.id) is None
        assert task_service.delete_task(task) is False

        assert task_service.restore_task(task) is True
        assert task_service.owns(task)
        assert task_service.restore_task(task) is False

    def test_reorder_renumbers_all_tasks(self, task_service: TaskService):
        for i in range(5):
            task_service.add_task(f"t{i}")
        moved = task_service.get_app_data().tasks[2]

        assert task_service.reorder_task(moved, 0) is True

        tasks = task_service.get_app_data().tasks
        assert _titles(tasks) == ["t2", "t0", "t1", "t3", "t4"]
        assert [t.order for t in tasks] == [0, 1, 2, 3, 4]

    def test_reorder_clamps_index(self, task_service: TaskService):
        first = task_service.add_task("first")
        task_service.add_task("second")

        task_service.reorder_task(first, 99)

        assert _titles(task_service.get_app_data().tasks) == ["second", "first"]
        assert first.order == 1

    def test_move_to_project(self, task_service: TaskService):
        project = task_service.add_project("P")
        task = task_service.add_task("a")

        task_service.move_task_to_project(task, project.id)

        assert task_service.get_project_tasks(project.id) == [task]


@pytest.mark.unit
class TestSubtasks:
    """Checklist items inside a task."""

    def test_add_toggle_rename_delete(self, task_service: TaskService):
        task = task_service.add_task("trip")
        first = task_service.add_subtask(task, "passport")
        second = task_service.add_subtask(task, "tickets")

        assert (first.order, second.order) == (0, 1)
        assert task_service.add_subtask(task, " ") is None

        assert task_service.toggle_subtask(task, first.id) is True
        assert first.is_completed is True

        assert task_service.rename_subtask(task, second.id, "train tickets") is True
        assert second.title == "train tickets"

        assert task_service.delete_subtask(task, first.id) is True
        assert task.sub_tasks == [second]
        assert task_service.delete_subtask(task, "missing") is False


@pytest.mark.unit
class TestProjects:
    """Soft delete, restore, purge and reorder."""

    def test_delete_removes_tasks_and_restore_does_not_bring_them_back(self, task_service: TaskService):
        project = task_service.add_project("Work")
        task_service.add_task("a", project.id)
        task_service.add_task("b", project.id)
        task_service.add_task("inbox")

        assert task_service.delete_project(project.id) is True

        assert _titles(task_service.get_all_tasks()) == ["inbox"]
        assert task_service.get_projects() == []
        assert task_service.get_deleted_projects() == [project]
        assert project.deleted_at is not None

        assert task_service.restore_project(project.id) is True
        assert task_service.get_projects() == [project]
        assert task_service.get_project_tasks(project.id) == []

    def test_permanent_delete(self, task_service: TaskService):
        project = task_service.add_project("Old")

        assert task_service.permanently_delete_project(project.id) is True
        assert task_service.get_project_by_id(project.id) is None

    def test_unknown_ids_are_no_ops(self, task_service: TaskService):
        assert task_service.rename_project("nope", "x") is False
        assert task_service.delete_project("nope") is False
        assert task_service.restore_project("nope") is False
        assert task_service.delete_tag("nope") is False
        assert task_service.rename_tag("nope", "x") is False

    def test_reorder_projects(self, task_service: TaskService):
        a = task_service.add_project("A")
        b = task_service.add_project("B")
        c = task_service.add_project("C")

        assert task_service.reorder_project(c.id, a.id) is True

        assert task_service.get_projects() == [c, a, b]

    def test_lookup_by_name(self, task_service: TaskService):
        project = task_service.add_project("Home")

        assert task_service.get_project_by_name("home") is project


@pytest.mark.unit
class TestTags:
    """Tag creation, color, hiding and cascade delete."""

    def test_palette_cycles(self, task_service: TaskService):
        palette = Constants.TAG_PALETTE
        tags = [task_service.add_tag(f"tag{i}") for i in range(len(palette) + 1)]

        assert [t.color for t in tags[: len(palette)]] == list(palette)
        assert tags[-1].color == palette[0]

    def test_add_existing_returns_same_tag(self, task_service: TaskService):
        tag = task_service.add_tag("home")

        assert task_service.add_tag("HOME") is tag

    def test_delete_cascades_to_tasks(self, task_service: TaskService):
        task = task_service.add_task("a #home #work")
        home = task_service.get_tag_by_name("home")
        work = task_service.get_tag_by_name("work")

        assert task_service.delete_tag(home.id) is True

        assert task.tag_ids == [work.id]
        assert task_service.get_tags() == [work]

    def test_hide_restore_and_color(self, task_service: TaskService):
        tag = task_service.add_tag("home")

        task_service.hide_tag(tag.id)
        assert tag.is_hidden is True
        task_service.restore_tag(tag.id)
        assert tag.is_hidden is False

        task_service.update_tag_color(tag.id, "#000000")
        assert tag.color == "#000000"

    def test_attach_and_detach(self, task_service: TaskService):
        task = task_service.add_task("a")
        tag = task_service.add_tag("home")

        assert task_service.add_tag_to_task(task, tag.id) is True
        assert task_service.add_tag_to_task(task, tag.id) is False
        assert task_service.remove_tag_from_task(task, tag.id) is True
        assert task.tag_ids == []


@pytest.mark.unit
class TestStatisticsAndPet:
    """Rolling history window and pet status rollover."""

    def test_history_pruned_to_window(self, task_service: TaskService, today: date):
        history = task_service.get_statistics().daily_history
        history.append(DailyStats(date=today - timedelta(days=Constants.STATISTICS_WINDOW_DAYS + 1), completed=3))
        history.append(DailyStats(date=today - timedelta(days=5), completed=1))

        task_service.add_task("trigger")

        dates = [entry.date for entry in task_service.get_statistics().daily_history]
        assert dates == [today - timedelta(days=5), today]

    def test_pet_status_rolls_over_and_persists(self, task_service: TaskService, storage: StorageService, clock):
        task_service.toggle_complete(task_service.add_task("a"))
        clock.advance(days=1)

        pet = task_service.get_pet_status()

        assert pet.today_completed == 0
        assert storage.load().pet_status.last_active_date == date(2024, 1, 11)


@pytest.mark.unit
class TestNotifications:
    """Subscribers hear about every persisted mutation."""

    def test_called_after_save(self, task_service: TaskService, storage: StorageService):
        seen: list[list[str]] = []
        task_service.subscribe(lambda: seen.append([t.title for t in storage.load().tasks]))

        task_service.add_task("a")

        assert seen == [["a"]]

    def test_unsubscribe(self, task_service: TaskService):
        calls: list[int] = []
        unsubscribe = task_service.subscribe(lambda: calls.append(1))

        task_service.add_task("a")
        unsubscribe()
        task_service.add_task("b")

        assert calls == [1]

    def test_failing_subscriber_does_not_block_others(self, task_service: TaskService):
        calls: list[int] = []

        def broken() -> None:
            raise RuntimeError("listener bug")

        task_service.subscribe(broken)
        task_service.subscribe(lambda: calls.append(1))

        task_service.add_task("a")

        assert calls == [1]


@pytest.mark.unit
class TestReplaceData:
    """Whole-aggregate replacement used by import."""

    def test_replace_persists(self, task_service: TaskService, storage: StorageService):
        task_service.add_task("old")
        new_data = AppData(tasks=[Task(title="imported")])

        assert task_service.replace_data(new_data) is True

        assert task_service.get_app_data() is new_data
        assert [t.title for t in storage.load().tasks] == ["imported"]
