"""Statistics read-model: completion totals, streaks, weekly chart and monthly heatmap."""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

from slimetodo.core.config import Constants
from slimetodo.models.service_models import DayCell, DayData, StatisticsSummary
from slimetodo.services.task_service import TaskService


logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ("월", "화", "수", "목", "금", "토", "일")
WEEKLY_DAYS = 7


def heatmap_intensity(completed: int) -> int:
    """Bucket a day's completion count into heatmap levels 0-4.

    0 -> 0, 1 -> 1, 2 -> 2, 3-4 -> 3, 5+ -> 4
    """
    if completed <= 0:
        return 0
    if completed <= 2:
        return completed
    if completed <= 4:
        return 3
    return 4


class StatisticsService:
    """Derives chart data from the rolling daily history kept by TaskService."""

    def __init__(self, task_service: TaskService, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._tasks = task_service
        self._clock = clock

    def _completed_by_day(self) -> dict[date, int]:
        return {entry.date: entry.completed for entry in self._tasks.get_statistics().daily_history}

    def _last_days(self, count: int) -> list[date]:
        """The last ``count`` days, oldest first, ending today."""
        today = self._clock().date()
        return [today - timedelta(days=offset) for offset in range(count - 1, -1, -1)]

    def get_summary(self) -> StatisticsSummary:
        stats = self._tasks.get_statistics()
        return StatisticsSummary(
            total_completed=self._tasks.get_app_data().pet_status.total_completed,
            current_streak=stats.current_streak,
            best_streak=stats.best_streak,
        )

    def get_weekly_data(self) -> list[DayData]:
        completed = self._completed_by_day()
        return [
            DayData(date=day, day_label=WEEKDAY_LABELS[day.weekday()], completed=completed.get(day, 0))
            for day in self._last_days(WEEKLY_DAYS)
        ]

    def get_monthly_heatmap(self) -> list[DayCell]:
        completed = self._completed_by_day()
        cells = []
        for day in self._last_days(Constants.STATISTICS_WINDOW_DAYS):
            count = completed.get(day, 0)
            cells.append(DayCell(date=day, completed=count, intensity=heatmap_intensity(count)))
        return cells
