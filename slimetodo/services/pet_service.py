"""Companion character ("pet") read-model: greetings, mood and reaction lines.

The pet never cheers the user on; it just keeps them company. All lines are
short Korean phrases picked at random from fixed pools.
"""

import logging
import random
from collections.abc import Callable
from datetime import datetime

from slimetodo.domain.app_data import PetMood
from slimetodo.models.service_models import Greeting
from slimetodo.services.task_service import TaskService


logger = logging.getLogger(__name__)

# First launch of the day
GREETING_MESSAGES = (
    "왔네.",
    "잠깐 들른 거지?",
    "그냥 켜도 돼.",
    "오늘은 어떤 날이려나.",
    "아무 일 없어도 괜찮아.",
    "여기 조용하지.",
    "천천히 해.",
    "한 번 보고 가.",
    "들렀다 가도 돼.",
    "그래, 여기.",
)

FIRST_COMPLETION_MESSAGES = (
    "오... 했네.",
    "시작했네.",
    "이게 제일 어려운 거잖아.",
    "좋네.",
    "이 정도면 충분해.",
    "한 번 움직이면, 그걸로 돼.",
    "괜찮은 선택이었어.",
    "오늘은 여기서 이미 이김.",
    "음. 좋다.",
    "해냈네, 하나.",
)

# Shown for only a fraction of ordinary completions
COMPLETION_MESSAGES = (
    "또 하나 지나갔네.",
    "깔끔.",
    "좋아.",
    "그렇게 하는 거지.",
    "부담 덜었네.",
    "작게라도, 됐어.",
    "응.",
    "나쁘지 않네.",
)

ALL_DONE_MESSAGES = (
    "오늘은 이대로도 괜찮아.",
    "이제 쉬자.",
    "할 일 없는 날도 필요해.",
    "여기까지면 됐어.",
    "가벼워졌네.",
    "오늘은 비어도 좋아.",
    "끝.",
    "응, 휴식.",
)

OVERDUE_MESSAGES = (
    "오늘은 좀 그런 날이지.",
    "내일 해도 돼.",
    "괜찮아. 미뤄도 돼.",
    "지금은 쉬자.",
    "한 번에 다 안 해도 돼.",
    "천천히 다시 오면 돼.",
)

YESTERDAY_PRAISE_MESSAGES = (
    "어제는 좀 괜찮았던 것 같더라.",
    "어제, 좋았어.",
    "어제 잘 지나갔네.",
    "어제는 가벼웠지.",
)

WELCOME_BACK_MESSAGES = (
    "오랜만이다.",
    "다시 왔네.",
    "여기 있었지.",
    "그냥 와도 돼.",
)

STREAK_MESSAGES = (
    "오 {0}개째.",
    "{0}연속이네.",
    "계속 하네... 대단.",
    "... {0}개?",
)

LEVEL_UP_MESSAGES = (
    "Lv.{0}. 축하.",
    "레벨 올랐네. {0}.",
    "오... Lv.{0}.",
    "{0}레벨.",
)

POKE_MESSAGES = (
    "뭐.",
    "왜.",
    "...?",
    "심심해?",
    "건드리지 마.",
    "...",
    "뭔데.",
    "그래.",
    "음.",
    "할 일이나 해.",
)

GOODBYE_MESSAGES = (
    "나중에 봐.",
    "또 와.",
    "응.",
    "잘 가.",
    "...",
    "다음에.",
)

NORMAL_COMPLETION_REACTION_PERCENT = 20
OVERDUE_MESSAGE_PERCENT = 10
WELCOME_BACK_AFTER_DAYS = 2


class PetService:
    """Engagement messages derived from the task engine's pet status."""

    def __init__(
        self,
        task_service: TaskService,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._tasks = task_service
        self._rng = rng or random.Random()
        self._clock = clock

    def _pick(self, pool: tuple[str, ...]) -> str:
        return self._rng.choice(pool)

    def _chance(self, percent: int) -> bool:
        return self._rng.randrange(100) < percent

    def get_app_start_greeting(self) -> Greeting | None:
        """Greeting for the first launch of the day, or None if already shown today.

        Priority: welcome-back after two or more days away, then praise when
        yesterday ended with an empty Today view, then a plain greeting.
        """
        today = self._clock().date()
        raw_status = self._tasks.get_app_data().pet_status
        last_open = raw_status.last_app_open_date

        if last_open == today and raw_status.has_shown_greeting_today:
            return None

        # Read the previous day's counter before get_pet_status rolls it over
        completed_on_last_active_day = raw_status.today_completed
        status = self._tasks.get_pet_status()

        if last_open != today:
            status.yesterday_was_all_done = completed_on_last_active_day > 0 and not self._tasks.get_today_tasks()
            status.has_shown_greeting_today = False

        days_since_last_open = (today - last_open).days if last_open else 0

        if days_since_last_open >= WELCOME_BACK_AFTER_DAYS:
            message = self._pick(WELCOME_BACK_MESSAGES)
        elif status.yesterday_was_all_done and days_since_last_open >= 1:
            message = self._pick(YESTERDAY_PRAISE_MESSAGES)
        else:
            message = self._pick(GREETING_MESSAGES)

        status.last_app_open_date = today
        status.has_shown_greeting_today = True
        self._tasks.update_pet_status()

        logger.info("Showing app start greeting (days since last open: %d)", days_since_last_open)
        return Greeting(message=message, mood=self.get_current_mood())

    def get_current_mood(self) -> PetMood:
        if not self._tasks.get_today_tasks():
            return PetMood.RESTING
        if self._tasks.has_overdue_tasks():
            return PetMood.WORRIED
        return PetMood.NORMAL

    def get_completion_message(self, *, is_first_today: bool, is_all_done: bool) -> str:
        if is_all_done:
            return self._pick(ALL_DONE_MESSAGES)
        if is_first_today:
            return self._pick(FIRST_COMPLETION_MESSAGES)
        return self._pick(COMPLETION_MESSAGES)

    def should_show_normal_completion_reaction(self) -> bool:
        return self._chance(NORMAL_COMPLETION_REACTION_PERCENT)

    def get_streak_message(self, streak: int) -> str:
        return self._pick(STREAK_MESSAGES).format(streak)

    def get_level_up_message(self, level: int) -> str:
        return self._pick(LEVEL_UP_MESSAGES).format(level)

    def get_overdue_message(self) -> str | None:
        """An overdue line only now and then; None most of the time."""
        if self._chance(OVERDUE_MESSAGE_PERCENT):
            return self._pick(OVERDUE_MESSAGES)
        return None

    def get_resting_message(self) -> str:
        return self._pick(ALL_DONE_MESSAGES)

    def get_poke_message(self) -> str:
        return self._pick(POKE_MESSAGES)

    def get_goodbye_message(self) -> str:
        return self._pick(GOODBYE_MESSAGES)
