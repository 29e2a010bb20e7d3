"""Natural-language parsing of quick-add task text.

Extracts an optional due date and any #tags from free text such as
"보고서 작성 #work 내일" or "call mom next friday". Korean and English
keywords are both understood. Parsing is pure: the only input besides the
text is ``today``.
"""

import calendar
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from slimetodo.models.service_models import ParseResult


_KO_WEEKDAYS = {"월": 1, "화": 2, "수": 3, "목": 4, "금": 5, "토": 6, "일": 7}
_EN_WEEKDAYS = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}
_EN_WEEKDAY_ALT = "|".join(_EN_WEEKDAYS)

_HASHTAG = re.compile(r'#("[^"]+"|[^\s#]+)\s*')


@dataclass(frozen=True)
class _DateFamily:
    """One pattern family: tried as a suffix, then as a prefix."""

    name: str
    suffix: re.Pattern[str]
    prefix: re.Pattern[str]
    resolve: Callable[[re.Match[str], date], date | None]


def _family(name: str, core: str, resolve: Callable[[re.Match[str], date], date | None]) -> _DateFamily:
    return _DateFamily(
        name=name,
        suffix=re.compile(rf"(?:{core})\s*$", re.IGNORECASE),
        prefix=re.compile(rf"^\s*(?:{core})\s+", re.IGNORECASE),
        resolve=resolve,
    )


def _weekday_number(match: re.Match[str]) -> int | None:
    """ISO weekday (Mon=1..Sun=7) named by the ko or en group."""
    if match.group("ko"):
        return _KO_WEEKDAYS.get(match.group("ko"))
    if match.group("en"):
        return _EN_WEEKDAYS.get(match.group("en").lower())
    return None


def _end_of_week(day: date) -> date:
    """Sunday of the Monday-based week containing day."""
    return day + timedelta(days=6 - day.weekday())


def _end_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _resolve_keyword(match: re.Match[str], today: date) -> date | None:
    keyword = match.group("kw").lower()
    if keyword in ("today", "오늘"):
        return today
    return today + timedelta(days=1)


def _resolve_relative(match: re.Match[str], today: date) -> date | None:
    amount = int(match.group("amount"))
    unit = match.group("unit").lower()
    try:
        if unit == "d":
            return today + timedelta(days=amount)
        if unit == "w":
            return today + timedelta(weeks=amount)
        return today + relativedelta(months=amount)
    except (OverflowError, ValueError):
        return None


def _resolve_next_weekday(match: re.Match[str], today: date) -> date | None:
    target = _weekday_number(match)
    if target is None:
        return None
    return today + timedelta(days=(7 - today.isoweekday()) + target)


def _resolve_weekday(match: re.Match[str], today: date) -> date | None:
    target = _weekday_number(match)
    if target is None:
        return None
    days_until = target - today.isoweekday()
    if days_until <= 0:
        days_until += 7
    return today + timedelta(days=days_until)


def _resolve_period_end(match: re.Match[str], today: date) -> date | None:
    period = re.sub(r"\s+", "", match.group("period").lower())
    match period:
        case "이번주" | "thisweek":
            return _end_of_week(today)
        case "다음주" | "nextweek":
            return _end_of_week(today + timedelta(days=7))
        case "이번달" | "thismonth":
            return _end_of_month(today)
        case "다음달" | "nextmonth":
            return _end_of_month(today + relativedelta(months=1))
        case _:
            return None


def _resolve_month_day(match: re.Match[str], today: date) -> date | None:
    month = int(match.group("month"))
    day = int(match.group("day"))
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None

    year = today.year
    target = date(year, month, min(day, calendar.monthrange(year, month)[1]))
    if target < today:
        year += 1
        target = date(year, month, min(day, calendar.monthrange(year, month)[1]))
    return target


# Ordered by priority; the first family whose resolver yields a date wins.
DATE_FAMILIES: tuple[_DateFamily, ...] = (
    _family("today_tomorrow", r"(?P<kw>\btoday|(?<!after\s)\btomorrow|오늘|내일)", _resolve_keyword),
    _family("day_after_tomorrow", r"\bday\s+after\s+tomorrow|모레", lambda _m, today: today + timedelta(days=2)),
    _family("two_days_after_tomorrow", r"글피", lambda _m, today: today + timedelta(days=3)),
    _family("relative", r"\+(?P<amount>\d+)(?P<unit>[dwm])\b", _resolve_relative),
    _family(
        "next_weekday",
        rf"다음\s*주\s*(?P<ko>[월화수목금토일])(?:요일)?|\bnext\s+(?P<en>{_EN_WEEKDAY_ALT})\b",
        _resolve_next_weekday,
    ),
    _family(
        "weekday",
        rf"(?<!\S)(?:(?:이번\s*주\s*)?(?P<ko>[월화수목금토일])(?:요일)?|(?:this\s+)?(?P<en>{_EN_WEEKDAY_ALT})\b)",
        _resolve_weekday,
    ),
    _family(
        "period_end",
        r"(?P<period>이번\s*주|다음\s*주|이번\s*달|다음\s*달|\bthis\s+week|\bnext\s+week|\bthis\s+month|\bnext\s+month)",
        _resolve_period_end,
    ),
    _family("month_day_numeric", r"(?<!\d)(?P<month>\d{1,2})[/-](?P<day>\d{1,2})", _resolve_month_day),
    _family("month_day_korean", r"(?<!\d)(?P<month>\d{1,2})월\s*(?P<day>\d{1,2})일?", _resolve_month_day),
)


def _extract_due_date(title: str, today: date) -> tuple[str, date | None]:
    for family in DATE_FAMILIES:
        for pattern in (family.suffix, family.prefix):
            match = pattern.search(title)
            if not match:
                continue
            resolved = family.resolve(match, today)
            if resolved is None:
                # Suffix matched but did not resolve; the prefix may still apply
                continue
            return (title[: match.start()] + title[match.end() :]).strip(), resolved
    return title, None


def _extract_tags(title: str) -> tuple[str, list[str]]:
    tags = []
    for match in _HASHTAG.finditer(title):
        name = match.group(1).strip('"').strip()
        if name:
            tags.append(name)
    return _HASHTAG.sub("", title).strip(), tags


def parse(text: str, *, today: date | None = None) -> ParseResult:
    """Split quick-add text into a title, an optional due date and tag names.

    Date phrases are recognized only at the end or the start of the text.
    If nothing is left once the date and tags are removed, the original input
    is kept as the title.

    Args:
        text: Raw user input
        today: Reference date (defaults to date.today())

    Returns:
        ParseResult with the cleaned title, due date and tags
    """
    if not text or not text.strip():
        return ParseResult(title=text)

    today = today or date.today()

    title, due_date = _extract_due_date(text.strip(), today)
    title, tags = _extract_tags(title)

    return ParseResult(title=title or text, due_date=due_date, tags=tags)
