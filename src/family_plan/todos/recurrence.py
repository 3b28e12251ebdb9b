# todos/recurrence.py

"""
Recurrence engine.

For a rule and a point in time, compute the start of the rule's current occurrence
window (the "occurrence boundary") in the rule's timezone, and reopen DONE todos
whose completion predates that boundary.

All wall-clock math happens in the rule's zone; every comparison is made on
absolute instants (POSIX timestamps) so DST transitions cannot flip an ordering.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.ports import TodoRepo
from .todo_models import RecurrenceFrequency, RecurrenceRule

logger = logging.getLogger(__name__)

DEFAULT_TIME = (8, 0)
WEEKDAY_ABBREVS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(slots=True, frozen=True)
class ReactivationResult:
    reactivated: int


def parse_time(value: str | None) -> tuple[int, int]:
    if not value:
        return DEFAULT_TIME
    m = _TIME_RE.match(value.strip())
    if not m:
        return DEFAULT_TIME
    return min(int(m.group(1)), 23), min(int(m.group(2)), 59)


def sanitize_timezone(value: str | None) -> tzinfo:
    """Resolve an IANA zone name; anything missing or unknown falls back to UTC."""
    if not value:
        return timezone.utc
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.debug("Unknown timezone %r, falling back to UTC", value)
        return timezone.utc


def weekday_abbrev(moment: datetime) -> str:
    return WEEKDAY_ABBREVS[moment.weekday()]


def _at(day: datetime, hour: int, minute: int) -> datetime:
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _after(a: datetime, b: datetime) -> bool:
    return a.timestamp() > b.timestamp()


def daily_occurrence(now: datetime, hour: int, minute: int) -> datetime:
    candidate = _at(now, hour, minute)
    if _after(candidate, now):
        candidate = _at(now - timedelta(days=1), hour, minute)
    return candidate


def weekly_occurrence(now: datetime, hour: int, minute: int, days: list[str]) -> datetime:
    targets = set(days) if days else {weekday_abbrev(now)}
    for offset in range(7):
        day = now - timedelta(days=offset)
        if weekday_abbrev(day) not in targets:
            continue
        candidate = _at(day, hour, minute)
        if not _after(candidate, now):
            return candidate
    return _at(now - timedelta(weeks=1), hour, minute)


def monthly_occurrence(now: datetime, hour: int, minute: int, day_of_month: int | None) -> datetime:
    safe_day = max(day_of_month if day_of_month is not None else now.day, 1)
    safe_day = min(safe_day, calendar.monthrange(now.year, now.month)[1])

    candidate = _at(now.replace(day=safe_day), hour, minute)
    if not _after(candidate, now):
        return candidate

    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    prev_day = min(safe_day, calendar.monthrange(year, month)[1])
    return _at(now.replace(year=year, month=month, day=prev_day), hour, minute)


def most_recent_occurrence(
    rule: RecurrenceRule,
    tz: tzinfo | str | None,
    now: datetime | None = None,
    *,
    fallback_time: str | None = None,
) -> datetime:
    """
    Boundary of the schedule period containing `now`, as an aware datetime in `tz`.

    The scheduled time is the rule's time_of_day, else `fallback_time` (the owning
    todo's time), else 08:00. CUSTOM rules are treated as daily.
    """
    zone = tz if isinstance(tz, tzinfo) else sanitize_timezone(tz)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    reference = now.astimezone(zone)

    hour, minute = parse_time(rule.time_of_day or fallback_time)

    if rule.frequency == RecurrenceFrequency.WEEKLY:
        return weekly_occurrence(reference, hour, minute, rule.days_of_week)
    if rule.frequency == RecurrenceFrequency.MONTHLY:
        return monthly_occurrence(reference, hour, minute, rule.day_of_month)
    return daily_occurrence(reference, hour, minute)


def refresh_recurring_todos(store: TodoRepo, now: datetime | None = None) -> ReactivationResult:
    """
    Reactivation sweep.

    Every DONE todo with a completion time and a rule is reopened (PENDING, with
    completed_at / cleared_at cleared) when it was completed before the rule's
    current occurrence boundary. Read and batch write share one transaction, so a
    second sweep right after the first finds nothing to do.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    with store.transaction() as conn:
        to_reactivate: list[int] = []
        for todo, rule in store.list_reactivation_candidates(conn=conn):
            if todo.completed_at is None:
                continue
            zone = sanitize_timezone(rule.timezone or todo.timezone)
            boundary = most_recent_occurrence(rule, zone, now, fallback_time=todo.time_of_day)
            if todo.completed_at < boundary.timestamp():
                to_reactivate.append(todo.id)

        reactivated = store.reactivate_todos(to_reactivate, now_ts=now.timestamp(), conn=conn)

    if reactivated:
        logger.info("Reactivated %d recurring todo(s)", reactivated)
    return ReactivationResult(reactivated=reactivated)
