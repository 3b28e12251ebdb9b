# todos/todo_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class TodoStatus(StrEnum):
    PENDING = "PENDING"
    DONE = "DONE"

    @classmethod
    def from_db(cls, raw: str | None) -> TodoStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class RecurrenceFrequency(StrEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurrenceFrequency:
        try:
            return cls(raw or "")
        except ValueError:
            return cls.CUSTOM


# ---- persisted records ----


@dataclass(slots=True)
class Member:
    id: int
    slug: str
    name: str
    color_hex: str | None
    timezone: str | None


@dataclass(slots=True)
class Source:
    id: int
    path: str
    checksum: str
    last_synced_at: float


@dataclass(slots=True)
class RecurrenceRule:
    id: int
    member_id: int
    source_id: int | None
    source_key: str | None
    title: str
    frequency: RecurrenceFrequency
    days_of_week: list[str]
    day_of_month: int | None
    time_of_day: str | None
    timezone: str | None
    raw: str = ""


@dataclass(slots=True)
class Todo:
    id: int
    member_id: int
    member_slug: str
    title: str
    status: TodoStatus
    created_at: float
    updated_at: float

    notes: str | None = None
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    time_of_day: str | None = None
    timezone: str | None = None

    source_id: int | None = None
    source_key: str | None = None
    source_line: int | None = None
    recurrence_rule_id: int | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    completed_at: float | None = None
    cleared_at: float | None = None


# ---- parser output ----


@dataclass(slots=True, frozen=True)
class ParsedRecurring:
    frequency: RecurrenceFrequency
    raw: str
    days_of_week: tuple[str, ...] = ()
    day_of_month: int | None = None
    time_of_day: str | None = None


@dataclass(slots=True)
class ParsedTodo:
    """One checklist item as found in a markdown document."""

    source_key: str
    title: str
    source_line: int
    category: str | None = None
    notes: str | None = None
    tags: list[str] = field(default_factory=list)
    time_of_day: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    recurring: ParsedRecurring | None = None


@dataclass(slots=True)
class ParsedDocument:
    """
    A whole markdown document: owner attributes from the front-matter plus its todos.

    `slug` is the document's source key (the member identity).
    """

    path: str
    checksum: str
    slug: str
    name: str | None = None
    color: str | None = None
    timezone: str | None = None
    todos: list[ParsedTodo] = field(default_factory=list)
