# todos/todo_service.py

"""
Todo query service: the operations the outer layers (CLI, HTTP) call.

Every read runs the reactivation sweep first, so callers always see recurring
todos reopened on schedule. Results are plain dicts (camelCase keys, ISO-8601
timestamps) ready to be rendered or JSON-encoded.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, ValidationError
from .markdown_parser import normalize_time
from .reconcile import SyncSummary, sync_markdown_todos
from .recurrence import ReactivationResult, refresh_recurring_todos
from .todo_models import Member, RecurrenceRule, Todo, TodoStatus
from .todo_store import TodoStore

logger = logging.getLogger(__name__)

_PATCH_ALIASES = {"timeOfDay": "time_of_day"}
_PATCH_KEYS = frozenset({"title", "notes", "category", "time_of_day", "status", "tags"})


def _iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    moment = datetime.fromtimestamp(ts, timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_todo(
    todo: Todo,
    members: Mapping[int, Member],
    rules: Mapping[int, RecurrenceRule],
) -> dict[str, Any]:
    member = members.get(todo.member_id)
    rule = rules.get(todo.recurrence_rule_id) if todo.recurrence_rule_id is not None else None
    return {
        "id": todo.id,
        "title": todo.title,
        "notes": todo.notes,
        "category": todo.category,
        "tags": list(todo.tags),
        "status": todo.status.value,
        "timeOfDay": todo.time_of_day,
        "timezone": todo.timezone,
        "member": {
            "id": todo.member_id,
            "name": member.name if member else todo.member_slug,
            "slug": todo.member_slug,
            "colorHex": member.color_hex if member else None,
        },
        "recurring": (
            {
                "id": rule.id,
                "frequency": rule.frequency.value,
                "daysOfWeek": list(rule.days_of_week),
                "timeOfDay": rule.time_of_day,
                "timezone": rule.timezone,
            }
            if rule
            else None
        ),
        "completedAt": _iso(todo.completed_at),
        "clearedAt": _iso(todo.cleared_at),
    }


def coerce_status(value: Any) -> TodoStatus:
    if isinstance(value, TodoStatus):
        return value
    try:
        return TodoStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"invalid status: {value!r}") from None


def _coerce_time(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"invalid time of day: {value!r}")
    normalized = normalize_time(value)
    if normalized is None:
        raise ValidationError(f"invalid time of day: {value!r} (expected HH:MM)")
    return normalized


def _coerce_optional_text(name: str, value: Any) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value


def _coerce_tags(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
        raise ValidationError("tags must be a list of strings")
    return [t.strip() for t in value if t.strip()]


class TodoService:
    def __init__(
        self,
        store: TodoStore,
        *,
        todos_dir: str | Path | None = None,
        full_reset: bool = False,
    ) -> None:
        self.store = store
        self.todos_dir = Path(todos_dir) if todos_dir is not None else None
        self.full_reset = full_reset

    # ---- sync / recurrence ----

    def sync(self, *, full_reset: bool | None = None) -> SyncSummary:
        if self.todos_dir is None:
            raise ValidationError("no todos directory configured")
        reset = self.full_reset if full_reset is None else full_reset
        return sync_markdown_todos(self.store, self.todos_dir, full_reset=reset)

    def refresh(self, now: datetime | None = None) -> ReactivationResult:
        return refresh_recurring_todos(self.store, now)

    # ---- reads ----

    def _serialize_many(self, todos: list[Todo]) -> list[dict[str, Any]]:
        if not todos:
            return []
        members = {m.id: m for m in self.store.list_members()}
        rules = self.store.get_rules(t.recurrence_rule_id for t in todos if t.recurrence_rule_id is not None)
        return [serialize_todo(t, members, rules) for t in todos]

    def list_todos(
        self,
        *,
        member_slug: str | None = None,
        status: TodoStatus | str | None = None,
        include_cleared: bool = False,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        self.refresh(now)
        todos = self.store.list_todos(
            member_slug=member_slug,
            status=coerce_status(status) if status else None,
            include_cleared=include_cleared,
        )
        return self._serialize_many(todos)

    def get_todo(self, todo_id: int) -> dict[str, Any]:
        todo = self.store.get_todo(todo_id)
        if todo is None:
            raise NotFoundError(f"todo {todo_id} not found")
        return self._serialize_many([todo])[0]

    # ---- writes ----

    def create_todo(
        self,
        *,
        title: str,
        member_slug: str,
        notes: str | None = None,
        category: str | None = None,
        time_of_day: str | None = None,
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required")

        member = self.store.get_member_by_slug(member_slug)
        if member is None:
            raise NotFoundError(f"member {member_slug} not found")

        todo_id = self.store.add_todo(
            member_id=member.id,
            title=title.strip(),
            notes=_coerce_optional_text("notes", notes),
            category=_coerce_optional_text("category", category),
            tags=_coerce_tags(tags) if tags is not None else [],
            time_of_day=_coerce_time(time_of_day),
            timezone=member.timezone,
        )
        logger.info("Created todo id=%s member=%s", todo_id, member_slug)
        return self.get_todo(todo_id)

    def update_todo(
        self, todo_id: int, patch: Mapping[str, Any], *, now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Apply a partial update.

        A status change always clears cleared_at; DONE stamps completed_at with `now`,
        any other status clears it. An empty title is ignored.
        """
        normalized = {_PATCH_ALIASES.get(k, k): v for k, v in patch.items()}
        unknown = set(normalized) - _PATCH_KEYS
        if unknown:
            raise ValidationError(f"unknown field(s): {', '.join(sorted(unknown))}")

        if self.store.get_todo(todo_id) is None:
            raise NotFoundError(f"todo {todo_id} not found")

        fields: dict[str, Any] = {}
        title = normalized.get("title")
        if title:
            if not isinstance(title, str):
                raise ValidationError("title must be a string")
            fields["title"] = title.strip()
        for name in ("notes", "category"):
            if name in normalized:
                fields[name] = _coerce_optional_text(name, normalized[name])
        if "time_of_day" in normalized:
            fields["time_of_day"] = _coerce_time(normalized["time_of_day"])
        if normalized.get("tags") is not None:
            fields["tags"] = _coerce_tags(normalized["tags"])

        if normalized.get("status"):
            status = coerce_status(normalized["status"])
            stamp = (now or datetime.now(timezone.utc)).timestamp()
            fields["status"] = status
            fields["cleared_at"] = None
            fields["completed_at"] = stamp if status == TodoStatus.DONE else None

        if fields and not self.store.update_todo_fields(todo_id, fields):
            raise NotFoundError(f"todo {todo_id} not found")

        logger.debug("Updated todo id=%s fields=%s", todo_id, sorted(fields))
        return self.get_todo(todo_id)

    def clear_finished(
        self, member_slug: str | None = None, *, now: datetime | None = None
    ) -> dict[str, int]:
        """Soft-delete finished todos, then run the sweep. Returns both counts."""
        now_ts = now.timestamp() if now is not None else None
        cleared = self.store.clear_finished(member_slug=member_slug, now_ts=now_ts)
        result = self.refresh(now)
        logger.info(
            "Cleared %d finished todo(s) member=%s reactivated=%d",
            cleared,
            member_slug or "*",
            result.reactivated,
        )
        return {"cleared": cleared, "reactivated": result.reactivated}
