# src/family_plan/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The recurrence engine and the todo service depend on this Protocol instead of the
concrete SQLite store, which keeps storage swappable and makes testing easier.
"""

import sqlite3
from collections.abc import Iterable, Mapping
from contextlib import AbstractContextManager
from typing import Any, Protocol


class TodoRepo(Protocol):
    # Transactions
    def transaction(self) -> AbstractContextManager[sqlite3.Connection]: ...

    # Reads
    def get_member_by_slug(self, slug: str) -> Any | None: ...
    def get_todo(self, todo_id: int) -> Any | None: ...
    def get_rules(self, rule_ids: Iterable[int]) -> dict[int, Any]: ...
    def list_members(self) -> list[Any]: ...
    def list_todos(
            self,
            *,
            member_slug: str | None = None,
            status: Any | None = None,
            include_cleared: bool = False,
    ) -> list[Any]: ...

    # Single todo mutations
    def add_todo(
            self,
            *,
            member_id: int,
            title: str,
            notes: str | None = None,
            category: str | None = None,
            tags: Iterable[str] = (),
            time_of_day: str | None = None,
            timezone: str | None = None,
            status: Any = None,  # TodoStatus (kept as Any to avoid import coupling)
    ) -> int: ...
    def update_todo_fields(self, todo_id: int, fields: Mapping[str, Any]) -> bool: ...
    def clear_finished(self, *, member_slug: str | None = None, now_ts: float | None = None) -> int: ...

    # Recurrence sweep
    def list_reactivation_candidates(
            self, *, conn: sqlite3.Connection | None = None
    ) -> list[tuple[Any, Any]]: ...
    def reactivate_todos(
            self,
            todo_ids: Iterable[int],
            *,
            now_ts: float | None = None,
            conn: sqlite3.Connection | None = None,
    ) -> int: ...
