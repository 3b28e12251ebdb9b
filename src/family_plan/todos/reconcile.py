# todos/reconcile.py

"""
Reconciliation: make the store match the current set of markdown documents.

Two modes:
- tombstone sweep (default): upsert everything by its stable identity, remember which
  keys were seen, then delete only what was not seen. Completion and clear state of
  todos that still exist survives the pass.
- full reset: wipe todos, rules, sources and members first, then repopulate.
  Every todo comes back PENDING.

A pass is one `BEGIN IMMEDIATE` transaction held under a process-wide lock: concurrent
passes serialize, and a failure leaves the previous state untouched.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .markdown_parser import load_markdown_documents
from .todo_models import ParsedDocument, ParsedTodo
from .todo_store import TodoStore

logger = logging.getLogger(__name__)

RECURRING_KEY_SUFFIX = "-recurring"

_RECONCILE_LOCK = threading.Lock()


@dataclass(slots=True, frozen=True)
class SyncSummary:
    documents_processed: int
    todos_processed: int
    todos_removed: int = 0


def recurring_key(todo_key: str) -> str:
    return f"{todo_key}{RECURRING_KEY_SUFFIX}"


class Reconciler:
    def __init__(self, store: TodoStore, *, full_reset: bool = False) -> None:
        self._store = store
        self._full_reset = full_reset

    def reconcile(self, documents: Sequence[ParsedDocument]) -> SyncSummary:
        with _RECONCILE_LOCK, self._store.transaction() as conn:
            if self._full_reset:
                self._store.delete_all(conn=conn)
                logger.info("Full reset: store wiped before reconciliation")

            now_ts = time.time()
            todos_processed = 0
            todos_removed = 0

            for doc in documents:
                processed, removed = self._apply_document(conn, doc, now_ts)
                todos_processed += processed
                todos_removed += removed

            todos_removed += self._sweep_unseen(conn, documents)

        summary = SyncSummary(
            documents_processed=len(documents),
            todos_processed=todos_processed,
            todos_removed=todos_removed,
        )
        logger.info(
            "Reconciled %d document(s): %d todo(s) processed, %d removed (full_reset=%s)",
            summary.documents_processed,
            summary.todos_processed,
            summary.todos_removed,
            self._full_reset,
        )
        return summary

    def _apply_document(
        self, conn: sqlite3.Connection, doc: ParsedDocument, now_ts: float
    ) -> tuple[int, int]:
        store = self._store
        member = store.upsert_member(
            slug=doc.slug,
            name=doc.name,
            color_hex=doc.color,
            timezone=doc.timezone,
            conn=conn,
        )
        source = store.upsert_source(path=doc.path, checksum=doc.checksum, now_ts=now_ts, conn=conn)

        seen_todo_keys: set[str] = set()
        seen_rule_keys: set[str] = set()
        created = 0

        # Rule before todo: the todo row references the rule id.
        for todo in doc.todos:
            rule_id = self._upsert_rule(conn, todo, member.id, source.id, doc.timezone)
            if rule_id is not None:
                seen_rule_keys.add(recurring_key(todo.source_key))

            _, was_created = store.upsert_todo(
                member_id=member.id,
                source_id=source.id,
                source_key=todo.source_key,
                title=todo.title,
                notes=todo.notes,
                category=todo.category,
                tags=todo.tags,
                time_of_day=todo.time_of_day,
                timezone=doc.timezone,
                source_line=todo.source_line,
                recurrence_rule_id=rule_id,
                meta={**todo.metadata, "category": todo.category, "tags": todo.tags},
                now_ts=now_ts,
                conn=conn,
            )
            seen_todo_keys.add(todo.source_key)
            created += int(was_created)

        removed = store.delete_unseen_todos(source.id, seen_todo_keys, conn=conn)
        store.delete_unseen_rules(source.id, seen_rule_keys, conn=conn)

        logger.debug(
            "Document %s member=%s todos=%d created=%d removed=%d",
            doc.path,
            doc.slug,
            len(doc.todos),
            created,
            removed,
        )
        return len(doc.todos), removed

    def _upsert_rule(
        self,
        conn: sqlite3.Connection,
        todo: ParsedTodo,
        member_id: int,
        source_id: int,
        timezone: str | None,
    ) -> int | None:
        rec = todo.recurring
        if rec is None:
            return None
        return self._store.upsert_recurrence_rule(
            member_id=member_id,
            source_id=source_id,
            source_key=recurring_key(todo.source_key),
            title=todo.title,
            frequency=rec.frequency,
            days_of_week=rec.days_of_week,
            day_of_month=rec.day_of_month,
            time_of_day=rec.time_of_day or todo.time_of_day,
            timezone=timezone or "UTC",
            raw=rec.raw,
            conn=conn,
        )

    def _sweep_unseen(self, conn: sqlite3.Connection, documents: Sequence[ParsedDocument]) -> int:
        """Drop sources (with their todos/rules) and members that no document mentions anymore."""
        store = self._store
        before = store.count_todos(conn=conn)
        sources = store.delete_unseen_sources({d.path for d in documents}, conn=conn)
        removed = before - store.count_todos(conn=conn)
        members = store.delete_unused_members({d.slug for d in documents}, conn=conn)
        if sources or members:
            logger.info("Removed %d stale source(s) and %d stale member(s)", sources, members)
        return removed


def sync_markdown_todos(
    store: TodoStore, todos_dir: str | Path, *, full_reset: bool = False
) -> SyncSummary:
    """
    Parse every document of `todos_dir` and reconcile the store with them.

    All documents are parsed before anything is written; a ValidationError in any of
    them aborts the pass with the store unchanged.
    """
    documents = load_markdown_documents(todos_dir)
    return Reconciler(store, full_reset=full_reset).reconcile(documents)
