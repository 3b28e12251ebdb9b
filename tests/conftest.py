# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from family_plan.core.state import AppState
from family_plan.todos.todo_service import TodoService
from family_plan.todos.todo_store import TodoStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="family-plan-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "todos.sqlite3",
        todos_dir=tmp_path / "todos",
        full_reset_sync=False,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TodoStore:
    return TodoStore(settings.db_path)


@pytest.fixture()
def service(store: TodoStore, settings: SimpleNamespace) -> TodoService:
    return TodoService(store, todos_dir=settings.todos_dir)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TodoStore, service: TodoService) -> AppState:
    """
    AppState wired with a real SQLite store: its correctness is part of what we test.
    """
    return AppState(settings=settings, store=store, service=service)


@pytest.fixture()
def write_doc(settings: SimpleNamespace) -> Callable[[str, str], Path]:
    """Write a markdown document into the configured todos directory."""

    def _write(name: str, content: str) -> Path:
        settings.todos_dir.mkdir(parents=True, exist_ok=True)
        path = settings.todos_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def alice_doc() -> str:
    return (FIXTURES / "alice.md").read_text(encoding="utf-8")


@pytest.fixture()
def bob_doc() -> str:
    return (FIXTURES / "bob.md").read_text(encoding="utf-8")
