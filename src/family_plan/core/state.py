# src/family_plan/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..todos.todo_service import TodoService
from ..todos.todo_store import TodoStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: TodoStore
    service: TodoService

    # Serializes command handling when several connectors share one state.
    lock: threading.Lock = field(default_factory=threading.Lock)
