# src/family_plan/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any, cast

from ..core.state import AppState
from ..errors import FamilyPlanError, NotFoundError, StoreError, ValidationError
from ..todos.todo_models import TodoStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console and one-shot CLI (/help, /sync, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Typed errors from the todo layer are turned into a reply; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Invalid input: {e}"
        except NotFoundError as e:
            return f"Not found: {e}"
        except StoreError as e:
            logger.error("Store error in /%s: %s", name, e)
            return f"Store error: {e}"
        except FamilyPlanError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_todo(todo: dict[str, Any]) -> str:
    box = "[x]" if todo["status"] == TodoStatus.DONE.value else "[ ]"
    where = todo["member"]["slug"]
    if todo.get("category"):
        where += f" / {todo['category']}"
    when = f" {todo['timeOfDay']}" if todo.get("timeOfDay") else ""
    rec = todo.get("recurring")
    rec_str = f" ({rec['frequency'].lower()})" if rec else ""
    cleared = " (cleared)" if todo.get("clearedAt") else ""
    return f"{box} #{todo['id']} {where}{when} {todo['title']}{rec_str}{cleared}"


def _parse_id(args: list[str], usage: str) -> int:
    if len(args) != 1:
        raise ValidationError(usage)
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        raise ValidationError(usage) from None


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    members = state.store.list_members()
    sources = state.store.list_sources()
    return (
        "Status:\n"
        f"  Database: {state.store.db_path}\n"
        f"  Todos dir: {getattr(state.settings, 'todos_dir', '-')}\n"
        f"  Members: {len(members)}  Sources: {len(sources)}  Todos: {state.store.count_todos()}"
    )


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /sync        -> reconcile the markdown directory (configured mode)
    /sync reset  -> wipe and rebuild (completion state is lost)
    """
    full_reset = bool(args) and args[0].lower() == "reset"
    if emit:
        emit("[SYNC] Reading markdown documents...")
    summary = state.service.sync(full_reset=True if full_reset else None)
    return (
        f"Synced {summary.todos_processed} todo(s) from {summary.documents_processed} "
        f"markdown file(s); removed {summary.todos_removed}."
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list [member] [pending|done] [all]
    """
    member_slug: str | None = None
    status: TodoStatus | None = None
    include_cleared = False
    for arg in args:
        low = arg.lower()
        if low == "all":
            include_cleared = True
        elif low in ("pending", "done"):
            status = TodoStatus(low.upper())
        else:
            member_slug = arg

    todos = state.service.list_todos(
        member_slug=member_slug, status=status, include_cleared=include_cleared
    )
    if not todos:
        return "No todos."
    return "\n".join(format_todo(t) for t in todos)


def cmd_add(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        raise ValidationError("usage: /add <member> <title>")
    todo = state.service.create_todo(member_slug=args[0], title=" ".join(args[1:]))
    return f"Added {format_todo(todo)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    todo_id = _parse_id(args, "usage: /done <id>")
    todo = state.service.update_todo(todo_id, {"status": TodoStatus.DONE})
    return format_todo(todo)


def cmd_undo(state: AppState, args: list[str]) -> str:
    todo_id = _parse_id(args, "usage: /undo <id>")
    todo = state.service.update_todo(todo_id, {"status": TodoStatus.PENDING})
    return format_todo(todo)


def cmd_clear(state: AppState, args: list[str]) -> str:
    result = state.service.clear_finished(args[0] if args else None)
    return f"Cleared {result['cleared']} finished todo(s); reactivated {result['reactivated']}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database/source totals.")
registry.register("sync", cmd_sync, help_text="Reconcile markdown todos: /sync | /sync reset.")
registry.register("list", cmd_list, help_text="List todos: /list [member] [pending|done] [all].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a todo: /add <member> <title>.")
registry.register("done", cmd_done, help_text="Mark a todo done: /done <id>.")
registry.register("undo", cmd_undo, help_text="Reopen a todo: /undo <id>.")
registry.register("clear", cmd_clear, help_text="Clear finished todos: /clear [member].")
