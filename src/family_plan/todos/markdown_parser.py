# todos/markdown_parser.py

"""
Parse markdown checklist documents (YAML front-matter + checklist body).

Document shape:

    ---
    member: alice
    name: Alice
    color: "#f97316"
    timezone: America/Los_Angeles
    ---
    ## Morning
    - [ ] Brush teeth
      time: 07:30
      recurring: daily
      free text lines become notes

The body is read by a small finite-state machine (see `ChecklistScanner`).
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from ..errors import ValidationError
from .todo_models import ParsedDocument, ParsedRecurring, ParsedTodo, RecurrenceFrequency

logger = logging.getLogger(__name__)

_FM_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_LINE_SPLIT = re.compile(r"\r?\n")
_HEADING_RE = re.compile(r"^#{2,6}\s+(.*)$")
_CHECKLIST_RE = re.compile(r"^- \[( |x|X)\]\s+(.*)$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_SLUG_STRIP = re.compile(r"[^a-z0-9]+")

SLUG_MAX_LEN = 80
WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI")
WEEKEND = ("SAT", "SUN")
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31

_OPTIONAL_FIELDS = ("name", "color", "timezone")


# ---- small helpers ----


def slugify(value: str) -> str:
    slug = _SLUG_STRIP.sub("-", value.lower()).strip("-")
    return slug[:SLUG_MAX_LEN] or "task"


def checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def normalize_time(value: str | None) -> str | None:
    """Return a zero-padded HH:MM, or None for anything that is not a valid 24h time."""
    if not value:
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_tags(value: str | None) -> list[str]:
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def parse_recurring(value: str | None, fallback_time: str | None = None) -> ParsedRecurring | None:
    """
    Decode a `recurring:` value.

    daily | weekday | weekend | weekly:MON,THU | monthly:15, each with an optional @HH:MM.
    Anything else becomes a CUSTOM rule that keeps the raw text.
    """
    if not value:
        return None
    raw = value.strip()
    if not raw:
        return None

    parts = raw.split("@")
    pattern = parts[0].strip().lower()
    time_of_day = normalize_time(parts[1] if len(parts) > 1 else fallback_time)

    if pattern.startswith("weekly:"):
        days = tuple(
            d.strip()[:3].upper() for d in pattern.split(":", 1)[1].split(",") if d.strip()
        )
        return ParsedRecurring(
            frequency=RecurrenceFrequency.WEEKLY,
            raw=raw,
            days_of_week=days,
            time_of_day=time_of_day,
        )

    if pattern.startswith("monthly:"):
        day_str = pattern.split(":", 1)[1].strip()
        try:
            day_of_month: int | None = int(day_str)
        except ValueError:
            day_of_month = None
        if day_of_month is not None and not MIN_DAY_OF_MONTH <= day_of_month <= MAX_DAY_OF_MONTH:
            day_of_month = None
        return ParsedRecurring(
            frequency=RecurrenceFrequency.MONTHLY,
            raw=raw,
            day_of_month=day_of_month,
            time_of_day=time_of_day,
        )

    if pattern == "weekday":
        return ParsedRecurring(
            frequency=RecurrenceFrequency.WEEKLY, raw=raw, days_of_week=WEEKDAYS, time_of_day=time_of_day
        )

    if pattern == "weekend":
        return ParsedRecurring(
            frequency=RecurrenceFrequency.WEEKLY, raw=raw, days_of_week=WEEKEND, time_of_day=time_of_day
        )

    if pattern == "daily":
        return ParsedRecurring(frequency=RecurrenceFrequency.DAILY, raw=raw, time_of_day=time_of_day)

    return ParsedRecurring(frequency=RecurrenceFrequency.CUSTOM, raw=raw, time_of_day=time_of_day)


# ---- body state machine ----


class ScanState(Enum):
    OUTSIDE = "outside"
    IN_TASK = "in_task"
    IN_TASK_METADATA = "in_task_metadata"


@dataclass
class _OpenTodo:
    title: str
    category: str | None
    source_line: int
    metadata: dict[str, str] = field(default_factory=dict)
    note_lines: list[str] = field(default_factory=list)


class ChecklistScanner:
    """
    Single forward pass over body lines.

    Transitions:
    - heading         : any state -> OUTSIDE (closes the open todo, sets the section)
    - checklist item  : any state -> IN_TASK (closes the open todo, opens a new one)
    - metadata line   : IN_TASK / IN_TASK_METADATA -> IN_TASK_METADATA
    - free-text line  : IN_TASK / IN_TASK_METADATA -> unchanged (appended to notes)
    - blank line      : unchanged
    - anything else   : unchanged (ignored)
    """

    def __init__(self) -> None:
        self.state = ScanState.OUTSIDE
        self.section: str | None = None
        self._current: _OpenTodo | None = None
        self._closed: list[_OpenTodo] = []

    def feed(self, line: str, lineno: int) -> None:
        m = _HEADING_RE.match(line)
        if m:
            self.on_heading(m.group(1).strip())
            return

        m = _CHECKLIST_RE.match(line)
        if m:
            self.on_checklist(m.group(2).strip(), lineno)
            return

        if not line.strip():
            self.on_blank()
            return

        if line.startswith(("  ", "\t")):
            self.on_indented(line.strip())

    def on_heading(self, title: str) -> None:
        self._close()
        self.section = title

    def on_checklist(self, title: str, lineno: int) -> None:
        self._close()
        self._current = _OpenTodo(title=title, category=self.section, source_line=lineno)
        self.state = ScanState.IN_TASK

    def on_blank(self) -> None:
        return

    def on_indented(self, text: str) -> None:
        if self._current is None:
            return

        raw_key, sep, value = text.partition(":")
        if not sep or not raw_key.strip():
            self._current.note_lines.append(text)
            return

        self._current.metadata[raw_key.strip().lower()] = value.strip()
        self.state = ScanState.IN_TASK_METADATA

    def finish(self) -> list[_OpenTodo]:
        self._close()
        return self._closed

    def _close(self) -> None:
        if self._current is not None:
            self._closed.append(self._current)
        self._current = None
        self.state = ScanState.OUTSIDE


def _assign_source_keys(items: list[_OpenTodo]) -> list[str]:
    seen: set[str] = set()
    keys: list[str] = []
    for item in items:
        candidate = item.metadata.get("id") or slugify(item.title)
        key = candidate
        counter = 1
        while key in seen:
            key = f"{candidate}-{counter}"
            counter += 1
        seen.add(key)
        keys.append(key)
    return keys


def extract_todos(body: str) -> list[ParsedTodo]:
    scanner = ChecklistScanner()
    for index, line in enumerate(_LINE_SPLIT.split(body)):
        scanner.feed(line, index + 1)
    items = scanner.finish()

    out: list[ParsedTodo] = []
    for item, key in zip(items, _assign_source_keys(items)):
        meta = item.metadata
        free_text = "\n".join(item.note_lines) or None
        time_of_day = normalize_time(meta.get("time"))
        out.append(
            ParsedTodo(
                source_key=key,
                title=item.title,
                source_line=item.source_line,
                category=item.category,
                notes=meta["notes"] if "notes" in meta else free_text,
                tags=parse_tags(meta.get("tags")),
                time_of_day=time_of_day,
                metadata=dict(meta),
                recurring=parse_recurring(meta.get("recurring"), time_of_day),
            )
        )
    return out


# ---- front-matter ----


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """
    Split a document into (front-matter mapping, body).

    A document without a front-matter block yields an empty mapping and the whole text as body.

    Raises:
        ValidationError: If the block is not valid YAML or not a mapping.
    """
    match = _FM_PATTERN.match(content)
    if not match:
        return {}, content

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ValidationError(f"Invalid YAML front-matter: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Front-matter must be a YAML mapping")
    return data, content[match.end() :]


def _validate_frontmatter(data: dict[str, Any], path: str) -> dict[str, str | None]:
    member = data.get("member")
    if not isinstance(member, str) or not member.strip():
        raise ValidationError(f"{path}: front-matter field 'member' is required")

    out: dict[str, str | None] = {"member": member.strip()}
    for name in _OPTIONAL_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{path}: front-matter field '{name}' must be a string")
        out[name] = value.strip() if value else None
    return out


# ---- public API ----


def parse_markdown_document(content: str, path: str) -> ParsedDocument:
    """
    Parse one document.

    Raises:
        ValidationError: If the front-matter is malformed or has no `member`.
    """
    text = content.removeprefix("\ufeff")
    data, body = split_frontmatter(text)
    fm = _validate_frontmatter(data, path)

    todos = extract_todos(body)
    logger.debug("Parsed %s member=%s todos=%d", path, fm["member"], len(todos))

    return ParsedDocument(
        path=path,
        checksum=checksum(content),
        slug=str(fm["member"]),
        name=fm["name"],
        color=fm["color"],
        timezone=fm["timezone"],
        todos=todos,
    )


def _display_path(path: Path) -> str:
    try:
        return os.path.relpath(path, Path.cwd())
    except ValueError:
        return str(path.resolve())


def parse_markdown_file(path: str | Path) -> ParsedDocument:
    p = Path(path)
    return parse_markdown_document(p.read_text(encoding="utf-8"), _display_path(p))


def load_markdown_documents(todos_dir: str | Path) -> list[ParsedDocument]:
    """
    Parse every *.md file of a directory (sorted by name).

    A missing directory means "no documents", not an error.
    """
    root = Path(todos_dir)
    if not root.is_dir():
        logger.info("Todos directory %s does not exist; nothing to load.", root)
        return []

    files = sorted(p for p in root.iterdir() if p.is_file() and p.suffix == ".md")
    return [parse_markdown_file(p) for p in files]
