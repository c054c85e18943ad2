"""Parse the checklist-formatted task list into task descriptors.

Format::

    - [ ] Build feature
          Session name: build-1
          Description:
            Implement X
            and Y

A blank line or the next ``- [ ]`` item ends a task block. Only the first
``MAX_TASKS`` items are used.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from ..naming import clean_slug, slugify
from .models import TaskDescriptor

logger = logging.getLogger(__name__)

MAX_TASKS = 5

_CHECKBOX = re.compile(r"^- \[ \] (.+)$")
_SESSION_NAME = re.compile(r"^Session name:\s*(.+)$", re.IGNORECASE)
_DESCRIPTION = re.compile(r"^Description:\s*(.*)$", re.IGNORECASE)

TASK_LIST_TEMPLATE = """\
# Tazz Development Tasks

Each unchecked item below becomes its own terminal session when you run
`tazz run <instance>`. Only the first five items are used.

## Session Tasks

- [ ] Feature implementation
      Session name: feat-impl
      Description:
        Implement the main functionality for this feature.

- [ ] Write tests
      Session name: write-tests
      Description:
        Cover the new functionality with unit and integration tests.

- [ ] Update documentation
      Session name: update-docs
      Description:
        Update the README and inline documentation.
"""


def _is_boundary(line: str) -> bool:
    return not line.strip() or _CHECKBOX.match(line) is not None


def _unique_slug(slug: str, seen: set[str]) -> str:
    if slug not in seen:
        return slug
    suffix = 2
    while f"{slug}-{suffix}" in seen:
        suffix += 1
    return f"{slug}-{suffix}"


def _scan(lines: list[str]) -> list[tuple[int, TaskDescriptor]]:
    """Return ``(line index, task)`` for every unchecked item, slugs made unique."""

    found: list[tuple[int, TaskDescriptor]] = []
    seen: set[str] = set()
    i = 0
    while i < len(lines):
        match = _CHECKBOX.match(lines[i])
        if not match or not match.group(1).strip():
            i += 1
            continue

        start = i
        name = match.group(1).strip()
        slug = ""
        description_parts: list[str] = []
        i += 1
        while i < len(lines) and not _is_boundary(lines[i]):
            line = lines[i].strip()

            session_match = _SESSION_NAME.match(line)
            if session_match:
                slug = clean_slug(session_match.group(1))
                i += 1
                continue

            description_match = _DESCRIPTION.match(line)
            if description_match:
                inline = description_match.group(1).strip()
                if inline:
                    description_parts.append(inline)
                i += 1
                while (
                    i < len(lines)
                    and not _is_boundary(lines[i])
                    and not _SESSION_NAME.match(lines[i].strip())
                ):
                    description_parts.append(lines[i].strip())
                    i += 1
                continue

            i += 1

        slug = _unique_slug(slug or slugify(name), seen)
        seen.add(slug)
        found.append(
            (
                start,
                TaskDescriptor(
                    name=name,
                    description=" ".join(description_parts) or f"Work on: {name}",
                    slug=slug,
                ),
            )
        )
    return found


def parse_task_list(text: str) -> list[TaskDescriptor]:
    """Return the ordered task descriptors found in ``text``.

    Never raises: lines that do not fit the format are skipped. Items that
    would share a slug get ``-2``, ``-3`` ... suffixes in document order.
    """

    tasks = [task for _, task in _scan(text.splitlines())]
    if len(tasks) > MAX_TASKS:
        logger.info(
            "Task list truncated",
            extra={"found": len(tasks), "kept": MAX_TASKS},
        )
    return tasks[:MAX_TASKS]


class TaskListLoader:
    """Reads the task list document of a project."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[TaskDescriptor]:
        """Parse the task list; a missing or unreadable file yields no tasks."""

        if not self._path.exists():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Could not read task list",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return []
        return parse_task_list(text)

    def ensure_template(self) -> Path:
        """Create the task list with a starter template unless it already has content."""

        if self._path.exists() and self._path.read_text(encoding="utf-8").strip():
            return self._path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(TASK_LIST_TEMPLATE, encoding="utf-8")
        logger.info("Created task list template", extra={"path": str(self._path)})
        return self._path

    def mark_done(self, slugs: Iterable[str]) -> list[str]:
        """Tick the items whose slug is in ``slugs``; returns the slugs ticked.

        Only the items ``load`` would return are considered, so slugs resolve
        the same way they did when the instance was started.
        """

        wanted = set(slugs)
        if not wanted or not self._path.exists():
            return []
        text = self._path.read_text(encoding="utf-8")
        lines = text.splitlines(keepends=True)
        ticked: list[str] = []
        for index, task in _scan(text.splitlines())[:MAX_TASKS]:
            if task.slug in wanted:
                lines[index] = lines[index].replace("- [ ]", "- [x]", 1)
                ticked.append(task.slug)
        if ticked:
            self._path.write_text("".join(lines), encoding="utf-8")
            logger.info(
                "Marked tasks done",
                extra={"path": str(self._path), "slugs": ticked},
            )
        return ticked


__all__ = ["MAX_TASKS", "TASK_LIST_TEMPLATE", "TaskListLoader", "parse_task_list"]
