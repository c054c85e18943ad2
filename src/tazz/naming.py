"""Mapping between instances, task slugs and the external names derived from them.

A session id is either ``<instance>`` or ``<instance>_<slug>``. The tmux
handle is the session id with the ``tazz_`` prefix, the branch is the instance
with the branch prefix, and the checkout lives next to the project root.
Instance names never contain the separator, so a handle splits back on the
first separator after the prefix.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidNameError

HANDLE_PREFIX = "tazz_"
SEPARATOR = "_"
DEFAULT_BRANCH_PREFIX = "feature/"

_INSTANCE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_UNSAFE_SLUG_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True, slots=True)
class ParsedHandle:
    """Components recovered from a process handle."""

    handle: str
    session_id: str
    instance: str
    task_slug: str | None


def validate_instance_name(instance: str) -> str:
    """Return ``instance`` unchanged or raise ``InvalidNameError``."""

    if not _INSTANCE_PATTERN.match(instance or ""):
        raise InvalidNameError(
            f"Invalid instance name '{instance}': use letters, digits and '-' only "
            f"(the '{SEPARATOR}' separator is reserved)"
        )
    return instance


def slugify(name: str) -> str:
    """Lowercase ``name`` and collapse each run of non-alphanumerics into one hyphen."""

    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    return slug or "task"


def clean_slug(slug: str) -> str:
    """Normalize an explicitly annotated slug so tmux keeps it verbatim."""

    return _UNSAFE_SLUG_CHARS.sub("-", slug.strip()).strip("-") or "task"


def session_id(instance: str, task_slug: str | None = None) -> str:
    if not task_slug:
        return instance
    return f"{instance}{SEPARATOR}{task_slug}"


def process_handle(session: str) -> str:
    return f"{HANDLE_PREFIX}{session}"


def branch_name(instance: str, prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    return f"{prefix}{instance}"


def worktree_dir(instance: str, project_root: Path) -> Path:
    """Return the checkout directory for ``instance``: a sibling of the project root."""

    return Path(project_root).resolve().parent / instance


def split_session_id(session: str) -> tuple[str, str | None]:
    """Split a session id into ``(instance, task_slug)``."""

    instance, sep, task_slug = session.partition(SEPARATOR)
    if not sep or not task_slug:
        return instance, None
    return instance, task_slug


def parse_process_handle(handle: str) -> ParsedHandle | None:
    """Reverse ``process_handle``; return ``None`` for names outside the tazz namespace."""

    if not handle.startswith(HANDLE_PREFIX):
        return None
    session = handle[len(HANDLE_PREFIX):]
    instance, task_slug = split_session_id(session)
    if not _INSTANCE_PATTERN.match(instance):
        return None
    # A trailing separator with no task after it maps to no session id.
    if task_slug is None and session != instance:
        return None
    return ParsedHandle(handle=handle, session_id=session, instance=instance, task_slug=task_slug)


__all__ = [
    "DEFAULT_BRANCH_PREFIX",
    "HANDLE_PREFIX",
    "ParsedHandle",
    "SEPARATOR",
    "branch_name",
    "clean_slug",
    "parse_process_handle",
    "process_handle",
    "session_id",
    "slugify",
    "split_session_id",
    "validate_instance_name",
    "worktree_dir",
]
