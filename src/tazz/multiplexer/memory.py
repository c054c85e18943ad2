"""In-memory multiplexer for tests and dry runs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from ..errors import MultiplexerError
from .base import LiveProcess


class InMemoryMultiplexer:
    """Dict-backed stand-in for tmux.

    Handles listed in ``fail_spawn`` or ``fail_kill`` raise ``MultiplexerError``
    from the corresponding operation.
    """

    def __init__(
        self,
        existing: Iterable[str] = (),
        *,
        fail_spawn: Iterable[str] = (),
        fail_kill: Iterable[str] = (),
    ) -> None:
        created = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.sessions: dict[str, LiveProcess] = {
            name: LiveProcess(name=name, created=created) for name in existing
        }
        self.cwds: dict[str, Path] = {}
        self.keys: dict[str, list[str]] = {}
        self.attached: list[str] = []
        self.killed: list[str] = []
        self.fail_spawn = set(fail_spawn)
        self.fail_kill = set(fail_kill)

    async def exists(self, handle: str) -> bool:
        return handle in self.sessions

    async def spawn(self, handle: str, cwd: Path) -> None:
        if handle in self.fail_spawn:
            raise MultiplexerError(f"Failed to create session '{handle}'", handle=handle)
        if handle in self.sessions:
            raise MultiplexerError(f"duplicate session: {handle}", handle=handle)
        self.sessions[handle] = LiveProcess(name=handle, created=datetime.now(timezone.utc))
        self.cwds[handle] = Path(cwd)
        self.keys[handle] = []

    async def send_keys(self, handle: str, text: str) -> None:
        if handle not in self.sessions:
            raise MultiplexerError(f"can't find session: {handle}", handle=handle)
        self.keys[handle].append(text)

    async def attach(self, handle: str) -> int:
        if handle not in self.sessions:
            return 1
        self.attached.append(handle)
        return 0

    async def kill(self, handle: str) -> None:
        if handle in self.fail_kill or handle not in self.sessions:
            raise MultiplexerError(f"Failed to kill session '{handle}'", handle=handle)
        del self.sessions[handle]
        self.killed.append(handle)

    async def list(self) -> list[LiveProcess]:
        return list(self.sessions.values())


__all__ = ["InMemoryMultiplexer"]
