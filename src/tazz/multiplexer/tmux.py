"""tmux backend driven through the tmux command line."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from ..errors import MultiplexerError
from ..shell import CommandResult, CommandRunner
from .base import LiveProcess

logger = logging.getLogger(__name__)

LIST_FORMAT = "#{session_name}:#{session_created}"


def _target(handle: str) -> str:
    # "=" makes tmux match the session name exactly instead of by prefix.
    return f"={handle}"


def parse_session_list(output: str) -> list[LiveProcess]:
    """Parse ``name:created-epoch`` lines from ``tmux list-sessions``."""

    processes: list[LiveProcess] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        name, sep, created_raw = line.rpartition(":")
        if not sep:
            processes.append(LiveProcess(name=line))
            continue
        try:
            created = datetime.fromtimestamp(int(created_raw), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            created = None
        processes.append(LiveProcess(name=name, created=created))
    return processes


class TmuxMultiplexer:
    """Implements the multiplexer capability on top of the tmux CLI."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    async def exists(self, handle: str) -> bool:
        result = await self._runner.run("has-session", "-t", _target(handle))
        return result.ok

    async def spawn(self, handle: str, cwd: Path) -> None:
        result = await self._runner.run("new-session", "-d", "-s", handle, "-c", str(cwd))
        self._check(result, handle, "create session")
        logger.info("tmux session created", extra={"handle": handle, "cwd": str(cwd)})

    async def send_keys(self, handle: str, text: str) -> None:
        result = await self._runner.run("send-keys", "-t", _target(handle), "-l", text)
        self._check(result, handle, "send keys to")
        result = await self._runner.run("send-keys", "-t", _target(handle), "Enter")
        self._check(result, handle, "send keys to")

    async def attach(self, handle: str) -> int:
        return await self._runner.interactive("attach-session", "-t", _target(handle))

    async def kill(self, handle: str) -> None:
        result = await self._runner.run("kill-session", "-t", _target(handle))
        self._check(result, handle, "kill session")
        logger.info("tmux session killed", extra={"handle": handle})

    async def list(self) -> list[LiveProcess]:
        result = await self._runner.run("list-sessions", "-F", LIST_FORMAT)
        if not result.ok:
            # tmux exits non-zero when no server is running.
            return []
        return parse_session_list(result.stdout)

    @staticmethod
    def _check(result: CommandResult, handle: str, action: str) -> None:
        if not result.ok:
            raise MultiplexerError(
                f"Failed to {action} tmux session '{handle}': {result.error_text}",
                handle=handle,
                stderr=result.stderr,
            )


__all__ = ["LIST_FORMAT", "TmuxMultiplexer", "parse_session_list"]
