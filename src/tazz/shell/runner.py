"""Async runner for external command-line tools (git, tmux)."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from ..errors import TazzError
from .utils import sanitize_environment

logger = logging.getLogger(__name__)


class CommandRunnerError(TazzError):
    """Base class for command runner errors."""


class CommandNotFoundError(CommandRunnerError):
    """Raised when the executable cannot be located."""


class CommandTimeoutError(CommandRunnerError):
    """Raised when a command does not finish within the configured timeout."""


@dataclass(slots=True)
class CommandResult:
    """Holds the outcome of a command invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error_text(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or f"exit code {self.returncode}"


class CommandRunner:
    """Execute a single external tool asynchronously."""

    def __init__(
        self,
        name: str,
        executable: Path | None = None,
        *,
        timeout: float | None = None,
        unset_env: Iterable[str] = (),
    ) -> None:
        self._name = name
        self._timeout = timeout
        self._unset_env = tuple(unset_env)
        self._executable_path = self._resolve_executable(name, executable)

    @staticmethod
    def _resolve_executable(name: str, explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise CommandNotFoundError(f"{name} executable not found at {candidate}")

        binary = shutil.which(name)
        if binary is None:
            raise CommandNotFoundError(f"{name} executable not found on PATH")
        return Path(binary)

    @property
    def name(self) -> str:
        return self._name

    @property
    def executable(self) -> Path:
        return self._executable_path

    async def run(self, *args: str, cwd: Path | None = None) -> CommandResult:
        return await self._invoke(*args, cwd=cwd)

    async def interactive(self, *args: str) -> int:
        """Run with the caller's terminal attached; returns the exit code."""

        cmd = [str(self._executable_path), *args]
        logger.debug("Running interactive command", extra={"cmd": cmd})
        try:
            process = await asyncio.create_subprocess_exec(*cmd, env=self._environment())
        except OSError as exc:
            raise CommandRunnerError(f"Failed to start {self._name}: {exc}") from exc
        return await process.wait()

    def _environment(self) -> dict[str, str]:
        return sanitize_environment(unset=self._unset_env)

    async def _invoke(self, *args: str, cwd: Path | None = None) -> CommandResult:
        cmd = [str(self._executable_path), *args]
        logger.debug("Running command", extra={"cmd": cmd, "cwd": str(cwd) if cwd else None})
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=self._environment(),
            )
        except OSError as exc:
            raise CommandRunnerError(f"Failed to start {self._name}: {exc}") from exc
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CommandTimeoutError(
                f"{self._name} {' '.join(args)} timed out after {self._timeout}s"
            ) from exc
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return CommandResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeCommandRunner(CommandRunner):
    """Test double that records invocations and replays scripted results.

    ``responses`` are consumed in order; once exhausted every call succeeds
    with empty output. ``handler`` takes precedence and may compute a result
    from the arguments.
    """

    def __init__(  # type: ignore[override]
        self,
        name: str = "fake",
        responses: Iterable[CommandResult] | None = None,
        *,
        handler: Callable[[tuple[str, ...]], CommandResult] | None = None,
    ) -> None:
        self._name = name
        self._timeout = None
        self._unset_env = ()
        self._responses = list(responses or [])
        self._handler = handler
        self._invocations: list[tuple[str, ...]] = []
        self._cwds: list[Path | None] = []
        self._executable_path = Path(f"/tmp/fake-{name}")

    async def _invoke(self, *args: str, cwd: Path | None = None) -> CommandResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        self._cwds.append(cwd)
        if self._handler is not None:
            return self._handler(tuple(args))
        if self._responses:
            return self._responses.pop(0)
        return CommandResult(args=tuple(args), returncode=0, stdout="", stderr="")

    async def interactive(self, *args: str) -> int:  # type: ignore[override]
        result = await self._invoke(*args)
        return result.returncode

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations

    @property
    def cwds(self) -> list[Path | None]:
        return self._cwds


__all__ = [
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "CommandRunnerError",
    "CommandTimeoutError",
    "FakeCommandRunner",
]
