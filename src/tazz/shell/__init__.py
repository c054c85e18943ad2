"""Async execution of external command-line tools."""

from .runner import (
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    CommandRunnerError,
    CommandTimeoutError,
    FakeCommandRunner,
)

__all__ = [
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "CommandRunnerError",
    "CommandTimeoutError",
    "FakeCommandRunner",
]
