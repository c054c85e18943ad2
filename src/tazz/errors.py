"""Error taxonomy shared by the orchestration layers and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence


class TazzError(RuntimeError):
    """Base class for every error surfaced to the CLI."""


class InvalidNameError(TazzError, ValueError):
    """Raised when an instance name cannot be mapped onto handles and branches."""


class ProvisioningError(TazzError):
    """Raised when the isolated checkout for an instance cannot be created."""

    stage = "provisioning"

    def __init__(self, message: str, *, instance: str, stderr: str = "") -> None:
        super().__init__(message)
        self.instance = instance
        self.stderr = stderr


class ProcessSpawnError(TazzError):
    """Raised when one or more task processes of a run could not be started.

    ``failures`` maps each failing handle to its error message. ``torn_down``
    lists the handles that had been created and were killed again before the
    error was raised; ``leftover`` lists handles the teardown could not kill.
    """

    stage = "spawning"

    def __init__(
        self,
        message: str,
        *,
        instance: str,
        failures: Mapping[str, str],
        torn_down: Sequence[str] = (),
        leftover: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.instance = instance
        self.failures = dict(failures)
        self.torn_down = list(torn_down)
        self.leftover = list(leftover)


class StorageError(TazzError):
    """Raised when the session store cannot be read or written."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(f"{message} ({path})")
        self.path = path


class NotFoundError(TazzError):
    """Raised when an operation references a session or process that does not exist."""


class MultiplexerError(TazzError):
    """Raised when a terminal multiplexer command fails."""

    def __init__(self, message: str, *, handle: str | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.handle = handle
        self.stderr = stderr


__all__ = [
    "InvalidNameError",
    "MultiplexerError",
    "NotFoundError",
    "ProcessSpawnError",
    "ProvisioningError",
    "StorageError",
    "TazzError",
]
