"""Capability interface over a terminal multiplexer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class LiveProcess:
    """A multiplexer session as reported by ``list``."""

    name: str
    created: datetime | None = None


class Multiplexer(Protocol):
    """Operations tazz needs from a terminal multiplexer."""

    async def exists(self, handle: str) -> bool:
        ...

    async def spawn(self, handle: str, cwd: Path) -> None:
        ...

    async def send_keys(self, handle: str, text: str) -> None:
        ...

    async def attach(self, handle: str) -> int:
        ...

    async def kill(self, handle: str) -> None:
        ...

    async def list(self) -> list[LiveProcess]:
        ...


__all__ = ["LiveProcess", "Multiplexer"]
