"""Terminal multiplexer backends."""

from .base import LiveProcess, Multiplexer
from .memory import InMemoryMultiplexer
from .tmux import TmuxMultiplexer

__all__ = [
    "InMemoryMultiplexer",
    "LiveProcess",
    "Multiplexer",
    "TmuxMultiplexer",
]
