"""Parallel, isolated development sessions backed by git worktrees and tmux."""

__version__ = "0.1.0"

__all__ = ["__version__"]
