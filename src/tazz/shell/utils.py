"""Environment helpers for external tool invocations."""

from __future__ import annotations

import os
from typing import Iterable, Mapping

_INTERPRETER_VARS = (
    "PYTHONHOME",
    "PYTHONPATH",
    "VIRTUAL_ENV",
    "PIP_RESPECT_VIRTUALENV",
)


def sanitize_environment(
    additional: Mapping[str, str] | None = None,
    *,
    unset: Iterable[str] = (),
) -> dict[str, str]:
    """Copy of the environment without interpreter variables or the ``unset`` names."""

    env = dict(os.environ)
    for key in (*_INTERPRETER_VARS, *unset):
        env.pop(key, None)
    if additional:
        env.update(additional)
    return env
