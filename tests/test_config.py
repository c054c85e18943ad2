from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tazz.config import TazzSettings, get_settings


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in (
        "TAZZ_PROJECT_ROOT",
        "TAZZ_STATE_DIR",
        "TAZZ_BRANCH_PREFIX",
        "TAZZ_COMMAND_TIMEOUT",
        "TAZZ_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_defaults() -> None:
    settings = TazzSettings()

    assert settings.branch_prefix == "feature/"
    assert settings.command_timeout == 30.0
    assert settings.log_level == "INFO"
    assert settings.sessions_path == Path(".") / ".tazz" / "sessions.json"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TAZZ_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("TAZZ_BRANCH_PREFIX", "wip/")
    monkeypatch.setenv("TAZZ_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.project_root == tmp_path.resolve()
    assert settings.branch_prefix == "wip/"
    assert settings.log_level == "DEBUG"
    assert settings.task_list_path == tmp_path.resolve() / ".tazz" / "tazz-todo.md"


def test_absolute_state_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TAZZ_STATE_DIR", str(tmp_path / "state"))

    assert TazzSettings().sessions_path == tmp_path / "state" / "sessions.json"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("TAZZ_LOG_LEVEL", "verbose"),
        ("TAZZ_COMMAND_TIMEOUT", "0"),
        ("TAZZ_BRANCH_PREFIX", "has space/"),
    ],
)
def test_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        TazzSettings()


def test_project_yaml_config(isolated_cwd: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_dir = isolated_cwd / ".tazz"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(
        "branch_prefix: task/\ncommand_timeout: 5\n", encoding="utf-8"
    )

    settings = TazzSettings()

    assert settings.branch_prefix == "task/"
    assert settings.command_timeout == 5.0

    monkeypatch.setenv("TAZZ_BRANCH_PREFIX", "env/")
    assert TazzSettings().branch_prefix == "env/"
