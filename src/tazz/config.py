"""Configuration management for tazz."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .naming import DEFAULT_BRANCH_PREFIX

PROJECT_CONFIG_FILE = Path(".tazz") / "config.yaml"


class TazzSettings(BaseSettings):
    """Runtime configuration from environment, ``.env`` and ``.tazz/config.yaml``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        yaml_file=PROJECT_CONFIG_FILE,
        yaml_file_encoding="utf-8",
    )

    project_root: Path = Field(default=Path("."), validation_alias="TAZZ_PROJECT_ROOT")
    state_dir: Path = Field(default=Path(".tazz"), validation_alias="TAZZ_STATE_DIR")
    tmux_path: str | None = Field(default=None, validation_alias="TAZZ_TMUX_PATH")
    git_path: str | None = Field(default=None, validation_alias="TAZZ_GIT_PATH")
    branch_prefix: str = Field(default=DEFAULT_BRANCH_PREFIX, validation_alias="TAZZ_BRANCH_PREFIX")
    command_timeout: float = Field(default=30.0, validation_alias="TAZZ_COMMAND_TIMEOUT")
    log_level: str = Field(default="INFO", validation_alias="TAZZ_LOG_LEVEL")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "TAZZ_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("branch_prefix")
    @classmethod
    def _validate_branch_prefix(cls, value: str) -> str:
        if not value or any(char.isspace() for char in value):
            raise ValueError("TAZZ_BRANCH_PREFIX must be non-empty and contain no whitespace")
        return value

    @field_validator("command_timeout")
    @classmethod
    def _validate_command_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TAZZ_COMMAND_TIMEOUT must be > 0")
        return value

    @property
    def state_path(self) -> Path:
        if self.state_dir.is_absolute():
            return self.state_dir
        return self.project_root / self.state_dir

    @property
    def sessions_path(self) -> Path:
        return self.state_path / "sessions.json"

    @property
    def task_list_path(self) -> Path:
        return self.state_path / "tazz-todo.md"


@lru_cache(maxsize=1)
def get_settings() -> TazzSettings:
    """Return cached settings instance."""

    settings = TazzSettings()
    settings.project_root = settings.project_root.expanduser().resolve()
    settings.state_dir = settings.state_dir.expanduser()
    return settings


__all__ = ["PROJECT_CONFIG_FILE", "TazzSettings", "get_settings"]
