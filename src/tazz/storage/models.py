"""Data models for persisted session tracking."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..tasks import TaskDescriptor


class SessionStatus(str, Enum):
    ACTIVE = "active"
    STOPPED = "stopped"
    FAILED = "failed"
    PAUSED = "paused"


class SessionRecord(BaseModel):
    """Instance-level metadata; task liveness is tracked by the multiplexer."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    branch: str
    worktree_path: str = Field(..., alias="worktreePath")
    tasks: list[TaskDescriptor] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: datetime = Field(..., alias="createdAt")
    last_active: datetime = Field(..., alias="lastActive")


class SessionData(BaseModel):
    """On-disk shape of the session store file."""

    model_config = ConfigDict(populate_by_name=True)

    sessions: list[SessionRecord] = Field(default_factory=list)
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")


__all__ = ["SessionData", "SessionRecord", "SessionStatus"]
