"""Task descriptors produced from the task list document."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskDescriptor(BaseModel):
    """One sub-task of an instance, bound to its own terminal process."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Checklist item text.")
    description: str = Field(..., description="Free-text context shown in the task banner.")
    slug: str = Field(..., description="Task component of the session id.")

    @field_validator("name", "slug")
    @classmethod
    def _require_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Task name and slug must not be empty")
        return normalized


__all__ = ["TaskDescriptor"]
