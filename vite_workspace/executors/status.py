"""Status snapshots reported by executors to the host."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ExecutorState(str, Enum):
    """Lifecycle of a task execution.

    STARTING -> READY -> SUSPENDED (long-running) or FINISHED (one-shot).
    A failure before readiness goes straight from STARTING to FINISHED.
    """
    STARTING = "starting"
    READY = "ready"
    SUSPENDED = "suspended"
    FINISHED = "finished"


# ---------------------------------------------------------------------------
# Status models
# ---------------------------------------------------------------------------

class ErrorInfo(BaseModel):
    """Serialisable description of a failure."""

    model_config = ConfigDict(frozen=True)

    type: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        return cls(type=type(exc).__name__, message=str(exc) or type(exc).__name__)


class TaskStatus(BaseModel):
    """One status snapshot; ``baseUrl`` is set by servers once they are bound."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    base_url: str | None = Field(default=None, alias="baseUrl")
    error: ErrorInfo | None = None

    @classmethod
    def failed(cls, exc: BaseException) -> "TaskStatus":
        return cls(success=False, error=ErrorInfo.from_exception(exc))

    def to_host(self) -> dict[str, Any]:
        """Serialise with camelCase keys, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True)
