"""
Task Models — Pydantic schema for Pulp async tasks.

Every mutating Pulp call that does not finish inline returns
``{"task": "<task href>"}``. The task record is owned by Pulp; the engine
only reads it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskState(str, Enum):
    """Pulp task lifecycle states."""

    WAITING = "waiting"
    RUNNING = "running"
    CANCELING = "canceling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"


TERMINAL_STATES = frozenset({
    TaskState.COMPLETED,
    TaskState.FAILED,
    TaskState.CANCELED,
    TaskState.SKIPPED,
})


class AsyncJob(BaseModel):
    """Snapshot of a Pulp task as returned by the tasks endpoint."""

    model_config = ConfigDict(extra="ignore")

    pulp_href: str
    name: str = ""
    state: TaskState
    created_resources: List[str] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.state == TaskState.COMPLETED
