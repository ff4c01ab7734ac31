"""
Data models for declared mirrors, Pulp tasks, and run output.
"""

from .repos import RepoRunState, RepoSpec, SlimRepoRecord
from .tasks import TERMINAL_STATES, AsyncJob, TaskState

__all__ = [
    "RepoSpec",
    "RepoRunState",
    "SlimRepoRecord",
    "AsyncJob",
    "TaskState",
    "TERMINAL_STATES",
]
