"""
Engine Errors — Structured failures with a process exit code.

Every fatal condition in the engine is an instance of ``SlimmerError``.
Stages raise; the CLI's single top-level handler logs the error and exits
with ``error.exit_code``. Warnings (already-exists, created-resource count
mismatch) are logged, never raised.

## Exit codes

    1  unexpected error
    2  ConfigError
    3  NotFoundError (distribution / publication)
    4  MissingContentError
    5  RemoteServiceError
    6  TaskFailedError, ResourceNotCreatedError
    7  TaskTimeoutError
    8  TaskCancelledError
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class SlimmerError(Exception):
    """Base class for all engine failures."""

    exit_code = 1

    # Errors that only invalidate one declared repo; the run may continue
    repo_scoped = False


class ConfigError(SlimmerError):
    """Invalid declared-mirrors file or settings."""

    exit_code = 2


class NotFoundError(SlimmerError):
    """A resource the pipeline depends on does not exist."""

    exit_code = 3
    repo_scoped = True


class DistributionNotFoundError(NotFoundError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not find distribution '{name}'")


class PublicationNotFoundError(NotFoundError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No publication found for distribution '{name}'")


class MissingContentError(SlimmerError):
    """Requested package names are absent from the source repository version."""

    exit_code = 4
    repo_scoped = True

    def __init__(self, repo_version_href: str, missing: Iterable[str]):
        self.repo_version_href = repo_version_href
        self.missing: List[str] = sorted(missing)
        super().__init__(
            f"{len(self.missing)} requested package(s) not found in "
            f"'{repo_version_href}': {', '.join(self.missing)}"
        )


class RemoteServiceError(SlimmerError):
    """The Pulp API rejected a call or could not be reached."""

    exit_code = 5

    def __init__(
        self,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        detail: str = "",
    ):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.detail = detail
        status = f"HTTP {status_code}" if status_code is not None else "no response"
        message = f"{method} {url} failed ({status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class TaskFailedError(SlimmerError):
    """An async task reached a non-successful terminal state."""

    exit_code = 6
    repo_scoped = True

    def __init__(self, task_href: str, state: str, task_name: str = "", error: Optional[dict] = None):
        self.task_href = task_href
        self.state = state
        self.task_name = task_name
        self.error = error or {}
        description = self.error.get("description", "")
        message = f"Task '{task_name or task_href}' ended in state '{state}'"
        if description:
            message += f": {description}"
        super().__init__(message)


class ResourceNotCreatedError(SlimmerError):
    """A create task completed but handed back no resource."""

    exit_code = 6
    repo_scoped = True

    def __init__(self, kind: str, name: str, task_href: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.task_href = task_href
        message = f"Creating {kind} '{name}' produced no resource"
        if task_href:
            message += f" (task: '{task_href}')"
        super().__init__(message)


class TaskTimeoutError(SlimmerError):
    """A task did not reach a terminal state before the wait deadline."""

    exit_code = 7

    def __init__(self, task_href: str, deadline: float):
        self.task_href = task_href
        self.deadline = deadline
        super().__init__(f"Task '{task_href}' still running after {deadline:.0f}s")


class TaskCancelledError(SlimmerError):
    """The wait for a task was cancelled by the caller (e.g. SIGTERM)."""

    exit_code = 8

    def __init__(self, task_href: str):
        self.task_href = task_href
        super().__init__(f"Wait for task '{task_href}' was cancelled")
