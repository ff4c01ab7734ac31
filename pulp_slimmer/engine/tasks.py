"""
Task Waiter — Block until a Pulp async task reaches a terminal state.

Pulp exposes no push notification for task completion, so waiting is a
plain poll-sleep-poll loop. There is no retry here: the loop waits for one
call's eventual outcome.

## Usage

    waiter = TaskWaiter(pulp, poll_interval=10)

    job = waiter.wait(task_href)             # failed jobs are returned, not raised
    hrefs = waiter.wait_for_created(task_href)

By default the wait is unbounded. ``deadline`` (seconds) bounds it and
``cancel_event`` lets another thread (e.g. a SIGTERM handler) abort it.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional

from ..client.pulp_api import PulpClient
from ..models.tasks import AsyncJob
from .errors import TaskCancelledError, TaskFailedError, TaskTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class TaskWaiter:
    """Polls the tasks endpoint until a job is terminal."""

    def __init__(
        self,
        client: PulpClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.deadline = deadline
        self.cancel_event = cancel_event or threading.Event()

    def read(self, task_href: str) -> AsyncJob:
        return AsyncJob(**self.client.read_task(task_href))

    def wait(self, task_href: str) -> AsyncJob:
        """
        Poll ``task_href`` until it is terminal and return the final record.

        Raises:
            TaskTimeoutError: If ``deadline`` elapses first
            TaskCancelledError: If ``cancel_event`` is set while waiting
            RemoteServiceError: If the task cannot be read
        """
        started = time.monotonic()

        while True:
            job = self.read(task_href)
            if job.is_terminal:
                logger.debug(
                    f"Task '{job.name}' finished: {job.state.value}",
                    extra={"task_href": task_href},
                )
                return job

            logger.info(f"...Waiting for task '{job.name}' to complete (status: '{job.state.value}')")
            logger.debug(f"      ( pulp_href: {job.pulp_href} )", extra={"task_href": task_href})

            if self.deadline is not None and time.monotonic() - started >= self.deadline:
                raise TaskTimeoutError(task_href, self.deadline)

            # Event.wait doubles as the sleep and the cancellation check
            if self.cancel_event.wait(self.poll_interval):
                raise TaskCancelledError(task_href)

    def wait_for_created(
        self,
        task_href: str,
        min_expected: int = 1,
        max_expected: int = 1,
        require_success: bool = False,
    ) -> List[str]:
        """
        Wait for a create task and return the hrefs it created.

        A count outside ``[min_expected, max_expected]`` is logged as a
        warning and the full list is returned unchanged; the caller's next
        step will fail loudly if the result is unusable.

        With ``require_success`` a job that did not complete raises
        ``TaskFailedError`` instead of being counted.
        """
        job = self.wait(task_href)
        if require_success and not job.succeeded:
            raise TaskFailedError(job.pulp_href, job.state.value, job.name, job.error)
        created = list(job.created_resources)

        if not created and min_expected > 0:
            logger.warning(
                f"Task '{job.name}' created 0 resources (task: '{task_href}')",
                extra={"task_href": task_href},
            )

        if len(created) > max_expected:
            logger.warning(
                f"Task '{job.name}' created {len(created)} resources, expected at most "
                f"{max_expected} (task: '{task_href}'): {', '.join(created)}",
                extra={"task_href": task_href},
            )

        return created
