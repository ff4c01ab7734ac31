"""
Tests for the task waiter.

These tests verify:
- Polling until a terminal state
- Failed tasks are returned, not raised
- Created-resource count warnings
- Deadline and cancellation
"""

import logging
import threading

import pytest

from pulp_slimmer.engine.errors import TaskCancelledError, TaskFailedError, TaskTimeoutError
from pulp_slimmer.engine.tasks import TaskWaiter
from pulp_slimmer.models.tasks import TaskState


class TestWait:
    """Tests for TaskWaiter.wait."""

    def test_polls_until_completed(self, client, fake):
        """Test the waiter keeps reading a running task until it finishes."""
        fake.task_polls = 3
        response = client.sync_repository(
            client.repositories.create({"name": "r"})["pulp_href"],
            client.remotes.create({"name": "r", "url": "https://example/os"})["pulp_href"],
        )

        job = TaskWaiter(client, poll_interval=0).wait(response["task"])

        assert job.state == TaskState.COMPLETED
        task_reads = [p for m, p in fake.calls if p == response["task"]]
        assert len(task_reads) == 4

    def test_failed_task_is_returned(self, waiter, fake):
        """Test a failed terminal state is not an exception."""
        href = fake.add_task("failed")

        job = waiter.wait(href)

        assert job.state == TaskState.FAILED
        assert job.succeeded is False

    def test_canceled_is_terminal(self, waiter, fake):
        href = fake.add_task("canceled")

        assert waiter.wait(href).state == TaskState.CANCELED

    def test_deadline_raises_timeout(self, client, fake):
        """Test an optional deadline bounds the wait."""
        href = fake.add_task("running")
        waiter = TaskWaiter(client, poll_interval=0, deadline=0)

        with pytest.raises(TaskTimeoutError) as exc_info:
            waiter.wait(href)

        assert exc_info.value.task_href == href
        assert exc_info.value.exit_code == 7

    def test_cancel_event_stops_wait(self, client, fake):
        """Test setting the cancel event aborts a wait on a running task."""
        href = fake.add_task("running")
        cancel = threading.Event()
        cancel.set()
        waiter = TaskWaiter(client, poll_interval=5, cancel_event=cancel)

        with pytest.raises(TaskCancelledError):
            waiter.wait(href)


class TestWaitForCreated:
    """Tests for TaskWaiter.wait_for_created."""

    def test_single_resource(self, waiter, fake):
        href = fake.add_task("completed", created=["/pulp/api/v3/x/1/"])

        assert waiter.wait_for_created(href) == ["/pulp/api/v3/x/1/"]

    def test_zero_resources_warns_and_returns_empty(self, waiter, fake, caplog):
        """Test zero created resources is a warning, not an error."""
        href = fake.add_task("completed", created=[])

        with caplog.at_level(logging.WARNING):
            created = waiter.wait_for_created(href, min_expected=1, max_expected=1)

        assert created == []
        assert "created 0 resources" in caplog.text

    def test_zero_resources_allowed_when_not_expected(self, waiter, fake, caplog):
        href = fake.add_task("completed", created=[])

        with caplog.at_level(logging.WARNING):
            created = waiter.wait_for_created(href, min_expected=0)

        assert created == []
        assert "created 0 resources" not in caplog.text

    def test_too_many_resources_warns_and_returns_all(self, waiter, fake, caplog):
        """Test extra created resources are reported and never truncated."""
        resources = ["/pulp/api/v3/x/1/", "/pulp/api/v3/x/2/"]
        href = fake.add_task("completed", created=resources)

        with caplog.at_level(logging.WARNING):
            created = waiter.wait_for_created(href, min_expected=1, max_expected=1)

        assert created == resources
        assert "created 2 resources" in caplog.text

    def test_require_success_raises_on_failure(self, waiter, fake):
        href = fake.add_task("failed", name="pulp_rpm.app.tasks.publishing.publish")

        with pytest.raises(TaskFailedError) as exc_info:
            waiter.wait_for_created(href, require_success=True)

        assert exc_info.value.state == "failed"
        assert "boom" in str(exc_info.value)

    def test_failed_without_require_success_returns_empty(self, waiter, fake):
        href = fake.add_task("failed")

        assert waiter.wait_for_created(href) == []
