"""
Shared fixtures for engine tests.

Every fixture runs the real ``PulpClient`` against ``FakePulp``'s in-memory
transport, with a zero poll interval so task waits return immediately.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from fake_pulp import HOST, FakePulp
from pulp_slimmer.client.pulp_api import PulpClient
from pulp_slimmer.config.settings import BuildSession, PulpSettings
from pulp_slimmer.engine.copy import ContentCopyPlanner
from pulp_slimmer.engine.pipeline import PipelineRunner
from pulp_slimmer.engine.reconciler import ResourceReconciler
from pulp_slimmer.engine.tasks import TaskWaiter
from pulp_slimmer.persistence.ledger import RunLedger


@pytest.fixture
def fake():
    """Empty in-memory Pulp server."""
    return FakePulp()


@pytest.fixture
def settings():
    """Settings pointing at the fake server with instant polling."""
    return PulpSettings(host=HOST, poll_interval=0.0)


@pytest.fixture
def client(fake, settings):
    pulp = PulpClient(settings, transport=fake.transport)
    yield pulp
    pulp.close()


@pytest.fixture
def waiter(client):
    return TaskWaiter(client, poll_interval=0.0)


@pytest.fixture
def reconciler(client, waiter):
    return ResourceReconciler(client, waiter)


@pytest.fixture
def planner(client, waiter):
    return ContentCopyPlanner(client, waiter)


@pytest.fixture
def session():
    return BuildSession("testbuild", started_on=date(2026, 2, 4))


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    return tmp_path / "runs.ndjson"


@pytest.fixture
def runner(ledger_path):
    return PipelineRunner(RunLedger(ledger_path, run_id="R-TEST"))
