"""
Mirror Orchestrator — The "create-new" workflow.

Stands up a full mirror pipeline for each declared repo:

    absent → repo-ensured → remote-created → sync-completed
           → publication-ensured → distribution-ensured

Every declared repo's existing pipeline is torn down first, so a run always
starts from a clean slate; there is no incremental re-sync. A failure stops
that repo where it is. Nothing is rolled back, so partial pipelines stay in
Pulp for inspection.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..config.settings import ROLE_REMOTE_MIRROR, BuildSession
from ..models.repos import RepoRunState, RepoSpec
from .pipeline import PipelineRunner, RepoOutcome, RunResult
from .reconciler import ResourceReconciler

logger = logging.getLogger(__name__)


class MirrorOrchestrator:
    """Sequences reconciler calls into teardown + create for each repo."""

    def __init__(
        self,
        reconciler: ResourceReconciler,
        session: BuildSession,
        runner: PipelineRunner,
    ):
        self.reconciler = reconciler
        self.session = session
        self.runner = runner

    def teardown(self, state: RepoRunState) -> RepoRunState:
        self.reconciler.delete_mirror(state.name)
        return self.runner.record(state.advance("absent"))

    def create_mirror(self, state: RepoRunState) -> RepoRunState:
        """Run one repo from ``absent`` to ``distribution-ensured``."""
        name = state.name
        labels = self.session.labels(ROLE_REMOTE_MIRROR)
        record = self.runner.record

        repo = self.reconciler.ensure_repository(name, labels)
        state = record(state.advance("repo-ensured", repository_href=repo["pulp_href"]))

        remote = self.reconciler.create_remote(name, state.spec.url, labels)
        state = record(state.advance("remote-created", remote_href=remote["pulp_href"]))

        version_href = self.reconciler.sync_repository(state.repository_href, state.remote_href)
        if version_href is None:
            # A mirror sync that changed nothing reports no new version
            version_href = self.reconciler.client.repositories.read(
                state.repository_href
            )["latest_version_href"]
        state = record(state.advance("sync-completed", repository_version_href=version_href))

        publication = self.reconciler.ensure_publication(version_href)
        state = record(state.advance("publication-ensured", publication_href=publication["pulp_href"]))

        distro = self.reconciler.ensure_distribution(name, state.publication_href, labels)
        return record(state.advance("distribution-ensured", distribution_href=distro["pulp_href"]))

    def run(self, specs: Sequence[RepoSpec]) -> RunResult:
        """Tear down, then recreate, every declared mirror."""
        ledger = self.runner.ledger
        ledger.emit("run_start", details={"mode": "create-new", "repos": [s.name for s in specs]})

        states = [RepoRunState(spec=spec) for spec in specs]
        torn_down = self.runner.run(self.teardown, states)

        outcomes: List[RepoOutcome] = [o for o in torn_down if not o.ok]
        created = self.runner.run(self.create_mirror, [o.state for o in torn_down if o.ok])
        outcomes.extend(created)

        order = {spec.name: i for i, spec in enumerate(specs)}
        outcomes.sort(key=lambda o: order[o.name])

        result = RunResult(run_id=ledger.run_id, outcomes=outcomes)
        ledger.emit(
            "run_end",
            level="error" if result.failures else "info",
            details={"failed": [o.name for o in result.failures]},
        )
        logger.info(
            f"create-new: {len(specs) - len(result.failures)}/{len(specs)} mirror(s) ready"
        )
        return result
