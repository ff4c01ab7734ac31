"""
Pipeline Runner — Per-repo stage execution with failure isolation.

Each declared repo runs through a stage function independently. A
repo-scoped failure (not-found, missing content, failed task) ends that
repo's pipeline and is recorded in its outcome; any other ``SlimmerError``
aborts the whole run.

With ``workers > 1`` repos run on a bounded thread pool. Outcomes are
always returned in declaration order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..models.repos import RepoRunState, SlimRepoRecord
from ..persistence.ledger import RunLedger
from .errors import SlimmerError

logger = logging.getLogger(__name__)

Stage = Callable[[RepoRunState], RepoRunState]


@dataclass
class RepoOutcome:
    """Where one repo's pipeline ended up."""

    name: str
    state: RepoRunState
    error: Optional[SlimmerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    """Result of a full create-new or use-existing run."""

    run_id: str
    outcomes: List[RepoOutcome] = field(default_factory=list)
    records: List[SlimRepoRecord] = field(default_factory=list)

    @property
    def failures(self) -> List[RepoOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def exit_code(self) -> int:
        if not self.failures:
            return 0
        return max(o.error.exit_code for o in self.failures)


class PipelineRunner:
    """Runs one stage function over many repos."""

    def __init__(self, ledger: RunLedger, workers: int = 1):
        self.ledger = ledger
        self.workers = max(1, workers)

    def record(self, state: RepoRunState) -> RepoRunState:
        """Log and ledger a stage transition; returns ``state`` for chaining."""
        logger.info(f"-> {state.stage}", extra={"repo": state.name, "stage": state.stage})
        self.ledger.emit("stage", repo=state.name, stage=state.stage)
        return state

    def _run_one(self, stage: Stage, state: RepoRunState) -> RepoOutcome:
        try:
            return RepoOutcome(name=state.name, state=stage(state))
        except SlimmerError as e:
            if not e.repo_scoped:
                raise
            logger.error(f"{type(e).__name__}: {e}", extra={"repo": state.name})
            self.ledger.emit(
                "repo_failed",
                repo=state.name,
                level="error",
                details={"error": type(e).__name__, "message": str(e)},
            )
            return RepoOutcome(name=state.name, state=state, error=e)

    def run(self, stage: Stage, states: Sequence[RepoRunState]) -> List[RepoOutcome]:
        if self.workers == 1 or len(states) <= 1:
            return [self._run_one(stage, state) for state in states]

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="repo") as pool:
            futures = [pool.submit(self._run_one, stage, state) for state in states]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
