"""
Slim Repo Pipeline — The "use-existing" workflow.

For every declared mirror that already exists in Pulp:

1. Follow distribution → publication → repository version to find what
   is currently published
2. Resolve the requested package names in that version
3. Ensure a slim repository named after the build session
4. Copy all repos' packages in one dependency-solving batch
5. Publish and distribute each slim repository
6. Write the slim repo records and return them for the summary

Steps 1–3 and 5 are per repo; step 4 is a single call for the whole run.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, List, Sequence

from ..client.pulp_api import PulpClient
from ..config.settings import DEFAULT_PREFIX, ROLE_SLIM_REPO, BuildSession
from ..models.repos import RepoRunState, RepoSpec, SlimRepoRecord
from ..persistence.slim_repos_file import save_slim_repos
from .copy import ContentCopyPlanner, CopyEntry
from .errors import DistributionNotFoundError, PublicationNotFoundError
from .pipeline import PipelineRunner, RepoOutcome, RunResult
from .reconciler import ResourceReconciler

logger = logging.getLogger(__name__)


def derive_slim_name(name: str, build_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Replace a leading ``prefix`` token of ``name`` with ``build_name``.

    ``pulp-base-os`` → ``<build_name>-base-os``. Names without the token
    are returned unchanged.
    """
    if not prefix:
        return name
    return re.sub(rf"^{re.escape(prefix)}\b", lambda _: build_name, name)


class SlimRepoPipeline:
    """Builds slim repos from existing mirrors."""

    def __init__(
        self,
        reconciler: ResourceReconciler,
        planner: ContentCopyPlanner,
        session: BuildSession,
        runner: PipelineRunner,
        prefix: str = DEFAULT_PREFIX,
    ):
        self.reconciler = reconciler
        self.planner = planner
        self.session = session
        self.runner = runner
        self.prefix = prefix
        # Mirrors sharing a slim name must not both see it absent and create it
        self._ensure_lock = threading.Lock()

    @property
    def client(self) -> PulpClient:
        return self.reconciler.client

    def resolve_published_version(self, name: str) -> str:
        """
        Return the repository version currently served under ``name``.

        Raises:
            DistributionNotFoundError: No distribution called ``name``
            PublicationNotFoundError: The distribution serves no publication
        """
        distributions = self.client.distributions.list(name=name)
        if not distributions:
            raise DistributionNotFoundError(name)

        publication_href = distributions[0].get("publication")
        if not publication_href:
            raise PublicationNotFoundError(name)

        publication = self.client.publications.read(publication_href)
        version = self.client.request("GET", publication["repository_version"])
        return version["pulp_href"]

    def prepare(self, state: RepoRunState) -> RepoRunState:
        """Resolve the source version and packages, and ensure the slim repo."""
        record = self.runner.record

        version_href = self.resolve_published_version(state.name)
        state = record(state.advance("source-resolved", repository_version_href=version_href))

        content = self.planner.resolve_content(version_href, state.spec.rpms)
        state = record(state.advance("content-resolved", content_hrefs=content))

        slim_name = derive_slim_name(state.name, self.session.build_name, self.prefix)
        with self._ensure_lock:
            repo = self.reconciler.ensure_repository(slim_name, self.session.labels(ROLE_SLIM_REPO))
        return record(state.advance(
            "slim-repo-ensured",
            slim_name=slim_name,
            slim_repository_href=repo["pulp_href"],
        ))

    def publish(self, state: RepoRunState) -> RepoRunState:
        """Publish the slim repo's latest version and point its distribution at it."""
        record = self.runner.record

        latest = self.client.repositories.read(state.slim_repository_href)["latest_version_href"]
        publication = self.reconciler.ensure_publication(latest)
        state = record(state.advance("published", publication_href=publication["pulp_href"]))

        distro = self.reconciler.ensure_distribution(
            state.slim_name, state.publication_href, self.session.labels(ROLE_SLIM_REPO)
        )
        return record(state.advance(
            "distributed",
            distribution_href=distro["pulp_href"],
            distribution_url=distro.get("base_url"),
        ))

    def run(self, specs: Sequence[RepoSpec], output_path: Path) -> RunResult:
        """
        Build, copy, publish and record slim repos for ``specs``.

        Raises:
            TaskFailedError: If the batched copy fails (aborts every repo)
        """
        ledger = self.runner.ledger
        ledger.emit("run_start", details={"mode": "use-existing", "repos": [s.name for s in specs]})

        prepared = self.runner.run(self.prepare, [RepoRunState(spec=spec) for spec in specs])
        ready = [o.state for o in prepared if o.ok]

        # Two mirrors mapping to one slim name share a repository
        by_slim_name: Dict[str, RepoRunState] = {}
        shared: List[RepoOutcome] = []
        for state in ready:
            if state.slim_name in by_slim_name:
                logger.warning(
                    f"'{state.name}' and '{by_slim_name[state.slim_name].name}' "
                    f"both copy into '{state.slim_name}'"
                )
                shared.append(RepoOutcome(name=state.name, state=state))
                continue
            by_slim_name[state.slim_name] = state

        if ready:
            spec = self.planner.plan_copy(
                CopyEntry(s.repository_version_href, s.slim_repository_href, tuple(s.content_hrefs))
                for s in ready
            )
            job = self.planner.execute(spec)
            ledger.emit("copy_completed", details={"task": job.pulp_href, "repos": len(ready)})

        published = self.runner.run(self.publish, list(by_slim_name.values()))

        records: List[SlimRepoRecord] = [
            SlimRepoRecord(
                name=s.slim_name,
                pulp_href=s.slim_repository_href,
                source_repo_name=s.name,
                publication_href=s.publication_href,
                distro_href=s.distribution_href,
                distro_url=s.distribution_url,
            )
            for s in (o.state for o in published if o.ok)
        ]
        save_slim_repos(records, output_path)

        outcomes = [o for o in prepared if not o.ok] + published + shared
        order = {spec.name: i for i, spec in enumerate(specs)}
        outcomes.sort(key=lambda o: order[o.name])

        result = RunResult(run_id=ledger.run_id, outcomes=outcomes, records=records)
        ledger.emit(
            "run_end",
            level="error" if result.failures else "info",
            details={"slim_repos": [r.name for r in records], "failed": [o.name for o in result.failures]},
        )
        return result
