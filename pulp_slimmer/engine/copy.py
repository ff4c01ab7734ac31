"""
Content Copy Planner — Resolve package names and submit one batched copy.

The copy is submitted with dependency solving enabled: Pulp pulls in
whatever the requested packages depend on, so the engine only names the
top-level packages.

## Usage

    planner = ContentCopyPlanner(pulp, waiter)
    hrefs = planner.resolve_content(version_href, ["bash", "glibc"])
    spec = planner.plan_copy([CopyEntry(version_href, slim_repo_href, hrefs)])
    job = planner.execute(spec)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from ..client.pulp_api import PulpClient
from ..models.tasks import AsyncJob
from .errors import MissingContentError, TaskFailedError
from .tasks import TaskWaiter

logger = logging.getLogger(__name__)

# Names per ``name__in`` query; keeps request URLs a sane length
NAME_CHUNK_SIZE = 50


@dataclass(frozen=True)
class CopyEntry:
    """Copy ``content`` from one repository version into one repository."""

    source_repo_version: str
    dest_repo: str
    content: Sequence[str] = field(default_factory=tuple)

    def to_config(self) -> Dict[str, Any]:
        return {
            "source_repo_version": self.source_repo_version,
            "dest_repo": self.dest_repo,
            "content": list(self.content),
        }


@dataclass(frozen=True)
class CopySpec:
    """A batched copy request covering several repositories."""

    entries: Sequence[CopyEntry]
    dependency_solving: bool = True

    def to_config(self) -> List[Dict[str, Any]]:
        return [entry.to_config() for entry in self.entries]


class ContentCopyPlanner:
    """Builds and submits dependency-solving copy jobs."""

    def __init__(self, client: PulpClient, waiter: TaskWaiter):
        self.client = client
        self.waiter = waiter

    def resolve_content(self, repository_version_href: str, names: Iterable[str]) -> List[str]:
        """
        Look up package hrefs by exact name in a repository version.

        Every page of the listing is read. All builds of a requested name
        are returned.

        Raises:
            MissingContentError: If any requested name has no package
        """
        wanted = list(dict.fromkeys(names))
        if not wanted:
            logger.warning(f"No package names requested from '{repository_version_href}'")
            return []

        hrefs: List[str] = []
        found = set()
        for start in range(0, len(wanted), NAME_CHUNK_SIZE):
            chunk = wanted[start:start + NAME_CHUNK_SIZE]
            for page in self.client.packages.iter_pages(
                repository_version=repository_version_href,
                name__in=",".join(chunk),
                fields="pulp_href,name",
            ):
                for package in page:
                    hrefs.append(package["pulp_href"])
                    found.add(package["name"])

        missing = set(wanted) - found
        if missing:
            raise MissingContentError(repository_version_href, missing)

        logger.debug(f"Resolved {len(wanted)} name(s) to {len(hrefs)} package(s)")
        return hrefs

    def plan_copy(self, entries: Iterable[CopyEntry]) -> CopySpec:
        return CopySpec(entries=tuple(entries))

    def execute(self, spec: CopySpec) -> AsyncJob:
        """
        Submit ``spec`` as one copy task and wait for it.

        The whole batch succeeds or fails together.

        Raises:
            TaskFailedError: If the copy task did not complete
        """
        logger.info(
            f"Copying content into {len(spec.entries)} repo(s) "
            f"(dependency_solving={spec.dependency_solving})"
        )
        response = self.client.copy_content(spec.to_config(), spec.dependency_solving)
        job = self.waiter.wait(response["task"])
        if not job.succeeded:
            raise TaskFailedError(job.pulp_href, job.state.value, job.name, job.error)
        return job
