"""
Repo Models — Declared mirrors, per-repo run state, and run output records.

- RepoSpec: one entry of the declared-mirrors file (immutable input)
- RepoRunState: what one repo's pipeline has produced so far
- SlimRepoRecord: one entry of the run output file
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RepoSpec(BaseModel):
    """A declared upstream mirror and the packages to keep from it."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    rpms: List[str] = Field(default_factory=list)


class RepoRunState(BaseModel):
    """
    Per-repo pipeline record.

    Stages never mutate a record; they return ``state.advance(...)`` with
    the fields they resolved.
    """

    model_config = ConfigDict(frozen=True)

    spec: RepoSpec
    stage: str = "absent"

    repository_href: Optional[str] = None
    remote_href: Optional[str] = None
    repository_version_href: Optional[str] = None
    publication_href: Optional[str] = None
    distribution_href: Optional[str] = None
    distribution_url: Optional[str] = None

    # use-existing only
    slim_name: Optional[str] = None
    slim_repository_href: Optional[str] = None
    content_hrefs: List[str] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.spec.name

    def advance(self, stage: str, **changes) -> "RepoRunState":
        """Return a copy moved to ``stage`` with ``changes`` applied."""
        return self.model_copy(update={"stage": stage, **changes})


class SlimRepoRecord(BaseModel):
    """A slim repository produced by a use-existing run."""

    name: str
    pulp_href: str
    source_repo_name: str
    publication_href: Optional[str] = None
    distro_href: Optional[str] = None
    distro_url: Optional[str] = None
