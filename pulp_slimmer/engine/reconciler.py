"""
Resource Reconciler — Ensure-or-create and delete-by-name for Pulp resources.

Resource names are the uniqueness key: an ``ensure_*`` call never creates a
second resource with a name that already exists. Repositories and
publications are reused as found (with a warning); distributions are the one
kind reconciled toward the desired state, because they are the user-facing
pointer that must follow the latest publication.

Deletes are issued without waiting. ``delete_mirror`` is the only method
that waits, and it does so after every delete for the name has been issued.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..client.pulp_api import PulpClient, ResourceEndpoint
from .errors import RemoteServiceError, ResourceNotCreatedError, TaskFailedError
from .tasks import TaskWaiter

logger = logging.getLogger(__name__)


class ResourceReconciler:
    """Idempotent operations on repositories, remotes, publications and distributions."""

    def __init__(self, client: PulpClient, waiter: TaskWaiter):
        self.client = client
        self.waiter = waiter

    # ─── Helpers ────────────────────────────────────────────

    def _created_href(self, response: Dict[str, Any], kind: str, name: str) -> str:
        """
        Resolve a create response to the new resource's href.

        Raises:
            ResourceNotCreatedError: If the response or its task names no resource
        """
        task_href = response.get("task")
        if task_href is None:
            href = response.get("pulp_href")
        else:
            created = self.waiter.wait_for_created(task_href, require_success=True)
            href = created[0] if created else None
        if not href:
            raise ResourceNotCreatedError(kind, name, task_href)
        return href

    def _await_update(self, response: Optional[Dict[str, Any]]) -> None:
        if response and "task" in response:
            job = self.waiter.wait(response["task"])
            if not job.succeeded:
                raise TaskFailedError(job.pulp_href, job.state.value, job.name, job.error)

    def _delete(self, endpoint: ResourceEndpoint, resource: Dict[str, Any]) -> Optional[str]:
        """Issue one delete; returns the task href, if Pulp handed one back."""
        logger.warning(f"!! DELETING {endpoint.kind} {resource.get('name', '')}: {resource['pulp_href']}")
        try:
            response = endpoint.delete(resource["pulp_href"])
        except RemoteServiceError as e:
            # Deleting a repository cascades to its publications
            if e.status_code == 404:
                logger.info(f"{endpoint.kind} {resource['pulp_href']} already gone")
                return None
            raise
        return response.get("task") if response else None

    # ─── Repository ─────────────────────────────────────────

    def ensure_repository(self, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Return the repository called ``name``, creating it if absent."""
        existing = self.client.repositories.list(name=name)
        if existing:
            logger.warning(f"WARNING: repo '{name}' already exists!")
            return existing[0]

        logger.info(f"== Creating repo '{name}'")
        response = self.client.repositories.create({"name": name, "pulp_labels": labels or {}})
        href = self._created_href(response, "repository", name)
        if "task" in response:
            return self.client.repositories.read(href)
        return response

    # ─── Remote + sync ──────────────────────────────────────

    def create_remote(self, name: str, url: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Create an on-demand RPM remote pointing at ``url``."""
        logger.info(f"== Creating remote '{name}' -> {url}")
        response = self.client.remotes.create({
            "name": name,
            "url": url,
            "policy": "on_demand",
            "tls_validation": False,
            "pulp_labels": labels or {},
        })
        href = self._created_href(response, "remote", name)
        if "task" in response:
            return self.client.remotes.read(href)
        return response

    def sync_repository(self, repository_href: str, remote_href: str) -> Optional[str]:
        """
        Mirror-sync a repository from a remote.

        Returns the href of the repository version the sync created, or None
        when the task reported no created resources.
        """
        response = self.client.sync_repository(repository_href, remote_href, mirror=True)
        created = self.waiter.wait_for_created(response["task"], require_success=True)
        return created[0] if created else None

    # ─── Publication ────────────────────────────────────────

    def ensure_publication(self, repository_version_href: str) -> Dict[str, Any]:
        """Return the publication of a repository version, creating it if absent."""
        existing = self.client.publications.list(repository_version=repository_version_href)
        if existing:
            logger.warning(f"WARNING: publication for '{repository_version_href}' already exists!")
            return existing[0]

        logger.info(f"== Publishing '{repository_version_href}'")
        response = self.client.publications.create({
            "repository_version": repository_version_href,
            "metadata_checksum_type": "sha256",
        })
        href = self._created_href(response, "publication", repository_version_href)
        return self.client.publications.read(href)

    # ─── Distribution ───────────────────────────────────────

    def ensure_distribution(
        self,
        name: str,
        publication_href: str,
        labels: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Make the distribution ``name`` serve ``publication_href``.

        - absent: create it
        - present with the same publication: return it unchanged
        - present with another publication: one update, then re-fetch
        """
        existing = self.client.distributions.list(name=name)
        if existing:
            distro = existing[0]
            if distro.get("publication") == publication_href:
                logger.warning(f"WARNING: distro '{name}' already exists with publication {publication_href}!")
                return distro

            logger.warning(f"== Updating distro '{name}'")
            self._await_update(
                self.client.distributions.update(distro["pulp_href"], {"publication": publication_href})
            )
            return self.client.distributions.list(name=name)[0]

        logger.info(f"== Creating distro '{name}'")
        response = self.client.distributions.create({
            "name": name,
            "base_path": name,
            "publication": publication_href,
            "pulp_labels": labels or {},
        })
        self._created_href(response, "distribution", name)
        created = self.client.distributions.list(base_path=name)
        if not created:
            raise ResourceNotCreatedError("distribution", name, response.get("task"))
        return created[0]

    # ─── Teardown ───────────────────────────────────────────

    def delete_repositories(self, name: str) -> List[str]:
        endpoint = self.client.repositories
        tasks = [self._delete(endpoint, repo) for repo in endpoint.list(name=name)]
        return [t for t in tasks if t]

    def delete_remotes(self, name: str) -> List[str]:
        endpoint = self.client.remotes
        tasks = [self._delete(endpoint, remote) for remote in endpoint.list(name=name)]
        return [t for t in tasks if t]

    def delete_publications(self, name: str) -> List[str]:
        """
        Delete the publication served by the distribution ``name``.

        Publications have no name of their own. Without a distribution (or
        one without a publication) this is a no-op.
        """
        distributions = self.client.distributions.list(name=name)
        if not distributions:
            return []
        publication_href = distributions[0].get("publication")
        if not publication_href:
            return []

        task = self._delete(self.client.publications, {"name": name, "pulp_href": publication_href})
        return [task] if task else []

    def delete_distributions(self, name: str) -> List[str]:
        endpoint = self.client.distributions
        tasks = [self._delete(endpoint, distro) for distro in endpoint.list(name=name)]
        return [t for t in tasks if t]

    def delete_mirror(self, name: str) -> None:
        """
        Tear down the repository, remote, publication and distribution for ``name``.

        All deletes are issued first, then awaited one by one. Nothing is
        rolled back if a later call fails.
        """
        tasks: List[str] = []
        tasks += self.delete_repositories(name)
        tasks += self.delete_remotes(name)
        tasks += self.delete_publications(name)
        tasks += self.delete_distributions(name)

        for task_href in tasks:
            job = self.waiter.wait(task_href)
            if not job.succeeded:
                raise TaskFailedError(job.pulp_href, job.state.value, job.name, job.error)

        logger.info(f"Teardown of '{name}' complete ({len(tasks)} task(s))", extra={"repo": name})
