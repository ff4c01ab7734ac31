"""
Pulp API Client — Thin REST wrapper over the Pulp 3 RPM plugin endpoints.

Uses httpx with HTTP basic auth. All hrefs handed back by Pulp are
absolute paths (``/pulp/api/v3/...``) and are passed back verbatim.

## Usage

    from pulp_slimmer.client.pulp_api import PulpClient
    from pulp_slimmer.config.settings import PulpSettings

    with PulpClient(PulpSettings.from_env()) as pulp:
        repos = pulp.repositories.list(name="pulp-base-os")

Any transport failure or HTTP status >= 400 raises ``RemoteServiceError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

import httpx

from ..config.settings import PulpSettings
from ..engine.errors import RemoteServiceError

logger = logging.getLogger(__name__)

API_ROOT = "/pulp/api/v3/"
PAGE_SIZE = 100


class ResourceEndpoint:
    """List/create/read/update/delete for one Pulp resource kind."""

    def __init__(self, client: "PulpClient", path: str, kind: str):
        self._client = client
        self.path = API_ROOT + path
        self.kind = kind

    def iter_pages(self, **filters) -> Iterator[List[Dict[str, Any]]]:
        """Yield each page of results, following ``next`` links to the end."""
        params: Dict[str, Any] = {"limit": PAGE_SIZE}
        params.update({k: v for k, v in filters.items() if v is not None})

        url: Optional[str] = self.path
        while url:
            page = self._client.request("GET", url, params=params)
            yield page.get("results", [])
            url = page.get("next")
            # ``next`` already carries the full query string
            params = None

    def list(self, **filters) -> List[Dict[str, Any]]:
        """Return every matching resource across all pages."""
        results: List[Dict[str, Any]] = []
        for page in self.iter_pages(**filters):
            results.extend(page)
        return results

    def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a new resource; returns the resource or ``{"task": href}``."""
        return self._client.request("POST", self.path, json=body)

    def read(self, href: str) -> Dict[str, Any]:
        return self._client.request("GET", href)

    def update(self, href: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """PATCH a resource; returns ``{"task": href}`` for async kinds."""
        return self._client.request("PATCH", href, json=body)

    def delete(self, href: str) -> Optional[Dict[str, Any]]:
        """DELETE a resource; returns ``{"task": href}`` or None when synchronous."""
        return self._client.request("DELETE", href)


class PulpClient:
    """
    Pulp REST client.

    Pass ``transport`` to route requests somewhere other than the network
    (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        settings: PulpSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self._http = httpx.Client(
            base_url=settings.host,
            auth=(settings.username, settings.password),
            verify=settings.verify_tls,
            timeout=settings.timeout,
            transport=transport,
            headers={"User-Agent": "pulp-slimmer/0.1"},
        )

        self.repositories = ResourceEndpoint(self, "repositories/rpm/rpm/", "repository")
        self.remotes = ResourceEndpoint(self, "remotes/rpm/rpm/", "remote")
        self.publications = ResourceEndpoint(self, "publications/rpm/rpm/", "publication")
        self.distributions = ResourceEndpoint(self, "distributions/rpm/rpm/", "distribution")
        self.packages = ResourceEndpoint(self, "content/rpm/packages/", "package")

    def __enter__(self) -> "PulpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def request(self, method: str, url: str, **kwargs) -> Any:
        """
        Send a request and decode the JSON body.

        Returns None for empty (204) responses.

        Raises:
            RemoteServiceError: On transport errors or HTTP status >= 400
        """
        logger.debug(f"{method} {url}")
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteServiceError(method, url, detail=str(e)) from e

        if response.status_code >= 400:
            raise RemoteServiceError(
                method, url, status_code=response.status_code, detail=response.text[:500]
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ─── Operations outside the CRUD endpoints ──────────────

    def read_task(self, task_href: str) -> Dict[str, Any]:
        return self.request("GET", task_href)

    def sync_repository(self, repository_href: str, remote_href: str, mirror: bool = True) -> Dict[str, Any]:
        """Start a sync of ``repository_href`` from ``remote_href``; returns ``{"task": href}``."""
        return self.request(
            "POST",
            f"{repository_href}sync/",
            json={"remote": remote_href, "mirror": mirror},
        )

    def copy_content(self, config: List[Dict[str, Any]], dependency_solving: bool = True) -> Dict[str, Any]:
        """Submit one advanced RPM copy covering every entry in ``config``."""
        return self.request(
            "POST",
            API_ROOT + "rpm/copy/",
            json={"config": config, "dependency_solving": dependency_solving},
        )
