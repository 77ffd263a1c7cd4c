"""
Lab Catalog Client

Reads researchers, projects and their precomputed publication statistics from
the lab's internal catalog API:

- GET /researchers
- GET /researcher/{id}
- GET /projects
- GET /project/{id}
"""

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from lab_explorer.models.records import (
    PersonDetail,
    Project,
    ProjectDetail,
    Researcher,
)
from lab_explorer.utils.observability import log_prefix, timed
from lab_explorer.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class CatalogClient:
    """
    Async client for the lab catalog API.

    Example:
        catalog = CatalogClient("http://localhost:8000/api")
        researchers = await catalog.list_researchers()
        await catalog.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the catalog client.

        Args:
            base_url: API root, without trailing slash
            timeout: Per-request timeout in seconds
            max_retries: Retries on 429/503/504 and transport errors
            retry_base_delay: First backoff delay in seconds
            client: Optional preconfigured httpx client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": "LabExplorer/1.0"},
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str) -> Any:
        client = await self._get_client()
        url = f"{self.base_url}{path}"
        logger.debug(f"{log_prefix()}GET {url}")

        response = await retry_with_backoff(
            lambda: client.get(url),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )
        response.raise_for_status()
        return response.json()

    @timed
    async def list_researchers(self) -> List[Researcher]:
        """Fetch every researcher of the lab."""
        data = await self._get_json("/researchers")
        if not isinstance(data, list):
            raise ValueError("Expected a list of researchers")
        researchers = [Researcher.from_dict(r) for r in data]
        logger.info(f"{log_prefix()}Catalog returned {len(researchers)} researchers")
        return researchers

    @timed
    async def get_researcher_detail(self, researcher_id: str) -> PersonDetail:
        """Fetch profile statistics (publications, collaborators) for one researcher."""
        data = await self._get_json(f"/researcher/{quote(str(researcher_id), safe='')}")
        return PersonDetail.from_stats(data)

    @timed
    async def list_projects(self) -> List[Project]:
        """Fetch every project of the lab."""
        data = await self._get_json("/projects")
        if not isinstance(data, list):
            raise ValueError("Expected a list of projects")
        projects = [Project.from_dict(p) for p in data]
        logger.info(f"{log_prefix()}Catalog returned {len(projects)} projects")
        return projects

    @timed
    async def get_project_detail(self, project_id: str) -> ProjectDetail:
        """Fetch HAL statistics for one project."""
        data = await self._get_json(f"/project/{quote(str(project_id), safe='')}")
        return ProjectDetail.from_payload(data)
