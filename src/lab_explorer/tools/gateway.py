"""
Remote data gateway.

Single entry point the explorer session uses for remote data. It fronts the
catalog and HAL clients and turns every transport or payload failure into a
``GatewayError`` so callers have one exception to handle per expansion.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import httpx

from lab_explorer.models.records import (
    PersonDetail,
    Project,
    ProjectDetail,
    Publication,
    Researcher,
)
from lab_explorer.tools.catalog import CatalogClient
from lab_explorer.tools.hal import HalClient
from lab_explorer.utils.config import ExplorerSettings
from lab_explorer.utils.observability import log_prefix

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """A remote call failed or returned something unusable."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


@runtime_checkable
class Person(Protocol):
    """Anything whose publications and collaborators can be fetched."""

    person_id: str
    name: str

    async def fetch_detail(self, gateway: "RemoteDataGateway") -> PersonDetail:
        ...


@dataclass(frozen=True)
class CatalogResearcher:
    """A lab member: detail comes from the catalog's precomputed stats."""

    person_id: str
    name: str

    async def fetch_detail(self, gateway: "RemoteDataGateway") -> PersonDetail:
        return await gateway.get_researcher_detail(self.person_id)


@dataclass(frozen=True)
class ExternalCollaborator:
    """A co-author outside the catalog: detail is derived from a HAL name search."""

    person_id: str
    name: str

    async def fetch_detail(self, gateway: "RemoteDataGateway") -> PersonDetail:
        publications = await gateway.search_author(self.name)
        return PersonDetail.derive(
            self.name,
            publications,
            max_collaborators=gateway.settings.max_collaborators,
            max_publications=gateway.settings.max_publications,
        )


class RemoteDataGateway:
    """
    Adapter over the lab catalog and HAL.

    Example:
        gateway = RemoteDataGateway.from_settings(ExplorerSettings.from_config())
        projects = await gateway.list_projects()
        await gateway.close()
    """

    def __init__(
        self,
        catalog: CatalogClient,
        hal: HalClient,
        settings: Optional[ExplorerSettings] = None,
    ):
        self.catalog = catalog
        self.hal = hal
        self.settings = settings or ExplorerSettings()

    @classmethod
    def from_settings(cls, settings: ExplorerSettings) -> "RemoteDataGateway":
        catalog = CatalogClient(
            settings.catalog_url,
            timeout=settings.catalog_timeout,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
        )
        hal = HalClient(
            settings.hal_url,
            rows=settings.hal_rows,
            max_retries=settings.max_retries,
            retry_base_delay=settings.retry_base_delay,
        )
        return cls(catalog, hal, settings)

    async def close(self):
        """Close both HTTP clients."""
        await self.catalog.close()
        await self.hal.close()

    async def _call(self, operation: str, pending: Awaitable[Any]) -> Any:
        try:
            return await pending
        except httpx.HTTPError as e:
            logger.warning(f"{log_prefix()}{operation} failed: {e}")
            raise GatewayError(operation, f"request failed ({e.__class__.__name__})") from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"{log_prefix()}{operation} returned a malformed payload: {e}")
            raise GatewayError(operation, "malformed response") from e

    async def list_researchers(self) -> List[Researcher]:
        return await self._call("list_researchers", self.catalog.list_researchers())

    async def get_researcher_detail(self, researcher_id: str) -> PersonDetail:
        return await self._call(
            "get_researcher_detail", self.catalog.get_researcher_detail(researcher_id)
        )

    async def list_projects(self) -> List[Project]:
        return await self._call("list_projects", self.catalog.list_projects())

    async def get_project_detail(self, project_id: str) -> ProjectDetail:
        return await self._call(
            "get_project_detail", self.catalog.get_project_detail(project_id)
        )

    async def search_author(self, name: str) -> List[Publication]:
        return await self._call("search_author", self.hal.search_author(name))

    async def facet_authors(
        self,
        struct_id: Optional[str] = None,
        phrases: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        mincount: int = 1,
    ) -> List[Tuple[str, int]]:
        if not phrases:
            struct_id = struct_id or self.settings.hal_struct_id
            if not struct_id:
                raise GatewayError("facet_authors", "no HAL structure id configured")
        return await self._call(
            "facet_authors",
            self.hal.facet_authors(
                struct_id=struct_id,
                phrases=phrases,
                limit=limit or self.settings.facet_cap,
                mincount=mincount,
            ),
        )

    async def fetch_person(self, person: Person) -> PersonDetail:
        """Fetch detail for a researcher or an external collaborator alike."""
        return await person.fetch_detail(self)
