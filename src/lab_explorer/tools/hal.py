"""
HAL Search Client

Queries the public HAL open-archive search API (Solr syntax):
- documents by author full name, newest first
- author facets constrained by a lab structure id or by project-name phrases
"""

import logging
from typing import List, Optional, Sequence, Tuple

import httpx

from lab_explorer.models.records import Publication, section, section_list
from lab_explorer.utils.observability import log_prefix, timed
from lab_explorer.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

AUTHOR_FIELDS = "title_s,producedDateY_i,docType_s,keyword_s,authFullName_s,journalTitle_s"
AUTHOR_FACET = "authFullName_s"


def quote_phrase(text: str) -> str:
    """Wrap text as a Solr phrase, escaping embedded quotes and backslashes."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_facet_pairs(flat: Sequence) -> List[Tuple[str, int]]:
    """Turn Solr's flat ``[name, count, name, count, ...]`` list into pairs."""
    pairs: List[Tuple[str, int]] = []
    for i in range(0, len(flat) - 1, 2):
        name, count = flat[i], flat[i + 1]
        try:
            pairs.append((str(name), int(count)))
        except (TypeError, ValueError):
            logger.debug(f"Skipping malformed facet entry: {name!r}={count!r}")
    return pairs


class HalClient:
    """
    Async client for the HAL search API.

    Example:
        hal = HalClient()
        pubs = await hal.search_author("Jane Doe")
        top = await hal.facet_authors(struct_id="1234")
    """

    DEFAULT_URL = "https://api.archives-ouvertes.fr/search/"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        rows: int = 50,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.rows = rows
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": "LabExplorer/1.0 (Academic Research Tool)"},
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _search(self, params: dict) -> dict:
        client = await self._get_client()
        logger.debug(f"{log_prefix()}HAL query: {params.get('q')}")

        response = await retry_with_backoff(
            lambda: client.get(self.base_url, params=params),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("HAL response is not a JSON object")
        return data

    @timed
    async def search_author(self, name: str, rows: Optional[int] = None) -> List[Publication]:
        """
        Fetch documents authored by ``name``, newest first.

        Args:
            name: Author full name, matched as a phrase
            rows: Maximum documents (defaults to the client's ``rows``)

        Returns:
            Publications sorted by year descending
        """
        params = {
            "q": f"authFullName_t:{quote_phrase(name)}",
            "wt": "json",
            "fl": AUTHOR_FIELDS,
            "rows": rows or self.rows,
            "sort": "producedDateY_i desc",
        }
        data = await self._search(params)
        docs = section_list(section(data, "response"), "docs")
        publications = [Publication.from_doc(d) for d in docs]
        logger.info(f"{log_prefix()}HAL returned {len(publications)} documents for {name!r}")
        return publications

    @timed
    async def facet_authors(
        self,
        struct_id: Optional[str] = None,
        phrases: Optional[Sequence[str]] = None,
        limit: int = 30,
        mincount: int = 1,
    ) -> List[Tuple[str, int]]:
        """
        Rank authors by document count within a scope.

        Exactly one scope is used: project-name phrases when given (joined as a
        disjunction), otherwise the lab structure id.

        Returns:
            ``(name, count)`` pairs, most frequent first
        """
        params = {
            "wt": "json",
            "rows": 0,
            "facet": "true",
            "facet.field": AUTHOR_FACET,
            "facet.limit": limit,
            "facet.mincount": mincount,
        }
        if phrases:
            params["q"] = " OR ".join(quote_phrase(p) for p in phrases)
        elif struct_id:
            params["q"] = "*:*"
            params["fq"] = f"structId_i:{struct_id}"
        else:
            raise ValueError("facet_authors needs a structure id or project phrases")

        data = await self._search(params)
        fields = section(section(data, "facet_counts"), "facet_fields")
        pairs = parse_facet_pairs(section_list(fields, AUTHOR_FACET))
        pairs.sort(key=lambda p: p[1], reverse=True)
        return pairs[:limit]
