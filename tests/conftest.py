"""
Pytest configuration and fixtures for Lab Explorer tests.

The catalog and HAL clients are replaced by in-memory fakes that count calls,
so the session and gateway run their real logic without a network.
"""

import asyncio
from collections import Counter
from typing import Dict, List, Optional

import httpx
import pytest

from lab_explorer.explorer.session import ExplorerSession
from lab_explorer.models.records import (
    PersonDetail,
    Project,
    ProjectDetail,
    Publication,
    Researcher,
)
from lab_explorer.tools.gateway import RemoteDataGateway
from lab_explorer.utils.config import ExplorerSettings


# ============================================
# Test Data
# ============================================

RESEARCHERS = [
    {"_unique_id": "r1", "name": "Alice Martin", "category": "Professors"},
    {"_unique_id": "r2", "name": "Bob Durand", "category": "Professors"},
    {"_unique_id": "r3", "name": "Chloe Petit", "category": "PhD Students"},
    {"_unique_id": "r4", "name": "Dan Roux"},
]

RESEARCHER_DETAILS = {
    "r1": {
        "profile": {"name": "Alice Martin"},
        "stats": {
            "hal": {
                "found": True,
                "total_publications": 2,
                "recent_publications": [
                    {
                        "title_s": ["Fuzzy Fusion for Remote Sensing Imagery Analysis"],
                        "producedDateY_i": 2023,
                        "authFullName_s": ["Alice Martin", "Jane Doe", "Marc Leroy"],
                    },
                    {"title_s": "Short Paper", "authFullName_s": "Alice Martin"},
                ],
                "top_collaborators": {"Jane Doe": 5, "Marc Leroy": 2},
            },
            "dblp": {"found": False},
        },
    },
}

PROJECTS = [
    {"_unique_id": "p1", "NOM": "ALPHA", "type": "ANR", "PARTENAIRES": "Lab A, Lab B", "FINANCEURS": "ANR"},
    {"_unique_id": "p2", "NOM": "BETA", "type": "ANR", "PARTENAIRES": "Lab B", "FINANCEURS": ""},
    {"_unique_id": "p3", "NOM": "GAMMA", "type": "Europe", "PARTENAIRES": "Lab C", "FINANCEURS": "EU, Region"},
    {"_unique_id": "p4", "NOM": "DELTA"},
]

PROJECT_DETAILS = {
    "p1": {
        "stats": {
            "hal": {
                "found": True,
                "total_publications": 1,
                "top_authors": {"Alice Martin": 1},
                "recent_publications": [
                    {"title": "Alpha results", "year": 2022, "journal": "J. Imaging",
                     "authors": ["Alice Martin", "Paul Blanc"]},
                ],
            }
        }
    },
}

JANE_DOE_DOCS = [
    {"title_s": ["Paper one"], "producedDateY_i": 2024, "keyword_s": ["fusion", "fuzzy"],
     "authFullName_s": ["Jane Doe", "Marc Leroy", "Alice Martin"]},
    {"title_s": ["Paper two"], "producedDateY_i": 2022, "keyword_s": ["fusion"],
     "authFullName_s": ["JANE DOE", "Marc Leroy"]},
    {"title_s": ["Paper three"], "producedDateY_i": 2020, "keyword_s": "radar",
     "authFullName_s": ["jane doe"]},
]


# ============================================
# Fakes
# ============================================

class _CallRecorder:
    """Counts calls per operation; can fail or block selected operations."""

    def __init__(self):
        self.calls: Counter = Counter()
        self.fail: set = set()
        self.gates: Dict[str, asyncio.Event] = {}
        self.last_kwargs: Dict[str, dict] = {}

    async def _record(self, operation: str, **kwargs):
        self.calls[operation] += 1
        self.last_kwargs[operation] = kwargs
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        if operation in self.fail:
            raise httpx.ConnectError(f"{operation} unreachable")

    async def close(self):
        pass


class FakeCatalog(_CallRecorder):
    def __init__(self, researchers=None, projects=None, details=None, project_details=None):
        super().__init__()
        self.researchers = RESEARCHERS if researchers is None else researchers
        self.projects = PROJECTS if projects is None else projects
        self.details = RESEARCHER_DETAILS if details is None else details
        self.project_details = PROJECT_DETAILS if project_details is None else project_details

    async def list_researchers(self) -> List[Researcher]:
        await self._record("list_researchers")
        return [Researcher.from_dict(r) for r in self.researchers]

    async def get_researcher_detail(self, researcher_id: str) -> PersonDetail:
        await self._record("get_researcher_detail", researcher_id=researcher_id)
        payload = self.details.get(researcher_id, {"stats": {"hal": {"found": False}, "dblp": {}}})
        return PersonDetail.from_stats(payload)

    async def list_projects(self) -> List[Project]:
        await self._record("list_projects")
        return [Project.from_dict(p) for p in self.projects]

    async def get_project_detail(self, project_id: str) -> ProjectDetail:
        await self._record("get_project_detail", project_id=project_id)
        return ProjectDetail.from_payload(self.project_details.get(project_id, {"stats": {}}))


class FakeHal(_CallRecorder):
    def __init__(self, docs_by_author: Optional[dict] = None, facet: Optional[list] = None):
        super().__init__()
        self.docs_by_author = {"Jane Doe": JANE_DOE_DOCS} if docs_by_author is None else docs_by_author
        self.facet = [("Alice Martin", 12), ("Jane Doe", 7), ("Marc Leroy", 3)] if facet is None else facet

    async def search_author(self, name: str) -> List[Publication]:
        await self._record("search_author", name=name)
        return [Publication.from_doc(d) for d in self.docs_by_author.get(name, [])]

    async def facet_authors(self, struct_id=None, phrases=None, limit=30, mincount=1):
        await self._record("facet_authors", struct_id=struct_id, phrases=phrases, limit=limit)
        return list(self.facet)[:limit]


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def settings():
    return ExplorerSettings(hal_struct_id="1234", max_retries=0, retry_base_delay=0)


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def hal():
    return FakeHal()


@pytest.fixture
def gateway(catalog, hal, settings):
    return RemoteDataGateway(catalog, hal, settings)


@pytest.fixture
def session(gateway, settings):
    return ExplorerSession(gateway, settings)
