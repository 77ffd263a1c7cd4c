"""Domain records shared by the gateway, the expansion engine and the UI.

The lab catalog exposes its spreadsheet columns as-is (``NOM``,
``PARTENAIRES``, ``FINANCEURS``...), while newer endpoints use English keys.
The ``from_dict`` constructors accept both so the rest of the package only
ever sees one shape.
"""

from collections import Counter
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union


def first_value(record: dict, *keys: str) -> Any:
    """Return the first non-empty value among ``keys``."""
    for key in keys:
        value = record.get(key)
        if value not in (None, "", []):
            return value
    return None


def as_text(value: Any) -> Optional[str]:
    """HAL returns some string fields as single-element lists."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    text = str(value).strip()
    return [text] if text else []


def split_names(value: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma-delimited partner/funder field into distinct names.

    Order of first appearance is kept; blanks are dropped.
    """
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else list(value)
    names: List[str] = []
    for part in parts:
        name = str(part).strip()
        if name and name not in names:
            names.append(name)
    return names


def ranked(counts: Union[Dict[str, int], Iterable[Tuple[str, int]], None]) -> Dict[str, int]:
    """Normalize a frequency map (dict or list of pairs) to a dict sorted by count."""
    if not counts:
        return {}
    pairs = counts.items() if isinstance(counts, dict) else counts
    cleaned = []
    for pair in pairs:
        try:
            name, count = pair
            cleaned.append((str(name), int(count)))
        except (TypeError, ValueError):
            continue
    cleaned.sort(key=lambda item: item[1], reverse=True)
    return dict(cleaned)


def section(record: dict, key: str) -> dict:
    """Nested object under ``key``; ``{}`` when absent.

    Raises:
        ValueError: If the value is present but not an object
    """
    value = record.get(key)
    if value in (None, "", []):
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Expected an object under {key!r}, got {type(value).__name__}")
    return value


def section_list(record: dict, key: str) -> list:
    """List under ``key``; ``[]`` when absent, ValueError when not a list."""
    value = record.get(key)
    if value in (None, ""):
        return []
    if not isinstance(value, list):
        raise ValueError(f"Expected a list under {key!r}, got {type(value).__name__}")
    return value


@dataclass
class Researcher:
    """A lab member as listed by the catalog."""

    id: str
    name: str
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Researcher":
        if not isinstance(data, dict):
            raise ValueError(f"Researcher record must be an object, got {type(data).__name__}")
        rid = first_value(data, "_unique_id", "id")
        name = first_value(data, "name", "NOM")
        if rid is None and name is None:
            raise ValueError("Researcher record has neither id nor name")
        return cls(
            id=str(rid if rid is not None else name),
            name=str(name if name is not None else rid),
            category=as_text(data.get("category")),
        )


@dataclass
class Project:
    """A lab project; partners and funders are already split into names."""

    id: str
    name: str
    type: Optional[str] = None
    keywords: Optional[str] = None
    partners: List[str] = field(default_factory=list)
    funders: List[str] = field(default_factory=list)
    period: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        if not isinstance(data, dict):
            raise ValueError(f"Project record must be an object, got {type(data).__name__}")
        name = first_value(data, "name", "NOM")
        if name is None:
            raise ValueError("Project record has no name")
        pid = first_value(data, "_unique_id", "id")
        return cls(
            id=str(pid if pid is not None else name),
            name=str(name),
            type=as_text(data.get("type")),
            keywords=as_text(first_value(data, "keywords", "MOTS CLÉS")),
            partners=split_names(first_value(data, "partners", "PARTENAIRES")),
            funders=split_names(first_value(data, "funders", "FINANCEURS")),
            period=as_text(first_value(data, "period", "PÉRIODE")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Publication:
    """A publication as returned by HAL or embedded in catalog stats."""

    title: str
    year: Optional[int] = None
    doc_type: Optional[str] = None
    journal: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict) -> "Publication":
        """Build from a HAL document (``title_s``...) or a plain dict (``title``...)."""
        if not isinstance(doc, dict):
            raise ValueError(f"Publication record must be an object, got {type(doc).__name__}")
        year = first_value(doc, "producedDateY_i", "year")
        try:
            year = int(year) if year is not None else None
        except (TypeError, ValueError):
            year = None
        return cls(
            title=as_text(first_value(doc, "title_s", "title")) or "Untitled Publication",
            year=year,
            doc_type=as_text(first_value(doc, "docType_s", "docType", "doc_type")),
            journal=as_text(first_value(doc, "journalTitle_s", "journal")),
            keywords=as_list(first_value(doc, "keyword_s", "keywords")),
            authors=as_list(first_value(doc, "authFullName_s", "authors")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PersonDetail:
    """Publications and collaborator frequencies for one person."""

    publications: List[Publication] = field(default_factory=list)
    collaborators: Dict[str, int] = field(default_factory=dict)
    keywords: Dict[str, int] = field(default_factory=dict)
    total_publications: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.publications and not self.collaborators

    @classmethod
    def from_stats(cls, payload: dict) -> "PersonDetail":
        """Parse a catalog researcher payload.

        The HAL block is preferred; DBLP is the fallback when HAL found nothing.
        """
        if not isinstance(payload, dict):
            raise ValueError("Researcher detail must be an object")
        stats = payload.get("stats")
        if not isinstance(stats, dict):
            raise ValueError("Researcher detail has no stats block")
        hal = section(stats, "hal")
        block = hal if hal.get("found") else section(stats, "dblp")
        pubs = [Publication.from_doc(d) for d in section_list(block, "recent_publications")]
        return cls(
            publications=pubs,
            collaborators=ranked(block.get("top_collaborators")),
            keywords=ranked(block.get("top_keywords")),
            total_publications=int(block.get("total_publications") or len(pubs)),
        )

    @classmethod
    def derive(
        cls,
        person_name: str,
        publications: List[Publication],
        max_collaborators: int = 10,
        max_publications: int = 5,
    ) -> "PersonDetail":
        """Derive co-author and keyword frequencies from raw search results.

        The person's own name never counts as a collaborator (case-insensitive).
        """
        own = person_name.strip().lower()
        keywords: Counter = Counter()
        co_authors: Counter = Counter()
        for pub in publications:
            keywords.update(pub.keywords)
            co_authors.update(a for a in pub.authors if a.strip().lower() != own)
        return cls(
            publications=list(publications[:max_publications]),
            collaborators=dict(co_authors.most_common(max_collaborators)),
            keywords=dict(keywords.most_common()),
            total_publications=len(publications),
        )


@dataclass
class ProjectDetail:
    """HAL statistics the catalog computes for one project."""

    publications: List[Publication] = field(default_factory=list)
    top_authors: Dict[str, int] = field(default_factory=dict)
    total_publications: int = 0

    @classmethod
    def from_payload(cls, payload: dict) -> "ProjectDetail":
        if not isinstance(payload, dict):
            raise ValueError("Project detail must be an object")
        hal = section(section(payload, "stats"), "hal")
        if not hal.get("found"):
            return cls()
        pubs = [Publication.from_doc(d) for d in section_list(hal, "recent_publications")]
        return cls(
            publications=pubs,
            top_authors=ranked(hal.get("top_authors")),
            total_publications=int(hal.get("total_publications") or len(pubs)),
        )
