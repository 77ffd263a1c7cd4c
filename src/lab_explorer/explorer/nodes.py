"""
Node and link types for the exploration graph.

Nodes serialize to the D3 shape the renderer expects
(``id``, ``type``, ``label``, ``size``, ``color``, ``metadata``).
"""

import re
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Optional


class NodeKind(str, Enum):
    """Role of a node; decides which expansion rule applies."""

    ROOT = "root"
    RESEARCHERS_GROUP = "researchers_group"
    RESEARCHER_CATEGORY = "researcher_category"
    RESEARCHER = "researcher"
    RESEARCHER_PUBLICATIONS = "researcher_publications"
    RESEARCHER_COLLABORATORS = "researcher_collaborators"
    PUBLICATION = "publication"
    COLLABORATOR = "collaborator"
    PROJECTS_GROUP = "projects_group"
    PROJECT_TYPES = "project_types"
    PROJECT_CATEGORY = "project_category"
    PROJECT_LIST = "project_list"
    PARTNERS = "partners"
    FUNDERS = "funders"
    PARTNER = "partner"
    FUNDER = "funder"
    HAL_COLLABORATORS = "hal_collaborators"
    PROJECT = "project"


# (visual weight, color token) per kind
NODE_STYLES = {
    NodeKind.ROOT:                     (20, "#ef4444"),  # red
    NodeKind.RESEARCHERS_GROUP:        (15, "#3b82f6"),  # blue
    NodeKind.RESEARCHER_CATEGORY:      (12, "#8b5cf6"),  # violet
    NodeKind.RESEARCHER:               (8,  "#60a5fa"),  # light blue
    NodeKind.RESEARCHER_PUBLICATIONS:  (6,  "#f59e0b"),  # amber
    NodeKind.RESEARCHER_COLLABORATORS: (6,  "#ec4899"),  # pink
    NodeKind.PUBLICATION:              (4,  "#fcd34d"),
    NodeKind.COLLABORATOR:             (4,  "#f9a8d4"),
    NodeKind.PROJECTS_GROUP:           (15, "#10b981"),  # emerald
    NodeKind.PROJECT_TYPES:            (10, "#10b981"),
    NodeKind.PROJECT_CATEGORY:         (10, "#059669"),
    NodeKind.PROJECT_LIST:             (8,  "#10b981"),
    NodeKind.PARTNERS:                 (8,  "#14b8a6"),  # teal
    NodeKind.FUNDERS:                  (8,  "#eab308"),  # gold
    NodeKind.PARTNER:                  (5,  "#5eead4"),
    NodeKind.FUNDER:                   (5,  "#fde047"),
    NodeKind.HAL_COLLABORATORS:        (8,  "#f472b6"),
    NodeKind.PROJECT:                  (6,  "#34d399"),
}

_LABEL_LIMIT = 35
_SLUG_RE = re.compile(r"\s+")


def slug(text: str) -> str:
    """Whitespace-free fragment for building node ids from names."""
    return _SLUG_RE.sub("_", str(text).strip())


def truncate_label(text: str, limit: int = _LABEL_LIMIT) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


@dataclass
class Node:
    """A graph node.

    ``lookup_key`` names the scope this node reads when expanded (a category,
    a researcher id, a detail cache key...). ``payload`` carries the domain
    record the node stands for, when there is one.
    """

    id: str
    name: str
    kind: NodeKind
    weight: float = 4
    color: str = "#666"
    parent_id: Optional[str] = None
    payload: Any = None
    lookup_key: Optional[str] = None

    @classmethod
    def create(
        cls,
        node_id: str,
        name: str,
        kind: NodeKind,
        parent_id: Optional[str] = None,
        payload: Any = None,
        lookup_key: Optional[str] = None,
    ) -> "Node":
        """Create a node styled for its kind."""
        weight, color = NODE_STYLES[kind]
        return cls(
            id=node_id,
            name=name,
            kind=kind,
            weight=weight,
            color=color,
            parent_id=parent_id,
            payload=payload,
            lookup_key=lookup_key,
        )

    def to_dict(self) -> dict:
        """D3-compatible node dict."""
        payload = self.payload
        if is_dataclass(payload) and not isinstance(payload, type):
            payload = asdict(payload)
        return {
            "id": self.id,
            "type": self.kind.value,
            "label": self.name,
            "size": self.weight,
            "color": self.color,
            "metadata": {
                "parent_id": self.parent_id,
                "lookup_key": self.lookup_key,
                "payload": payload,
            },
        }


@dataclass(frozen=True)
class Link:
    """Parent → child edge."""

    source: str
    target: str

    def to_dict(self) -> dict:
        return {"source": self.source, "target": self.target}


def root_node(label: str = "LISTIC") -> Node:
    return Node.create("root", label, NodeKind.ROOT)
