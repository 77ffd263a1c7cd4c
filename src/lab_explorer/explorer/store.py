"""
Graph store: the authoritative node/link collection.

Append-and-dedup only; nodes disappear solely through ``prune`` (driven by
the collapse engine). Link endpoints are compared by id whatever form they
arrive in: a raw id, a dict with an ``id`` key (D3 replaces endpoint ids with
node objects once it has simulated them), or an object with an ``id``
attribute.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from lab_explorer.explorer.nodes import Link, Node

logger = logging.getLogger(__name__)


def endpoint_id(endpoint: Any) -> str:
    """Normalize a link endpoint to its node id."""
    if isinstance(endpoint, dict):
        return str(endpoint["id"])
    if hasattr(endpoint, "id"):
        return str(endpoint.id)
    return str(endpoint)


def link_key(link: Any) -> Tuple[str, str]:
    """``(source_id, target_id)`` for a Link, a D3 link dict, or a 2-tuple."""
    if isinstance(link, dict):
        return endpoint_id(link["source"]), endpoint_id(link["target"])
    if isinstance(link, tuple):
        return endpoint_id(link[0]), endpoint_id(link[1])
    return endpoint_id(link.source), endpoint_id(link.target)


class GraphStore:
    """Holds the current graph snapshot."""

    def __init__(self, nodes: Optional[Iterable[Node]] = None):
        self._nodes: Dict[str, Node] = {}
        self._links: Dict[Tuple[str, str], Link] = {}
        if nodes:
            self.merge(list(nodes), [])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def links(self) -> List[Link]:
        return list(self._links.values())

    def has_link(self, source: Any, target: Any) -> bool:
        return (endpoint_id(source), endpoint_id(target)) in self._links

    def children_of(self, node_id: str) -> List[Node]:
        return [self._nodes[t] for (s, t) in self._links if s == node_id and t in self._nodes]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def merge(self, new_nodes: List[Node], new_links: List[Any]) -> Tuple[List[Node], List[Link]]:
        """Add nodes and links that are not already present.

        Nodes whose id exists are dropped, as are links whose
        ``(source, target)`` pair exists or whose endpoints are unknown.

        Returns:
            The nodes and links actually added
        """
        added_nodes: List[Node] = []
        for node in new_nodes:
            if node.id in self._nodes:
                continue
            self._nodes[node.id] = node
            added_nodes.append(node)

        added_links: List[Link] = []
        for raw in new_links:
            key = link_key(raw)
            if key in self._links:
                continue
            source, target = key
            if source not in self._nodes or target not in self._nodes:
                logger.debug(f"Dropping dangling link {source} -> {target}")
                continue
            link = Link(source, target)
            self._links[key] = link
            added_links.append(link)

        dropped = len(new_nodes) - len(added_nodes)
        if dropped:
            logger.debug(f"Merge skipped {dropped} duplicate node(s)")
        return added_nodes, added_links

    def prune(self, node_ids: Set[str]) -> int:
        """Remove nodes and every link touching them. Returns nodes removed."""
        removed = 0
        for node_id in node_ids:
            if self._nodes.pop(node_id, None) is not None:
                removed += 1
        self._links = {
            key: link
            for key, link in self._links.items()
            if key[0] not in node_ids and key[1] not in node_ids
        }
        return removed

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """D3-compatible snapshot: ``{"nodes": [...], "links": [...]}``."""
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "links": [l.to_dict() for l in self._links.values()],
        }
