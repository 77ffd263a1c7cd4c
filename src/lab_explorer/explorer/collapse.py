"""Subtree removal for collapsed nodes."""

import logging
from typing import Set

from lab_explorer.explorer.store import GraphStore

logger = logging.getLogger(__name__)


class CollapseEngine:
    """Removes everything reachable below a node, keeping the node itself."""

    def __init__(self, store: GraphStore):
        self.store = store

    def descendants_closure(self, node_id: str) -> Set[str]:
        """Forward-reachability closure from ``node_id``, the node included.

        Repeats a pass over the links until nothing new is added; the graph
        is a forest, so the number of passes is bounded by its depth.
        """
        closure = {node_id}
        changed = True
        while changed:
            changed = False
            for link in self.store.links:
                if link.source in closure and link.target not in closure:
                    closure.add(link.target)
                    changed = True
        return closure

    def remove_node_and_descendants(self, node_id: str, expanded: Set[str]) -> Set[str]:
        """Prune the subtree under ``node_id``.

        Every id of the closure, ``node_id`` included, leaves ``expanded`` so
        that re-expanding any of them later regenerates children from scratch.

        Returns:
            Ids of the removed descendants
        """
        closure = self.descendants_closure(node_id)
        to_remove = closure - {node_id}
        self.store.prune(to_remove)
        expanded.difference_update(closure)
        logger.debug(f"Collapsed {node_id}: removed {len(to_remove)} descendant(s)")
        return to_remove
