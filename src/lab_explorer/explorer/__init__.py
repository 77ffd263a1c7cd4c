"""Lab Explorer - click-driven incremental expansion of the lab knowledge graph."""

from lab_explorer.explorer.nodes import Link, Node, NodeKind
from lab_explorer.explorer.store import GraphStore
from lab_explorer.explorer.expansion import ExpansionEngine, ExpansionResult, FetchRequest
from lab_explorer.explorer.collapse import CollapseEngine
from lab_explorer.explorer.session import ClickOutcome, ExplorerSession
from lab_explorer.explorer.renderer import ExplorerRenderer

__all__ = [
    "Link",
    "Node",
    "NodeKind",
    "GraphStore",
    "ExpansionEngine",
    "ExpansionResult",
    "FetchRequest",
    "CollapseEngine",
    "ClickOutcome",
    "ExplorerSession",
    "ExplorerRenderer",
]
