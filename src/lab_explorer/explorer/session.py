"""
Explorer session: the click state machine.

Owns the per-session state (graph store, fetch cache, expanded and pending
sets) and drives the expansion and collapse engines. Remote failures are
caught here, at the node boundary, and only ever surface as a status line.

A node is marked expanded only once its children are merged. While its
fetches are outstanding it sits in ``pending``: further clicks on it are
ignored, and a failure leaves it unexpanded so the next click retries.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from lab_explorer.explorer.collapse import CollapseEngine
from lab_explorer.explorer.expansion import ExpansionEngine, ExpansionResult, FetchRequest
from lab_explorer.explorer.nodes import Link, Node, root_node
from lab_explorer.explorer.store import GraphStore
from lab_explorer.tools.gateway import GatewayError
from lab_explorer.utils.cache import FetchCache
from lab_explorer.utils.config import ExplorerSettings
from lab_explorer.utils.observability import log_prefix, new_click_id

logger = logging.getLogger(__name__)


@dataclass
class ClickOutcome:
    """What a click did.

    ``action`` is one of: expanded, empty, collapsed, pending, failed,
    ignored, discarded.
    """

    node_id: str
    action: str
    status: str = ""
    added_nodes: List[Node] = field(default_factory=list)
    added_links: List[Link] = field(default_factory=list)
    removed: Set[str] = field(default_factory=set)


class ExplorerSession:
    """
    One user's exploration of the lab graph.

    Example:
        session = ExplorerSession(RemoteDataGateway.from_settings(settings), settings)
        await session.click("root")
        await session.click("group-projects")
        snapshot = session.snapshot()
    """

    # Fetch/redispatch rounds allowed per click (a category HAL facet needs two)
    MAX_DISPATCH_ROUNDS = 4

    def __init__(
        self,
        gateway: Any,
        settings: Optional[ExplorerSettings] = None,
        cache: Optional[FetchCache] = None,
        engine: Optional[ExpansionEngine] = None,
    ):
        self.gateway = gateway
        self.settings = settings or ExplorerSettings()
        self.cache = cache if cache is not None else FetchCache()
        self.engine = engine or ExpansionEngine(self.settings)
        self.store = GraphStore([root_node(self.settings.root_label)])
        self.collapser = CollapseEngine(self.store)
        self.expanded: Set[str] = set()
        self.pending: Set[str] = set()
        self.status = f"Click on the {self.settings.root_label} node to start."

        self._background: Set[asyncio.Task] = set()
        self._inflight_keys: Set[str] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def click(self, node_id: str) -> ClickOutcome:
        """Toggle a node: collapse it if expanded, expand it otherwise."""
        new_click_id()
        node = self.store.get(node_id)
        if node is None:
            return self._outcome(node_id, "ignored", f"Unknown node {node_id}.")
        if node_id in self.pending:
            return self._outcome(node_id, "ignored", f"Still loading {node.name}...")
        if node_id in self.expanded:
            return self.collapse(node_id)
        return await self._expand(node)

    def collapse(self, node_id: str) -> ClickOutcome:
        """Remove everything below ``node_id``; the node itself stays."""
        removed = self.collapser.remove_node_and_descendants(node_id, self.expanded)
        # Late responses for removed nodes must not merge back in
        self.pending.difference_update(removed | {node_id})
        node = self.store.get(node_id)
        name = node.name if node else node_id
        return self._outcome(node_id, "collapsed", f"Collapsed {name}.", removed=removed)

    async def wait_idle(self):
        """Wait for background prefetches (researcher details) to settle."""
        while self._background:
            await asyncio.gather(*list(self._background))

    def snapshot(self) -> dict:
        """Current graph for the rendering surface."""
        return self.store.to_dict()

    async def close(self):
        await self.wait_idle()
        close = getattr(self.gateway, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    async def _expand(self, node: Node) -> ClickOutcome:
        self.pending.add(node.id)
        try:
            result = await self._resolve(node)
        except GatewayError as e:
            self.pending.discard(node.id)
            logger.warning(f"{log_prefix()}Expansion of {node.id} failed: {e}")
            return self._outcome(node.id, "failed", f"Error loading data for {node.name}.")

        if node.id not in self.pending or node.id not in self.store:
            # Collapsed away while the fetch was in flight; cache is kept
            return self._outcome(node.id, "discarded", f"Discarded late data for {node.name}.")
        self.pending.discard(node.id)

        if result.pending:
            for request in result.background_fetches:
                self._schedule(request, node)
            return self._outcome(node.id, "pending", result.status)

        for key, value in result.cache_writes.items():
            self.cache.put(key, value)
        added_nodes, added_links = self.store.merge(result.children, result.links)
        for request in result.background_fetches:
            self._schedule(request, node)

        if not result.children:
            return self._outcome(node.id, "empty", result.status)

        self.expanded.add(node.id)
        return self._outcome(
            node.id, "expanded", result.status,
            added_nodes=added_nodes, added_links=added_links,
        )

    async def _resolve(self, node: Node) -> ExpansionResult:
        """Dispatch the node, running blocking fetches until it needs none."""
        for _ in range(self.MAX_DISPATCH_ROUNDS):
            result = self.engine.expand(node, self.cache, self.expanded)
            blocking = result.blocking_fetches
            if not blocking:
                return result
            self._set_status(result.status)
            for request in blocking:
                value = await self._execute(request)
                self.cache.put(request.cache_key, value)
        raise GatewayError("expand", f"{node.id} still needs data after {self.MAX_DISPATCH_ROUNDS} rounds")

    async def _execute(self, request: FetchRequest) -> Any:
        method = getattr(self.gateway, request.operation)
        logger.debug(f"{log_prefix()}fetch {request.operation} -> {request.cache_key}")
        return await method(*request.args, **request.kwargs)

    def _schedule(self, request: FetchRequest, node: Node):
        if request.cache_key in self.cache or request.cache_key in self._inflight_keys:
            return
        self._inflight_keys.add(request.cache_key)
        # Label status lines with the person when the request carries one
        label = getattr(request.args[0], "name", node.name) if request.args else node.name
        task = asyncio.create_task(self._prefetch(request, label))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _prefetch(self, request: FetchRequest, label: str):
        try:
            value = await self._execute(request)
        except GatewayError as e:
            logger.warning(f"{log_prefix()}Prefetch for {label} failed: {e}")
            self._set_status(f"Error loading details for {label}.")
            return
        finally:
            self._inflight_keys.discard(request.cache_key)
        self.cache.put(request.cache_key, value)
        self._set_status(f"Loaded data for {label}. Click sub-nodes to see details.")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _set_status(self, status: str):
        if status:
            self.status = status
            logger.info(f"{log_prefix()}{status}")

    def _outcome(self, node_id: str, action: str, status: str, **kwargs) -> ClickOutcome:
        self._set_status(status)
        return ClickOutcome(node_id=node_id, action=action, status=status, **kwargs)
