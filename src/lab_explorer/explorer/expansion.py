"""
Expansion engine: decides what a clicked node produces.

One handler per ``NodeKind``. Handlers are pure: they read the fetch cache
and return an ``ExpansionResult`` describing children, links, derived cache
entries to write, and remote fetches still needed. Nothing here performs I/O;
``ExplorerSession`` runs the fetches, stores their results under the
requested cache keys and dispatches the node again.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from lab_explorer.explorer.nodes import Link, Node, NodeKind, slug, truncate_label
from lab_explorer.models.records import PersonDetail, Project, ProjectDetail, Researcher
from lab_explorer.tools.gateway import CatalogResearcher, ExternalCollaborator, Person
from lab_explorer.utils.cache import FetchCache, make_cache_key
from lab_explorer.utils.config import ExplorerSettings

logger = logging.getLogger(__name__)

# Cache keys for whole-lab collections
RESEARCHERS_KEY = "researchers"
RESEARCHERS_BY_CATEGORY_KEY = "researchers_by_category"
PROJECTS_KEY = "projects"
PROJECTS_BY_TYPE_KEY = "projects_by_type"

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_PROJECT_TYPE = "Other"


def person_detail_key(person_id: str) -> str:
    return make_cache_key("detail", person_id)


def project_detail_key(project_id: str) -> str:
    return make_cache_key("project_detail", project_id)


def facet_key(facet: str, scope: Optional[str]) -> str:
    """Cache key of a partner/funder map or HAL author ranking for a scope."""
    return make_cache_key(facet, scope if scope is not None else "all")


def project_type(project: Project) -> str:
    return project.type or DEFAULT_PROJECT_TYPE


def group_by_names(projects: List[Project], attribute: str) -> Dict[str, List[Project]]:
    """Map each partner (or funder) name to the projects listing it.

    Names are ordered by number of projects, most first; ties keep the order
    in which names first appear.
    """
    groups: Dict[str, List[Project]] = {}
    for project in projects:
        for name in getattr(project, attribute):
            groups.setdefault(name, []).append(project)
    ordered = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)
    return dict(ordered)


@dataclass
class FetchRequest:
    """A remote call the session must make before the node can be expanded.

    ``operation`` names a ``RemoteDataGateway`` coroutine; its result is
    stored under ``cache_key``. Background requests do not block the click.
    """

    operation: str
    cache_key: str
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    background: bool = False


@dataclass
class ExpansionResult:
    children: List[Node] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    cache_writes: Dict[str, Any] = field(default_factory=dict)
    fetches: List[FetchRequest] = field(default_factory=list)
    status: str = ""
    # True when the node depends on data still being fetched elsewhere
    pending: bool = False

    @property
    def blocking_fetches(self) -> List[FetchRequest]:
        return [f for f in self.fetches if not f.background]

    @property
    def background_fetches(self) -> List[FetchRequest]:
        return [f for f in self.fetches if f.background]


def _unique_ids(children: List[Node]) -> List[Node]:
    """Suffix ids that collide within one batch (names equal up to whitespace)."""
    seen: Set[str] = set()
    for child in children:
        base, n = child.id, 2
        while child.id in seen:
            child.id = f"{base}-{n}"
            n += 1
        seen.add(child.id)
    return children


def _with_children(parent: Node, children: List[Node], status: str, **kwargs) -> ExpansionResult:
    children = _unique_ids(children)
    links = [Link(parent.id, child.id) for child in children]
    return ExpansionResult(children=children, links=links, status=status, **kwargs)


def _needs(request: FetchRequest, status: str) -> ExpansionResult:
    return ExpansionResult(fetches=[request], status=status)


class ExpansionEngine:
    """Kind-keyed dispatch table of expansion rules."""

    def __init__(self, settings: Optional[ExplorerSettings] = None):
        self.settings = settings or ExplorerSettings()
        self._handlers: Dict[NodeKind, Callable[[Node, FetchCache], ExpansionResult]] = {
            NodeKind.ROOT: self._expand_root,
            NodeKind.RESEARCHERS_GROUP: self._expand_researchers_group,
            NodeKind.RESEARCHER_CATEGORY: self._expand_researcher_category,
            NodeKind.RESEARCHER: self._expand_researcher,
            NodeKind.RESEARCHER_PUBLICATIONS: self._expand_person_publications,
            NodeKind.RESEARCHER_COLLABORATORS: self._expand_person_collaborators,
            NodeKind.PUBLICATION: self._expand_publication,
            NodeKind.COLLABORATOR: self._expand_collaborator,
            NodeKind.PROJECTS_GROUP: self._expand_projects_group,
            NodeKind.PROJECT_TYPES: self._expand_project_types,
            NodeKind.PROJECT_CATEGORY: self._expand_project_category,
            NodeKind.PROJECT_LIST: self._expand_project_list,
            NodeKind.PARTNERS: self._expand_partners,
            NodeKind.FUNDERS: self._expand_funders,
            NodeKind.PARTNER: self._expand_name_item,
            NodeKind.FUNDER: self._expand_name_item,
            NodeKind.HAL_COLLABORATORS: self._expand_hal_collaborators,
            NodeKind.PROJECT: self._expand_project,
        }
        missing = set(NodeKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No expansion rule for: {sorted(k.value for k in missing)}")

    def expand(
        self,
        node: Node,
        cache: FetchCache,
        expanded: Optional[Set[str]] = None,
    ) -> ExpansionResult:
        """Compute what clicking ``node`` produces given the current cache."""
        if expanded and node.id in expanded:
            return ExpansionResult(status=f"{node.name} is already expanded.")
        result = self._handlers[node.kind](node, cache)
        logger.debug(
            f"expand {node.kind.value} {node.id}: {len(result.children)} children, "
            f"{len(result.fetches)} fetch(es)"
        )
        return result

    # ------------------------------------------------------------------
    # Lab root and researchers
    # ------------------------------------------------------------------

    def _expand_root(self, node: Node, cache: FetchCache) -> ExpansionResult:
        children = [
            Node.create("group-researchers", "Researchers", NodeKind.RESEARCHERS_GROUP, node.id),
            Node.create("group-projects", "Projects", NodeKind.PROJECTS_GROUP, node.id),
        ]
        return _with_children(node, children, f"Expanded {node.name}. Choose Researchers or Projects.")

    def _expand_researchers_group(self, node: Node, cache: FetchCache) -> ExpansionResult:
        researchers: Optional[List[Researcher]] = cache.get(RESEARCHERS_KEY)
        if researchers is None:
            return _needs(FetchRequest("list_researchers", RESEARCHERS_KEY), "Loading researchers...")

        by_category: Dict[str, List[Researcher]] = {}
        for researcher in researchers:
            by_category.setdefault(researcher.category or DEFAULT_CATEGORY, []).append(researcher)

        children = [
            Node.create(f"cat-{slug(cat)}", cat, NodeKind.RESEARCHER_CATEGORY, node.id, lookup_key=cat)
            for cat in by_category
        ]
        return _with_children(
            node, children, "Expanded Researchers. Click a category.",
            cache_writes={RESEARCHERS_BY_CATEGORY_KEY: by_category},
        )

    def _expand_researcher_category(self, node: Node, cache: FetchCache) -> ExpansionResult:
        by_category = cache.get(RESEARCHERS_BY_CATEGORY_KEY) or {}
        members: List[Researcher] = by_category.get(node.lookup_key, [])
        children = [
            Node.create(
                f"researcher-{r.id}", r.name, NodeKind.RESEARCHER, node.id,
                payload=r, lookup_key=r.id,
            )
            for r in members
        ]
        return _with_children(node, children, f"Showing researchers in {node.name}.")

    def _person_stubs(self, node: Node, detail_key: str, person: Person) -> List[Node]:
        """Publications/Collaborators pair; each carries the person to refetch."""
        return [
            Node.create(
                f"p-proj-{node.id}", "Publications", NodeKind.RESEARCHER_PUBLICATIONS,
                node.id, payload=person, lookup_key=detail_key,
            ),
            Node.create(
                f"p-collab-{node.id}", "Collaborators", NodeKind.RESEARCHER_COLLABORATORS,
                node.id, payload=person, lookup_key=detail_key,
            ),
        ]

    def _expand_researcher(self, node: Node, cache: FetchCache) -> ExpansionResult:
        key = person_detail_key(node.lookup_key or node.id)
        person = CatalogResearcher(person_id=node.lookup_key or node.id, name=node.name)
        children = self._person_stubs(node, key, person)
        if key in cache:
            return _with_children(node, children, f"Showing data for {node.name}.")

        prefetch = FetchRequest("fetch_person", key, args=(person,), background=True)
        return _with_children(
            node, children, f"Loading data for {node.name}...", fetches=[prefetch]
        )

    def _expand_collaborator(self, node: Node, cache: FetchCache) -> ExpansionResult:
        # Scoped to this node: the same name reached twice is searched twice
        key = person_detail_key(node.id)
        detail: Optional[PersonDetail] = cache.get(key)
        name = node.lookup_key or node.name
        person = ExternalCollaborator(person_id=node.id, name=name)
        if detail is None:
            return _needs(FetchRequest("fetch_person", key, args=(person,)), f"Loading data for {name}...")

        if detail.is_empty:
            return ExpansionResult(status=f"No publications found for {name}.")
        return _with_children(
            node, self._person_stubs(node, key, person),
            f"Loaded {detail.total_publications} publications for {name}.",
        )

    def _pending_detail(self, node: Node) -> ExpansionResult:
        """Stub clicked before its person's detail is cached.

        Asks again in the background, so a failed prefetch recovers on the
        next click; the session skips the request while one is in flight.
        """
        fetches = []
        if isinstance(node.payload, Person):
            fetches.append(
                FetchRequest("fetch_person", node.lookup_key, args=(node.payload,), background=True)
            )
        return ExpansionResult(
            status="Please wait, data is loading. Click again in a moment.",
            fetches=fetches,
            pending=True,
        )

    def _expand_person_publications(self, node: Node, cache: FetchCache) -> ExpansionResult:
        detail: Optional[PersonDetail] = cache.get(node.lookup_key)
        if detail is None:
            return self._pending_detail(node)
        if not detail.publications:
            return ExpansionResult(status="No publications found.")

        publications = detail.publications[: self.settings.max_publications]
        children = [
            Node.create(
                f"pub-{node.parent_id}-{idx}", truncate_label(pub.title), NodeKind.PUBLICATION,
                node.id, payload=pub,
            )
            for idx, pub in enumerate(publications)
        ]
        return _with_children(node, children, f"Showing {len(children)} recent publications.")

    def _expand_person_collaborators(self, node: Node, cache: FetchCache) -> ExpansionResult:
        detail: Optional[PersonDetail] = cache.get(node.lookup_key)
        if detail is None:
            return self._pending_detail(node)
        if not detail.collaborators:
            return ExpansionResult(status="No collaborators found.")

        top = list(detail.collaborators.items())[: self.settings.max_collaborators]
        children = [
            Node.create(
                f"collab-{node.parent_id}-{slug(name)}", name, NodeKind.COLLABORATOR,
                node.id, payload={"name": name, "count": count}, lookup_key=name,
            )
            for name, count in top
        ]
        return _with_children(node, children, "Expanded Collaborators.")

    def _expand_publication(self, node: Node, cache: FetchCache) -> ExpansionResult:
        authors = list(dict.fromkeys(getattr(node.payload, "authors", None) or []))
        if not authors:
            return ExpansionResult(status="No authors found for this publication.")
        children = [
            Node.create(
                f"author-{node.id}-{slug(author)}", author, NodeKind.COLLABORATOR,
                node.id, lookup_key=author,
            )
            for author in authors
        ]
        return _with_children(node, children, f"Showing {len(children)} authors.")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _scoped_projects(self, cache: FetchCache, scope: Optional[str]) -> Optional[List[Project]]:
        """Projects of a type (or all of them); None until the list is fetched."""
        projects: Optional[List[Project]] = cache.get(PROJECTS_KEY)
        if projects is None or scope is None:
            return projects
        return [p for p in projects if project_type(p) == scope]

    def _facets(self, node: Node, scope: Optional[str]) -> List[Node]:
        suffix = "" if scope is None else f"-{slug(scope)}"
        facets = [
            Node.create(f"facet-halcollab{suffix}", "Collaborators (HAL)", NodeKind.HAL_COLLABORATORS,
                        node.id, lookup_key=scope),
            Node.create(f"facet-partners{suffix}", "Partners", NodeKind.PARTNERS, node.id, lookup_key=scope),
            Node.create(f"facet-funders{suffix}", "Funders", NodeKind.FUNDERS, node.id, lookup_key=scope),
        ]
        if scope is None:
            facets.append(Node.create("facet-types", "By category", NodeKind.PROJECT_TYPES, node.id))
        else:
            facets.append(Node.create(f"facet-projects{suffix}", "Projects", NodeKind.PROJECT_LIST,
                                      node.id, lookup_key=scope))
        return facets

    def _name_map(self, projects: List[Project], attribute: str, scope: Optional[str]) -> Dict[str, List[Project]]:
        groups = group_by_names(projects, attribute)
        if scope is None:
            groups = dict(list(groups.items())[: self.settings.facet_cap])
        return groups

    def _expand_projects_group(self, node: Node, cache: FetchCache) -> ExpansionResult:
        return _with_children(node, self._facets(node, None), "Expanded Projects. Choose a facet.")

    def _expand_project_types(self, node: Node, cache: FetchCache) -> ExpansionResult:
        projects = self._scoped_projects(cache, None)
        if projects is None:
            return _needs(FetchRequest("list_projects", PROJECTS_KEY), "Loading projects...")

        by_type: Dict[str, List[Project]] = {}
        for project in projects:
            by_type.setdefault(project_type(project), []).append(project)

        children = [
            Node.create(f"proj-type-{slug(t)}", t, NodeKind.PROJECT_CATEGORY, node.id, lookup_key=t)
            for t in by_type
        ]
        return _with_children(
            node, children, "Expanded project categories. Choose one.",
            cache_writes={PROJECTS_BY_TYPE_KEY: by_type},
        )

    def _expand_project_category(self, node: Node, cache: FetchCache) -> ExpansionResult:
        scope = node.lookup_key
        subset = self._scoped_projects(cache, scope)
        if subset is None:
            return _needs(FetchRequest("list_projects", PROJECTS_KEY), "Loading projects...")

        writes = {
            facet_key("partners", scope): self._name_map(subset, "partners", scope),
            facet_key("funders", scope): self._name_map(subset, "funders", scope),
        }
        return _with_children(
            node, self._facets(node, scope), f"Showing {node.name} ({len(subset)} projects).",
            cache_writes=writes,
        )

    def _project_nodes(self, node: Node, projects: List[Project]) -> List[Node]:
        return [
            Node.create(
                f"proj-{node.id}-{slug(p.id)}", p.name, NodeKind.PROJECT, node.id,
                payload=p, lookup_key=p.id,
            )
            for p in projects
        ]

    def _expand_project_list(self, node: Node, cache: FetchCache) -> ExpansionResult:
        subset = self._scoped_projects(cache, node.lookup_key)
        if subset is None:
            return _needs(FetchRequest("list_projects", PROJECTS_KEY), "Loading projects...")
        return _with_children(node, self._project_nodes(node, subset), f"Showing {len(subset)} projects.")

    def _expand_name_group(self, node: Node, cache: FetchCache, attribute: str) -> ExpansionResult:
        scope = node.lookup_key
        subset = self._scoped_projects(cache, scope)
        if subset is None:
            return _needs(FetchRequest("list_projects", PROJECTS_KEY), "Loading projects...")

        key = facet_key(attribute, scope)
        groups = self._name_map(subset, attribute, scope)
        item_kind = NodeKind.PARTNER if attribute == "partners" else NodeKind.FUNDER
        children = [
            Node.create(
                f"{item_kind.value}-{slug(scope or 'all')}-{slug(name)}", name, item_kind, node.id,
                payload={"name": name, "projects": len(projects)}, lookup_key=key,
            )
            for name, projects in groups.items()
        ]
        status = f"Showing {len(children)} {attribute}." if children else f"No {attribute} listed."
        return _with_children(node, children, status, cache_writes={key: groups})

    def _expand_partners(self, node: Node, cache: FetchCache) -> ExpansionResult:
        return self._expand_name_group(node, cache, "partners")

    def _expand_funders(self, node: Node, cache: FetchCache) -> ExpansionResult:
        return self._expand_name_group(node, cache, "funders")

    def _expand_name_item(self, node: Node, cache: FetchCache) -> ExpansionResult:
        groups = cache.get(node.lookup_key) or {}
        name = (node.payload or {}).get("name", node.name)
        projects = groups.get(name, [])
        return _with_children(node, self._project_nodes(node, projects), f"Projects with {name}.")

    def _expand_hal_collaborators(self, node: Node, cache: FetchCache) -> ExpansionResult:
        scope = node.lookup_key
        key = facet_key("hal_authors", scope)
        ranking = cache.get(key)
        if ranking is None:
            if scope is None:
                request = FetchRequest(
                    "facet_authors", key,
                    kwargs={"struct_id": self.settings.hal_struct_id, "limit": self.settings.facet_cap},
                )
                return _needs(request, "Querying HAL for lab collaborators...")

            subset = self._scoped_projects(cache, scope)
            if subset is None:
                return _needs(FetchRequest("list_projects", PROJECTS_KEY), "Loading projects...")
            if not subset:
                return ExpansionResult(status=f"No projects in {scope}.")
            request = FetchRequest(
                "facet_authors", key,
                kwargs={"phrases": [p.name for p in subset], "limit": self.settings.facet_cap},
            )
            return _needs(request, f"Querying HAL for {scope} collaborators...")

        top = list(ranking)[: self.settings.facet_cap]
        children = [
            Node.create(
                f"halauthor-{node.id}-{slug(name)}", name, NodeKind.COLLABORATOR, node.id,
                payload={"name": name, "count": count}, lookup_key=name,
            )
            for name, count in top
        ]
        status = f"Showing top {len(children)} HAL collaborators." if children else "No HAL collaborators found."
        return _with_children(node, children, status)

    def _expand_project(self, node: Node, cache: FetchCache) -> ExpansionResult:
        key = project_detail_key(node.lookup_key or node.id)
        detail: Optional[ProjectDetail] = cache.get(key)
        if detail is None:
            request = FetchRequest("get_project_detail", key, args=(node.lookup_key or node.id,))
            return _needs(request, f"Loading publications for {node.name}...")
        if not detail.publications:
            return ExpansionResult(status=f"No publications found for {node.name}.")

        publications = detail.publications[: self.settings.max_publications]
        children = [
            Node.create(
                f"pub-{node.id}-{idx}", truncate_label(pub.title), NodeKind.PUBLICATION,
                node.id, payload=pub,
            )
            for idx, pub in enumerate(publications)
        ]
        return _with_children(node, children, f"Showing {len(children)} publications for {node.name}.")
