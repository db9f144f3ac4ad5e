import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

from api_client import ApiClient
from config import settings
from manifest_cache import ManifestCache
from models import Breadcrumb, MenuId, MenuItem, NavigationStatus, ResolvedNode, Viewer
from resolver import RouteResolver
from roles_utils import can_access, normalize_roles

logger = logging.getLogger(__name__)

# Backend field names accepted for each canonical MenuItem field, in priority order
FIELD_ALIASES = {
    "id": ("id", "menu_id"),
    "title": ("title", "menu_title", "name"),
    "path": ("path", "menu_path"),
    "icon": ("icon", "menu_icon"),
    "parent_id": ("parent_id", "parentId", "menu_parent_id"),
    "order": ("order", "menu_order", "sort_order"),
    "roles": ("roles", "menu_roles", "role"),
    "is_active": ("is_active", "isActive"),
    "component": ("component", "menu_component"),
}

MANIFEST_WRAPPERS = ("menu", "data")

HOME_LABEL = "Home"


def _pick(raw: Dict[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_active(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no")
    return bool(value)


def unwrap_manifest(data: Any) -> List[Any]:
    """Dig through ``menu`` / ``data`` wrappers until a list is found."""
    while not isinstance(data, list):
        if not isinstance(data, dict):
            return []
        for wrapper in MANIFEST_WRAPPERS:
            if data.get(wrapper) is not None:
                data = data[wrapper]
                break
        else:
            return []
    return data


def normalize_manifest(data: Any) -> List[MenuItem]:
    """Map a raw backend payload onto the canonical flat MenuItem list."""
    items: List[MenuItem] = []
    seen = set()
    _flatten_entries(unwrap_manifest(data), None, items, seen)
    return items


def _flatten_entries(entries: List[Any], container_id: Optional[MenuId], items: List[MenuItem], seen: set) -> None:
    for raw in entries:
        if not isinstance(raw, dict):
            logger.warning(f"Skipping menu entry that is not an object: {raw!r}")
            continue

        item = _to_menu_item(raw, container_id)
        if item is None:
            continue
        if item.id in seen:
            # Nested children of a duplicate still attach to the first occurrence
            logger.warning(f"Duplicate menu id {item.id!r}, keeping the first occurrence")
        else:
            seen.add(item.id)
            items.append(item)

        # Nested manifests are flattened; children default to their container as parent
        children = raw.get("children")
        if isinstance(children, list) and children:
            _flatten_entries(children, item.id, items, seen)


def _to_menu_item(raw: Dict[str, Any], container_id: Optional[MenuId]) -> Optional[MenuItem]:
    item_id = _pick(raw, "id")
    if item_id is None:
        logger.warning(f"Skipping menu entry without an id: {raw!r}")
        return None

    # Falsy parent ids (0, "") mean a root item
    parent_id = _pick(raw, "parent_id") or container_id or None
    path = _pick(raw, "path")
    component = _pick(raw, "component")
    icon = _pick(raw, "icon")
    try:
        return MenuItem(
            id=item_id,
            title=str(_pick(raw, "title") or ""),
            path=str(path) if path is not None else None,
            icon=str(icon) if icon is not None else None,
            parent_id=parent_id,
            order=_to_int(_pick(raw, "order")),
            roles=normalize_roles(_pick(raw, "roles")),
            is_active=_to_active(_pick(raw, "is_active")),
            component=str(component) if component is not None else None,
        )
    except Exception as e:
        logger.warning(f"Skipping malformed menu entry {item_id!r}: {e}")
        return None


class MenuService:
    """Pure transformations from the flat manifest to the viewer's tree"""

    @staticmethod
    def build_hierarchy(items: List[MenuItem], max_depth: int = None) -> List[MenuItem]:
        """Build the parent/child forest from a flat item list.

        Nodes live in an arena keyed by id with child ids kept per node, and
        the tree is materialized from the roots afterwards, so the input list
        is never mutated. Items whose parent is unknown become roots. Siblings
        are sorted by ``order`` with a stable sort. Items caught in a parent
        cycle cannot be reached from any root and are left out.
        """
        if max_depth is None:
            max_depth = settings.MENU_MAX_DEPTH

        arena: Dict[MenuId, MenuItem] = {}
        for item in items:
            if item.id in arena:
                logger.warning(f"Duplicate menu id {item.id!r} ignored while building hierarchy")
                continue
            arena[item.id] = item

        # Parent ids may arrive as strings for numeric ids and vice versa
        by_text = {str(item_id): item_id for item_id in arena}
        child_ids: Dict[MenuId, List[MenuId]] = {item_id: [] for item_id in arena}
        root_ids: List[MenuId] = []

        for item_id, item in arena.items():
            parent_key = None
            if item.parent_id is not None:
                parent_key = item.parent_id if item.parent_id in arena else by_text.get(str(item.parent_id))
            if parent_key is not None and parent_key != item_id:
                child_ids[parent_key].append(item_id)
            else:
                root_ids.append(item_id)

        def by_order(ids: List[MenuId]) -> List[MenuId]:
            return sorted(ids, key=lambda i: arena[i].order)

        placed = set()

        def materialize(item_id: MenuId, depth: int) -> MenuItem:
            placed.add(item_id)
            children = []
            if depth < max_depth:
                children = [materialize(child_id, depth + 1) for child_id in by_order(child_ids[item_id])]
            elif child_ids[item_id]:
                logger.warning(f"Menu depth limit {max_depth} reached at item {item_id!r}")
            return arena[item_id].model_copy(update={"children": children})

        roots = [materialize(item_id, 1) for item_id in by_order(root_ids)]

        unplaced = [item_id for item_id in arena if item_id not in placed]
        if unplaced:
            logger.warning(f"Menu items unreachable from any root (cyclic parents?): {unplaced}")
        return roots

    @staticmethod
    def filter_by_roles(tree: List[MenuItem], viewer_roles: List[str]) -> List[MenuItem]:
        """Keep nodes that are public or share a role with the viewer, recursively."""
        viewer_roles = viewer_roles or []
        return [
            item.model_copy(
                update={"children": MenuService.filter_by_roles(item.children, viewer_roles)}
            )
            for item in tree
            if can_access(viewer_roles, item.roles)
        ]

    @staticmethod
    def prune_unnavigable(tree: List[MenuItem]) -> List[MenuItem]:
        """Drop inactive or path-less items together with their subtrees."""
        return [
            item.model_copy(update={"children": MenuService.prune_unnavigable(item.children)})
            for item in tree
            if item.is_active and item.path
        ]

    @staticmethod
    def find_item(tree: List[MenuItem], hint: str) -> Optional[MenuItem]:
        """Depth-first search for a node by path or component hint."""
        for item in tree:
            if hint in (item.path, item.component):
                return item
            found = MenuService.find_item(item.children, hint)
            if found is not None:
                return found
        return None

    @staticmethod
    def breadcrumbs(path: str, tree: List[MenuItem]) -> List[Breadcrumb]:
        """Trail from Home to ``path``, one crumb per path segment.

        Labels come from the menu item at that prefix when the viewer's tree
        has one, otherwise from the segment in Title Case. The home page
        itself gets no trail.
        """
        segments = [segment for segment in (path or "").split("/") if segment]
        if not segments:
            return []

        crumbs = [Breadcrumb(label=HOME_LABEL, path="/", icon="Home")]
        current = ""
        for index, segment in enumerate(segments):
            current += f"/{segment}"
            item = MenuService.find_item(tree, current)
            if item is not None and item.title:
                label = item.title
            else:
                label = " ".join(word[:1].upper() + word[1:] for word in segment.split("-"))
            crumbs.append(
                Breadcrumb(
                    label=label,
                    path=current,
                    icon=item.icon if item is not None else None,
                    is_last=index == len(segments) - 1,
                )
            )
        return crumbs


class ManifestFetcher:
    """Fetches the menu manifest, preferring a fresh cache entry.

    Never raises: a failed fetch falls back to the last cached payload, even
    an expired one, and finally to an empty list. Cache entries are kept per
    viewer credential, which is also forwarded to the upstream.
    """

    def __init__(self, client: ApiClient, cache: ManifestCache, path: str = None):
        self.client = client
        self.cache = cache
        self.path = path or settings.MENU_API_PATH
        self._lock = asyncio.Lock()
        self._generations: Dict[str, int] = {}
        self.in_flight = 0

    @property
    def loading(self) -> bool:
        return self.in_flight > 0

    async def fetch_menu(self, force_refresh: bool = False, credential: Optional[str] = None) -> List[MenuItem]:
        if not force_refresh:
            cached = await self.cache.read(scope=credential)
            if cached is not None:
                return cached

        async with self._lock:
            # Another caller may have filled the cache while we waited
            if not force_refresh:
                cached = await self.cache.read(scope=credential)
                if cached is not None:
                    return cached

            generation = self._generations.get(credential or "", 0)
            self.in_flight += 1
            try:
                data = await self.client.get_json(self.path, credential=credential)
                items = normalize_manifest(data)
            except Exception as e:
                logger.error(f"Failed to fetch menu: {e}")
                stale = await self.cache.read(ignore_expiry=True, scope=credential)
                if stale is not None:
                    logger.warning("Serving stale menu from cache")
                    return stale
                return []
            finally:
                self.in_flight -= 1

            if generation != self._generations.get(credential or "", 0):
                logger.info("Menu cache invalidated during fetch, result not cached")
                return items

            await self.cache.write(items, scope=credential)
            logger.info(f"Fetched menu manifest with {len(items)} items")
            return items

    async def invalidate(self, credential: Optional[str] = None) -> None:
        """Clear the credential's entry; fetches already in flight will not re-cache it."""
        key = credential or ""
        self._generations[key] = self._generations.get(key, 0) + 1
        await self.cache.clear(scope=credential)


class NavigationEngine:
    """Runs fetch -> hierarchy -> role filter and hands out per-node resolution."""

    def __init__(self, fetcher: ManifestFetcher, resolver: RouteResolver, max_depth: int = None):
        self.fetcher = fetcher
        self.resolver = resolver
        self.max_depth = settings.MENU_MAX_DEPTH if max_depth is None else max_depth
        self.viewer = Viewer()
        self.tree: List[MenuItem] = []
        self.loading = False
        self._generation = 0

    def build_tree(self, items: List[MenuItem], viewer_roles: List[str]) -> List[MenuItem]:
        hierarchy = MenuService.build_hierarchy(items, self.max_depth)
        permitted = MenuService.filter_by_roles(hierarchy, viewer_roles)
        return MenuService.prune_unnavigable(permitted)

    async def get_navigation_tree(
        self,
        viewer_roles: List[str] = None,
        force_refresh: bool = False,
        credential: Optional[str] = None,
    ) -> List[MenuItem]:
        items = await self.fetcher.fetch_menu(force_refresh=force_refresh, credential=credential)
        return self.build_tree(items, viewer_roles or [])

    async def refresh(self, viewer_roles: List[str] = None, credential: Optional[str] = None) -> List[MenuItem]:
        """Bypass the fresh cache and rebuild the tree."""
        return await self.get_navigation_tree(viewer_roles, force_refresh=True, credential=credential)

    async def status(self, credential: Optional[str] = None) -> NavigationStatus:
        cached = await self.fetcher.cache.read(scope=credential)
        return NavigationStatus(loading=self.loading or self.fetcher.loading, cached=cached is not None)

    async def logout(self, viewer: Viewer = None) -> List[MenuItem]:
        """Forget the viewer's cached manifest and any fetch still running for it."""
        viewer = viewer or self.viewer
        if self.viewer.is_authenticated and self.viewer.username == viewer.username:
            return await self.set_viewer(Viewer())
        await self.fetcher.invalidate(viewer.credential)
        return []

    async def set_viewer(self, viewer: Viewer) -> List[MenuItem]:
        """Switch the session's viewer and rebuild its tree.

        Any load still in flight for the previous viewer is discarded when it
        completes.
        """
        previous = self.viewer
        self.viewer = viewer
        if (
            previous.username == viewer.username
            and previous.is_authenticated == viewer.is_authenticated
            and previous.credential == viewer.credential
            and sorted(previous.roles) == sorted(viewer.roles)
        ):
            return self.tree

        self._generation += 1
        if not viewer.is_authenticated:
            logger.info("Viewer logged out, clearing navigation state")
            await self.fetcher.invalidate(previous.credential)
            self.tree = []
            self.loading = False
            return self.tree
        return await self.load()

    async def load(self, force: bool = False) -> List[MenuItem]:
        """Load the tree for the current viewer into ``self.tree``."""
        if not self.viewer.is_authenticated:
            self.tree = []
            return self.tree

        generation = self._generation
        viewer = self.viewer
        self.loading = True
        try:
            items = await self.fetcher.fetch_menu(force_refresh=force, credential=viewer.credential)
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.info(f"Viewer changed during menu load, discarding result for {viewer.username}")
            return self.tree

        self.tree = self.build_tree(items, viewer.roles)
        return self.tree

    async def resolve(self, target: Union[MenuItem, str], tree: List[MenuItem] = None) -> ResolvedNode:
        """Resolve a node (or a bare path hint) to its content unit."""
        tree = self.tree if tree is None else tree
        if isinstance(target, MenuItem):
            item = target
            hint = target.resolution_hint or ""
        else:
            hint = target or ""
            item = MenuService.find_item(tree, hint)
        content = await self.resolver.resolve_content(hint)
        path = item.path if item is not None and item.path else hint
        return ResolvedNode(
            hint=hint,
            item=item,
            content=content,
            breadcrumbs=MenuService.breadcrumbs(path, tree),
        )
