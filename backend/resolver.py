import asyncio
import inspect
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from models import ContentUnit, MenuItem, RouteDefinition, RouteHandle

logger = logging.getLogger(__name__)

PAGE_SUFFIX = "Page"
NOT_FOUND_TITLE = "Component Not Found"

ContentFactory = Callable[[], Any]


def path_to_component_name(path: str) -> str:
    """Convert a URL path into a PascalCase component name.

    ``/dashboard/user-list`` -> ``DashboardUserList``
    """
    trimmed = re.sub(r"^/", "", path or "")
    parts = re.split(r"[/-]", trimmed)
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def to_kebab_case(name: str) -> str:
    """``DashboardUserList`` -> ``dashboard-user-list``"""
    return re.sub(r"([A-Z])", r"-\1", name).lower().lstrip("-")


# Resolution strategies, tried in order against the registry.
def exact_name(name: str) -> str:
    return name


def page_suffix_name(name: str) -> str:
    return f"{name}{PAGE_SUFFIX}"


def kebab_case_name(name: str) -> str:
    return to_kebab_case(name)


DEFAULT_STRATEGIES = (exact_name, page_suffix_name, kebab_case_name)


class ComponentRegistry:
    """Static mapping of component identifiers to content-unit factories."""

    def __init__(self):
        self._factories: Dict[str, ContentFactory] = {}

    def add(self, name: str, factory: ContentFactory) -> None:
        if name in self._factories:
            logger.warning(f"Replacing registered component '{name}'")
        self._factories[name] = factory

    def register(self, name: str = None):
        """Decorator form of ``add``; defaults to the function name."""

        def decorator(factory: ContentFactory) -> ContentFactory:
            self.add(name or factory.__name__, factory)
            return factory

        return decorator

    def get(self, name: str) -> Optional[ContentFactory]:
        return self._factories.get(name)

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories


def fallback_content(hint: str) -> ContentUnit:
    return ContentUnit(
        title=NOT_FOUND_TITLE,
        found=False,
        notice=f"Component not found, path: {hint}",
        props={"path": hint},
    )


class RouteResolver:
    """Lazily maps a path or component hint to a content unit.

    Strategies are tried in order and the first registered identifier whose
    factory succeeds wins. When every strategy fails a placeholder unit is
    returned instead of an error.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        strategies: Sequence[Callable[[str], str]] = DEFAULT_STRATEGIES,
    ):
        self.registry = registry
        self.strategies = list(strategies)
        self._resolved: Dict[str, ContentUnit] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    def candidates(self, hint: str) -> List[str]:
        name = path_to_component_name(hint)
        if not name:
            return []
        names: List[str] = []
        for strategy in self.strategies:
            candidate = strategy(name)
            if candidate and candidate not in names:
                names.append(candidate)
        return names

    async def resolve_content(self, hint: str) -> ContentUnit:
        hint = hint or ""
        if hint in self._resolved:
            return self._resolved[hint]

        # Concurrent requests for one hint share a single resolution.
        task = self._pending.get(hint)
        if task is None:
            task = asyncio.ensure_future(self._resolve(hint))
            self._pending[hint] = task
            task.add_done_callback(lambda _: self._pending.pop(hint, None))
        return await asyncio.shield(task)

    async def _resolve(self, hint: str) -> ContentUnit:
        for candidate in self.candidates(hint):
            factory = self.registry.get(candidate)
            if factory is None:
                continue
            try:
                unit = factory()
                if inspect.isawaitable(unit):
                    unit = await unit
                if unit is not None:
                    unit = ContentUnit.model_validate(unit)
            except Exception as e:
                logger.error(f"Component '{candidate}' failed to load for path {hint}: {e}")
                continue
            if unit is None:
                continue
            if unit.name is None:
                unit = unit.model_copy(update={"name": candidate})
            self._resolved[hint] = unit
            return unit

        logger.error(f"Failed to load component for path: {hint}")
        return fallback_content(hint)

    def forget(self, hint: str = None) -> None:
        """Drop memoized resolutions (all of them when no hint is given)."""
        if hint is None:
            self._resolved.clear()
        else:
            self._resolved.pop(hint, None)


def generate_routes(tree: List[MenuItem]) -> List[RouteDefinition]:
    """Transform a navigation tree into route definitions."""
    routes = []
    for item in tree:
        if not item.path or not item.is_active:
            continue
        routes.append(
            RouteDefinition(
                path=item.path,
                component=item.resolution_hint,
                handle=RouteHandle(title=item.title, icon=item.icon, roles=list(item.roles)),
                children=generate_routes(item.children),
            )
        )
    return routes
