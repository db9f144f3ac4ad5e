from __future__ import annotations

from typing import Any, Callable, Optional

import httpx
import pytest

from api_client import ApiClient
from manifest_cache import ManifestCache, MemoryStorage
from resolver import ComponentRegistry, RouteResolver
from services import ManifestFetcher, NavigationEngine

MANIFEST = [
    {"menu_id": 1, "menu_title": "Dashboard", "menu_path": "/dashboard", "menu_order": 1},
    {
        "menu_id": 2,
        "menu_title": "Employees",
        "menu_path": "/employee-list",
        "menu_parent_id": 1,
        "menu_order": 2,
        "menu_roles": ["admin", "manager"],
    },
    {
        "menu_id": 3,
        "menu_title": "Add User",
        "menu_path": "/users-add",
        "menu_parent_id": 1,
        "menu_order": 1,
        "menu_roles": "admin",
    },
    {"menu_id": 4, "menu_title": "Profile", "menu_path": "/profile-view", "menu_order": 2},
    {"menu_id": 5, "menu_title": "Legacy", "menu_path": "/legacy", "menu_order": 3, "is_active": False},
]


class BrokenStorage:
    """Storage that fails every operation, like a full or unavailable store."""

    async def get(self, key: str) -> Optional[str]:
        raise OSError("storage unavailable")

    async def set(self, key: str, value: str) -> None:
        raise OSError("quota exceeded")

    async def delete(self, key: str) -> None:
        raise OSError("storage unavailable")


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingHandler:
    """Mock upstream that records each request and answers with a fixed payload."""

    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self.payload = MANIFEST if payload is None else payload
        self.status_code = status_code
        self.fail = False
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.fail:
            raise httpx.ConnectError("upstream unreachable", request=request)
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client() -> Callable[[Callable], ApiClient]:
    def _make(handler: Callable) -> ApiClient:
        return ApiClient(
            base_url="http://menu.test",
            timeout=5,
            cookies={"session": "abc"},
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def make_fetcher(make_client, clock) -> Callable[..., ManifestFetcher]:
    def _make(handler: Callable, storage: Any = None) -> ManifestFetcher:
        cache = ManifestCache(storage=storage or MemoryStorage(), clock=clock, ttl_seconds=300)
        return ManifestFetcher(make_client(handler), cache, path="/web_menu")

    return _make


@pytest.fixture
def make_engine(make_fetcher) -> Callable[..., NavigationEngine]:
    def _make(handler: Callable, registry: ComponentRegistry | None = None) -> NavigationEngine:
        return NavigationEngine(make_fetcher(handler), RouteResolver(registry or ComponentRegistry()))

    return _make


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()
