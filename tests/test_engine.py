from __future__ import annotations

import asyncio

import httpx

from conftest import MANIFEST
from models import MenuItem, Viewer
from pages import registry as page_registry


def _shape(tree: list[MenuItem]) -> list:
    return [(item.id, _shape(item.children)) for item in tree]


def test_tree_is_built_filtered_and_pruned_per_viewer(make_engine, handler) -> None:
    engine = make_engine(handler)

    async def _run() -> tuple:
        admin = await engine.get_navigation_tree(["admin"])
        manager = await engine.get_navigation_tree(["manager"])
        anonymous = await engine.get_navigation_tree([])
        return admin, manager, anonymous

    admin, manager, anonymous = asyncio.run(_run())
    assert _shape(admin) == [(1, [(3, []), (2, [])]), (4, [])]
    assert _shape(manager) == [(1, [(2, [])]), (4, [])]
    assert _shape(anonymous) == [(1, []), (4, [])]
    assert handler.calls == 1


def test_refresh_bypasses_cache(make_engine, handler) -> None:
    engine = make_engine(handler)

    async def _run() -> list:
        await engine.get_navigation_tree(["admin"])
        handler.payload = MANIFEST + [{"id": 9, "title": "New", "path": "/new", "order": 9}]
        return await engine.refresh(["admin"])

    tree = asyncio.run(_run())
    assert handler.calls == 2
    assert [item.id for item in tree] == [1, 4, 9]


def test_set_viewer_loads_tree_for_roles(make_engine, handler) -> None:
    engine = make_engine(handler)
    tree = asyncio.run(engine.set_viewer(Viewer(username="mia", roles=["manager"], is_authenticated=True)))
    assert _shape(tree) == [(1, [(2, [])]), (4, [])]
    assert engine.tree == tree
    assert engine.loading is False


def test_same_viewer_does_not_reload(make_engine, handler) -> None:
    engine = make_engine(handler)
    viewer = Viewer(username="mia", roles=["manager"], is_authenticated=True)

    async def _run() -> None:
        await engine.set_viewer(viewer)
        await engine.set_viewer(Viewer(username="mia", roles=["manager"], is_authenticated=True))

    asyncio.run(_run())
    assert handler.calls == 1


def test_logout_clears_cache_and_tree(make_engine, handler) -> None:
    engine = make_engine(handler)

    async def _run() -> tuple:
        await engine.set_viewer(Viewer(username="mia", roles=["admin"], is_authenticated=True))
        tree = await engine.set_viewer(Viewer())
        cached = await engine.fetcher.cache.read(ignore_expiry=True)
        return tree, cached

    tree, cached = asyncio.run(_run())
    assert tree == []
    assert engine.tree == []
    assert cached is None


def test_logout_during_load_discards_result(make_engine) -> None:
    state: dict = {}

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await state["release"].wait()
        return httpx.Response(200, json=MANIFEST)

    engine = make_engine(slow_handler)

    async def _run() -> tuple:
        state["release"] = asyncio.Event()
        engine.viewer = Viewer(username="mia", roles=["admin"], is_authenticated=True)
        load = asyncio.create_task(engine.load())
        await asyncio.sleep(0)
        loading_before = engine.loading
        await engine.set_viewer(Viewer())
        state["release"].set()
        result = await load
        cached = await engine.fetcher.cache.read(ignore_expiry=True)
        return loading_before, result, cached

    loading_before, result, cached = asyncio.run(_run())
    assert loading_before is True
    assert result == []
    assert engine.tree == []
    assert engine.loading is False
    assert cached is None


def test_resolve_uses_component_hint_then_path(make_engine, handler) -> None:
    engine = make_engine(handler, registry=page_registry)

    async def _run() -> tuple:
        by_component = await engine.resolve(MenuItem(id=1, path="/people", component="EmployeeList"))
        by_path = await engine.resolve(MenuItem(id=2, path="/profile-view"))
        missing = await engine.resolve("/nowhere")
        return by_component, by_path, missing

    by_component, by_path, missing = asyncio.run(_run())
    assert by_component.hint == "EmployeeList"
    assert by_component.content.name == "EmployeeList"
    assert by_path.content.name == "profile-view"
    assert missing.item is None
    assert missing.content.found is False
    assert "/nowhere" in missing.content.notice


def test_resolve_bare_hint_finds_item_in_loaded_tree(make_engine, handler) -> None:
    engine = make_engine(handler, registry=page_registry)

    async def _run():
        await engine.set_viewer(Viewer(username="ada", roles=["admin"], is_authenticated=True))
        return await engine.resolve("/employee-list")

    resolved = asyncio.run(_run())
    assert resolved.item is not None
    assert resolved.item.id == 2
    assert resolved.content.name == "EmployeeList"
    assert resolved.content.found is True


def test_logout_during_fetch_does_not_recache_manifest(make_engine) -> None:
    state: dict = {}

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        state["started"].set()
        await state["release"].wait()
        return httpx.Response(200, json=MANIFEST)

    engine = make_engine(slow_handler)
    bob = Viewer(username="bob", roles=["admin"], is_authenticated=True, credential="bob-session")

    async def _run() -> tuple:
        state["release"] = asyncio.Event()
        state["started"] = asyncio.Event()
        fetch = asyncio.create_task(engine.get_navigation_tree(bob.roles, credential=bob.credential))
        await state["started"].wait()
        during = await engine.status(bob.credential)
        await engine.logout(bob)
        state["release"].set()
        await fetch
        cached = await engine.fetcher.cache.read(ignore_expiry=True, scope=bob.credential)
        after = await engine.status(bob.credential)
        return during, cached, after

    during, cached, after = asyncio.run(_run())
    assert during.loading is True
    assert cached is None
    assert after.loading is False
    assert after.cached is False


def test_logout_of_session_viewer_resets_state(make_engine, handler) -> None:
    engine = make_engine(handler)
    ada = Viewer(username="ada", roles=["admin"], is_authenticated=True, credential="ada-session")

    async def _run() -> tuple:
        await engine.set_viewer(ada)
        tree = await engine.logout(ada)
        cached = await engine.fetcher.cache.read(ignore_expiry=True, scope=ada.credential)
        return tree, cached

    tree, cached = asyncio.run(_run())
    assert tree == []
    assert engine.viewer.is_authenticated is False
    assert cached is None


def test_resolved_node_carries_breadcrumbs(make_engine, handler) -> None:
    engine = make_engine(handler, registry=page_registry)

    async def _run():
        await engine.set_viewer(Viewer(username="ada", roles=["admin"], is_authenticated=True))
        return await engine.resolve("/profile-view")

    resolved = asyncio.run(_run())
    assert [(crumb.label, crumb.path) for crumb in resolved.breadcrumbs] == [("Home", "/"), ("Profile", "/profile-view")]
    assert resolved.breadcrumbs[-1].is_last is True
