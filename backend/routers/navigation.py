from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from auth import get_current_viewer
from models import APIResponse, Breadcrumb, MenuItem, NavigationStatus, ResolvedNode, RouteDefinition, Viewer
from resolver import generate_routes
from services import MenuService, NavigationEngine

router = APIRouter(prefix="/api/navigation", tags=["navigation"])


def get_engine(request: Request) -> NavigationEngine:
    return request.app.state.navigation_engine


@router.get("", response_model=List[MenuItem])
async def get_navigation(
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Return the navigation tree the authenticated viewer may see."""
    return await engine.get_navigation_tree(current_viewer.roles, credential=current_viewer.credential)


@router.post("/refresh", response_model=List[MenuItem])
async def refresh_navigation(
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Re-fetch the manifest, bypassing the cache, and rebuild the tree."""
    return await engine.refresh(current_viewer.roles, credential=current_viewer.credential)


@router.get("/status", response_model=NavigationStatus)
async def get_status(
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Whether a manifest fetch is outstanding, for the loading indicator."""
    return await engine.status(current_viewer.credential)


@router.get("/routes", response_model=List[RouteDefinition])
async def get_routes(
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Route definitions for the viewer's tree; content is resolved per route on demand."""
    tree = await engine.get_navigation_tree(current_viewer.roles, credential=current_viewer.credential)
    return generate_routes(tree)


@router.get("/breadcrumbs", response_model=List[Breadcrumb])
async def get_breadcrumbs(
    path: str = Query(..., min_length=1),
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    tree = await engine.get_navigation_tree(current_viewer.roles, credential=current_viewer.credential)
    return MenuService.breadcrumbs(path, tree)


@router.get("/resolve", response_model=ResolvedNode)
async def resolve_path(
    path: str = Query(..., min_length=1),
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Resolve a navigated path to its content unit, if the viewer may reach it."""
    tree = await engine.get_navigation_tree(current_viewer.roles, credential=current_viewer.credential)
    item = MenuService.find_item(tree, path)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No navigable menu item for path {path}",
        )
    return await engine.resolve(item, tree=tree)


@router.post("/logout", response_model=APIResponse)
async def logout(
    current_viewer: Viewer = Depends(get_current_viewer),
    engine: NavigationEngine = Depends(get_engine),
):
    """Clear the viewer's cached manifest when they sign out."""
    await engine.logout(current_viewer)
    return APIResponse(success=True, message="Menu cache cleared")
