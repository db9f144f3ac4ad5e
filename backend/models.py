from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Union


MenuId = Union[int, str]


# Viewer Models
class Viewer(BaseModel):
    username: Optional[str] = None
    roles: List[str] = []
    permissions: List[str] = []
    is_authenticated: bool = False
    # Session cookie forwarded to the upstream menu API
    credential: Optional[str] = None


# Menu Models
class MenuItem(BaseModel):
    id: MenuId
    title: str = ""
    path: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[MenuId] = None
    order: int = 0
    roles: List[str] = []
    is_active: bool = True
    component: Optional[str] = None
    children: List["MenuItem"] = []

    @property
    def resolution_hint(self) -> Optional[str]:
        """Explicit component hint, falling back to the path."""
        return self.component or self.path


class CacheEntry(BaseModel):
    payload: List[MenuItem]
    timestamp: float


# Content Models
class ContentUnit(BaseModel):
    name: Optional[str] = None
    title: str = ""
    found: bool = True
    notice: Optional[str] = None
    props: Dict[str, Any] = {}


class Breadcrumb(BaseModel):
    label: str
    path: str
    icon: Optional[str] = None
    is_last: bool = False


class ResolvedNode(BaseModel):
    hint: str
    item: Optional[MenuItem] = None
    content: ContentUnit
    breadcrumbs: List[Breadcrumb] = []


class NavigationStatus(BaseModel):
    loading: bool
    cached: bool


# Route Models
class RouteHandle(BaseModel):
    title: str = ""
    icon: Optional[str] = None
    roles: List[str] = []


class RouteDefinition(BaseModel):
    path: str
    component: Optional[str] = None
    handle: RouteHandle
    children: List["RouteDefinition"] = []


# Response Models
class APIResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[str] = None


# Update forward references
MenuItem.model_rebuild()
RouteDefinition.model_rebuild()
