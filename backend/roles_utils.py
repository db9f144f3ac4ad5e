from typing import Iterable, List, Optional, Union

ROLE_HIERARCHY = ["admin", "manager", "user"]


def normalize_roles(value: Union[str, Iterable[str], None]) -> List[str]:
    """Turn a role list or a comma-separated string into a clean role list.

    Whitespace is stripped, blanks and duplicates dropped, first-seen order kept.
    Matching stays case-sensitive.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    roles: List[str] = []
    for role in value:
        if role is None:
            continue
        role = str(role).strip()
        if role and role not in roles:
            roles.append(role)
    return roles


def has_role(viewer_roles: Iterable[str], role: str) -> bool:
    return role in set(viewer_roles or [])


def has_any_role(viewer_roles: Iterable[str], roles: Iterable[str]) -> bool:
    granted = set(viewer_roles or [])
    return any(role in granted for role in roles or [])


def has_all_roles(viewer_roles: Iterable[str], roles: Iterable[str]) -> bool:
    granted = set(viewer_roles or [])
    return all(role in granted for role in roles or [])


def can_access(viewer_roles: Iterable[str], required_roles: Optional[Iterable[str]]) -> bool:
    """An empty requirement is public; otherwise any one matching role grants access."""
    required = list(required_roles or [])
    if not required:
        return True
    return has_any_role(viewer_roles, required)


def get_primary_role(viewer_roles: Iterable[str]) -> Optional[str]:
    roles = list(viewer_roles or [])
    if not roles:
        return None
    for role in ROLE_HIERARCHY:
        if role in roles:
            return role
    return roles[0]


def is_admin(viewer_roles: Iterable[str]) -> bool:
    return has_role(viewer_roles, "admin")


def has_permission(viewer_permissions: Iterable[str], permission: str) -> bool:
    return permission in set(viewer_permissions or [])


def has_any_permission(viewer_permissions: Iterable[str], permissions: Iterable[str]) -> bool:
    granted = set(viewer_permissions or [])
    return any(permission in granted for permission in permissions or [])


def has_all_permissions(viewer_permissions: Iterable[str], permissions: Iterable[str]) -> bool:
    granted = set(viewer_permissions or [])
    return all(permission in granted for permission in permissions or [])
