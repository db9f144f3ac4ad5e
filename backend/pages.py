"""Content units for the dashboard's pages.

Each factory is registered under the identifier the route resolver derives
from a menu path, e.g. ``/employee-list`` -> ``EmployeeList``.
"""
from models import ContentUnit
from resolver import ComponentRegistry

registry = ComponentRegistry()


@registry.register("Home")
@registry.register("HomePage")
def home_page() -> ContentUnit:
    return ContentUnit(title="Dashboard", props={"widgets": ["stats", "recent-activity"]})


@registry.register("LoginPage")
def login_page() -> ContentUnit:
    return ContentUnit(title="Sign in", props={"public": True})


@registry.register("EmployeeList")
def employee_list() -> ContentUnit:
    return ContentUnit(
        title="Employees",
        props={
            "resource": "employees",
            "columns": ["name", "email", "department", "designation", "status"],
            "page_size": 10,
        },
    )


@registry.register("UsersAdd")
def users_add() -> ContentUnit:
    return ContentUnit(
        title="Add User",
        props={
            "resource": "users",
            "fields": ["username", "email", "password", "role"],
        },
    )


@registry.register("profile-view")
def profile_view() -> ContentUnit:
    return ContentUnit(title="My Profile", props={"resource": "profile", "mode": "view"})


@registry.register("profile-edit")
def profile_edit() -> ContentUnit:
    return ContentUnit(title="Edit Profile", props={"resource": "profile", "mode": "edit"})
