"""Role to permission mapping and the permission-filtered admin menu.

Roles and permissions are separate gates: ``authorize`` checks the role
named in the session token, ``can_access`` checks the capability strings
derived from that role. Holding the wildcard never satisfies a role gate.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from karnya.core.errors import Forbidden

WILDCARD = "*"


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"
    USER = "user"


class UserType(str, Enum):
    DONOR = "donor"
    RECEIVER = "receiver"
    ADMIN = "admin"


ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN.value: frozenset({WILDCARD}),
    UserRole.ADMIN.value: frozenset({
        "users.manage",
        "roles.manage",
        "settings.manage",
        "content.manage",
        "media.manage",
    }),
    UserRole.EDITOR.value: frozenset({"content.manage", "media.manage"}),
    UserRole.VIEWER.value: frozenset({"content.view", "reports.view"}),
    UserRole.USER.value: frozenset(),
}


def permissions_for(role: str) -> FrozenSet[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def can_access(permissions: Iterable[str], required: str) -> bool:
    permissions = set(permissions)
    return WILDCARD in permissions or required in permissions


def authorize(identity, required_roles: Iterable[str]) -> None:
    if identity.role not in set(required_roles):
        raise Forbidden(f"User role {identity.role} is not authorized to access this route")


# higher outranks lower; unknown roles rank with "user"
ROLE_RANK = {
    UserRole.USER.value: 0,
    UserRole.VIEWER.value: 1,
    UserRole.EDITOR.value: 2,
    UserRole.ADMIN.value: 3,
    UserRole.SUPER_ADMIN.value: 4,
}

# only a super_admin may hand these out
PRIVILEGED_ROLES = frozenset({UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value})


def rank_of(role: str) -> int:
    return ROLE_RANK.get(role, 0)


def can_assign_role(actor_role: str, current_role: str, new_role: str) -> bool:
    """Whether ``actor_role`` may move an account from ``current_role`` to ``new_role``.

    Nobody grants a role above their own or touches an account that outranks
    them, and admin-level roles are granted by super_admin alone.
    """
    if new_role in PRIVILEGED_ROLES and actor_role != UserRole.SUPER_ADMIN.value:
        return False
    actor = rank_of(actor_role)
    return rank_of(new_role) <= actor and rank_of(current_role) <= actor


# ---------- navigation ----------
@dataclass(frozen=True)
class MenuLeaf:
    title: str
    url: str
    permission: Optional[str] = None
    icon: Optional[str] = None


@dataclass(frozen=True)
class MenuGroup:
    title: str
    children: Tuple["MenuNode", ...]
    permission: Optional[str] = None
    icon: Optional[str] = None


MenuNode = Union[MenuLeaf, MenuGroup]


def filter_tree(nodes: Iterable[MenuNode], permissions: Iterable[str]) -> List[MenuNode]:
    """Drop the menu nodes the permission set cannot see.

    A group stays when any child survives, even if its own permission is
    not held; it comes back with only the surviving children.
    """
    permissions = set(permissions)
    if WILDCARD in permissions:
        return list(nodes)

    visible: List[MenuNode] = []
    for node in nodes:
        if isinstance(node, MenuGroup):
            children = filter_tree(node.children, permissions)
            if children or node.permission is None or node.permission in permissions:
                visible.append(replace(node, children=tuple(children)))
        elif node.permission is None or node.permission in permissions:
            visible.append(node)
    return visible


def menu_to_dict(node: MenuNode) -> dict:
    if isinstance(node, MenuGroup):
        return {
            "title": node.title,
            "icon": node.icon,
            "permission": node.permission,
            "children": [menu_to_dict(child) for child in node.children],
        }
    return {"title": node.title, "icon": node.icon, "url": node.url, "permission": node.permission}


ADMIN_MENU: Tuple[MenuNode, ...] = (
    MenuLeaf("Dashboard", "dashboard.html", "dashboard.view", icon="tachometer-alt"),
    MenuLeaf("Users", "users.html", "users.manage", icon="users"),
    MenuLeaf("Roles & Permissions", "roles.html", "roles.manage", icon="user-shield"),
    MenuGroup(
        "Content",
        (
            MenuLeaf("Pages", "pages.html", "pages.manage"),
            MenuLeaf("Media", "media.html", "media.manage"),
            MenuLeaf("Menus", "menus.html", "menus.manage"),
            MenuLeaf("Email Templates", "email-templates.html", "email_templates.manage"),
        ),
        "content.manage",
        icon="file-alt",
    ),
    MenuGroup(
        "Waste Management",
        (
            MenuLeaf("Pickup Requests", "pickups.html", "pickups.manage"),
            MenuLeaf("Waste Categories", "waste-categories.html", "categories.manage"),
            MenuLeaf("Disposal Sites", "disposal-sites.html", "sites.manage"),
        ),
        "waste.manage",
        icon="trash-alt",
    ),
    MenuGroup(
        "Reports",
        (
            MenuLeaf("User Activity", "reports/activity.html", "reports.activity"),
            MenuLeaf("Waste Analytics", "reports/waste.html", "reports.waste"),
            MenuLeaf("Financial Reports", "reports/financial.html", "reports.financial"),
        ),
        "reports.view",
        icon="chart-bar",
    ),
    MenuGroup(
        "Settings",
        (
            MenuLeaf("General", "settings/general.html", "settings.general"),
            MenuLeaf("Email", "settings/email.html", "settings.email"),
            MenuLeaf("Security", "settings/security.html", "settings.security"),
            MenuLeaf("Backup", "settings/backup.html", "settings.backup"),
            MenuLeaf("API", "settings/api.html", "settings.api"),
            MenuLeaf("System", "settings/system.html", "settings.system"),
        ),
        "settings.manage",
        icon="cog",
    ),
)
