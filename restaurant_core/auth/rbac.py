"""
Role-based access control.

Roles live in a configurable ``RoleTable`` (ordered roles, each with a fixed
permission set). Two tables ship with the package:

- ``HIERARCHICAL_ROLES``: admin > editor > viewer, permission sets grow with rank.
- ``ADMIN_EDITOR_ROLES``: admin > editor, sharing content permissions and
  differing only in user management.

``AccessPolicy`` combines a role table with the ordered route rule table used
to guard admin and API paths.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Final, Iterable, Optional, Sequence


def _role_name(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


class Role(str, enum.Enum):
    """Role names known to the shipped tables"""
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class Permission(str, enum.Enum):
    """Permissions, namespaced as resource:action"""
    # Restaurant profile
    RESTAURANT_CREATE = "restaurant:create"
    RESTAURANT_UPDATE = "restaurant:update"
    RESTAURANT_DELETE = "restaurant:delete"
    RESTAURANT_VIEW = "restaurant:view"

    # Menu
    MENU_CREATE = "menu:create"
    MENU_UPDATE = "menu:update"
    MENU_DELETE = "menu:delete"
    MENU_VIEW = "menu:view"

    # Other content
    HOURS_UPDATE = "hours:update"
    CONTACT_UPDATE = "contact:update"
    IMAGE_UPLOAD = "image:upload"
    IMAGE_DELETE = "image:delete"

    # User management
    USER_CREATE = "user:create"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_VIEW = "user:view"
    USER_INVITE = "user:invite"
    USER_REMOVE = "user:remove"

    # Audit
    AUDIT_VIEW = "audit:view"


CONTENT_EDIT_PERMISSIONS: Final[frozenset[str]] = frozenset({
    Permission.RESTAURANT_UPDATE,
    Permission.RESTAURANT_VIEW,
    Permission.MENU_CREATE,
    Permission.MENU_UPDATE,
    Permission.MENU_DELETE,
    Permission.MENU_VIEW,
    Permission.HOURS_UPDATE,
    Permission.CONTACT_UPDATE,
    Permission.IMAGE_UPLOAD,
    Permission.IMAGE_DELETE,
})

USER_MANAGEMENT_PERMISSIONS: Final[frozenset[str]] = frozenset({
    Permission.USER_CREATE,
    Permission.USER_UPDATE,
    Permission.USER_DELETE,
    Permission.USER_VIEW,
    Permission.USER_INVITE,
    Permission.USER_REMOVE,
})


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    rank: int
    permissions: frozenset[str]
    display_name: str = ""
    description: str = ""


class RoleTable:
    """Ordered set of roles; higher rank means more authority"""

    def __init__(self, roles: Iterable[RoleDefinition]):
        self._roles = {_role_name(role.name): role for role in roles}
        if not self._roles:
            raise ValueError("A role table needs at least one role")
        ranks = [role.rank for role in self._roles.values()]
        if len(set(ranks)) != len(ranks):
            raise ValueError("Role ranks must be unique")

    def __contains__(self, role: object) -> bool:
        return _role_name(role) in self._roles

    def get(self, role: Any) -> Optional[RoleDefinition]:
        return self._roles.get(_role_name(role))

    @property
    def roles(self) -> list[RoleDefinition]:
        """Roles ordered from most to least privileged"""
        return sorted(self._roles.values(), key=lambda role: role.rank, reverse=True)

    @property
    def top_role(self) -> str:
        return self.roles[0].name

    @property
    def lowest_role(self) -> str:
        return self.roles[-1].name

    def rank(self, role: Any) -> int:
        """Rank of the role, 0 for unknown roles"""
        definition = self.get(role)
        return definition.rank if definition else 0

    def permissions_of(self, role: Any) -> frozenset[str]:
        definition = self.get(role)
        return definition.permissions if definition else frozenset()


HIERARCHICAL_ROLES = RoleTable([
    RoleDefinition(
        name=Role.ADMIN.value,
        rank=3,
        permissions=frozenset(p.value for p in Permission),
        display_name="Administrator",
        description="Full access to manage users and edit all restaurant data",
    ),
    RoleDefinition(
        name=Role.EDITOR.value,
        rank=2,
        permissions=frozenset(p.value for p in CONTENT_EDIT_PERMISSIONS),
        display_name="Editor",
        description="Can edit restaurant data but cannot manage users",
    ),
    RoleDefinition(
        name=Role.VIEWER.value,
        rank=1,
        permissions=frozenset({Permission.RESTAURANT_VIEW.value, Permission.MENU_VIEW.value}),
        display_name="Viewer",
        description="Read-only access",
    ),
])

ADMIN_EDITOR_ROLES = RoleTable([
    RoleDefinition(
        name=Role.ADMIN.value,
        rank=2,
        permissions=frozenset(
            p.value for p in CONTENT_EDIT_PERMISSIONS | USER_MANAGEMENT_PERMISSIONS | {Permission.AUDIT_VIEW}
        ),
        display_name="Administrator",
        description="Full access to manage users and edit all restaurant data",
    ),
    RoleDefinition(
        name=Role.EDITOR.value,
        rank=1,
        permissions=frozenset(p.value for p in CONTENT_EDIT_PERMISSIONS | {Permission.AUDIT_VIEW}),
        display_name="Editor",
        description="Can edit restaurant data but cannot manage users",
    ),
])

ROLE_MODELS: Final[dict[str, RoleTable]] = {
    "hierarchical": HIERARCHICAL_ROLES,
    "admin_editor": ADMIN_EDITOR_ROLES,
}


def role_table_for(role_model: str) -> RoleTable:
    try:
        return ROLE_MODELS[role_model]
    except KeyError:
        raise ValueError(
            f"Unknown role model '{role_model}'. Must be one of: {', '.join(sorted(ROLE_MODELS))}"
        ) from None


@dataclass(frozen=True)
class RouteRule:
    path_prefix: str
    method: Optional[str] = None
    required_role: Optional[str] = None
    required_permission: Optional[str] = None


DEFAULT_ROUTE_RULES: Final[tuple[RouteRule, ...]] = (
    # Admin-only pages
    RouteRule("/admin/users", required_role=Role.ADMIN.value),
    RouteRule("/admin/audit", required_role=Role.ADMIN.value),
    RouteRule("/admin/settings", required_role=Role.ADMIN.value),

    # Editor pages
    RouteRule("/admin/menu", required_role=Role.EDITOR.value),
    RouteRule("/admin/content", required_role=Role.EDITOR.value),
    RouteRule("/admin/images", required_role=Role.EDITOR.value),

    # Viewer pages
    RouteRule("/admin/dashboard", required_role=Role.VIEWER.value),
    RouteRule("/admin/reports", required_role=Role.VIEWER.value),

    # API routes with specific permissions
    RouteRule("/api/users", method="POST", required_permission=Permission.USER_CREATE.value),
    RouteRule("/api/users", method="PUT", required_permission=Permission.USER_UPDATE.value),
    RouteRule("/api/users", method="DELETE", required_permission=Permission.USER_DELETE.value),
    RouteRule("/api/menu", method="POST", required_permission=Permission.MENU_CREATE.value),
    RouteRule("/api/menu", method="PUT", required_permission=Permission.MENU_UPDATE.value),
    RouteRule("/api/menu", method="DELETE", required_permission=Permission.MENU_DELETE.value),
    RouteRule("/api/menu", method="GET", required_permission=Permission.MENU_VIEW.value),
    RouteRule("/api/audit", required_permission=Permission.AUDIT_VIEW.value),
)


class AccessPolicy:
    """Role ranking, permission checks and route guarding for one deployment"""

    def __init__(
        self,
        roles: RoleTable = HIERARCHICAL_ROLES,
        route_rules: Sequence[RouteRule] = DEFAULT_ROUTE_RULES,
        protected_prefixes: Sequence[str] = ("/admin", "/api"),
        default_allow: bool = True,
    ):
        self.roles = roles
        self.route_rules = tuple(route_rules)
        self.protected_prefixes = tuple(protected_prefixes)
        # Protected paths without a rule: allow any authenticated actor, or deny
        self.default_allow = default_allow

    def rank(self, role: Any) -> int:
        return self.roles.rank(role)

    def has_role(self, actual_role: Any, required_role: Any) -> bool:
        return self.rank(actual_role) >= self.rank(required_role)

    def permissions_of(self, role: Any) -> frozenset[str]:
        return self.roles.permissions_of(role)

    def check_permission(self, actor: Any, permission: Any) -> bool:
        if actor is None:
            return False
        return _role_name(permission) in self.permissions_of(actor.role)

    def is_protected(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.protected_prefixes)

    def match_rule(self, path: str, method: Optional[str] = None) -> Optional[RouteRule]:
        method = method.upper() if method else None
        for rule in self.route_rules:
            if path.startswith(rule.path_prefix) and (rule.method is None or rule.method == method):
                return rule
        return None

    def can_access(self, actor: Any, path: str, method: Optional[str] = None) -> bool:
        if not self.is_protected(path):
            return True
        if actor is None:
            return False

        rule = self.match_rule(path, method)
        if rule is None:
            return self.default_allow
        if rule.required_role:
            return self.has_role(actor.role, rule.required_role)
        if rule.required_permission:
            return self.check_permission(actor, rule.required_permission)
        return True

    def required_role(self, path: str) -> Optional[str]:
        for rule in self.route_rules:
            if path.startswith(rule.path_prefix):
                return rule.required_role
        return None

    def can_assign_role(self, assigner_role: Any, target_role: Any) -> bool:
        """Only the top role assigns roles, and only roles at or below its own rank"""
        if target_role not in self.roles:
            return False
        if _role_name(assigner_role) != self.roles.top_role:
            return False
        return self.rank(target_role) <= self.rank(assigner_role)

    def display_name(self, role: Any) -> str:
        definition = self.roles.get(role)
        if definition is None:
            return "Unknown"
        return definition.display_name or definition.name

    def description(self, role: Any) -> str:
        definition = self.roles.get(role)
        return definition.description if definition else "No permissions"

