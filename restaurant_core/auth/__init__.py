"""Authentication, tokens and role-based access control"""

from restaurant_core.auth.passwords import PasswordCheck, PasswordPolicy, hash_token
from restaurant_core.auth.rbac import (
    ADMIN_EDITOR_ROLES,
    HIERARCHICAL_ROLES,
    AccessPolicy,
    Permission,
    Role,
    RoleDefinition,
    RoleTable,
    RouteRule,
    role_table_for,
)
from restaurant_core.auth.tokens import TokenService

__all__ = [
    "PasswordCheck",
    "PasswordPolicy",
    "hash_token",
    "ADMIN_EDITOR_ROLES",
    "HIERARCHICAL_ROLES",
    "AccessPolicy",
    "Permission",
    "Role",
    "RoleDefinition",
    "RoleTable",
    "RouteRule",
    "role_table_for",
    "TokenService",
]
