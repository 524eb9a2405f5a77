"""
RBAC (Role-Based Access Control) core.

Components, leaves first:
- PermissionRegistry: permissions keyed by (action, resource)
- RoleGraph: roles with permissions and parent roles (a DAG)
- RBAC: async engine answering can / get_scope / has_role

Usage:
    rbac = RBAC()
    await rbac.create_permission("read", "doc")
    await rbac.create_role("viewer", permissions=["read_doc"])
    await rbac.can("viewer", "read", "doc")  # True
"""

from .models import Permission, Role
from .registry import PermissionRegistry
from .graph import RoleGraph
from .engine import RBAC
from .definition import RBACDefinition
from .locks import ReadWriteLock

__all__ = [
    "Permission",
    "Role",
    "PermissionRegistry",
    "RoleGraph",
    "RBAC",
    "RBACDefinition",
    "ReadWriteLock",
]
