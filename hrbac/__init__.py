"""
hrbac - Hierarchical role-based access control.

An async RBAC engine (permissions, role hierarchy, scopes) and a
SQLAlchemy mixin binding a role and ad-hoc permissions to a record.

Usage:
    from hrbac import RBAC, SubjectMixin

    rbac = await RBAC.from_definition({
        "roles": ["viewer", "editor"],
        "permissions": {"doc": ["read", "write"]},
        "grants": {"viewer": ["read_doc"], "editor": ["viewer", "write_doc"]},
    })
    await rbac.can("editor", "read", "doc")  # True
"""

from hrbac.core import (
    AccessControl,
    RBACError,
    ValidationError,
    NotFoundError,
    AlreadyExistsError,
    AlreadyAssignedError,
    NotAssignedError,
    CycleDetectedError,
    PersistenceError,
    ConsistencyError,
    configure_logging,
    get_settings,
)
from hrbac.rbac import (
    RBAC,
    RBACDefinition,
    Permission,
    Role,
    PermissionRegistry,
    RoleGraph,
)
from hrbac.models import SubjectMixin, SubjectOptions

__version__ = "0.1.0"

__all__ = [
    "RBAC",
    "RBACDefinition",
    "Permission",
    "Role",
    "PermissionRegistry",
    "RoleGraph",
    "SubjectMixin",
    "SubjectOptions",
    "AccessControl",
    "RBACError",
    "ValidationError",
    "NotFoundError",
    "AlreadyExistsError",
    "AlreadyAssignedError",
    "NotAssignedError",
    "CycleDetectedError",
    "PersistenceError",
    "ConsistencyError",
    "configure_logging",
    "get_settings",
]
