"""
RBAC Engine.

Orchestrates the permission registry and the role graph and centralizes
the decision policy:
- Unknown permission -> can() is False, not an error
- Unknown or missing role -> can()/has_role() False, get_scope() empty
- Write operations raise on missing or duplicate entities

Every public operation is a coroutine that completes exactly once, with a
result or an RBACError. Mutations hold the write side of a read/write
lock; reads hold the read side, so hierarchy traversals always see a
consistent graph.

Usage:
    rbac = RBAC()
    await rbac.create_permission("write", "doc")
    await rbac.create_role("editor", permissions=["write_doc"])
    await rbac.create_role("chief", parents=["editor"])

    await rbac.can("chief", "write", "doc")  # True
    await rbac.get_scope("chief")            # {"write_doc"}
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping

import structlog

from hrbac.core.config import RBACSettings, get_settings
from hrbac.core.exceptions import NotFoundError, ValidationError
from hrbac.core.interfaces import AccessControl

from .definition import RBACDefinition
from .graph import RoleGraph
from .locks import ReadWriteLock
from .models import Permission, Role
from .registry import PermissionRegistry

logger = structlog.get_logger()

PermissionRef = Permission | str


class RBAC(AccessControl):
    """
    Hierarchical role-based access control.

    The registry and graph are injected so that several independent
    instances can coexist; both default to fresh in-memory stores.
    """

    def __init__(
        self,
        registry: PermissionRegistry | None = None,
        graph: RoleGraph | None = None,
        settings: RBACSettings | None = None,
    ):
        settings = settings or get_settings().rbac
        if registry is None:
            registry = graph.registry if graph is not None else PermissionRegistry(settings.delimiter)
        if graph is None:
            graph = RoleGraph(registry)
        if graph.registry is not registry:
            raise ValidationError("Role graph must share the engine's permission registry")

        self.registry = registry
        self.graph = graph
        self._lock = ReadWriteLock()

    @classmethod
    async def from_definition(
        cls,
        definition: RBACDefinition | Mapping[str, Any],
        **kwargs: Any,
    ) -> "RBAC":
        """Create an engine populated from a definition document."""
        rbac = cls(**kwargs)
        await rbac.load(definition)
        return rbac

    @property
    def delimiter(self) -> str:
        return self.registry.delimiter

    # ============================================================
    # INTERNALS
    # ============================================================

    @contextmanager
    def _rollback_on_error(self) -> Iterator[None]:
        # Restores both stores if any step of a multi-step mutation fails.
        permissions = self.registry.snapshot()
        roles = self.graph.snapshot()
        try:
            yield
        except Exception:
            self.registry.restore(permissions)
            self.graph.restore(roles)
            raise

    def _permission_name(self, permission: PermissionRef) -> str:
        if isinstance(permission, Permission):
            return permission.name
        return permission

    def _can(self, role_name: str, action: str, resource: str) -> bool:
        permission = self.registry.get_permission(action, resource)
        if permission is None:
            logger.debug("Unknown permission", action=action, resource=resource)
            return False
        if role_name not in self.graph:
            logger.debug("Unknown role", role=role_name)
            return False
        return permission.name in self.graph.get_effective_permissions(role_name)

    # ============================================================
    # READS
    # ============================================================

    async def get_permission(self, action: str, resource: str) -> Permission | None:
        """Get permission by action and resource; None when absent."""
        async with self._lock.read():
            return self.registry.get_permission(action, resource)

    async def get_permission_by_name(self, name: str) -> Permission | None:
        async with self._lock.read():
            return self.registry.get_permission_by_name(name)

    async def list_permissions(self) -> list[Permission]:
        async with self._lock.read():
            return self.registry.list_permissions()

    async def get_role(self, name: str) -> Role | None:
        """Get a snapshot of a role; None when absent."""
        async with self._lock.read():
            role = self.graph.get_role(name)
            return role.copy() if role else None

    async def list_roles(self) -> list[Role]:
        async with self._lock.read():
            return [role.copy() for role in self.graph.list_roles()]

    async def can(self, role_name: str, action: str, resource: str) -> bool:
        """
        Check if a role holds a permission directly or through a parent.

        Returns False for an unknown permission or an unknown role.
        """
        async with self._lock.read():
            return self._can(role_name, action, resource)

    async def can_any(self, role_name: str, permissions: Iterable[tuple[str, str]]) -> bool:
        """True if the role holds at least one of the (action, resource) pairs."""
        async with self._lock.read():
            return any(self._can(role_name, action, resource) for action, resource in permissions)

    async def can_all(self, role_name: str, permissions: Iterable[tuple[str, str]]) -> bool:
        """True if the role holds every one of the (action, resource) pairs."""
        async with self._lock.read():
            return all(self._can(role_name, action, resource) for action, resource in permissions)

    async def has_role(self, role_name: str, candidate: str) -> bool:
        """True if candidate is role_name itself or one of its ancestors."""
        async with self._lock.read():
            return self.graph.has_role(role_name, candidate)

    async def get_scope(self, role_name: str | None) -> set[str]:
        """
        Get the effective permission names of a role.

        A missing or unknown role yields an empty set.
        """
        if not role_name:
            return set()
        async with self._lock.read():
            if role_name not in self.graph:
                return set()
            return self.graph.get_effective_permissions(role_name)

    async def export(self) -> RBACDefinition:
        """Dump the current state in the shape accepted by load()."""
        async with self._lock.read():
            permissions: dict[str, list[str]] = {}
            for permission in self.registry.list_permissions():
                permissions.setdefault(permission.resource, []).append(permission.action)

            roles = self.graph.list_roles()
            grants = {
                role.name: sorted(role.parents) + sorted(role.permissions)
                for role in roles
                if role.parents or role.permissions
            }
            return RBACDefinition(
                roles=[role.name for role in roles],
                permissions=permissions,
                grants=grants,
            )

    # ============================================================
    # PERMISSION MANAGEMENT
    # ============================================================

    async def create_permission(self, action: str, resource: str) -> Permission:
        """Register a new permission."""
        async with self._lock.write():
            permission = self.registry.create_permission(action, resource)
        logger.info("Permission created", permission=permission.name)
        return permission

    async def remove_permission(self, action: str, resource: str) -> Permission:
        """
        Unregister a permission.

        Cascades: the permission is removed from every role holding it.
        """
        async with self._lock.write():
            permission = self.registry.get_permission(action, resource)
            if permission is None:
                raise NotFoundError(f"Permission {action}:{resource} does not exist")
            affected = self.graph.purge_permission(permission.name)
            self.registry.remove_permission(action, resource)
        logger.info("Permission removed", permission=permission.name, roles=affected)
        return permission

    # ============================================================
    # ROLE MANAGEMENT
    # ============================================================

    async def create_role(
        self,
        name: str,
        permissions: Iterable[PermissionRef] | None = None,
        parents: Iterable[str] | None = None,
    ) -> Role:
        """
        Create a role, optionally with permissions and parent roles.

        Either everything is applied or nothing is.
        """
        async with self._lock.write():
            with self._rollback_on_error():
                role = self.graph.create_role(name)
                for permission in dict.fromkeys(permissions or ()):
                    self.graph.add_permission_to_role(name, self._permission_name(permission))
                for parent in dict.fromkeys(parents or ()):
                    self.graph.add_parent(name, parent)
            snapshot = role.copy()
        logger.info(
            "Role created",
            role=name,
            permissions=sorted(snapshot.permissions),
            parents=sorted(snapshot.parents),
        )
        return snapshot

    async def remove_role(self, name: str) -> Role:
        """Delete a role; it is dropped from every other role's parents."""
        async with self._lock.write():
            role = self.graph.remove_role(name)
        logger.info("Role removed", role=name)
        return role

    async def grant_permission(self, role_name: str, permission: PermissionRef) -> None:
        """Add a registered permission to a role."""
        name = self._permission_name(permission)
        async with self._lock.write():
            self.graph.add_permission_to_role(role_name, name)
        logger.info("Permission granted to role", role=role_name, permission=name)

    async def revoke_permission(self, role_name: str, permission: PermissionRef) -> None:
        """Remove a permission from a role."""
        name = self._permission_name(permission)
        async with self._lock.write():
            self.graph.remove_permission_from_role(role_name, name)
        logger.info("Permission revoked from role", role=role_name, permission=name)

    async def add_parent(self, role_name: str, parent_name: str) -> None:
        """Make role_name inherit from parent_name."""
        async with self._lock.write():
            self.graph.add_parent(role_name, parent_name)
        logger.info("Parent added", role=role_name, parent=parent_name)

    async def remove_parent(self, role_name: str, parent_name: str) -> None:
        async with self._lock.write():
            self.graph.remove_parent(role_name, parent_name)
        logger.info("Parent removed", role=role_name, parent=parent_name)

    async def load(self, definition: RBACDefinition | Mapping[str, Any]) -> None:
        """
        Apply a definition: permissions, then roles, then grants.

        A grant naming a role adds it as a parent; any other name must be a
        registered permission. All-or-nothing.
        """
        if not isinstance(definition, RBACDefinition):
            definition = RBACDefinition.model_validate(definition)

        async with self._lock.write():
            with self._rollback_on_error():
                for resource, actions in definition.permissions.items():
                    for action in actions:
                        self.registry.create_permission(action, resource)

                for name in definition.roles:
                    self.graph.create_role(name)

                for role_name, names in definition.grants.items():
                    for name in names:
                        if name in self.graph:
                            self.graph.add_parent(role_name, name)
                        elif name in self.registry:
                            self.graph.add_permission_to_role(role_name, name)
                        else:
                            raise NotFoundError(
                                f"Grant {name!r} for role {role_name!r} is neither a role nor a permission"
                            )

        logger.info(
            "RBAC definition loaded",
            roles=len(definition.roles),
            permissions=sum(len(a) for a in definition.permissions.values()),
        )
