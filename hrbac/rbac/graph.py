"""
Role Graph.

Stores roles, each owning a set of permission names and a set of parent
role names. Parents form a directed acyclic graph; a role inherits every
permission of every ancestor.

Cycle checks run before an edge is inserted, so the graph is never
transiently cyclic and a rejected edge leaves it untouched. Cascading
cleanups scan all roles, which is fine at role-graph sizes.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable

from hrbac.core.exceptions import (
    AlreadyAssignedError,
    AlreadyExistsError,
    CycleDetectedError,
    NotAssignedError,
    NotFoundError,
)

from .models import Role
from .registry import PermissionRegistry


class RoleGraph:
    """
    In-memory role hierarchy.

    Usage:
        graph = RoleGraph(registry)
        graph.create_role("viewer")
        graph.create_role("editor")
        graph.add_parent("editor", "viewer")   # editor inherits viewer
        graph.has_role("editor", "viewer")     # True
    """

    def __init__(self, registry: PermissionRegistry):
        self.registry = registry
        self._roles: dict[str, Role] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    # ============================================================
    # ROLES
    # ============================================================

    def create_role(self, name: str) -> Role:
        """Create an empty role. Fails if the name is taken."""
        self.registry.validate_name(name, "Role name")
        if name in self._roles:
            raise AlreadyExistsError(f"Role {name!r} already exists")

        role = Role(name=name)
        self._roles[name] = role
        return role

    def get_role(self, name: str) -> Role | None:
        """Get role by name."""
        return self._roles.get(name)

    def list_roles(self) -> list[Role]:
        """List all roles, sorted by name."""
        return [self._roles[name] for name in sorted(self._roles)]

    def snapshot(self) -> dict[str, Role]:
        return {name: role.copy() for name, role in self._roles.items()}

    def restore(self, snapshot: dict[str, Role]) -> None:
        self._roles = {name: role.copy() for name, role in snapshot.items()}

    def remove_role(self, name: str) -> Role:
        """Delete a role and drop it from every other role's parents."""
        role = self._roles.pop(name, None)
        if role is None:
            raise NotFoundError(f"Role {name!r} does not exist")

        for other in self._roles.values():
            other.parents.discard(name)
        return role

    def _require(self, name: str) -> Role:
        role = self._roles.get(name)
        if role is None:
            raise NotFoundError(f"Role {name!r} does not exist")
        return role

    # ============================================================
    # ROLE PERMISSIONS
    # ============================================================

    def add_permission_to_role(self, role_name: str, permission_name: str) -> None:
        """Add a registered permission to a role."""
        role = self._require(role_name)
        if permission_name not in self.registry:
            raise NotFoundError(f"Permission {permission_name!r} does not exist")
        if permission_name in role.permissions:
            raise AlreadyAssignedError(
                f"Permission {permission_name!r} is already assigned to role {role_name!r}"
            )
        role.permissions.add(permission_name)

    def remove_permission_from_role(self, role_name: str, permission_name: str) -> None:
        """Remove a permission from a role."""
        role = self._require(role_name)
        if permission_name not in role.permissions:
            raise NotAssignedError(
                f"Permission {permission_name!r} is not assigned to role {role_name!r}"
            )
        role.permissions.discard(permission_name)

    def purge_permission(self, permission_name: str) -> list[str]:
        """Remove a permission from every role. Returns affected role names."""
        affected = []
        for role in self._roles.values():
            if permission_name in role.permissions:
                role.permissions.discard(permission_name)
                affected.append(role.name)
        return sorted(affected)

    # ============================================================
    # HIERARCHY
    # ============================================================

    def add_parent(self, role_name: str, parent_name: str) -> None:
        """
        Make parent_name a parent of role_name.

        Raises CycleDetectedError if role_name is already reachable from
        parent_name (a role may not be its own ancestor).
        """
        role = self._require(role_name)
        self._require(parent_name)

        if parent_name in role.parents:
            raise AlreadyAssignedError(
                f"Role {parent_name!r} is already a parent of {role_name!r}"
            )
        if role_name == parent_name or role_name in self.ancestors(parent_name):
            raise CycleDetectedError(role_name, parent_name)

        role.parents.add(parent_name)

    def remove_parent(self, role_name: str, parent_name: str) -> None:
        """Remove a direct parent edge."""
        role = self._require(role_name)
        self._require(parent_name)
        if parent_name not in role.parents:
            raise NotAssignedError(
                f"Role {parent_name!r} is not a parent of {role_name!r}"
            )
        role.parents.discard(parent_name)

    def _walk(self, start: Iterable[str]) -> Iterable[Role]:
        # Breadth-first over parents; each role is yielded once even when
        # several paths lead to it.
        visited: set[str] = set()
        queue: deque[str] = deque(start)
        while queue:
            name = queue.popleft()
            if name in visited:
                continue
            visited.add(name)
            role = self._roles.get(name)
            if role is None:
                continue
            yield role
            queue.extend(role.parents)

    def ancestors(self, role_name: str) -> set[str]:
        """All transitive parents of a role (excluding the role itself)."""
        role = self._require(role_name)
        return {r.name for r in self._walk(role.parents)}

    def get_effective_permissions(self, role_name: str) -> set[str]:
        """Own permissions plus those of every ancestor."""
        self._require(role_name)
        permissions: set[str] = set()
        for role in self._walk([role_name]):
            permissions |= role.permissions
        return permissions

    def has_role(self, role_name: str, candidate: str) -> bool:
        """True if candidate is role_name or one of its ancestors."""
        if role_name not in self._roles:
            return False
        if candidate == role_name:
            return True
        return candidate in self.ancestors(role_name)
