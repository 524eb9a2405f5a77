"""
Permission Registry.

Stores permission definitions keyed by (action, resource). This is the
leaf of the RBAC core: it knows nothing about roles. Cascading removal
through roles is done by the RBAC engine, which owns both the registry
and the role graph.
"""

from __future__ import annotations

from typing import Iterator

from hrbac.core.exceptions import AlreadyExistsError, NotFoundError, ValidationError

from .models import DEFAULT_DELIMITER, Permission


class PermissionRegistry:
    """
    In-memory permission storage.

    Usage:
        registry = PermissionRegistry()
        perm = registry.create_permission("read", "doc")
        registry.get_permission("read", "doc")  # -> perm
        registry.get_permission_by_name("read_doc")  # -> perm
    """

    def __init__(self, delimiter: str = DEFAULT_DELIMITER):
        if not delimiter:
            raise ValidationError("Delimiter must not be empty")
        self.delimiter = delimiter
        self._permissions: dict[tuple[str, str], Permission] = {}
        self._by_name: dict[str, Permission] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._permissions)

    def __iter__(self) -> Iterator[Permission]:
        return iter(list(self._permissions.values()))

    def validate_name(self, value: str, label: str) -> None:
        """Reject empty names and names containing the delimiter."""
        if not isinstance(value, str) or not value:
            raise ValidationError(f"{label} must be a non-empty string")
        if self.delimiter in value:
            raise ValidationError(
                f"{label} {value!r} must not contain delimiter {self.delimiter!r}"
            )

    def create_permission(self, action: str, resource: str) -> Permission:
        """Register a permission. Fails if the pair is already registered."""
        self.validate_name(action, "Action")
        self.validate_name(resource, "Resource")

        key = (action, resource)
        if key in self._permissions:
            raise AlreadyExistsError(f"Permission {action}:{resource} already exists")

        permission = Permission(action=action, resource=resource, delimiter=self.delimiter)
        self._permissions[key] = permission
        self._by_name[permission.name] = permission
        return permission

    def get_permission(self, action: str, resource: str) -> Permission | None:
        """Get permission by action and resource."""
        return self._permissions.get((action, resource))

    def get_permission_by_name(self, name: str) -> Permission | None:
        """Get permission by its derived name."""
        return self._by_name.get(name)

    def remove_permission(self, action: str, resource: str) -> Permission:
        """Unregister a permission and return it."""
        permission = self._permissions.pop((action, resource), None)
        if permission is None:
            raise NotFoundError(f"Permission {action}:{resource} does not exist")
        del self._by_name[permission.name]
        return permission

    def snapshot(self) -> dict[tuple[str, str], Permission]:
        return dict(self._permissions)

    def restore(self, snapshot: dict[tuple[str, str], Permission]) -> None:
        self._permissions = dict(snapshot)
        self._by_name = {p.name: p for p in self._permissions.values()}

    def list_permissions(self) -> list[Permission]:
        """List all permissions, sorted by name."""
        return sorted(self._permissions.values(), key=lambda p: p.name)
