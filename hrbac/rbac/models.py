"""
RBAC value types - Permissions and Roles.

Permissions are action/resource pairs with a derived name:

    perm = Permission(action="read", resource="doc")
    perm.name  # "read_doc"

Roles bundle permission names and inherit from parent roles:

    role = Role(name="editor", permissions={"write_doc"}, parents={"viewer"})
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_DELIMITER = "_"


@dataclass(frozen=True)
class Permission:
    """
    Permission definition.

    Identity is the (action, resource) pair; the delimiter only shapes
    the name and does not take part in equality.
    """

    action: str
    resource: str
    delimiter: str = field(default=DEFAULT_DELIMITER, compare=False, repr=False)

    @property
    def name(self) -> str:
        """Get permission as '<action><delimiter><resource>' string."""
        return make_permission_name(self.action, self.resource, self.delimiter)

    @property
    def key(self) -> tuple[str, str]:
        return (self.action, self.resource)

    def __str__(self) -> str:
        return self.name


@dataclass
class Role:
    """
    Role definition.

    The name is fixed at creation. Permission names and parent role names
    are mutated only through the RoleGraph that owns the role.
    """

    name: str
    permissions: set[str] = field(default_factory=set)
    parents: set[str] = field(default_factory=set)

    def copy(self) -> "Role":
        """Detached snapshot safe to hand to callers."""
        return Role(
            name=self.name,
            permissions=set(self.permissions),
            parents=set(self.parents),
        )

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


def make_permission_name(action: str, resource: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    return f"{action}{delimiter}{resource}"
