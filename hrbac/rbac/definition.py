"""
Declarative RBAC definition.

Describes a whole RBAC setup in one document so it can be kept in a
config file and loaded at startup:

    {
        "roles": ["guest", "user", "admin"],
        "permissions": {"user": ["create", "delete"], "password": ["change"]},
        "grants": {
            "guest": ["create_user"],
            "user": ["guest", "change_password"],
            "admin": ["user", "delete_user"]
        }
    }

permissions maps a resource to its actions. grants maps a role to the
names it inherits: other roles (which become parents) or permission names.
"""

from pydantic import BaseModel, Field, model_validator


class RBACDefinition(BaseModel):
    """Roles, permissions and grants of an RBAC instance."""

    roles: list[str] = Field(default_factory=list)
    permissions: dict[str, list[str]] = Field(default_factory=dict)
    grants: dict[str, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_grants(self) -> "RBACDefinition":
        unknown = sorted(set(self.grants) - set(self.roles))
        if unknown:
            raise ValueError(f"grants reference undeclared roles: {unknown}")

        duplicates = sorted({r for r in self.roles if self.roles.count(r) > 1})
        if duplicates:
            raise ValueError(f"duplicate roles: {duplicates}")
        return self
