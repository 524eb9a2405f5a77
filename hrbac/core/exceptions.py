"""
RBAC error taxonomy.

Every failure is reported once to the immediate caller. Read paths
(can, get_scope, has_role) degrade a missing role or permission to a
negative result instead of raising; write paths raise.
"""


class RBACError(Exception):
    """Base class for all RBAC errors."""
    pass


class ValidationError(RBACError, ValueError):
    """Malformed action, resource or role name."""
    pass


class NotFoundError(RBACError, LookupError):
    """Requested permission, role or subject record does not exist."""
    pass


class AlreadyExistsError(RBACError):
    """A permission or role with the same identity is already registered."""
    pass


class AlreadyAssignedError(RBACError):
    """The permission, parent or role is already held."""
    pass


class NotAssignedError(RBACError):
    """The permission or parent being removed is not held."""
    pass


class CycleDetectedError(RBACError):
    """Adding a parent edge would make a role its own ancestor."""

    def __init__(self, role: str, parent: str):
        self.role = role
        self.parent = parent
        super().__init__(f"Adding parent {parent!r} to role {role!r} would create a cycle")


class PersistenceError(RBACError):
    """The persistence layer failed or returned no record."""
    pass


class ConsistencyError(RBACError):
    """A persisted mutation did not take effect when re-read."""
    pass
