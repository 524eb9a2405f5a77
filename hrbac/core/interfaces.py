"""
Authorization interfaces - Core abstractions.

Subject bindings depend ONLY on AccessControl, never on a concrete engine,
so any object answering these five questions can back a subject.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hrbac.rbac.models import Permission, Role


class AccessControl(ABC):
    """
    Read-side contract of an RBAC engine.

    Implementations:
    - RBAC: in-memory hierarchical engine (hrbac.rbac.engine)
    """

    @abstractmethod
    async def get_permission(self, action: str, resource: str) -> "Permission | None":
        """Look up a permission; None when it is not registered."""
        pass

    @abstractmethod
    async def get_role(self, name: str) -> "Role | None":
        """Look up a role; None when it does not exist."""
        pass

    @abstractmethod
    async def can(self, role_name: str, action: str, resource: str) -> bool:
        """
        Check if a role holds a permission, directly or inherited.

        Unknown permissions and roles yield False.
        """
        pass

    @abstractmethod
    async def has_role(self, role_name: str, candidate: str) -> bool:
        """True if candidate is the role or one of its ancestors."""
        pass

    @abstractmethod
    async def get_scope(self, role_name: str | None) -> set[str]:
        """Effective permission names of a role; empty for None or unknown."""
        pass
