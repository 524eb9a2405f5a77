"""
Subject binding - role and ad-hoc permissions on a persisted record.

SubjectMixin adds two columns to a model and the methods that answer
authorization questions through an RBAC engine:

    class User(Base, UUIDMixin, SubjectMixin):
        __tablename__ = "users"
        __rbac_options__ = SubjectOptions(default_role="member")

        email: Mapped[str] = mapped_column(String(255))

    user = User(email="ann@example.com")
    db.add(user)

    await user.set_role(rbac, "editor")
    await user.add_permission(rbac, "delete", "doc")
    await user.can(rbac, "delete", "doc")  # True
    await user.get_scope(rbac)              # ad-hoc + role permissions

    # Collection-wide cleanup after deleting a role or permission
    await User.remove_role_from_collection(db, "editor")
    await User.remove_permission_from_collection(db, "delete_doc")

Changes are flushed through the AsyncSession the record belongs to.
Read-modify-write on one record is not atomic: two concurrent
add_permission calls on the same subject can lose an update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from sqlalchemy import JSON, String, event
from sqlalchemy.ext.asyncio import AsyncSession, async_object_session
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from hrbac.core.config import get_settings
from hrbac.core.exceptions import (
    AlreadyAssignedError,
    ConsistencyError,
    NotAssignedError,
    NotFoundError,
    PersistenceError,
)
from hrbac.core.interfaces import AccessControl
from hrbac.repositories.subject import SubjectRepository


@dataclass(frozen=True)
class SubjectOptions:
    """Column defaults for a subject model."""

    default_role: str | None = None
    default_permissions: tuple[str, ...] = field(default_factory=tuple)


class SubjectMixin:
    """
    Mixin adding `role` and `permissions` to a declarative model.

    Defaults come from `__rbac_options__` when set, otherwise from
    RBACSettings (RBAC_DEFAULT_ROLE, RBAC_DEFAULT_PERMISSIONS). They are
    set when the object is constructed, unless passed explicitly, and
    again as column defaults for inserts that bypass the constructor.
    """

    __rbac_options__: ClassVar[SubjectOptions | None] = None

    @classmethod
    def rbac_options(cls) -> SubjectOptions:
        if cls.__rbac_options__ is not None:
            return cls.__rbac_options__
        settings = get_settings().rbac
        return SubjectOptions(
            default_role=settings.default_role,
            default_permissions=tuple(settings.default_permissions),
        )

    @declared_attr
    def role(cls) -> Mapped[str | None]:
        return mapped_column(
            String(100),
            nullable=True,
            index=True,
            default=cls.rbac_options().default_role,
        )

    @declared_attr
    def permissions(cls) -> Mapped[list[str]]:
        defaults = list(cls.rbac_options().default_permissions)
        return mapped_column(
            JSON,
            nullable=False,
            default=lambda: list(defaults),
        )

    # ============================================================
    # PERSISTENCE
    # ============================================================

    def _ad_hoc(self) -> list[str]:
        # permissions=None may still be passed to the constructor
        return list(self.permissions or [])

    def _repository(self) -> SubjectRepository:
        db = async_object_session(self)
        if db is None:
            raise PersistenceError(f"{type(self).__name__} is not attached to a session")
        return SubjectRepository(db, model=type(self))

    async def _save(self) -> Any:
        return await self._repository().save(self)

    # ============================================================
    # PERMISSIONS
    # ============================================================

    async def can(self, rbac: AccessControl, action: str, resource: str) -> bool:
        """
        Check if the subject holds a permission.

        Ad-hoc grants are checked first, then the subject's role.
        An unknown permission yields False.
        """
        permission = await rbac.get_permission(action, resource)
        if permission is None:
            return False

        if permission.name in self._ad_hoc():
            return True

        if not self.role:
            return False

        return await rbac.can(self.role, action, resource)

    async def add_permission(self, rbac: AccessControl, action: str, resource: str) -> bool:
        """Grant an ad-hoc permission and persist the record."""
        permission = await rbac.get_permission(action, resource)
        if permission is None:
            raise NotFoundError("Permission not exists")

        permissions = self._ad_hoc()
        if permission.name in permissions:
            raise AlreadyAssignedError("Permission is already assigned")

        self.permissions = [*permissions, permission.name]
        await self._save()
        return True

    async def remove_permission(self, permission_name: str) -> bool:
        """
        Revoke an ad-hoc permission and persist the record.

        The record is re-read after saving; if the permission is still
        present a ConsistencyError is raised.
        """
        permissions = self._ad_hoc()
        if permission_name not in permissions:
            raise NotAssignedError("Permission was not assigned")

        self.permissions = [p for p in permissions if p != permission_name]
        record = await self._save()

        if permission_name in (record.permissions or []):
            raise ConsistencyError("Permission was not removed")
        return True

    async def get_scope(self, rbac: AccessControl) -> set[str]:
        """Ad-hoc permissions plus the effective permissions of the role."""
        scope = await rbac.get_scope(self.role)
        return set(self._ad_hoc()) | scope

    # ============================================================
    # ROLE
    # ============================================================

    async def has_role(self, rbac: AccessControl, role_name: str) -> bool:
        """True if the subject's role is role_name or inherits from it."""
        if not self.role:
            return False
        return await rbac.has_role(self.role, role_name)

    async def set_role(self, rbac: AccessControl, role_name: str) -> bool:
        """Assign an existing role and persist the record."""
        if self.role == role_name:
            raise AlreadyAssignedError("User already has assigned this role")

        role = await rbac.get_role(role_name)
        if role is None:
            raise NotFoundError("Role does not exists")

        self.role = role.name
        record = await self._save()
        return record.role == role.name

    async def remove_role(self) -> bool:
        """Clear the role. Returns False when there was none."""
        if not self.role:
            return False

        self.role = None
        record = await self._save()
        return record.role is None

    # ============================================================
    # COLLECTION
    # ============================================================

    @classmethod
    async def remove_role_from_collection(cls, db: AsyncSession, role_name: str) -> int:
        """Clear role_name from every record. Returns the number changed."""
        return await SubjectRepository(db, model=cls).clear_role(role_name)

    @classmethod
    async def remove_permission_from_collection(cls, db: AsyncSession, permission_name: str) -> int:
        """Pull permission_name from every record. Returns the number changed."""
        return await SubjectRepository(db, model=cls).pull_permission(permission_name)


@event.listens_for(SubjectMixin, "init", propagate=True)
def _apply_defaults(target: SubjectMixin, args: tuple, kwargs: dict[str, Any]) -> None:
    """Fill role and permissions from the model's options on construction."""
    options = type(target).rbac_options()
    if "role" not in kwargs:
        target.role = options.default_role
    if "permissions" not in kwargs:
        target.permissions = list(options.default_permissions)
