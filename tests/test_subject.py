"""
Tests for the subject binding (SubjectMixin).
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrbac.core.exceptions import (
    AlreadyAssignedError,
    ConsistencyError,
    NotAssignedError,
    NotFoundError,
    PersistenceError,
)
from hrbac.rbac import RBAC
from hrbac.repositories import BaseRepository, SubjectRepository


async def _stored(db: AsyncSession, user, column: str):
    """Read one column straight from the database."""
    model = type(user)
    return await db.scalar(select(getattr(model, column)).where(model.id == user.id))


# ============ can ============


@pytest.mark.asyncio
async def test_ad_hoc_permission_without_role(rbac: RBAC, user_factory):
    """A subject with only an ad-hoc grant can use it and nothing else."""
    user = await user_factory.create(permissions=["delete_doc"])

    assert await user.can(rbac, "delete", "doc") is True
    assert await user.can(rbac, "write", "doc") is False


@pytest.mark.asyncio
async def test_can_through_role(rbac: RBAC, user_factory):
    user = await user_factory.create(role="superEditor")

    assert await user.can(rbac, "write", "doc") is True
    assert await user.can(rbac, "read", "doc") is False


@pytest.mark.asyncio
async def test_can_unknown_permission(rbac: RBAC, user_factory):
    user = await user_factory.create(role="editor", permissions=["fly_doc"])

    assert await user.can(rbac, "fly", "doc") is False


# ============ add_permission ============


@pytest.mark.asyncio
async def test_add_permission(rbac: RBAC, db: AsyncSession, test_user):
    assert await test_user.add_permission(rbac, "read", "doc") is True

    assert test_user.permissions == ["read_doc"]
    assert await _stored(db, test_user, "permissions") == ["read_doc"]


@pytest.mark.asyncio
async def test_add_permission_twice_fails(rbac: RBAC, db: AsyncSession, test_user):
    await test_user.add_permission(rbac, "read", "doc")

    with pytest.raises(AlreadyAssignedError, match="Permission is already assigned"):
        await test_user.add_permission(rbac, "read", "doc")

    assert await _stored(db, test_user, "permissions") == ["read_doc"]


@pytest.mark.asyncio
async def test_add_unknown_permission_fails(rbac: RBAC, test_user):
    with pytest.raises(NotFoundError, match="Permission not exists"):
        await test_user.add_permission(rbac, "fly", "doc")

    assert test_user.permissions == []


# ============ remove_permission ============


@pytest.mark.asyncio
async def test_remove_permission(rbac: RBAC, db: AsyncSession, user_factory):
    user = await user_factory.create(permissions=["read_doc", "write_doc"])

    assert await user.remove_permission("read_doc") is True

    assert await _stored(db, user, "permissions") == ["write_doc"]
    assert await user.can(rbac, "read", "doc") is False


@pytest.mark.asyncio
async def test_remove_unassigned_permission_fails(test_user):
    with pytest.raises(NotAssignedError, match="Permission was not assigned"):
        await test_user.remove_permission("read_doc")


@pytest.mark.asyncio
async def test_remove_permission_verifies_persisted_record(user_factory, monkeypatch):
    user = await user_factory.create(permissions=["read_doc"])

    async def stale_save(self, entity):
        return SimpleNamespace(permissions=["read_doc"], role=None)

    monkeypatch.setattr(SubjectRepository, "save", stale_save)

    with pytest.raises(ConsistencyError, match="Permission was not removed"):
        await user.remove_permission("read_doc")


# ============ roles ============


@pytest.mark.asyncio
async def test_set_role(rbac: RBAC, db: AsyncSession, test_user):
    assert await test_user.set_role(rbac, "editor") is True

    assert test_user.role == "editor"
    assert await _stored(db, test_user, "role") == "editor"
    assert await test_user.can(rbac, "write", "doc") is True


@pytest.mark.asyncio
async def test_set_same_role_fails(rbac: RBAC, db: AsyncSession, user_factory):
    user = await user_factory.create(role="editor")

    with pytest.raises(AlreadyAssignedError, match="User already has assigned this role"):
        await user.set_role(rbac, "editor")

    assert await _stored(db, user, "role") == "editor"


@pytest.mark.asyncio
async def test_set_unknown_role_fails(rbac: RBAC, test_user):
    with pytest.raises(NotFoundError, match="Role does not exists"):
        await test_user.set_role(rbac, "ghost")

    assert test_user.role is None


@pytest.mark.asyncio
async def test_remove_role(rbac: RBAC, db: AsyncSession, user_factory):
    user = await user_factory.create(role="editor")

    assert await user.remove_role() is True
    assert await _stored(db, user, "role") is None
    assert await user.can(rbac, "write", "doc") is False


@pytest.mark.asyncio
async def test_remove_role_without_role(test_user):
    assert await test_user.remove_role() is False


@pytest.mark.asyncio
async def test_has_role(rbac: RBAC, user_factory, test_user):
    user = await user_factory.create(role="superEditor")

    assert await user.has_role(rbac, "editor") is True
    assert await user.has_role(rbac, "superEditor") is True
    assert await user.has_role(rbac, "viewer") is False
    assert await test_user.has_role(rbac, "viewer") is False


# ============ scope ============


@pytest.mark.asyncio
async def test_get_scope_unions_role_and_ad_hoc(rbac: RBAC, user_factory):
    user = await user_factory.create(role="superEditor", permissions=["delete_doc", "write_doc"])

    assert await user.get_scope(rbac) == {"write_doc", "delete_doc"}


@pytest.mark.asyncio
async def test_get_scope_without_role(rbac: RBAC, user_factory):
    user = await user_factory.create(permissions=["read_doc"])

    assert await user.get_scope(rbac) == {"read_doc"}


# ============ collection ============


@pytest.mark.asyncio
async def test_remove_role_from_collection(db: AsyncSession, user_factory, user_model):
    editors = [await user_factory.create(role="editor") for _ in range(2)]
    viewer = await user_factory.create(role="viewer")

    count = await user_model.remove_role_from_collection(db, "editor")

    assert count == 2
    for user in editors:
        assert await _stored(db, user, "role") is None
    assert await _stored(db, viewer, "role") == "viewer"


@pytest.mark.asyncio
async def test_remove_permission_from_collection(db: AsyncSession, user_factory, user_model):
    first = await user_factory.create(permissions=["read_doc", "write_doc"])
    second = await user_factory.create(permissions=["write_doc"])
    third = await user_factory.create(permissions=["read_doc"])

    count = await user_model.remove_permission_from_collection(db, "write_doc")

    assert count == 2
    assert await _stored(db, first, "permissions") == ["read_doc"]
    assert await _stored(db, second, "permissions") == []
    assert await _stored(db, third, "permissions") == ["read_doc"]


@pytest.mark.asyncio
async def test_remove_permission_from_collection_skips_other_rows(
    db: AsyncSession, user_factory, user_model
):
    """Only records holding the permission are loaded into the session."""
    holders = [await user_factory.create(permissions=["write_doc"]) for _ in range(2)]
    # "_" must not act as a LIKE wildcard
    lookalike = await user_factory.create(permissions=["writeXdoc"])
    other = await user_factory.create(permissions=["read_doc"])
    db.expunge_all()

    loaded = []

    def on_load(target, context):
        loaded.append(target.id)

    event.listen(user_model, "load", on_load)
    try:
        count = await user_model.remove_permission_from_collection(db, "write_doc")
    finally:
        event.remove(user_model, "load", on_load)

    assert count == 2
    assert sorted(loaded) == sorted(user.id for user in holders)
    assert await _stored(db, lookalike, "permissions") == ["writeXdoc"]
    assert await _stored(db, other, "permissions") == ["read_doc"]


# ============ persistence ============


@pytest.mark.asyncio
async def test_detached_subject_fails(rbac: RBAC, user_model):
    user = user_model(email="detached@example.com", permissions=[])

    with pytest.raises(PersistenceError):
        await user.add_permission(rbac, "read", "doc")


@pytest.mark.asyncio
async def test_missing_record_after_save_fails(rbac: RBAC, test_user, monkeypatch):
    async def lost_save(self, entity):
        return None

    monkeypatch.setattr(BaseRepository, "save", lost_save)

    with pytest.raises(PersistenceError, match="User is undefined"):
        await test_user.set_role(rbac, "viewer")


# ============ defaults ============


@pytest.mark.asyncio
async def test_configured_defaults(rbac: RBAC, db: AsyncSession, member_model):
    member = member_model(name="ann")
    db.add(member)
    await db.flush()
    await db.refresh(member)

    assert member.role == "viewer"
    assert member.permissions == ["read_doc"]
    assert await member.can(rbac, "read", "doc") is True


@pytest.mark.asyncio
async def test_pending_subject_can_be_saved(rbac: RBAC, db: AsyncSession, user_model):
    user = user_model(email="pending@example.com")
    db.add(user)

    assert await user.add_permission(rbac, "read", "doc") is True
    assert await _stored(db, user, "permissions") == ["read_doc"]


@pytest.mark.asyncio
async def test_defaults_set_on_construction(rbac: RBAC, db: AsyncSession, member_model):
    member = member_model(name="bob")
    db.add(member)

    assert member.role == "viewer"
    assert member.permissions == ["read_doc"]
    assert await member.can(rbac, "read", "doc") is True


@pytest.mark.asyncio
async def test_pending_subject_keeps_default_permissions(rbac: RBAC, db: AsyncSession, member_model):
    member = member_model(name="bob")
    db.add(member)

    assert await member.add_permission(rbac, "write", "doc") is True
    assert await _stored(db, member, "permissions") == ["read_doc", "write_doc"]


@pytest.mark.asyncio
async def test_pending_subject_default_role_already_assigned(rbac: RBAC, db: AsyncSession, member_model):
    member = member_model(name="bob")
    db.add(member)

    with pytest.raises(AlreadyAssignedError, match="User already has assigned this role"):
        await member.set_role(rbac, "viewer")


@pytest.mark.asyncio
async def test_explicit_values_override_defaults(rbac: RBAC, db: AsyncSession, member_model):
    member = member_model(name="bob", role=None, permissions=[])
    db.add(member)
    await db.flush()

    assert await _stored(db, member, "role") is None
    assert await _stored(db, member, "permissions") == []
    assert await member.can(rbac, "read", "doc") is False
