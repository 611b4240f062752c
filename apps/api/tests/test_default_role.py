"""
Tests for the default-role grant on first external sign-in.
"""

from uuid import uuid4

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.auth.callbacks import TEST_CREDENTIALS_PROVIDER, grant_default_role
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import User
from rbac_admin.services.user import UserService


@pytest.mark.asyncio
async def test_grants_user_role_to_roleless_user(db: AsyncSession, seeded, user_factory):
    user = await user_factory.create()

    role = await grant_default_role(db, user, "discord")

    assert role is not None
    assert role.name == "USER"
    assert await UserService(db).get_role_names(user.id) == ["USER"]


@pytest.mark.asyncio
async def test_repeat_sign_in_grants_nothing(db: AsyncSession, seeded, user_factory):
    user = await user_factory.create()

    await grant_default_role(db, user, "discord")
    again = await grant_default_role(db, user, "discord")

    assert again is None
    assert await UserService(db).count_roles(user.id) == 1


@pytest.mark.asyncio
async def test_existing_roles_left_alone(db: AsyncSession, seeded, user_factory):
    """A user who already has a role (e.g. ADMIN) does not also get USER."""
    user = await user_factory.create(roles=["ADMIN"])

    assert await grant_default_role(db, user, "discord") is None
    assert await UserService(db).get_role_names(user.id) == ["ADMIN"]


@pytest.mark.asyncio
async def test_test_credentials_provider_exempt(db: AsyncSession, seeded, user_factory):
    user = await user_factory.create()

    assert await grant_default_role(db, user, TEST_CREDENTIALS_PROVIDER) is None
    assert await UserService(db).get_role_names(user.id) == []


@pytest.mark.asyncio
async def test_missing_default_role_soft_fails(db: AsyncSession, user_factory):
    """Without a seeded USER role sign-in proceeds and the user stays role-less."""
    user = await user_factory.create()

    assert await grant_default_role(db, user, "discord") is None
    assert await UserService(db).get_role_names(user.id) == []


@pytest.mark.asyncio
async def test_configurable_default_role(db: AsyncSession, seeded, user_factory):
    db.add(Role(name="MEMBER"))
    await db.flush()
    user = await user_factory.create()

    role = await grant_default_role(db, user, "discord", default_role="MEMBER")

    assert role.name == "MEMBER"


@pytest.mark.asyncio
async def test_concurrent_grant_is_benign(
    db: AsyncSession,
    seeded,
    user_factory,
    monkeypatch,
):
    """If another sign-in inserted the row first, the duplicate is swallowed."""
    user = await user_factory.create()
    user_role = seeded["USER"]

    # The other request's insert, landing after our zero-count check
    await db.execute(insert(UserRole).values(user_id=user.id, role_id=user_role.id))

    async def stale_count(self, user_id):
        return 0

    monkeypatch.setattr(UserService, "count_roles", stale_count)

    role = await grant_default_role(db, user, "discord")

    assert role is not None
    assert role.name == "USER"
    result = await db.execute(select(UserRole).where(UserRole.user_id == user.id))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_other_integrity_errors_propagate(db: AsyncSession, seeded):
    """A user that does not exist breaks the foreign key; that is not swallowed."""
    ghost = User(id=uuid4(), email="ghost@example.com")

    with pytest.raises(IntegrityError):
        await grant_default_role(db, ghost, "discord")
