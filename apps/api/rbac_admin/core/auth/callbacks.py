"""
Sign-in and session callbacks.

These are the two points where the RBAC model plugs into authentication:

- grant_default_role: runs once per successful external-provider sign-in
  and gives a role-less user the default role.
- build_session: runs on every session read and attaches the user's
  current role names to the outward-facing session.
"""

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import settings
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import Session, User
from rbac_admin.schemas.auth import AuthSession, SessionUser
from rbac_admin.services.user import UserService

logger = structlog.get_logger()

# Provider id of the test-only credentials sign-in
TEST_CREDENTIALS_PROVIDER = "test-credentials"


async def _assignment_exists(db: AsyncSession, user_id: Any, role_id: Any) -> bool:
    stmt = select(UserRole).where(
        UserRole.user_id == user_id,
        UserRole.role_id == role_id,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def grant_default_role(
    db: AsyncSession,
    user: User,
    provider: str,
    default_role: str | None = None,
) -> Role | None:
    """
    Give a user with no roles the default role.

    Only fires when the user's role count is exactly zero, so repeated
    sign-ins never add a second role or override one an admin assigned.
    Test-credentials sign-ins are exempt.

    Returns:
        The granted Role, or None if nothing was granted
    """
    if provider == TEST_CREDENTIALS_PROVIDER:
        return None

    if await UserService(db).count_roles(user.id) > 0:
        return None

    role_name = default_role or settings.auth.default_role
    result = await db.execute(select(Role).where(Role.name == role_name))
    role = result.scalar_one_or_none()
    if not role:
        logger.warning(
            "default_role_missing",
            role=role_name,
            user_id=str(user.id),
        )
        return None

    try:
        async with db.begin_nested():
            db.add(UserRole(user_id=user.id, role_id=role.id))
            await db.flush()
    except IntegrityError:
        # A concurrent first sign-in may already have inserted the same row.
        if not await _assignment_exists(db, user.id, role.id):
            raise
        logger.debug("default_role_already_granted", user_id=str(user.id), role=role.name)
        return role

    logger.info("default_role_granted", user_id=str(user.id), role=role.name, provider=provider)
    return role


async def build_session(db: AsyncSession, session: Session, user: User) -> AuthSession:
    """Hydrate a session with the user's current role names."""
    roles = await UserService(db).get_role_names(user.id)
    return AuthSession(
        user=SessionUser(
            id=user.id,
            email=user.email,
            name=user.name,
            image=user.image,
            roles=roles,
        ),
        expires=session.expires,
    )
