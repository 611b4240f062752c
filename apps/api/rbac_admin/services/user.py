"""
User service: lookups, role resolution and role reassignment.
"""

from uuid import UUID

import structlog
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_admin.core.exceptions import NotFoundError, RolesNotFound
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import User

logger = structlog.get_logger()


def _with_roles():
    return selectinload(User.role_links).selectinload(UserRole.role)


class UserService:
    """User management service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID | str) -> User | None:
        """Get user by ID."""
        if isinstance(user_id, str):
            user_id = UUID(user_id)
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email."""
        stmt = select(User).where(User.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_with_roles(self, user_id: UUID) -> User | None:
        """Get user with role assignments loaded (fresh from the database)."""
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(_with_roles())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_with_roles(self) -> list[User]:
        """List all users with their roles."""
        stmt = (
            select(User)
            .options(_with_roles())
            .order_by(User.created_at, User.email)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_profile(self, user_id: UUID, name: str) -> User:
        """Update the user's display name."""
        user = await self.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        user.name = name
        await self.db.flush()
        return await self.get_with_roles(user_id)

    # ============================================================
    # ROLE RESOLUTION
    # ============================================================

    async def get_role_names(self, user_id: UUID) -> list[str]:
        """
        Names of the roles currently assigned to a user.

        An unknown user simply has no roles. Not cached: every session
        read costs one query.
        """
        stmt = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_roles(self, user_id: UUID) -> int:
        stmt = select(func.count()).select_from(UserRole).where(UserRole.user_id == user_id)
        return await self.db.scalar(stmt) or 0

    # ============================================================
    # ROLE REASSIGNMENT
    # ============================================================

    async def set_roles(self, user_id: UUID, role_names: list[str]) -> User:
        """
        Replace a user's role set with exactly the named roles.

        Validation happens before anything is written: if any name does not
        resolve, RolesNotFound lists the missing names and the user's roles
        are untouched. The delete and re-insert run in one transaction.

        Concurrent calls for the same user are last-commit-wins.

        Raises:
            RolesNotFound: One or more names do not exist
            NotFoundError: The user does not exist
        """
        requested = set(role_names)

        result = await self.db.execute(select(Role).where(Role.name.in_(list(requested))))
        roles = list(result.scalars().all())

        if len(roles) < len(requested):
            missing = requested - {role.name for role in roles}
            logger.info(
                "set_roles_rejected",
                user_id=str(user_id),
                missing=sorted(missing),
            )
            raise RolesNotFound(list(missing))

        if not await self.get_by_id(user_id):
            raise NotFoundError("User not found")

        async with self.db.begin_nested():
            await self.db.execute(delete(UserRole).where(UserRole.user_id == user_id))
            self.db.add_all(UserRole(user_id=user_id, role_id=role.id) for role in roles)
            await self.db.flush()

        logger.info(
            "roles_updated",
            user_id=str(user_id),
            roles=sorted(role.name for role in roles),
        )
        return await self.get_with_roles(user_id)
