"""
Permission service: permission CRUD and lookups by role.
"""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_admin.core.exceptions import ConflictError, NotFoundError
from rbac_admin.models.rbac import Permission, Role, RolePermission

logger = structlog.get_logger()


class PermissionService:
    """Service for managing permissions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_permissions(self) -> list[Permission]:
        stmt = (
            select(Permission)
            .options(selectinload(Permission.role_links).selectinload(RolePermission.role))
            .order_by(Permission.name)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_permission(self, permission_id: UUID) -> Permission:
        """
        Get permission by ID with its roles loaded.

        Raises:
            NotFoundError: If the permission does not exist
        """
        stmt = (
            select(Permission)
            .where(Permission.id == permission_id)
            .options(selectinload(Permission.role_links).selectinload(RolePermission.role))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        permission = result.scalar_one_or_none()
        if not permission:
            raise NotFoundError("Permission not found")
        return permission

    async def get_permission_by_name(self, name: str) -> Permission | None:
        result = await self.db.execute(select(Permission).where(Permission.name == name))
        return result.scalar_one_or_none()

    async def create_permission(self, name: str, description: str | None = None) -> Permission:
        if await self.get_permission_by_name(name):
            raise ConflictError("Permission with this name already exists")

        permission = Permission(name=name, description=description)
        self.db.add(permission)
        await self.db.flush()

        logger.info("permission_created", permission=name)
        return await self.get_permission(permission.id)

    async def update_permission(
        self,
        permission_id: UUID,
        name: str,
        description: str | None = None,
    ) -> Permission:
        permission = await self.get_permission(permission_id)

        conflicting = await self.db.execute(
            select(Permission).where(Permission.name == name, Permission.id != permission_id)
        )
        if conflicting.scalar_one_or_none():
            raise ConflictError("Permission with this name already exists")

        permission.name = name
        permission.description = description
        await self.db.flush()
        return await self.get_permission(permission_id)

    async def delete_permission(self, permission_id: UUID) -> None:
        """
        Delete a permission that no role holds.

        Raises:
            NotFoundError: If the permission does not exist
            ConflictError: If any role still holds it
        """
        permission = await self.get_permission(permission_id)

        if permission.role_links:
            raise ConflictError(
                "Cannot delete permission that is assigned to roles. "
                "Remove it from all roles first."
            )

        await self.db.delete(permission)
        await self.db.flush()
        logger.info("permission_deleted", permission=permission.name)

    # ============================================================
    # LOOKUPS
    # ============================================================

    async def get_by_role(self, role_id: UUID) -> list[Permission]:
        """Permissions attached to a role, ordered by name."""
        if await self.db.get(Role, role_id) is None:
            raise NotFoundError("Role not found")

        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_roles_by_permission(self, permission_id: UUID) -> list[Role]:
        """Roles holding a permission, ordered by name."""
        await self.get_permission(permission_id)

        stmt = (
            select(Role)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .where(RolePermission.permission_id == permission_id)
            .order_by(Role.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

