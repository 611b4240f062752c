"""
Role service: role CRUD and role-permission assignment.
"""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import ConflictError, NotFoundError
from rbac_admin.models.rbac import Permission, Role, RolePermission, UserRole

logger = structlog.get_logger()


def _with_relations():
    return (
        selectinload(Role.permission_links).selectinload(RolePermission.permission),
        selectinload(Role.user_links).selectinload(UserRole.user),
    )


class RoleService:
    """
    Service for managing roles.

    The admin role is system-protected: it can be edited but not deleted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_roles(self) -> list[Role]:
        """List all roles with permissions and members, ordered by name."""
        stmt = (
            select(Role)
            .options(*_with_relations())
            .order_by(Role.name)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_role(self, role_id: UUID) -> Role:
        """
        Get role by ID with relations loaded.

        Raises:
            NotFoundError: If the role does not exist
        """
        stmt = (
            select(Role)
            .where(Role.id == role_id)
            .options(*_with_relations())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        role = result.scalar_one_or_none()
        if not role:
            raise NotFoundError("Role not found")
        return role

    async def get_role_by_name(self, name: str) -> Role | None:
        result = await self.db.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def create_role(self, name: str, description: str | None = None) -> Role:
        """Create a role. Names are unique."""
        if await self.get_role_by_name(name):
            raise ConflictError("Role with this name already exists")

        role = Role(name=name, description=description)
        self.db.add(role)
        await self.db.flush()

        logger.info("role_created", role=name)
        return await self.get_role(role.id)

    async def update_role(
        self,
        role_id: UUID,
        name: str,
        description: str | None = None,
    ) -> Role:
        """Rename / re-describe a role."""
        role = await self.get_role(role_id)

        conflicting = await self.db.execute(
            select(Role).where(Role.name == name, Role.id != role_id)
        )
        if conflicting.scalar_one_or_none():
            raise ConflictError("Role with this name already exists")

        role.name = name
        role.description = description
        await self.db.flush()
        return await self.get_role(role_id)

    async def delete_role(self, role_id: UUID) -> None:
        """
        Delete a role.

        Raises:
            NotFoundError: If the role does not exist
            ConflictError: If the role is the admin role or still assigned
        """
        role = await self.get_role(role_id)

        if role.name == settings.auth.admin_role:
            raise ConflictError(f"Cannot delete the {role.name} role")

        if role.user_links:
            raise ConflictError(
                "Cannot delete role that is assigned to users. "
                "Remove all user assignments first."
            )

        await self.db.delete(role)
        await self.db.flush()
        logger.info("role_deleted", role=role.name)

    # ============================================================
    # PERMISSION ASSIGNMENT
    # ============================================================

    async def assign_permission(self, role_id: UUID, permission_id: UUID) -> Role:
        """Attach a permission to a role."""
        role = await self.get_role(role_id)
        permission = await self.db.get(Permission, permission_id)
        if not permission:
            raise NotFoundError("Permission not found")

        if await self.db.get(RolePermission, (role_id, permission_id)):
            raise ConflictError("Permission is already assigned to this role")

        self.db.add(RolePermission(role_id=role.id, permission_id=permission.id))
        await self.db.flush()

        logger.info("permission_assigned", role=role.name, permission=permission.name)
        return await self.get_role(role_id)

    async def remove_permission(self, role_id: UUID, permission_id: UUID) -> Role:
        """Detach a permission from a role."""
        link = await self.db.get(RolePermission, (role_id, permission_id))
        if not link:
            raise NotFoundError("Permission is not assigned to this role")

        await self.db.delete(link)
        await self.db.flush()
        return await self.get_role(role_id)
