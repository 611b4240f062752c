"""
RBAC Models - Roles, Permissions, and Assignments.

- Role: named bundle assigned to users; the name itself drives access checks
- Permission: capability string in "verb:noun" form (e.g. "manage:users")
- UserRole: links users to roles
- RolePermission: links roles to permissions

Usage:
    admin_role = Role(name="ADMIN", description="Administrator")
    perm = Permission(name="manage:users")
    db.add(RolePermission(role=admin_role, permission=perm))
    db.add(UserRole(user_id=user.id, role_id=admin_role.id))
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID
from sqlalchemy import String, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from .base import Base, StandardMixin

if TYPE_CHECKING:
    from .user import User


class Role(Base, StandardMixin):
    """
    Role definition.

    Deleting a role removes its user and permission links (FK cascade).
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    user_links: Mapped[list[UserRole]] = relationship(
        "UserRole",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    permission_links: Mapped[list[RolePermission]] = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def permissions(self) -> list[Permission]:
        return [link.permission for link in self.permission_links]

    @property
    def users(self) -> list[User]:
        return [link.user for link in self.user_links]

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class Permission(Base, StandardMixin):
    """
    Permission definition.

    Permissions are pure data: they are attached to roles and shown in the
    admin panel. Only the "permissions" policy engine consults them.
    """

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    role_links: Mapped[list[RolePermission]] = relationship(
        "RolePermission",
        back_populates="permission",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def roles(self) -> list[Role]:
        return [link.role for link in self.role_links]

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class UserRole(Base):
    """User role assignment. (user_id, role_id) is unique."""

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped[User] = relationship("User", back_populates="role_links")
    role: Mapped[Role] = relationship("Role", back_populates="user_links")

    def __repr__(self) -> str:
        return f"<UserRole user={self.user_id} role={self.role_id}>"


class RolePermission(Base):
    """Role permission assignment. (role_id, permission_id) is unique."""

    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    role: Mapped[Role] = relationship("Role", back_populates="permission_links")
    permission: Mapped[Permission] = relationship("Permission", back_populates="role_links")

    def __repr__(self) -> str:
        return f"<RolePermission role={self.role_id} permission={self.permission_id}>"
