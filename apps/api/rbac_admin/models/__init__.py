"""
Database models.
"""

from .base import (
    Base,
    TimestampMixin,
    UUIDMixin,
    StandardMixin,
)
from .user import User, Account, Session
from .rbac import Role, Permission, UserRole, RolePermission

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "StandardMixin",
    # Identity
    "User",
    "Account",
    "Session",
    # RBAC
    "Role",
    "Permission",
    "UserRole",
    "RolePermission",
]
