"""
Permission policy engine.

Resolves the session user's permissions through their roles
(user_roles -> role_permissions -> permissions) and allows an action when
the permission of the same name is among them.

    AUTH_POLICY_ENGINE=permissions
"""

from typing import Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.models.rbac import Permission, RolePermission, UserRole
from ..interfaces import PolicyEngine, PolicyDecision
from ..registry import AuthRegistry


async def get_user_permissions(db: AsyncSession, user_id: Any) -> set[str]:
    """All permission names granted to a user via their roles."""
    stmt = (
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id)
        .distinct()
    )
    result = await db.execute(stmt)
    return set(result.scalars().all())


@AuthRegistry.policy_engine("permissions")
class PermissionPolicyEngine(PolicyEngine):
    """Permission-based engine. Requires context["db"]."""

    def __init__(self, **kwargs: Any):
        pass

    async def evaluate(
        self,
        actor: Any,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> PolicyDecision:
        context = context or {}
        db = context.get("db")
        if actor is None or db is None:
            return PolicyDecision.deny("No session")

        permissions = await get_user_permissions(db, actor.user.id)
        if action in permissions:
            return PolicyDecision.allow(f"Has permission: {action}")
        return PolicyDecision.deny(f"Missing permission: {action}")
