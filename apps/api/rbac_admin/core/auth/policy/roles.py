"""
Role-name policy engine - DEFAULT implementation.

Access is decided by the role names on the session: holding the admin role
("ADMIN") allows every admin action, anything else is denied. Permissions
attached to roles are not consulted.

    AUTH_POLICY_ENGINE=roles
"""

from typing import Any
from ..interfaces import PolicyEngine, PolicyDecision
from ..registry import AuthRegistry


@AuthRegistry.policy_engine("roles")
class RoleNamePolicyEngine(PolicyEngine):
    """
    Configuration:
        admin_role: Role name that grants admin capability (default: "ADMIN")
    """

    def __init__(self, admin_role: str = "ADMIN", **kwargs: Any):
        self.admin_role = admin_role

    async def evaluate(
        self,
        actor: Any,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> PolicyDecision:
        roles = actor.user.roles if actor is not None else []
        if self.admin_role in roles:
            return PolicyDecision.allow(f"Has role: {self.admin_role}")
        return PolicyDecision.deny("Admin access required")
