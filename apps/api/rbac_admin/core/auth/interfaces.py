"""
Authorization interfaces - Core abstractions.

Route code depends only on these; the configured engine is chosen by
AUTH_POLICY_ENGINE (see registry.py).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


# ============================================================
# POLICY DECISION
# ============================================================

@dataclass
class PolicyDecision:
    """
    Result of a policy evaluation.

    Attributes:
        allowed: Whether the action is permitted
        reason: Human-readable explanation (for errors/logging)
        metadata: Additional data
    """
    allowed: bool
    reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls, reason: str | None = None) -> "PolicyDecision":
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str = "Permission denied") -> "PolicyDecision":
        return cls(allowed=False, reason=reason)


# ============================================================
# POLICY ENGINE
# ============================================================

class PolicyEngine(ABC):
    """
    Abstract policy engine interface.

    Evaluates whether a session may perform an action.

    Implementations:
    - RoleNamePolicyEngine: admin role name grants everything (default)
    - PermissionPolicyEngine: permissions resolved through roles
    """

    @abstractmethod
    async def evaluate(
        self,
        actor: Any,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> PolicyDecision:
        """
        Evaluate if actor can perform action.

        Args:
            actor: The hydrated session (AuthSession)
            action: Permission name required (e.g., "manage:users")
            context: Extra data; "db" carries the request's AsyncSession

        Returns:
            PolicyDecision with allowed status and reason
        """
        pass
