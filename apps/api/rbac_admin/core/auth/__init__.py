"""
Authorization module.

Access decisions go through a pluggable policy engine chosen by
AUTH_POLICY_ENGINE:

- roles (default): holding the admin role allows every admin action
- permissions: the action must name a permission granted via the user's roles

Request-level dependencies (CurrentSession, require) live in
core/auth/dependencies.py and are re-exported by api/dependencies/auth.py.

Add custom policy engines:
    @AuthRegistry.policy_engine("custom")
    class CustomPolicyEngine(PolicyEngine):
        ...
"""

from .interfaces import PolicyEngine, PolicyDecision
from .registry import AuthRegistry
from .callbacks import TEST_CREDENTIALS_PROVIDER, build_session, grant_default_role

# Import to register default implementations
from .policy import RoleNamePolicyEngine, PermissionPolicyEngine

__all__ = [
    "PolicyEngine",
    "PolicyDecision",
    "AuthRegistry",
    "TEST_CREDENTIALS_PROVIDER",
    "build_session",
    "grant_default_role",
    "RoleNamePolicyEngine",
    "PermissionPolicyEngine",
]
