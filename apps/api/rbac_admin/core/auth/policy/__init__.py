"""
Policy engines for authorization.

Available engines:
- roles: admin role name check (default)
- permissions: permission names resolved through the user's roles
"""

from .roles import RoleNamePolicyEngine
from .permissions import PermissionPolicyEngine

__all__ = ["RoleNamePolicyEngine", "PermissionPolicyEngine"]
