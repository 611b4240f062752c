"""
Authentication dependencies.

Re-exports the session and authorization dependencies from core/auth so
routes import everything HTTP-facing from one place.
"""

from rbac_admin.core.auth.dependencies import (
    CurrentSession,
    OptionalSession,
    get_current_session,
    get_optional_session,
    get_policy_engine,
    get_session_token,
    require,
)

__all__ = [
    "CurrentSession",
    "OptionalSession",
    "get_current_session",
    "get_optional_session",
    "get_policy_engine",
    "get_session_token",
    "require",
]
