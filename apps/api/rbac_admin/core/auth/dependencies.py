"""
FastAPI dependencies for authentication and authorization.

Usage:
    from rbac_admin.api.dependencies.auth import CurrentSession, require

    @router.get("/me")
    async def handler(session: CurrentSession):
        ...

    @router.get("/roles")
    async def handler(session: AuthSession = Depends(require("manage:roles"))):
        ...
"""

from typing import Annotated, Callable
from functools import lru_cache

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.config import settings
from rbac_admin.schemas.auth import AuthSession
from rbac_admin.services.auth import AuthService
from rbac_admin.api.dependencies.database import get_db

from .callbacks import build_session
from .interfaces import PolicyEngine
from .registry import AuthRegistry

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# COMPONENT FACTORIES
# ============================================================

@lru_cache
def get_policy_engine() -> PolicyEngine:
    """
    Get configured policy engine.

    Reads from AUTH_POLICY_ENGINE environment variable.
    Default: "roles" (admin role name check)
    """
    engine_name = settings.auth.policy_engine

    if engine_name == "roles":
        return AuthRegistry.get_policy_engine(engine_name, admin_role=settings.auth.admin_role)
    return AuthRegistry.get_policy_engine(engine_name)


# ============================================================
# SESSION DEPENDENCIES
# ============================================================

def get_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Session token from the session cookie, else from a Bearer header."""
    token = request.cookies.get(settings.auth.session_cookie_name)
    if token:
        return token
    if credentials:
        return credentials.credentials
    return None


async def get_optional_session(
    token: str | None = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
) -> AuthSession | None:
    """Hydrated session if the request carries a live token, None otherwise."""
    if not token:
        return None

    found = await AuthService(db).get_session(token)
    if found is None:
        return None

    session, user = found
    return await build_session(db, session, user)


async def get_current_session(
    session: AuthSession | None = Depends(get_optional_session),
) -> AuthSession:
    """
    Require an authenticated session.

    Raises:
        HTTPException 401: If not authenticated
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


# ============================================================
# AUTHORIZATION
# ============================================================

def require(permission: str) -> Callable:
    """
    Dependency factory: require the session to be allowed `permission`.

    The decision is delegated to the configured policy engine.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If the engine denies the action
    """

    async def check(
        session: AuthSession = Depends(get_current_session),
        db: AsyncSession = Depends(get_db),
    ) -> AuthSession:
        decision = await get_policy_engine().evaluate(
            session,
            permission,
            context={"db": db},
        )
        if not decision.allowed:
            logger.info(
                "access_denied",
                user_id=str(session.user.id),
                permission=permission,
                reason=decision.reason,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=decision.reason or "Forbidden",
            )
        return session

    return check


# ============================================================
# TYPE ALIASES FOR CLEAN SIGNATURES
# ============================================================

CurrentSession = Annotated[AuthSession, Depends(get_current_session)]

OptionalSession = Annotated[AuthSession | None, Depends(get_optional_session)]
