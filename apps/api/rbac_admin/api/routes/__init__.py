"""
API routes aggregation.
"""

from fastapi import APIRouter

from rbac_admin.core.config import settings
from .auth import router as auth_router
from .users import router as users_router
from .roles import router as roles_router
from .permissions import router as permissions_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(users_router, prefix="/users", tags=["users"])
router.include_router(roles_router, prefix="/roles", tags=["roles"])
router.include_router(permissions_router, prefix="/permissions", tags=["permissions"])

# Test-only sign-in; never mounted in production
if settings.test_auth_enabled:
    from .auth_test import router as auth_test_router

    router.include_router(auth_test_router, prefix="/auth", tags=["auth-test"])
