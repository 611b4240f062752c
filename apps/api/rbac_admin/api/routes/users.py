"""
User routes: own profile and role reassignment.
"""

from fastapi import APIRouter, Depends

from rbac_admin.core.exceptions import NotFoundError
from rbac_admin.schemas.auth import AuthSession
from rbac_admin.schemas.user import ProfileUpdate, SetUserRolesRequest, UserResponse
from rbac_admin.services.user import UserService
from rbac_admin.api.dependencies.auth import CurrentSession, require
from rbac_admin.api.dependencies.services import get_user_service

router = APIRouter()


@router.get("", response_model=list[UserResponse])
async def list_users(
    user_service: UserService = Depends(get_user_service),
    _: AuthSession = Depends(require("manage:users")),
):
    """List all users with their roles (admin only)."""
    return await user_service.list_with_roles()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    session: CurrentSession,
    user_service: UserService = Depends(get_user_service),
):
    """Get current user profile."""
    user = await user_service.get_with_roles(session.user.id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    data: ProfileUpdate,
    session: CurrentSession,
    user_service: UserService = Depends(get_user_service),
):
    """Update own display name."""
    return await user_service.update_profile(session.user.id, data.name)


@router.post("/roles", response_model=UserResponse)
async def set_user_roles(
    data: SetUserRolesRequest,
    user_service: UserService = Depends(get_user_service),
    _: AuthSession = Depends(require("manage:users")),
):
    """Replace a user's roles with exactly the named set (admin only)."""
    return await user_service.set_roles(data.user_id, data.role_names)
