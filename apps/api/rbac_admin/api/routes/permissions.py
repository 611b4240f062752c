"""
Permission management routes (admin only).
"""

from uuid import UUID
from fastapi import APIRouter, Depends, status

from rbac_admin.schemas.role import (
    PermissionCreate,
    PermissionResponse,
    PermissionSummary,
    PermissionUpdate,
    RoleSummary,
)
from rbac_admin.services.permission import PermissionService
from rbac_admin.api.dependencies.auth import require
from rbac_admin.api.dependencies.services import get_permission_service

router = APIRouter(dependencies=[Depends(require("manage:permissions"))])


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    permission_service: PermissionService = Depends(get_permission_service),
):
    """List permissions with the roles holding them."""
    return await permission_service.list_permissions()


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    permission_service: PermissionService = Depends(get_permission_service),
):
    return await permission_service.create_permission(data.name, data.description)


@router.get("/by-role/{role_id}", response_model=list[PermissionSummary])
async def list_permissions_by_role(
    role_id: UUID,
    permission_service: PermissionService = Depends(get_permission_service),
):
    return await permission_service.get_by_role(role_id)


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: UUID,
    permission_service: PermissionService = Depends(get_permission_service),
):
    return await permission_service.get_permission(permission_id)


@router.get("/{permission_id}/roles", response_model=list[RoleSummary])
async def list_permission_roles(
    permission_id: UUID,
    permission_service: PermissionService = Depends(get_permission_service),
):
    return await permission_service.get_roles_by_permission(permission_id)


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: UUID,
    data: PermissionUpdate,
    permission_service: PermissionService = Depends(get_permission_service),
):
    return await permission_service.update_permission(
        permission_id, data.name, data.description
    )


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: UUID,
    permission_service: PermissionService = Depends(get_permission_service),
):
    """Delete a permission that no role holds."""
    await permission_service.delete_permission(permission_id)
