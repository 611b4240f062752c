"""
Role management routes (admin only).
"""

from uuid import UUID
from fastapi import APIRouter, Depends, status

from rbac_admin.schemas.role import RoleCreate, RoleResponse, RoleUpdate
from rbac_admin.services.role import RoleService
from rbac_admin.api.dependencies.auth import require
from rbac_admin.api.dependencies.services import get_role_service

router = APIRouter(dependencies=[Depends(require("manage:roles"))])


@router.get("", response_model=list[RoleResponse])
async def list_roles(role_service: RoleService = Depends(get_role_service)):
    """List roles with their permissions and members."""
    return await role_service.list_roles()


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    role_service: RoleService = Depends(get_role_service),
):
    return await role_service.create_role(data.name, data.description)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: UUID,
    role_service: RoleService = Depends(get_role_service),
):
    return await role_service.get_role(role_id)


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    role_service: RoleService = Depends(get_role_service),
):
    return await role_service.update_role(role_id, data.name, data.description)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: UUID,
    role_service: RoleService = Depends(get_role_service),
):
    """Delete a role. The admin role and roles still assigned to users are kept."""
    await role_service.delete_role(role_id)


@router.post("/{role_id}/permissions/{permission_id}", response_model=RoleResponse)
async def assign_permission(
    role_id: UUID,
    permission_id: UUID,
    role_service: RoleService = Depends(get_role_service),
):
    return await role_service.assign_permission(role_id, permission_id)


@router.delete("/{role_id}/permissions/{permission_id}", response_model=RoleResponse)
async def remove_permission(
    role_id: UUID,
    permission_id: UUID,
    role_service: RoleService = Depends(get_role_service),
):
    return await role_service.remove_permission(role_id, permission_id)
