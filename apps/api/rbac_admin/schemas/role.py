"""
Role and permission schemas.
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


class RoleSummary(BaseModel):
    """Role without its relations."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None


class PermissionSummary(BaseModel):
    """Permission without its relations."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None


class RoleMember(BaseModel):
    """User assigned to a role."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str | None = None
    email: str | None = None


class RoleResponse(RoleSummary):
    """Role with its permissions and members."""
    created_at: datetime
    updated_at: datetime
    permissions: list[PermissionSummary] = []
    users: list[RoleMember] = []


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


class RoleUpdate(RoleCreate):
    pass


class PermissionResponse(PermissionSummary):
    """Permission with the roles that hold it."""
    created_at: datetime
    updated_at: datetime
    roles: list[RoleSummary] = []


class PermissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


class PermissionUpdate(PermissionCreate):
    pass
