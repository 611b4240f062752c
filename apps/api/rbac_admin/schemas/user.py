"""
User schemas.
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, AliasChoices

from .role import RoleSummary


class UserResponse(BaseModel):
    """User with assigned roles."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    name: str | None = None
    image: str | None = None
    email_verified: datetime | None = None
    created_at: datetime
    roles: list[RoleSummary] = []


class ProfileUpdate(BaseModel):
    """Self-service profile update."""
    name: str = Field(min_length=1, max_length=100)


class SetUserRolesRequest(BaseModel):
    """
    Replace a user's role set.

    Accepts camelCase (userId, roleNames) or snake_case keys.
    """
    user_id: UUID = Field(validation_alias=AliasChoices("userId", "user_id"))
    role_names: list[str] = Field(validation_alias=AliasChoices("roleNames", "role_names"))
