"""
Authentication schemas.
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    """User as exposed on the session, with resolved role names."""
    id: UUID
    email: str | None = None
    name: str | None = None
    image: str | None = None
    roles: list[str] = []


class AuthSession(BaseModel):
    """Hydrated session returned to clients."""
    user: SessionUser
    expires: datetime


class CredentialsSignInRequest(BaseModel):
    """Test-credentials sign-in request."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class SignInResponse(BaseModel):
    """Session token issued by a sign-in."""
    session_token: str
    expires: datetime
    user: SessionUser


class OAuthProfile(BaseModel):
    """Normalized profile returned by an OAuth provider."""
    provider: str
    provider_account_id: str
    email: str | None = None
    name: str | None = None
    image: str | None = None
    email_verified: bool = False

    # Provider tokens
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: int | None = None
    token_type: str | None = None
    scope: str | None = None
