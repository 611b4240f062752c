"""
Authentication routes: OAuth sign-in, session read and sign-out.
"""

import secrets

import structlog
from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.core.auth.providers import get_provider
from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import AuthError
from rbac_admin.models.user import Session
from rbac_admin.schemas.auth import AuthSession
from rbac_admin.services.auth import AuthService
from rbac_admin.api.dependencies.auth import OptionalSession, get_session_token
from rbac_admin.api.dependencies.database import get_db
from rbac_admin.api.dependencies.services import get_auth_service

logger = structlog.get_logger()

router = APIRouter()

NONCE_COOKIE = "oauth_nonce"


def set_session_cookie(response: Response, session: Session) -> None:
    """Attach the session token cookie to a response."""
    response.set_cookie(
        key=settings.auth.session_cookie_name,
        value=session.session_token,
        max_age=settings.auth.session_max_age_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.auth.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def callback_url(provider_id: str) -> str:
    return f"{settings.base_url.rstrip('/')}/api/auth/callback/{provider_id}"


@router.get("/session", response_model=AuthSession | None)
async def read_session(session: OptionalSession):
    """Current session with role names, or null."""
    return session


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    response: Response,
    token: str | None = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Delete the session and clear the cookie."""
    if token and await auth_service.delete_session(token):
        logger.info("signed_out")
    response.delete_cookie(settings.auth.session_cookie_name, path="/")


@router.get("/signin/{provider_id}")
async def sign_in(
    provider_id: str,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Redirect to the provider's consent screen."""
    provider = get_provider(provider_id)
    if not provider:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown provider")

    nonce = secrets.token_urlsafe(16)
    state = auth_service.create_state(nonce)

    response = RedirectResponse(
        provider.authorization_url(callback_url(provider_id), state),
        status_code=status.HTTP_302_FOUND,
    )
    response.set_cookie(
        key=NONCE_COOKIE,
        value=nonce,
        max_age=settings.auth.state_ttl_seconds,
        httponly=True,
        secure=settings.auth.session_cookie_secure,
        samesite="lax",
        path="/api/auth",
    )
    return response


@router.get("/callback/{provider_id}")
async def oauth_callback(
    provider_id: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    nonce: str | None = Cookie(None, alias=NONCE_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Provider redirect target.

    Verifies state, loads the profile, signs the user in and sets the
    session cookie.
    """
    provider = get_provider(provider_id)
    if not provider:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown provider")

    if error or not code or not state:
        raise AuthError("Sign-in was cancelled or failed", provider=provider_id)

    auth_service.verify_state(state, nonce)

    profile = await provider.fetch_profile(code, callback_url(provider_id))
    _, session = await auth_service.sign_in(profile)
    await db.commit()

    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, session)
    response.delete_cookie(NONCE_COOKIE, path="/api/auth")
    return response
