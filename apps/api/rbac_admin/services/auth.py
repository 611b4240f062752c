"""
Authentication service.

Owns the identity side of sign-in: users, linked provider accounts and
database sessions. RBAC side effects are delegated to core/auth/callbacks.py.
"""

import secrets
from datetime import timedelta

import structlog
from jose import JWTError, jwt
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_admin.core.auth.callbacks import TEST_CREDENTIALS_PROVIDER, grant_default_role
from rbac_admin.core.config import settings
from rbac_admin.core.exceptions import AuthError
from rbac_admin.models.rbac import Role, UserRole
from rbac_admin.models.user import Account, Session, User
from rbac_admin.schemas.auth import OAuthProfile
from rbac_admin.utils.timezone import utc_now, to_utc

logger = structlog.get_logger()

GHOST_AVATAR = "https://github.com/ghost.png"

# Emails containing this marker get their role set reset on every sign-in
TEST_RESET_MARKER = "@test.com"


class AuthService:
    """Authentication service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================================
    # OAUTH STATE
    # ============================================================

    def create_state(self, nonce: str) -> str:
        """Create a signed, short-lived OAuth state bound to a nonce."""
        payload = {
            "nonce": nonce,
            "exp": utc_now() + timedelta(seconds=settings.auth.state_ttl_seconds),
            "type": "oauth_state",
        }
        return jwt.encode(
            payload,
            settings.auth.secret_key,
            algorithm=settings.auth.algorithm,
        )

    def verify_state(self, state: str, nonce: str | None) -> None:
        """
        Check an OAuth state returned by the provider.

        Raises:
            AuthError: If the state is forged, expired or not ours
        """
        try:
            payload = jwt.decode(
                state,
                settings.auth.secret_key,
                algorithms=[settings.auth.algorithm],
            )
        except JWTError as e:
            raise AuthError("Invalid OAuth state") from e

        if payload.get("type") != "oauth_state" or not nonce:
            raise AuthError("Invalid OAuth state")
        if not secrets.compare_digest(str(payload.get("nonce", "")), nonce):
            raise AuthError("Invalid OAuth state")

    # ============================================================
    # SESSIONS
    # ============================================================

    async def create_session(self, user: User) -> Session:
        """Create a database session for a user."""
        session = Session(
            session_token=secrets.token_hex(32),
            user_id=user.id,
            expires=utc_now() + timedelta(days=settings.auth.session_max_age_days),
        )
        self.db.add(session)
        await self.db.flush()
        return session

    async def get_session(self, session_token: str) -> tuple[Session, User] | None:
        """
        Look up a live session and its user.

        Expired sessions are deleted and reported as missing. A session read
        more than session_update_age_hours after its last extension gets its
        expiry pushed out again. Both changes are committed immediately,
        whatever the outcome of the surrounding request.
        """
        stmt = (
            select(Session)
            .where(Session.session_token == session_token)
            .options(selectinload(Session.user))
        )
        result = await self.db.execute(stmt)
        session = result.scalar_one_or_none()
        if not session:
            return None

        now = utc_now()
        expires = to_utc(session.expires)
        if expires <= now:
            await self.db.delete(session)
            await self.db.commit()
            logger.debug("session_expired", user_id=str(session.user_id))
            return None

        max_age = timedelta(days=settings.auth.session_max_age_days)
        update_age = timedelta(hours=settings.auth.session_update_age_hours)
        if now >= expires - max_age + update_age:
            session.expires = now + max_age
            await self.db.commit()

        return session, session.user

    async def delete_session(self, session_token: str) -> bool:
        """Sign out: delete the session."""
        result = await self.db.execute(
            delete(Session).where(Session.session_token == session_token)
        )
        return result.rowcount > 0

    # ============================================================
    # SIGN-IN
    # ============================================================

    async def sign_in(self, profile: OAuthProfile) -> tuple[User, Session]:
        """
        Sign in with a profile returned by an external provider.

        Finds the user through the linked account, else by verified email,
        else creates one. Then grants the default role if the user has no
        roles and opens a session.
        """
        stmt = (
            select(Account)
            .where(
                Account.provider == profile.provider,
                Account.provider_account_id == profile.provider_account_id,
            )
            .options(selectinload(Account.user))
        )
        result = await self.db.execute(stmt)
        account = result.scalar_one_or_none()

        if account:
            user = account.user
            self._update_tokens(account, profile)
        else:
            user = await self._find_or_create_user(profile)
            account = Account(
                user_id=user.id,
                type="oauth",
                provider=profile.provider,
                provider_account_id=profile.provider_account_id,
            )
            self._update_tokens(account, profile)
            self.db.add(account)

        await self.db.flush()

        await grant_default_role(self.db, user, profile.provider)
        session = await self.create_session(user)

        logger.info("signed_in", user_id=str(user.id), provider=profile.provider)
        return user, session

    async def sign_in_with_test_credentials(self, email: str) -> tuple[User, Session]:
        """
        Test-only sign-in: upsert the user and assign roles by email.

        Emails on the admin allow-list get the admin and default roles,
        everyone else the default role. Never runs grant_default_role.
        """
        name = email.split("@")[0] if "@" in email else "Test User"

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if not user:
            user = User(email=email)
            self.db.add(user)
        user.name = name
        user.image = GHOST_AVATAR
        user.email_verified = utc_now()
        await self.db.flush()

        auth = settings.auth
        if email in auth.test_admin_emails:
            role_names = [auth.admin_role, auth.default_role]
        else:
            role_names = [auth.default_role]

        if TEST_RESET_MARKER in email:
            await self.db.execute(delete(UserRole).where(UserRole.user_id == user.id))

        for role_name in role_names:
            result = await self.db.execute(select(Role).where(Role.name == role_name))
            role = result.scalar_one_or_none()
            if not role:
                logger.warning("test_signin_role_missing", role=role_name, email=email)
                continue

            existing = await self.db.execute(
                select(UserRole).where(
                    UserRole.user_id == user.id,
                    UserRole.role_id == role.id,
                )
            )
            if existing.scalar_one_or_none() is None:
                self.db.add(UserRole(user_id=user.id, role_id=role.id))

        await self.db.flush()
        session = await self.create_session(user)

        logger.info("signed_in", user_id=str(user.id), provider=TEST_CREDENTIALS_PROVIDER)
        return user, session

    async def _find_or_create_user(self, profile: OAuthProfile) -> User:
        if profile.email:
            result = await self.db.execute(select(User).where(User.email == profile.email))
            user = result.scalar_one_or_none()
            if user:
                if not profile.email_verified:
                    raise AuthError(
                        "Email already in use by another account",
                        provider=profile.provider,
                    )
                if user.image is None:
                    user.image = profile.image
                if user.name is None:
                    user.name = profile.name
                return user

        user = User(
            email=profile.email,
            name=profile.name,
            image=profile.image,
            email_verified=utc_now() if profile.email_verified else None,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    @staticmethod
    def _update_tokens(account: Account, profile: OAuthProfile) -> None:
        account.access_token = profile.access_token
        account.refresh_token = profile.refresh_token
        account.expires_at = profile.expires_at
        account.token_type = profile.token_type
        account.scope = profile.scope

