"""
Discord OAuth provider.
"""

import time
from urllib.parse import urlencode

import httpx
import structlog

from rbac_admin.core.exceptions import AuthError
from rbac_admin.schemas.auth import OAuthProfile
from .base import OAuthProvider

logger = structlog.get_logger()

AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"
TOKEN_URL = "https://discord.com/api/oauth2/token"
PROFILE_URL = "https://discord.com/api/users/@me"
CDN_URL = "https://cdn.discordapp.com"


class DiscordProvider(OAuthProvider):
    id = "discord"
    name = "Discord"
    scope = "identify email"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.transport = transport

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_profile(self, code: str, redirect_uri: str) -> OAuthProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                token_response = await client.post(
                    TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                tokens = token_response.json()
                if not isinstance(tokens, dict) or "access_token" not in tokens:
                    logger.warning(
                        "oauth_provider_no_token",
                        provider=self.id,
                        error=tokens.get("error") if isinstance(tokens, dict) else None,
                    )
                    raise AuthError("Discord sign-in failed")

                profile_response = await client.get(
                    PROFILE_URL,
                    headers={"Authorization": f"Bearer {tokens['access_token']}"},
                )
                profile_response.raise_for_status()
                profile = profile_response.json()

            return self.to_profile(profile, tokens)

        except httpx.HTTPStatusError as e:
            logger.warning(
                "oauth_provider_rejected",
                provider=self.id,
                status_code=e.response.status_code,
            )
            raise AuthError("Discord sign-in failed") from e
        except httpx.HTTPError as e:
            logger.warning("oauth_provider_unreachable", provider=self.id, error=str(e))
            raise AuthError("Discord is unreachable") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("oauth_provider_bad_response", provider=self.id, error=str(e))
            raise AuthError("Discord sign-in failed") from e

    def to_profile(self, profile: dict, tokens: dict) -> OAuthProfile:
        """Map Discord's user object onto the normalized profile."""
        if profile.get("avatar"):
            extension = "gif" if profile["avatar"].startswith("a_") else "png"
            image = f"{CDN_URL}/avatars/{profile['id']}/{profile['avatar']}.{extension}"
        else:
            index = (int(profile["id"]) >> 22) % 6
            image = f"{CDN_URL}/embed/avatars/{index}.png"

        expires_in = tokens.get("expires_in")
        return OAuthProfile(
            provider=self.id,
            provider_account_id=str(profile["id"]),
            email=profile.get("email"),
            name=profile.get("global_name") or profile.get("username"),
            image=image,
            email_verified=bool(profile.get("verified")),
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            expires_at=int(time.time()) + int(expires_in) if expires_in is not None else None,
            token_type=tokens.get("token_type"),
            scope=tokens.get("scope"),
        )
