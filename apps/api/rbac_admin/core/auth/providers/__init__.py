"""
OAuth providers.

Providers are built from settings; a provider without credentials is not
offered.
"""

from rbac_admin.core.config import settings
from .base import OAuthProvider
from .discord import DiscordProvider


def get_providers() -> dict[str, OAuthProvider]:
    """Configured providers keyed by id."""
    providers: dict[str, OAuthProvider] = {}
    if settings.auth.discord_client_id:
        providers["discord"] = DiscordProvider(
            client_id=settings.auth.discord_client_id,
            client_secret=settings.auth.discord_client_secret,
        )
    return providers


def get_provider(provider_id: str) -> OAuthProvider | None:
    return get_providers().get(provider_id)


__all__ = ["OAuthProvider", "DiscordProvider", "get_providers", "get_provider"]
