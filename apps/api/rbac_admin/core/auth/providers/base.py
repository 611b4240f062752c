"""
OAuth provider interface.
"""

from abc import ABC, abstractmethod

from rbac_admin.schemas.auth import OAuthProfile


class OAuthProvider(ABC):
    """
    Authorization-code OAuth provider.

    The sign-in route redirects to authorization_url(); the callback route
    hands the returned code to fetch_profile().
    """

    id: str
    name: str

    @abstractmethod
    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """URL to send the browser to."""

    @abstractmethod
    async def fetch_profile(self, code: str, redirect_uri: str) -> OAuthProfile:
        """
        Exchange the code for tokens and load the user's profile.

        Raises:
            AuthError: If the provider rejects the code or is unreachable
        """
