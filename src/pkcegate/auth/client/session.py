"""Authentication session state machine.

Coordinates the PKCE client with the user agent: handling the redirect back
from the identity provider, checking whether stored tokens still work, and
driving login and logout navigation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

from pkcegate.auth.client.models.errors import OAuth2Error
from pkcegate.auth.client.models.flow import AuthorizationResponse, strip_query
from pkcegate.auth.client.oauth_client import PKCEAuth

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


class Navigator(Protocol):
    """The user agent the session drives.

    Allows different strategies for browser interaction:
    - A real browser bridge
    - A CLI that prints URLs
    - A recording fake in tests
    """

    def current_url(self) -> str:
        """Return the URL currently loaded."""
        ...

    def redirect(self, url: str) -> None:
        """Navigate away to another URL."""
        ...

    def replace_url(self, url: str) -> None:
        """Replace the current history entry without navigating."""
        ...


class AuthSessionController:
    """Drives Unauthenticated -> Authenticating -> Authenticated transitions.

    Error is a display state reachable from any other state. Failures of the
    silent refresh leave stored tokens in place; only logout() clears them.
    """

    def __init__(self, auth: PKCEAuth, navigator: Navigator):
        self.auth = auth
        self.navigator = navigator
        self.state = AuthState.UNAUTHENTICATED
        self.user_info: dict[str, Any] | None = None
        self.error_message: str | None = None

    @property
    def user_email(self) -> str:
        if not self.user_info:
            return "Unknown"
        return self.user_info.get("email") or "Unknown"

    async def load(self, current_url: str | None = None) -> AuthState:
        """Run the page-load sequence.

        Args:
            current_url: URL the user agent loaded; asks the navigator if omitted

        Returns:
            The resulting state
        """
        url = current_url if current_url is not None else self.navigator.current_url()
        callback = AuthorizationResponse.from_url(url)

        if callback.is_error():
            self._handle_rejected_callback(url, callback)
        elif callback.code:
            await self._handle_callback(url, callback.code)
        else:
            await self.check_auth_status()
        return self.state

    def _handle_rejected_callback(
        self, url: str, callback: AuthorizationResponse
    ) -> None:
        reason = callback.error_description or callback.error
        logger.warning(f"Authorization rejected by provider: {reason}")
        self.navigator.replace_url(strip_query(url))
        self._fail(f"Authentication failed: {reason}")

    async def _handle_callback(self, url: str, code: str) -> None:
        self._transition(AuthState.AUTHENTICATING)
        try:
            await self.auth.exchange_code(code)
        except OAuth2Error as e:
            logger.error(f"Token exchange failed: {e}")
            self._fail(f"Authentication failed: {e}")
            return

        # Drop the redeemed code from the address bar
        self.navigator.replace_url(strip_query(url))
        await self.check_auth_status()

    async def check_auth_status(self) -> AuthState:
        """Decide whether the stored tokens represent a live session.

        Tries one silent refresh when the userinfo call fails.
        """
        if not self.auth.token_store.access_token:
            self._logged_out()
            return self.state

        try:
            user_info = await self.auth.fetch_user_info()
        except OAuth2Error as e:
            logger.warning(f"Auth check failed: {e}")
            try:
                await self.auth.refresh()
                user_info = await self.auth.fetch_user_info()
            except OAuth2Error as refresh_error:
                logger.warning(f"Token refresh failed: {refresh_error}")
                self._logged_out()
                return self.state

        self.user_info = user_info
        self.error_message = None
        self._transition(AuthState.AUTHENTICATED)
        return self.state

    def login(self) -> str:
        """Start a brand-new authorization attempt and navigate to it."""
        authorization_url = self.auth.create_authorization_request()
        self.navigator.redirect(authorization_url)
        return authorization_url

    def logout(self) -> str:
        """Clear tokens and navigate to the provider's logout endpoint."""
        logout_url = self.auth.logout()
        self._logged_out()
        self.navigator.redirect(logout_url)
        return logout_url

    async def retry(self) -> AuthState:
        """Leave the error state by re-running the load sequence.

        A failed callback code is already spent, so it is dropped from the
        URL first instead of being redeemed again.
        """
        self.error_message = None
        url = strip_query(self.navigator.current_url())
        self.navigator.replace_url(url)
        return await self.load(url)

    def _logged_out(self) -> None:
        self.user_info = None
        self._transition(AuthState.UNAUTHENTICATED)

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._transition(AuthState.ERROR)

    def _transition(self, new_state: AuthState) -> None:
        if new_state != self.state:
            logger.debug(f"Auth state {self.state.value} -> {new_state.value}")
        self.state = new_state
