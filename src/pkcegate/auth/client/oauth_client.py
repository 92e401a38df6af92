"""PKCE authorization code client.

Drives the browser-side half of the authorization code flow: builds the
authorization URL, redeems the callback code, refreshes and revokes tokens,
and keeps a redacted diagnostic trail of every step.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkcegate.auth.client.models.debug import DebugTrail, redact
from pkcegate.auth.client.models.errors import (
    MissingVerifierError,
    NoAccessTokenError,
    NoRefreshTokenError,
)
from pkcegate.auth.client.models.flow import AuthorizationRequest, LogoutRequest
from pkcegate.auth.client.models.tokens import (
    RefreshTokenRequest,
    TokenRequest,
    TokenSet,
)
from pkcegate.auth.client.primitives.claims import decode_claims
from pkcegate.auth.client.primitives.pkce import PKCEManager
from pkcegate.auth.client.services.tokens import OAuth2TokenManager
from pkcegate.auth.client.services.userinfo import UserInfoClient
from pkcegate.auth.client.storage import TokenStore
from pkcegate.config import ClientConfig

logger = logging.getLogger(__name__)


class PKCEAuth:
    """Authorization code flow with PKCE against a single identity provider.

    Only one authorization attempt is in flight at a time: starting a new one
    overwrites the stored verifier and invalidates any earlier attempt.
    """

    def __init__(
        self,
        config: ClientConfig,
        token_store: TokenStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the PKCE client.

        Args:
            config: Identity provider settings
            token_store: Verifier and token storage; in-memory when omitted
            http_client: Shared HTTP client for all provider calls
        """
        self.config = config
        self.token_store = token_store or TokenStore()
        self.debug = DebugTrail()

        self._http_client = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._pkce_manager = PKCEManager()
        self.token_manager = OAuth2TokenManager(http_client=self._http_client)
        self.userinfo_client = UserInfoClient(http_client=self._http_client)

    def create_authorization_request(self) -> str:
        """Start a new authorization attempt.

        Returns:
            Authorization URL the user agent should navigate to
        """
        pkce_params = self._pkce_manager.generate_parameters()
        self.token_store.set_code_verifier(pkce_params.code_verifier)

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.config.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
            scope=self.config.scope,
        )
        authorization_url = auth_request.build_authorization_url()

        self.debug.add(
            "authorization_url_created",
            code_challenge=pkce_params.code_challenge,
            scope=self.config.scope,
        )
        logger.info(f"Generated authorization URL for client {self.config.client_id}")
        return authorization_url

    async def exchange_code(self, auth_code: str) -> TokenSet:
        """Redeem an authorization code for tokens.

        The stored verifier is removed whatever the outcome, so a code can
        only be redeemed once from this client.

        Raises:
            MissingVerifierError: If no authorization attempt is in flight
            TokenExchangeError: If the provider rejects the exchange
        """
        code_verifier = self.token_store.get_code_verifier()
        if not code_verifier:
            self.debug.add("token_exchange_rejected", reason="missing_verifier")
            raise MissingVerifierError("Code verifier not found")

        token_request = TokenRequest(
            token_endpoint=self.config.token_endpoint,
            code=auth_code,
            redirect_uri=self.config.redirect_uri,
            client_id=self.config.client_id,
            code_verifier=code_verifier,
        )
        self.debug.add("token_exchange_requested", auth_code=redact(auth_code))

        try:
            tokens = await self.token_manager.exchange_code_for_token(token_request)
        except Exception as e:
            self.debug.add("token_exchange_failed", error=str(e))
            raise
        finally:
            self.token_store.clear_code_verifier()

        self.token_store.save_tokens(tokens)
        self.debug.add(
            "token_exchange_succeeded",
            token_types=sorted(tokens.model_dump(exclude_none=True)),
            expires_in=tokens.expires_in,
        )
        return tokens

    async def refresh(self) -> TokenSet:
        """Refresh the stored tokens.

        Raises:
            NoRefreshTokenError: If no refresh token is stored
            RefreshError: If the provider rejects the refresh
        """
        refresh_token = self.token_store.refresh_token
        if not refresh_token:
            raise NoRefreshTokenError("No refresh token available")

        refresh_request = RefreshTokenRequest(
            token_endpoint=self.config.token_endpoint,
            refresh_token=refresh_token,
            client_id=self.config.client_id,
        )
        try:
            tokens = await self.token_manager.refresh_access_token(refresh_request)
        except Exception as e:
            self.debug.add("token_refresh_failed", error=str(e))
            raise

        self.token_store.save_tokens(tokens)
        self.debug.add(
            "token_refresh_succeeded",
            expires_in=tokens.expires_in,
            refresh_token_rotated=tokens.refresh_token is not None,
        )
        return tokens

    async def fetch_user_info(self) -> dict[str, Any]:
        """Fetch the user's profile with the stored access token.

        Raises:
            NoAccessTokenError: If no access token is stored
            UserInfoError: If the endpoint rejects the token
        """
        access_token = self.token_store.access_token
        if not access_token:
            raise NoAccessTokenError("No access token available")

        return await self.userinfo_client.fetch(
            self.config.userinfo_endpoint, access_token
        )

    def logout(self) -> str:
        """Forget all tokens.

        Returns:
            The identity provider logout URL to navigate to
        """
        self.token_store.clear_tokens()
        self.debug.add("logged_out")

        logout_request = LogoutRequest(
            logout_endpoint=self.config.logout_endpoint,
            client_id=self.config.client_id,
            logout_uri=self.config.logout_uri,
        )
        return logout_request.build_logout_url()

    @staticmethod
    def decode_claims(token: str | None) -> dict[str, Any] | None:
        """Decode a token's payload for display. Never raises."""
        return decode_claims(token)

    def token_info(self) -> dict[str, Any]:
        """Diagnostic summary of the stored tokens."""
        id_token = self.token_store.id_token
        access_token = self.token_store.access_token
        return {
            "has_id_token": bool(id_token),
            "has_access_token": bool(access_token),
            "id_token_claims": decode_claims(id_token) if id_token else None,
            "access_token_claims": decode_claims(access_token) if access_token else None,
        }

    async def close(self) -> None:
        """Close the shared HTTP client."""
        await self._http_client.aclose()
