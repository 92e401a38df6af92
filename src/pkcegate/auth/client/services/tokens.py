"""Token endpoint service.

Implements RFC 6749 token endpoint interactions with PKCE (RFC 7636):
authorization code exchange and refresh.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from pkcegate.auth.client.models.errors import (
    RefreshError,
    TokenError,
    TokenExchangeError,
)
from pkcegate.auth.client.models.tokens import (
    RefreshTokenRequest,
    TokenRequest,
    TokenSet,
)

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


def is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


class OAuth2TokenManager:
    """Manages token exchange and refresh against the token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    """

    def __init__(
        self, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0
    ):
        """Initialize token manager.

        Args:
            http_client: Shared HTTP client; one is created when omitted
            timeout: HTTP request timeout in seconds for a created client
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(self, token_request: TokenRequest) -> TokenSet:
        """Exchange an authorization code for tokens.

        Implements RFC 6749 Section 4.1.3 with the PKCE code_verifier.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenSet: Tokens issued by the provider

        Raises:
            TokenExchangeError: If the provider rejects the exchange or the
                request fails at the transport level
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        form_data = token_request.to_form_data()
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=FORM_HEADERS,
            )
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during token exchange: {e}") from e

        if not is_success(response):
            body = response.text
            logger.warning(f"Token exchange failed with {response.status_code}: {body}")
            raise TokenExchangeError(
                f"Token request failed: {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return self._parse_token_response(response)
        except TokenError as e:
            raise TokenExchangeError(str(e)) from e

    async def refresh_access_token(
        self, refresh_request: RefreshTokenRequest
    ) -> TokenSet:
        """Refresh tokens using a refresh token.

        Implements RFC 6749 Section 6.

        Args:
            refresh_request: Refresh token request parameters

        Returns:
            TokenSet: Newly issued tokens

        Raises:
            RefreshError: If the provider rejects the refresh or the request
                fails at the transport level
        """
        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")

        try:
            response = await self._http_client.post(
                refresh_request.token_endpoint,
                data=refresh_request.to_form_data(),
                headers=FORM_HEADERS,
            )
        except httpx.HTTPError as e:
            raise RefreshError(f"HTTP error during token refresh: {e}") from e

        if not is_success(response):
            logger.warning(f"Token refresh failed with {response.status_code}")
            raise RefreshError(
                "Token refresh failed", status_code=response.status_code
            )

        try:
            return self._parse_token_response(response)
        except TokenError as e:
            raise RefreshError(str(e)) from e

    def _parse_token_response(self, response: httpx.Response) -> TokenSet:
        """Parse a successful token endpoint response.

        Raises:
            TokenError: If the response body is not a valid token response
        """
        try:
            response_data = response.json()
        except ValueError as e:
            raise TokenError(f"Invalid token response format: {e}") from e

        if not isinstance(response_data, dict) or "access_token" not in response_data:
            raise TokenError("Token response missing required access_token")

        try:
            tokens = TokenSet(**response_data)
        except ValidationError as e:
            raise TokenError(f"Invalid token response format: {e}") from e

        logger.info("Token request successful")
        return tokens
