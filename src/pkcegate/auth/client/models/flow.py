"""Authorization flow models for the PKCE client.

Contains the authorization and logout requests sent to the identity provider
through the browser.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the code flow with PKCE."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str = "S256"
    scope: str | None = None

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
        }

        if self.scope:
            params["scope"] = self.scope

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class LogoutRequest:
    """Logout request for the identity provider's hosted logout endpoint."""

    logout_endpoint: str
    client_id: str
    logout_uri: str

    def build_logout_url(self) -> str:
        params = {"client_id": self.client_id, "logout_uri": self.logout_uri}
        return f"{self.logout_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_url(cls, url: str) -> AuthorizationResponse:
        """Parse the callback parameters out of a redirect URL."""
        query_params = parse_qs(urlparse(url).query)

        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return cls(
            code=get_single_param("code"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
        )


def strip_query(url: str) -> str:
    """Return the URL with its query string and fragment removed."""
    parsed = urlparse(url)
    return urlunparse(parsed._replace(query="", fragment=""))
