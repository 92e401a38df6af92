"""Exception hierarchy for the PKCE client.

Provides specific exception types for different failure modes so the session
controller can tell a broken callback apart from an expired session.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all client-side OAuth 2.0 errors."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails."""

    pass


class MissingVerifierError(OAuth2Error):
    """Raised when a code exchange finds no stored code verifier.

    Happens when the callback is reached without a prior authorization
    request, when storage was cleared, or when the code was already redeemed.
    """

    pass


class TokenError(OAuth2Error):
    """Raised when token endpoint operations fail."""

    pass


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails.

    Carries the identity provider's error body when one was returned.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RefreshError(TokenError):
    """Raised when the token endpoint rejects a refresh request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoRefreshTokenError(OAuth2Error):
    """Raised when a refresh is attempted without a stored refresh token."""

    pass


class NoAccessTokenError(OAuth2Error):
    """Raised when an operation needs an access token and none is stored."""

    pass


class UserInfoError(OAuth2Error):
    """Raised when the userinfo endpoint rejects the access token."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CommandRequestError(OAuth2Error):
    """Raised when the command API returns a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
