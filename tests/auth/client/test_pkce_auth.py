"""Tests for the PKCE authorization code client.

Covers the verifier lifecycle across authorization and exchange, token
persistence on exchange and refresh, userinfo, logout and the redacted
debug trail.
"""

import base64
import hashlib
import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from pkcegate.auth.client.models.errors import (
    MissingVerifierError,
    NoAccessTokenError,
    NoRefreshTokenError,
    RefreshError,
    TokenExchangeError,
    UserInfoError,
)
from pkcegate.auth.client.oauth_client import PKCEAuth
from pkcegate.auth.client.storage import InMemoryStore, TokenStore
from pkcegate.config import ClientConfig

AUTH_CODE = "c0ffee-auth-code-0123456789"


def make_response(status_code: int, json_body=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body
    response.text = text
    return response


def make_jwt(claims: dict) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"eyJhbGciOiJSUzI1NiJ9.{payload}.sig"


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        client_id="client-123",
        domain="https://auth.example.com/",
        redirect_uri="https://app.example.com/callback",
        logout_uri="https://app.example.com",
    )


@pytest.fixture
def store() -> TokenStore:
    return TokenStore(ephemeral=InMemoryStore(), persistent=InMemoryStore())


@pytest.fixture
def http_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def auth(config, store, http_client) -> PKCEAuth:
    return PKCEAuth(config, token_store=store, http_client=http_client)


def token_body(**overrides) -> dict:
    body = {
        "id_token": make_jwt({"sub": "user-1", "email": "ops@example.com"}),
        "access_token": make_jwt({"sub": "user-1", "scope": "openid"}),
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "token_type": "Bearer",
    }
    body.update(overrides)
    return body


class TestCreateAuthorizationRequest:
    def test_url_carries_challenge_not_verifier(self, auth, store):
        # Act
        url = auth.create_authorization_request()

        # Assert
        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        verifier = store.get_code_verifier()

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
            "https://auth.example.com/oauth2/authorize"
        )
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["client-123"]
        assert params["redirect_uri"] == ["https://app.example.com/callback"]
        assert params["code_challenge_method"] == ["S256"]
        assert params["scope"] == ["openid profile email"]

        expected_challenge = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .decode()
            .rstrip("=")
        )
        assert params["code_challenge"] == [expected_challenge]
        assert verifier not in url

    def test_new_request_replaces_in_flight_verifier(self, auth, store):
        # Arrange
        auth.create_authorization_request()
        first_verifier = store.get_code_verifier()

        # Act
        auth.create_authorization_request()

        # Assert
        assert store.get_code_verifier() != first_verifier


class TestExchangeCode:
    async def test_exchange_uses_stored_verifier_then_deletes_it(
        self, auth, store, http_client
    ):
        # Arrange
        auth.create_authorization_request()
        verifier = store.get_code_verifier()
        http_client.post.return_value = make_response(200, token_body())

        # Act
        tokens = await auth.exchange_code(AUTH_CODE)

        # Assert
        form_data = http_client.post.call_args[1]["data"]
        assert form_data["code_verifier"] == verifier
        assert form_data["code"] == AUTH_CODE
        assert form_data["grant_type"] == "authorization_code"
        assert store.get_code_verifier() is None

        assert store.access_token == tokens.access_token
        assert store.id_token == tokens.id_token
        assert store.refresh_token == "refresh-1"

    async def test_code_cannot_be_redeemed_twice(self, auth, http_client):
        # Arrange
        auth.create_authorization_request()
        http_client.post.return_value = make_response(200, token_body())
        await auth.exchange_code(AUTH_CODE)

        # Act & Assert
        with pytest.raises(MissingVerifierError):
            await auth.exchange_code(AUTH_CODE)

        http_client.post.assert_awaited_once()

    async def test_exchange_without_authorization_request(self, auth, http_client):
        # Act & Assert
        with pytest.raises(MissingVerifierError):
            await auth.exchange_code(AUTH_CODE)

        http_client.post.assert_not_awaited()

    async def test_failed_exchange_still_discards_verifier(
        self, auth, store, http_client
    ):
        # Arrange
        auth.create_authorization_request()
        http_client.post.return_value = make_response(
            400, {"error": "invalid_grant"}, text='{"error":"invalid_grant"}'
        )

        # Act & Assert
        with pytest.raises(TokenExchangeError) as exc_info:
            await auth.exchange_code(AUTH_CODE)

        assert "invalid_grant" in exc_info.value.body
        assert store.get_code_verifier() is None
        assert store.access_token is None

    async def test_debug_trail_never_contains_raw_code_or_tokens(
        self, auth, http_client
    ):
        # Arrange
        body = token_body()
        auth.create_authorization_request()
        http_client.post.return_value = make_response(200, body)

        # Act
        await auth.exchange_code(AUTH_CODE)

        # Assert
        trail = json.dumps([step.details for step in auth.debug.steps])
        assert AUTH_CODE not in trail
        assert AUTH_CODE[:10] + "..." in trail
        assert body["access_token"] not in trail
        assert body["refresh_token"] not in trail
        assert [step.step for step in auth.debug.steps] == [
            "authorization_url_created",
            "token_exchange_requested",
            "token_exchange_succeeded",
        ]


class TestRefresh:
    async def test_refresh_without_refresh_token(self, auth, http_client):
        # Act & Assert
        with pytest.raises(NoRefreshTokenError):
            await auth.refresh()

        http_client.post.assert_not_awaited()

    async def test_refresh_keeps_refresh_token_when_not_rotated(
        self, auth, store, http_client
    ):
        # Arrange
        store.persistent.set("refresh_token", "refresh-1")
        store.persistent.set("access_token", "old-access")
        http_client.post.return_value = make_response(
            200, {"id_token": "new-id", "access_token": "new-access", "expires_in": 3600}
        )

        # Act
        await auth.refresh()

        # Assert
        assert store.access_token == "new-access"
        assert store.id_token == "new-id"
        assert store.refresh_token == "refresh-1"
        form_data = http_client.post.call_args[1]["data"]
        assert form_data["grant_type"] == "refresh_token"
        assert form_data["refresh_token"] == "refresh-1"

    async def test_refresh_stores_rotated_refresh_token(self, auth, store, http_client):
        # Arrange
        store.persistent.set("refresh_token", "refresh-1")
        http_client.post.return_value = make_response(
            200, token_body(refresh_token="refresh-2")
        )

        # Act
        await auth.refresh()

        # Assert
        assert store.refresh_token == "refresh-2"

    async def test_rejected_refresh_leaves_tokens(self, auth, store, http_client):
        # Arrange
        store.persistent.set("refresh_token", "refresh-1")
        store.persistent.set("access_token", "old-access")
        http_client.post.return_value = make_response(400, {"error": "invalid_grant"})

        # Act & Assert
        with pytest.raises(RefreshError):
            await auth.refresh()

        assert store.access_token == "old-access"


class TestUserInfoAndLogout:
    async def test_fetch_user_info_sends_bearer_token(self, auth, store, http_client):
        # Arrange
        store.persistent.set("access_token", "access-1")
        http_client.get.return_value = make_response(200, {"email": "ops@example.com"})

        # Act
        profile = await auth.fetch_user_info()

        # Assert
        assert profile == {"email": "ops@example.com"}
        call_args = http_client.get.call_args
        assert call_args[0][0] == "https://auth.example.com/oauth2/userInfo"
        assert call_args[1]["headers"] == {"Authorization": "Bearer access-1"}

    async def test_rejected_access_token(self, auth, store, http_client):
        # Arrange
        store.persistent.set("access_token", "expired")
        http_client.get.return_value = make_response(401, {"error": "invalid_token"})

        # Act & Assert
        with pytest.raises(UserInfoError) as exc_info:
            await auth.fetch_user_info()

        assert exc_info.value.status_code == 401

    async def test_logout_clears_tokens_and_blocks_user_info(
        self, auth, store, http_client
    ):
        # Arrange
        auth.create_authorization_request()
        http_client.post.return_value = make_response(200, token_body())
        await auth.exchange_code(AUTH_CODE)

        # Act
        logout_url = auth.logout()

        # Assert
        assert store.id_token is None
        assert store.access_token is None
        assert store.refresh_token is None

        parsed = urlparse(logout_url)
        assert parsed.path == "/logout"
        assert parse_qs(parsed.query) == {
            "client_id": ["client-123"],
            "logout_uri": ["https://app.example.com"],
        }

        with pytest.raises(NoAccessTokenError):
            await auth.fetch_user_info()
        http_client.get.assert_not_awaited()


class TestTokenInfo:
    async def test_token_info_decodes_stored_tokens(self, auth, http_client):
        # Arrange
        auth.create_authorization_request()
        http_client.post.return_value = make_response(200, token_body())
        await auth.exchange_code(AUTH_CODE)

        # Act
        info = auth.token_info()

        # Assert
        assert info["has_id_token"] is True
        assert info["has_access_token"] is True
        assert info["id_token_claims"]["email"] == "ops@example.com"
        assert info["access_token_claims"]["scope"] == "openid"

    def test_token_info_without_tokens(self, auth):
        assert auth.token_info() == {
            "has_id_token": False,
            "has_access_token": False,
            "id_token_claims": None,
            "access_token_claims": None,
        }

    def test_decode_claims_is_null_safe(self, auth):
        assert auth.decode_claims("garbage") is None
