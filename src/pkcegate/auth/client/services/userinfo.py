"""OIDC userinfo endpoint service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkcegate.auth.client.models.errors import UserInfoError
from pkcegate.auth.client.services.tokens import is_success

logger = logging.getLogger(__name__)


class UserInfoClient:
    """Fetches the authenticated user's profile with a bearer access token."""

    def __init__(
        self, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0
    ):
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, userinfo_endpoint: str, access_token: str) -> dict[str, Any]:
        """Call the userinfo endpoint.

        Raises:
            UserInfoError: If the endpoint rejects the token or is unreachable
        """
        try:
            response = await self._http_client.get(
                userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise UserInfoError(f"HTTP error fetching user info: {e}") from e

        if not is_success(response):
            logger.warning(f"Userinfo request rejected with {response.status_code}")
            raise UserInfoError(
                "Failed to get user info", status_code=response.status_code
            )

        try:
            profile = response.json()
        except ValueError as e:
            raise UserInfoError(f"Invalid userinfo response: {e}") from e
        if not isinstance(profile, dict):
            raise UserInfoError("Userinfo response is not a JSON object")
        return profile
