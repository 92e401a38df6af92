"""Client for the command gateway's HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkcegate.auth.client.models.errors import CommandRequestError, NoAccessTokenError
from pkcegate.auth.client.services.tokens import is_success
from pkcegate.auth.client.storage import TokenStore

logger = logging.getLogger(__name__)


class CommandClient:
    """Sends privileged commands to the gateway with the stored access token."""

    def __init__(
        self,
        api_endpoint: str,
        token_store: TokenStore,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.api_endpoint = api_endpoint.rstrip("/")
        self._token_store = token_store
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def send_command(self, command: dict[str, Any]) -> dict[str, Any]:
        """POST a command and return the gateway's JSON result.

        Args:
            command: Command payload, e.g. {"command": "write", "value": "1"}

        Raises:
            NoAccessTokenError: If no access token is stored
            CommandRequestError: If the gateway responds with an error status
        """
        access_token = self._token_store.access_token
        if not access_token:
            raise NoAccessTokenError("No access token available")

        try:
            response = await self._http_client.post(
                f"{self.api_endpoint}/command",
                json=command,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise CommandRequestError(f"HTTP error sending command: {e}") from e

        if not is_success(response):
            body = response.text
            logger.warning(f"Command rejected with {response.status_code}")
            raise CommandRequestError(
                f"API request failed: {body}",
                status_code=response.status_code,
                body=body,
            )

        return response.json()

    async def close(self) -> None:
        await self._http_client.aclose()
