from unittest.mock import AsyncMock, MagicMock

import pytest

from pkcegate.auth.client.models.errors import CommandRequestError, NoAccessTokenError
from pkcegate.auth.client.services.commands import CommandClient
from pkcegate.auth.client.storage import TokenStore


class TestSendCommand:
    def setup_method(self):
        # Arrange
        self.token_store = TokenStore()
        self.http_client = AsyncMock()
        self.client = CommandClient(
            "https://api.example.com/prod/", self.token_store, http_client=self.http_client
        )
        self.command = {"command": "write", "area": "D", "address": "100", "value": "1"}

    async def test_posts_command_with_bearer_token(self):
        # Arrange
        self.token_store.persistent.set("access_token", "access-1")
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"status": "success"}
        self.http_client.post.return_value = response

        # Act
        result = await self.client.send_command(self.command)

        # Assert
        assert result == {"status": "success"}
        call_args = self.http_client.post.call_args
        assert call_args[0][0] == "https://api.example.com/prod/command"
        assert call_args[1]["json"] == self.command
        assert call_args[1]["headers"] == {"Authorization": "Bearer access-1"}

    async def test_requires_access_token(self):
        # Act & Assert
        with pytest.raises(NoAccessTokenError):
            await self.client.send_command(self.command)

        self.http_client.post.assert_not_awaited()

    async def test_error_status_carries_body(self):
        # Arrange
        self.token_store.persistent.set("access_token", "access-1")
        response = MagicMock()
        response.status_code = 500
        response.text = '{"error": "Internal server error"}'
        self.http_client.post.return_value = response

        # Act & Assert
        with pytest.raises(CommandRequestError) as exc_info:
            await self.client.send_command(self.command)

        assert exc_info.value.status_code == 500
        assert "Internal server error" in exc_info.value.body
