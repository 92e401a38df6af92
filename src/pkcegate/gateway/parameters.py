"""Secret providers for the command gateway.

Secrets are fetched fresh for every invocation and never cached, so a rotated
parameter takes effect on the next command.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pkcegate.config import DEFAULT_PARAMETER_NAMESPACE, DEFAULT_SECRET_KEYS
from pkcegate.gateway.errors import SecretFetchError

logger = logging.getLogger(__name__)


class SecretProvider(Protocol):
    async def fetch(self) -> dict[str, str]:
        """Return the complete secure parameter set keyed by logical name.

        Raises:
            SecretFetchError: If the provider fails or any key is missing
        """
        ...


def require_complete(
    parameters: dict[str, str], required_keys: tuple[str, ...]
) -> dict[str, str]:
    """Check that every required key has a value."""
    missing = tuple(key for key in required_keys if not parameters.get(key))
    if missing:
        raise SecretFetchError(
            f"Secure parameter set incomplete, missing: {', '.join(missing)}",
            missing_keys=missing,
        )
    return {key: parameters[key] for key in required_keys}


class SSMSecretProvider:
    """Reads SecureString parameters from AWS Systems Manager Parameter Store.

    Parameters live under a fixed namespace, e.g. /plc/secure/ip-address.
    """

    def __init__(
        self,
        namespace: str = DEFAULT_PARAMETER_NAMESPACE,
        keys: tuple[str, ...] = DEFAULT_SECRET_KEYS,
        client: Any = None,
    ):
        self.namespace = "/" + namespace.strip("/")
        self.keys = keys
        self._client = client or boto3.client("ssm")

    def parameter_names(self) -> list[str]:
        return [f"{self.namespace}/{key}" for key in self.keys]

    async def fetch(self) -> dict[str, str]:
        names = self.parameter_names()
        try:
            response = await asyncio.to_thread(
                self._client.get_parameters, Names=names, WithDecryption=True
            )
        except (BotoCoreError, ClientError) as e:
            raise SecretFetchError(f"Failed to read secure parameters: {e}") from e

        parameters: dict[str, str] = {}
        for param in response.get("Parameters", []):
            key = param.get("Name", "").rsplit("/", 1)[-1]
            if key and param.get("Value"):
                parameters[key] = param["Value"]

        invalid = response.get("InvalidParameters") or []
        if invalid:
            logger.warning(f"Parameter store reported invalid parameters: {invalid}")

        return require_complete(parameters, self.keys)


class StaticSecretProvider:
    """Fixed parameter set, for local development and tests."""

    def __init__(
        self, values: dict[str, str], keys: tuple[str, ...] = DEFAULT_SECRET_KEYS
    ):
        self.values = dict(values)
        self.keys = keys

    async def fetch(self) -> dict[str, str]:
        return require_complete(self.values, self.keys)
