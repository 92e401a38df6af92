"""Authorized command gateway.

Gates a single privileged action behind upstream authentication: checks that
identity claims are present, fetches the secure parameter set, runs the
action and records an audit event for success and failure alike.

Every path ends in a structured response; audit failures never change it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pkcegate.gateway.actions import Action
from pkcegate.gateway.audit import AuditSink
from pkcegate.gateway.errors import UnauthorizedError
from pkcegate.gateway.models import (
    AuditEvent,
    AuthenticatedIdentity,
    CommandPayload,
    GatewayRequest,
    GatewayResponse,
)
from pkcegate.gateway.parameters import SecretProvider

logger = logging.getLogger(__name__)

COMMAND_ACTION = "COMMAND"
COMMAND_ERROR_ACTION = "COMMAND_ERROR"

UNAUTHORIZED_BODY = {"error": "Unauthorized"}
INTERNAL_ERROR_BODY = {
    "error": "Internal server error",
    "message": "An error occurred while processing your request",
}


def parse_command(body: str | bytes | None) -> CommandPayload:
    """Parse a request body into a command.

    Malformed JSON, and JSON that is not an object, yield an empty command
    instead of a rejection.
    """
    data: Any = {}
    if body:
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Malformed command body, treating as empty command")
            data = {}
    if not isinstance(data, dict):
        data = {}
    return CommandPayload.model_validate(data)


class CommandGateway:
    """Stateless handler for authorized command requests.

    Concurrent invocations share nothing but the injected collaborators.
    """

    def __init__(
        self,
        secret_provider: SecretProvider,
        action: Action,
        audit_sink: AuditSink,
        allowed_origins: list[str] | None = None,
    ):
        """Initialize the gateway.

        Args:
            secret_provider: Source of the secure parameter set
            action: The privileged action to run
            audit_sink: Destination for audit events
            allowed_origins: CORS allow-list; ["*"] allows any origin
        """
        self.secret_provider = secret_provider
        self.action = action
        self.audit_sink = audit_sink
        self.allowed_origins = allowed_origins or ["*"]

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Process one command request.

        Returns:
            401 without identity (not audited), 200 with the action outcome,
            or 500 with a generic body when any step fails
        """
        headers = self.cors_headers(request.origin)

        try:
            identity = self.require_identity(request)
        except UnauthorizedError as e:
            logger.warning(f"{e} from {request.source_ip}")
            return GatewayResponse(401, dict(UNAUTHORIZED_BODY), headers)

        command: CommandPayload | None = None
        try:
            command = parse_command(request.body)
            secrets = await self.secret_provider.fetch()
            outcome = await self.action.execute(secrets, identity, command)
            body = outcome.model_dump(mode="json")
        except Exception as e:
            logger.exception(f"Command failed for user {identity.user_id}: {e}")
            await self._record(
                AuditEvent(
                    action=COMMAND_ERROR_ACTION,
                    user_id=identity.user_id,
                    email=identity.email,
                    source_ip=request.source_ip,
                    user_agent=request.user_agent,
                    command=command.model_dump(exclude_none=True) if command else None,
                    error=str(e) or type(e).__name__,
                )
            )
            return GatewayResponse(500, dict(INTERNAL_ERROR_BODY), headers)

        await self._record(
            AuditEvent(
                action=COMMAND_ACTION,
                user_id=identity.user_id,
                email=identity.email,
                source_ip=request.source_ip,
                user_agent=request.user_agent,
                command=command.model_dump(exclude_none=True),
                result=outcome.status,
            )
        )
        logger.info(f"Command {command.command!r} completed with {outcome.status}")
        return GatewayResponse(200, body, headers)

    @staticmethod
    def require_identity(request: GatewayRequest) -> AuthenticatedIdentity:
        """Fail closed when the upstream authorizer attached no claims."""
        if request.identity is None:
            raise UnauthorizedError("Rejected unauthenticated command")
        return request.identity

    async def _record(self, event: AuditEvent) -> None:
        """Write an audit event, swallowing and logging any failure."""
        try:
            await self.audit_sink.write(event)
        except Exception as e:
            logger.error(f"Failed to write audit log: {e}")

    def cors_headers(self, origin: str | None = None) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": self._allow_origin(origin),
            "Access-Control-Allow-Credentials": "true",
        }

    def _allow_origin(self, origin: str | None) -> str:
        if "*" in self.allowed_origins:
            return "*"
        if origin and origin in self.allowed_origins:
            return origin
        return self.allowed_origins[0]
