"""Privileged actions executed by the command gateway."""

from __future__ import annotations

import logging
from typing import Protocol

from pkcegate.gateway.models import (
    AuthenticatedIdentity,
    CommandOutcome,
    CommandPayload,
    CommandResult,
)

logger = logging.getLogger(__name__)


class Action(Protocol):
    async def execute(
        self,
        secrets: dict[str, str],
        identity: AuthenticatedIdentity,
        command: CommandPayload,
    ) -> CommandOutcome:
        """Carry out the command.

        Business failures are reported through the outcome status. Only
        transport or infrastructure failures raise (ActionExecutionError).
        """
        ...


class SimulatedAction:
    """Stand-in for the device-control protocol.

    Logs the resolved target and reports success without contacting any
    device.
    """

    async def execute(
        self,
        secrets: dict[str, str],
        identity: AuthenticatedIdentity,
        command: CommandPayload,
    ) -> CommandOutcome:
        logger.info(
            f"Executing command {command.command!r} for user {identity.user_id} "
            f"via gateway {secrets.get('gateway-id')} "
            f"on topic {secrets.get('mqtt-topic')}"
        )
        return CommandOutcome(
            status="success",
            command=command.model_dump(exclude_none=True),
            result=CommandResult(value="OK", message="Command executed successfully"),
        )
