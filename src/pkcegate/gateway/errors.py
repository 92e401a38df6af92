"""Exception hierarchy for the command gateway.

Each type maps to one response policy:
- UnauthorizedError: 401, not audited
- SecretFetchError, ActionExecutionError: 500, audited as COMMAND_ERROR
- AuditWriteError: logged only, never changes the response
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for command gateway failures."""

    pass


class UnauthorizedError(GatewayError):
    """Raised when a request reaches the gateway without identity claims."""

    pass


class SecretFetchError(GatewayError):
    """Raised when the secret provider fails or returns an incomplete set."""

    def __init__(self, message: str, missing_keys: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing_keys = missing_keys


class ActionExecutionError(GatewayError):
    """Raised by a privileged action for transport or infrastructure failures.

    Ordinary business failures are reported through the outcome status
    instead.
    """

    pass


class AuditWriteError(GatewayError):
    """Raised by an audit sink when an event cannot be written."""

    pass
