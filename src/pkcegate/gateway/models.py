"""Data models for the command gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


class AuthenticatedIdentity(BaseModel):
    """Caller identity asserted by the upstream authorizer.

    The gateway trusts its presence as proof of authentication; signature
    and audience checks happen before the request reaches it.
    """

    user_id: str | None = None
    email: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any] | None) -> AuthenticatedIdentity | None:
        """Build an identity from a claims mapping; None when claims are absent.

        An empty mapping still counts as present. Scalar claims such as a
        numeric sub are coerced to strings.
        """
        if claims is None:
            return None
        return cls(
            user_id=_optional_str(claims.get("sub")),
            email=_optional_str(claims.get("email")),
            claims=dict(claims),
        )


class CommandPayload(BaseModel):
    """Privileged command submitted by the client.

    Every field is optional: malformed bodies are treated as an empty command
    rather than rejected, and unknown fields are carried through.
    """

    model_config = ConfigDict(extra="allow")

    command: Any = None
    area: Any = None
    address: Any = None
    value: Any = None


class CommandResult(BaseModel):
    value: Any = None
    message: str = ""


class CommandOutcome(BaseModel):
    """Structured result returned by a privileged action."""

    status: str
    timestamp: str = Field(default_factory=utc_timestamp)
    command: dict[str, Any] = Field(default_factory=dict)
    result: CommandResult = Field(default_factory=CommandResult)


class AuditEvent(BaseModel):
    """One record in the audit trail. Actor fields are absent on error paths."""

    action: str
    timestamp: str = Field(default_factory=utc_timestamp)
    user_id: str | None = None
    email: str | None = None
    source_ip: str | None = None
    user_agent: str | None = None
    command: dict[str, Any] | None = None
    result: str | None = None
    error: str | None = None

    def to_message(self) -> str:
        return self.model_dump_json(exclude_none=True)


@dataclass(frozen=True)
class GatewayRequest:
    """Transport-independent view of an inbound command request."""

    identity: AuthenticatedIdentity | None
    body: str | bytes | None = None
    source_ip: str | None = None
    user_agent: str | None = None
    origin: str | None = None


@dataclass
class GatewayResponse:
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
