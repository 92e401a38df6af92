"""Diagnostic trail of authentication steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

REDACTED_PREFIX_LENGTH = 10


def redact(value: str | None) -> str | None:
    """Truncate a secret to a short prefix suitable for diagnostics."""
    if value is None:
        return None
    return value[:REDACTED_PREFIX_LENGTH] + "..."


@dataclass(frozen=True)
class DebugStep:
    timestamp: str
    step: str
    details: dict[str, Any] = field(default_factory=dict)


class DebugTrail:
    """Append-only, in-memory record of authentication steps.

    Nothing here is persisted; a new engine starts with an empty trail.
    Callers are responsible for redacting details before recording them.
    """

    def __init__(self) -> None:
        self._steps: list[DebugStep] = []

    def add(self, step: str, **details: Any) -> DebugStep:
        entry = DebugStep(
            timestamp=datetime.now(timezone.utc).isoformat(),
            step=step,
            details=details,
        )
        self._steps.append(entry)
        return entry

    @property
    def steps(self) -> tuple[DebugStep, ...]:
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)
