"""Best-effort decoding of JWT payloads for display.

Nothing here verifies a signature. Claims decoded this way are diagnostic
only and must never be used for an authorization decision.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any


def decode_claims(token: Any) -> dict[str, Any] | None:
    """Decode the payload segment of a JWT.

    Args:
        token: Compact-serialized JWT (header.payload.signature)

    Returns:
        The payload claims, or None if the token is malformed in any way
    """
    if not isinstance(token, str):
        return None

    segments = token.split(".")
    if len(segments) < 2 or not segments[1]:
        return None

    payload = segments[1]
    # Restore padding stripped by base64url encoding
    payload += "=" * (-len(payload) % 4)

    try:
        raw = base64.b64decode(
            payload.encode("ascii"), altchars=b"-_", validate=True
        )
        claims = json.loads(raw.decode("utf-8"))
    except (UnicodeError, binascii.Error, ValueError, RecursionError):
        return None

    if not isinstance(claims, dict):
        return None
    return claims
