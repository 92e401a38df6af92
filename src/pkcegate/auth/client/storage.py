"""Client-side storage for the PKCE verifier and issued tokens.

Two scopes are involved:
- an ephemeral store that only has to survive one authorization round trip
  (holds the code verifier)
- a persistent store that survives restarts (holds the three tokens)

Both are plain key-value stores behind the KeyValueStore protocol so tests
can substitute in-memory fakes.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from pkcegate.auth.client.models.tokens import TokenSet

logger = logging.getLogger(__name__)

CODE_VERIFIER_KEY = "pkce_code_verifier"
ID_TOKEN_KEY = "id_token"
ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"

TOKEN_KEYS = (ID_TOKEN_KEY, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY)


class KeyValueStore(Protocol):
    """Minimal string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """Store backed by a single JSON file readable only by the owner.

    The whole file is rewritten on every change; the store is meant for a
    handful of token strings, not bulk data.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)


class TokenStore:
    """Typed access to the verifier and token values.

    Tokens are written field by field so a partial token response never
    leaves a stale refresh token behind unless the provider omitted it.
    """

    def __init__(
        self,
        ephemeral: KeyValueStore | None = None,
        persistent: KeyValueStore | None = None,
    ):
        self.ephemeral = ephemeral if ephemeral is not None else InMemoryStore()
        self.persistent = persistent if persistent is not None else InMemoryStore()

    # Verifier (one authorization round trip)

    def get_code_verifier(self) -> str | None:
        return self.ephemeral.get(CODE_VERIFIER_KEY)

    def set_code_verifier(self, code_verifier: str) -> None:
        self.ephemeral.set(CODE_VERIFIER_KEY, code_verifier)

    def clear_code_verifier(self) -> None:
        self.ephemeral.delete(CODE_VERIFIER_KEY)

    # Tokens (persistent)

    @property
    def id_token(self) -> str | None:
        return self.persistent.get(ID_TOKEN_KEY)

    @property
    def access_token(self) -> str | None:
        return self.persistent.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> str | None:
        return self.persistent.get(REFRESH_TOKEN_KEY)

    def save_tokens(self, tokens: TokenSet) -> None:
        """Persist an issued token set.

        The refresh token is only overwritten when the response carries one;
        providers do not necessarily rotate it.
        """
        if tokens.id_token is not None:
            self.persistent.set(ID_TOKEN_KEY, tokens.id_token)
        else:
            self.persistent.delete(ID_TOKEN_KEY)
        self.persistent.set(ACCESS_TOKEN_KEY, tokens.access_token)
        if tokens.refresh_token:
            self.persistent.set(REFRESH_TOKEN_KEY, tokens.refresh_token)

    def clear_tokens(self) -> None:
        for key in TOKEN_KEYS:
            self.persistent.delete(key)
