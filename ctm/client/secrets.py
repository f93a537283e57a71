"""
Secret Store - Keeps each player's commitment secrets until reveal.

A commitment is useless without its salt. Secrets are kept per
(session id, player) and may be persisted to a JSON file so a restarted
client can still reveal. Salts are stored hex-encoded.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any
import json
import threading

from ..engine_core.commitment import ChoiceSecret, HandsSecret


class SecretStore:
    """
    Per-session, per-player secret storage.

    With `path=None` secrets live in memory only.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, Any]] = {}
        if self.path is not None and self.path.exists():
            self._data = json.loads(self.path.read_text())

    @staticmethod
    def _key(session_id: int, player: str) -> str:
        return f"{session_id}:{player}"

    def _put(self, session_id: int, player: str, kind: str, value: dict) -> None:
        with self._lock:
            self._data.setdefault(self._key(session_id, player), {})[kind] = value
            self._flush()

    def _get(self, session_id: int, player: str, kind: str) -> dict | None:
        return self._data.get(self._key(session_id, player), {}).get(kind)

    def _flush(self) -> None:
        if self.path is not None:
            self.path.write_text(json.dumps(self._data, indent=2, sort_keys=True))

    def save_hands(self, session_id: int, player: str, secret: HandsSecret) -> None:
        self._put(session_id, player, "hands", secret.to_dict())

    def load_hands(self, session_id: int, player: str) -> HandsSecret | None:
        data = self._get(session_id, player, "hands")
        return HandsSecret.from_dict(data) if data else None

    def save_choice(self, session_id: int, player: str, secret: ChoiceSecret) -> None:
        self._put(session_id, player, "choice", secret.to_dict())

    def load_choice(self, session_id: int, player: str) -> ChoiceSecret | None:
        data = self._get(session_id, player, "choice")
        return ChoiceSecret.from_dict(data) if data else None

    def clear(self, session_id: int, player: str) -> None:
        """Forget everything stored for one player in one session."""
        with self._lock:
            self._data.pop(self._key(session_id, player), None)
            self._flush()
