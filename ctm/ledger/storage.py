"""
Session Store - The arena of session records keyed by session id.

The store is the single-writer boundary for session records:
- One lock per session id serializes read-apply-swap of that record
- Distinct sessions never contend
- Records are immutable; a save swaps the whole record

Each save extends the record's time-to-live, like temporary ledger
storage. A record whose TTL lapsed reads as missing.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator
import logging
import threading

from ..config import GAME_TTL_LEDGERS
from ..engine_core.state import GameSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredSession:
    session: GameSession
    live_until_ledger: int


class SessionStore:
    """In-memory session arena with per-session locks."""

    def __init__(self, ttl_ledgers: int = GAME_TTL_LEDGERS):
        self.ttl_ledgers = ttl_ledgers
        self._records: dict[int, StoredSession] = {}
        self._locks: dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def locked(self, session_id: int) -> Iterator[None]:
        """Hold the lock for one session id."""
        while True:
            with self._guard:
                lock = self._locks.setdefault(session_id, threading.Lock())
            with lock:
                # Eviction may retire a lock that waiters are still queued on
                with self._guard:
                    current = self._locks.get(session_id) is lock
                if current:
                    yield
                    return

    def load(self, session_id: int, sequence: int) -> GameSession | None:
        stored = self._records.get(session_id)
        if stored is None or stored.live_until_ledger < sequence:
            return None
        return stored.session

    def save(self, session: GameSession, sequence: int) -> None:
        self._records[session.session_id] = StoredSession(
            session=session,
            live_until_ledger=sequence + self.ttl_ledgers,
        )

    def live_until(self, session_id: int) -> int | None:
        stored = self._records.get(session_id)
        return stored.live_until_ledger if stored else None

    def session_ids(self, sequence: int) -> list[int]:
        return sorted(
            sid for sid, stored in list(self._records.items())
            if stored.live_until_ledger >= sequence
        )

    def collect_expired(self, sequence: int) -> list[int]:
        """
        Evict records whose TTL has lapsed, and retire the locks of ids
        that hold no live record.

        Returns the evicted session ids.
        """
        evicted = []
        with self._guard:
            candidates = set(self._records) | set(self._locks)
        for session_id in sorted(candidates):
            with self.locked(session_id):
                stored = self._records.get(session_id)
                if stored is not None and stored.live_until_ledger >= sequence:
                    continue
                if stored is not None:
                    del self._records[session_id]
                    evicted.append(session_id)
                with self._guard:
                    self._locks.pop(session_id, None)
        if evicted:
            logger.info(f"Evicted {len(evicted)} expired session(s): {evicted}")
        return evicted
