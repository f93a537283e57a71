"""
Escrow - The points hub that locks stakes and pays out winners.

The game contract never moves points itself. It reports session start and
end to a hub (the escrow collaborator), which owns balances and locks.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
import threading

from .auth import Account

logger = logging.getLogger(__name__)


class EscrowError(Exception):
    """The hub refused to lock or settle."""
    pass


class Escrow(ABC):
    """
    Interface the game contract calls at session start and end.

    A hub is addressed like an account; the admin switches hubs by address.
    """
    address: str

    @abstractmethod
    def start_game(
        self,
        game_id: str,
        session_id: int,
        player_a: str,
        player_b: str,
        stake_a: int,
        stake_b: int,
    ) -> None:
        """Lock both stakes for the session."""
        pass

    @abstractmethod
    def end_game(self, session_id: int, player_a_won: bool) -> None:
        """Release both stakes to the winner."""
        pass


@dataclass
class LockedStakes:
    game_id: str
    player_a: str
    player_b: str
    stake_a: int
    stake_b: int

    @property
    def total(self) -> int:
        return self.stake_a + self.stake_b


@dataclass
class InMemoryGameHub(Escrow):
    """
    Points hub backed by dictionaries.

    With `enforce_balances=False` (the default) balances may go negative,
    so any stake can be locked without funding accounts first.
    """
    enforce_balances: bool = False
    address: str = field(default_factory=lambda: Account.generate().address)
    balances: dict[str, int] = field(default_factory=dict)
    locked: dict[int, LockedStakes] = field(default_factory=dict)
    results: dict[int, str] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def credit(self, address: str, amount: int) -> None:
        with self._lock:
            self.balances[address] = self.balances.get(address, 0) + amount

    def balance(self, address: str) -> int:
        return self.balances.get(address, 0)

    def start_game(self, game_id, session_id, player_a, player_b, stake_a, stake_b) -> None:
        with self._lock:
            if session_id in self.locked:
                raise EscrowError(f"Stakes for session {session_id} already locked")
            if self.enforce_balances:
                for player, stake in ((player_a, stake_a), (player_b, stake_b)):
                    if self.balances.get(player, 0) < stake:
                        raise EscrowError(f"Insufficient points for {player}")
            self.balances[player_a] = self.balances.get(player_a, 0) - stake_a
            self.balances[player_b] = self.balances.get(player_b, 0) - stake_b
            self.locked[session_id] = LockedStakes(game_id, player_a, player_b, stake_a, stake_b)
        logger.info(f"Locked {stake_a}+{stake_b} points for session {session_id}")

    def end_game(self, session_id, player_a_won) -> None:
        with self._lock:
            stakes = self.locked.pop(session_id, None)
            if stakes is None:
                raise EscrowError(f"No stakes locked for session {session_id}")
            winner = stakes.player_a if player_a_won else stakes.player_b
            self.balances[winner] = self.balances.get(winner, 0) + stakes.total
            self.results[session_id] = winner
        logger.info(f"Paid {stakes.total} points to {winner} for session {session_id}")
