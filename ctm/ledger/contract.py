"""
Game Contract - The ledger-executed program.

The contract:
1. Checks the invocation shape (method name, argument count and types)
2. Declares which addresses must authorize it, and for which arguments
3. Loads the session record, applies the reducer, and swaps the record
4. Reports session start and end to the escrow hub

A session settles on the hub that locked its stakes, even if the admin
has switched hubs since.

Authorization is verified by the ledger before invoke() runs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from ..engine_core.action import Call, CallType
from ..engine_core.errors import GameError, MalformedInvocation
from ..engine_core.events import Event
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameSession
from .auth import Invocation, ScArg, ScType
from .escrow import Escrow, EscrowError
from .storage import SessionStore

logger = logging.getLogger(__name__)

U32, I128, ADDRESS, BYTES32 = ScType.U32, ScType.I128, ScType.ADDRESS, ScType.BYTES32

# Method name -> argument types
METHODS: dict[str, tuple[ScType, ...]] = {
    "create_session": (U32, ADDRESS, ADDRESS, I128, I128),
    "commit_hands": (U32, ADDRESS, BYTES32),
    "reveal_hands": (U32, ADDRESS, U32, U32, BYTES32),
    "commit_choice": (U32, ADDRESS, BYTES32),
    "reveal_choice": (U32, ADDRESS, U32, BYTES32),
    "get_session": (U32,),
    "get_admin": (),
    "set_admin": (ADDRESS,),
    "get_hub": (),
    "set_hub": (ADDRESS,),
}

READ_ONLY_METHODS = {"get_session", "get_admin", "get_hub"}
ADMIN_METHODS = {"set_admin", "set_hub"}

# Arguments each player authorizes for create_session: (session_id, own stake)
CREATE_AUTH_TYPES = (U32, I128)


# =============================================================================
# Invocation builders
# =============================================================================

def create_session_auth_invocation(contract_id: str, session_id: int, stake: int) -> Invocation:
    """The invocation one player signs to join create_session."""
    return Invocation(contract_id, "create_session", (ScArg.u32(session_id), ScArg.i128(stake)))


def invocation_for_call(contract_id: str, call: Call) -> Invocation:
    """Encode an engine call as a typed contract invocation."""
    p = call.payload
    sid = ScArg.u32(call.session_id)
    if call.call_type is CallType.CREATE_SESSION:
        args = (sid, ScArg.address(p.player_a), ScArg.address(p.player_b),
                ScArg.i128(p.stake_a), ScArg.i128(p.stake_b))
    elif call.call_type in (CallType.COMMIT_HANDS, CallType.COMMIT_CHOICE):
        args = (sid, ScArg.address(p.player), ScArg.bytes32(p.commitment))
    elif call.call_type is CallType.REVEAL_HANDS:
        args = (sid, ScArg.address(p.player), ScArg.u32(p.left), ScArg.u32(p.right), ScArg.bytes32(p.salt))
    else:
        args = (sid, ScArg.address(p.player), ScArg.u32(p.index), ScArg.bytes32(p.salt))
    return Invocation(contract_id, call.call_type.value, args)


def call_from_invocation(invocation: Invocation) -> Call:
    """Decode a game invocation into an engine call."""
    check_invocation(invocation)
    call_type = CallType(invocation.function_name)
    v = invocation.values()
    if call_type is CallType.CREATE_SESSION:
        return Call.create_session(v[0], v[1], v[2], v[3], v[4])
    if call_type is CallType.COMMIT_HANDS:
        return Call.commit_hands(v[0], v[1], v[2])
    if call_type is CallType.REVEAL_HANDS:
        return Call.reveal_hands(v[0], v[1], v[2], v[3], v[4])
    if call_type is CallType.COMMIT_CHOICE:
        return Call.commit_choice(v[0], v[1], v[2])
    return Call.reveal_choice(v[0], v[1], v[2], v[3])


def check_invocation(invocation: Invocation) -> None:
    """Raise MalformedInvocation unless the method and argument types match."""
    expected = METHODS.get(invocation.function_name)
    if expected is None:
        raise MalformedInvocation(f"Unknown method: {invocation.function_name!r}")
    if len(invocation.args) != len(expected):
        raise MalformedInvocation(
            f"{invocation.function_name} expects {len(expected)} args, got {len(invocation.args)}"
        )
    if invocation.arg_types != expected:
        raise MalformedInvocation(
            f"{invocation.function_name} argument types "
            f"{[t.value for t in invocation.arg_types]} != {[t.value for t in expected]}"
        )


@dataclass
class InvokeOutcome:
    """What a contract invocation produced."""
    success: bool
    value: Any = None
    error: str | None = None
    error_code: GameError | None = None
    events: list[Event] = field(default_factory=list)

    @classmethod
    def failed(cls, error_code: GameError | None, error: str) -> InvokeOutcome:
        return cls(success=False, error=error, error_code=error_code)


class CtmContract:
    """
    The Commit-Turn-Move game contract.

    Usage:
        contract = CtmContract(admin=admin.address, hub=InMemoryGameHub())
        contract_id = ledger.deploy(contract)
    """

    def __init__(self, admin: str, hub: Escrow, store: SessionStore | None = None):
        self.admin = admin
        self.hubs: dict[str, Escrow] = {}
        self.register_hub(hub)
        self.hub_address = hub.address
        self.store = store or SessionStore()
        self.reducer = Reducer()
        self.contract_id: str | None = None  # Assigned on deploy
        self._session_hubs: dict[int, str] = {}

    @property
    def hub(self) -> Escrow:
        """The hub new sessions lock their stakes with."""
        return self.hubs[self.hub_address]

    def register_hub(self, hub: Escrow) -> None:
        """Make a hub reachable by address, so set_hub can select it."""
        self.hubs[hub.address] = hub

    def required_auth(self, invocation: Invocation) -> list[tuple[str, Invocation]]:
        """
        (address, invocation) pairs that must be authorized.

        For create_session each player authorizes only (session_id, own
        stake), so a player can sign before the opponent is known.
        """
        check_invocation(invocation)
        name = invocation.function_name
        v = invocation.values()
        if name in READ_ONLY_METHODS:
            return []
        if name == "create_session":
            session_id, player_a, player_b, stake_a, stake_b = v
            return [
                (player_a, create_session_auth_invocation(invocation.contract_id, session_id, stake_a)),
                (player_b, create_session_auth_invocation(invocation.contract_id, session_id, stake_b)),
            ]
        if name in ADMIN_METHODS:
            return [(self.admin, invocation)]
        return [(v[1], invocation)]

    def invoke(self, invocation: Invocation, sequence: int) -> InvokeOutcome:
        """Execute an (already authorized) invocation and commit its effects."""
        return self._run(invocation, sequence, commit=True)

    def simulate(self, invocation: Invocation, sequence: int) -> InvokeOutcome:
        """Execute against current state without committing anything."""
        return self._run(invocation, sequence, commit=False)

    def _run(self, invocation: Invocation, sequence: int, commit: bool) -> InvokeOutcome:
        check_invocation(invocation)
        name = invocation.function_name
        if name == "get_session":
            return self._get_session(invocation.values()[0], sequence)
        if name == "get_admin":
            return InvokeOutcome(success=True, value=self.admin)
        if name == "set_admin":
            if commit:
                self.admin = invocation.values()[0]
                logger.info(f"Admin changed to {self.admin}")
            return InvokeOutcome(success=True, value=invocation.values()[0])
        if name == "get_hub":
            return InvokeOutcome(success=True, value=self.hub_address)
        if name == "set_hub":
            return self._set_hub(invocation.values()[0], commit)
        return self._apply(call_from_invocation(invocation), sequence, commit)

    def _set_hub(self, address: str, commit: bool) -> InvokeOutcome:
        if address not in self.hubs:
            return InvokeOutcome.failed(None, f"No hub registered at {address}")
        if commit:
            self.hub_address = address
            logger.info(f"Hub changed to {address}")
        return InvokeOutcome(success=True, value=address)

    def _get_session(self, session_id: int, sequence: int) -> InvokeOutcome:
        session = self.store.load(session_id, sequence)
        if session is None:
            return InvokeOutcome.failed(GameError.GAME_NOT_FOUND, f"Session {session_id} not found")
        return InvokeOutcome(success=True, value=session)

    def _apply(self, call: Call, sequence: int, commit: bool) -> InvokeOutcome:
        with self.store.locked(call.session_id):
            current = self.store.load(call.session_id, sequence)
            result = self.reducer.apply(current, call)
            if not result.success:
                if commit:
                    logger.warning(
                        f"Rejected {call.call_type.value} on session {call.session_id}: "
                        f"{result.error_code.name}"
                    )
                return InvokeOutcome.failed(result.error_code, result.error)

            session: GameSession = result.new_session
            if not commit:
                return InvokeOutcome(success=True, value=session, events=result.events)

            try:
                self._report_to_hub(call, session)
            except EscrowError as e:
                logger.warning(f"Escrow refused {call.call_type.value} on session {call.session_id}: {e}")
                return InvokeOutcome.failed(None, str(e))

            self.store.save(session, sequence)

        for change in result.state_changes:
            logger.info(change)
        return InvokeOutcome(success=True, value=session, events=result.events)

    def _report_to_hub(self, call: Call, session: GameSession) -> None:
        sid = session.session_id
        if call.call_type is CallType.CREATE_SESSION:
            self.hub.start_game(
                self.contract_id,
                sid,
                session.player_a,
                session.player_b,
                session.stake_a,
                session.stake_b,
            )
            self._session_hubs[sid] = self.hub_address
        elif session.is_complete:
            hub = self.hubs[self._session_hubs.get(sid, self.hub_address)]
            hub.end_game(sid, session.winner == session.player_a)
            self._session_hubs.pop(sid, None)

    def read_session(self, session_id: int, sequence: int) -> GameSession | None:
        return self.store.load(session_id, sequence)

    def session_ids(self, sequence: int) -> list[int]:
        return self.store.session_ids(sequence)

    def collect_expired(self, sequence: int) -> list[int]:
        """Evict lapsed session records and forget which hub locked them."""
        evicted = self.store.collect_expired(sequence)
        for session_id in evicted:
            self._session_hubs.pop(session_id, None)
        return evicted
