import threading
from typing import Dict, Protocol

from services.errors import PersistenceError, SessionNotFoundError, StaleStateError
from services.models import RoundState


class RoundStore(Protocol):
    def create(self, state: RoundState) -> None: ...

    def load(self, session_id: str) -> RoundState: ...

    def advance(self, state: RoundState) -> RoundState:
        """Persist state.nonce + 1 if the stored nonce is still state.nonce."""
        ...

    def replace(self, old: RoundState, new: RoundState) -> None: ...


class MemoryRoundStore:
    def __init__(self):
        self._states: Dict[str, RoundState] = {}
        self._lock = threading.Lock()

    def create(self, state: RoundState) -> None:
        with self._lock:
            if state.session_id in self._states:
                raise PersistenceError(f"session {state.session_id} already exists")
            self._states[state.session_id] = state

    def load(self, session_id: str) -> RoundState:
        with self._lock:
            try:
                return self._states[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None

    def _current(self, state: RoundState) -> RoundState:
        current = self._states.get(state.session_id)
        if current is None:
            raise SessionNotFoundError(state.session_id)
        if current.server_seed != state.server_seed or current.nonce != state.nonce:
            raise StaleStateError(
                f"session {state.session_id} is at nonce {current.nonce}, caller had {state.nonce}")
        return current

    def advance(self, state: RoundState) -> RoundState:
        with self._lock:
            new = self._current(state).advanced()
            self._states[state.session_id] = new
            return new

    def replace(self, old: RoundState, new: RoundState) -> None:
        with self._lock:
            self._current(old)
            self._states[old.session_id] = new
