import logging
import secrets
import threading
from typing import List, Optional, Tuple

from services import sha256
from services.models import Outcome, RevealedSeed, RoundState, Verification
from services.store import RoundStore

logger = logging.getLogger(__name__)

# a byte above this value sends the ball right
RIGHT_THRESHOLD = 127


def generate_server_seed() -> str:
    return secrets.token_hex(32)


def server_seed_hash(server_seed: str) -> str:
    return sha256.hexdigest(server_seed)


def build_message(server_seed: str, client_seed: str, nonce: int) -> str:
    # published layout: serverSeed + clientSeed + ":" + nonce
    return f"{server_seed}{client_seed}:{nonce}"


def round_digest(server_seed: str, client_seed: str, nonce: int) -> str:
    return sha256.hexdigest(build_message(server_seed, client_seed, nonce))


def map_to_slot(digest_hex: str, rows: int) -> Tuple[List[int], int]:
    """
    One byte of the digest per row, read at hex offset (i*2) mod len(digest).
    Boards taller than the digest reuse bytes from the start.
    """
    if rows < 0:
        raise ValueError("rows must be >= 0")
    size = len(digest_hex)
    path = []
    for i in range(rows):
        offset = (i * 2) % size
        value = int(digest_hex[offset:offset + 2], 16)
        path.append(1 if value > RIGHT_THRESHOLD else 0)
    return path, sum(path)


def compute_outcome(server_seed: str, client_seed: str, nonce: int, rows: int) -> Outcome:
    digest_hex = round_digest(server_seed, client_seed, nonce)
    path, slot = map_to_slot(digest_hex, rows)
    return Outcome(rows=rows, nonce=nonce, digest_hex=digest_hex, path=path, slot_index=slot)


def verify_round(server_seed: str, client_seed: str, nonce: int, rows: int,
                 digest_hex: Optional[str] = None, slot_index: Optional[int] = None,
                 committed_hash: Optional[str] = None) -> Verification:
    outcome = compute_outcome(server_seed, client_seed, nonce, rows)
    result = Verification(digest_hex=outcome.digest_hex, path=outcome.path, slot_index=outcome.slot_index)
    if digest_hex is not None:
        result.digest_matches = digest_hex.lower() == outcome.digest_hex
    if slot_index is not None:
        result.slot_matches = slot_index == outcome.slot_index
    if committed_hash is not None:
        result.commitment_matches = committed_hash.lower() == server_seed_hash(server_seed)
    return result


class CommitmentEngine:
    """
    Issues rounds for a seed pair.

    The nonce is persisted through the store before the digest is computed,
    so a round that fails afterwards has still consumed its nonce.
    """

    def __init__(self, store: RoundStore):
        self.store = store
        self._lock = threading.Lock()

    def start_session(self, client_seed: str, session_id: Optional[str] = None) -> RoundState:
        fields = {"server_seed": generate_server_seed(), "client_seed": client_seed}
        if session_id is not None:
            fields["session_id"] = session_id
        state = RoundState(**fields)
        self.store.create(state)
        logger.info("session %s started, commitment %s", state.session_id, state.server_seed_hash)
        return state

    def load(self, session_id: str) -> RoundState:
        return self.store.load(session_id)

    def next_outcome(self, state: RoundState, rows: int) -> Tuple[RoundState, Outcome]:
        if rows < 0:
            raise ValueError("rows must be >= 0")
        with self._lock:
            state = self.store.advance(state)
        outcome = compute_outcome(state.server_seed, state.client_seed, state.nonce, rows)
        logger.debug("session %s nonce %d rows %d -> slot %d",
                     state.session_id, state.nonce, rows, outcome.slot_index)
        return state, outcome

    def rotate(self, state: RoundState, client_seed: Optional[str] = None) -> Tuple[RoundState, RevealedSeed]:
        new_state = RoundState(
            session_id=state.session_id,
            server_seed=generate_server_seed(),
            client_seed=client_seed or state.client_seed,
            nonce=0,
        )
        with self._lock:
            self.store.replace(state, new_state)
        revealed = RevealedSeed(
            server_seed=state.server_seed,
            server_seed_hash=state.server_seed_hash,
            client_seed=state.client_seed,
            final_nonce=state.nonce,
        )
        logger.info("session %s rotated after nonce %d, new commitment %s",
                    state.session_id, state.nonce, new_state.server_seed_hash)
        return new_state, revealed
