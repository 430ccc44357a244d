import logging
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from deps.config import Settings
from deps.engine import get_app_settings, get_engine, get_table
from services.errors import (PersistenceError, SessionNotFoundError, StaleStateError,
                             UnsupportedBoardError)
from services.models import RevealedSeed, RoundState, Verification
from services.payouts import PayoutTable, settle
from services.rng import CommitmentEngine, verify_round

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plinko", tags=["plinko"])

Risk = Literal["low", "normal", "high"]


class SessionIn(BaseModel):
    client_seed: str = Field(min_length=1, max_length=64)


class SessionOut(BaseModel):
    session_id: str
    server_seed_hash: str
    client_seed: str
    nonce: int


class BetIn(BaseModel):
    session_id: str
    amount: Decimal = Field(gt=0, max_digits=38, decimal_places=8)
    risk: Optional[Risk] = None
    rows: Optional[int] = Field(default=None, ge=0)


class BetOut(BaseModel):
    session_id: str
    nonce: int
    rows: int
    risk: str
    digest: str
    path: List[int]
    slot: int
    multiplier: float
    amount: Decimal
    payout: Decimal
    server_seed_hash: str
    client_seed: str


class RotateIn(BaseModel):
    client_seed: Optional[str] = Field(default=None, min_length=1, max_length=64)


class RotateOut(BaseModel):
    revealed: RevealedSeed
    session: SessionOut


class VerifyIn(BaseModel):
    server_seed: str = Field(min_length=1, max_length=128)
    client_seed: str = Field(min_length=1, max_length=64)
    nonce: int = Field(ge=1)
    rows: int = Field(ge=0, le=64)
    digest: Optional[str] = Field(default=None, max_length=64)
    slot: Optional[int] = None
    server_seed_hash: Optional[str] = Field(default=None, max_length=64)


def public_view(state: RoundState) -> SessionOut:
    return SessionOut(session_id=state.session_id, server_seed_hash=state.server_seed_hash,
                      client_seed=state.client_seed, nonce=state.nonce)


def load_session(engine: CommitmentEngine, session_id: str) -> RoundState:
    try:
        return engine.load(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(503, "Seed store unavailable") from e


@router.post("/session", response_model=SessionOut)
def open_session(s: SessionIn, engine: CommitmentEngine = Depends(get_engine)):
    try:
        state = engine.start_session(s.client_seed)
    except PersistenceError as e:
        raise HTTPException(503, "Seed store unavailable") from e
    return public_view(state)


@router.get("/session/{session_id}", response_model=SessionOut)
def get_session(session_id: str, engine: CommitmentEngine = Depends(get_engine)):
    return public_view(load_session(engine, session_id))


@router.post("/bet", response_model=BetOut)
def place_bet(b: BetIn,
              engine: CommitmentEngine = Depends(get_engine),
              table: PayoutTable = Depends(get_table),
              settings: Settings = Depends(get_app_settings)):
    rows = settings.default_rows if b.rows is None else b.rows
    risk = b.risk or settings.default_risk
    if not table.supports(rows, risk):
        raise HTTPException(400, str(UnsupportedBoardError(rows, risk)))

    state = load_session(engine, b.session_id)
    try:
        state, outcome = engine.next_outcome(state, rows)
    except StaleStateError as e:
        raise HTTPException(409, str(e))
    except PersistenceError as e:
        # the nonce may or may not be recorded; the round is not played
        raise HTTPException(503, "Seed store unavailable") from e

    mult = table.multiplier(rows, risk, outcome.slot_index)
    logger.info("bet session=%s nonce=%d rows=%d risk=%s slot=%d x%s",
                state.session_id, outcome.nonce, rows, risk, outcome.slot_index, mult)
    return BetOut(
        session_id=state.session_id, nonce=outcome.nonce, rows=rows, risk=risk,
        digest=outcome.digest_hex, path=outcome.path, slot=outcome.slot_index,
        multiplier=mult, amount=b.amount, payout=settle(b.amount, mult),
        server_seed_hash=state.server_seed_hash, client_seed=state.client_seed,
    )


@router.post("/session/{session_id}/rotate", response_model=RotateOut)
def rotate_seed(session_id: str, r: RotateIn, engine: CommitmentEngine = Depends(get_engine)):
    state = load_session(engine, session_id)
    try:
        new_state, revealed = engine.rotate(state, r.client_seed)
    except StaleStateError as e:
        raise HTTPException(409, str(e))
    except PersistenceError as e:
        raise HTTPException(503, "Seed store unavailable") from e
    return RotateOut(revealed=revealed, session=public_view(new_state))


@router.post("/verify", response_model=Verification)
def verify(v: VerifyIn):
    return verify_round(v.server_seed, v.client_seed, v.nonce, v.rows,
                        digest_hex=v.digest, slot_index=v.slot, committed_hash=v.server_seed_hash)


@router.get("/payouts")
def payouts(table: PayoutTable = Depends(get_table)):
    return table.as_dict()
