import logging
from contextlib import contextmanager

import pyodbc

from deps.config import get_settings
from services.errors import PersistenceError, SessionNotFoundError, StaleStateError
from services.models import RoundState

logger = logging.getLogger(__name__)


@contextmanager
def get_conn(dsn: str | None = None):
    conn = pyodbc.connect(dsn or get_settings().db_dsn, autocommit=False)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def exec_tsql(conn, sql: str, params: tuple = ()):
    cur = conn.cursor()
    try:
        cur.execute(sql, params)
        try:
            return cur.fetchall()
        except pyodbc.ProgrammingError:
            # statement produced no result set
            return []
    finally:
        cur.close()


class SqlRoundStore:
    """
    Seed pairs kept in dbo.PlinkoSeeds(SessionId, ServerSeed, ClientSeed, Nonce).
    Every write is a conditional UPDATE, so two writers on one session cannot
    both consume the same nonce.
    """

    def __init__(self, dsn: str):
        self.dsn = dsn

    def _run(self, sql: str, params: tuple = ()):
        try:
            with get_conn(self.dsn) as conn:
                return exec_tsql(conn, sql, params)
        except pyodbc.Error as exc:
            logger.error("seed store query failed: %s", exc)
            raise PersistenceError(str(exc)) from exc

    def create(self, state: RoundState) -> None:
        self._run(
            "INSERT INTO dbo.PlinkoSeeds(SessionId, ServerSeed, ClientSeed, Nonce) VALUES (?, ?, ?, ?);",
            (state.session_id, state.server_seed, state.client_seed, state.nonce),
        )

    def load(self, session_id: str) -> RoundState:
        rows = self._run(
            "SELECT ServerSeed, ClientSeed, Nonce FROM dbo.PlinkoSeeds WHERE SessionId = ?;",
            (session_id,),
        )
        if not rows:
            raise SessionNotFoundError(session_id)
        server_seed, client_seed, nonce = rows[0]
        return RoundState(session_id=session_id, server_seed=server_seed,
                          client_seed=client_seed, nonce=int(nonce))

    def advance(self, state: RoundState) -> RoundState:
        rows = self._run(
            """
UPDATE dbo.PlinkoSeeds
SET Nonce = Nonce + 1
OUTPUT inserted.Nonce
WHERE SessionId = ? AND ServerSeed = ? AND Nonce = ?;
""",
            (state.session_id, state.server_seed, state.nonce),
        )
        if not rows:
            raise StaleStateError(f"session {state.session_id} moved past nonce {state.nonce}")
        return state.model_copy(update={"nonce": int(rows[0][0])})

    def replace(self, old: RoundState, new: RoundState) -> None:
        rows = self._run(
            """
UPDATE dbo.PlinkoSeeds
SET ServerSeed = ?, ClientSeed = ?, Nonce = ?
OUTPUT inserted.SessionId
WHERE SessionId = ? AND ServerSeed = ? AND Nonce = ?;
""",
            (new.server_seed, new.client_seed, new.nonce, old.session_id, old.server_seed, old.nonce),
        )
        if not rows:
            raise StaleStateError(f"session {old.session_id} changed before rotation")
