"""
Tests for the SQL Server seed store, with the ODBC connection faked out.
"""

from contextlib import contextmanager

import pytest

pyodbc = pytest.importorskip("pyodbc", exc_type=ImportError)

from deps import db  # noqa: E402
from services.errors import PersistenceError, SessionNotFoundError, StaleStateError  # noqa: E402
from services.models import RoundState  # noqa: E402


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params):
        self.conn.executed.append((" ".join(sql.split()), params))
        if self.conn.error is not None:
            raise self.conn.error

    def fetchall(self):
        if self.conn.results is None:
            raise pyodbc.ProgrammingError("No results.  Previous SQL was not a query.")
        return self.conn.results

    def close(self):
        pass


class FakeConn:
    def __init__(self, results=None, error=None):
        self.results = results
        self.error = error
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


@pytest.fixture
def fake(monkeypatch):
    conn = FakeConn()

    @contextmanager
    def fake_get_conn(dsn=None):
        yield conn

    monkeypatch.setattr(db, "get_conn", fake_get_conn)
    return conn


@pytest.fixture
def store():
    return db.SqlRoundStore("DSN=test")


@pytest.fixture
def state():
    return RoundState(session_id="abc", server_seed="s" * 64, client_seed="c", nonce=3)


class TestSqlRoundStore:

    def test_create(self, fake, store, state):
        store.create(state)
        sql, params = fake.executed[0]
        assert sql.startswith("INSERT INTO dbo.PlinkoSeeds")
        assert params == ("abc", "s" * 64, "c", 3)

    def test_load(self, fake, store, state):
        fake.results = [("s" * 64, "c", 3)]
        assert store.load("abc") == state

    def test_load_missing(self, fake, store):
        fake.results = []
        with pytest.raises(SessionNotFoundError):
            store.load("abc")

    def test_advance_is_conditional(self, fake, store, state):
        fake.results = [(4,)]
        new = store.advance(state)
        assert new.nonce == 4
        sql, params = fake.executed[0]
        assert "OUTPUT inserted.Nonce" in sql
        assert "Nonce = ?" in sql.split("WHERE")[1]
        assert params == ("abc", "s" * 64, 3)

    def test_advance_stale(self, fake, store, state):
        fake.results = []
        with pytest.raises(StaleStateError):
            store.advance(state)

    def test_replace(self, fake, store, state):
        fake.results = [("abc",)]
        new = RoundState(session_id="abc", server_seed="t" * 64, client_seed="d", nonce=0)
        store.replace(state, new)
        _, params = fake.executed[0]
        assert params == ("t" * 64, "d", 0, "abc", "s" * 64, 3)

    def test_replace_stale(self, fake, store, state):
        fake.results = []
        with pytest.raises(StaleStateError):
            store.replace(state, state)

    def test_driver_error_becomes_persistence_error(self, fake, store, state):
        fake.error = pyodbc.OperationalError("08S01", "link failure")
        with pytest.raises(PersistenceError):
            store.advance(state)
