from fastapi import Request

from deps.config import Settings
from services.payouts import PayoutTable
from services.rng import CommitmentEngine
from services.store import MemoryRoundStore, RoundStore


def build_store(settings: Settings) -> RoundStore:
    if settings.db_dsn:
        # pyodbc needs the system ODBC driver manager; only load it when configured
        from deps.db import SqlRoundStore
        return SqlRoundStore(settings.db_dsn)
    return MemoryRoundStore()


def get_engine(request: Request) -> CommitmentEngine:
    return request.app.state.engine


def get_table(request: Request) -> PayoutTable:
    return request.app.state.payouts


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
