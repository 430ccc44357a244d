import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from deps.config import Settings, get_settings
from deps.engine import build_store
from routers import admin, plinko
from services.errors import PayoutConfigError
from services.payouts import PayoutTable, default_table
from services.rng import CommitmentEngine
from services.validator import validate_all

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, table: PayoutTable | None = None,
               engine: CommitmentEngine | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.log_level)
        payouts = table or default_table()
        report = validate_all(payouts, settings.rtp_ceiling)
        if not report.ok:
            logger.error("payout tables failed the fairness audit:\n%s", report.render())
            raise PayoutConfigError(f"{len(report.failures)} payout tables exceed {settings.rtp_ceiling}%")
        if not payouts.supports(settings.default_rows, settings.default_risk):
            raise PayoutConfigError(
                f"default board rows={settings.default_rows} risk={settings.default_risk} has no payout table")
        app.state.settings = settings
        app.state.payouts = payouts
        app.state.engine = engine or CommitmentEngine(build_store(settings))
        logger.info("plinko engine ready: %d boards, store %s",
                    len(payouts), type(app.state.engine.store).__name__)
        yield

    app = FastAPI(title="Plinko API (Provably Fair)", lifespan=lifespan)
    app.include_router(plinko.router)
    app.include_router(admin.router)

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/docs")

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    return app


app = create_app()
