from fastapi import APIRouter, Depends

from deps.config import Settings
from deps.engine import get_app_settings, get_table
from services.payouts import PayoutTable
from services.validator import validate_all

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/fairness")
def fairness_report(ceiling: float | None = None,
                    table: PayoutTable = Depends(get_table),
                    settings: Settings = Depends(get_app_settings)):
    report = validate_all(table, settings.rtp_ceiling if ceiling is None else ceiling)
    return {
        "ok": report.ok,
        "ceiling": report.ceiling,
        "failures": len(report.failures),
        "results": [r.model_dump() for r in report.results],
    }
