"""
Offline expected-return audit of the payout tables.

Slot k of an n-row board is hit with probability C(n, k) / 2**n, the same
fair-coin model the outcome mapper produces. Run as a CI check:

    python -m services.validator
"""
import logging
import sys
from typing import List, Optional

from pydantic import BaseModel

from services.payouts import PayoutTable, default_table

logger = logging.getLogger(__name__)

DEFAULT_CEILING = 99.0


def binomial_row(n: int) -> List[int]:
    if n < 0:
        raise ValueError("n must be >= 0")
    row = [1]
    for k in range(n):
        row.append(row[k] * (n - k) // (k + 1))
    return row


def probabilities(n: int) -> List[float]:
    total = 2 ** n
    return [c / total for c in binomial_row(n)]


def expected_return(table: PayoutTable, rows: int, risk: str) -> float:
    mults = table.multipliers(rows, risk)
    return 100 * sum(m * p for m, p in zip(mults, probabilities(rows)))


class CombinationResult(BaseModel):
    rows: int
    risk: str
    expected_return: Optional[float] = None
    house_edge: Optional[float] = None
    passed: bool
    error: Optional[str] = None


class FairnessReport(BaseModel):
    ceiling: float
    results: List[CombinationResult]

    @property
    def failures(self) -> List[CombinationResult]:
        return [r for r in self.results if not r.passed]

    @property
    def ok(self) -> bool:
        return not self.failures

    def render(self) -> str:
        lines = [f"expected-return ceiling {self.ceiling:.2f}%"]
        for r in self.results:
            status = "ok  " if r.passed else "FAIL"
            if r.error:
                lines.append(f"{status} rows={r.rows:<2} risk={r.risk:<6} error: {r.error}")
            else:
                lines.append(f"{status} rows={r.rows:<2} risk={r.risk:<6} rtp={r.expected_return:.4f}%")
        lines.append(f"{len(self.results) - len(self.failures)}/{len(self.results)} passed")
        return "\n".join(lines)


def validate_all(table: PayoutTable, ceiling: float = DEFAULT_CEILING) -> FairnessReport:
    results = []
    for rows, risk in table.combinations():
        try:
            rtp = expected_return(table, rows, risk)
        except (ValueError, ArithmeticError) as exc:
            logger.warning("rows=%d risk=%s could not be evaluated: %s", rows, risk, exc)
            results.append(CombinationResult(rows=rows, risk=risk, passed=False, error=str(exc)))
            continue
        passed = rtp <= ceiling
        if not passed:
            logger.warning("rows=%d risk=%s expected return %.4f%% exceeds %.2f%%", rows, risk, rtp, ceiling)
        results.append(CombinationResult(
            rows=rows, risk=risk, expected_return=rtp, house_edge=100 - rtp, passed=passed))
    return FairnessReport(ceiling=ceiling, results=results)


def main(argv=None) -> int:
    from deps.config import get_settings

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    args = sys.argv[1:] if argv is None else argv
    ceiling = float(args[0]) if args else settings.rtp_ceiling
    report = validate_all(default_table(), ceiling)
    print(report.render())
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
