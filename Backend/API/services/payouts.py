from decimal import Decimal, ROUND_DOWN
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Sequence, Tuple

from services.errors import PayoutConfigError, UnsupportedBoardError

RISKS = ("low", "normal", "high")
ROWS = tuple(range(8, 17))

# curated multipliers, symmetric; each table pays back just under 99%
DEFAULT_PAYOUTS = {
    "low": {
        8: [5.6, 2.1, 1.1, 1, 0.5, 1, 1.1, 2.1, 5.6],
        9: [5.6, 2, 1.6, 1, 0.7, 0.7, 1, 1.6, 2, 5.6],
        10: [8.8, 3, 1.4, 1.1, 1, 0.5, 1, 1.1, 1.4, 3, 8.8],
        11: [8.3, 3, 1.9, 1.3, 1, 0.7, 0.7, 1, 1.3, 1.9, 3, 8.3],
        12: [10, 3, 1.6, 1.4, 1.1, 1, 0.5, 1, 1.1, 1.4, 1.6, 3, 10],
        13: [8.1, 4, 3, 1.9, 1.2, 0.9, 0.7, 0.7, 0.9, 1.2, 1.9, 3, 4, 8.1],
        14: [7, 4, 1.9, 1.4, 1.3, 1.1, 1, 0.5, 1, 1.1, 1.3, 1.4, 1.9, 4, 7],
        15: [14.5, 8, 3, 2, 1.5, 1.1, 1, 0.7, 0.7, 1, 1.1, 1.5, 2, 3, 8, 14.5],
        16: [16, 9, 2, 1.4, 1.4, 1.2, 1.1, 1, 0.5, 1, 1.1, 1.2, 1.4, 1.4, 2, 9, 16],
    },
    "normal": {
        8: [13, 3, 1.3, 0.7, 0.4, 0.7, 1.3, 3, 13],
        9: [17.6, 4, 1.7, 0.9, 0.5, 0.5, 0.9, 1.7, 4, 17.6],
        10: [22, 5, 2, 1.4, 0.6, 0.4, 0.6, 1.4, 2, 5, 22],
        11: [23.5, 6, 3, 1.8, 0.7, 0.5, 0.5, 0.7, 1.8, 3, 6, 23.5],
        12: [33, 11, 4, 2, 1.1, 0.6, 0.3, 0.6, 1.1, 2, 4, 11, 33],
        13: [43, 13, 6, 3, 1.3, 0.7, 0.4, 0.4, 0.7, 1.3, 3, 6, 13, 43],
        14: [58, 15, 7, 4, 1.9, 1, 0.5, 0.2, 0.5, 1, 1.9, 4, 7, 15, 58],
        15: [88, 18, 11, 5, 3, 1.3, 0.5, 0.3, 0.3, 0.5, 1.3, 3, 5, 11, 18, 88],
        16: [110, 41, 10, 5, 3, 1.5, 1, 0.5, 0.3, 0.5, 1, 1.5, 3, 5, 10, 41, 110],
    },
    "high": {
        8: [28.9, 4, 1.5, 0.3, 0.2, 0.3, 1.5, 4, 28.9],
        9: [42.8, 7, 2, 0.6, 0.2, 0.2, 0.6, 2, 7, 42.8],
        10: [75.5, 10, 3, 0.9, 0.3, 0.2, 0.3, 0.9, 3, 10, 75.5],
        11: [118, 14, 5.2, 1.4, 0.4, 0.2, 0.2, 0.4, 1.4, 5.2, 14, 118],
        12: [167, 24, 8.1, 2, 0.7, 0.2, 0.2, 0.2, 0.7, 2, 8.1, 24, 167],
        13: [255, 37, 11, 4, 1, 0.2, 0.2, 0.2, 0.2, 1, 4, 11, 37, 255],
        14: [420, 56, 18, 5, 1.9, 0.3, 0.2, 0.2, 0.2, 0.3, 1.9, 5, 18, 56, 420],
        15: [610, 83, 27, 8, 3, 0.5, 0.2, 0.2, 0.2, 0.2, 0.5, 3, 8, 27, 83, 610],
        16: [1000, 130, 26, 9, 4, 2, 0.2, 0.2, 0.2, 0.2, 0.2, 2, 4, 9, 26, 130, 1000],
    },
}

PAYOUT_QUANTUM = Decimal("0.00000001")


def _board_order(key):
    rows, risk = key
    return rows, RISKS.index(risk) if risk in RISKS else len(RISKS), risk


class PayoutTable:
    """Read-only multipliers keyed by (rows, risk), checked on construction."""

    def __init__(self, tables: Mapping[str, Mapping[int, Sequence[float]]]):
        entries: Dict[Tuple[int, str], Tuple[float, ...]] = {}
        for risk, by_rows in tables.items():
            for rows, mults in by_rows.items():
                rows = int(rows)
                if len(mults) != rows + 1:
                    raise PayoutConfigError(
                        f"{risk}/{rows}: expected {rows + 1} multipliers, got {len(mults)}")
                if any(m < 0 for m in mults):
                    raise PayoutConfigError(f"{risk}/{rows}: negative multiplier")
                entries[(rows, risk)] = tuple(float(m) for m in mults)
        if not entries:
            raise PayoutConfigError("payout table is empty")
        self._entries = MappingProxyType(entries)

    def supports(self, rows: int, risk: str) -> bool:
        return (rows, risk) in self._entries

    def multipliers(self, rows: int, risk: str) -> Tuple[float, ...]:
        try:
            return self._entries[(rows, risk)]
        except KeyError:
            raise UnsupportedBoardError(rows, risk) from None

    def multiplier(self, rows: int, risk: str, slot: int) -> float:
        mults = self.multipliers(rows, risk)
        if not 0 <= slot < len(mults):
            raise ValueError(f"slot {slot} outside 0..{len(mults) - 1}")
        return mults[slot]

    def combinations(self) -> Iterator[Tuple[int, str]]:
        return iter(sorted(self._entries, key=_board_order))

    def as_dict(self) -> Dict[str, Dict[int, list]]:
        out: Dict[str, Dict[int, list]] = {}
        for rows, risk in self.combinations():
            out.setdefault(risk, {})[rows] = list(self._entries[(rows, risk)])
        return out

    def __len__(self):
        return len(self._entries)


def settle(bet: Decimal, multiplier: float) -> Decimal:
    # str() keeps 0.2 as 0.2 instead of its binary expansion
    return (bet * Decimal(str(multiplier))).quantize(PAYOUT_QUANTUM, rounding=ROUND_DOWN)


def default_table() -> PayoutTable:
    return PayoutTable(DEFAULT_PAYOUTS)
