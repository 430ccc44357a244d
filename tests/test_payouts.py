"""
Tests for payout tables and the expected-return audit.
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from services.errors import PayoutConfigError, UnsupportedBoardError
from services.payouts import DEFAULT_PAYOUTS, RISKS, ROWS, PayoutTable, default_table, settle
from services.validator import (binomial_row, expected_return, main, probabilities,
                                validate_all)


@pytest.fixture
def table():
    return default_table()


class TestPayoutTable:

    def test_covers_every_board(self, table):
        assert len(table) == len(ROWS) * len(RISKS)
        for rows in ROWS:
            for risk in RISKS:
                assert table.supports(rows, risk)

    def test_cardinality(self, table):
        for rows, risk in table.combinations():
            assert len(table.multipliers(rows, risk)) == rows + 1

    def test_symmetric(self, table):
        for rows, risk in table.combinations():
            mults = table.multipliers(rows, risk)
            assert mults == mults[::-1]

    def test_length_mismatch_is_fatal(self):
        with pytest.raises(PayoutConfigError):
            PayoutTable({"low": {8: [1.0] * 8}})

    def test_negative_multiplier_is_fatal(self):
        with pytest.raises(PayoutConfigError):
            PayoutTable({"low": {2: [1.0, -0.5, 1.0]}})

    def test_empty_is_fatal(self):
        with pytest.raises(PayoutConfigError):
            PayoutTable({})

    def test_unknown_board(self, table):
        with pytest.raises(UnsupportedBoardError):
            table.multipliers(7, "low")
        with pytest.raises(UnsupportedBoardError):
            table.multiplier(14, "extreme", 0)

    def test_slot_out_of_range(self, table):
        with pytest.raises(ValueError):
            table.multiplier(8, "low", 9)
        with pytest.raises(ValueError):
            table.multiplier(8, "low", -1)

    def test_lookup(self, table):
        assert table.multiplier(16, "high", 0) == 1000
        assert table.multiplier(14, "normal", 7) == 0.2

    def test_source_not_aliased(self):
        source = {"low": {2: [2.0, 0.5, 2.0]}}
        t = PayoutTable(source)
        source["low"][2][0] = 100.0
        assert t.multiplier(2, "low", 0) == 2.0

    def test_as_dict_round_trips(self, table):
        assert PayoutTable(table.as_dict()).as_dict() == table.as_dict()


class TestSettle:

    def test_exact_decimal(self):
        assert settle(Decimal("10"), 0.2) == Decimal("2.00000000")

    def test_rounds_down(self):
        assert settle(Decimal("0.00000001"), 0.5) == Decimal("0")


class TestBinomial:

    def test_rows(self):
        assert binomial_row(0) == [1]
        assert binomial_row(4) == [1, 4, 6, 4, 1]
        assert binomial_row(16)[8] == 12870

    def test_negative(self):
        with pytest.raises(ValueError):
            binomial_row(-1)

    @pytest.mark.parametrize("n", [0, 1, 8, 12, 16, 40])
    def test_probabilities_normalized(self, n):
        probs = probabilities(n)
        assert len(probs) == n + 1
        assert sum(probs) == pytest.approx(1.0)


class TestValidator:

    def test_default_tables_under_ceiling(self, table):
        report = validate_all(table, 99.0)
        assert report.ok, report.render()
        assert len(report.results) == 27

    def test_expected_return_exact(self, table):
        # 8 rows low: sum(C(8,k) * m_k) / 256
        mults = DEFAULT_PAYOUTS["low"][8]
        exact = sum(Fraction(c) * Fraction(str(m)) for c, m in zip(binomial_row(8), mults)) / 256
        assert expected_return(table, 8, "low") == pytest.approx(float(exact * 100))

    def test_flags_generous_table_and_keeps_going(self):
        t = PayoutTable({
            "low": {2: [2.0, 0.5, 2.0]},
            "high": {2: [4.0, 0.0, 4.0]},
            "normal": {2: [1.0, 0.9, 1.0]},
        })
        report = validate_all(t, 99.0)
        by_risk = {r.risk: r for r in report.results}
        assert len(report.results) == 3
        assert by_risk["low"].passed is False
        assert by_risk["low"].expected_return == pytest.approx(125.0)
        assert by_risk["high"].passed is False
        assert by_risk["normal"].passed is True
        assert by_risk["normal"].house_edge == pytest.approx(5.0)
        assert not report.ok
        assert len(report.failures) == 2
        assert "FAIL" in report.render()

    def test_results_ordered(self, table):
        report = validate_all(table)
        keys = [(r.rows, r.risk) for r in report.results]
        assert keys[:3] == [(8, "low"), (8, "normal"), (8, "high")]
        assert keys[-1] == (16, "high")

    def test_cli_exit_status(self, capsys):
        assert main([]) == 0
        assert main(["50"]) == 1
        out = capsys.readouterr().out
        assert "27/27 passed" in out
