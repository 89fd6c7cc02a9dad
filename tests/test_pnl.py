"""
Tests for the P&L aggregator.
"""

import math

import pytest

from app.calculations.amortization import build_debt_schedule
from app.calculations.deal import SaleExit
from app.calculations.pnl import ZERO_CELL, build_pl_statement, select_ebitda_by_year
from app.calculations.revenue import get_rooms_kpis_by_year

# 100 keys x 365 nights x 70% x 100 ADR
FLAT_REVENUE = 2_555_000.0


def _total(statement, row_id, year):
    return statement.row(row_id).years[year].total


class TestPLStatement:
    """Test revenue, EBITDA and the below-EBITDA lines."""

    def test_flat_deal_totals(self, flat_deal):
        pl = build_pl_statement(flat_deal)

        assert _total(pl, "rooms-revenue", 1) == pytest.approx(FLAT_REVENUE)
        assert _total(pl, "total-revenue", 3) == pytest.approx(FLAT_REVENUE)
        assert _total(pl, "ebitda", 3) == pytest.approx(FLAT_REVENUE)
        assert _total(pl, "depreciation", 3) == pytest.approx(300_000)
        assert _total(pl, "interest-expense", 3) == 0.0
        assert _total(pl, "ebt", 3) == pytest.approx(2_255_000)
        assert _total(pl, "income-tax", 3) == pytest.approx(563_750)
        assert _total(pl, "net-income", 3) == pytest.approx(1_691_250)

    def test_year_zero_is_empty(self, flat_deal):
        pl = build_pl_statement(flat_deal)
        for row in pl.rows:
            if row.group == "KPIS":
                continue
            assert row.years[0].total == 0.0

    def test_year_zero_kpis_match_room_drivers(self, flat_deal):
        pl = build_pl_statement(flat_deal)
        kpis = get_rooms_kpis_by_year(flat_deal)

        assert _total(pl, "rooms-open", 0) == 0.0
        assert _total(pl, "rooms-available", 0) == kpis.rooms_available[0] == 0.0
        assert _total(pl, "rooms-available", 1) == kpis.rooms_available[1]

    def test_years_after_exit_are_zeroed(self, flat_deal):
        pl = build_pl_statement(flat_deal)
        assert pl.exit_year == 5
        assert pl.years[-1] == 10
        for row in pl.rows:
            for year in range(6, 11):
                cell = row.years[year]
                assert cell == ZERO_CELL
                assert cell.total == 0.0
                assert cell.pct_of_tr is None
                assert cell.por is None
                assert cell.par is None

    def test_zero_revenue_ratios_agree_before_and_after_exit(self, flat_deal):
        """Year 0 and post-exit years both have zero revenue."""
        row = build_pl_statement(flat_deal).row("depreciation")
        assert row.years[0].pct_of_tr is None
        assert row.years[6].pct_of_tr is None

    def test_hold_forever_keeps_operating(self, make_deal):
        deal = make_deal(assumptions={"exitSettings": {"strategy": "HOLD_FOREVER"}})
        pl = build_pl_statement(deal)
        assert pl.exit_year is None
        assert _total(pl, "ebitda", 10) == pytest.approx(FLAT_REVENUE)

    def test_idempotent(self, full_deal):
        assert build_pl_statement(full_deal).to_dict() == build_pl_statement(full_deal).to_dict()

    def test_select_ebitda(self, flat_deal):
        ebitda = select_ebitda_by_year(flat_deal)
        assert ebitda[0] == 0.0
        assert ebitda[5] == pytest.approx(FLAT_REVENUE)
        assert ebitda[6] == 0.0


class TestRatios:
    """Test % of revenue, per occupied room and per available room."""

    def test_ratios(self, flat_deal):
        cell = build_pl_statement(flat_deal).row("ebitda").years[2]
        assert cell.pct_of_tr == pytest.approx(100.0)
        assert cell.por == pytest.approx(100.0)
        # Per key, not per room night
        assert cell.par == pytest.approx(25_550)

    def test_kpi_rows_have_no_ratios(self, flat_deal):
        cell = build_pl_statement(flat_deal).row("adr").years[2]
        assert cell.total == pytest.approx(100.0)
        assert cell.pct_of_tr is None
        assert cell.por is None

    def test_zero_revenue_gives_none(self, make_deal):
        deal = make_deal(roomTypes=[])
        cell = build_pl_statement(deal).row("ebitda").years[2]
        assert cell.total == 0.0
        assert cell.pct_of_tr is None
        assert cell.por is None
        assert cell.par is None

    def test_non_finite_total_is_none(self, make_deal):
        deal = make_deal(roomRevenue={"avgAdr": math.inf})
        pl = build_pl_statement(deal)

        rooms_revenue = pl.row("rooms-revenue").years[1]
        assert rooms_revenue.total is None
        assert rooms_revenue.pct_of_tr is None
        assert pl.row("adr").years[1].total is None
        assert pl.row("ebitda").years[3].total is None
        # Room nights are unaffected by price
        assert _total(pl, "rooms-sold", 1) == pytest.approx(25_550)

        for row in pl.rows:
            for cell in row.years.values():
                for value in (cell.total, cell.pct_of_tr, cell.por, cell.par):
                    assert value is None or math.isfinite(value)


class TestOperatingCosts:
    """Test cost drivers, ramp and inflation."""

    def test_inflation_applies_to_currency_costs_only(self, make_deal):
        deal = make_deal(
            operatingExpenses={
                "items": [
                    {"id": "insurance", "value": 1000, "driver": "FIXED_PER_MONTH", "section": "OTHER"},
                    {"id": "management-fees", "value": 3, "driver": "PCT_TOTAL_REVENUE", "section": "OTHER"},
                ]
            },
            assumptions={"rampSettings": {"inflationPct": 2}},
        )
        pl = build_pl_statement(deal)

        assert _total(pl, "insurance", 1) == pytest.approx(12_000 * 1.02)
        assert _total(pl, "insurance", 2) == pytest.approx(12_000 * 1.02 ** 2)
        assert _total(pl, "management-fees", 2) == pytest.approx(FLAT_REVENUE * 0.03)

    def test_cost_ramp(self, make_deal):
        deal = make_deal(
            operatingExpenses={
                "items": [{"id": "utilities", "value": 4, "driver": "PCT_TOTAL_REVENUE", "section": "INDIRECT"}]
            },
            assumptions={"rampSettings": {"costRamp": [1.1, 1, 1, 1]}},
        )
        pl = build_pl_statement(deal)
        assert _total(pl, "utilities", 1) == pytest.approx(FLAT_REVENUE * 0.04 * 1.1)
        assert _total(pl, "utilities", 2) == pytest.approx(FLAT_REVENUE * 0.04)

    def test_custom_item_lands_in_catch_all(self, make_deal):
        deal = make_deal(
            operatingExpenses={
                "items": [{"id": "concierge", "value": 1000, "driver": "FIXED_PER_MONTH", "section": "INDIRECT"}]
            }
        )
        pl = build_pl_statement(deal)
        assert _total(pl, "other-ag", 1) == pytest.approx(12_000)
        assert _total(pl, "gop", 1) == pytest.approx(FLAT_REVENUE - 12_000)

    def test_payroll_is_inflated(self, make_deal):
        deal = make_deal(
            payroll={"rooms": 100_000},
            assumptions={"rampSettings": {"inflationPct": 2}},
        )
        pl = build_pl_statement(deal)
        assert _total(pl, "rooms-direct-payroll", 1) == pytest.approx(102_000)
        assert _total(pl, "rooms-direct-costs", 1) == pytest.approx(102_000)

    def test_interest_from_debt_schedule(self, financed_deal):
        pl = build_pl_statement(financed_deal)
        schedule = build_debt_schedule(
            financed_deal.assumptions.financing_settings, financed_deal.project_cost
        )
        assert _total(pl, "interest-expense", 2) == pytest.approx(schedule.year(2).interest)


class TestSubtotals:
    """Test the USALI subtotal chain on a fully specified deal."""

    def test_chain(self, full_deal):
        pl = build_pl_statement(full_deal)
        year = 4
        assert _total(pl, "goi", year) == pytest.approx(
            _total(pl, "total-revenue", year) - _total(pl, "direct-costs-total", year)
        )
        assert _total(pl, "gop", year) == pytest.approx(
            _total(pl, "goi", year) - _total(pl, "undistributed-total", year)
        )
        assert _total(pl, "ebitda", year) == pytest.approx(
            _total(pl, "ebitdar", year) - _total(pl, "rent", year)
        )
        assert 0 < _total(pl, "gop", year) < _total(pl, "total-revenue", year)

    def test_client_exit_payload(self, full_deal):
        """The nested {strategy, sale, refinance} shape keeps only the active block."""
        exit_settings = full_deal.assumptions.exit_settings
        assert isinstance(exit_settings, SaleExit)
        assert exit_settings.exit_year == 7
        assert exit_settings.exit_cap_rate == 7
