"""
Tests for return KPIs, threshold assessments and display formatting.
"""

import math

import pytest

from app.calculations.formatting import (
    format_cash_flow_value,
    format_currency,
    format_pct,
    format_ratio,
    format_scaled_currency,
    scale_suffix,
)
from app.calculations.kpis import (
    ThresholdStatus,
    assess_department_margin,
    assess_dscr,
    assess_gop_percent,
    assess_irr,
    assess_yield_on_cost,
    department_margins,
    summarize_returns,
    yield_on_cost_by_year,
)
from app.calculations.pnl import build_pl_statement


class TestAssessments:
    """Test threshold bands."""

    def test_yield_on_cost(self):
        assert assess_yield_on_cost(0.12) is ThresholdStatus.GOOD
        assert assess_yield_on_cost(0.10) is ThresholdStatus.GOOD
        assert assess_yield_on_cost(0.08) is ThresholdStatus.OK
        assert assess_yield_on_cost(0.05) is ThresholdStatus.WEAK

    def test_gop(self):
        assert assess_gop_percent(0.15) is ThresholdStatus.WEAK
        assert assess_gop_percent(0.35) is ThresholdStatus.GOOD
        assert assess_gop_percent(0.60) is ThresholdStatus.UNREALISTIC

    def test_department_margin(self):
        assert assess_department_margin(0.0, "fnb") is ThresholdStatus.WEAK
        assert assess_department_margin(0.05, "wellness") is ThresholdStatus.OK
        assert assess_department_margin(0.20, "fnb") is ThresholdStatus.GOOD
        assert assess_department_margin(0.55, "rooms") is ThresholdStatus.WEAK
        assert assess_department_margin(0.75, "rooms") is ThresholdStatus.GOOD

    def test_irr_and_dscr_bands(self):
        assert assess_irr(0.20) is ThresholdStatus.EXCELLENT
        assert assess_irr(0.13) is ThresholdStatus.GOOD
        assert assess_irr(0.05) is ThresholdStatus.WEAK
        assert assess_dscr(1.25) is ThresholdStatus.OK


class TestYieldOnCost:
    """Test yield on cost by year."""

    def test_flat_deal(self, flat_deal):
        yoc = yield_on_cost_by_year(flat_deal)
        assert list(yoc) == [3, 4, 5]
        assert yoc[3] == pytest.approx(0.2555)

    def test_skips_years_after_exit(self, make_deal):
        deal = make_deal(assumptions={"exitSettings": {"exitYear": 4}})
        assert list(yield_on_cost_by_year(deal)) == [3, 4]

    def test_no_investment(self, make_deal):
        deal = make_deal(budget={"grandTotal": 0})
        assert yield_on_cost_by_year(deal)[3] is None

    def test_department_margins(self, full_deal):
        margins = department_margins(build_pl_statement(full_deal), 4)
        assert set(margins) == {"rooms", "fnb", "wellness"}
        assert 0 < margins["rooms"] < 1


class TestReturnsSummary:
    """Test the deal-level returns summary."""

    def test_flat_deal(self, flat_deal):
        summary = summarize_returns(flat_deal)

        assert summary.unlevered_irr_status == "converged"
        assert summary.development_profit == pytest.approx(31_298_750 - 10_000_000)
        assert summary.yield_on_cost["y3"] == pytest.approx(0.2555)
        assert summary.assessments["yield_on_cost_y3"] == "good"
        assert summary.assessments["dscr"] is None

    def test_through_year(self, flat_deal):
        full = summarize_returns(flat_deal)
        early = summarize_returns(flat_deal, through_year_index=3)
        assert early.unlevered_irr < full.unlevered_irr

    def test_refinance_has_no_development_profit(self, refinance_deal):
        assert summarize_returns(refinance_deal).development_profit is None


class TestFormatting:
    """Test display helpers."""

    def test_currency(self):
        assert format_currency(1_234_567.4) == "€1,234,567"
        assert format_currency(-1500, "USD") == "-$1,500"
        assert format_currency(None) == "—"

    def test_scaled(self):
        assert format_scaled_currency(2_500_000, "GBP", "thousands") == "£2,500"
        assert scale_suffix("millions") == " (Millions)"
        assert scale_suffix("full") == ""

    def test_pct_and_ratio(self):
        assert format_pct(42.5) == "42.5%"
        assert format_pct(None) == "—"
        assert format_ratio(1.8) == "1.80x"
        assert format_ratio(math.nan) == "—"

    def test_cash_flow_cells(self):
        assert format_cash_flow_value("unlevered-irr", None) == "—"
        assert format_cash_flow_value("unlevered-irr", 0.1234) == "12.3%"
        assert format_cash_flow_value("ebitda", 1_000_000, scale="millions") == "€1"
