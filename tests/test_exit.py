"""
Tests for sale and refinance exit valuation.
"""

import math

import pytest

from app.calculations.amortization import build_debt_schedule
from app.calculations.deal import RefinanceExit, SaleExit
from app.calculations.exit import (
    calculate_refinance_summary,
    calculate_sale_summary,
    sale_summary_from_ebitda,
)


class TestSaleSummary:
    """Test direct-capitalisation sale valuation."""

    def test_reference_round_trip(self):
        """800,000 EBITDA at a 6% cap with 3% selling costs."""
        settings = SaleExit(exit_year=5, exit_cap_rate=6, selling_costs_pct=3)
        summary = calculate_sale_summary(settings, 10_000_000)

        assert summary.reference_ebitda == 800_000
        assert summary.estimated_sale_price == pytest.approx(13_333_333.33, abs=0.01)
        assert summary.selling_costs == pytest.approx(400_000.0)
        assert summary.net_sale_proceeds == pytest.approx(
            summary.estimated_sale_price - summary.selling_costs
        )

    def test_development_profit_identity(self, flat_deal):
        summary = calculate_sale_summary(flat_deal.exit_settings, flat_deal.project_cost, flat_deal)

        assert summary.can_value
        assert summary.reference_ebitda == pytest.approx(2_555_000)
        assert summary.development_profit == pytest.approx(
            summary.net_sale_proceeds - flat_deal.project_cost
        )

    def test_cap_rate_sensitivity(self):
        prices = [
            sale_summary_from_ebitda(SaleExit(exit_cap_rate=cap), 0.0, 1_000_000).estimated_sale_price
            for cap in (5, 6, 7, 8)
        ]
        assert prices == sorted(prices, reverse=True)

    @pytest.mark.parametrize("cap,ebitda", [(0, 1_000_000), (-5, 1_000_000), (6, 0), (6, -250_000), (6, math.inf), (6, None)])
    def test_cannot_value(self, cap, ebitda):
        summary = sale_summary_from_ebitda(SaleExit(exit_cap_rate=cap), 5_000_000, ebitda)

        assert not summary.can_value
        assert summary.estimated_sale_price is None
        assert summary.net_sale_proceeds is None
        assert summary.development_profit is None

    def test_levered_deducts_outstanding_loan(self, financed_deal):
        settings = financed_deal.exit_settings
        unlevered = calculate_sale_summary(settings, financed_deal.project_cost, financed_deal)
        levered = calculate_sale_summary(settings, financed_deal.project_cost, financed_deal, levered=True)
        balance = build_debt_schedule(
            financed_deal.assumptions.financing_settings, financed_deal.project_cost
        ).outstanding_balance(5)

        assert levered.outstanding_loan_balance == pytest.approx(balance)
        assert levered.net_sale_proceeds == pytest.approx(unlevered.net_sale_proceeds - balance)

    def test_wrong_strategy(self, refinance_deal):
        with pytest.raises(ValueError):
            calculate_sale_summary(refinance_deal.exit_settings, 10_000_000, refinance_deal)


class TestRefinanceSummary:
    """Test LTV refinance valuation."""

    def test_net_cash_out_identity(self, refinance_deal):
        summary = calculate_refinance_summary(
            refinance_deal.exit_settings, refinance_deal.project_cost, refinance_deal
        )

        assert summary.property_value == pytest.approx(31_937_500)
        assert summary.new_loan_amount == pytest.approx(22_356_250)
        assert summary.refinance_costs == pytest.approx(447_125)
        assert summary.net_cash_out == pytest.approx(
            summary.new_loan_amount - summary.refinance_costs - summary.existing_loan_balance
        )

    def test_existing_balance_from_debt_schedule(self, make_deal):
        deal = make_deal(
            assumptions={
                "financingSettings": {"ltcPct": 50, "interestRatePct": 6, "loanTermYears": 10, "amortYears": 25},
                "exitSettings": {"strategy": "REFINANCE", "refinanceYear": 4, "valuationCapRate": 8},
            }
        )
        summary = calculate_refinance_summary(deal.exit_settings, deal.project_cost, deal)
        balance = build_debt_schedule(
            deal.assumptions.financing_settings, deal.project_cost
        ).outstanding_balance(4)

        assert summary.existing_loan_balance == pytest.approx(balance)

    def test_without_deal_assumes_default_leverage(self):
        summary = calculate_refinance_summary(RefinanceExit(valuation_cap_rate=8), 10_000_000)

        assert summary.reference_ebitda == 800_000
        assert summary.existing_loan_balance == pytest.approx(4_000_000)
        assert summary.property_value == pytest.approx(10_000_000)

    def test_cannot_value(self):
        summary = calculate_refinance_summary(RefinanceExit(valuation_cap_rate=0), 10_000_000)
        assert not summary.can_value
        assert summary.net_cash_out is None

    def test_wrong_strategy(self):
        with pytest.raises(ValueError):
            calculate_refinance_summary(SaleExit(), 10_000_000)
