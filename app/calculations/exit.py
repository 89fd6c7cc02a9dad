"""
Exit Strategy Calculations

Strategy-specific valuation at the exit year:
- SALE: direct capitalisation of exit-year EBITDA, less selling costs.
- REFINANCE: LTV loan against the capitalised value, less refinance costs
  and the existing loan balance.

A zero or negative cap rate or EBITDA cannot be valued; the summary then
reports `can_value=False` with empty valuation fields instead of inf.
"""

import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from app.calculations import defaults
from app.calculations.amortization import build_debt_schedule
from app.calculations.deal import Deal, RefinanceExit, SaleExit
from app.calculations.pnl import build_pl_statement
from app.config import get_settings


@dataclass(frozen=True)
class SaleSummary:
    exit_year: int
    reference_ebitda: Optional[float]
    exit_cap_rate: float
    total_capex: float
    can_value: bool
    estimated_sale_price: Optional[float] = None
    selling_costs: Optional[float] = None
    outstanding_loan_balance: float = 0.0
    net_sale_proceeds: Optional[float] = None
    development_profit: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class RefinanceSummary:
    refinance_year: int
    reference_ebitda: Optional[float]
    refinance_ltv: float
    valuation_cap_rate: float
    can_value: bool
    existing_loan_balance: float = 0.0
    property_value: Optional[float] = None
    new_loan_amount: Optional[float] = None
    refinance_costs: Optional[float] = None
    net_cash_out: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)


def can_capitalize(ebitda: Optional[float], cap_rate_pct: float) -> bool:
    """True when EBITDA / cap rate gives a finite, positive value."""
    if ebitda is None or cap_rate_pct is None:
        return False
    if not math.isfinite(ebitda) or not math.isfinite(cap_rate_pct):
        return False
    return ebitda > 0 and cap_rate_pct > 0


def capitalize(ebitda: float, cap_rate_pct: float) -> float:
    """Value = EBITDA / (cap rate / 100)."""
    return ebitda / (cap_rate_pct / 100)


def reference_ebitda(deal: Optional[Deal], year: int) -> Optional[float]:
    """
    EBITDA at the given year from the deal's P&L.

    Without a deal the configured legacy reference EBITDA is used.
    """
    if deal is None:
        return get_settings().legacy_reference_ebitda
    return build_pl_statement(deal).totals("ebitda").get(year)


def sale_summary_from_ebitda(
    settings: SaleExit,
    total_project_cost: float,
    ebitda: Optional[float],
    outstanding_loan_balance: float = 0.0,
) -> SaleSummary:
    """Sale valuation for an already-known reference EBITDA."""
    if not can_capitalize(ebitda, settings.exit_cap_rate):
        return SaleSummary(
            exit_year=settings.exit_year,
            reference_ebitda=ebitda,
            exit_cap_rate=settings.exit_cap_rate,
            total_capex=total_project_cost,
            can_value=False,
            outstanding_loan_balance=outstanding_loan_balance,
        )

    sale_price = capitalize(ebitda, settings.exit_cap_rate)
    selling_costs = sale_price * (settings.selling_costs_pct / 100)
    net_sale_proceeds = sale_price - selling_costs - outstanding_loan_balance

    return SaleSummary(
        exit_year=settings.exit_year,
        reference_ebitda=ebitda,
        exit_cap_rate=settings.exit_cap_rate,
        total_capex=total_project_cost,
        can_value=True,
        estimated_sale_price=sale_price,
        selling_costs=selling_costs,
        outstanding_loan_balance=outstanding_loan_balance,
        net_sale_proceeds=net_sale_proceeds,
        development_profit=net_sale_proceeds - total_project_cost,
    )


def calculate_sale_summary(
    exit_settings: SaleExit,
    total_project_cost: float,
    deal: Optional[Deal] = None,
    levered: bool = False,
) -> SaleSummary:
    """
    Sale valuation at the exit year.

    Args:
        exit_settings: Active SALE settings
        total_project_cost: Total capex (grand total investment)
        deal: Deal snapshot supplying exit-year EBITDA and debt terms
        levered: Deduct the outstanding loan balance from net proceeds

    Raises:
        ValueError: If the settings are not a SALE strategy
    """
    if not isinstance(exit_settings, SaleExit):
        raise ValueError("Sale summary requires SALE exit settings")

    outstanding = 0.0
    if levered and deal is not None:
        schedule = build_debt_schedule(deal.assumptions.financing_settings, deal.project_cost)
        outstanding = schedule.outstanding_balance(exit_settings.exit_year)

    return sale_summary_from_ebitda(
        exit_settings,
        total_project_cost,
        reference_ebitda(deal, exit_settings.exit_year),
        outstanding,
    )


def refinance_summary_from_ebitda(
    settings: RefinanceExit,
    ebitda: Optional[float],
    existing_loan_balance: float,
) -> RefinanceSummary:
    """Refinance valuation for an already-known reference EBITDA."""
    if not can_capitalize(ebitda, settings.valuation_cap_rate):
        return RefinanceSummary(
            refinance_year=settings.refinance_year,
            reference_ebitda=ebitda,
            refinance_ltv=settings.ltv_at_refinance,
            valuation_cap_rate=settings.valuation_cap_rate,
            can_value=False,
            existing_loan_balance=existing_loan_balance,
        )

    property_value = capitalize(ebitda, settings.valuation_cap_rate)
    new_loan_amount = property_value * (settings.ltv_at_refinance / 100)
    refinance_costs = new_loan_amount * (settings.refinance_costs_pct / 100)

    return RefinanceSummary(
        refinance_year=settings.refinance_year,
        reference_ebitda=ebitda,
        refinance_ltv=settings.ltv_at_refinance,
        valuation_cap_rate=settings.valuation_cap_rate,
        can_value=True,
        existing_loan_balance=existing_loan_balance,
        property_value=property_value,
        new_loan_amount=new_loan_amount,
        refinance_costs=refinance_costs,
        net_cash_out=new_loan_amount - refinance_costs - existing_loan_balance,
    )


def calculate_refinance_summary(
    exit_settings: RefinanceExit,
    total_project_cost: float,
    deal: Optional[Deal] = None,
) -> RefinanceSummary:
    """
    Refinance valuation at the refinance year.

    The existing balance comes from the deal's debt schedule. Without a deal
    the original loan is assumed at the default loan-to-cost.

    Raises:
        ValueError: If the settings are not a REFINANCE strategy
    """
    if not isinstance(exit_settings, RefinanceExit):
        raise ValueError("Refinance summary requires REFINANCE exit settings")

    if deal is None:
        existing = total_project_cost * defaults.DEFAULT_LTC_PCT / 100
    else:
        schedule = build_debt_schedule(deal.assumptions.financing_settings, deal.project_cost)
        existing = schedule.outstanding_balance(exit_settings.refinance_year)

    return refinance_summary_from_ebitda(
        exit_settings,
        reference_ebitda(deal, exit_settings.refinance_year),
        existing,
    )
