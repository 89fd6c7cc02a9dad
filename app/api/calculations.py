"""
Projection and returns API endpoints.

Every endpoint takes the full deal snapshot in the request body and
returns freshly calculated results; nothing is stored server-side.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.calculations import irr
from app.calculations.amortization import generate_amortization_schedule
from app.calculations.cashflow import build_cash_flow_statement
from app.calculations.deal import (
    Deal,
    ExitSettings,
    RefinanceExit,
    SaleExit,
    flatten_exit_payload,
)
from app.calculations.exit import calculate_refinance_summary, calculate_sale_summary
from app.calculations.kpis import summarize_returns
from app.calculations.pnl import build_pl_statement, finite_or_none


router = APIRouter()


class CalculationRequest(BaseModel):
    """Base for request bodies; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Statements ===


@router.post("/pl")
async def calculate_pl(deal: Deal):
    """Build the year-by-year P&L statement."""
    return build_pl_statement(deal).to_dict()


@router.post("/cashflow")
async def calculate_cashflow(deal: Deal):
    """Build the unlevered and levered cash-flow statement."""
    return build_cash_flow_statement(deal).to_dict()


# === Returns ===


class ReturnsRequest(CalculationRequest):
    deal: Deal
    through_year_index: Optional[int] = None


class ReturnsResponse(BaseModel):
    unlevered_irr: Optional[float] = None
    levered_irr: Optional[float] = None
    unlevered_irr_status: str
    levered_irr_status: str
    unlevered_multiple: Optional[float] = None
    levered_multiple: Optional[float] = None
    development_profit: Optional[float] = None
    first_year_dscr: Optional[float] = None
    yield_on_cost: Dict[str, Optional[float]] = {}
    assessments: Dict[str, Optional[str]] = {}


@router.post("/returns", response_model=ReturnsResponse)
async def calculate_returns(inputs: ReturnsRequest):
    """IRRs, multiples and yield on cost, optionally through an earlier year."""
    return summarize_returns(inputs.deal, inputs.through_year_index).to_dict()


class IRRInput(CalculationRequest):
    """Input for IRR calculation."""

    cash_flows: List[float]
    guess: Optional[float] = None


class IRRResponse(BaseModel):
    """Response with IRR calculation. `irr` is null unless converged."""

    irr: Optional[float] = None
    status: str
    iterations: int
    formatted: str
    multiple: Optional[float] = None
    profit: Optional[float] = None
    npv_at_10_percent: Optional[float] = None


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for given annual cash flows."""
    result = irr.solve_irr(inputs.cash_flows, guess=inputs.guess)

    return IRRResponse(
        irr=result.rate,
        status=result.status.value,
        iterations=result.iterations,
        formatted=irr.format_irr(result.rate),
        multiple=finite_or_none(irr.calculate_multiple(inputs.cash_flows)),
        profit=finite_or_none(irr.calculate_profit(inputs.cash_flows)),
        npv_at_10_percent=finite_or_none(irr.calculate_npv(inputs.cash_flows, 0.10)),
    )


# === Exit ===


class ExitSummaryRequest(CalculationRequest):
    """
    Exit valuation request. Settings and project cost default to the deal's
    own when omitted.
    """

    deal: Optional[Deal] = None
    exit_settings: Optional[ExitSettings] = None
    total_project_cost: Optional[float] = None
    levered: bool = False

    @field_validator("exit_settings", mode="before")
    @classmethod
    def _flatten(cls, value):
        return flatten_exit_payload(value)

    def resolve(self):
        settings = self.exit_settings
        if settings is None and self.deal is not None:
            settings = self.deal.exit_settings
        project_cost = self.total_project_cost
        if project_cost is None:
            project_cost = self.deal.project_cost if self.deal is not None else 0.0
        return settings, project_cost


class SaleSummaryResponse(BaseModel):
    exit_year: int
    reference_ebitda: Optional[float] = None
    exit_cap_rate: float
    total_capex: float
    can_value: bool
    estimated_sale_price: Optional[float] = None
    selling_costs: Optional[float] = None
    outstanding_loan_balance: float
    net_sale_proceeds: Optional[float] = None
    development_profit: Optional[float] = None


class RefinanceSummaryResponse(BaseModel):
    refinance_year: int
    reference_ebitda: Optional[float] = None
    refinance_ltv: float
    valuation_cap_rate: float
    can_value: bool
    existing_loan_balance: float
    property_value: Optional[float] = None
    new_loan_amount: Optional[float] = None
    refinance_costs: Optional[float] = None
    net_cash_out: Optional[float] = None


@router.post("/exit/sale", response_model=SaleSummaryResponse)
async def calculate_sale(inputs: ExitSummaryRequest):
    """Sale valuation at the exit year."""
    settings, project_cost = inputs.resolve()
    if not isinstance(settings, SaleExit):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exit settings must use the SALE strategy",
        )

    return calculate_sale_summary(settings, project_cost, inputs.deal, inputs.levered).to_dict()


@router.post("/exit/refinance", response_model=RefinanceSummaryResponse)
async def calculate_refinance(inputs: ExitSummaryRequest):
    """Refinance valuation at the refinance year."""
    settings, project_cost = inputs.resolve()
    if not isinstance(settings, RefinanceExit):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exit settings must use the REFINANCE strategy",
        )

    return calculate_refinance_summary(settings, project_cost, inputs.deal).to_dict()


# === Debt ===


class AmortizationInput(CalculationRequest):
    """Input for amortization calculation."""

    principal: float
    annual_rate: float
    amortization_years: int
    io_months: int = 0
    total_months: int = 120


@router.post("/amortization")
async def calculate_amortization(inputs: AmortizationInput):
    """Generate loan amortization schedule."""
    schedule = generate_amortization_schedule(
        principal=inputs.principal,
        annual_rate=inputs.annual_rate,
        amortization_months=inputs.amortization_years * 12,
        io_months=inputs.io_months,
        total_months=inputs.total_months,
    )

    return {
        "schedule": schedule,
        "total_interest": sum(row["interest"] for row in schedule),
        "total_principal": sum(row["principal"] for row in schedule),
        "balloon": schedule[-1]["ending_balance"] if schedule else 0.0,
    }
