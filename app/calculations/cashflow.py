"""
Cash Flow Calculations

Turns the P&L, the debt schedule and the exit event into annual unlevered
and levered cash flows, year 0 included.

Sign convention: inflows positive, outflows negative. The initial
investment is a negative capex entry at year 0; sale or refinance proceeds
land in the exit year. Years after the exit carry zeros.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from app.calculations.amortization import build_debt_schedule, calculate_dscr
from app.calculations.deal import Deal, RefinanceExit, SaleExit
from app.calculations.exit import refinance_summary_from_ebitda, sale_summary_from_ebitda
from app.calculations.irr import IrrResult, calculate_multiple, solve_irr
from app.calculations.pnl import build_pl_statement, finite_or_none, safe_ratio
from app.calculations.ramp import projection_years, select_exit_year_index
from app.calculations.series import YearSeries

logger = logging.getLogger(__name__)

MEMO = "memo"
UNLEVERED = "unlevered"
LEVERED = "levered"
RETURNS = "returns"


@dataclass(frozen=True)
class CashFlowRow:
    id: str
    label: str
    section: str  # memo | unlevered | levered | returns
    kind: str  # line | total | metric
    years: YearSeries  # of Optional[float]

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "label": self.label,
            "section": self.section,
            "kind": self.kind,
            "years": self.years.to_dict(),
        }


@dataclass(frozen=True)
class ProjectIrrs:
    unlevered: IrrResult
    levered: IrrResult

    @property
    def unlevered_irr(self) -> Optional[float]:
        return self.unlevered.rate

    @property
    def levered_irr(self) -> Optional[float]:
        return self.levered.rate

    def to_dict(self) -> Dict:
        return {
            "unlevered_irr": self.unlevered_irr,
            "levered_irr": self.levered_irr,
            "unlevered_status": self.unlevered.status.value,
            "levered_status": self.levered.status.value,
        }


@dataclass(frozen=True)
class CashFlowKpis:
    unlevered_total: Optional[float]
    levered_total: Optional[float]
    total_tax: Optional[float]
    avg_ebitda_margin_pct: Optional[float]
    unlevered_irr: Optional[float]
    levered_irr: Optional[float]
    unlevered_multiple: Optional[float]
    levered_multiple: Optional[float]
    loan_amount: float
    equity_required: float
    first_year_dscr: Optional[float]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class CashFlowStatement:
    rows: List[CashFlowRow]
    years: List[int]
    exit_year: Optional[int]
    kpis: CashFlowKpis

    def row(self, row_id: str) -> Optional[CashFlowRow]:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def to_dict(self) -> Dict:
        return {
            "years": self.years,
            "exit_year": self.exit_year,
            "rows": [row.to_dict() for row in self.rows],
            "kpis": self.kpis.to_dict(),
        }


# (id, label, section, kind) in display order
CASH_FLOW_LAYOUT = [
    ("total-revenue", "Total Revenue", MEMO, "line"),
    ("ebitda", "EBITDA", MEMO, "line"),
    ("taxes", "Taxes", MEMO, "line"),
    ("unlevered-ebitda", "EBITDA", UNLEVERED, "line"),
    ("unlevered-taxes", "Cash Taxes", UNLEVERED, "line"),
    ("capex", "Capex", UNLEVERED, "line"),
    ("net-sale-proceeds", "Net Sale Proceeds", UNLEVERED, "line"),
    ("unlevered-cash-flow", "Unlevered Cash Flow", UNLEVERED, "total"),
    ("levered-unlevered-cash-flow", "Unlevered Cash Flow", LEVERED, "line"),
    ("debt-draw", "Debt Draw", LEVERED, "line"),
    ("interest-expense", "Interest Expense", LEVERED, "line"),
    ("principal-repayment", "Principal Repayment", LEVERED, "line"),
    ("loan-payoff", "Loan Payoff at Sale", LEVERED, "line"),
    ("refinance-proceeds", "Refinance Proceeds", LEVERED, "line"),
    ("levered-cash-flow", "Levered Cash Flow", LEVERED, "total"),
    ("unlevered-irr", "Unlevered IRR", RETURNS, "metric"),
    ("levered-irr", "Levered IRR", RETURNS, "metric"),
]


def _is_operating(year: int, exit_year: Optional[int]) -> bool:
    return year > 0 and (exit_year is None or year <= exit_year)


def _sum(*values: Optional[float]) -> Optional[float]:
    """Sum of the values; None if any is missing or the result is not finite."""
    if any(value is None for value in values):
        return None
    return finite_or_none(sum(values))


def _negate(value: Optional[float]) -> Optional[float]:
    return None if value is None else -value


def _build_lines(deal: Deal) -> Dict:
    """Every cash-flow line (except IRR rows) as plain lists over the years."""
    years = projection_years(deal)
    exit_year = select_exit_year_index(deal)
    exit_settings = deal.assumptions.exit_settings
    project_cost = deal.project_cost

    pl = build_pl_statement(deal)
    revenue = pl.totals("total-revenue")
    ebitda = pl.totals("ebitda")
    income_tax = pl.totals("income-tax")
    debt = build_debt_schedule(deal.assumptions.financing_settings, project_cost)

    lines: Dict[str, List[Optional[float]]] = {
        key: [0.0] * len(years) for key, _, _, _ in CASH_FLOW_LAYOUT
    }

    # First pass: operating lines and debt service
    for year in years:
        lines["total-revenue"][year] = revenue[year]
        lines["ebitda"][year] = ebitda[year]
        lines["taxes"][year] = _negate(income_tax[year])

        if year == 0:
            lines["capex"][year] = finite_or_none(-project_cost)
            lines["debt-draw"][year] = finite_or_none(debt.loan_amount)
            continue

        if not _is_operating(year, exit_year):
            continue

        service = debt.year(year)
        lines["interest-expense"][year] = finite_or_none(-service.interest)
        lines["principal-repayment"][year] = finite_or_none(-service.principal)

    # Second pass: exit event
    if isinstance(exit_settings, SaleExit):
        sale = sale_summary_from_ebitda(exit_settings, project_cost, ebitda.get(exit_year))
        if sale.can_value:
            lines["net-sale-proceeds"][exit_year] = sale.net_sale_proceeds
        else:
            logger.warning(
                f"Deal {deal.id!r}: cannot value sale in y{exit_year} "
                f"(EBITDA={sale.reference_ebitda}, cap={exit_settings.exit_cap_rate})"
            )
        lines["loan-payoff"][exit_year] = finite_or_none(-debt.outstanding_balance(exit_year))

    elif isinstance(exit_settings, RefinanceExit):
        refi = refinance_summary_from_ebitda(
            exit_settings,
            ebitda.get(exit_year),
            debt.outstanding_balance(exit_year),
        )
        if refi.can_value:
            lines["refinance-proceeds"][exit_year] = refi.net_cash_out
        else:
            logger.warning(
                f"Deal {deal.id!r}: cannot value refinance in y{exit_year} "
                f"(EBITDA={refi.reference_ebitda}, cap={exit_settings.valuation_cap_rate})"
            )

    # Totals; a missing component leaves the total missing
    for year in years:
        lines["unlevered-ebitda"][year] = lines["ebitda"][year]
        lines["unlevered-taxes"][year] = lines["taxes"][year]
        unlevered = _sum(
            lines["unlevered-ebitda"][year],
            lines["unlevered-taxes"][year],
            lines["capex"][year],
            lines["net-sale-proceeds"][year],
        )
        lines["unlevered-cash-flow"][year] = unlevered
        lines["levered-unlevered-cash-flow"][year] = unlevered
        lines["levered-cash-flow"][year] = _sum(
            unlevered,
            lines["debt-draw"][year],
            lines["interest-expense"][year],
            lines["principal-repayment"][year],
            lines["loan-payoff"][year],
            lines["refinance-proceeds"][year],
        )

    return {"years": years, "exit_year": exit_year, "lines": lines, "debt": debt}


def compute_unlevered_cashflow_by_year(deal: Deal) -> YearSeries:
    """Property-level cash flow: EBITDA - taxes - capex (+ net sale proceeds)."""
    return YearSeries(_build_lines(deal)["lines"]["unlevered-cash-flow"])


def compute_levered_cashflow_by_year(deal: Deal) -> YearSeries:
    """Equity cash flow after debt draw, debt service and loan take-out."""
    return YearSeries(_build_lines(deal)["lines"]["levered-cash-flow"])


def _solve_both(unlevered: List[float], levered: List[float]) -> ProjectIrrs:
    return ProjectIrrs(unlevered=solve_irr(unlevered), levered=solve_irr(levered))


def compute_project_irrs_with_horizon(
    deal: Deal, through_year_index: Optional[int] = None
) -> ProjectIrrs:
    """
    Unlevered and levered IRR, optionally over a truncated horizon.

    Args:
        deal: Deal snapshot
        through_year_index: Keep years 0..through_year_index only. Proceeds
            booked after that year are not counted.

    Returns:
        ProjectIrrs
    """
    lines = _build_lines(deal)["lines"]
    unlevered = lines["unlevered-cash-flow"]
    levered = lines["levered-cash-flow"]

    if through_year_index is not None:
        cutoff = max(0, through_year_index + 1)
        unlevered = unlevered[:cutoff]
        levered = levered[:cutoff]

    irrs = _solve_both(unlevered, levered)
    logger.debug(
        f"IRRs for deal {deal.id!r} through y{through_year_index}: "
        f"unlevered={irrs.unlevered.status.value}, levered={irrs.levered.status.value}"
    )
    return irrs


def compute_project_irrs(deal: Deal) -> ProjectIrrs:
    return compute_project_irrs_with_horizon(deal)


def _kpis(built: Dict, irrs: ProjectIrrs) -> CashFlowKpis:
    lines = built["lines"]
    debt = built["debt"]
    exit_year = built["exit_year"]

    margins = [
        safe_ratio(lines["ebitda"][y], lines["total-revenue"][y])
        for y in built["years"]
        if _is_operating(y, exit_year)
    ]
    margins = [m for m in margins if m is not None]
    avg_margin = sum(margins) / len(margins) * 100 if margins else None

    first_year_ebitda = lines["ebitda"][1] if len(lines["ebitda"]) > 1 else 0.0

    return CashFlowKpis(
        unlevered_total=_sum(*lines["unlevered-cash-flow"]),
        levered_total=_sum(*lines["levered-cash-flow"]),
        total_tax=_negate(_sum(*lines["taxes"])),
        avg_ebitda_margin_pct=avg_margin,
        unlevered_irr=irrs.unlevered_irr,
        levered_irr=irrs.levered_irr,
        unlevered_multiple=calculate_multiple(lines["unlevered-cash-flow"]),
        levered_multiple=calculate_multiple(lines["levered-cash-flow"]),
        loan_amount=debt.loan_amount,
        equity_required=debt.equity_required,
        first_year_dscr=calculate_dscr(first_year_ebitda, debt.first_year_debt_service),
    )


def _irr_row(rate: Optional[float], years: List[int]) -> YearSeries:
    # IRR is not a per-year quantity; only year 1 carries it
    return YearSeries(rate if year == 1 else None for year in years)


def build_cash_flow_statement(deal: Deal) -> CashFlowStatement:
    """
    Assemble the memo, unlevered, levered and returns sections.

    IRRs are solved once over the full horizon.
    """
    built = _build_lines(deal)
    years = built["years"]
    lines = built["lines"]

    irrs = _solve_both(lines["unlevered-cash-flow"], lines["levered-cash-flow"])

    rows = []
    for row_id, label, section, kind in CASH_FLOW_LAYOUT:
        if row_id == "unlevered-irr":
            values = _irr_row(irrs.unlevered_irr, years)
        elif row_id == "levered-irr":
            values = _irr_row(irrs.levered_irr, years)
        else:
            values = YearSeries(lines[row_id])
        rows.append(CashFlowRow(id=row_id, label=label, section=section, kind=kind, years=values))

    logger.debug(f"Built cash flow for deal {deal.id!r}: years 0-{years[-1]}")
    return CashFlowStatement(
        rows=rows,
        years=years,
        exit_year=built["exit_year"],
        kpis=_kpis(built, irrs),
    )
