"""
Return KPIs

Yield on cost, departmental margins and the threshold bands used to flag
them, plus the deal-level returns summary.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence

from app.calculations.cashflow import build_cash_flow_statement, compute_project_irrs_with_horizon
from app.calculations.deal import Deal, SaleExit
from app.calculations.exit import sale_summary_from_ebitda
from app.calculations.pnl import PLStatement, build_pl_statement, safe_ratio
from app.calculations.ramp import select_exit_year_index
from app.calculations.series import year_key

YIELD_ON_COST_YEARS = (3, 4, 5)

THRESHOLDS = {
    "yield_on_cost": {"good": 0.10, "ok": 0.07},
    "gop_pct": {"low": 0.20, "high": 0.55},
    "fnb_margin": {"weak": 0.0, "ok": 0.10},
    "wellness_margin": {"weak": 0.0, "ok": 0.10},
    "rooms_margin": {"low": 0.60},
    "irr": {"excellent": 0.18, "good": 0.12, "ok": 0.08},
    "multiple": {"excellent": 2.5, "good": 2.0, "ok": 1.5},
    "dscr": {"good": 1.35, "ok": 1.20},
}


class ThresholdStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    OK = "ok"
    WEAK = "weak"
    UNREALISTIC = "unrealistic"


def calculate_yield_on_cost(ebitda: Optional[float], total_investment: float) -> Optional[float]:
    """EBITDA / total investment as a decimal."""
    if ebitda is None:
        return None
    return safe_ratio(ebitda, total_investment)


def assess_yield_on_cost(yoc: float) -> ThresholdStatus:
    bands = THRESHOLDS["yield_on_cost"]
    if yoc >= bands["good"]:
        return ThresholdStatus.GOOD
    if yoc >= bands["ok"]:
        return ThresholdStatus.OK
    return ThresholdStatus.WEAK


def assess_gop_percent(gop_pct: float) -> ThresholdStatus:
    """Assess GOP / total revenue (decimal). Above 55% is flagged unrealistic."""
    bands = THRESHOLDS["gop_pct"]
    if gop_pct < bands["low"]:
        return ThresholdStatus.WEAK
    if gop_pct > bands["high"]:
        return ThresholdStatus.UNREALISTIC
    return ThresholdStatus.GOOD


def assess_department_margin(margin: float, department: str) -> ThresholdStatus:
    """
    Assess a departmental margin (decimal).

    Args:
        margin: (department revenue - direct costs) / department revenue
        department: "fnb", "wellness" or "rooms"
    """
    if department in ("fnb", "wellness"):
        bands = THRESHOLDS[f"{department}_margin"]
        if margin <= bands["weak"]:
            return ThresholdStatus.WEAK
        if margin < bands["ok"]:
            return ThresholdStatus.OK
        return ThresholdStatus.GOOD
    if department == "rooms":
        if margin < THRESHOLDS["rooms_margin"]["low"]:
            return ThresholdStatus.WEAK
        return ThresholdStatus.GOOD
    return ThresholdStatus.OK


def _assess_bands(value: float, bands: Dict[str, float]) -> ThresholdStatus:
    for name in ("excellent", "good", "ok"):
        if name in bands and value >= bands[name]:
            return ThresholdStatus(name)
    return ThresholdStatus.WEAK


def assess_irr(irr: float) -> ThresholdStatus:
    return _assess_bands(irr, THRESHOLDS["irr"])


def assess_multiple(multiple: float) -> ThresholdStatus:
    return _assess_bands(multiple, THRESHOLDS["multiple"])


def assess_dscr(dscr: float) -> ThresholdStatus:
    return _assess_bands(dscr, THRESHOLDS["dscr"])


def yield_on_cost_by_year(
    deal: Deal,
    years: Sequence[int] = YIELD_ON_COST_YEARS,
    pl: Optional[PLStatement] = None,
) -> Dict[int, Optional[float]]:
    """
    Yield on cost for the given operating years, skipping years after exit.
    """
    pl = pl or build_pl_statement(deal)
    exit_year = select_exit_year_index(deal)
    ebitda = pl.totals("ebitda")

    result: Dict[int, Optional[float]] = {}
    for year in years:
        if exit_year is not None and year > exit_year:
            continue
        result[year] = calculate_yield_on_cost(ebitda.get(year), deal.project_cost)
    return result


# department -> (revenue row, direct cost row)
DEPARTMENT_ROWS = {
    "rooms": ("rooms-revenue", "rooms-direct-costs"),
    "fnb": ("fnb-revenue", "fnb-direct-costs"),
    "wellness": ("spa-revenue", "wellness-direct-costs"),
}


def department_margins(pl: PLStatement, year: int) -> Dict[str, Optional[float]]:
    """Departmental profit margins (decimal) for one year."""
    margins = {}
    for department, (revenue_id, cost_id) in DEPARTMENT_ROWS.items():
        revenue = pl.totals(revenue_id).get(year, 0.0)
        costs = pl.totals(cost_id).get(year, 0.0)
        if revenue is None or costs is None:
            margins[department] = None
        else:
            margins[department] = safe_ratio(revenue - costs, revenue)
    return margins


@dataclass
class ReturnsSummary:
    unlevered_irr: Optional[float]
    levered_irr: Optional[float]
    unlevered_irr_status: str
    levered_irr_status: str
    unlevered_multiple: Optional[float]
    levered_multiple: Optional[float]
    development_profit: Optional[float]
    first_year_dscr: Optional[float]
    yield_on_cost: Dict[str, Optional[float]] = field(default_factory=dict)
    assessments: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


def _status(value: Optional[float], assess) -> Optional[str]:
    return None if value is None else assess(value).value


def summarize_returns(deal: Deal, through_year_index: Optional[int] = None) -> ReturnsSummary:
    """
    Deal-level returns: IRRs (optionally over a truncated horizon),
    equity multiples, development profit and yield on cost.
    """
    statement = build_cash_flow_statement(deal)
    kpis = statement.kpis
    pl = build_pl_statement(deal)

    irrs = compute_project_irrs_with_horizon(deal, through_year_index)
    unlevered_irr, levered_irr = irrs.unlevered_irr, irrs.levered_irr

    development_profit = None
    exit_settings = deal.assumptions.exit_settings
    if isinstance(exit_settings, SaleExit):
        ebitda = pl.totals("ebitda").get(exit_settings.exit_year)
        sale = sale_summary_from_ebitda(exit_settings, deal.project_cost, ebitda)
        development_profit = sale.development_profit

    yoc = yield_on_cost_by_year(deal, pl=pl)
    # Latest year of the yield-on-cost strip
    gop_year = max(yoc) if yoc else 1
    gop_pct = safe_ratio(
        pl.totals("gop").get(gop_year, 0.0), pl.totals("total-revenue").get(gop_year, 0.0)
    )

    assessments = {
        "unlevered_irr": _status(unlevered_irr, assess_irr),
        "levered_irr": _status(levered_irr, assess_irr),
        "levered_multiple": _status(kpis.levered_multiple, assess_multiple),
        "dscr": _status(kpis.first_year_dscr, assess_dscr),
        "gop_pct": _status(gop_pct, assess_gop_percent),
    }
    for year, value in yoc.items():
        assessments[f"yield_on_cost_{year_key(year)}"] = _status(value, assess_yield_on_cost)

    return ReturnsSummary(
        unlevered_irr=unlevered_irr,
        levered_irr=levered_irr,
        unlevered_irr_status=irrs.unlevered.status.value,
        levered_irr_status=irrs.levered.status.value,
        unlevered_multiple=kpis.unlevered_multiple,
        levered_multiple=kpis.levered_multiple,
        development_profit=development_profit,
        first_year_dscr=kpis.first_year_dscr,
        yield_on_cost={year_key(year): value for year, value in yoc.items()},
        assessments=assessments,
    )
