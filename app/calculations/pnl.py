"""
P&L Aggregator

Builds a USALI-style operating statement by year: revenue lines,
departmental (direct) costs, undistributed and fixed expenses, and the
GOI / GOP / EBITDA subtotals, each with % of total revenue, per occupied
room night (POR) and per available room (PAR).

Conventions:
- Year 0 is pre-operating and carries no operations.
- Topline lines move with the topline ramp and growth index; cost lines
  with the cost ramp and, for currency-denominated costs, inflation.
- Years strictly after the exit year are zeroed, not dropped, so the
  cash-flow statement never counts post-disposal operations.
- A ratio with a zero or non-finite denominator is None, never NaN/inf.
  A line whose total is not finite (e.g. an infinite ADR) has total None.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from app.calculations import defaults
from app.calculations.amortization import build_debt_schedule
from app.calculations.deal import Deal, OpexDriver, OpexItem
from app.calculations.ramp import (
    projection_years,
    select_cost_ramp_by_year,
    select_exit_year_index,
    select_growth_index,
    select_inflation_index,
    select_topline_ramp_by_year,
)
from app.calculations.revenue import get_rooms_kpis_by_year
from app.calculations.series import YearSeries

logger = logging.getLogger(__name__)

KPIS = "KPIS"
REVENUE = "REVENUE"
DIRECT = "DIRECT"
UNDISTRIBUTED = "UNDISTRIBUTED"
FIXED = "FIXED"
SUMMARY = "SUMMARY"


@dataclass(frozen=True)
class PLCell:
    total: Optional[float]  # None when the line cannot be computed
    pct_of_tr: Optional[float] = None
    por: Optional[float] = None
    par: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "pct_of_tr": self.pct_of_tr,
            "por": self.por,
            "par": self.par,
        }


# Post-exit cell: no revenue and no rooms sold, so every ratio is undefined
ZERO_CELL = PLCell(total=0.0)


@dataclass(frozen=True)
class PLRow:
    id: str
    label: str
    group: str
    kind: str  # kpi | line | subtotal | total | section
    years: YearSeries  # of PLCell

    def totals(self) -> YearSeries:
        return self.years.map(lambda y, cell: cell.total)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "label": self.label,
            "group": self.group,
            "kind": self.kind,
            "years": {k: cell.to_dict() for k, cell in self.years.to_dict().items()},
        }


@dataclass(frozen=True)
class PLStatement:
    rows: List[PLRow]
    years: List[int]
    exit_year: Optional[int]

    def row(self, row_id: str) -> Optional[PLRow]:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def totals(self, row_id: str) -> YearSeries:
        """Per-year totals of a row; an empty series if the row is unknown."""
        row = self.row(row_id)
        return row.totals() if row else YearSeries()

    def to_dict(self) -> Dict:
        return {
            "years": self.years,
            "exit_year": self.exit_year,
            "rows": [row.to_dict() for row in self.rows],
        }


def finite_or_none(value: Optional[float]) -> Optional[float]:
    """The value itself when finite, else None."""
    if value is None or not math.isfinite(value):
        return None
    return value


def safe_ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """numerator / denominator, or None when undefined."""
    if numerator is None or not denominator or not math.isfinite(denominator) or not math.isfinite(numerator):
        return None
    result = numerator / denominator
    return result if math.isfinite(result) else None


# Rows in display order: (id, label, group, kind)
PL_LAYOUT = [
    ("rooms-open", "Rooms Open", KPIS, "kpi"),
    ("rooms-available", "Rooms Available", KPIS, "kpi"),
    ("rooms-sold", "Rooms Sold", KPIS, "kpi"),
    ("adr", "ADR", KPIS, "kpi"),
    ("occupancy", "Occupancy", KPIS, "kpi"),
    ("revpar", "RevPAR", KPIS, "kpi"),
    # Revenue
    ("rooms-revenue", "Rooms Revenue", REVENUE, "line"),
    ("fnb-revenue", "F&B Revenue", REVENUE, "line"),
    ("spa-revenue", "Spa Revenue", REVENUE, "line"),
    ("other-operating-revenue", "Other Operating Revenue", REVENUE, "line"),
    ("total-revenue", "Total Revenue", REVENUE, "total"),
    # Departmental
    ("rooms-direct-payroll", "Rooms Direct Payroll", DIRECT, "line"),
    ("rooms-commission", "Rooms Commission", DIRECT, "line"),
    ("guest-supplies-cleaning", "Guest Supplies & Cleaning", DIRECT, "line"),
    ("rooms-direct-costs", "Rooms Direct Costs", DIRECT, "subtotal"),
    ("fnb-direct-payroll", "F&B Direct Payroll", DIRECT, "line"),
    ("cost-of-goods-sold", "Cost of Goods Sold", DIRECT, "line"),
    ("fnb-direct-costs", "F&B Direct Costs", DIRECT, "subtotal"),
    ("me-costs", "M&E Costs", DIRECT, "line"),
    ("me-direct-costs", "M&E Direct Costs", DIRECT, "subtotal"),
    ("wellness-direct-payroll", "Wellness Direct Payroll", DIRECT, "line"),
    ("wellness-other-costs", "Wellness Other Costs", DIRECT, "line"),
    ("wellness-direct-costs", "Wellness Direct Costs", DIRECT, "subtotal"),
    ("other-direct-costs", "Other Direct Costs", DIRECT, "line"),
    ("direct-costs-total", "Direct Costs", DIRECT, "subtotal"),
    ("goi", "GOI", SUMMARY, "total"),
    # Undistributed
    ("ag-payroll", "A&G Payroll", UNDISTRIBUTED, "line"),
    ("other-ag", "Other A&G", UNDISTRIBUTED, "line"),
    ("admin-general", "Administrative & General", UNDISTRIBUTED, "subtotal"),
    ("tech-subscriptions", "Tech Subscriptions", UNDISTRIBUTED, "line"),
    ("it-telecommunications", "Information & Telecommunications", UNDISTRIBUTED, "subtotal"),
    ("sales-marketing-payroll", "Sales & Marketing Payroll", UNDISTRIBUTED, "line"),
    ("other-sm", "Other S&M", UNDISTRIBUTED, "line"),
    ("sales-marketing", "Sales & Marketing", UNDISTRIBUTED, "subtotal"),
    ("maintenance-payroll", "Maintenance Payroll", UNDISTRIBUTED, "line"),
    ("maintenance-other", "Maintenance Other", UNDISTRIBUTED, "line"),
    ("property-operations-maintenance", "Property Operations & Maintenance", UNDISTRIBUTED, "subtotal"),
    ("utilities", "Utilities", UNDISTRIBUTED, "line"),
    ("undistributed-total", "Indirect Costs", UNDISTRIBUTED, "subtotal"),
    ("gop", "GOP", SUMMARY, "total"),
    # Fixed
    ("management-fees", "Management Fees", FIXED, "line"),
    ("property-taxes", "Property Taxes", FIXED, "line"),
    ("insurance", "Insurance", FIXED, "line"),
    ("reserve-for-replacement", "Reserve for Replacement", FIXED, "line"),
    ("other-fixed-charges", "Other Fixed Charges", FIXED, "line"),
    ("ebitdar", "EBITDAR", SUMMARY, "total"),
    ("rent", "Rent", FIXED, "line"),
    ("ebitda", "EBITDA", SUMMARY, "total"),
    # Below EBITDA
    ("depreciation", "Depreciation", SUMMARY, "line"),
    ("interest-expense", "Interest Expense", SUMMARY, "line"),
    ("ebt", "Earnings Before Tax", SUMMARY, "subtotal"),
    ("income-tax", "Income Tax", SUMMARY, "line"),
    ("net-income", "Net Income (Loss)", SUMMARY, "total"),
]

OPEX_LINE_IDS = {
    "rooms-commission",
    "guest-supplies-cleaning",
    "cost-of-goods-sold",
    "me-costs",
    "wellness-other-costs",
    "other-direct-costs",
    "other-ag",
    "tech-subscriptions",
    "other-sm",
    "maintenance-other",
    "utilities",
    "management-fees",
    "property-taxes",
    "insurance",
    "reserve-for-replacement",
    "rent",
}

# Custom opex items land in the catch-all line of their section
CATCH_ALL_BY_SECTION = {
    "DIRECT": "other-direct-costs",
    "INDIRECT": "other-ag",
    "OTHER": "other-fixed-charges",
}

PAYROLL_ROWS = {
    "rooms": "rooms-direct-payroll",
    "fnb": "fnb-direct-payroll",
    "wellness": "wellness-direct-payroll",
    "ag": "ag-payroll",
    "sales": "sales-marketing-payroll",
    "maintenance": "maintenance-payroll",
}


@dataclass(frozen=True)
class _YearContext:
    """Drivers for one operating year, shared by every cost line."""

    rooms_revenue: float
    fnb_revenue: float
    other_revenue: float  # spa + other operating
    total_revenue: float
    rooms_sold: float
    cost_ramp: float
    inflation: float


def opex_amount(item: OpexItem, ctx: _YearContext) -> float:
    """
    Annual cost of one opex line.

    Percentage drivers scale with revenue and take the cost ramp only;
    currency-denominated drivers take cost ramp and inflation.
    """
    value = item.value or 0.0
    pct = value / 100
    driver = item.driver

    if driver == OpexDriver.PCT_ROOMS_REVENUE:
        return ctx.rooms_revenue * pct * ctx.cost_ramp
    if driver == OpexDriver.PCT_FNB_REVENUE:
        return ctx.fnb_revenue * pct * ctx.cost_ramp
    if driver == OpexDriver.PCT_OTHER_REVENUE:
        return ctx.other_revenue * pct * ctx.cost_ramp
    if driver == OpexDriver.PCT_TOTAL_REVENUE:
        return ctx.total_revenue * pct * ctx.cost_ramp
    if driver == OpexDriver.PER_ROOM_NIGHT_SOLD:
        return ctx.rooms_sold * value * ctx.cost_ramp * ctx.inflation
    if driver == OpexDriver.FIXED_PER_MONTH:
        return value * 12 * ctx.cost_ramp * ctx.inflation
    return 0.0


def _stabilized_ancillary(deal: Deal) -> Dict[str, float]:
    fnb = deal.fnb_revenue.stabilized_revenue if deal.fnb_revenue else 0.0
    spa = 0.0
    if deal.other_revenue:
        spa_cfg = deal.other_revenue.spa
        spa = spa_cfg.treatments_per_day * defaults.DAYS_PER_YEAR * spa_cfg.avg_price_per_treatment
    return {"fnb": fnb, "spa": spa}


def _operating_year(deal: Deal, year: int, drivers: Dict) -> Dict[str, float]:
    """All P&L line totals for one operating year (before exit zeroing)."""
    kpis = drivers["kpis"]
    ramp = drivers["topline_ramp"].get(year, 1.0)
    growth = drivers["growth_index"].get(year, 1.0)
    cost_ramp = drivers["cost_ramp"].get(year, 1.0)
    inflation = drivers["inflation_index"].get(year, 1.0)
    ancillary = drivers["ancillary"]

    adr = kpis.adr.get(year, 0.0)
    rooms_sold = kpis.rooms_sold.get(year, 0.0)

    line: Dict[str, float] = {key: 0.0 for key, _, _, _ in PL_LAYOUT}
    line["rooms-open"] = deal.total_rooms
    line["rooms-available"] = kpis.rooms_available.get(year, 0.0)
    line["rooms-sold"] = rooms_sold
    line["adr"] = adr
    line["occupancy"] = kpis.occupancy.get(year, 0.0) * 100
    line["revpar"] = kpis.revpar.get(year, 0.0)

    # === REVENUE ===
    rooms_revenue = adr * rooms_sold
    fnb_revenue = ancillary["fnb"] * ramp * growth
    spa_revenue = ancillary["spa"] * ramp * growth
    other_revenue = 0.0
    if deal.other_revenue:
        other = deal.other_revenue.other
        if other.mode == "percentage":
            other_revenue = rooms_revenue * other.percentage_of_rooms / 100
        else:
            other_revenue = other.monthly_fixed * 12 * ramp
    total_revenue = rooms_revenue + fnb_revenue + spa_revenue + other_revenue

    line["rooms-revenue"] = rooms_revenue
    line["fnb-revenue"] = fnb_revenue
    line["spa-revenue"] = spa_revenue
    line["other-operating-revenue"] = other_revenue
    line["total-revenue"] = total_revenue

    # === PAYROLL ===
    if deal.payroll:
        for dept, row_id in PAYROLL_ROWS.items():
            line[row_id] = getattr(deal.payroll, dept) * cost_ramp * inflation

    # === OPERATING EXPENSES ===
    ctx = _YearContext(
        rooms_revenue=rooms_revenue,
        fnb_revenue=fnb_revenue,
        other_revenue=spa_revenue + other_revenue,
        total_revenue=total_revenue,
        rooms_sold=rooms_sold,
        cost_ramp=cost_ramp,
        inflation=inflation,
    )
    for item in deal.operating_expenses.items:
        row_id = item.id if item.id in OPEX_LINE_IDS else CATCH_ALL_BY_SECTION[item.section]
        line[row_id] += opex_amount(item, ctx)

    # === SUBTOTALS ===
    line["rooms-direct-costs"] = (
        line["rooms-direct-payroll"] + line["rooms-commission"] + line["guest-supplies-cleaning"]
    )
    line["fnb-direct-costs"] = line["fnb-direct-payroll"] + line["cost-of-goods-sold"]
    line["me-direct-costs"] = line["me-costs"]
    line["wellness-direct-costs"] = (
        line["wellness-direct-payroll"] + line["wellness-other-costs"]
    )
    line["direct-costs-total"] = (
        line["rooms-direct-costs"]
        + line["fnb-direct-costs"]
        + line["me-direct-costs"]
        + line["wellness-direct-costs"]
        + line["other-direct-costs"]
    )
    line["goi"] = total_revenue - line["direct-costs-total"]

    line["admin-general"] = line["ag-payroll"] + line["other-ag"]
    line["it-telecommunications"] = line["tech-subscriptions"]
    line["sales-marketing"] = line["sales-marketing-payroll"] + line["other-sm"]
    line["property-operations-maintenance"] = (
        line["maintenance-payroll"] + line["maintenance-other"]
    )
    line["undistributed-total"] = (
        line["admin-general"]
        + line["it-telecommunications"]
        + line["sales-marketing"]
        + line["property-operations-maintenance"]
        + line["utilities"]
    )
    line["gop"] = line["goi"] - line["undistributed-total"]

    fixed_except_rent = (
        line["management-fees"]
        + line["property-taxes"]
        + line["insurance"]
        + line["reserve-for-replacement"]
        + line["other-fixed-charges"]
    )
    line["ebitdar"] = line["gop"] - fixed_except_rent
    line["ebitda"] = line["ebitdar"] - line["rent"]

    # === BELOW EBITDA ===
    line["depreciation"] = drivers["annual_depreciation"]
    line["interest-expense"] = drivers["debt"].year(year).interest
    line["ebt"] = line["ebitda"] - line["depreciation"] - line["interest-expense"]
    ebt = line["ebt"]
    line["income-tax"] = max(0.0, ebt * drivers["tax_rate"]) if math.isfinite(ebt) else ebt
    line["net-income"] = line["ebt"] - line["income-tax"]

    return line


def _cell(row_group: str, total: float, total_revenue: float, rooms_sold: float, rooms: float) -> PLCell:
    if row_group == KPIS:
        return PLCell(total=finite_or_none(total))
    share = safe_ratio(total, total_revenue)
    return PLCell(
        total=finite_or_none(total),
        pct_of_tr=None if share is None else share * 100,
        por=safe_ratio(total, rooms_sold),
        # Per room (key), not per room night
        par=safe_ratio(total, rooms),
    )


def build_pl_statement(deal: Deal) -> PLStatement:
    """
    Assemble the full P&L for a deal across the projection horizon.

    Returns:
        PLStatement with rows in display order and years 0..horizon
    """
    years = projection_years(deal)
    exit_year = select_exit_year_index(deal)
    financing = deal.assumptions.financing_settings
    project_cost = deal.project_cost

    drivers = {
        "kpis": get_rooms_kpis_by_year(deal, years),
        "topline_ramp": select_topline_ramp_by_year(deal, years),
        "cost_ramp": select_cost_ramp_by_year(deal, years),
        "growth_index": select_growth_index(deal, years),
        "inflation_index": select_inflation_index(deal, years),
        "ancillary": _stabilized_ancillary(deal),
        "annual_depreciation": (
            deal.assumptions.ramp_settings.depreciation_pct_of_capex / 100 * project_cost
        ),
        "debt": build_debt_schedule(financing, project_cost),
        "tax_rate": (financing.tax_rate_on_ebt if financing else defaults.DEFAULT_TAX_RATE_PCT) / 100,
    }

    zero_year = {key: 0.0 for key, _, _, _ in PL_LAYOUT}
    by_year: List[Dict[str, float]] = []
    for year in years:
        if year == 0:
            by_year.append(zero_year)
        else:
            by_year.append(_operating_year(deal, year, drivers))

    rooms = deal.total_rooms
    rows = []
    for row_id, label, group, kind in PL_LAYOUT:
        cells = []
        for year, line in zip(years, by_year):
            if exit_year is not None and year > exit_year:
                cells.append(ZERO_CELL)
                continue
            cells.append(
                _cell(group, line[row_id], line["total-revenue"], line["rooms-sold"], rooms)
            )
        rows.append(PLRow(id=row_id, label=label, group=group, kind=kind, years=YearSeries(cells)))

    logger.debug(f"Built P&L for deal {deal.id!r}: {len(rows)} rows, years 0-{years[-1]}")
    return PLStatement(rows=rows, years=years, exit_year=exit_year)


def select_revenue_by_year(deal: Deal) -> YearSeries:
    return build_pl_statement(deal).totals("total-revenue")


def select_ebitda_by_year(deal: Deal) -> YearSeries:
    return build_pl_statement(deal).totals("ebitda")
