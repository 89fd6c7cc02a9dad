"""
Deal input model.

A read-only snapshot of a hotel deal's assumptions as handed to the engine.
Field names accept either snake_case or camelCase, so payloads produced by
the web client can be validated directly.
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.calculations import defaults


class DealModel(BaseModel):
    """Base for all deal input models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RoomType(DealModel):
    name: str = ""
    rooms: float = 0
    adr_weight: float = 100  # index %, 100 = base ADR


class RoomRevenueBase(DealModel):
    """Stabilised room-revenue assumptions (year-one prices, no ramp)."""

    avg_adr: Optional[float] = None
    # Fraction (0.72) or percent (72); values above 1 are read as percent
    avg_occupancy: Optional[float] = None
    seasonality_preset: Optional[str] = None


class FnbRevenue(DealModel):
    stabilized_revenue: float = 0.0


class SpaRevenue(DealModel):
    treatments_per_day: float = 0.0
    avg_price_per_treatment: float = 0.0


class OtherOperatingRevenue(DealModel):
    mode: Literal["percentage", "fixed"] = "percentage"
    percentage_of_rooms: float = 0.0
    monthly_fixed: float = 0.0


class OtherRevenue(DealModel):
    spa: SpaRevenue = Field(default_factory=SpaRevenue)
    other: OtherOperatingRevenue = Field(default_factory=OtherOperatingRevenue)


class Payroll(DealModel):
    """Stabilised annual payroll cost by department."""

    rooms: float = 0.0
    fnb: float = 0.0
    wellness: float = 0.0
    ag: float = 0.0
    sales: float = 0.0
    maintenance: float = 0.0


class OpexDriver(str, Enum):
    PCT_ROOMS_REVENUE = "PCT_ROOMS_REVENUE"
    PCT_FNB_REVENUE = "PCT_FNB_REVENUE"
    PCT_OTHER_REVENUE = "PCT_OTHER_REVENUE"
    PCT_TOTAL_REVENUE = "PCT_TOTAL_REVENUE"
    PER_ROOM_NIGHT_SOLD = "PER_ROOM_NIGHT_SOLD"
    FIXED_PER_MONTH = "FIXED_PER_MONTH"


class OpexItem(DealModel):
    id: str
    label: str = ""
    value: float = 0.0
    driver: OpexDriver
    section: Literal["DIRECT", "INDIRECT", "OTHER"] = "OTHER"


def default_opex_items() -> List[OpexItem]:
    return [
        OpexItem(id=item_id, label=label, value=value, driver=driver, section=section)
        for item_id, label, value, driver, section in defaults.DEFAULT_OPEX_ITEMS
    ]


class OperatingExpenses(DealModel):
    items: List[OpexItem] = Field(default_factory=default_opex_items)

    def value(self, item_id: str) -> float:
        """Configured value for an opex line, 0 when the line is absent."""
        for item in self.items:
            if item.id == item_id:
                return item.value or 0.0
        return 0.0


class Budget(DealModel):
    grand_total: float = 0.0


class RampSettings(DealModel):
    revenue_ramp: List[float] = Field(
        default_factory=lambda: list(defaults.REVENUE_RAMP_PRESETS["standard"])
    )
    cost_ramp: List[float] = Field(
        default_factory=lambda: list(defaults.COST_RAMP_PRESETS["standard"])
    )
    topline_growth_pct: float = defaults.DEFAULT_TOPLINE_GROWTH_PCT
    inflation_pct: float = defaults.DEFAULT_INFLATION_PCT
    depreciation_pct_of_capex: float = defaults.DEFAULT_DEPRECIATION_PCT_OF_CAPEX

    @field_validator("revenue_ramp", "cost_ramp", mode="before")
    @classmethod
    def _expand_preset(cls, value, info):
        """Accept a preset name ("conservative", "standard", "ambitious")."""
        if not isinstance(value, str):
            return value
        presets = (
            defaults.REVENUE_RAMP_PRESETS
            if info.field_name == "revenue_ramp"
            else defaults.COST_RAMP_PRESETS
        )
        if value not in presets:
            raise ValueError(f"Unknown ramp preset: {value!r}")
        return list(presets[value])


class MacroAssumptions(DealModel):
    """Optional year-by-year macro rates as decimals, keyed "y1".."yN"."""

    topline_growth_rate_by_year: Dict[str, float] = Field(default_factory=dict)
    inflation_rate_by_year: Dict[str, float] = Field(default_factory=dict)


class RampByYear(DealModel):
    """Optional explicit ramp multipliers keyed "y1".."yN"."""

    topline: Dict[str, float] = Field(default_factory=dict)
    costs: Dict[str, float] = Field(default_factory=dict)


class FinancingSettings(DealModel):
    ltc_pct: float = defaults.DEFAULT_LTC_PCT
    interest_rate_pct: float = defaults.DEFAULT_INTEREST_RATE_PCT
    loan_term_years: int = defaults.DEFAULT_LOAN_TERM_YEARS
    amort_years: int = defaults.DEFAULT_AMORT_YEARS
    io_period_years: int = 0
    tax_rate_on_ebt: float = defaults.DEFAULT_TAX_RATE_PCT


# === Exit strategy (tagged variant) ===


class HoldForever(DealModel):
    strategy: Literal["HOLD_FOREVER"] = "HOLD_FOREVER"


class SaleExit(DealModel):
    strategy: Literal["SALE"] = "SALE"
    exit_year: int = Field(defaults.DEFAULT_EXIT_YEAR, ge=1)
    exit_cap_rate: float = defaults.DEFAULT_EXIT_CAP_RATE  # %
    selling_costs_pct: float = defaults.DEFAULT_SELLING_COSTS_PCT  # % of sale price


class RefinanceExit(DealModel):
    strategy: Literal["REFINANCE"] = "REFINANCE"
    refinance_year: int = Field(defaults.DEFAULT_EXIT_YEAR, ge=1)
    ltv_at_refinance: float = defaults.DEFAULT_LTV_AT_REFINANCE  # %
    refinance_costs_pct: float = defaults.DEFAULT_REFINANCE_COSTS_PCT  # % of new loan
    valuation_cap_rate: float = defaults.DEFAULT_REFINANCE_VALUATION_CAP_RATE  # %


ExitSettings = Annotated[
    Union[HoldForever, SaleExit, RefinanceExit],
    Field(discriminator="strategy"),
]

_VARIANT_PAYLOAD_KEYS = {"SALE": "sale", "REFINANCE": "refinance"}


def flatten_exit_payload(raw):
    """
    Accept the web client's {strategy, sale: {...}, refinance: {...}} shape.

    Only the active strategy's block is kept; the others are dropped unread.
    """
    if not isinstance(raw, dict):
        return raw
    strategy = raw.get("strategy")
    nested = _VARIANT_PAYLOAD_KEYS.get(strategy)
    if strategy == "HOLD_FOREVER":
        return {"strategy": strategy}
    if nested and isinstance(raw.get(nested), dict):
        return {"strategy": strategy, **raw[nested]}
    return raw


class Assumptions(DealModel):
    ramp_settings: RampSettings = Field(default_factory=RampSettings)
    macro: MacroAssumptions = Field(default_factory=MacroAssumptions)
    ramp_by_year: RampByYear = Field(default_factory=RampByYear)
    financing_settings: Optional[FinancingSettings] = None
    exit_settings: ExitSettings = Field(default_factory=SaleExit)

    @model_validator(mode="before")
    @classmethod
    def _normalize_exit_settings(cls, data):
        if isinstance(data, dict):
            for key in ("exit_settings", "exitSettings"):
                if key in data:
                    data = {**data, key: flatten_exit_payload(data[key])}
        return data


class Deal(DealModel):
    """Deal snapshot consumed by the projection engine."""

    id: Optional[str] = None
    name: str = ""
    currency: str = "EUR"
    room_types: List[RoomType] = Field(default_factory=list)
    budget: Budget = Field(default_factory=Budget)
    room_revenue: Optional[RoomRevenueBase] = None
    fnb_revenue: Optional[FnbRevenue] = None
    other_revenue: Optional[OtherRevenue] = None
    payroll: Optional[Payroll] = None
    operating_expenses: OperatingExpenses = Field(default_factory=OperatingExpenses)
    assumptions: Assumptions = Field(default_factory=Assumptions)

    @property
    def total_rooms(self) -> float:
        return sum((r.rooms or 0) for r in self.room_types)

    @property
    def project_cost(self) -> float:
        return self.budget.grand_total or 0.0

    @property
    def exit_settings(self):
        return self.assumptions.exit_settings
