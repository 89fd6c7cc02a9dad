"""
Revenue Driver Selectors

ADR, occupancy and RevPAR by year from the deal's room configuration and
base pricing, scaled by the topline ramp and growth index.

    ADR_y = ADR_base x topline_ramp_y x growth_index_y   (no inflation)
    OCC_y = OCC_base x topline_ramp_y                    (no growth)
    RevPAR_y = ADR_y x OCC_y

Year 0 is pre-operating: ADR, occupancy, RevPAR and rooms sold are 0.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from app.calculations import defaults
from app.calculations.deal import Deal
from app.calculations.ramp import (
    projection_years,
    select_growth_index,
    select_topline_ramp_by_year,
)
from app.calculations.series import YearSeries


@dataclass(frozen=True)
class RoomsKpis:
    """Room-level operating drivers by year."""

    years: List[int]
    adr: YearSeries
    occupancy: YearSeries  # 0..1 fraction
    revpar: YearSeries
    rooms_available: YearSeries  # room nights
    rooms_sold: YearSeries  # room nights


def to_fraction(value: Optional[float]) -> float:
    """Accept 70, 0.70 or 70 (%) and return a clean 0..1 fraction."""
    if value is None or value != value:
        return 0.0
    v = float(value)
    if v > 1.0001:
        return v / 100
    return min(1.0, max(0.0, v))


def _clamp01(x: float) -> float:
    return min(1.0, max(0.0, x))


def base_room_assumptions(deal: Deal) -> Tuple[float, float]:
    """
    Stabilised (ADR, occupancy fraction) before ramp and growth.

    Falls back to the default ADR and the day-weighted seasonality preset
    when the deal has no room-revenue model yet.
    """
    base = deal.room_revenue
    preset = (base.seasonality_preset if base else None) or defaults.DEFAULT_SEASONALITY

    adr = base.avg_adr if base and base.avg_adr is not None else defaults.DEFAULT_ADR
    if base and base.avg_occupancy is not None:
        occupancy = to_fraction(base.avg_occupancy)
    else:
        occupancy = defaults.seasonal_average_occupancy(preset)
    return adr, occupancy


def get_rooms_kpis_by_year(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> RoomsKpis:
    """Compute all room drivers for the projection years."""
    years = projection_years(deal) if years is None else list(years)
    rooms_total = deal.total_rooms
    adr_base, occ_base = base_room_assumptions(deal)

    topline_ramp = select_topline_ramp_by_year(deal, years)
    growth_index = select_growth_index(deal, years)

    adr, occ, revpar, available, sold = [], [], [], [], []
    for year in years:
        # Pre-operating year: no inventory on sale
        rooms_available = rooms_total * defaults.DAYS_PER_YEAR if year > 0 else 0.0
        available.append(rooms_available)

        if year == 0:
            adr.append(0.0)
            occ.append(0.0)
            revpar.append(0.0)
            sold.append(0.0)
            continue

        ramp = topline_ramp.get(year, 1.0)
        year_adr = adr_base * ramp * growth_index.get(year, 1.0)
        year_occ = _clamp01(occ_base * ramp)

        adr.append(year_adr)
        occ.append(year_occ)
        revpar.append(year_adr * year_occ)
        sold.append(rooms_available * year_occ)

    return RoomsKpis(
        years=list(years),
        adr=YearSeries(adr),
        occupancy=YearSeries(occ),
        revpar=YearSeries(revpar),
        rooms_available=YearSeries(available),
        rooms_sold=YearSeries(sold),
    )


def select_adr_by_year(deal: Deal) -> YearSeries:
    return get_rooms_kpis_by_year(deal).adr


def select_occupancy_by_year(deal: Deal) -> YearSeries:
    return get_rooms_kpis_by_year(deal).occupancy


def select_revpar_by_year(deal: Deal) -> YearSeries:
    return get_rooms_kpis_by_year(deal).revpar


def select_rooms_available_by_year(deal: Deal) -> YearSeries:
    return get_rooms_kpis_by_year(deal).rooms_available


def select_rooms_sold_by_year(deal: Deal) -> YearSeries:
    return get_rooms_kpis_by_year(deal).rooms_sold
