"""
Ramp & Macro Selectors

Per-year inflation, topline growth and ramp-up multipliers for a deal, plus
the exit year that bounds the projection. Ramp multipliers scale stabilised
assumptions during the first operating years (1.0 = steady state).
"""

import logging
from typing import List, Mapping, Optional, Sequence

from app.calculations.deal import Deal, RefinanceExit, SaleExit
from app.calculations.series import YearSeries, build_index_from_rates, parse_year_key
from app.config import get_settings

logger = logging.getLogger(__name__)


def select_exit_year_index(deal: Deal) -> Optional[int]:
    """Exit year of the active strategy; None when holding forever."""
    exit_settings = deal.assumptions.exit_settings
    if isinstance(exit_settings, SaleExit):
        return exit_settings.exit_year
    if isinstance(exit_settings, RefinanceExit):
        return exit_settings.refinance_year
    return None


def projection_horizon(deal: Deal) -> int:
    """Last projected year: the display horizon, extended to reach the exit year."""
    horizon = get_settings().projection_years
    exit_year = select_exit_year_index(deal)
    if exit_year is not None and exit_year > horizon:
        return exit_year
    return horizon


def projection_years(deal: Deal) -> List[int]:
    """Years 0..horizon for a deal."""
    return list(range(projection_horizon(deal) + 1))


def _parse_by_year(mapping: Mapping) -> dict:
    return {parse_year_key(k): v for k, v in (mapping or {}).items()}


def _expand_rate(
    by_year: Mapping,
    flat_rate: float,
    years: Sequence[int],
    label: str,
) -> YearSeries:
    """
    Per-year rates with year 0 pinned to 0.

    A non-empty by-year map wins; its gaps take the flat rate and are logged.
    """
    explicit = _parse_by_year(by_year)
    rates = []
    for year in years:
        if year == 0:
            rates.append(0.0)
        elif not explicit:
            rates.append(flat_rate)
        elif explicit.get(year) is not None:
            rates.append(explicit[year])
        else:
            logger.warning(
                f"No {label} rate for y{year}; using flat rate {flat_rate:.4f}"
            )
            rates.append(flat_rate)
    return YearSeries(rates)


def _expand_ramp(
    by_year: Mapping,
    curve: Sequence[float],
    years: Sequence[int],
) -> YearSeries:
    """
    Per-year ramp multipliers; year 0 and post-ramp years are 1.0.

    A curve entry of 0 (or None) means steady state, i.e. 1.0.
    """
    explicit = _parse_by_year(by_year)
    out = []
    for year in years:
        if year == 0:
            out.append(1.0)
        elif explicit:
            value = explicit.get(year)
            out.append(1.0 if value is None else value)
        elif year <= len(curve) and curve[year - 1]:
            out.append(curve[year - 1])
        else:
            out.append(1.0)
    return YearSeries(out)


def select_topline_growth_rate_by_year(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> YearSeries:
    years = projection_years(deal) if years is None else years
    flat = deal.assumptions.ramp_settings.topline_growth_pct / 100
    return _expand_rate(
        deal.assumptions.macro.topline_growth_rate_by_year, flat, years, "topline growth"
    )


def select_inflation_rate_by_year(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> YearSeries:
    years = projection_years(deal) if years is None else years
    flat = deal.assumptions.ramp_settings.inflation_pct / 100
    return _expand_rate(
        deal.assumptions.macro.inflation_rate_by_year, flat, years, "inflation"
    )


def select_topline_ramp_by_year(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> YearSeries:
    years = projection_years(deal) if years is None else years
    return _expand_ramp(
        deal.assumptions.ramp_by_year.topline,
        deal.assumptions.ramp_settings.revenue_ramp,
        years,
    )


def select_cost_ramp_by_year(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> YearSeries:
    years = projection_years(deal) if years is None else years
    return _expand_ramp(
        deal.assumptions.ramp_by_year.costs,
        deal.assumptions.ramp_settings.cost_ramp,
        years,
    )


def select_growth_index(deal: Deal, years: Optional[Sequence[int]] = None) -> YearSeries:
    """Cumulative topline growth index (y0 = 1.0). Prices only, never costs."""
    years = projection_years(deal) if years is None else years
    return build_index_from_rates(select_topline_growth_rate_by_year(deal, years), years)


def select_inflation_index(
    deal: Deal, years: Optional[Sequence[int]] = None
) -> YearSeries:
    """Cumulative cost inflation index (y0 = 1.0). Costs only, never topline."""
    years = projection_years(deal) if years is None else years
    return build_index_from_rates(select_inflation_rate_by_year(deal, years), years)
