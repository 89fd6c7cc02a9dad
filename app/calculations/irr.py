"""
IRR and NPV Calculations

Implements IRR using Newton-Raphson on the periodic NPV function.

The raw solver keeps three outcomes apart: a converged rate, an undefined
IRR (no sign change in the cash flows) and a non-convergent search. Only
the legacy `calculate_irr` wrapper collapses the last two to 0.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from app.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_GUESS = 0.1


class IrrStatus(str, Enum):
    CONVERGED = "converged"
    UNDEFINED = "undefined"
    NON_CONVERGENT = "non_convergent"


@dataclass(frozen=True)
class IrrResult:
    """Outcome of an IRR solve. `rate` is set only when converged."""

    status: IrrStatus
    rate: Optional[float] = None
    iterations: int = 0

    @property
    def converged(self) -> bool:
        return self.status is IrrStatus.CONVERGED


def calculate_npv(cash_flows: Sequence[float], discount_rate: float) -> float:
    """
    Calculate NPV (Net Present Value) of cash flows.

    Args:
        cash_flows: Array of cash flows (negative = outflow, positive = inflow)
        discount_rate: Annual discount rate (e.g., 0.10 for 10%)

    Returns:
        NPV value
    """
    cfs = np.asarray(cash_flows, dtype=float)
    periods = np.arange(cfs.size)
    with np.errstate(all="ignore"):
        return float(np.sum(cfs / (1 + discount_rate) ** periods))


def _npv_and_derivative(cfs: np.ndarray, periods: np.ndarray, rate: float):
    """NPV and dNPV/dr at `rate` (for Newton-Raphson)."""
    with np.errstate(all="ignore"):
        denom = (1 + rate) ** periods
        npv = np.sum(cfs / denom)
        dnpv = -np.sum(periods * cfs / (denom * (1 + rate)))
    return float(npv), float(dnpv)


def has_sign_change(cash_flows: Sequence[float]) -> bool:
    """True when the flows hold at least one inflow and one outflow."""
    return any(cf > 0 for cf in cash_flows) and any(cf < 0 for cf in cash_flows)


def solve_irr(
    cash_flows: Sequence[float],
    guess: Optional[float] = None,
    max_iterations: Optional[int] = None,
    tolerance: Optional[float] = None,
) -> IrrResult:
    """
    Solve for IRR with Newton-Raphson.

    Never raises: degenerate inputs come back as UNDEFINED or NON_CONVERGENT.

    Args:
        cash_flows: Periodic cash flows, period 0 first
        guess: Initial rate (default from settings, 0.10)
        max_iterations: Iteration cap (default from settings, 1000)
        tolerance: Convergence threshold on successive rates (default 1e-8)

    Returns:
        IrrResult
    """
    settings = get_settings()
    guess = settings.irr_default_guess if guess is None else guess
    max_iterations = settings.irr_max_iterations if max_iterations is None else max_iterations
    tolerance = settings.irr_tolerance if tolerance is None else tolerance

    if any(cf is None or not math.isfinite(cf) for cf in cash_flows):
        logger.debug("IRR undefined: cash flows contain a missing or non-finite value")
        return IrrResult(IrrStatus.UNDEFINED)

    if not has_sign_change(cash_flows):
        return IrrResult(IrrStatus.UNDEFINED)

    cfs = np.asarray(cash_flows, dtype=float)
    periods = np.arange(cfs.size)
    rate = guess

    for iteration in range(1, max_iterations + 1):
        npv, dnpv = _npv_and_derivative(cfs, periods, rate)

        if not math.isfinite(npv) or not math.isfinite(dnpv) or dnpv == 0:
            logger.debug(f"IRR derivative collapsed at r={rate} (iteration {iteration})")
            return IrrResult(IrrStatus.NON_CONVERGENT, iterations=iteration)

        new_rate = rate - npv / dnpv

        if not math.isfinite(new_rate):
            logger.debug(f"IRR estimate diverged at iteration {iteration}")
            return IrrResult(IrrStatus.NON_CONVERGENT, iterations=iteration)

        if abs(new_rate - rate) < tolerance:
            return IrrResult(IrrStatus.CONVERGED, rate=new_rate, iterations=iteration)

        rate = new_rate

    logger.debug(f"IRR did not converge in {max_iterations} iterations")
    return IrrResult(IrrStatus.NON_CONVERGENT, iterations=max_iterations)


def safe_irr(cash_flows: Sequence[float], guess: float = DEFAULT_GUESS) -> Optional[float]:
    """IRR as a decimal, or None when undefined or non-convergent."""
    return solve_irr(cash_flows, guess).rate


def calculate_irr(cash_flows: Sequence[float], guess: float = DEFAULT_GUESS) -> float:
    """
    Legacy display wrapper around `safe_irr`.

    Returns 0.0 when the IRR is undefined or the solver does not converge.
    That 0 is a display placeholder, not a computed rate.
    """
    result = safe_irr(cash_flows, guess)
    return 0.0 if result is None else result


def format_irr(irr: Optional[float]) -> str:
    """Format an IRR decimal as "12.3%", or "N/A" when missing or non-finite."""
    if irr is None or not math.isfinite(irr):
        return "N/A"
    return f"{irr * 100:.1f}%"


def calculate_equity_irr(
    equity_investment: float,
    annual_cash_flows: Sequence[float],
    net_sale_proceeds: float,
    exit_year: int,
) -> Optional[float]:
    """
    IRR of an equity position: -equity at year 0, annual flows to exit,
    sale proceeds added in the exit year.

    Args:
        annual_cash_flows: Flows for years 1..N (index 0 = year 1)
    """
    cash_flows: List[float] = [-equity_investment]
    for year in range(1, exit_year + 1):
        annual_cf = annual_cash_flows[year - 1] if year - 1 < len(annual_cash_flows) else 0.0
        if year == exit_year:
            annual_cf += net_sale_proceeds
        cash_flows.append(annual_cf)
    return safe_irr(cash_flows)


def calculate_multiple(cash_flows: Sequence[float]) -> Optional[float]:
    """
    Calculate equity multiple.

    Args:
        cash_flows: Array of cash flows (investments are negative)

    Returns:
        Multiple (e.g., 2.0 = 2.0x return), or None with no outflows or a
        missing flow
    """
    if any(cf is None for cf in cash_flows):
        return None

    total_inflows = sum(cf for cf in cash_flows if cf > 0)
    total_outflows = abs(sum(cf for cf in cash_flows if cf < 0))

    if total_outflows == 0:
        return None

    return total_inflows / total_outflows


def calculate_profit(cash_flows: Sequence[float]) -> float:
    """Calculate profit (total inflows minus total outflows)."""
    return sum(cash_flows)
