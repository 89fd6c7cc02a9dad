"""
Loan Amortization Calculations

Implements loan payment and amortization schedule calculations,
matching Excel's PMT function, and rolls monthly schedules up to the
annual debt service used by the P&L and cash-flow statements.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.calculations.deal import FinancingSettings


def calculate_payment(
    principal: float, annual_rate: float, amortization_months: int
) -> float:
    """
    Calculate monthly loan payment.

    Matches Excel's PMT() function.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal (e.g., 0.05 for 5%)
        amortization_months: Total amortization period in months

    Returns:
        Monthly payment amount (positive number)
    """
    if principal <= 0:
        return 0.0
    if amortization_months <= 0:
        return 0.0

    monthly_rate = annual_rate / 12

    if monthly_rate == 0:
        return principal / amortization_months

    payment = (
        principal
        * monthly_rate
        * ((1 + monthly_rate) ** amortization_months)
        / (((1 + monthly_rate) ** amortization_months) - 1)
    )

    return payment


def calculate_financing_amounts(project_cost: float, ltc_pct: float) -> Dict[str, float]:
    """Split total project cost into loan and equity by loan-to-cost %."""
    loan_amount = project_cost * (ltc_pct / 100)
    return {"loan_amount": loan_amount, "equity_required": project_cost - loan_amount}


def generate_amortization_schedule(
    principal: float,
    annual_rate: float,
    amortization_months: int,
    io_months: int = 0,
    total_months: int = 120,
) -> List[Dict]:
    """
    Generate a monthly amortization schedule.

    The schedule stops at the loan term; any balance left after the last
    month is a balloon, not a scheduled payment.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal
        amortization_months: Amortization period in months
        io_months: Interest-only period in months
        total_months: Total loan term in months

    Returns:
        List of amortization rows
    """
    schedule = []
    balance = principal
    monthly_rate = annual_rate / 12

    for period in range(1, total_months + 1):
        interest = balance * monthly_rate

        if period <= io_months:
            # Interest-only period
            principal_pmt = 0.0
            payment = interest
        else:
            remaining_amort_periods = amortization_months - (period - io_months - 1)
            if remaining_amort_periods > 0:
                payment = calculate_payment(balance, annual_rate, remaining_amort_periods)
                principal_pmt = payment - interest
                principal_pmt = min(principal_pmt, balance)
                payment = principal_pmt + interest
            else:
                # Pay off remaining balance
                principal_pmt = balance
                payment = balance + interest

        ending_balance = balance - principal_pmt

        schedule.append(
            {
                "period": period,
                "beginning_balance": balance,
                "payment": payment,
                "interest": interest,
                "principal": principal_pmt,
                "ending_balance": max(0.0, ending_balance),
            }
        )

        balance = max(0.0, ending_balance)

        # Stop if balance is paid off
        if balance == 0:
            break

    return schedule


@dataclass(frozen=True)
class AnnualDebtService:
    """Debt flows for one projection year (all positive magnitudes)."""

    year: int
    interest: float
    principal: float  # scheduled amortisation plus any balloon at maturity
    balloon: float
    ending_balance: float

    @property
    def debt_service(self) -> float:
        return self.interest + self.principal


@dataclass
class DebtSchedule:
    """Senior loan drawn at year 0 and serviced annually."""

    loan_amount: float
    equity_required: float
    loan_term_years: int
    monthly_payment: float
    months: List[Dict] = field(default_factory=list)

    @property
    def balloon_payment(self) -> float:
        if not self.months:
            return 0.0
        return self.months[-1]["ending_balance"]

    @property
    def has_balloon(self) -> bool:
        return self.balloon_payment > 0.005

    def year(self, year: int) -> AnnualDebtService:
        """Aggregate months of projection year `year` (year 1 = months 1-12)."""
        if year <= 0 or self.loan_amount <= 0:
            balance = self.loan_amount if year == 0 else 0.0
            return AnnualDebtService(year, 0.0, 0.0, 0.0, max(0.0, balance))

        rows = self.months[(year - 1) * 12 : year * 12]
        interest = sum(row["interest"] for row in rows)
        principal = sum(row["principal"] for row in rows)
        ending = rows[-1]["ending_balance"] if rows else 0.0

        balloon = 0.0
        if year == self.loan_term_years and self.has_balloon:
            balloon = self.balloon_payment
            ending = 0.0

        return AnnualDebtService(
            year=year,
            interest=interest,
            principal=principal + balloon,
            balloon=balloon,
            ending_balance=ending,
        )

    def outstanding_balance(self, year: int) -> float:
        """Balance left after year `year`'s scheduled payments (0 after maturity)."""
        return self.year(year).ending_balance

    @property
    def first_year_debt_service(self) -> float:
        return self.year(1).debt_service


def build_debt_schedule(
    settings: Optional[FinancingSettings], project_cost: float
) -> DebtSchedule:
    """
    Build the acquisition loan schedule from financing terms.

    No financing settings or no project cost yields an empty schedule.
    """
    if settings is None or project_cost <= 0:
        return DebtSchedule(
            loan_amount=0.0,
            equity_required=max(0.0, project_cost),
            loan_term_years=0,
            monthly_payment=0.0,
        )

    amounts = calculate_financing_amounts(project_cost, settings.ltc_pct)
    loan_amount = amounts["loan_amount"]
    annual_rate = settings.interest_rate_pct / 100
    amort_months = settings.amort_years * 12
    io_months = settings.io_period_years * 12
    term_months = settings.loan_term_years * 12

    if loan_amount <= 0 or term_months <= 0:
        return DebtSchedule(
            loan_amount=max(0.0, loan_amount),
            equity_required=amounts["equity_required"],
            loan_term_years=settings.loan_term_years,
            monthly_payment=0.0,
        )

    months = generate_amortization_schedule(
        principal=loan_amount,
        annual_rate=annual_rate,
        amortization_months=amort_months,
        io_months=io_months,
        total_months=term_months,
    )

    return DebtSchedule(
        loan_amount=loan_amount,
        equity_required=amounts["equity_required"],
        loan_term_years=settings.loan_term_years,
        monthly_payment=calculate_payment(loan_amount, annual_rate, amort_months),
        months=months,
    )


def calculate_dscr(noi: Optional[float], debt_service: float) -> Optional[float]:
    """
    Calculate Debt Service Coverage Ratio (DSCR).

    Args:
        noi: Net Operating Income (EBITDA) for the period
        debt_service: Debt service for the period

    Returns:
        DSCR ratio, or None when there is no debt service or no NOI
    """
    if noi is None or debt_service == 0:
        return None
    return noi / debt_service
