"""
Default assumptions for hotel underwriting.

Ramp curves, seasonality presets and the baseline operating-expense chart
used when a deal leaves them unspecified.
"""

import calendar

# Revenue ramp: share of stabilised topline achieved in operating years 1-4
REVENUE_RAMP_PRESETS = {
    "conservative": [0.70, 0.80, 0.90, 1.00],
    "standard": [0.80, 0.90, 1.00, 1.00],
    "ambitious": [0.85, 1.00, 1.00, 1.00],
}

# Cost ramp: premium over stabilised cost burden in operating years 1-4
COST_RAMP_PRESETS = {
    "conservative": [1.15, 1.10, 1.00, 1.00],
    "standard": [1.10, 1.05, 1.00, 1.00],
    "ambitious": [1.08, 1.02, 1.00, 1.00],
}

RAMP_YEARS = 4

DEFAULT_TOPLINE_GROWTH_PCT = 3.0
DEFAULT_INFLATION_PCT = 2.0
DEFAULT_DEPRECIATION_PCT_OF_CAPEX = 3.0

DEFAULT_ADR = 140.0
DAYS_PER_YEAR = 365

# Monthly occupancy % by market profile
SEASONALITY_PRESETS = {
    "beach": [50, 55, 60, 70, 80, 88, 92, 90, 78, 65, 55, 50],
    "winterResort": [70, 75, 85, 75, 60, 45, 35, 35, 45, 60, 75, 85],
    "majorCity": [62, 64, 72, 78, 82, 80, 78, 76, 82, 84, 76, 70],
    "businessCity": [68, 70, 78, 82, 80, 70, 65, 66, 80, 84, 78, 72],
}

DEFAULT_SEASONALITY = "majorCity"

# Exit defaults
DEFAULT_EXIT_YEAR = 5
DEFAULT_EXIT_CAP_RATE = 6.5
DEFAULT_SELLING_COSTS_PCT = 3.0
DEFAULT_LTV_AT_REFINANCE = 70.0
DEFAULT_REFINANCE_COSTS_PCT = 2.0
DEFAULT_REFINANCE_VALUATION_CAP_RATE = 6.5

# Financing defaults
DEFAULT_LTC_PCT = 40.0
DEFAULT_INTEREST_RATE_PCT = 5.5
DEFAULT_LOAN_TERM_YEARS = 20
DEFAULT_AMORT_YEARS = 25
DEFAULT_TAX_RATE_PCT = 25.0


def seasonal_average_occupancy(preset: str = DEFAULT_SEASONALITY) -> float:
    """
    Day-weighted average occupancy of a seasonality preset, as a fraction.

    Uses a non-leap calendar so the result is stable year to year.
    """
    monthly = SEASONALITY_PRESETS.get(preset, SEASONALITY_PRESETS[DEFAULT_SEASONALITY])
    days = [calendar.monthrange(2025, month)[1] for month in range(1, 13)]
    weighted = sum(occ * d for occ, d in zip(monthly, days))
    return weighted / sum(days) / 100


# id, label, value, driver, section
DEFAULT_OPEX_ITEMS = [
    # Direct costs
    ("rooms-commission", "Rooms Commission", 15.0, "PCT_ROOMS_REVENUE", "DIRECT"),
    ("guest-supplies-cleaning", "Guest Supplies, Cleaning", 8.0, "PER_ROOM_NIGHT_SOLD", "DIRECT"),
    ("cost-of-goods-sold", "Cost of Goods Sold", 30.0, "PCT_FNB_REVENUE", "DIRECT"),
    ("me-costs", "M&E Costs (Meeting & Events)", 2.0, "PCT_OTHER_REVENUE", "DIRECT"),
    ("wellness-other-costs", "Wellness Other Costs", 1500.0, "FIXED_PER_MONTH", "DIRECT"),
    ("other-direct-costs", "Other Direct Costs", 2000.0, "FIXED_PER_MONTH", "DIRECT"),
    # Indirect costs
    ("other-ag", "Other A&G", 2.0, "PCT_TOTAL_REVENUE", "INDIRECT"),
    ("tech-subscriptions", "Tech Subscriptions", 800.0, "FIXED_PER_MONTH", "INDIRECT"),
    ("other-sm", "Other S&M", 3.0, "PCT_TOTAL_REVENUE", "INDIRECT"),
    ("maintenance-other", "Maintenance Other", 2.0, "PCT_TOTAL_REVENUE", "INDIRECT"),
    ("utilities", "Utilities", 3.0, "PCT_TOTAL_REVENUE", "INDIRECT"),
    # Other (fixed) costs
    ("management-fees", "Management Fees", 3.0, "PCT_TOTAL_REVENUE", "OTHER"),
    ("property-taxes", "Property Taxes", 1.0, "PCT_TOTAL_REVENUE", "OTHER"),
    ("insurance", "Insurance", 1.0, "PCT_TOTAL_REVENUE", "OTHER"),
    ("reserve-for-replacement", "Reserve for Replacement", 0.0, "PCT_TOTAL_REVENUE", "OTHER"),
    ("rent", "Rent", 0.0, "FIXED_PER_MONTH", "OTHER"),
]
