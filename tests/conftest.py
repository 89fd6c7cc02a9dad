"""
Pytest configuration and shared fixtures.
"""

import copy
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.calculations.deal import Deal


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: marks integration tests")


# 100 keys at 100/night and 70% occupancy, no ancillary revenue and no
# operating costs: every year books 2,555,000 of rooms revenue and EBITDA.
FLAT_DEAL = {
    "id": "flat-deal",
    "name": "Flat Test Hotel",
    "currency": "EUR",
    "roomTypes": [{"name": "Standard", "rooms": 100}],
    "budget": {"grandTotal": 10_000_000},
    "roomRevenue": {"avgAdr": 100, "avgOccupancy": 70},
    "operatingExpenses": {"items": []},
    "assumptions": {
        "rampSettings": {
            "revenueRamp": [1, 1, 1, 1],
            "costRamp": [1, 1, 1, 1],
            "toplineGrowthPct": 0,
            "inflationPct": 0,
            "depreciationPctOfCapex": 3,
        },
        "exitSettings": {
            "strategy": "SALE",
            "exitYear": 5,
            "exitCapRate": 8,
            "sellingCostsPct": 2,
        },
    },
}


def _merge(base: dict, overrides: dict) -> dict:
    out = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


@pytest.fixture
def make_deal():
    """Build a Deal from the flat payload with nested overrides."""

    def _make(**overrides) -> Deal:
        return Deal.model_validate(_merge(FLAT_DEAL, overrides))

    return _make


@pytest.fixture
def flat_deal(make_deal):
    """Deterministic SALE deal without financing."""
    return make_deal()


@pytest.fixture
def financed_deal(make_deal):
    """Flat deal with a 50% LTC, 10-year loan on 25-year amortisation."""
    return make_deal(
        assumptions={
            "financingSettings": {
                "ltcPct": 50,
                "interestRatePct": 6,
                "loanTermYears": 10,
                "amortYears": 25,
                "taxRateOnEbt": 25,
            }
        }
    )


@pytest.fixture
def refinance_deal(make_deal):
    """Flat deal refinanced in year 5 at 70% LTV on an 8% cap."""
    return make_deal(
        assumptions={
            "exitSettings": {
                "strategy": "REFINANCE",
                "refinanceYear": 5,
                "ltvAtRefinance": 70,
                "refinanceCostsPct": 2,
                "valuationCapRate": 8,
            }
        }
    )


@pytest.fixture
def full_deal():
    """Boutique hotel with ancillary revenue, payroll, default opex and debt."""
    return Deal.model_validate(
        {
            "id": "boutique",
            "name": "Boutique Hotel",
            "roomTypes": [
                {"name": "Double", "rooms": 40},
                {"name": "Suite", "rooms": 10, "adrWeight": 140},
            ],
            "budget": {"grandTotal": 12_500_000},
            "roomRevenue": {"avgAdr": 180, "avgOccupancy": 0.72},
            "fnbRevenue": {"stabilizedRevenue": 900_000},
            "otherRevenue": {
                "spa": {"treatmentsPerDay": 6, "avgPricePerTreatment": 85},
                "other": {"mode": "percentage", "percentageOfRooms": 4},
            },
            "payroll": {
                "rooms": 320_000,
                "fnb": 280_000,
                "wellness": 90_000,
                "ag": 160_000,
                "sales": 80_000,
                "maintenance": 70_000,
            },
            "assumptions": {
                "financingSettings": {
                    "ltcPct": 55,
                    "interestRatePct": 5.5,
                    "loanTermYears": 7,
                    "amortYears": 25,
                },
                "exitSettings": {
                    "strategy": "SALE",
                    "sale": {"exitYear": 7, "exitCapRate": 7, "sellingCostsPct": 3},
                    "refinance": {"refinanceYear": 4, "ltvAtRefinance": 65},
                },
            },
        }
    )
