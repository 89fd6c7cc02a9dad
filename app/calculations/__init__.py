"""
Hotel Projection & Returns Engine

Pure calculation modules: year series, ramp and macro selectors, revenue
drivers, P&L, debt schedule, cash flow, exit valuation and IRR.
Every function takes the deal snapshot explicitly.
"""

from app.calculations import (
    amortization,
    cashflow,
    exit,
    formatting,
    irr,
    kpis,
    pnl,
    ramp,
    revenue,
    series,
)

__all__ = [
    "amortization",
    "cashflow",
    "exit",
    "formatting",
    "irr",
    "kpis",
    "pnl",
    "ramp",
    "revenue",
    "series",
]
