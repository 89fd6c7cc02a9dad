"""
Tests for room revenue drivers.
"""

import pytest

from app.calculations import defaults
from app.calculations.revenue import base_room_assumptions, get_rooms_kpis_by_year, to_fraction


class TestRoomsKpis:
    """Test ADR, occupancy and RevPAR by year."""

    def test_pre_operating_year(self, flat_deal):
        kpis = get_rooms_kpis_by_year(flat_deal)
        assert kpis.adr[0] == 0.0
        assert kpis.occupancy[0] == 0.0
        assert kpis.revpar[0] == 0.0
        assert kpis.rooms_sold[0] == 0.0
        assert kpis.rooms_available[0] == 0.0
        assert kpis.rooms_available[1] == 100 * 365

    def test_stabilised_year(self, flat_deal):
        kpis = get_rooms_kpis_by_year(flat_deal)
        assert kpis.adr[3] == pytest.approx(100.0)
        assert kpis.occupancy[3] == pytest.approx(0.70)
        assert kpis.revpar[3] == pytest.approx(70.0)
        assert kpis.rooms_sold[3] == pytest.approx(25_550)

    def test_growth_moves_adr_not_occupancy(self, make_deal):
        deal = make_deal(assumptions={"rampSettings": {"toplineGrowthPct": 3}})
        kpis = get_rooms_kpis_by_year(deal)
        assert kpis.adr[2] == pytest.approx(100 * 1.03 ** 2)
        assert kpis.occupancy[2] == pytest.approx(0.70)

    def test_ramp_scales_adr_and_occupancy(self, make_deal):
        deal = make_deal(assumptions={"rampSettings": {"revenueRamp": [0.8, 1, 1, 1]}})
        kpis = get_rooms_kpis_by_year(deal)
        assert kpis.adr[1] == pytest.approx(80.0)
        assert kpis.occupancy[1] == pytest.approx(0.56)

    def test_occupancy_clamped(self, make_deal):
        deal = make_deal(assumptions={"rampSettings": {"revenueRamp": [2, 2, 2, 2]}})
        assert get_rooms_kpis_by_year(deal).occupancy[1] == 1.0


class TestBaseAssumptions:
    """Test fallbacks for missing room revenue inputs."""

    def test_seasonality_fallback(self, make_deal):
        deal = make_deal(roomRevenue={"avgAdr": None, "avgOccupancy": None, "seasonalityPreset": "beach"})
        adr, occupancy = base_room_assumptions(deal)
        assert adr == defaults.DEFAULT_ADR
        assert occupancy == pytest.approx(defaults.seasonal_average_occupancy("beach"))
        assert 0.5 < occupancy < 0.8

    def test_to_fraction(self):
        assert to_fraction(72) == pytest.approx(0.72)
        assert to_fraction(0.72) == pytest.approx(0.72)
        assert to_fraction(None) == 0.0
        assert to_fraction(float("nan")) == 0.0
