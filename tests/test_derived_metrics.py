"""Tests for settlement suitability and trade cost."""

import math

import numpy as np
import pytest

from py_randlebrot.core.biomes import BiomeType
from py_randlebrot.core.derived_metrics import (
    biome_fertility,
    climate_comfort,
    is_passable,
    settlement_suitability,
    settlement_suitability_simple,
    terrain_difficulty,
    trade_cost,
)


class TestTradeCost:
    """Test trade cost by biome."""

    def test_water_is_infinite(self):
        for biome in (BiomeType.OCEAN, BiomeType.ICE, BiomeType.HOT_OCEAN):
            assert math.isinf(trade_cost(biome, 0.0))
            assert not is_passable(biome)

    def test_plains_forest_mountain_order(self):
        for erosion in (0.0, 0.5, 1.0):
            plains = trade_cost(BiomeType.PLAINS, erosion)
            forest = trade_cost(BiomeType.FOREST, erosion)
            mountain = trade_cost(BiomeType.MOUNTAIN, erosion)
            assert plains < forest < mountain

    def test_plains_cheapest(self):
        land = [b for b in BiomeType if not b.is_water]
        assert min(land, key=trade_cost) is BiomeType.PLAINS

    def test_erosion_reduces_cost(self):
        assert trade_cost(BiomeType.FOREST, 1.0) == pytest.approx(trade_cost(BiomeType.FOREST, 0.0) * 0.8)

    def test_array_input(self):
        costs = trade_cost(np.array([0, 5, 9]), np.array([0.0, 0.0, 0.5]))
        assert math.isinf(costs[0])
        assert costs[1] == 1.0
        assert costs[2] == pytest.approx(9.0)

    def test_terrain_difficulty(self):
        assert terrain_difficulty(BiomeType.OCEAN) == 1.0
        assert terrain_difficulty(BiomeType.PLAINS) == pytest.approx(0.1)
        assert terrain_difficulty(BiomeType.SNOW_PEAKS) == 1.0


class TestSettlementSuitability:
    """Test habitability scores."""

    def test_water_is_zero(self):
        assert settlement_suitability(BiomeType.OCEAN, 20.0, 0.5, 0.0) == 0.0
        assert settlement_suitability_simple(BiomeType.ICE, 20.0, 0.5) == 0.0

    def test_simple_rates_beach_above_full_table(self):
        """Previews score beaches at 0.6 fertility; the full score uses 0.5."""
        beach = settlement_suitability_simple(BiomeType.BEACH, 20.0, 0.5)
        assert beach == pytest.approx(0.5 * 0.6 + 0.5 * 1.0)
        assert biome_fertility(BiomeType.BEACH) == pytest.approx(0.5)
        assert settlement_suitability_simple(BiomeType.PLAINS, 20.0, 0.5) == pytest.approx(1.0)

    def test_range(self):
        rng = np.random.default_rng(3)
        biomes = rng.integers(0, len(BiomeType), 500)
        scores = settlement_suitability(
            biomes,
            rng.uniform(-50.0, 100.0, 500),
            rng.uniform(0.0, 1.0, 500),
            rng.uniform(0.0, 1.0, 500),
            rng.uniform(0.0, 1.0, 500),
            rng.uniform(0.0, 1.0, 500),
        )
        assert scores.min() >= 0.0
        assert scores.max() <= 1.0

    def test_plains_beat_snow_peaks(self):
        plains = settlement_suitability(BiomeType.PLAINS, 20.0, 0.5, 0.2)
        peaks = settlement_suitability(BiomeType.SNOW_PEAKS, 20.0, 0.5, 0.2)
        assert plains > peaks

    def test_water_proximity_helps(self):
        near = settlement_suitability(BiomeType.PLAINS, 20.0, 0.5, 0.0)
        far = settlement_suitability(BiomeType.PLAINS, 20.0, 0.5, 1.0)
        assert near > far

    def test_ideal_plains(self):
        score = settlement_suitability(BiomeType.PLAINS, 20.0, 0.5, 0.0, 1.0, 1.0)
        assert score == pytest.approx(1.0)

    def test_scalar_returns_float(self):
        assert isinstance(settlement_suitability(BiomeType.FOREST, 15.0, 0.6, 0.3), float)

    def test_fertility(self):
        assert biome_fertility(BiomeType.PLAINS) == 1.0
        assert biome_fertility(BiomeType.OCEAN) == 0.0

    def test_climate_comfort_peak(self):
        assert climate_comfort(20.0, 0.5) == pytest.approx(1.0)
        assert climate_comfort(-40.0, 0.0) < climate_comfort(20.0, 0.5)
