"""Tests for settlement site scoring and placement."""

import itertools

import numpy as np
import pytest

from py_randlebrot.core.biome_map import BiomeMap
from py_randlebrot.core.biomes import BiomeType
from py_randlebrot.core.cultures import Culture, CultureType
from py_randlebrot.core.resources import ResourceMap, ResourceType
from py_randlebrot.core.settlements import (
    City,
    CityTier,
    Point2D,
    SettlementPlacer,
    compute_site_factors,
    determine_tier,
    site_suitability,
)


def plains(width, height):
    return np.full((height, width), int(BiomeType.PLAINS), dtype=np.uint8)


class TestCity:
    """Test city construction."""

    def test_population_follows_suitability(self):
        low = City.new(0, "A", Point2D(x=1, y=2), CityTier.TOWN, suitability=0.0)
        high = City.new(1, "B", Point2D(x=1, y=2), CityTier.TOWN, suitability=1.0)
        mid = City.new(2, "C", Point2D(x=1, y=2), CityTier.TOWN)
        assert low.population == 5_000
        assert high.population == 50_000
        assert mid.population == 27_500

    @pytest.mark.parametrize("tier", list(CityTier))
    def test_population_within_tier(self, tier):
        city = City.new(0, "A", Point2D(), tier, suitability=0.63)
        low, high = tier.population_range
        assert low <= city.population <= high

    def test_capitals_are_authored(self):
        assert City.new(0, "A", Point2D(), CityTier.CAPITAL).is_authored
        assert not City.new(1, "B", Point2D(), CityTier.VILLAGE).is_authored

    def test_point(self):
        a = Point2D(x=0.0, y=0.0)
        b = Point2D(x=3.0, y=4.0)
        assert a.distance(b) == 5.0
        assert Point2D(x=2.7, y=-0.5).cell() == (2, -1)


class TestDetermineTier:
    def test_first_of_culture_is_capital(self):
        assert determine_tier(True, 0.1, BiomeType.SNOW) is CityTier.CAPITAL

    def test_town_and_village(self):
        assert determine_tier(False, 0.8, BiomeType.PLAINS) is CityTier.TOWN
        assert determine_tier(False, 0.6, BiomeType.BEACH) is CityTier.TOWN
        assert determine_tier(False, 0.6, BiomeType.PLAINS) is CityTier.VILLAGE
        assert determine_tier(False, 0.4, BiomeType.BEACH) is CityTier.VILLAGE


class TestSiteFactors:
    """Test the culture-independent factor grids."""

    def test_uniform_plains(self):
        factors = compute_site_factors(plains(20, 20))
        assert not factors.water.any()
        assert np.all(factors.flat_land == 1.0)
        assert np.allclose(factors.resource, 0.2 * 0.4 + 0.6)
        assert np.all(factors.water_access == 0.0)
        assert np.all(factors.defense == 0.0)

    def test_water_access_decays_with_distance(self):
        grid = plains(40, 20)
        grid[10, 5] = BiomeType.BEACH
        factors = compute_site_factors(grid)
        assert factors.water_access[10, 5] == 1.0
        assert 0.0 < factors.water_access[10, 10] < 1.0
        assert factors.water_access[10, 30] == 0.0

    def test_defense_peaks_at_mixed_terrain(self):
        grid = plains(20, 20)
        grid[:, :10] = BiomeType.MOUNTAIN
        factors = compute_site_factors(grid)
        assert factors.defense[10, 0] == pytest.approx(0.0)
        assert factors.defense[10, 10] > 0.9
        assert factors.defense.max() <= 1.0

    def test_score_is_zero_over_water(self):
        grid = plains(10, 10)
        grid[0, :] = BiomeType.OCEAN
        factors = compute_site_factors(grid)
        score = site_suitability(np.ones(grid.shape), factors)
        assert np.all(score[0] == 0.0)
        assert np.all(score[1:] > 0.0)


class TestSettlementPlacer:
    """Test candidate search and greedy acceptance."""

    def setup_method(self):
        self.cultures = Culture.all_defaults()

    def test_uniform_plains(self, layered_map):
        biome_map = layered_map(plains(64, 64))
        cities = SettlementPlacer(42, self.cultures).place(biome_map)

        assert cities[0].position == Point2D(x=0.0, y=0.0)
        assert cities[0].tier is CityTier.CAPITAL
        assert all(city.culture is CultureType.TWILIGHT_DWELLER for city in cities)
        assert [city.tier for city in cities[1:]] == [CityTier.TOWN] * (len(cities) - 1)
        assert len(cities) > 1
        for a, b in itertools.combinations(cities, 2):
            assert a.position.distance(b.position) >= 60.0

    def test_ids_and_names(self, layered_map):
        cities = SettlementPlacer(42, self.cultures).place(layered_map(plains(128, 128)))
        assert [city.id for city in cities] == list(range(len(cities)))
        assert len({city.name for city in cities}) == len(cities)
        assert all("farming" in city.industries for city in cities)

    def test_cap(self, layered_map):
        biome_map = layered_map(plains(128, 128))
        assert len(SettlementPlacer(42, self.cultures, max_settlements=1).place(biome_map)) == 1
        assert SettlementPlacer(42, self.cultures, max_settlements=0).place(biome_map) == []

    def test_all_water(self, layered_map):
        grid = np.full((32, 32), int(BiomeType.OCEAN), dtype=np.uint8)
        assert SettlementPlacer(42, self.cultures).place(layered_map(grid)) == []

    def test_no_cultures(self, layered_map):
        assert SettlementPlacer(42, []).find_candidates(layered_map(plains(32, 32))) == []

    def test_candidates_sorted_best_first(self, world_map):
        candidates = SettlementPlacer(42, self.cultures).find_candidates(world_map)
        scores = [c.suitability for c in candidates]
        assert scores == sorted(scores, reverse=True)
        assert all(score > 0.3 for score in scores)

    def test_world_placement(self, world_map):
        cities = SettlementPlacer(42, self.cultures).place(world_map)
        capitals = {}
        for city in cities:
            x, y = city.position.cell()
            assert not world_map.get_biome(x, y).is_water
            if city.tier is CityTier.CAPITAL:
                assert city.culture not in capitals
                capitals[city.culture] = city.id
        # The first city of each culture is its capital
        for culture in {city.culture for city in cities}:
            first = next(city for city in cities if city.culture is culture)
            assert capitals[culture] == first.id
        for a, b in itertools.combinations(cities, 2):
            assert a.position.distance(b.position) >= 40.0

    def test_deterministic(self, world_map):
        first = SettlementPlacer(42, self.cultures).place(world_map)
        second = SettlementPlacer(42, self.cultures).place(world_map)
        assert [c.model_dump() for c in first] == [c.model_dump() for c in second]

    def test_industries_from_resources(self, layered_map):
        grid = plains(16, 16)
        grid[8, 9] = BiomeType.FOREST
        resources = ResourceMap()
        resources.set(8 * 16 + 7, ResourceType.IRON, 0.6)
        resources.set(0, ResourceType.SALT, 0.6)
        base = layered_map(grid)
        biome_map = BiomeMap.from_layers(
            16,
            16,
            continentalness=base.continentalness,
            temperature=base.temperature,
            tectonic=base.tectonic,
            erosion=base.erosion,
            peaks_valleys=base.peaks_valleys,
            humidity=base.humidity,
            biomes=grid,
            resources=resources,
        )
        industries = SettlementPlacer.industries_for(biome_map, 8, 8)
        assert industries == ["farming", "mining"]
