"""End-to-end tests for the civilization pipeline."""

import numpy as np
import pytest

from py_randlebrot.core.biome_map import BiomeMap
from py_randlebrot.core.biomes import BiomeType
from py_randlebrot.core.civilization import CivilizationConfig, CivilizationGenerator, CivilizationResult
from py_randlebrot.core.settlements import CityTier
from py_randlebrot.core.world_definition import WorldDefinition


@pytest.fixture
def world():
    return WorldDefinition(name="Test World", seed=42, width=256, height=128)


class TestCivilizationGenerator:
    """Test the full pipeline on a generated world."""

    def test_generates_civilization(self, world_map, world):
        result = CivilizationGenerator(42).generate(world_map, world)

        assert result.settlements_placed == len(world.cities) > 0
        assert 0 < result.factions_created <= 5
        assert len(world.cultures) == 5
        assert result.roads_built == len(world.cities) - 1
        assert world.territory is not None
        assert world.territory.total_claimed_area() > 0

    def test_every_city_has_one_faction(self, world_map, world):
        CivilizationGenerator(42).generate(world_map, world)
        members = sorted(sid for faction in world.factions for sid in faction.settlement_ids)
        assert members == sorted(city.id for city in world.cities)
        for faction in world.factions:
            capital = world.get_city(faction.capital_id)
            assert capital.tier is CityTier.CAPITAL
            assert capital.culture == faction.culture

    def test_roads_reference_cities(self, world_map, world):
        CivilizationGenerator(42).generate(world_map, world)
        ids = {city.id for city in world.cities}
        for road in world.roads:
            assert set(road.connects) <= ids
            assert len(road.waypoints) >= 2
        for route in world.trade_routes:
            assert set(route.road_ids) <= {road.id for road in world.roads}
            assert len(route.faction_ids) == 2

    def test_deterministic(self, world_map):
        """Same seed and map give identical settlements, factions, roads and territory."""
        first = WorldDefinition(seed=42)
        second = WorldDefinition(seed=42)
        CivilizationGenerator(42).generate(world_map, first)
        CivilizationGenerator(42).generate(world_map, second)

        assert [c.model_dump() for c in first.cities] == [c.model_dump() for c in second.cities]
        assert [f.disposition for f in first.factions] == [f.disposition for f in second.factions]
        assert [f.relations for f in first.factions] == [f.relations for f in second.factions]
        assert [r.waypoints for r in first.roads] == [r.waypoints for r in second.roads]
        assert first.model_dump() == second.model_dump()
        np.testing.assert_array_equal(first.territory.ownership, second.territory.ownership)
        np.testing.assert_array_equal(first.territory.influence, second.territory.influence)

    def test_deterministic_from_regenerated_terrain(self):
        """Two terrain generations from one seed lead to the same civilization."""
        worlds = []
        for _ in range(2):
            biome_map = BiomeMap.generate(42, 256, 128, workers=4)
            world = WorldDefinition(seed=42, width=256, height=128)
            CivilizationGenerator(42).generate(biome_map, world)
            worlds.append(world)

        first, second = worlds
        assert first.model_dump() == second.model_dump()
        np.testing.assert_array_equal(first.territory.ownership, second.territory.ownership)
        np.testing.assert_array_equal(first.territory.influence, second.territory.influence)

    def test_regeneration_replaces_previous(self, world_map, world):
        generator = CivilizationGenerator(42)
        generator.generate(world_map, world)
        count = len(world.cities)
        generator.generate(world_map, world)
        assert len(world.cities) == count

    def test_stages_can_be_disabled(self, world_map, world):
        config = CivilizationConfig(generate_roads=False, generate_territories=False)
        result = CivilizationGenerator(42, config).generate(world_map, world)
        assert result.roads_built == 0
        assert result.trade_routes_created == 0
        assert world.roads == []
        assert world.territory is None

    def test_settlement_cap(self, world_map, world):
        config = CivilizationConfig(max_settlements=3)
        result = CivilizationGenerator(42, config).generate(world_map, world)
        assert result.settlements_placed <= 3

    def test_zero_settlements(self, world_map, world):
        result = CivilizationGenerator(42, CivilizationConfig(max_settlements=0)).generate(world_map, world)
        assert result == CivilizationResult()
        assert world.factions == []
        assert world.territory.total_claimed_area() == 0

    def test_all_water_world(self, layered_map):
        ocean = layered_map(np.full((32, 32), int(BiomeType.OCEAN), dtype=np.uint8))
        world = WorldDefinition(width=32, height=32)
        result = CivilizationGenerator(1).generate(ocean, world)
        assert result.settlements_placed == 0
        assert result.factions_created == 0
        assert world.cultures


class TestCivilizationConfig:
    def test_defaults(self):
        config = CivilizationConfig()
        assert config.max_settlements == 50
        assert config.generate_roads and config.generate_trade_routes and config.generate_territories

    def test_validation(self):
        with pytest.raises(ValueError):
            CivilizationConfig(max_settlements=-1)
