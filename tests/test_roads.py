"""Tests for road pathfinding and trade routes."""

import math

import numpy as np
import pytest

from py_randlebrot.core.biomes import BiomeType
from py_randlebrot.core.cultures import CultureType
from py_randlebrot.core.factions import create_factions
from py_randlebrot.core.roads import (
    Road,
    RoadBuilder,
    RoadType,
    TradeGood,
    derive_trade_routes,
    find_path,
    simplify_path,
    spanning_tree_edges,
)
from py_randlebrot.core.settlements import City, CityTier, Point2D

INF = math.inf


def make_city(city_id, x, y, tier=CityTier.VILLAGE, culture=CultureType.TWILIGHT_DWELLER):
    return City.new(city_id, f"City {city_id}", Point2D(x=x, y=y), tier, culture=culture)


def open_grid(width, height):
    return [[1.0] * width for _ in range(height)]


class TestRoadType:
    def test_for_tiers(self):
        assert RoadType.for_tiers(CityTier.CAPITAL, CityTier.CAPITAL) is RoadType.IMPERIAL
        assert RoadType.for_tiers(CityTier.CAPITAL, CityTier.TOWN) is RoadType.PROVINCIAL
        assert RoadType.for_tiers(CityTier.TOWN, CityTier.TOWN) is RoadType.PROVINCIAL
        assert RoadType.for_tiers(CityTier.CAPITAL, CityTier.VILLAGE) is RoadType.TRAIL
        assert RoadType.for_tiers(CityTier.VILLAGE, CityTier.VILLAGE) is RoadType.TRAIL

    def test_widths(self):
        assert RoadType.IMPERIAL.width > RoadType.PROVINCIAL.width > RoadType.TRAIL.width


class TestRoad:
    def test_length(self):
        road = Road(
            id=0,
            waypoints=[Point2D(x=0, y=0), Point2D(x=3, y=4), Point2D(x=3, y=10)],
            connects=(1, 2),
        )
        assert road.length() == pytest.approx(11.0)
        assert road.connects_settlement(2)
        assert not road.connects_settlement(3)

    def test_goods(self):
        assert TradeGood.from_biome(BiomeType.PLAINS) == [TradeGood.FOOD, TradeGood.TEXTILES]
        assert TradeGood.FOOD.value == "Food"


class TestFindPath:
    """Test A* over cost grids."""

    def test_diagonal(self):
        path = find_path(open_grid(5, 5), (0, 0), (4, 4))
        assert path == [(0, 0), (1, 1), (2, 2), (3, 3), (4, 4)]

    def test_start_equals_goal(self):
        assert find_path(open_grid(3, 3), (1, 1), (1, 1)) == [(1, 1)]

    def test_routes_around_water(self):
        cost = open_grid(5, 5)
        for y in range(4):
            cost[y][2] = INF
        path = find_path(cost, (0, 0), (4, 0))
        assert path[0] == (0, 0)
        assert path[-1] == (4, 0)
        assert (2, 4) in path
        assert all(math.isfinite(cost[y][x]) for x, y in path)

    def test_steps_are_adjacent(self):
        cost = open_grid(20, 20)
        for y in range(15):
            cost[y][10] = 5.0
        path = find_path(cost, (0, 0), (19, 3))
        for (x0, y0), (x1, y1) in zip(path, path[1:]):
            assert max(abs(x1 - x0), abs(y1 - y0)) == 1

    def test_prefers_cheap_cells(self):
        cost = open_grid(7, 3)
        for x in range(1, 6):
            cost[1][x] = 10.0
        path = find_path(cost, (0, 1), (6, 1))
        assert all(cost[y][x] == 1.0 for x, y in path)

    def test_blocked(self):
        cost = open_grid(5, 5)
        for y in range(5):
            cost[y][2] = INF
        assert find_path(cost, (0, 0), (4, 0)) is None

    def test_impassable_goal(self):
        cost = open_grid(3, 3)
        cost[2][2] = INF
        assert find_path(cost, (0, 0), (2, 2)) is None

    def test_out_of_bounds(self):
        assert find_path(open_grid(3, 3), (0, 0), (5, 5)) is None
        assert find_path(open_grid(3, 3), (-1, 0), (2, 2)) is None

    def test_node_limit(self):
        assert find_path(open_grid(50, 50), (0, 0), (49, 49), node_limit=10) is None


class TestSimplifyPath:
    def test_keeps_turns(self):
        path = [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2), (3, 3)]
        assert simplify_path(path) == [(0, 0), (2, 0), (2, 2), (3, 3)]

    def test_short_paths_unchanged(self):
        assert simplify_path([(0, 0)]) == [(0, 0)]
        assert simplify_path([(0, 0), (5, 5)]) == [(0, 0), (5, 5)]

    def test_straight_line(self):
        assert simplify_path([(0, 0), (1, 1), (2, 2), (3, 3)]) == [(0, 0), (3, 3)]


class TestSpanningTree:
    def test_nearest_first(self):
        cities = [make_city(0, 0, 0), make_city(1, 100, 0), make_city(2, 50, 0)]
        assert spanning_tree_edges(cities) == [(0, 2), (2, 1)]

    def test_connects_everything(self):
        rng = np.random.default_rng(3)
        cities = [make_city(i, *rng.uniform(0, 500, 2)) for i in range(12)]
        edges = spanning_tree_edges(cities)
        assert len(edges) == 11
        reached = {0}
        for i, j in edges:
            assert i in reached
            reached.add(j)
        assert reached == set(range(12))

    def test_single_city(self):
        assert spanning_tree_edges([make_city(0, 0, 0)]) == []


class TestRoadBuilder:
    """Test road building over a biome map."""

    def test_land_route(self, layered_map):
        biome_map = layered_map(np.full((32, 32), int(BiomeType.PLAINS), dtype=np.uint8))
        a = make_city(0, 2, 2, CityTier.CAPITAL)
        b = make_city(1, 20, 10, CityTier.CAPITAL, CultureType.STONE_BORN)
        builder = RoadBuilder(biome_map)
        roads = builder.build([a, b])

        assert len(roads) == 1
        road = roads[0]
        assert road.road_type is RoadType.IMPERIAL
        assert road.connects == (0, 1)
        assert road.waypoints[0] == a.position
        assert road.waypoints[-1] == b.position
        assert builder.fallbacks == 0

    def test_water_falls_back_to_line(self, layered_map):
        grid = np.full((16, 32), int(BiomeType.PLAINS), dtype=np.uint8)
        grid[:, 16] = BiomeType.OCEAN
        builder = RoadBuilder(layered_map(grid))
        a = make_city(0, 4, 8)
        b = make_city(1, 28, 8)
        waypoints = builder.route(a, b)
        assert waypoints == [a.position, b.position]
        assert builder.fallbacks == 1

    def test_roads_avoid_water(self, layered_map):
        grid = np.full((16, 32), int(BiomeType.PLAINS), dtype=np.uint8)
        grid[:12, 16] = BiomeType.OCEAN
        biome_map = layered_map(grid)
        a = make_city(0, 4, 2)
        b = make_city(1, 28, 2)
        waypoints = RoadBuilder(biome_map).route(a, b)
        assert any(point.y >= 12 for point in waypoints)


class TestTradeRoutes:
    def test_capitals_on_shared_road(self, layered_map):
        biome_map = layered_map(np.full((16, 64), int(BiomeType.PLAINS), dtype=np.uint8))
        cities = [
            make_city(0, 2, 8, CityTier.CAPITAL, CultureType.TWILIGHT_DWELLER),
            make_city(1, 60, 8, CityTier.CAPITAL, CultureType.STONE_BORN),
            make_city(2, 30, 8, CityTier.VILLAGE, CultureType.STONE_BORN),
        ]
        factions = create_factions(42, cities)
        direct = Road(id=0, waypoints=[cities[0].position, cities[1].position], connects=(0, 1))
        routes = derive_trade_routes(factions, [direct], cities, biome_map)

        assert len(routes) == 1
        route = routes[0]
        assert route.road_ids == [0]
        assert route.faction_ids == [1, 2]
        assert route.settlement_ids == [0, 1]
        assert route.goods == [TradeGood.FOOD, TradeGood.TEXTILES]
        assert route.importance == pytest.approx(0.7)

    def test_no_shared_road(self, layered_map):
        biome_map = layered_map(np.full((16, 64), int(BiomeType.PLAINS), dtype=np.uint8))
        cities = [
            make_city(0, 2, 8, CityTier.CAPITAL, CultureType.TWILIGHT_DWELLER),
            make_city(1, 60, 8, CityTier.CAPITAL, CultureType.STONE_BORN),
            make_city(2, 30, 8),
        ]
        factions = create_factions(42, cities)
        roads = RoadBuilder(biome_map).build(cities)
        assert all(len(set(r.connects) & {0, 1}) < 2 for r in roads)
        assert derive_trade_routes(factions, roads, cities, biome_map) == []
