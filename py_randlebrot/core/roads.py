"""
Road networks and trade routes.

Roads connect all settlements with a greedy minimum spanning tree by
straight-line distance. Each tree edge is routed with A* over the map's trade
cost (8-connected, diagonals cost √2 more, water is impassable). An edge with
no route falls back to a straight two-point road, so road building never
fails. Paths are reduced to their direction-change waypoints.
"""

from __future__ import annotations

import heapq
import math
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .biomes import BiomeType
from .settlements import City, CityTier, Point2D

if TYPE_CHECKING:
    from .biome_map import BiomeMap
    from .factions import Faction

logger = structlog.get_logger()

SQRT2 = math.sqrt(2.0)
NEIGHBOURS = ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1))
DEFAULT_NODE_LIMIT = 200_000
TRADE_ROUTE_IMPORTANCE = 0.7

Cell = Tuple[int, int]


class RoadType(str, Enum):
    IMPERIAL = "imperial"
    PROVINCIAL = "provincial"
    TRAIL = "trail"

    @property
    def width(self) -> float:
        return {RoadType.IMPERIAL: 3.0, RoadType.PROVINCIAL: 2.0, RoadType.TRAIL: 1.0}[self]

    @property
    def color(self) -> Tuple[int, int, int]:
        return {
            RoadType.IMPERIAL: (220, 180, 80),
            RoadType.PROVINCIAL: (180, 180, 180),
            RoadType.TRAIL: (140, 110, 80),
        }[self]

    @classmethod
    def for_tiers(cls, a: CityTier, b: CityTier) -> "RoadType":
        """Capital-Capital is imperial; capital or town pairs are provincial; else trail."""
        tiers = {a, b}
        if tiers == {CityTier.CAPITAL}:
            return cls.IMPERIAL
        if CityTier.VILLAGE not in tiers:
            return cls.PROVINCIAL
        return cls.TRAIL


class Road(BaseModel):
    id: int
    waypoints: List[Point2D] = Field(default_factory=list, description="Ordered path points")
    road_type: RoadType = RoadType.TRAIL
    connects: Tuple[int, int] = Field(description="Settlement ids at either end")

    def length(self) -> float:
        return sum(a.distance(b) for a, b in zip(self.waypoints, self.waypoints[1:]))

    def connects_settlement(self, settlement_id: int) -> bool:
        return settlement_id in self.connects


class TradeGood(str, Enum):
    FOOD = "Food"
    ORE = "Ore"
    TIMBER = "Timber"
    TEXTILES = "Textiles"
    LUXURY = "Luxury Goods"
    WEAPONS = "Weapons"
    SALT = "Salt"
    FISH = "Fish"
    FURS = "Furs"

    @classmethod
    def from_biome(cls, biome: BiomeType) -> List["TradeGood"]:
        return list(_BIOME_GOODS.get(BiomeType(biome), ()))


_BIOME_GOODS: Dict[BiomeType, Tuple[TradeGood, ...]] = {
    BiomeType.PLAINS: (TradeGood.FOOD, TradeGood.TEXTILES),
    BiomeType.FOREST: (TradeGood.TIMBER, TradeGood.FURS),
    BiomeType.MOUNTAIN: (TradeGood.ORE, TradeGood.WEAPONS),
    BiomeType.SNOW_PEAKS: (TradeGood.ORE,),
    BiomeType.PLATEAU: (TradeGood.ORE, TradeGood.FOOD),
    BiomeType.BEACH: (TradeGood.FISH, TradeGood.SALT),
    BiomeType.SNOW_BEACH: (TradeGood.FISH, TradeGood.FURS),
    BiomeType.OCEAN: (TradeGood.FISH,),
    BiomeType.HOT_OCEAN: (TradeGood.FISH,),
    BiomeType.DESERT: (TradeGood.SALT, TradeGood.LUXURY),
    BiomeType.SAHARA: (TradeGood.LUXURY,),
    BiomeType.SNOW: (TradeGood.FURS,),
    BiomeType.TUNDRA: (TradeGood.FURS,),
    BiomeType.ICE: (TradeGood.FISH, TradeGood.FURS),
}


class TradeRoute(BaseModel):
    id: int
    road_ids: List[int] = Field(default_factory=list)
    faction_ids: List[int] = Field(default_factory=list)
    settlement_ids: List[int] = Field(default_factory=list)
    goods: List[TradeGood] = Field(default_factory=list)
    importance: float = Field(default=0.5, ge=0.0, le=1.0)


def spanning_tree_edges(cities: Sequence[City]) -> List[Tuple[int, int]]:
    """
    Greedy minimum spanning tree by straight-line distance.

    Starts from the first city and repeatedly connects the nearest unconnected
    city to the connected set. Returns index pairs ``(connected, new)``.
    """
    if len(cities) < 2:
        return []
    connected = [0]
    remaining = set(range(1, len(cities)))
    edges = []
    while remaining:
        best: Optional[Tuple[float, int, int]] = None
        for i in connected:
            for j in sorted(remaining):
                d = cities[i].position.distance(cities[j].position)
                if best is None or d < best[0]:
                    best = (d, i, j)
        _, i, j = best
        edges.append((i, j))
        connected.append(j)
        remaining.remove(j)
    return edges


def find_path(
    cost: List[List[float]],
    start: Cell,
    goal: Cell,
    min_cost: float = 1.0,
    node_limit: int = DEFAULT_NODE_LIMIT,
) -> Optional[List[Cell]]:
    """
    A* over a row-major cost grid (``cost[y][x]``); infinite cells are impassable.

    Moving into a cell costs that cell's value, times √2 on diagonals.
    Returns the cell path from ``start`` to ``goal`` or None.
    """
    height = len(cost)
    width = len(cost[0]) if height else 0
    gx, gy = goal
    if not (0 <= gx < width and 0 <= gy < height) or not math.isfinite(cost[gy][gx]):
        return None
    sx, sy = start
    if not (0 <= sx < width and 0 <= sy < height):
        return None

    def heuristic(x: int, y: int) -> float:
        dx = abs(x - gx)
        dy = abs(y - gy)
        return min_cost * (max(dx, dy) + (SQRT2 - 1.0) * min(dx, dy))

    counter = 0
    open_heap = [(heuristic(sx, sy), counter, start)]
    best_cost: Dict[Cell, float] = {start: 0.0}
    came_from: Dict[Cell, Cell] = {}
    closed: Set[Cell] = set()

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        if current == goal:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path
        closed.add(current)
        if len(closed) > node_limit:
            return None

        x, y = current
        current_cost = best_cost[current]
        for dx, dy in NEIGHBOURS:
            nx = x + dx
            ny = y + dy
            if not (0 <= nx < width and 0 <= ny < height):
                continue
            step = cost[ny][nx]
            if not math.isfinite(step):
                continue
            if dx and dy:
                step *= SQRT2
            candidate = current_cost + step
            neighbour = (nx, ny)
            if candidate < best_cost.get(neighbour, math.inf):
                best_cost[neighbour] = candidate
                came_from[neighbour] = current
                counter += 1
                heapq.heappush(open_heap, (candidate + heuristic(nx, ny), counter, neighbour))

    return None


def simplify_path(path: Sequence[Cell]) -> List[Cell]:
    """Keep the endpoints and every point where the direction changes."""
    if len(path) <= 2:
        return list(path)
    simplified = [path[0]]
    previous = (path[1][0] - path[0][0], path[1][1] - path[0][1])
    for i in range(1, len(path) - 1):
        direction = (path[i + 1][0] - path[i][0], path[i + 1][1] - path[i][1])
        if direction != previous:
            simplified.append(path[i])
        previous = direction
    simplified.append(path[-1])
    return simplified


class RoadBuilder:
    """Builds roads between cities over a biome map."""

    def __init__(self, biome_map: "BiomeMap", node_limit: int = DEFAULT_NODE_LIMIT):
        self.biome_map = biome_map
        self.node_limit = node_limit
        grid = biome_map.trade_cost.reshape(biome_map.height, biome_map.width)
        finite = grid[np.isfinite(grid)]
        self.min_cost = float(finite.min()) if finite.size else 1.0
        self.cost = grid.tolist()
        self.fallbacks = 0

    def route(self, a: City, b: City) -> List[Point2D]:
        start = a.position.cell()
        goal = b.position.cell()
        path = find_path(self.cost, start, goal, self.min_cost, self.node_limit)
        if path is None:
            self.fallbacks += 1
            logger.warning("No land route, using direct line", start=a.id, goal=b.id)
            return [a.position.model_copy(), b.position.model_copy()]
        return [Point2D(x=float(x), y=float(y)) for x, y in simplify_path(path)]

    def build(self, cities: Sequence[City]) -> List[Road]:
        roads = []
        for i, j in spanning_tree_edges(cities):
            a = cities[i]
            b = cities[j]
            roads.append(
                Road(
                    id=len(roads),
                    waypoints=self.route(a, b),
                    road_type=RoadType.for_tiers(a.tier, b.tier),
                    connects=(a.id, b.id),
                )
            )
            logger.debug("Road built", road=roads[-1].id, connects=roads[-1].connects)
        logger.info("Roads built", roads=len(roads), fallbacks=self.fallbacks)
        return roads


def derive_trade_routes(
    factions: Sequence["Faction"],
    roads: Sequence[Road],
    cities: Sequence[City],
    biome_map: "BiomeMap",
) -> List[TradeRoute]:
    """One route for every faction pair whose capitals share a direct road."""
    by_id = {city.id: city for city in cities}
    routes = []
    for index, a in enumerate(factions):
        for b in factions[index + 1:]:
            if a.capital_id is None or b.capital_id is None:
                continue
            road = next(
                (r for r in roads if r.connects_settlement(a.capital_id) and r.connects_settlement(b.capital_id)),
                None,
            )
            if road is None:
                continue

            goods: List[TradeGood] = []
            for capital_id in (a.capital_id, b.capital_id):
                x, y = by_id[capital_id].position.cell()
                biome = biome_map.get_biome(x, y)
                for good in TradeGood.from_biome(biome) if biome is not None else []:
                    if good not in goods:
                        goods.append(good)

            routes.append(
                TradeRoute(
                    id=len(routes),
                    road_ids=[road.id],
                    faction_ids=[a.id, b.id],
                    settlement_ids=[a.capital_id, b.capital_id],
                    goods=goods,
                    importance=TRADE_ROUTE_IMPORTANCE,
                )
            )
    logger.info("Trade routes derived", routes=len(routes))
    return routes
