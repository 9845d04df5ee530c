"""
Civilization generation.

A strict pipeline over a finished biome map. Each stage reads only what the
earlier stages produced:

1. cultures (the fixed archetype set)
2. settlement placement
3. factions
4. roads
5. trade routes
6. territory

The generator is total: an empty candidate set yields empty downstream
collections and unreachable roads fall back to straight lines.
"""

import time
from typing import TYPE_CHECKING, Optional

import structlog
from pydantic import BaseModel, Field

from .cultures import Culture
from .factions import create_factions
from .roads import DEFAULT_NODE_LIMIT, RoadBuilder, derive_trade_routes
from .settlements import SettlementPlacer
from .territory import DEFAULT_THRESHOLD, calculate_territories

if TYPE_CHECKING:
    from .biome_map import BiomeMap
    from .world_definition import WorldDefinition

logger = structlog.get_logger()


class CivilizationConfig(BaseModel):
    """Civilization generation options."""

    max_settlements: int = Field(default=50, ge=0, description="Upper bound on placed settlements")
    generate_roads: bool = Field(default=True, description="Build the road network")
    generate_trade_routes: bool = Field(default=True, description="Derive trade routes from roads")
    generate_territories: bool = Field(default=True, description="Compute faction territory")
    territory_threshold: float = Field(
        default=DEFAULT_THRESHOLD, ge=0.0, le=1.0, description="Minimum influence to claim a cell"
    )
    pathfinding_node_limit: int = Field(
        default=DEFAULT_NODE_LIMIT, gt=0, description="A* expansions before falling back to a straight road"
    )


class CivilizationResult(BaseModel):
    settlements_placed: int = 0
    factions_created: int = 0
    roads_built: int = 0
    trade_routes_created: int = 0


class CivilizationGenerator:
    """Generates cultures, settlements, factions, roads and territory for a world."""

    def __init__(self, seed: int, config: Optional[CivilizationConfig] = None) -> None:
        self.seed = seed
        self.config = config or CivilizationConfig()

    def generate(self, biome_map: "BiomeMap", world: "WorldDefinition") -> CivilizationResult:
        """
        Run the full pipeline, writing every artifact into ``world``.

        Args:
            biome_map: Finished terrain for the world
            world: World definition to populate; previous civilization data is replaced

        Returns:
            Counts of what was generated
        """
        logger.info("Starting civilization generation", seed=self.seed, max_settlements=self.config.max_settlements)
        started = time.perf_counter()
        world.clear_civilization()

        # Step 1: Cultures
        cultures = Culture.all_defaults()
        world.cultures = cultures

        # Step 2: Settlements
        placer = SettlementPlacer(self.seed, cultures, max_settlements=self.config.max_settlements)
        world.cities = placer.place(biome_map)

        # Step 3: Factions
        world.factions = create_factions(self.seed, world.cities)

        # Step 4: Roads
        if self.config.generate_roads:
            builder = RoadBuilder(biome_map, node_limit=self.config.pathfinding_node_limit)
            world.roads = builder.build(world.cities)

        # Step 5: Trade routes
        if self.config.generate_trade_routes and world.roads:
            world.trade_routes = derive_trade_routes(world.factions, world.roads, world.cities, biome_map)

        # Step 6: Territory
        if self.config.generate_territories:
            world.territory = calculate_territories(
                biome_map,
                world.cities,
                world.factions,
                threshold=self.config.territory_threshold,
            )

        result = CivilizationResult(
            settlements_placed=len(world.cities),
            factions_created=len(world.factions),
            roads_built=len(world.roads),
            trade_routes_created=len(world.trade_routes),
        )
        logger.info(
            "Civilization generated",
            **result.model_dump(),
            seconds=round(time.perf_counter() - started, 3),
        )
        return result
