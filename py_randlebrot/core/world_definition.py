"""
World definition: the persistent description of a generated world.

Terrain is never stored; it is regenerated from the seed and noise
parameters. Civilization data (cultures, cities, factions, roads, trade
routes) is stored. The territory map is derived and is excluded from JSON.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cultures import Culture
from .factions import Faction
from .noise import SEA_LEVEL
from .roads import Road, TradeRoute
from .settlements import City
from .territory import TerritoryMap


class NoiseParams(BaseModel):
    """Tunable fractal parameters for the world-scale layers."""

    continentalness_octaves: int = Field(default=16, ge=1, description="Continent noise octaves")
    continentalness_persistence: float = Field(default=0.59, gt=0.0, le=1.0)
    continentalness_lacunarity: float = Field(default=2.0, gt=1.0)
    temperature_octaves: int = Field(default=6, ge=1, description="Temperature noise octaves")
    temperature_persistence: float = Field(default=0.5, gt=0.0, le=1.0)


class WorldDefinition(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(default="New World", description="Display name")
    seed: int = Field(default=42, description="World seed")
    width: int = Field(default=1024, gt=0, description="Map width in cells")
    height: int = Field(default=512, gt=0, description="Map height in cells")
    sea_level: float = Field(default=SEA_LEVEL, description="Continentalness water threshold")
    terminator_x: float = Field(default=512.0, description="Day/night line for tidally locked worlds")
    twilight_width: float = Field(default=200.0, gt=0.0)
    noise_params: NoiseParams = Field(default_factory=NoiseParams)

    cultures: List[Culture] = Field(default_factory=list)
    cities: List[City] = Field(default_factory=list)
    factions: List[Faction] = Field(default_factory=list)
    roads: List[Road] = Field(default_factory=list)
    trade_routes: List[TradeRoute] = Field(default_factory=list)
    territory: Optional[TerritoryMap] = Field(default=None, exclude=True)

    def get_city(self, city_id: int) -> Optional[City]:
        return next((city for city in self.cities if city.id == city_id), None)

    def get_faction(self, faction_id: int) -> Optional[Faction]:
        return next((faction for faction in self.factions if faction.id == faction_id), None)

    def clear_civilization(self) -> None:
        """Drop everything generated on top of the terrain."""
        self.cultures = []
        self.cities = []
        self.factions = []
        self.roads = []
        self.trade_routes = []
        self.territory = None
