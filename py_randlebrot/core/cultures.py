"""
Culture archetypes.

A culture is an environmental-preference and behaviour profile: how much it
likes each biome, which temperatures and continentalness it finds
comfortable, and how it settles. Five archetypes ship by default; cultures
are immutable once built.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .biomes import WATER_BIOMES, BiomeType

# Weights of the culture fit score
BIOME_WEIGHT = 0.4
TEMPERATURE_WEIGHT = 0.3
CONTINENTALNESS_WEIGHT = 0.3
# Distance outside the comfortable range at which a score reaches zero
TEMPERATURE_FALLOFF = 50.0
CONTINENTALNESS_FALLOFF = 0.3


class CultureType(str, Enum):
    TWILIGHT_DWELLER = "twilight_dweller"
    FROST_KIN = "frost_kin"
    SUN_FORGED = "sun_forged"
    TIDE_WALKER = "tide_walker"
    STONE_BORN = "stone_born"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def default_faction_name(self) -> str:
        return _FACTION_NAMES[self]

    @property
    def color(self) -> Tuple[int, int, int, int]:
        return _COLORS[self]


_DISPLAY_NAMES = {
    CultureType.TWILIGHT_DWELLER: "Twilight Dweller",
    CultureType.FROST_KIN: "Frost Kin",
    CultureType.SUN_FORGED: "Sun Forged",
    CultureType.TIDE_WALKER: "Tide Walker",
    CultureType.STONE_BORN: "Stone Born",
}

_FACTION_NAMES = {
    CultureType.TWILIGHT_DWELLER: "Twilight Confederacy",
    CultureType.FROST_KIN: "Northern Holds",
    CultureType.SUN_FORGED: "Sunward Tribes",
    CultureType.TIDE_WALKER: "Coastal League",
    CultureType.STONE_BORN: "Mountain Kingdoms",
}

_COLORS = {
    CultureType.TWILIGHT_DWELLER: (100, 180, 100, 200),
    CultureType.FROST_KIN: (150, 200, 255, 200),
    CultureType.SUN_FORGED: (255, 180, 80, 200),
    CultureType.TIDE_WALKER: (80, 150, 200, 200),
    CultureType.STONE_BORN: (160, 140, 120, 200),
}


def biome_preferences(
    sea: float = -1.0,
    beach: float = 0.0,
    plains: float = 0.5,
    forest: float = 0.3,
    desert: float = -0.3,
    sahara: float = -0.5,
    mountain: float = 0.0,
    plateau: float = 0.1,
    snow: float = -0.2,
    ice: float = -1.0,
) -> Dict[str, float]:
    """
    Build a full per-biome preference table.

    Cold variants (frozen shore, tundra) follow ``snow``; warm ocean follows
    ``sea``; snow peaks take the lower of ``mountain`` and ``snow``.
    """
    table = {
        BiomeType.OCEAN: sea,
        BiomeType.HOT_OCEAN: sea,
        BiomeType.ICE: ice,
        BiomeType.BEACH: beach,
        BiomeType.SNOW_BEACH: snow,
        BiomeType.PLAINS: plains,
        BiomeType.FOREST: forest,
        BiomeType.DESERT: desert,
        BiomeType.SAHARA: sahara,
        BiomeType.MOUNTAIN: mountain,
        BiomeType.PLATEAU: plateau,
        BiomeType.SNOW: snow,
        BiomeType.TUNDRA: snow,
        BiomeType.SNOW_PEAKS: min(mountain, snow),
    }
    return {biome.name.lower(): value for biome, value in table.items()}


class SettlementTraits(BaseModel):
    """How a culture founds and spaces its settlements."""

    model_config = ConfigDict(frozen=True)

    settlement_tendency: float = Field(default=0.7, ge=0.0, le=1.0, description="Settlement density")
    spacing: float = Field(default=80.0, ge=0.0, description="Minimum distance between settlements")
    expansion_drive: float = Field(default=0.5, ge=0.0, le=1.0, description="Territorial expansion drive")
    trade_focus: float = Field(default=0.5, ge=0.0, le=1.0, description="Preference for trade links")
    defensive_preference: float = Field(default=0.5, ge=0.0, le=1.0, description="Preference for defensible sites")


class Culture(BaseModel):
    """Immutable culture definition."""

    model_config = ConfigDict(frozen=True)

    culture_type: CultureType = Field(description="Archetype tag")
    name: str = Field(description="Display name")
    biome_preferences: Dict[str, float] = Field(
        default_factory=biome_preferences, description="Preference per biome in [-1, 1]"
    )
    temperature_range: Tuple[float, float] = Field(default=(0.0, 40.0), description="Comfortable temperatures")
    continentalness_range: Tuple[float, float] = Field(
        default=(0.0, 0.3), description="Comfortable continentalness"
    )
    traits: SettlementTraits = Field(default_factory=SettlementTraits)

    def preference(self, biome: BiomeType) -> float:
        biome = BiomeType(biome)
        default = -1.0 if biome in WATER_BIOMES else 0.0
        return self.biome_preferences.get(biome.name.lower(), default)

    def preference_table(self) -> np.ndarray:
        """Preferences as an array indexed by biome value."""
        return np.array([self.preference(b) for b in BiomeType], dtype=np.float64)

    @staticmethod
    def _range_score(value, low: float, high: float, falloff: float):
        below = np.maximum(1.0 - (low - value) / falloff, 0.0)
        above = np.maximum(1.0 - (value - high) / falloff, 0.0)
        return np.where(value < low, below, np.where(value > high, above, 1.0))

    def calculate_suitability(self, biome: BiomeType, temperature: float, continentalness: float) -> float:
        """Culture fit in [0, 1] for one cell."""
        return float(self.suitability_array(np.array([int(biome)]), temperature, continentalness)[0])

    def suitability_array(self, biomes: np.ndarray, temperature, continentalness) -> np.ndarray:
        """Vectorized culture fit over arrays of biome values and climate."""
        biome_score = (self.preference_table()[np.asarray(biomes, dtype=np.intp)] + 1.0) / 2.0
        temp_score = self._range_score(
            np.asarray(temperature, dtype=np.float64), *self.temperature_range, TEMPERATURE_FALLOFF
        )
        cont_score = self._range_score(
            np.asarray(continentalness, dtype=np.float64), *self.continentalness_range, CONTINENTALNESS_FALLOFF
        )
        return BIOME_WEIGHT * biome_score + TEMPERATURE_WEIGHT * temp_score + CONTINENTALNESS_WEIGHT * cont_score

    @classmethod
    def twilight_dweller(cls) -> "Culture":
        return cls(
            culture_type=CultureType.TWILIGHT_DWELLER,
            name="Twilight Confederacy",
            biome_preferences=biome_preferences(
                sea=-1.0, beach=0.5, plains=1.0, forest=0.8, desert=-0.2,
                sahara=-0.5, mountain=0.3, plateau=0.4, snow=0.1, ice=-1.0,
            ),
            temperature_range=(10.0, 40.0),
            continentalness_range=(0.0, 0.25),
            traits=SettlementTraits(
                settlement_tendency=0.9, spacing=60.0, expansion_drive=0.6,
                trade_focus=0.8, defensive_preference=0.4,
            ),
        )

    @classmethod
    def frost_kin(cls) -> "Culture":
        return cls(
            culture_type=CultureType.FROST_KIN,
            name="Northern Holds",
            biome_preferences=biome_preferences(
                sea=-1.0, beach=0.1, plains=0.3, forest=0.6, desert=-0.8,
                sahara=-1.0, mountain=0.5, plateau=0.4, snow=1.0, ice=0.2,
            ),
            temperature_range=(-40.0, 10.0),
            continentalness_range=(0.05, 0.35),
            traits=SettlementTraits(
                settlement_tendency=0.7, spacing=100.0, expansion_drive=0.3,
                trade_focus=0.4, defensive_preference=0.7,
            ),
        )

    @classmethod
    def sun_forged(cls) -> "Culture":
        return cls(
            culture_type=CultureType.SUN_FORGED,
            name="Sunward Tribes",
            biome_preferences=biome_preferences(
                sea=-1.0, beach=0.3, plains=0.4, forest=-0.2, desert=0.8,
                sahara=1.0, mountain=0.2, plateau=0.7, snow=-1.0, ice=-1.0,
            ),
            temperature_range=(40.0, 100.0),
            continentalness_range=(0.0, 0.3),
            traits=SettlementTraits(
                settlement_tendency=0.5, spacing=90.0, expansion_drive=0.4,
                trade_focus=0.6, defensive_preference=0.3,
            ),
        )

    @classmethod
    def tide_walker(cls) -> "Culture":
        return cls(
            culture_type=CultureType.TIDE_WALKER,
            name="Coastal League",
            biome_preferences=biome_preferences(
                sea=0.3, beach=1.0, plains=0.5, forest=0.3, desert=0.1,
                sahara=-0.3, mountain=-0.2, plateau=0.0, snow=0.1, ice=-0.5,
            ),
            temperature_range=(5.0, 50.0),
            continentalness_range=(-0.02, 0.1),
            traits=SettlementTraits(
                settlement_tendency=0.8, spacing=50.0, expansion_drive=0.5,
                trade_focus=1.0, defensive_preference=0.4,
            ),
        )

    @classmethod
    def stone_born(cls) -> "Culture":
        return cls(
            culture_type=CultureType.STONE_BORN,
            name="Mountain Kingdoms",
            biome_preferences=biome_preferences(
                sea=-1.0, beach=-0.3, plains=0.1, forest=0.3, desert=0.0,
                sahara=-0.2, mountain=1.0, plateau=0.9, snow=0.5, ice=-0.5,
            ),
            temperature_range=(-20.0, 50.0),
            continentalness_range=(0.2, 0.5),
            traits=SettlementTraits(
                settlement_tendency=0.8, spacing=80.0, expansion_drive=0.4,
                trade_focus=0.5, defensive_preference=1.0,
            ),
        )

    @classmethod
    def from_type(cls, culture_type: CultureType) -> "Culture":
        return {
            CultureType.TWILIGHT_DWELLER: cls.twilight_dweller,
            CultureType.FROST_KIN: cls.frost_kin,
            CultureType.SUN_FORGED: cls.sun_forged,
            CultureType.TIDE_WALKER: cls.tide_walker,
            CultureType.STONE_BORN: cls.stone_born,
        }[CultureType(culture_type)]()

    @classmethod
    def all_defaults(cls) -> List["Culture"]:
        return [cls.from_type(culture_type) for culture_type in CultureType]
