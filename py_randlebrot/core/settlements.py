"""
Settlement placement.

Sites are sampled on a coarse grid. At each land sample the best-fit culture
is chosen, then a full site score is computed:

- culture fit (40%)
- flat land bonus (25%)
- local resource diversity (20%)
- water access (10%)
- defensibility (5%)

Only local maxima above a threshold survive. Survivors are accepted greedily,
best first, subject to each culture's minimum spacing and an overall cap.
The first accepted site of each culture becomes its capital.

The per-cell factor grids are computed once with ``scipy.ndimage`` so a
candidate check is a table lookup.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field
from scipy import ndimage

from .biomes import BiomeType, biome_lookup, is_water_array
from .cultures import Culture, CultureType
from .name_generator import SettlementNameGenerator
from .resources import ResourceCategory, ResourceType

if TYPE_CHECKING:
    from .biome_map import BiomeMap

logger = structlog.get_logger()

MIN_SETTLEMENT_DISTANCE = 40.0
SUITABILITY_THRESHOLD = 0.3
GRID_STEP = 8
RESOURCE_RADIUS = 5
WATER_RADIUS = 15
DEFENSE_RADIUS = 8
INDUSTRY_RADIUS = 3

# Site score weights
CULTURE_WEIGHT = 0.40
FLAT_LAND_WEIGHT = 0.25
RESOURCE_WEIGHT = 0.20
WATER_WEIGHT = 0.10
DEFENSE_WEIGHT = 0.05

FLAT_LAND_SCORES = {
    BiomeType.PLAINS: 1.0,
    BiomeType.BEACH: 0.9,
    BiomeType.FOREST: 0.7,
    BiomeType.DESERT: 0.6,
    BiomeType.PLATEAU: 0.4,
}
FLAT_LAND_TABLE = biome_lookup(FLAT_LAND_SCORES, default=0.3)

GOOD_LAND = (BiomeType.PLAINS, BiomeType.FOREST, BiomeType.BEACH)
DEFENSIVE_TERRAIN = (BiomeType.MOUNTAIN, BiomeType.PLATEAU)
WATER_ACCESS = (BiomeType.OCEAN, BiomeType.HOT_OCEAN, BiomeType.BEACH)

BIOME_INDUSTRIES = {
    BiomeType.PLAINS: "farming",
    BiomeType.FOREST: "forestry",
    BiomeType.MOUNTAIN: "mining",
    BiomeType.PLATEAU: "mining",
    BiomeType.SNOW_PEAKS: "mining",
    BiomeType.BEACH: "fishing",
    BiomeType.SNOW_BEACH: "fishing",
    BiomeType.DESERT: "caravans",
    BiomeType.SAHARA: "caravans",
    BiomeType.SNOW: "hunting",
    BiomeType.TUNDRA: "hunting",
}

RESOURCE_INDUSTRIES = {
    ResourceType.TIMBER: "forestry",
    ResourceType.FISH: "fishing",
    ResourceType.FERTILE_SOIL: "farming",
    ResourceType.WILD_GAME: "hunting",
}
CATEGORY_INDUSTRIES = {
    ResourceCategory.METAL: "mining",
    ResourceCategory.MINERAL: "quarrying",
}


class Point2D(BaseModel):
    x: float = 0.0
    y: float = 0.0

    def distance(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def cell(self) -> Tuple[int, int]:
        """Integer grid cell containing this point."""
        return int(math.floor(self.x)), int(math.floor(self.y))


class CityTier(str, Enum):
    CAPITAL = "capital"
    TOWN = "town"
    VILLAGE = "village"

    @property
    def population_range(self) -> Tuple[int, int]:
        return {
            CityTier.CAPITAL: (50_000, 500_000),
            CityTier.TOWN: (5_000, 50_000),
            CityTier.VILLAGE: (100, 5_000),
        }[self]


class City(BaseModel):
    """A placed settlement."""

    id: int = Field(description="Unique settlement identifier")
    name: str = Field(description="Settlement name")
    position: Point2D = Field(description="World position in map cells")
    tier: CityTier = Field(description="Population tier")
    population: int = Field(default=0, ge=0, description="Estimated population")
    culture: Optional[CultureType] = Field(default=None, description="Founding culture")
    is_authored: bool = Field(default=False, description="Whether the city has hand-authored detail")
    industries: List[str] = Field(default_factory=list, description="Industry tags")

    @classmethod
    def new(
        cls,
        id: int,
        name: str,
        position: Point2D,
        tier: CityTier,
        suitability: Optional[float] = None,
        **kwargs,
    ) -> "City":
        """Create a city with a population estimate within its tier's range."""
        low, high = tier.population_range
        share = 0.5 if suitability is None else min(max(suitability, 0.0), 1.0)
        population = int(low + (high - low) * share)
        return cls(
            id=id,
            name=name,
            position=position,
            tier=tier,
            population=population,
            is_authored=tier is CityTier.CAPITAL,
            **kwargs,
        )


@dataclass
class SiteCandidate:
    x: int
    y: int
    culture_index: int
    suitability: float

    def distance_to(self, other: "SiteCandidate") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class SiteFactors:
    """Culture-independent site score grids, each shaped ``(height, width)``."""

    water: np.ndarray
    flat_land: np.ndarray
    resource: np.ndarray
    water_access: np.ndarray
    defense: np.ndarray


def _window_count(mask: np.ndarray, radius: int) -> np.ndarray:
    kernel = np.ones((2 * radius + 1, 2 * radius + 1), dtype=np.int64)
    return ndimage.correlate(mask.astype(np.int64), kernel, mode="constant", cval=0)


def compute_site_factors(biome_grid: np.ndarray) -> SiteFactors:
    """Score every cell for flat land, resources, water access and defense."""
    water = is_water_array(biome_grid)
    in_bounds = np.ones(biome_grid.shape, dtype=bool)

    flat_land = FLAT_LAND_TABLE[biome_grid.astype(np.intp)]

    # Distinct biomes and share of good land in the resource window
    size = 2 * RESOURCE_RADIUS + 1
    diversity = np.zeros(biome_grid.shape, dtype=np.int64)
    for biome in BiomeType:
        present = ndimage.maximum_filter(
            (biome_grid == biome).astype(np.uint8), size=size, mode="constant", cval=0
        )
        diversity += present > 0
    good = np.isin(biome_grid, [int(b) for b in GOOD_LAND])
    good_ratio = _window_count(good, RESOURCE_RADIUS) / _window_count(in_bounds, RESOURCE_RADIUS)
    resource = np.minimum(diversity / 5.0, 1.0) * 0.4 + good_ratio * 0.6

    # Distance to the nearest open water or beach
    targets = np.isin(biome_grid, [int(b) for b in WATER_ACCESS])
    if targets.any():
        distance = ndimage.distance_transform_edt(~targets)
        water_access = np.clip(1.0 - distance / WATER_RADIUS, 0.0, 1.0)
    else:
        water_access = np.zeros(biome_grid.shape, dtype=np.float64)

    rugged = np.isin(biome_grid, [int(b) for b in DEFENSIVE_TERRAIN])
    ratio = _window_count(rugged, DEFENSE_RADIUS) / _window_count(in_bounds, DEFENSE_RADIUS)
    defense = np.where(ratio > 0.5, 0.5 - (ratio - 0.5), ratio * 2.0)

    return SiteFactors(water=water, flat_land=flat_land, resource=resource, water_access=water_access, defense=defense)


def site_suitability(culture_fit: np.ndarray, factors: SiteFactors) -> np.ndarray:
    """Weighted site score for one culture's fit grid; zero over water."""
    score = (
        culture_fit * CULTURE_WEIGHT
        + factors.flat_land * FLAT_LAND_WEIGHT
        + factors.resource * RESOURCE_WEIGHT
        + factors.water_access * WATER_WEIGHT
        + factors.defense * DEFENSE_WEIGHT
    )
    return np.where(factors.water, 0.0, score)


def determine_tier(is_first_of_culture: bool, suitability: float, biome: BiomeType) -> CityTier:
    if is_first_of_culture:
        return CityTier.CAPITAL
    if suitability > 0.7:
        return CityTier.TOWN
    if suitability > 0.5 and biome is BiomeType.BEACH:
        return CityTier.TOWN
    return CityTier.VILLAGE


class SettlementPlacer:
    """Places settlements for a set of cultures on a biome map."""

    def __init__(
        self,
        seed: int,
        cultures: Sequence[Culture],
        max_settlements: int = 50,
        grid_step: int = GRID_STEP,
        threshold: float = SUITABILITY_THRESHOLD,
        min_distance: float = MIN_SETTLEMENT_DISTANCE,
    ):
        self.seed = seed
        self.cultures = list(cultures)
        self.max_settlements = max_settlements
        self.grid_step = max(int(grid_step), 1)
        self.threshold = threshold
        self.min_distance = min_distance

    def culture_fit_grids(self, biome_map: "BiomeMap") -> np.ndarray:
        """Fit of every culture at every cell, shaped ``(cultures, height, width)``."""
        shape = (biome_map.height, biome_map.width)
        biome_grid = biome_map.biome_grid()
        temperature = biome_map.temperature.reshape(shape)
        continentalness = biome_map.continentalness.reshape(shape)
        return np.stack(
            [culture.suitability_array(biome_grid, temperature, continentalness) for culture in self.cultures]
        )

    def find_candidates(self, biome_map: "BiomeMap") -> List[SiteCandidate]:
        """Local maxima above the threshold, best first."""
        if not self.cultures:
            return []
        factors = compute_site_factors(biome_map.biome_grid())
        fits = self.culture_fit_grids(biome_map)
        scores = np.stack([site_suitability(fit, factors) for fit in fits])
        radius = self.grid_step
        local_max = np.stack(
            [
                ndimage.maximum_filter(score, size=2 * radius + 1, mode="constant", cval=0.0)
                for score in scores
            ]
        )

        candidates = []
        for y in range(0, biome_map.height, self.grid_step):
            for x in range(0, biome_map.width, self.grid_step):
                if factors.water[y, x]:
                    continue
                culture_index = int(np.argmax(fits[:, y, x]))
                score = float(scores[culture_index, y, x])
                if score <= self.threshold:
                    continue
                if score < local_max[culture_index, y, x]:
                    continue
                candidates.append(SiteCandidate(x, y, culture_index, score))

        candidates.sort(key=lambda c: (-c.suitability, c.y, c.x))
        return candidates

    def place(self, biome_map: "BiomeMap") -> List[City]:
        """Accept candidates greedily and turn them into named cities."""
        if self.max_settlements <= 0:
            return []

        candidates = self.find_candidates(biome_map)
        if not candidates:
            logger.warning("No settlement candidates found", width=biome_map.width, height=biome_map.height)
            return []

        accepted: List[SiteCandidate] = []
        for candidate in candidates:
            if len(accepted) >= self.max_settlements:
                break
            culture = self.cultures[candidate.culture_index]
            spacing = max(culture.traits.spacing, self.min_distance)
            if any(candidate.distance_to(other) < spacing for other in accepted):
                continue
            accepted.append(candidate)

        names = SettlementNameGenerator(self.seed)
        capitals: Dict[CultureType, int] = {}
        cities = []
        for city_id, site in enumerate(accepted):
            culture = self.cultures[site.culture_index]
            biome = biome_map.get_biome(site.x, site.y)
            tier = determine_tier(culture.culture_type not in capitals, site.suitability, biome)
            if tier is CityTier.CAPITAL:
                capitals[culture.culture_type] = city_id
            cities.append(
                City.new(
                    id=city_id,
                    name=names.generate(culture.culture_type, biome, tier),
                    position=Point2D(x=float(site.x), y=float(site.y)),
                    tier=tier,
                    suitability=site.suitability,
                    culture=culture.culture_type,
                    industries=self.industries_for(biome_map, site.x, site.y),
                )
            )

        logger.info(
            "Settlements placed",
            candidates=len(candidates),
            placed=len(cities),
            capitals=len(capitals),
        )
        return cities

    @staticmethod
    def industries_for(biome_map: "BiomeMap", x: int, y: int) -> List[str]:
        """Industry tags from the site's biome and nearby resource deposits."""
        industries = []
        biome = biome_map.get_biome(x, y)
        if biome in BIOME_INDUSTRIES:
            industries.append(BIOME_INDUSTRIES[biome])

        for ny in range(y - INDUSTRY_RADIUS, y + INDUSTRY_RADIUS + 1):
            for nx in range(x - INDUSTRY_RADIUS, x + INDUSTRY_RADIUS + 1):
                resources = biome_map.get_resources(nx, ny)
                if not resources:
                    continue
                for resource_type, _ in resources:
                    tag = RESOURCE_INDUSTRIES.get(resource_type) or CATEGORY_INDUSTRIES.get(resource_type.category)
                    if tag and tag not in industries:
                        industries.append(tag)
        return industries
