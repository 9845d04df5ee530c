"""
Natural resource distribution.

Each resource type has its own noise field (seed offset per type) multiplied by
a terrain bias and passed through a high threshold, so deposits are sparse and
clustered where the terrain suits them. Abundances live in a sparse
``ResourceMap`` keyed by cell index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .biomes import BiomeType
from .noise import NoiseStrategy, as_axis, fractal_noise

# Abundances below this are not stored
MIN_ABUNDANCE = 0.01
# Biased noise must exceed this to yield a deposit
RESOURCE_THRESHOLD = 0.55


class BiasKind(Enum):
    MOUNTAIN = "mountain"
    TECTONIC = "tectonic"
    COASTAL = "coastal"
    BIOME = "biome"


def mountain_factor(continentalness):
    """Smooth ramp of elevated terrain, strictly increasing in continentalness."""
    c = np.asarray(continentalness, dtype=np.float64)
    return 1.0 / (1.0 + np.exp(-10.0 * (c - 0.3)))


@dataclass(frozen=True)
class TerrainBias:
    """Multiplier in [1 - weight, 1] favouring a terrain feature."""

    kind: BiasKind
    weight: float
    biomes: Tuple[BiomeType, ...] = field(default_factory=tuple)

    def calculate(self, continentalness, tectonic, water_distance, biome):
        """Evaluate the bias; inputs may be scalars or equally shaped arrays."""
        w = self.weight
        if self.kind is BiasKind.MOUNTAIN:
            result = 1.0 - w + w * mountain_factor(continentalness)
        elif self.kind is BiasKind.TECTONIC:
            result = 1.0 - w + w * (1.0 - np.asarray(tectonic, dtype=np.float64))
        elif self.kind is BiasKind.COASTAL:
            proximity = 1.0 - np.minimum(np.asarray(water_distance, dtype=np.float64), 1.0)
            result = 1.0 - w + w * proximity
        else:
            matches = np.isin(np.asarray(biome), [int(b) for b in self.biomes])
            result = np.where(matches, 1.0, 1.0 - w)
        return float(result) if np.ndim(result) == 0 else result


class ResourceCategory(Enum):
    METAL = "metal"
    MINERAL = "mineral"
    ORGANIC = "organic"


class ResourceType(Enum):
    """Closed set of resource types: (display name, category, seed offset, color)."""

    IRON = ("Iron", ResourceCategory.METAL, 1000, (139, 90, 43))
    GOLD = ("Gold", ResourceCategory.METAL, 2000, (255, 215, 0))
    COPPER = ("Copper", ResourceCategory.METAL, 3000, (184, 115, 51))
    SILVER = ("Silver", ResourceCategory.METAL, 4000, (192, 192, 192))
    GEMS = ("Gems", ResourceCategory.MINERAL, 5000, (155, 17, 176))
    COAL = ("Coal", ResourceCategory.MINERAL, 6000, (40, 40, 40))
    STONE = ("Stone", ResourceCategory.MINERAL, 7000, (128, 128, 128))
    SALT = ("Salt", ResourceCategory.MINERAL, 8000, (240, 240, 230))
    TIMBER = ("Timber", ResourceCategory.ORGANIC, 9000, (34, 100, 34))
    FISH = ("Fish", ResourceCategory.ORGANIC, 10000, (70, 130, 180))
    FERTILE_SOIL = ("Fertile Soil", ResourceCategory.ORGANIC, 11000, (101, 67, 33))
    WILD_GAME = ("Wild Game", ResourceCategory.ORGANIC, 12000, (160, 82, 45))

    def __init__(self, display_name, category, seed_offset, color):
        self.display_name = display_name
        self.category = category
        self.seed_offset = seed_offset
        self.color = color

    @property
    def terrain_bias(self) -> TerrainBias:
        return TERRAIN_BIASES[self]

    @classmethod
    def metals(cls) -> List["ResourceType"]:
        return [r for r in cls if r.category is ResourceCategory.METAL]

    @classmethod
    def minerals(cls) -> List["ResourceType"]:
        return [r for r in cls if r.category is ResourceCategory.MINERAL]

    @classmethod
    def organics(cls) -> List["ResourceType"]:
        return [r for r in cls if r.category is ResourceCategory.ORGANIC]


TERRAIN_BIASES: Dict[ResourceType, TerrainBias] = {
    ResourceType.IRON: TerrainBias(BiasKind.MOUNTAIN, 0.7),
    ResourceType.GOLD: TerrainBias(BiasKind.TECTONIC, 0.8),
    ResourceType.COPPER: TerrainBias(BiasKind.MOUNTAIN, 0.5),
    ResourceType.SILVER: TerrainBias(BiasKind.TECTONIC, 0.6),
    ResourceType.GEMS: TerrainBias(BiasKind.TECTONIC, 0.9),
    ResourceType.COAL: TerrainBias(BiasKind.MOUNTAIN, 0.6),
    ResourceType.STONE: TerrainBias(BiasKind.MOUNTAIN, 0.3),
    ResourceType.SALT: TerrainBias(BiasKind.COASTAL, 0.7),
    ResourceType.TIMBER: TerrainBias(BiasKind.BIOME, 0.9, (BiomeType.FOREST,)),
    ResourceType.FISH: TerrainBias(BiasKind.COASTAL, 0.95),
    ResourceType.FERTILE_SOIL: TerrainBias(BiasKind.BIOME, 0.8, (BiomeType.PLAINS,)),
    ResourceType.WILD_GAME: TerrainBias(BiasKind.BIOME, 0.7, (BiomeType.FOREST, BiomeType.PLAINS)),
}


@dataclass
class ResourceContext:
    """Terrain inputs to the bias function for one cell."""

    continentalness: float
    tectonic: float
    water_distance: float
    biome: BiomeType


def water_distance_proxy(continentalness, sea_level: float):
    """Normalized distance from water estimated from continentalness."""
    c = np.asarray(continentalness, dtype=np.float64)
    return np.where(c < sea_level, 0.0, np.minimum((c - sea_level) * 5.0, 1.0))


class ResourceNoiseStrategy(NoiseStrategy):
    """Sparse abundance in [0, 1] for one resource type."""

    def __init__(
        self,
        seed: int,
        resource_type: ResourceType,
        octaves: int = 4,
        frequency: float = 2.0,
        persistence: float = 0.5,
        scale: float = 0.015,
        threshold: float = RESOURCE_THRESHOLD,
    ):
        super().__init__(int(seed) + resource_type.seed_offset)
        self.resource_type = resource_type
        self.bias = resource_type.terrain_bias
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.scale = scale
        self.threshold = threshold

    def name(self) -> str:
        return f"Resource: {self.resource_type.display_name}"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        """Raw noise in [0, 1] without terrain bias or threshold."""
        return float(self.generate_grid(as_axis(x), as_axis(y), detail_level)[0, 0])

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        noise = fractal_noise(
            self.simplex,
            xs,
            ys,
            self.octaves + detail_level,
            self.frequency,
            self.persistence,
            self.frequency,
            self.scale,
        )
        return (noise + 1.0) * 0.5

    def generate_with_context(self, x: float, y: float, context: ResourceContext, detail_level: int = 0) -> float:
        grid = self.generate_grid_with_context(
            as_axis(x),
            as_axis(y),
            np.array([[context.continentalness]]),
            np.array([[context.tectonic]]),
            np.array([[context.water_distance]]),
            np.array([[int(context.biome)]]),
            detail_level,
        )
        return float(grid[0, 0])

    def generate_grid_with_context(
        self,
        xs,
        ys,
        continentalness: np.ndarray,
        tectonic: np.ndarray,
        water_distance: np.ndarray,
        biomes: np.ndarray,
        detail_level: int = 0,
    ) -> np.ndarray:
        """Abundance over the grid; zero wherever the biased signal misses the threshold."""
        base = self.generate_grid(xs, ys, detail_level)
        biased = base * self.bias.calculate(continentalness, tectonic, water_distance, biomes)
        abundance = np.clip((biased - self.threshold) / (1.0 - self.threshold), 0.0, 1.0)
        return np.where(biased > self.threshold, abundance, 0.0)


class ResourceMap:
    """Sparse per-cell resource abundances."""

    def __init__(self):
        self._cells: Dict[int, Dict[ResourceType, float]] = {}

    def set(self, index: int, resource_type: ResourceType, abundance: float) -> None:
        """Store an abundance; values below ``MIN_ABUNDANCE`` are ignored."""
        if abundance < MIN_ABUNDANCE:
            return
        self._cells.setdefault(int(index), {})[resource_type] = float(abundance)

    def get(self, index: int, resource_type: ResourceType) -> float:
        return self._cells.get(int(index), {}).get(resource_type, 0.0)

    def get_all(self, index: int) -> List[Tuple[ResourceType, float]]:
        return list(self._cells.get(int(index), {}).items())

    def has_resources(self, index: int) -> bool:
        return bool(self._cells.get(int(index)))

    def total_abundance(self, index: int) -> float:
        return sum(self._cells.get(int(index), {}).values())

    def cells_with_resources(self) -> List[int]:
        return sorted(self._cells)

    def locations_with_resource(self, resource_type: ResourceType) -> List[Tuple[int, float]]:
        return [
            (index, resources[resource_type])
            for index, resources in sorted(self._cells.items())
            if resource_type in resources
        ]

    def clear(self) -> None:
        self._cells.clear()

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Tuple[int, ResourceType, float]]:
        for index in sorted(self._cells):
            for resource_type, abundance in self._cells[index].items():
                yield index, resource_type, abundance


def resource_strategies(seed: int) -> List[ResourceNoiseStrategy]:
    """One strategy per resource type for a world seed."""
    return [ResourceNoiseStrategy(seed, resource_type) for resource_type in ResourceType]


def populate_resource_map(
    resource_map: ResourceMap,
    strategies: List[ResourceNoiseStrategy],
    xs: np.ndarray,
    ys: np.ndarray,
    continentalness: np.ndarray,
    tectonic: np.ndarray,
    biomes: np.ndarray,
    sea_level: float,
    detail_level: int = 0,
    width: Optional[int] = None,
) -> int:
    """
    Fill ``resource_map`` for the grid; 2-D inputs are shaped ``(len(ys), len(xs))``.

    Returns the number of stored entries.
    """
    width = width or len(xs)
    water_distance = water_distance_proxy(continentalness, sea_level)
    stored = 0
    for strategy in strategies:
        abundance = strategy.generate_grid_with_context(
            xs, ys, continentalness, tectonic, water_distance, biomes, detail_level
        )
        rows, cols = np.nonzero(abundance >= MIN_ABUNDANCE)
        for row, col in zip(rows.tolist(), cols.tolist()):
            resource_map.set(row * width + col, strategy.resource_type, float(abundance[row, col]))
            stored += 1
    return stored
