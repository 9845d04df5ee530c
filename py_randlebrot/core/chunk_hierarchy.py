"""
Multi-resolution chunk caches for level-of-detail sampling.

Three tiers (macro 32², meso 64², micro 128² samples) each memoize one noise
strategy's output per square tile. Caches nest as a strict containment tree:
the hierarchy owns the macro tier, which owns the meso tier, which owns the
micro tier. Recency is tracked with a logical clock, so eviction order
depends only on the sequence of accesses.

A hierarchy belongs to a single owner; it is not safe for concurrent use.
One hierarchy serves one strategy (``WorldChunks`` keeps one per layer).
"""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple, Optional, Tuple

import numpy as np
import structlog

from ..config import settings
from .noise import (
    CONTINENTALNESS_SEED_OFFSET,
    TEMPERATURE_SEED_OFFSET,
    ContinentalnessStrategy,
    LatitudeTemperatureStrategy,
    NoiseStrategy,
)

logger = structlog.get_logger()


class DetailLevel(IntEnum):
    MACRO = 0
    MESO = 1
    MICRO = 2

    @property
    def chunk_size(self) -> int:
        return CHUNK_SIZES[self]


CHUNK_SIZES = {DetailLevel.MACRO: 32, DetailLevel.MESO: 64, DetailLevel.MICRO: 128}


class ChunkCoord(NamedTuple):
    x: int
    y: int


def world_to_chunk(x: float, y: float, chunk_size: int) -> Tuple[ChunkCoord, int, int]:
    """
    Split a world position into chunk coordinate and local offset.

    The local offset is always in ``[0, chunk_size)``, also for negative positions.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    cell_x = math.floor(x)
    cell_y = math.floor(y)
    return ChunkCoord(cell_x // chunk_size, cell_y // chunk_size), cell_x % chunk_size, cell_y % chunk_size


@dataclass
class Chunk:
    coord: ChunkCoord
    size: int
    data: np.ndarray
    last_touched: int = 0

    def get(self, local_x: int, local_y: int) -> float:
        return float(self.data[local_y, local_x])


@dataclass(frozen=True)
class CacheConfig:
    macro_capacity: int = 64
    meso_capacity: int = 256
    micro_capacity: int = 1024

    @classmethod
    def from_settings(cls) -> "CacheConfig":
        return cls(
            macro_capacity=settings.macro_cache_capacity,
            meso_capacity=settings.meso_cache_capacity,
            micro_capacity=settings.micro_cache_capacity,
        )


@dataclass(frozen=True)
class CacheStats:
    macro: int
    meso: int
    micro: int

    @property
    def total(self) -> int:
        return self.macro + self.meso + self.micro


class ChunkCache:
    """LRU cache of chunks for one detail level."""

    def __init__(self, level: DetailLevel, capacity: int, child: Optional["ChunkCache"] = None):
        if capacity <= 0:
            raise ValueError("cache capacity must be positive")
        self.level = level
        self.chunk_size = level.chunk_size
        self.capacity = capacity
        self.child = child
        self._chunks: "OrderedDict[ChunkCoord, Chunk]" = OrderedDict()
        self._clock = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, coord) -> bool:
        return ChunkCoord(*coord) in self._chunks

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def get_chunk(self, coord: ChunkCoord, strategy: NoiseStrategy) -> Chunk:
        """Return the chunk at ``coord``, synthesizing it on a miss."""
        coord = ChunkCoord(*coord)
        chunk = self._chunks.get(coord)
        if chunk is not None:
            self.hits += 1
            chunk.last_touched = self._tick()
            self._chunks.move_to_end(coord)
            return chunk

        self.misses += 1
        if len(self._chunks) >= self.capacity:
            evicted, _ = self._chunks.popitem(last=False)
            self.evictions += 1
            logger.debug("Chunk evicted", level=self.level.name, coord=tuple(evicted))

        chunk = self._synthesize(coord, strategy)
        chunk.last_touched = self._tick()
        self._chunks[coord] = chunk
        return chunk

    def _synthesize(self, coord: ChunkCoord, strategy: NoiseStrategy) -> Chunk:
        size = self.chunk_size
        xs = coord.x * size + np.arange(size, dtype=np.float64)
        ys = coord.y * size + np.arange(size, dtype=np.float64)
        data = strategy.generate_grid(xs, ys, int(self.level))
        return Chunk(coord=coord, size=size, data=data)

    def sample(self, x: float, y: float, strategy: NoiseStrategy) -> float:
        coord, local_x, local_y = world_to_chunk(x, y, self.chunk_size)
        return self.get_chunk(coord, strategy).get(local_x, local_y)

    def peek(self, coord) -> Optional[Chunk]:
        """Cached chunk without touching recency."""
        return self._chunks.get(ChunkCoord(*coord))

    def coords(self):
        """Cached coordinates, least recently touched first."""
        return list(self._chunks)

    def clear(self) -> None:
        self._chunks.clear()
        if self.child is not None:
            self.child.clear()


class ChunkHierarchy:
    """Macro cache owning a meso cache owning a micro cache."""

    def __init__(self, config: Optional[CacheConfig] = None):
        self.config = config or CacheConfig.from_settings()
        micro = ChunkCache(DetailLevel.MICRO, self.config.micro_capacity)
        meso = ChunkCache(DetailLevel.MESO, self.config.meso_capacity, child=micro)
        self.macro = ChunkCache(DetailLevel.MACRO, self.config.macro_capacity, child=meso)

    @property
    def meso(self) -> ChunkCache:
        return self.macro.child

    @property
    def micro(self) -> ChunkCache:
        return self.macro.child.child

    def tier(self, detail_level: int) -> ChunkCache:
        level = DetailLevel(min(max(int(detail_level), 0), int(DetailLevel.MICRO)))
        if level is DetailLevel.MACRO:
            return self.macro
        if level is DetailLevel.MESO:
            return self.meso
        return self.micro

    def sample(self, x: float, y: float, detail_level: int, strategy: NoiseStrategy) -> float:
        """Sample ``strategy`` at ``(x, y)`` through the tier for ``detail_level``."""
        return self.tier(detail_level).sample(x, y, strategy)

    def get_macro(self, coord, strategy: NoiseStrategy) -> Chunk:
        return self.macro.get_chunk(ChunkCoord(*coord), strategy)

    def get_meso(self, coord, strategy: NoiseStrategy) -> Chunk:
        return self.meso.get_chunk(ChunkCoord(*coord), strategy)

    def get_micro(self, coord, strategy: NoiseStrategy) -> Chunk:
        return self.micro.get_chunk(ChunkCoord(*coord), strategy)

    def clear(self) -> None:
        self.macro.clear()

    def stats(self) -> CacheStats:
        return CacheStats(macro=len(self.macro), meso=len(self.meso), micro=len(self.micro))


class WorldChunks:
    """LOD samplers for the continentalness and temperature layers of a world."""

    def __init__(self, seed: int, world_height: float = 512.0, config: Optional[CacheConfig] = None):
        self.seed = seed
        self.continentalness_strategy = ContinentalnessStrategy(seed + CONTINENTALNESS_SEED_OFFSET)
        self.temperature_strategy = LatitudeTemperatureStrategy(
            seed + TEMPERATURE_SEED_OFFSET, map_height=world_height
        )
        self.continentalness = ChunkHierarchy(config)
        self.temperature = ChunkHierarchy(config)

    def sample_continentalness(self, x: float, y: float, detail_level: int = 0) -> float:
        return self.continentalness.sample(x, y, detail_level, self.continentalness_strategy)

    def sample_temperature(self, x: float, y: float, detail_level: int = 0) -> float:
        return self.temperature.sample(x, y, detail_level, self.temperature_strategy)

    def clear(self) -> None:
        self.continentalness.clear()
        self.temperature.clear()

    def stats(self) -> Tuple[CacheStats, CacheStats]:
        return self.continentalness.stats(), self.temperature.stats()
