"""
Biome map generation.

A ``BiomeMap`` is the single data product consumed by the civilization
generator and viewers: dense per-cell arrays for every noise layer, the
classified biome, settlement suitability and trade cost, plus a sparse
resource table. Arrays are flat with ``y*width+x`` indexing.

Generation runs in two data-parallel passes over row bands:

1. independent layers (continentalness, temperature, tectonic, peaks)
2. dependent layers (erosion, humidity), which read continentalness

Each band writes a disjoint slice of preallocated arrays; collecting the
executor results is the barrier between the passes. Spline evaluation,
resources and derived metrics follow on the assembled arrays.
"""

from __future__ import annotations

import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np
import structlog
from scipy import ndimage

from ..config import settings
from .biomes import (
    BIOME_COLOR_TABLE,
    BiomeSplines,
    BiomeType,
    classify_simple_array,
    is_water_array,
)
from .derived_metrics import settlement_suitability, trade_cost
from .noise import (
    CONTINENTALNESS_SEED_OFFSET,
    EROSION_SEED_OFFSET,
    HUMIDITY_SEED_OFFSET,
    PEAKS_SEED_OFFSET,
    SEA_LEVEL,
    TECTONIC_SEED_OFFSET,
    TEMPERATURE_SEED_OFFSET,
    ContinentalnessStrategy,
    ErosionStrategy,
    HumidityStrategy,
    NoiseStrategy,
    PeaksValleysStrategy,
    temperature_strategy,
    wrap_seed,
)
from .progress import LayerId, LayerProgress
from .resources import (
    ResourceMap,
    ResourceType,
    populate_resource_map,
    resource_strategies,
    water_distance_proxy,
)
from .tectonics import TectonicStrategy
from .visualization import NoiseLayer, layer_rgba
from .world_definition import NoiseParams

if TYPE_CHECKING:
    from .world_definition import WorldDefinition

logger = structlog.get_logger()

# Radius (cells) of the rugged-terrain neighbourhood used for defensibility
DEFENSE_RADIUS = 4
RUGGED_BIOMES = (BiomeType.MOUNTAIN, BiomeType.PLATEAU, BiomeType.SNOW_PEAKS)
# Lower bound on pixels per progress batch
MIN_PROGRESS_BATCH = 256


@dataclass
class LayerStrategies:
    """The six world-layer strategies for one seed."""

    continentalness: ContinentalnessStrategy
    temperature: NoiseStrategy
    tectonic: TectonicStrategy
    erosion: ErosionStrategy
    peaks: PeaksValleysStrategy
    humidity: HumidityStrategy

    @classmethod
    def for_seed(
        cls,
        seed: int,
        world_height: float,
        noise_params: Optional[NoiseParams] = None,
        terminator_x: Optional[float] = None,
        twilight_width: float = 200.0,
    ) -> "LayerStrategies":
        params = noise_params or NoiseParams()
        seed = wrap_seed(seed)
        return cls(
            continentalness=ContinentalnessStrategy(
                seed + CONTINENTALNESS_SEED_OFFSET,
                octaves=params.continentalness_octaves,
                persistence=params.continentalness_persistence,
                lacunarity=params.continentalness_lacunarity,
            ),
            temperature=temperature_strategy(
                seed + TEMPERATURE_SEED_OFFSET,
                world_height,
                octaves=params.temperature_octaves,
                persistence=params.temperature_persistence,
                terminator_x=terminator_x,
                twilight_width=twilight_width,
            ),
            tectonic=TectonicStrategy(seed + TECTONIC_SEED_OFFSET),
            erosion=ErosionStrategy(seed + EROSION_SEED_OFFSET),
            peaks=PeaksValleysStrategy(seed + PEAKS_SEED_OFFSET),
            humidity=HumidityStrategy(seed + HUMIDITY_SEED_OFFSET),
        )


def _row_bands(height: int, width: int, min_pixels: int) -> List[Tuple[int, int]]:
    rows = max(1, math.ceil(min_pixels / max(width, 1)))
    return [(start, min(start + rows, height)) for start in range(0, height, rows)]


def _neighbourhood_fraction(mask: np.ndarray, radius: int) -> np.ndarray:
    """Share of ``mask`` cells within a square window, clipped at the map edge."""
    kernel = np.ones((2 * radius + 1, 2 * radius + 1), dtype=np.int64)
    hits = ndimage.correlate(mask.astype(np.int64), kernel, mode="constant", cval=0)
    counts = ndimage.correlate(np.ones_like(mask, dtype=np.int64), kernel, mode="constant", cval=0)
    return hits / counts


class BiomeMap:
    """Dense per-cell world layers for one (seed, window, resolution)."""

    def __init__(
        self,
        width: int,
        height: int,
        biomes: np.ndarray,
        continentalness: np.ndarray,
        temperature: np.ndarray,
        tectonic: np.ndarray,
        erosion: np.ndarray,
        peaks_valleys: np.ndarray,
        humidity: np.ndarray,
        suitability: np.ndarray,
        trade_cost: np.ndarray,
        resources: Optional[ResourceMap] = None,
        plate_ids: Optional[np.ndarray] = None,
        sea_level: float = SEA_LEVEL,
        seed: int = 0,
    ):
        if width <= 0 or height <= 0:
            raise ValueError("BiomeMap dimensions must be positive")
        size = width * height
        self.width = width
        self.height = height
        self.seed = seed
        self.sea_level = sea_level
        self.biomes = np.asarray(biomes, dtype=np.uint8).reshape(size)
        self.continentalness = np.asarray(continentalness, dtype=np.float64).reshape(size)
        self.temperature = np.asarray(temperature, dtype=np.float64).reshape(size)
        self.tectonic = np.asarray(tectonic, dtype=np.float64).reshape(size)
        self.erosion = np.asarray(erosion, dtype=np.float64).reshape(size)
        self.peaks_valleys = np.asarray(peaks_valleys, dtype=np.float64).reshape(size)
        self.humidity = np.asarray(humidity, dtype=np.float64).reshape(size)
        self.suitability = np.asarray(suitability, dtype=np.float64).reshape(size)
        self.trade_cost = np.asarray(trade_cost, dtype=np.float64).reshape(size)
        self.plate_ids = (
            np.zeros(size, dtype=np.int64) if plate_ids is None else np.asarray(plate_ids, dtype=np.int64).reshape(size)
        )
        self.resources = resources if resources is not None else ResourceMap()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_layers(
        cls,
        width: int,
        height: int,
        continentalness: np.ndarray,
        temperature: np.ndarray,
        tectonic: np.ndarray,
        erosion: np.ndarray,
        peaks_valleys: np.ndarray,
        humidity: np.ndarray,
        biomes: Optional[np.ndarray] = None,
        resources: Optional[ResourceMap] = None,
        plate_ids: Optional[np.ndarray] = None,
        sea_level: float = SEA_LEVEL,
        seed: int = 0,
    ) -> "BiomeMap":
        """
        Assemble a map from raw layers, deriving biomes and metrics.

        ``biomes`` overrides spline classification when given.
        """
        shape = (height, width)
        cont = np.asarray(continentalness, dtype=np.float64).reshape(shape)
        temp = np.asarray(temperature, dtype=np.float64).reshape(shape)
        tect = np.asarray(tectonic, dtype=np.float64).reshape(shape)
        eros = np.asarray(erosion, dtype=np.float64).reshape(shape)
        peaks = np.asarray(peaks_valleys, dtype=np.float64).reshape(shape)
        humid = np.asarray(humidity, dtype=np.float64).reshape(shape)

        if biomes is None:
            biome_grid = BiomeSplines(sea_level).evaluate_array(cont, temp, tect, eros, peaks, humid)[0]
        else:
            biome_grid = np.asarray(biomes, dtype=np.uint8).reshape(shape)

        resources = resources if resources is not None else ResourceMap()
        resource_value = np.zeros(width * height, dtype=np.float64)
        for index, _, abundance in resources:
            resource_value[index] += abundance

        rugged = np.isin(biome_grid, [int(b) for b in RUGGED_BIOMES])
        suitability = settlement_suitability(
            biome_grid,
            temp,
            humid,
            water_distance_proxy(cont, sea_level),
            _neighbourhood_fraction(rugged, DEFENSE_RADIUS),
            resource_value.reshape(shape),
        )

        return cls(
            width,
            height,
            biomes=biome_grid,
            continentalness=cont,
            temperature=temp,
            tectonic=tect,
            erosion=eros,
            peaks_valleys=peaks,
            humidity=humid,
            suitability=suitability,
            trade_cost=trade_cost(biome_grid, eros),
            resources=resources,
            plate_ids=plate_ids,
            sea_level=sea_level,
            seed=seed,
        )

    @classmethod
    def _build(
        cls,
        seed: int,
        xs: np.ndarray,
        ys: np.ndarray,
        strategies: LayerStrategies,
        detail_level: int = 0,
        sea_level: float = SEA_LEVEL,
        include_resources: bool = True,
        workers: Optional[int] = None,
        progress: Optional[LayerProgress] = None,
    ) -> "BiomeMap":
        width = xs.size
        height = ys.size
        total_pixels = width * height
        workers = workers or settings.generation_workers

        cont = np.empty((height, width), dtype=np.float64)
        temp = np.empty_like(cont)
        tect = np.empty_like(cont)
        peaks = np.empty_like(cont)
        eros = np.empty_like(cont)
        humid = np.empty_like(cont)
        plates = np.empty((height, width), dtype=np.int64)

        bands = _row_bands(height, width, max(total_pixels // 100, MIN_PROGRESS_BATCH))

        def independent_layers(band: Tuple[int, int]) -> None:
            start, stop = band
            band_ys = ys[start:stop]
            cont[start:stop] = strategies.continentalness.generate_grid(xs, band_ys, detail_level)
            temp[start:stop] = strategies.temperature.generate_grid(xs, band_ys, detail_level)
            plates[start:stop], tect[start:stop] = strategies.tectonic.generate_grid_with_plates(
                xs, band_ys, detail_level
            )
            peaks[start:stop] = strategies.peaks.generate_grid(xs, band_ys, detail_level)
            if progress is not None:
                pixels = (stop - start) * width
                for layer in (LayerId.CONTINENTALNESS, LayerId.TEMPERATURE, LayerId.TECTONIC, LayerId.PEAKS_VALLEYS):
                    progress.increment(layer, pixels)

        def dependent_layers(band: Tuple[int, int]) -> None:
            start, stop = band
            band_ys = ys[start:stop]
            band_cont = cont[start:stop]
            eros[start:stop] = strategies.erosion.generate_grid_with_continentalness(
                xs, band_ys, band_cont, detail_level, sea_level
            )
            humid[start:stop] = strategies.humidity.generate_grid_with_continentalness(
                xs, band_ys, band_cont, detail_level, sea_level
            )
            if progress is not None:
                pixels = (stop - start) * width
                progress.increment(LayerId.EROSION, pixels)
                progress.increment(LayerId.HUMIDITY, pixels)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            list(executor.map(independent_layers, bands))
            logger.debug("Independent layers complete", bands=len(bands), workers=workers)
            list(executor.map(dependent_layers, bands))

        biome_grid = BiomeSplines(sea_level).evaluate_array(cont, temp, tect, eros, peaks, humid)[0]

        resources = ResourceMap()
        if include_resources:
            stored = populate_resource_map(
                resources,
                resource_strategies(seed),
                xs,
                ys,
                cont,
                tect,
                biome_grid,
                sea_level,
                detail_level,
            )
            logger.debug("Resources generated", entries=stored, cells=len(resources))
        if progress is not None:
            progress.increment(LayerId.RESOURCES, total_pixels)

        return cls.from_layers(
            width,
            height,
            cont,
            temp,
            tect,
            eros,
            peaks,
            humid,
            biomes=biome_grid,
            resources=resources,
            plate_ids=plates,
            sea_level=sea_level,
            seed=seed,
        )

    @classmethod
    def generate(
        cls,
        seed: int,
        width: int,
        height: int,
        sea_level: float = SEA_LEVEL,
        noise_params: Optional[NoiseParams] = None,
        include_resources: bool = True,
        workers: Optional[int] = None,
        terminator_x: Optional[float] = None,
        twilight_width: float = 200.0,
    ) -> "BiomeMap":
        """Generate a full world map at one sample per cell."""
        if width <= 0 or height <= 0:
            raise ValueError("Map dimensions must be positive")
        started = time.perf_counter()
        strategies = LayerStrategies.for_seed(seed, height, noise_params, terminator_x, twilight_width)
        biome_map = cls._build(
            wrap_seed(seed),
            np.arange(width, dtype=np.float64),
            np.arange(height, dtype=np.float64),
            strategies,
            sea_level=sea_level,
            include_resources=include_resources,
            workers=workers,
        )
        logger.info(
            "Biome map generated",
            seed=seed,
            width=width,
            height=height,
            resource_cells=len(biome_map.resources),
            seconds=round(time.perf_counter() - started, 3),
        )
        return biome_map

    @classmethod
    def from_world(cls, world: "WorldDefinition", **kwargs) -> "BiomeMap":
        """Generate the map described by a world definition."""
        return cls.generate(
            world.seed,
            world.width,
            world.height,
            sea_level=world.sea_level,
            noise_params=world.noise_params,
            **kwargs,
        )

    @staticmethod
    def _region_axes(origin: Tuple[float, float], size: float, output_resolution: int):
        if output_resolution <= 0:
            raise ValueError("output_resolution must be positive")
        step = size / output_resolution
        offsets = np.arange(output_resolution, dtype=np.float64) * step
        return origin[0] + offsets, origin[1] + offsets

    @classmethod
    def generate_region(
        cls,
        seed: int,
        origin: Tuple[float, float],
        size: float,
        output_resolution: int,
        world_height: float,
        detail_level: int = 0,
        include_resources: bool = False,
        workers: Optional[int] = None,
    ) -> "BiomeMap":
        """
        Generate a square window of the world at an arbitrary scale.

        Cell ``(i, j)`` samples world position ``origin + (i, j) * size / output_resolution``.
        """
        xs, ys = cls._region_axes(origin, size, output_resolution)
        return cls._build(
            wrap_seed(seed),
            xs,
            ys,
            LayerStrategies.for_seed(seed, world_height),
            detail_level=detail_level,
            include_resources=include_resources,
            workers=workers,
        )

    @classmethod
    def generate_meso_full(
        cls,
        seed: int,
        origin: Tuple[float, float],
        size: float,
        output_resolution: int,
        world_height: float,
        detail_level: int,
        progress: LayerProgress,
        include_resources: bool = False,
        workers: Optional[int] = None,
    ) -> "BiomeMap":
        """``generate_region`` that reports per-layer progress as bands finish."""
        xs, ys = cls._region_axes(origin, size, output_resolution)
        progress.reset()
        started = time.perf_counter()
        biome_map = cls._build(
            wrap_seed(seed),
            xs,
            ys,
            LayerStrategies.for_seed(seed, world_height),
            detail_level=detail_level,
            include_resources=include_resources,
            workers=workers,
            progress=progress,
        )
        logger.info(
            "Meso tile generated",
            origin=origin,
            size=size,
            resolution=output_resolution,
            detail_level=detail_level,
            seconds=round(time.perf_counter() - started, 3),
        )
        return biome_map

    @staticmethod
    def generate_biome_only(
        seed: int,
        origin: Tuple[float, float],
        size: float,
        output_resolution: int,
        world_height: float,
        detail_level: int = 0,
        sea_level: float = SEA_LEVEL,
    ) -> bytes:
        """Fast RGBA preview classified from continentalness and temperature only."""
        xs, ys = BiomeMap._region_axes(origin, size, output_resolution)
        strategies = LayerStrategies.for_seed(seed, world_height)
        cont = strategies.continentalness.generate_grid(xs, ys, detail_level)
        temp = strategies.temperature.generate_grid(xs, ys, detail_level)
        biomes = classify_simple_array(cont, temp, sea_level).ravel()
        rgba = np.empty((biomes.size, 4), dtype=np.uint8)
        rgba[:, :3] = BIOME_COLOR_TABLE[biomes]
        rgba[:, 3] = 255
        return rgba.tobytes()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def index(self, x: int, y: int) -> Optional[int]:
        """Flat index of ``(x, y)`` or None when out of bounds."""
        if not self.in_bounds(x, y):
            return None
        return y * self.width + x

    def _value(self, array: np.ndarray, x: int, y: int) -> Optional[float]:
        idx = self.index(x, y)
        return None if idx is None else float(array[idx])

    def get_biome(self, x: int, y: int) -> Optional[BiomeType]:
        idx = self.index(x, y)
        return None if idx is None else BiomeType(int(self.biomes[idx]))

    def get_continentalness(self, x: int, y: int) -> Optional[float]:
        return self._value(self.continentalness, x, y)

    def get_temperature(self, x: int, y: int) -> Optional[float]:
        return self._value(self.temperature, x, y)

    def get_tectonic(self, x: int, y: int) -> Optional[float]:
        return self._value(self.tectonic, x, y)

    def get_erosion(self, x: int, y: int) -> Optional[float]:
        return self._value(self.erosion, x, y)

    def get_peaks_valleys(self, x: int, y: int) -> Optional[float]:
        return self._value(self.peaks_valleys, x, y)

    def get_humidity(self, x: int, y: int) -> Optional[float]:
        return self._value(self.humidity, x, y)

    def get_suitability(self, x: int, y: int) -> Optional[float]:
        return self._value(self.suitability, x, y)

    def get_trade_cost(self, x: int, y: int) -> Optional[float]:
        return self._value(self.trade_cost, x, y)

    def get_plate(self, x: int, y: int) -> Optional[int]:
        idx = self.index(x, y)
        return None if idx is None else int(self.plate_ids[idx])

    def get_resource(self, x: int, y: int, resource_type: ResourceType) -> Optional[float]:
        idx = self.index(x, y)
        return None if idx is None else self.resources.get(idx, resource_type)

    def get_resources(self, x: int, y: int) -> Optional[List[Tuple[ResourceType, float]]]:
        idx = self.index(x, y)
        return None if idx is None else self.resources.get_all(idx)

    def biome_grid(self) -> np.ndarray:
        """Biomes as a ``(height, width)`` view."""
        return self.biomes.reshape(self.height, self.width)

    def water_mask(self) -> np.ndarray:
        """``(height, width)`` boolean mask of water cells."""
        return is_water_array(self.biome_grid())

    def land_fraction(self) -> float:
        return float(1.0 - self.water_mask().mean())

    def biome_counts(self) -> dict:
        counts = np.bincount(self.biomes, minlength=len(BiomeType))
        return {biome: int(counts[biome]) for biome in BiomeType if counts[biome]}

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def to_layer_array(self, layer: NoiseLayer) -> np.ndarray:
        """RGBA pixels shaped ``(height, width, 4)``."""
        return layer_rgba(self, layer).reshape(self.height, self.width, 4)

    def to_layer_image(self, layer: NoiseLayer) -> bytes:
        """Row-major RGBA bytes, ``width * height * 4`` long."""
        return layer_rgba(self, layer).tobytes()

    def to_biome_image(self) -> bytes:
        return self.to_layer_image(NoiseLayer.BIOME)

    def to_temperature_image(self) -> bytes:
        return self.to_layer_image(NoiseLayer.TEMPERATURE)

    def to_continentalness_image(self) -> bytes:
        return self.to_layer_image(NoiseLayer.CONTINENTALNESS)

    def __repr__(self):
        return f"BiomeMap(width={self.width}, height={self.height}, seed={self.seed})"
