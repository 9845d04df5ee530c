"""
Colour mapping of biome-map layers to RGBA.

Colour choices are an output contract for viewers, not part of generation.
Every function here takes numpy arrays and returns ``(n, 4)`` uint8 rows.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import numpy as np
import structlog

from .biomes import BIOME_COLOR_TABLE
from .resources import MIN_ABUNDANCE, ResourceType

if TYPE_CHECKING:
    from .biome_map import BiomeMap

logger = structlog.get_logger()


class NoiseLayer(Enum):
    """Layers that can be rendered from a biome map."""

    BIOME = "Biome"
    CONTINENTALNESS = "Continentalness"
    TEMPERATURE = "Temperature"
    TECTONIC = "Tectonic Plates"
    EROSION = "Erosion"
    PEAKS_VALLEYS = "Peaks & Valleys"
    HUMIDITY = "Humidity"
    SUITABILITY = "Settlement Suitability"
    TRADE_COST = "Travel Cost"
    RESOURCE_IRON = "Iron Deposits"
    RESOURCE_GOLD = "Gold Deposits"
    RESOURCE_COPPER = "Copper Deposits"
    RESOURCE_SILVER = "Silver Deposits"
    RESOURCE_GEMS = "Gem Deposits"
    RESOURCE_COAL = "Coal Deposits"
    RESOURCE_STONE = "Stone Deposits"
    RESOURCE_SALT = "Salt Deposits"
    RESOURCE_TIMBER = "Timber"
    RESOURCE_FISH = "Fishing Grounds"
    RESOURCE_FERTILE_SOIL = "Fertile Soil"
    RESOURCE_WILD_GAME = "Wild Game"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def is_resource(self) -> bool:
        return self.name.startswith("RESOURCE_")

    def to_resource_type(self) -> Optional[ResourceType]:
        if not self.is_resource:
            return None
        return ResourceType[self.name[len("RESOURCE_"):]]

    @classmethod
    def from_resource_type(cls, resource_type: ResourceType) -> "NoiseLayer":
        return cls["RESOURCE_" + resource_type.name]


def _rgba(r, g, b) -> np.ndarray:
    r = np.asarray(r)
    out = np.empty((r.size, 4), dtype=np.uint8)
    out[:, 0] = np.clip(r, 0, 255).astype(np.uint8).ravel()
    out[:, 1] = np.clip(np.broadcast_to(g, r.shape), 0, 255).astype(np.uint8).ravel()
    out[:, 2] = np.clip(np.broadcast_to(b, r.shape), 0, 255).astype(np.uint8).ravel()
    out[:, 3] = 255
    return out


def biome_to_rgba(biomes: np.ndarray) -> np.ndarray:
    colors = BIOME_COLOR_TABLE[np.asarray(biomes, dtype=np.intp).ravel()]
    return _rgba(colors[:, 0], colors[:, 1], colors[:, 2])


def grayscale_to_rgba(values: np.ndarray, low: float, high: float) -> np.ndarray:
    normalized = np.clip((np.asarray(values, dtype=np.float64) - low) / (high - low), 0.0, 1.0)
    gray = normalized * 255.0
    return _rgba(gray, gray, gray)


def temperature_to_rgba(temperature: np.ndarray) -> np.ndarray:
    """Blue when cold, red when hot."""
    n = np.clip((np.asarray(temperature, dtype=np.float64) + 100.0) / 200.0, 0.0, 1.0)
    green = np.maximum(1.0 - np.abs(n - 0.5) * 2.0, 0.0) * 180.0
    return _rgba(n * 255.0, green, (1.0 - n) * 255.0)


def tectonic_to_rgba(distance: np.ndarray) -> np.ndarray:
    """Red along plate boundaries, grey at plate centers."""
    d = np.asarray(distance, dtype=np.float64)
    return _rgba((1.0 - d) * 255.0, d * 128.0, d * 128.0)


def peaks_to_rgba(values: np.ndarray) -> np.ndarray:
    v = np.asarray(values, dtype=np.float64)
    valley = (1.0 + v) * 200.0
    ridge = 128.0 + v * 127.0
    rg = np.where(v < 0.0, valley, ridge)
    return _rgba(rg, rg, np.where(v < 0.0, 255.0, ridge))


def humidity_to_rgba(humidity: np.ndarray) -> np.ndarray:
    """Brown when dry through tan to blue when wet."""
    h = np.asarray(humidity, dtype=np.float64)
    dry = h * 2.0
    wet = (h - 0.5) * 2.0
    is_dry = h < 0.5
    r = np.where(is_dry, 139.0 + dry * 80.0, 219.0 - wet * 150.0)
    g = np.where(is_dry, 69.0 + dry * 80.0, 149.0 - wet * 50.0)
    b = np.where(is_dry, 19.0 + dry * 80.0, 99.0 + wet * 156.0)
    return _rgba(r, g, b)


def suitability_to_rgba(score: np.ndarray) -> np.ndarray:
    s = np.asarray(score, dtype=np.float64)
    empty = s < 0.01
    return _rgba(
        np.where(empty, 20.0, 50.0 - s * 30.0),
        np.where(empty, 20.0, 50.0 + s * 200.0),
        np.where(empty, 30.0, 50.0 - s * 30.0),
    )


def trade_cost_to_rgba(cost: np.ndarray) -> np.ndarray:
    c = np.asarray(cost, dtype=np.float64)
    impassable = ~np.isfinite(c)
    normalized = np.clip((np.where(impassable, 1.0, c) - 1.0) / 9.0, 0.0, 1.0)
    intensity = np.floor((1.0 - normalized) * 200.0 + 30.0)
    return _rgba(
        np.where(impassable, 10.0, intensity),
        np.where(impassable, 10.0, intensity),
        np.where(impassable, 30.0, intensity * 0.9),
    )


def resource_to_rgba(abundance: np.ndarray, resource_type: ResourceType) -> np.ndarray:
    a = np.asarray(abundance, dtype=np.float64)
    empty = a < MIN_ABUNDANCE
    intensity = np.minimum(0.5 + a * 0.5, 1.0)
    r, g, b = resource_type.color
    return _rgba(
        np.where(empty, 30.0, r * intensity),
        np.where(empty, 30.0, g * intensity),
        np.where(empty, 30.0, b * intensity),
    )


def layer_rgba(biome_map: "BiomeMap", layer: NoiseLayer) -> np.ndarray:
    """RGBA rows for every cell of ``biome_map``, in ``y*width+x`` order."""
    if layer is NoiseLayer.BIOME:
        return biome_to_rgba(biome_map.biomes)
    if layer is NoiseLayer.CONTINENTALNESS:
        return grayscale_to_rgba(biome_map.continentalness, -1.0, 1.0)
    if layer is NoiseLayer.TEMPERATURE:
        return temperature_to_rgba(biome_map.temperature)
    if layer is NoiseLayer.TECTONIC:
        return tectonic_to_rgba(biome_map.tectonic)
    if layer is NoiseLayer.EROSION:
        return grayscale_to_rgba(biome_map.erosion, 0.0, 1.0)
    if layer is NoiseLayer.PEAKS_VALLEYS:
        return peaks_to_rgba(biome_map.peaks_valleys)
    if layer is NoiseLayer.HUMIDITY:
        return humidity_to_rgba(biome_map.humidity)
    if layer is NoiseLayer.SUITABILITY:
        return suitability_to_rgba(biome_map.suitability)
    if layer is NoiseLayer.TRADE_COST:
        return trade_cost_to_rgba(biome_map.trade_cost)

    resource_type = layer.to_resource_type()
    abundance = np.zeros(biome_map.size, dtype=np.float64)
    for index, value in biome_map.resources.locations_with_resource(resource_type):
        abundance[index] = value
    return resource_to_rgba(abundance, resource_type)


def save_layer_png(biome_map: "BiomeMap", layer: NoiseLayer, path: Union[str, Path]) -> Path:
    """Render ``layer`` to a PNG file with matplotlib."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(path, biome_map.to_layer_array(layer))
    logger.info("Layer image saved", layer=layer.display_name, path=str(path))
    return path
