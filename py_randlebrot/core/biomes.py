"""
Biome classification from combined noise layers.

Two classifiers live here:

- ``classify_simple``: continentalness and temperature only, used for fast
  previews
- ``BiomeSplines``: combines all six raw layers into an adjusted
  elevation/temperature/humidity triple and classifies with ordered threshold
  rules

The numeric thresholds are tuned constants; downstream placement and tests
depend on the exact boundaries.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Tuple

import numpy as np

from .noise import SEA_LEVEL


class BiomeType(IntEnum):
    """Closed set of biomes produced by classification."""

    OCEAN = 0
    ICE = 1
    HOT_OCEAN = 2
    BEACH = 3
    SNOW_BEACH = 4
    PLAINS = 5
    FOREST = 6
    DESERT = 7
    SAHARA = 8
    MOUNTAIN = 9
    PLATEAU = 10
    SNOW = 11
    TUNDRA = 12
    SNOW_PEAKS = 13

    @property
    def is_water(self) -> bool:
        return self in WATER_BIOMES

    @property
    def color(self) -> Tuple[int, int, int]:
        return BIOME_COLORS[self]

    @property
    def display_name(self) -> str:
        return BIOME_NAMES[self]


WATER_BIOMES = frozenset({BiomeType.OCEAN, BiomeType.ICE, BiomeType.HOT_OCEAN})

BIOME_NAMES: Dict[BiomeType, str] = {
    BiomeType.OCEAN: "Ocean",
    BiomeType.ICE: "Ice Pack",
    BiomeType.HOT_OCEAN: "Warm Ocean",
    BiomeType.BEACH: "Beach",
    BiomeType.SNOW_BEACH: "Frozen Shore",
    BiomeType.PLAINS: "Plains",
    BiomeType.FOREST: "Forest",
    BiomeType.DESERT: "Desert",
    BiomeType.SAHARA: "Sahara",
    BiomeType.MOUNTAIN: "Mountain",
    BiomeType.PLATEAU: "Plateau",
    BiomeType.SNOW: "Snow",
    BiomeType.TUNDRA: "Tundra",
    BiomeType.SNOW_PEAKS: "Snow Peaks",
}

BIOME_COLORS: Dict[BiomeType, Tuple[int, int, int]] = {
    BiomeType.OCEAN: (64, 191, 255),
    BiomeType.ICE: (200, 230, 255),
    BiomeType.HOT_OCEAN: (32, 160, 200),
    BiomeType.BEACH: (238, 214, 175),
    BiomeType.SNOW_BEACH: (220, 225, 230),
    BiomeType.PLAINS: (152, 190, 100),
    BiomeType.FOREST: (0, 128, 0),
    BiomeType.DESERT: (210, 180, 140),
    BiomeType.SAHARA: (237, 201, 120),
    BiomeType.MOUNTAIN: (140, 130, 120),
    BiomeType.PLATEAU: (180, 150, 120),
    BiomeType.SNOW: (240, 245, 250),
    BiomeType.TUNDRA: (180, 190, 200),
    BiomeType.SNOW_PEAKS: (220, 220, 230),
}

# Lookup table indexed by biome value, for vectorized rendering
BIOME_COLOR_TABLE = np.array([BIOME_COLORS[b] for b in BiomeType], dtype=np.uint8)
WATER_TABLE = np.array([b in WATER_BIOMES for b in BiomeType], dtype=bool)


def is_water_array(biomes: np.ndarray) -> np.ndarray:
    """Boolean mask of water cells for an array of biome values."""
    return WATER_TABLE[np.asarray(biomes, dtype=np.intp)]


def biome_lookup(table: Dict[BiomeType, float], default: float = 0.0) -> np.ndarray:
    """Turn a per-biome mapping into an array indexed by biome value."""
    return np.array([table.get(b, default) for b in BiomeType], dtype=np.float64)


def classify_simple(continentalness: float, temperature: float, sea_level: float = SEA_LEVEL) -> BiomeType:
    """Classify from continentalness and temperature alone."""
    c = continentalness
    t = temperature
    if c < sea_level:
        if t < -15.0:
            return BiomeType.ICE
        if t > 50.0:
            return BiomeType.HOT_OCEAN
        return BiomeType.OCEAN
    if c < sea_level + 0.02:
        return BiomeType.BEACH if t > 3.0 else BiomeType.SNOW_BEACH
    if c < sea_level + 0.1:
        if t < 3.0:
            return BiomeType.TUNDRA
        if t > 55.0:
            return BiomeType.DESERT
        return BiomeType.PLAINS
    if c < sea_level + 0.2:
        if t < 3.0:
            return BiomeType.SNOW
        if t > 55.0:
            return BiomeType.SAHARA if t > 70.0 else BiomeType.DESERT
        return BiomeType.FOREST
    if c < sea_level + 0.3:
        return BiomeType.PLATEAU if t > 65.0 else BiomeType.MOUNTAIN
    return BiomeType.SNOW_PEAKS if t < 20.0 else BiomeType.MOUNTAIN


def classify_simple_array(continentalness: np.ndarray, temperature: np.ndarray, sea_level: float = SEA_LEVEL) -> np.ndarray:
    """Vectorized ``classify_simple``; returns uint8 biome values."""
    c = np.asarray(continentalness, dtype=np.float64)
    t = np.asarray(temperature, dtype=np.float64)
    b = BiomeType
    conditions = [
        (c < sea_level) & (t < -15.0),
        (c < sea_level) & (t > 50.0),
        c < sea_level,
        (c < sea_level + 0.02) & (t > 3.0),
        c < sea_level + 0.02,
        (c < sea_level + 0.1) & (t < 3.0),
        (c < sea_level + 0.1) & (t > 55.0),
        c < sea_level + 0.1,
        (c < sea_level + 0.2) & (t < 3.0),
        (c < sea_level + 0.2) & (t > 70.0),
        (c < sea_level + 0.2) & (t > 55.0),
        c < sea_level + 0.2,
        (c < sea_level + 0.3) & (t > 65.0),
        c < sea_level + 0.3,
        t < 20.0,
    ]
    choices = [
        b.ICE, b.HOT_OCEAN, b.OCEAN,
        b.BEACH, b.SNOW_BEACH,
        b.TUNDRA, b.DESERT, b.PLAINS,
        b.SNOW, b.SAHARA, b.DESERT, b.FOREST,
        b.PLATEAU, b.MOUNTAIN,
        b.SNOW_PEAKS,
    ]
    return np.select(conditions, [int(v) for v in choices], default=int(b.MOUNTAIN)).astype(np.uint8)


class BiomeSplines:
    """
    Spline-style evaluator turning six raw layers into a classified biome.

    Elevation gains peaks and loses erosion only on land, ramping in over the
    first 0.3 of continentalness above sea level. Temperature drops with
    elevation (lapse rate) and rises near plate boundaries (volcanic heat).
    Humidity drops above an elevation threshold (rain shadow).
    """

    PEAKS_WEIGHT = 0.12
    EROSION_WEIGHT = 0.04
    LAND_RAMP = 0.3
    LAPSE_RATE = 60.0
    VOLCANIC_HEAT = 8.0
    RAIN_SHADOW_START = 0.15
    RAIN_SHADOW_RATE = 2.5
    RAIN_SHADOW_MAX = 0.4

    def __init__(self, sea_level: float = SEA_LEVEL):
        self.sea_level = sea_level

    # ------------------------------------------------------------------
    # Scalar path
    # ------------------------------------------------------------------

    def elevation(self, continentalness: float, peaks: float, erosion: float) -> float:
        land = min(max((continentalness - self.sea_level) / self.LAND_RAMP, 0.0), 1.0)
        return continentalness + peaks * self.PEAKS_WEIGHT * land - erosion * self.EROSION_WEIGHT * land

    def adjust_temperature(self, temperature: float, elevation: float, tectonic: float) -> float:
        lapse = max(elevation - self.sea_level, 0.0) * self.LAPSE_RATE
        volcanic = (1.0 - tectonic) ** 2 * self.VOLCANIC_HEAT
        return temperature - lapse + volcanic

    def adjust_humidity(self, humidity: float, elevation: float) -> float:
        above = elevation - self.sea_level
        if above > self.RAIN_SHADOW_START:
            humidity -= min((above - self.RAIN_SHADOW_START) * self.RAIN_SHADOW_RATE, self.RAIN_SHADOW_MAX)
        return min(max(humidity, 0.0), 1.0)

    def classify(self, elevation: float, temperature: float, humidity: float) -> BiomeType:
        """Ordered threshold rules over adjusted elevation, temperature and humidity."""
        t = temperature
        h = humidity
        if elevation < self.sea_level:
            return BiomeType.ICE if t < -15.0 else BiomeType.OCEAN

        above = elevation - self.sea_level
        if above < 0.02:
            return BiomeType.BEACH if t > 3.0 else BiomeType.SNOW_BEACH
        if t < 3.0:
            return BiomeType.SNOW
        if above > 0.22:
            return BiomeType.PLATEAU if t > 65.0 else BiomeType.MOUNTAIN
        if t > 55.0 and h < 0.3:
            return BiomeType.SAHARA if t > 70.0 and h < 0.15 else BiomeType.DESERT
        if above > 0.12:
            if h > 0.55:
                return BiomeType.FOREST
            if h < 0.25 and t > 40.0:
                return BiomeType.DESERT
            return BiomeType.MOUNTAIN
        if above > 0.04:
            if h > 0.6:
                return BiomeType.FOREST
            if h > 0.35:
                return BiomeType.PLAINS
            if t > 45.0:
                return BiomeType.DESERT
            return BiomeType.PLAINS
        return BiomeType.FOREST if h > 0.5 else BiomeType.PLAINS

    def evaluate(
        self,
        continentalness: float,
        temperature: float,
        tectonic: float,
        erosion: float,
        peaks: float,
        humidity: float,
    ) -> Tuple[BiomeType, float, float, float]:
        """Return ``(biome, elevation, temperature, humidity)`` for one cell."""
        elevation = self.elevation(continentalness, peaks, erosion)
        temp = self.adjust_temperature(temperature, elevation, tectonic)
        humid = self.adjust_humidity(humidity, elevation)
        return self.classify(elevation, temp, humid), elevation, temp, humid

    # ------------------------------------------------------------------
    # Array path
    # ------------------------------------------------------------------

    def evaluate_array(
        self,
        continentalness: np.ndarray,
        temperature: np.ndarray,
        tectonic: np.ndarray,
        erosion: np.ndarray,
        peaks: np.ndarray,
        humidity: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Vectorized ``evaluate``; biomes are returned as uint8 values."""
        c = np.asarray(continentalness, dtype=np.float64)
        land = np.clip((c - self.sea_level) / self.LAND_RAMP, 0.0, 1.0)
        elevation = c + peaks * self.PEAKS_WEIGHT * land - erosion * self.EROSION_WEIGHT * land

        lapse = np.maximum(elevation - self.sea_level, 0.0) * self.LAPSE_RATE
        temp = temperature - lapse + (1.0 - tectonic) ** 2 * self.VOLCANIC_HEAT

        above = elevation - self.sea_level
        rain = np.where(
            above > self.RAIN_SHADOW_START,
            np.minimum((above - self.RAIN_SHADOW_START) * self.RAIN_SHADOW_RATE, self.RAIN_SHADOW_MAX),
            0.0,
        )
        humid = np.clip(humidity - rain, 0.0, 1.0)

        return self.classify_array(elevation, temp, humid), elevation, temp, humid

    def classify_array(self, elevation: np.ndarray, temperature: np.ndarray, humidity: np.ndarray) -> np.ndarray:
        t = temperature
        h = humidity
        b = BiomeType
        water = elevation < self.sea_level
        above = elevation - self.sea_level
        high = above > 0.12
        mid = above > 0.04

        conditions = [
            water & (t < -15.0),
            water,
            (above < 0.02) & (t > 3.0),
            above < 0.02,
            t < 3.0,
            (above > 0.22) & (t > 65.0),
            above > 0.22,
            (t > 55.0) & (h < 0.3) & (t > 70.0) & (h < 0.15),
            (t > 55.0) & (h < 0.3),
            high & (h > 0.55),
            high & (h < 0.25) & (t > 40.0),
            high,
            mid & (h > 0.6),
            mid & (h > 0.35),
            mid & (t > 45.0),
            mid,
            h > 0.5,
        ]
        choices = [
            b.ICE, b.OCEAN,
            b.BEACH, b.SNOW_BEACH,
            b.SNOW,
            b.PLATEAU, b.MOUNTAIN,
            b.SAHARA, b.DESERT,
            b.FOREST, b.DESERT, b.MOUNTAIN,
            b.FOREST, b.PLAINS, b.DESERT, b.PLAINS,
            b.FOREST,
        ]
        return np.select(conditions, [int(v) for v in choices], default=int(b.PLAINS)).astype(np.uint8)
