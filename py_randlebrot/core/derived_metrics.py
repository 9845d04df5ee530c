"""
Per-cell metrics derived from biome and climate: settlement suitability and
trade cost.

All functions accept scalars or numpy arrays of biome values.
"""

from __future__ import annotations

import math

import numpy as np

from .biomes import BiomeType, biome_lookup, is_water_array

BIOME_FERTILITY = {
    BiomeType.PLAINS: 1.0,
    BiomeType.FOREST: 0.7,
    BiomeType.BEACH: 0.5,
    BiomeType.PLATEAU: 0.3,
    BiomeType.DESERT: 0.2,
    BiomeType.SAHARA: 0.1,
    BiomeType.MOUNTAIN: 0.15,
    BiomeType.SNOW: 0.2,
    BiomeType.SNOW_BEACH: 0.25,
    BiomeType.TUNDRA: 0.25,
    BiomeType.SNOW_PEAKS: 0.05,
}

BIOME_TRADE_COST = {
    BiomeType.OCEAN: math.inf,
    BiomeType.ICE: math.inf,
    BiomeType.HOT_OCEAN: math.inf,
    BiomeType.PLAINS: 1.0,
    BiomeType.BEACH: 1.5,
    BiomeType.FOREST: 3.0,
    BiomeType.SNOW_BEACH: 4.0,
    BiomeType.TUNDRA: 4.0,
    BiomeType.DESERT: 5.0,
    BiomeType.SAHARA: 6.0,
    BiomeType.PLATEAU: 6.0,
    BiomeType.SNOW: 8.0,
    BiomeType.MOUNTAIN: 10.0,
    BiomeType.SNOW_PEAKS: 12.0,
}

FERTILITY_TABLE = biome_lookup(BIOME_FERTILITY)
# Preview scoring rates beaches a little higher
SIMPLE_FERTILITY_TABLE = biome_lookup({**BIOME_FERTILITY, BiomeType.BEACH: 0.6})
TRADE_COST_TABLE = biome_lookup(BIOME_TRADE_COST, default=math.inf)

# Suitability weights
FERTILITY_WEIGHT = 0.35
CLIMATE_WEIGHT = 0.25
WATER_WEIGHT = 0.20
DEFENSE_WEIGHT = 0.10
RESOURCE_WEIGHT = 0.10

COMFORT_TEMPERATURE = 20.0
COMFORT_HUMIDITY = 0.5

# Erosion flattens terrain by up to this fraction of its cost
EROSION_COST_REDUCTION = 0.2


def _indices(biome):
    return np.asarray(biome, dtype=np.intp)


def _scalar_or_array(value):
    return float(value) if np.ndim(value) == 0 else value


def biome_fertility(biome):
    return _scalar_or_array(FERTILITY_TABLE[_indices(biome)])


def climate_comfort(temperature, humidity):
    """Comfort in [0, 1] peaked at 20 degrees and humidity 0.5."""
    t = np.asarray(temperature, dtype=np.float64)
    h = np.asarray(humidity, dtype=np.float64)
    temp_comfort = 1.0 - np.minimum(np.abs(t - COMFORT_TEMPERATURE) / 50.0, 1.0)
    humid_comfort = 1.0 - np.minimum(np.abs(h - COMFORT_HUMIDITY) / 0.5, 1.0)
    return temp_comfort * 0.6 + humid_comfort * 0.4


def settlement_suitability(
    biome,
    temperature,
    humidity,
    water_distance,
    nearby_mountain_factor=0.0,
    resource_value=0.0,
):
    """
    Habitability in [0, 1]; zero over water.

    ``water_distance`` is normalized (0 at the shore, 1 far inland),
    ``nearby_mountain_factor`` is the share of rugged cells nearby and
    ``resource_value`` the local resource richness, both in [0, 1].
    """
    indices = _indices(biome)
    fertility = FERTILITY_TABLE[indices]
    climate = climate_comfort(temperature, humidity)
    water_score = np.maximum(1.0 - np.asarray(water_distance, dtype=np.float64), 0.0)
    defense = np.clip(nearby_mountain_factor, 0.0, 1.0)
    resources = np.clip(resource_value, 0.0, 1.0)

    score = (
        fertility * FERTILITY_WEIGHT
        + climate * CLIMATE_WEIGHT
        + water_score * WATER_WEIGHT
        + defense * DEFENSE_WEIGHT
        + resources * RESOURCE_WEIGHT
    )
    score = np.where(is_water_array(indices), 0.0, np.clip(score, 0.0, 1.0))
    return _scalar_or_array(score)


def settlement_suitability_simple(biome, temperature, humidity):
    """Two-term suitability (fertility and climate) for previews."""
    indices = _indices(biome)
    score = SIMPLE_FERTILITY_TABLE[indices] * 0.5 + climate_comfort(temperature, humidity) * 0.5
    return _scalar_or_array(np.where(is_water_array(indices), 0.0, score))


def trade_cost(biome, erosion=0.0):
    """Land traversal cost, infinite over water."""
    base = TRADE_COST_TABLE[_indices(biome)]
    reduction = 1.0 - np.clip(erosion, 0.0, 1.0) * EROSION_COST_REDUCTION
    return _scalar_or_array(base * reduction)


def is_passable(biome) -> bool:
    return bool(np.isfinite(TRADE_COST_TABLE[int(biome)]))


def terrain_difficulty(biome, erosion: float = 0.0) -> float:
    """Trade cost scaled to [0, 1]; water is 1."""
    cost = trade_cost(biome, erosion)
    if not math.isfinite(cost):
        return 1.0
    return min(cost / 10.0, 1.0)
