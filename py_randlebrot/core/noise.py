"""
Seeded noise strategies for world layers.

Every strategy is a pure function of position and detail level:

- Continentalness: fractal simplex noise, the land/ocean elevation proxy
- Temperature: latitude gradient (or day/night terminator) blended with noise
- Erosion: ridged noise weighted by continentalness
- Peaks & valleys: ridged multifractal
- Humidity: fractal noise blended with distance from water

Strategies are evaluated over whole grids with opensimplex's ``noise2array``;
the scalar ``generate`` path samples a one-cell grid so both paths agree.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from opensimplex import OpenSimplex

SEA_LEVEL = -0.025

# Seed offsets for the world layers
CONTINENTALNESS_SEED_OFFSET = 0
TEMPERATURE_SEED_OFFSET = 1
TECTONIC_SEED_OFFSET = 2
EROSION_SEED_OFFSET = 3
PEAKS_SEED_OFFSET = 4
HUMIDITY_SEED_OFFSET = 5


def wrap_seed(seed: int) -> int:
    """Wrap a seed into the unsigned 32-bit range."""
    return int(seed) & 0xFFFFFFFF


def as_axis(values) -> np.ndarray:
    """Coerce a coordinate sequence to a 1-D float64 array."""
    return np.atleast_1d(np.asarray(values, dtype=np.float64))


def fractal_noise(
    simplex: OpenSimplex,
    xs: np.ndarray,
    ys: np.ndarray,
    octaves: int,
    frequency: float,
    persistence: float,
    lacunarity: float,
    scale: float = 1.0,
) -> np.ndarray:
    """
    Multi-octave simplex noise over the grid ``xs × ys``.

    Returns an array shaped ``(len(ys), len(xs))`` normalized by the summed
    amplitude to [-1, 1].
    """
    xs = as_axis(xs) * scale
    ys = as_axis(ys) * scale
    total = np.zeros((ys.size, xs.size), dtype=np.float64)
    amplitude = 1.0
    freq = frequency
    max_amplitude = 0.0

    for _ in range(octaves):
        total += simplex.noise2array(xs * freq, ys * freq) * amplitude
        max_amplitude += amplitude
        amplitude *= persistence
        freq *= lacunarity

    if max_amplitude > 0.0:
        total /= max_amplitude
    return np.clip(total, -1.0, 1.0)


def _sample_point(strategy: "NoiseStrategy", x: float, y: float, detail_level: int) -> float:
    return float(strategy.generate_grid(as_axis(x), as_axis(y), detail_level)[0, 0])


class NoiseStrategy(ABC):
    """
    Interface shared by every layer generator.

    Subclasses must implement ``generate`` and ``name``. ``generate_grid`` has
    a per-cell fallback; concrete strategies override it with a vectorized
    version.
    """

    def __init__(self, seed: int):
        self.seed = wrap_seed(seed)
        self.simplex = OpenSimplex(seed=self.seed)

    @abstractmethod
    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        """Sample the layer at one world position."""

    @abstractmethod
    def name(self) -> str:
        """Human readable strategy name for diagnostics."""

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        """Sample the layer over ``xs × ys``; result is ``(len(ys), len(xs))``."""
        xs = as_axis(xs)
        ys = as_axis(ys)
        out = np.empty((ys.size, xs.size), dtype=np.float64)
        for j, y in enumerate(ys):
            for i, x in enumerate(xs):
                out[j, i] = self.generate(float(x), float(y), detail_level)
        return out

    def __repr__(self):
        return f"{type(self).__name__}(seed={self.seed})"


class ContinentalnessStrategy(NoiseStrategy):
    """Land/ocean elevation proxy in [-1, 1]."""

    def __init__(
        self,
        seed: int,
        octaves: int = 16,
        frequency: float = 1.0,
        persistence: float = 0.59,
        lacunarity: float = 2.0,
        scale: float = 0.01,
    ):
        super().__init__(seed)
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.scale = scale

    def name(self) -> str:
        return "Continentalness"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return _sample_point(self, x, y, detail_level)

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        return fractal_noise(
            self.simplex,
            xs,
            ys,
            self.octaves + detail_level,
            self.frequency,
            self.persistence,
            self.lacunarity,
            self.scale,
        )


class _TemperatureStrategy(NoiseStrategy):
    """Gradient temperature with a fractal noise variation."""

    # Output clamp in degrees
    MIN_OUTPUT = -100.0
    MAX_OUTPUT = 120.0
    # Noise swing in degrees before blending
    NOISE_AMPLITUDE = 50.0

    def __init__(
        self,
        seed: int,
        min_temp: float = -50.0,
        max_temp: float = 100.0,
        noise_influence: float = 0.3,
        scale: float = 150.0,
        octaves: int = 6,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ):
        super().__init__(seed)
        self.min_temp = min_temp
        self.max_temp = max_temp
        self.noise_influence = noise_influence
        self.scale = scale
        self.octaves = octaves
        self.persistence = persistence
        self.lacunarity = lacunarity

    @abstractmethod
    def gradient(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Gradient position in [0, 1] over the grid; 0 is coldest."""

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return _sample_point(self, x, y, detail_level)

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        xs = as_axis(xs)
        ys = as_axis(ys)
        base_temp = self.min_temp + self.gradient(xs, ys) * (self.max_temp - self.min_temp)
        noise = fractal_noise(
            self.simplex,
            xs,
            ys,
            self.octaves + detail_level,
            1.0,
            self.persistence,
            self.lacunarity,
            1.0 / self.scale,
        )
        noise_temp = noise * self.NOISE_AMPLITUDE
        temp = base_temp * (1.0 - self.noise_influence) + (base_temp + noise_temp) * self.noise_influence
        return np.clip(temp, self.MIN_OUTPUT, self.MAX_OUTPUT)


class LatitudeTemperatureStrategy(_TemperatureStrategy):
    """Cold at y=0, hot at y=map_height."""

    def __init__(self, seed: int, map_height: float = 512.0, **kwargs):
        super().__init__(seed, **kwargs)
        if map_height <= 0:
            raise ValueError("map_height must be positive")
        self.map_height = float(map_height)

    def name(self) -> str:
        return "Latitude Temperature"

    def gradient(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        lat = np.clip(ys / self.map_height, 0.0, 1.0)
        return np.broadcast_to(lat[:, None], (ys.size, xs.size))


class TerminatorTemperatureStrategy(_TemperatureStrategy):
    """
    Tidally locked temperature model.

    The night side (x well below ``terminator_x``) is coldest, the day side
    hottest, with a smooth twilight band of roughly ``twilight_width`` cells.
    """

    def __init__(
        self,
        seed: int,
        terminator_x: float = 512.0,
        twilight_width: float = 200.0,
        **kwargs,
    ):
        super().__init__(seed, **kwargs)
        if twilight_width <= 0:
            raise ValueError("twilight_width must be positive")
        self.terminator_x = float(terminator_x)
        self.twilight_width = float(twilight_width)

    def name(self) -> str:
        return "Terminator Temperature"

    def gradient(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        g = 0.5 + 0.5 * np.tanh((xs - self.terminator_x) / self.twilight_width)
        return np.broadcast_to(g[None, :], (ys.size, xs.size))


def ridged_erosion(
    simplex: OpenSimplex,
    xs: np.ndarray,
    ys: np.ndarray,
    octaves: int,
    frequency: float,
    persistence: float,
    lacunarity: float,
    scale: float,
) -> np.ndarray:
    """Ridged noise ``(1-|n|)^2`` with signal feedback, in [0, 1]."""
    xs = as_axis(xs) * scale
    ys = as_axis(ys) * scale
    value = np.zeros((ys.size, xs.size), dtype=np.float64)
    weight = np.ones_like(value)
    amplitude = 1.0
    freq = frequency

    for _ in range(octaves):
        signal = (1.0 - np.abs(simplex.noise2array(xs * freq, ys * freq))) ** 2
        value += signal * weight * amplitude
        weight = np.clip(signal, 0.0, 1.0)
        amplitude *= persistence
        freq *= lacunarity

    return np.clip(value * 0.5, 0.0, 1.0)


def erosion_elevation_factor(continentalness, sea_level: float = SEA_LEVEL):
    """
    Erosion strength by elevation.

    Submerged cells sit at 0.5; the coast erodes most (1.0) falling to 0.8 at
    continentalness 0.2, then to 0.3 at the highest ground.
    """
    c = np.asarray(continentalness, dtype=np.float64)
    coastal = 0.8 + 0.2 * (1.0 - (c - sea_level) / (0.2 - sea_level))
    inland = 0.3 + 0.5 * np.maximum(0.0, 1.0 - (c - 0.2) / 0.8)
    return np.where(c < sea_level, 0.5, np.where(c < 0.2, coastal, inland))


class ErosionStrategy(NoiseStrategy):
    """Ridged erosion weighted by elevation, in [0, 1]."""

    def __init__(
        self,
        seed: int,
        octaves: int = 6,
        frequency: float = 2.0,
        persistence: float = 0.55,
        lacunarity: float = 2.2,
        scale: float = 0.015,
    ):
        super().__init__(seed)
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.scale = scale

    def name(self) -> str:
        return "Erosion"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return _sample_point(self, x, y, detail_level)

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        return ridged_erosion(
            self.simplex,
            xs,
            ys,
            self.octaves + detail_level,
            self.frequency,
            self.persistence,
            self.lacunarity,
            self.scale,
        )

    def generate_with_continentalness(
        self, x: float, y: float, continentalness: float, detail_level: int = 0, sea_level: float = SEA_LEVEL
    ) -> float:
        grid = self.generate_grid_with_continentalness(
            as_axis(x), as_axis(y), np.array([[continentalness]]), detail_level, sea_level
        )
        return float(grid[0, 0])

    def generate_grid_with_continentalness(
        self, xs, ys, continentalness: np.ndarray, detail_level: int = 0, sea_level: float = SEA_LEVEL
    ) -> np.ndarray:
        base = self.generate_grid(xs, ys, detail_level)
        factor = erosion_elevation_factor(continentalness, sea_level)
        return np.clip(base * 0.4 + factor * 0.6, 0.0, 1.0)


class PeaksValleysStrategy(NoiseStrategy):
    """Ridged multifractal producing sharp ridgelines in [-1, 1]."""

    def __init__(
        self,
        seed: int,
        octaves: int = 8,
        frequency: float = 1.5,
        persistence: float = 0.6,
        lacunarity: float = 2.0,
        scale: float = 0.01,
    ):
        super().__init__(seed)
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.scale = scale

    def name(self) -> str:
        return "Peaks & Valleys"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return _sample_point(self, x, y, detail_level)

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        xs = as_axis(xs) * self.scale
        ys = as_axis(ys) * self.scale
        value = np.zeros((ys.size, xs.size), dtype=np.float64)
        weight = np.ones_like(value)
        amplitude = 1.0
        freq = self.frequency
        max_value = 0.0

        for _ in range(self.octaves + detail_level):
            signal = (1.0 - np.abs(self.simplex.noise2array(xs * freq, ys * freq))) ** 2
            signal *= weight
            weight = np.clip(signal * 2.0, 0.0, 1.0)
            value += signal * amplitude
            max_value += amplitude
            amplitude *= self.persistence
            freq *= self.lacunarity

        return np.clip((value / max_value) * 2.0 - 1.0, -1.0, 1.0)


def humidity_water_factor(continentalness, sea_level: float = SEA_LEVEL):
    """Moisture supply from nearby water, using continentalness as the distance proxy."""
    c = np.asarray(continentalness, dtype=np.float64)
    coastal = 0.9 - (c - sea_level) * 2.0
    inland = 0.5 - (c - 0.1) * 0.5
    return np.where(c < sea_level, 1.0, np.where(c < 0.1, coastal, inland))


class HumidityStrategy(NoiseStrategy):
    """Fractal humidity in [0, 1], skewed high near water."""

    def __init__(
        self,
        seed: int,
        octaves: int = 5,
        frequency: float = 1.0,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        scale: float = 0.008,
    ):
        super().__init__(seed)
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.scale = scale

    def name(self) -> str:
        return "Humidity"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return _sample_point(self, x, y, detail_level)

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        noise = fractal_noise(
            self.simplex,
            xs,
            ys,
            self.octaves + detail_level,
            self.frequency,
            self.persistence,
            self.lacunarity,
            self.scale,
        )
        return np.clip((noise + 1.0) * 0.5, 0.0, 1.0)

    def generate_with_water_distance(
        self, x: float, y: float, water_distance: float, detail_level: int = 0
    ) -> float:
        grid = self.generate_grid_with_water_distance(
            as_axis(x), as_axis(y), np.array([[water_distance]]), detail_level
        )
        return float(grid[0, 0])

    def generate_grid_with_water_distance(
        self, xs, ys, water_distance: np.ndarray, detail_level: int = 0
    ) -> np.ndarray:
        base = self.generate_grid(xs, ys, detail_level)
        water_factor = np.exp(-np.asarray(water_distance, dtype=np.float64) * 3.0)
        return np.clip(base * 0.4 + water_factor * 0.6, 0.0, 1.0)

    def generate_with_continentalness(
        self, x: float, y: float, continentalness: float, detail_level: int = 0, sea_level: float = SEA_LEVEL
    ) -> float:
        grid = self.generate_grid_with_continentalness(
            as_axis(x), as_axis(y), np.array([[continentalness]]), detail_level, sea_level
        )
        return float(grid[0, 0])

    def generate_grid_with_continentalness(
        self, xs, ys, continentalness: np.ndarray, detail_level: int = 0, sea_level: float = SEA_LEVEL
    ) -> np.ndarray:
        base = self.generate_grid(xs, ys, detail_level)
        water_factor = np.maximum(humidity_water_factor(continentalness, sea_level), 0.1)
        return np.clip(base * 0.3 + water_factor * 0.7, 0.0, 1.0)


def temperature_strategy(
    seed: int,
    map_height: float,
    octaves: int = 6,
    persistence: float = 0.5,
    terminator_x: Optional[float] = None,
    twilight_width: float = 200.0,
) -> NoiseStrategy:
    """Latitude model by default; terminator model when ``terminator_x`` is given."""
    if terminator_x is None or math.isnan(terminator_x):
        return LatitudeTemperatureStrategy(
            seed, map_height=map_height, octaves=octaves, persistence=persistence
        )
    return TerminatorTemperatureStrategy(
        seed,
        terminator_x=terminator_x,
        twilight_width=twilight_width,
        octaves=octaves,
        persistence=persistence,
    )
