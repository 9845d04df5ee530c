"""
Tectonic plates as a jittered-grid Voronoi diagram.

The world is divided into square cells of ``cell_size``; each cell holds one
plate center displaced from the cell middle by a hash of the integer cell
coordinates and the seed. A cell's value is ``1 - d1/d2`` where ``d1`` and
``d2`` are the distances to the nearest and second-nearest centers: 1 at a
plate center, 0 on a boundary. Sample positions are warped by low-frequency
noise first so plate edges are not dead straight.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .noise import NoiseStrategy, as_axis, fractal_noise

_MIX_1 = np.uint64(0xBF58476D1CE4E5B9)
_MIX_2 = np.uint64(0x94D049BB133111EB)
_PRIME_X = np.uint64(0x8DA6B343)
_PRIME_Y = np.uint64(0xD8163841)
_PRIME_SEED = np.uint64(0xCB1AB31F)


def hash_cells(ix: np.ndarray, iy: np.ndarray, seed: int) -> np.ndarray:
    """Deterministic 64-bit hash of integer cell coordinates (vectorized)."""
    h = ix.astype(np.int64).astype(np.uint64) * _PRIME_X
    h ^= iy.astype(np.int64).astype(np.uint64) * _PRIME_Y
    h ^= np.uint64((int(seed) * int(_PRIME_SEED)) & 0xFFFFFFFFFFFFFFFF)
    h ^= h >> np.uint64(30)
    h *= _MIX_1
    h ^= h >> np.uint64(27)
    h *= _MIX_2
    h ^= h >> np.uint64(31)
    return h


class TectonicStrategy(NoiseStrategy):
    """Plate boundary distance in [0, 1] plus a plate identifier."""

    def __init__(
        self,
        seed: int,
        cell_size: float = 128.0,
        jitter: float = 0.9,
        warp_amplitude: float = 12.0,
        octaves: int = 4,
        frequency: float = 0.5,
        persistence: float = 0.4,
        lacunarity: float = 2.5,
        scale: float = 0.005,
    ):
        super().__init__(seed)
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.cell_size = float(cell_size)
        self.jitter = jitter
        self.warp_amplitude = warp_amplitude
        self.octaves = octaves
        self.frequency = frequency
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.scale = scale

    def name(self) -> str:
        return "Tectonic Plates"

    def generate(self, x: float, y: float, detail_level: int = 0) -> float:
        return self.generate_with_plate(x, y, detail_level)[1]

    def generate_with_plate(self, x: float, y: float, detail_level: int = 0) -> Tuple[int, float]:
        plates, distance = self.generate_grid_with_plates(as_axis(x), as_axis(y), detail_level)
        return int(plates[0, 0]), float(distance[0, 0])

    def generate_grid(self, xs, ys, detail_level: int = 0) -> np.ndarray:
        return self.generate_grid_with_plates(xs, ys, detail_level)[1]

    def generate_grid_with_plates(self, xs, ys, detail_level: int = 0) -> Tuple[np.ndarray, np.ndarray]:
        xs = as_axis(xs)
        ys = as_axis(ys)
        octaves = self.octaves + detail_level

        warp_x = fractal_noise(
            self.simplex, xs, ys, octaves, self.frequency, self.persistence, self.lacunarity, self.scale
        )
        # Offset the second warp field so the two axes are uncorrelated
        warp_y = fractal_noise(
            self.simplex,
            xs + 5183.0,
            ys - 9127.0,
            octaves,
            self.frequency,
            self.persistence,
            self.lacunarity,
            self.scale,
        )
        px = xs[None, :] + warp_x * self.warp_amplitude
        py = ys[:, None] + warp_y * self.warp_amplitude

        cell_x = np.floor(px / self.cell_size).astype(np.int64)
        cell_y = np.floor(py / self.cell_size).astype(np.int64)

        nearest = np.full(px.shape, np.inf)
        second = np.full(px.shape, np.inf)
        plates = np.zeros(px.shape, dtype=np.int64)

        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                nx = cell_x + dx
                ny = cell_y + dy
                h = hash_cells(nx, ny, self.seed)
                jx = (h & np.uint64(0xFFFF)).astype(np.float64) / 65535.0
                jy = ((h >> np.uint64(16)) & np.uint64(0xFFFF)).astype(np.float64) / 65535.0
                center_x = (nx + 0.5 + (jx - 0.5) * self.jitter) * self.cell_size
                center_y = (ny + 0.5 + (jy - 0.5) * self.jitter) * self.cell_size
                d = np.hypot(px - center_x, py - center_y)

                closer = d < nearest
                second = np.where(closer, nearest, np.minimum(second, d))
                plates = np.where(closer, (h >> np.uint64(32)).astype(np.int64), plates)
                nearest = np.where(closer, d, nearest)

        distance = np.clip(1.0 - nearest / np.maximum(second, 1e-12), 0.0, 1.0)
        return plates, distance
