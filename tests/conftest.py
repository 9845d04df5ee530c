"""Shared fixtures for generation tests."""

import numpy as np
import pytest

from py_randlebrot.core.biome_map import BiomeMap


@pytest.fixture(scope="session")
def tiny_map():
    """64x32 world, seed 42."""
    return BiomeMap.generate(42, 64, 32)


@pytest.fixture(scope="session")
def small_map():
    """128x64 world, seed 42."""
    return BiomeMap.generate(42, 128, 64)


@pytest.fixture(scope="session")
def world_map():
    """256x128 world, seed 42."""
    return BiomeMap.generate(42, 256, 128)


@pytest.fixture
def layered_map():
    """Factory for maps with hand-placed biomes and uniform temperate climate."""

    def build(biome_grid, temperature=20.0, continentalness=0.1):
        biome_grid = np.asarray(biome_grid, dtype=np.uint8)
        height, width = biome_grid.shape
        shape = (height, width)
        return BiomeMap.from_layers(
            width,
            height,
            continentalness=np.full(shape, continentalness),
            temperature=np.full(shape, temperature),
            tectonic=np.full(shape, 0.5),
            erosion=np.zeros(shape),
            peaks_valleys=np.zeros(shape),
            humidity=np.full(shape, 0.5),
            biomes=biome_grid,
        )

    return build
