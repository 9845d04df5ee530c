"""Tests for the noise layer strategies."""

import numpy as np
import pytest

from py_randlebrot.core.noise import (
    ContinentalnessStrategy,
    ErosionStrategy,
    HumidityStrategy,
    LatitudeTemperatureStrategy,
    NoiseStrategy,
    PeaksValleysStrategy,
    TerminatorTemperatureStrategy,
    erosion_elevation_factor,
    fractal_noise,
    humidity_water_factor,
    temperature_strategy,
    wrap_seed,
)

XS = np.linspace(-300.0, 700.0, 41)
YS = np.linspace(-100.0, 600.0, 29)


class TestContinentalness:
    """Test the continentalness strategy."""

    def setup_method(self):
        self.strategy = ContinentalnessStrategy(42)

    def test_range(self):
        grid = self.strategy.generate_grid(XS, YS)
        assert grid.shape == (YS.size, XS.size)
        assert grid.min() >= -1.0
        assert grid.max() <= 1.0

    def test_deterministic(self):
        a = ContinentalnessStrategy(42).generate(123.4, 56.7)
        b = ContinentalnessStrategy(42).generate(123.4, 56.7)
        assert a == b

    def test_seed_changes_output(self):
        a = ContinentalnessStrategy(1).generate_grid(XS, YS)
        b = ContinentalnessStrategy(2).generate_grid(XS, YS)
        assert not np.allclose(a, b)

    def test_scalar_matches_grid(self):
        grid = self.strategy.generate_grid(XS, YS)
        for j in (0, 7, 28):
            for i in (0, 13, 40):
                assert self.strategy.generate(XS[i], YS[j]) == pytest.approx(grid[j, i])

    def test_detail_level_adds_octaves(self):
        coarse = self.strategy.generate_grid(XS, YS, detail_level=0)
        fine = self.strategy.generate_grid(XS, YS, detail_level=2)
        assert not np.array_equal(coarse, fine)

    def test_name(self):
        assert self.strategy.name() == "Continentalness"

    def test_is_noise_strategy(self):
        assert isinstance(self.strategy, NoiseStrategy)


class TestTemperature:
    """Test latitude and terminator temperature models."""

    def test_latitude_gradient(self):
        """Top of the map is cold, bottom is hot."""
        strategy = LatitudeTemperatureStrategy(7, map_height=512)
        xs = np.arange(0.0, 512.0, 8.0)
        grid = strategy.generate_grid(xs, np.array([0.0, 511.0]))
        assert grid[0].mean() < grid[1].mean()

    def test_output_clamped(self):
        strategy = LatitudeTemperatureStrategy(7, map_height=100)
        grid = strategy.generate_grid(XS, YS)
        assert grid.min() >= -100.0
        assert grid.max() <= 120.0

    def test_invalid_height(self):
        with pytest.raises(ValueError):
            LatitudeTemperatureStrategy(1, map_height=0)

    def test_terminator_day_side_hotter(self):
        strategy = TerminatorTemperatureStrategy(3, terminator_x=512, twilight_width=200)
        ys = np.arange(0.0, 256.0, 8.0)
        night = strategy.generate_grid(np.array([0.0]), ys)
        day = strategy.generate_grid(np.array([1024.0]), ys)
        assert day.mean() > night.mean() + 50.0

    def test_invalid_twilight(self):
        with pytest.raises(ValueError):
            TerminatorTemperatureStrategy(1, twilight_width=0)

    def test_factory_selects_model(self):
        assert isinstance(temperature_strategy(1, 512), LatitudeTemperatureStrategy)
        assert isinstance(temperature_strategy(1, 512, terminator_x=256.0), TerminatorTemperatureStrategy)
        assert isinstance(temperature_strategy(1, 512, terminator_x=float("nan")), LatitudeTemperatureStrategy)


class TestErosion:
    """Test ridged erosion."""

    def setup_method(self):
        self.strategy = ErosionStrategy(42)

    def test_range(self):
        grid = self.strategy.generate_grid(XS, YS)
        assert grid.min() >= 0.0
        assert grid.max() <= 1.0

    def test_with_continentalness_range(self):
        cont = ContinentalnessStrategy(42).generate_grid(XS, YS)
        grid = self.strategy.generate_grid_with_continentalness(XS, YS, cont)
        assert grid.min() >= 0.0
        assert grid.max() <= 1.0

    def test_scalar_matches_grid(self):
        cont = np.full((YS.size, XS.size), 0.1)
        grid = self.strategy.generate_grid_with_continentalness(XS, YS, cont)
        assert self.strategy.generate_with_continentalness(XS[5], YS[3], 0.1) == pytest.approx(grid[3, 5])

    def test_coast_erodes_most(self):
        factor = erosion_elevation_factor(np.array([-0.5, -0.025, 0.2, 1.0]))
        assert factor[0] == pytest.approx(0.5)
        assert factor[1] == pytest.approx(1.0)
        assert factor[2] == pytest.approx(0.8)
        assert factor[3] == pytest.approx(0.3)


class TestPeaksValleys:
    """Test the ridged multifractal."""

    def test_range(self):
        grid = PeaksValleysStrategy(42).generate_grid(XS, YS)
        assert grid.min() >= -1.0
        assert grid.max() <= 1.0

    def test_deterministic(self):
        assert PeaksValleysStrategy(9).generate(10.0, 20.0) == PeaksValleysStrategy(9).generate(10.0, 20.0)


class TestHumidity:
    """Test humidity and its water coupling."""

    def setup_method(self):
        self.strategy = HumidityStrategy(42)

    def test_range(self):
        grid = self.strategy.generate_grid(XS, YS)
        assert grid.min() >= 0.0
        assert grid.max() <= 1.0

    def test_near_water_is_wetter(self):
        near = self.strategy.generate_with_water_distance(100.0, 100.0, 0.0)
        far = self.strategy.generate_with_water_distance(100.0, 100.0, 1.0)
        assert near > far

    def test_ocean_is_wet(self):
        cont = np.full((YS.size, XS.size), -0.5)
        grid = self.strategy.generate_grid_with_continentalness(XS, YS, cont)
        assert grid.min() >= 0.7

    def test_water_factor(self):
        factor = humidity_water_factor(np.array([-0.3, -0.025, 0.5]))
        assert factor[0] == 1.0
        assert factor[1] == pytest.approx(0.9)
        assert factor[2] == pytest.approx(0.3)


class TestFractalNoise:
    """Test the shared fractal helper."""

    def test_shape_and_range(self):
        strategy = ContinentalnessStrategy(5)
        out = fractal_noise(strategy.simplex, XS, YS, 4, 1.0, 0.5, 2.0, 0.01)
        assert out.shape == (YS.size, XS.size)
        assert np.abs(out).max() <= 1.0

    def test_wrap_seed(self):
        assert wrap_seed(-1) == 0xFFFFFFFF
        assert wrap_seed(2 ** 32 + 5) == 5
