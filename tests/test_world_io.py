"""Tests for world persistence."""

import pytest

from py_randlebrot.core.civilization import CivilizationGenerator
from py_randlebrot.core.world_definition import NoiseParams, WorldDefinition
from py_randlebrot.persistence import (
    WorldFileError,
    WorldFormatError,
    WorldIOError,
    delete_world,
    list_worlds,
    load_world,
    load_world_by_name,
    sanitize_world_name,
    save_world,
    save_world_by_name,
    world_exists,
    world_path,
)


class TestSanitizeWorldName:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("My World", "my_world"),
            ("Hello World!", "hello_world_"),
            ("already-ok_1", "already-ok_1"),
            ("../escape", "___escape"),
        ],
    )
    def test_sanitize(self, name, expected):
        assert sanitize_world_name(name) == expected

    def test_world_path(self, tmp_path):
        assert world_path("My World", tmp_path) == tmp_path / "my_world.json"


class TestSaveLoad:
    """Test writing and reading world files."""

    def test_round_trip(self, tmp_path):
        world = WorldDefinition(name="Round Trip", seed=7, noise_params=NoiseParams(continentalness_octaves=8))
        path = save_world(world, tmp_path / "nested" / "world.json")
        assert path.is_file()
        loaded = load_world(path)
        assert loaded.model_dump() == world.model_dump()

    def test_round_trip_with_civilization(self, tmp_path, small_map):
        world = WorldDefinition(name="Civilized", seed=42, width=128, height=64)
        CivilizationGenerator(42).generate(small_map, world)
        loaded = load_world(save_world(world, tmp_path / "civ.json"))

        assert loaded.model_dump() == world.model_dump()
        assert loaded.territory is None
        for faction in loaded.factions:
            assert all(isinstance(key, int) for key in faction.relations)

    def test_territory_not_stored(self, tmp_path, small_map):
        world = WorldDefinition(seed=42, width=128, height=64)
        CivilizationGenerator(42).generate(small_map, world)
        path = save_world(world, tmp_path / "w.json")
        assert "territory" not in path.read_text()

    def test_missing_file(self, tmp_path):
        with pytest.raises(WorldFileError) as exc_info:
            load_world(tmp_path / "missing.json")
        assert exc_info.value.path == tmp_path / "missing.json"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(WorldFormatError):
            load_world(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"width": -5}')
        with pytest.raises(WorldIOError):
            load_world(path)

    def test_unwritable(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(WorldFileError):
            save_world(WorldDefinition(), blocker / "world.json")


class TestWorldDirectory:
    """Test name-based storage."""

    def test_save_and_load_by_name(self, tmp_path):
        world = WorldDefinition(name="My World", seed=3)
        path = save_world_by_name(world, tmp_path)
        assert path == tmp_path / "my_world.json"
        assert load_world_by_name("My World", tmp_path).seed == 3

    def test_list_and_exists(self, tmp_path):
        assert list_worlds(tmp_path / "nowhere") == []
        save_world_by_name(WorldDefinition(name="Beta"), tmp_path)
        save_world_by_name(WorldDefinition(name="Alpha"), tmp_path)
        (tmp_path / "notes.txt").write_text("ignored")

        assert [p.name for p in list_worlds(tmp_path)] == ["alpha.json", "beta.json"]
        assert world_exists("Alpha", tmp_path)
        assert not world_exists("Gamma", tmp_path)

    def test_delete(self, tmp_path):
        save_world_by_name(WorldDefinition(name="Doomed"), tmp_path)
        assert delete_world("Doomed", tmp_path)
        assert not world_exists("Doomed", tmp_path)
        assert not delete_world("Doomed", tmp_path)
