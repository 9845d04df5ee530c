"""
Saving and loading world definitions as JSON.

Worlds are stored one per file under the configured worlds directory, named
by their sanitized world name. Terrain is not stored; it is regenerated from
the seed. Failures surface as ``WorldFileError`` (the file system) or
``WorldFormatError`` (the file contents), both subclasses of ``WorldIOError``.
"""

from pathlib import Path
from typing import List, Optional, Union

import structlog
from pydantic import ValidationError

from ..config import settings
from ..core.world_definition import WorldDefinition

logger = structlog.get_logger()

WORLD_EXTENSION = ".json"

PathLike = Union[str, Path]


class WorldIOError(Exception):
    """Base error for world persistence."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class WorldFileError(WorldIOError):
    """The world file could not be read, written or removed."""


class WorldFormatError(WorldIOError):
    """The world file exists but does not hold a valid world definition."""


def sanitize_world_name(name: str) -> str:
    """Lowercase ``name`` and replace anything but alphanumerics, ``-`` and ``_`` with ``_``."""
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name).lower()


def _worlds_dir(worlds_dir: Optional[PathLike]) -> Path:
    return Path(worlds_dir if worlds_dir is not None else settings.worlds_dir)


def world_path(name: str, worlds_dir: Optional[PathLike] = None) -> Path:
    return _worlds_dir(worlds_dir) / f"{sanitize_world_name(name)}{WORLD_EXTENSION}"


def save_world(world: WorldDefinition, path: PathLike) -> Path:
    """Write ``world`` to ``path``, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(world.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise WorldFileError(f"Failed to write world to {path}: {e}", path) from e
    logger.info("World saved", name=world.name, path=str(path))
    return path


def load_world(path: PathLike) -> WorldDefinition:
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as e:
        raise WorldFileError(f"Failed to read world from {path}: {e}", path) from e
    try:
        world = WorldDefinition.model_validate_json(contents)
    except ValidationError as e:
        raise WorldFormatError(f"Invalid world file {path}: {e}", path) from e
    logger.info("World loaded", name=world.name, path=str(path))
    return world


def save_world_by_name(world: WorldDefinition, worlds_dir: Optional[PathLike] = None) -> Path:
    return save_world(world, world_path(world.name, worlds_dir))


def load_world_by_name(name: str, worlds_dir: Optional[PathLike] = None) -> WorldDefinition:
    return load_world(world_path(name, worlds_dir))


def list_worlds(worlds_dir: Optional[PathLike] = None) -> List[Path]:
    """Sorted world files in the directory; empty when it does not exist."""
    directory = _worlds_dir(worlds_dir)
    if not directory.is_dir():
        return []
    try:
        return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == WORLD_EXTENSION)
    except OSError as e:
        raise WorldFileError(f"Failed to list worlds in {directory}: {e}", directory) from e


def world_exists(name: str, worlds_dir: Optional[PathLike] = None) -> bool:
    return world_path(name, worlds_dir).is_file()


def delete_world(name: str, worlds_dir: Optional[PathLike] = None) -> bool:
    """Remove a saved world. Returns False when there was nothing to remove."""
    path = world_path(name, worlds_dir)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as e:
        raise WorldFileError(f"Failed to delete world {path}: {e}", path) from e
    logger.info("World deleted", name=name, path=str(path))
    return True
