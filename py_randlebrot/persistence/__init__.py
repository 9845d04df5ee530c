"""
World definition persistence.
"""

from .world_io import (
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

__all__ = ['WorldIOError', 'WorldFileError', 'WorldFormatError', 'sanitize_world_name',
           'world_path', 'save_world', 'save_world_by_name', 'load_world', 'load_world_by_name',
           'list_worlds', 'world_exists', 'delete_world']
