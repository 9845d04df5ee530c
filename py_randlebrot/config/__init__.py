"""
Configuration for world generation.
"""

from .config import Settings, configure_logging, settings

__all__ = ["Settings", "settings", "configure_logging"]
