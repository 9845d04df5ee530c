"""
Core terrain and civilization generation.
"""

from .biome_map import BiomeMap, LayerStrategies
from .biomes import BiomeSplines, BiomeType
from .chunk_hierarchy import CacheConfig, ChunkHierarchy, DetailLevel, WorldChunks
from .civilization import CivilizationConfig, CivilizationGenerator, CivilizationResult
from .progress import LayerId, LayerProgress
from .resources import ResourceMap, ResourceType
from .visualization import NoiseLayer
from .world_definition import NoiseParams, WorldDefinition

__all__ = ['BiomeMap', 'LayerStrategies', 'BiomeSplines', 'BiomeType',
           'CacheConfig', 'ChunkHierarchy', 'DetailLevel', 'WorldChunks',
           'CivilizationConfig', 'CivilizationGenerator', 'CivilizationResult',
           'LayerId', 'LayerProgress', 'ResourceMap', 'ResourceType', 'NoiseLayer',
           'NoiseParams', 'WorldDefinition']
