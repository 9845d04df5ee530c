"""
Faction territory by influence flood-fill.

Settlement cells are seeded with influence by tier. Each iteration, every
unclaimed cell looks at its four neighbours as they stood at the end of the
previous iteration and adopts the strongest claimed neighbour's influence
multiplied by its own biome's decay factor, provided the result exceeds the
threshold. Water has decay 0 and is never claimed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .biomes import BiomeType, biome_lookup
from .settlements import City, CityTier

if TYPE_CHECKING:
    from .biome_map import BiomeMap
    from .factions import Faction

logger = structlog.get_logger()

MAX_ITERATIONS = 200
DEFAULT_THRESHOLD = 0.1

TERRITORY_DECAY = {
    BiomeType.MOUNTAIN: 0.3,
    BiomeType.SNOW_PEAKS: 0.2,
    BiomeType.PLATEAU: 0.5,
    BiomeType.SNOW: 0.6,
    BiomeType.SNOW_BEACH: 0.6,
    BiomeType.TUNDRA: 0.6,
    BiomeType.DESERT: 0.7,
    BiomeType.SAHARA: 0.7,
    BiomeType.FOREST: 0.8,
    BiomeType.BEACH: 0.9,
    BiomeType.PLAINS: 0.95,
}
DECAY_TABLE = biome_lookup(TERRITORY_DECAY, default=0.0)

TIER_INFLUENCE = {
    CityTier.CAPITAL: 1.0,
    CityTier.TOWN: 0.8,
    CityTier.VILLAGE: 0.5,
}


class TerritoryMap:
    """Per-cell owning faction (0 = unclaimed) and influence strength."""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError("TerritoryMap dimensions must be positive")
        self.width = width
        self.height = height
        self.ownership = np.zeros(width * height, dtype=np.int32)
        self.influence = np.zeros(width * height, dtype=np.float64)

    def _index(self, x: int, y: int) -> Optional[int]:
        if 0 <= x < self.width and 0 <= y < self.height:
            return y * self.width + x
        return None

    def get_owner(self, x: int, y: int) -> Optional[int]:
        idx = self._index(x, y)
        return None if idx is None else int(self.ownership[idx])

    def get_influence(self, x: int, y: int) -> Optional[float]:
        idx = self._index(x, y)
        return None if idx is None else float(self.influence[idx])

    def set(self, x: int, y: int, faction_id: int, influence: float) -> None:
        idx = self._index(x, y)
        if idx is not None:
            self.ownership[idx] = faction_id
            self.influence[idx] = min(max(influence, 0.0), 1.0)

    def is_claimed(self, x: int, y: int) -> bool:
        owner = self.get_owner(x, y)
        return owner is not None and owner != 0

    def neighbors(self, x: int, y: int) -> List[Tuple[int, int]]:
        """In-bounds 4-neighbours."""
        candidates = ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1))
        return [(nx, ny) for nx, ny in candidates if self._index(nx, ny) is not None]

    def count_by_faction(self) -> Dict[int, int]:
        owners, counts = np.unique(self.ownership[self.ownership != 0], return_counts=True)
        return {int(o): int(c) for o, c in zip(owners, counts)}

    def total_claimed_area(self) -> int:
        return int(np.count_nonzero(self.ownership))

    def to_image(self, colors: Dict[int, Tuple[int, int, int, int]]) -> bytes:
        """RGBA bytes; unclaimed cells are transparent, alpha scales with influence."""
        rgba = np.zeros((self.ownership.size, 4), dtype=np.uint8)
        for faction_id, color in colors.items():
            mask = self.ownership == faction_id
            if not mask.any():
                continue
            rgba[mask, :3] = color[:3]
            alpha = color[3] if len(color) > 3 else 255
            rgba[mask, 3] = (alpha * (0.5 + 0.5 * self.influence[mask])).astype(np.uint8)
        return rgba.tobytes()


def _shift(grid: np.ndarray, dx: int, dy: int, fill) -> np.ndarray:
    """Value of the neighbour at ``(x + dx, y + dy)`` for every cell."""
    out = np.full_like(grid, fill)
    h, w = grid.shape
    ys_dst = slice(max(-dy, 0), h - max(dy, 0))
    xs_dst = slice(max(-dx, 0), w - max(dx, 0))
    ys_src = slice(max(dy, 0), h - max(-dy, 0))
    xs_src = slice(max(dx, 0), w - max(-dx, 0))
    out[ys_dst, xs_dst] = grid[ys_src, xs_src]
    return out


def flood_fill_step(
    owners: np.ndarray, influence: np.ndarray, decay: np.ndarray, threshold: float
) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    One double-buffered expansion over ``(height, width)`` grids.

    Neighbours are checked left, right, up, down; the first strongest wins.
    Returns the new owner and influence grids and the number of claimed cells.
    """
    best_owner = np.zeros_like(owners)
    best_influence = np.zeros_like(influence)
    for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
        n_owner = _shift(owners, dx, dy, 0)
        n_influence = _shift(influence, dx, dy, 0.0)
        stronger = (n_owner != 0) & (n_influence > best_influence)
        best_owner = np.where(stronger, n_owner, best_owner)
        best_influence = np.where(stronger, n_influence, best_influence)

    new_influence = best_influence * decay
    claim = (owners == 0) & (best_owner != 0) & (decay > 0.0) & (new_influence > threshold)
    claimed = int(np.count_nonzero(claim))
    if claimed:
        owners = np.where(claim, best_owner, owners)
        influence = np.where(claim, new_influence, influence)
    return owners, influence, claimed


def calculate_territories(
    biome_map: "BiomeMap",
    cities: Sequence[City],
    factions: Sequence["Faction"],
    threshold: float = DEFAULT_THRESHOLD,
    max_iterations: int = MAX_ITERATIONS,
) -> TerritoryMap:
    """Seed settlement cells and grow faction influence until stable."""
    territory = TerritoryMap(biome_map.width, biome_map.height)
    shape = (biome_map.height, biome_map.width)
    decay = DECAY_TABLE[biome_map.biome_grid().astype(np.intp)]

    owners = np.zeros(shape, dtype=np.int32)
    influence = np.zeros(shape, dtype=np.float64)
    by_id = {city.id: city for city in cities}
    for faction in factions:
        for settlement_id in faction.settlement_ids:
            city = by_id.get(settlement_id)
            if city is None:
                continue
            x, y = city.position.cell()
            if not biome_map.in_bounds(x, y):
                continue
            strength = 1.0 if settlement_id == faction.capital_id else TIER_INFLUENCE[city.tier]
            if strength > influence[y, x]:
                owners[y, x] = faction.id
                influence[y, x] = strength

    iterations = 0
    for iterations in range(1, max_iterations + 1):
        owners, influence, claimed = flood_fill_step(owners, influence, decay, threshold)
        if not claimed:
            break

    territory.ownership = owners.ravel().copy()
    territory.influence = influence.ravel().copy()
    logger.info(
        "Territory calculated",
        iterations=iterations,
        claimed=territory.total_claimed_area(),
        factions=len(factions),
    )
    return territory
