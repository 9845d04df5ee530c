"""
Deterministic settlement names.

Names are ``prefix + root + suffix``: the prefix list is chosen by culture,
the root list by the site's biome and the suffix list by settlement tier.
Choices come from a numpy generator seeded by the world seed, so the same
world always yields the same names in the same order.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from .biomes import BiomeType
from .cultures import CultureType
from .noise import wrap_seed

CULTURE_PREFIXES: Dict[CultureType, List[str]] = {
    CultureType.TWILIGHT_DWELLER: ["New ", "Old ", "Great ", ""],
    CultureType.FROST_KIN: ["North", "Ice", "Frost", "Winter"],
    CultureType.SUN_FORGED: ["Sun", "Gold", "Bright", "Fire"],
    CultureType.TIDE_WALKER: ["Port ", "Sea", "Harbor ", ""],
    CultureType.STONE_BORN: ["High", "Stone", "Iron", "Mount "],
}

BIOME_ROOTS: Dict[BiomeType, List[str]] = {
    BiomeType.PLAINS: ["field", "dale", "meadow", "green"],
    BiomeType.FOREST: ["wood", "grove", "glen", "shade"],
    BiomeType.MOUNTAIN: ["peak", "crag", "tor", "hold"],
    BiomeType.PLATEAU: ["peak", "crag", "tor", "hold"],
    BiomeType.SNOW_PEAKS: ["peak", "crag", "tor", "hold"],
    BiomeType.BEACH: ["haven", "cove", "bay", "shore"],
    BiomeType.DESERT: ["oasis", "dune", "sand", "mirage"],
    BiomeType.SAHARA: ["oasis", "dune", "sand", "mirage"],
    BiomeType.SNOW: ["frost", "ice", "white", "cold"],
    BiomeType.SNOW_BEACH: ["frost", "ice", "white", "cold"],
    BiomeType.TUNDRA: ["frost", "ice", "white", "cold"],
}

DEFAULT_ROOTS = ["town", "stead", "burg", "haven"]

# Keyed by CityTier value to avoid importing settlements
TIER_SUFFIXES: Dict[str, List[str]] = {
    "capital": [" City", " Capital", "", " Prime"],
    "town": ["ton", "ville", "burg", ""],
    "village": ["", " Village", " Hamlet", ""],
}


class SettlementNameGenerator:
    """Seeded name source for one world."""

    def __init__(self, seed: int, rng: Optional[np.random.Generator] = None):
        self.seed = seed
        self.rng = rng if rng is not None else np.random.default_rng(wrap_seed(seed))
        self._issued = set()

    def generate(self, culture_type: CultureType, biome: BiomeType, tier: str) -> str:
        """
        Build a name for a settlement.

        ``tier`` is a ``CityTier`` value. Repeated names get a roman numeral
        so every settlement in a world is distinct.
        """
        prefix = self._choice(CULTURE_PREFIXES[CultureType(culture_type)])
        root = self._choice(BIOME_ROOTS.get(BiomeType(biome), DEFAULT_ROOTS))
        suffix = self._choice(TIER_SUFFIXES[getattr(tier, "value", tier)])

        # Capitalise the root when the prefix is a separate word or absent
        if not prefix or prefix.endswith(" "):
            root = root.capitalize()
        name = f"{prefix}{root}{suffix}".strip()

        if name in self._issued:
            numeral = 2
            while f"{name} {_roman(numeral)}" in self._issued:
                numeral += 1
            name = f"{name} {_roman(numeral)}"

        self._issued.add(name)
        return name

    def _choice(self, options: Sequence[str]) -> str:
        return options[int(self.rng.integers(len(options)))]


def _roman(number: int) -> str:
    numerals = [
        (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"), (100, "C"), (90, "XC"),
        (50, "L"), (40, "XL"), (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
    ]
    result = []
    for value, symbol in numerals:
        while number >= value:
            result.append(symbol)
            number -= value
    return "".join(result)
