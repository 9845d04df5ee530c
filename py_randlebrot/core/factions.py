"""
Political factions.

One faction forms around each culture that founded a capital. The capital
joins its culture's faction and the remaining settlements are dealt out
round-robin. Each faction's disposition is a deterministic perturbation of
its culture's baseline, hashed from the world seed and faction id.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, Field

from .cultures import CultureType
from .settlements import City, CityTier

logger = structlog.get_logger()

HOSTILE_THRESHOLD = -0.3
ALLIED_THRESHOLD = 0.5

# Knuth multiplicative hash constant
_HASH_MULTIPLIER = 2654435761

# (aggressiveness, trade_openness, isolationism) per culture
_BASE_DISPOSITIONS: Dict[CultureType, Tuple[float, float, float]] = {
    CultureType.TWILIGHT_DWELLER: (0.4, 0.7, 0.2),
    CultureType.FROST_KIN: (0.6, 0.3, 0.6),
    CultureType.SUN_FORGED: (0.5, 0.5, 0.4),
    CultureType.TIDE_WALKER: (0.3, 0.9, 0.1),
    CultureType.STONE_BORN: (0.5, 0.4, 0.5),
}


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class FactionDisposition(BaseModel):
    aggressiveness: float = Field(default=0.5, ge=0.0, le=1.0)
    trade_openness: float = Field(default=0.5, ge=0.0, le=1.0)
    isolationism: float = Field(default=0.5, ge=0.0, le=1.0)

    @classmethod
    def from_culture_and_seed(cls, culture: CultureType, seed: int) -> "FactionDisposition":
        """Culture baseline perturbed by up to ±0.2 per trait."""
        h = (int(seed) * _HASH_MULTIPLIER) & 0xFFFFFFFF
        r1 = (h & 0xFF) / 255.0
        r2 = ((h >> 8) & 0xFF) / 255.0
        r3 = ((h >> 16) & 0xFF) / 255.0
        aggressiveness, trade_openness, isolationism = _BASE_DISPOSITIONS[CultureType(culture)]
        return cls(
            aggressiveness=_clamp(aggressiveness + (r1 - 0.5) * 0.4, 0.0, 1.0),
            trade_openness=_clamp(trade_openness + (r2 - 0.5) * 0.4, 0.0, 1.0),
            isolationism=_clamp(isolationism + (r3 - 0.5) * 0.4, 0.0, 1.0),
        )


def initial_relation(a: FactionDisposition, b: FactionDisposition) -> float:
    """Starting relation between two factions in [-1, 1]; symmetric."""
    score = (
        0.5 * (a.trade_openness + b.trade_openness)
        - 0.5 * (a.aggressiveness + b.aggressiveness)
        - 0.25 * (a.isolationism + b.isolationism)
    )
    return _clamp(score, -1.0, 1.0)


class Faction(BaseModel):
    id: int = Field(description="Faction identifier, starting at 1")
    name: str = Field(description="Faction name")
    culture: CultureType = Field(description="Source culture")
    color: Tuple[int, int, int, int] = Field(default=(128, 128, 128, 200), description="RGBA map color")
    capital_id: Optional[int] = Field(default=None, description="Capital settlement id")
    settlement_ids: List[int] = Field(default_factory=list, description="Member settlements")
    relations: Dict[int, float] = Field(default_factory=dict, description="Relation to other factions")
    disposition: FactionDisposition = Field(default_factory=FactionDisposition)

    def add_settlement(self, settlement_id: int) -> None:
        if settlement_id not in self.settlement_ids:
            self.settlement_ids.append(settlement_id)

    def set_capital(self, settlement_id: int) -> None:
        self.capital_id = settlement_id
        self.add_settlement(settlement_id)

    def get_relation(self, other_id: int) -> float:
        return self.relations.get(other_id, 0.0)

    def set_relation(self, other_id: int, value: float) -> None:
        self.relations[other_id] = _clamp(value, -1.0, 1.0)

    def is_hostile(self, other_id: int) -> bool:
        return self.get_relation(other_id) < HOSTILE_THRESHOLD

    def is_allied(self, other_id: int) -> bool:
        return self.get_relation(other_id) > ALLIED_THRESHOLD

    @property
    def settlement_count(self) -> int:
        return len(self.settlement_ids)


def create_factions(seed: int, cities: Sequence[City]) -> List[Faction]:
    """
    Form factions from placed cities.

    Faction ids start at 1 so 0 can mean "unclaimed" in territory maps.
    """
    factions: List[Faction] = []

    for culture_type in CultureType:
        capital = next(
            (c for c in cities if c.tier is CityTier.CAPITAL and c.culture == culture_type),
            None,
        )
        if capital is None:
            continue
        faction_id = len(factions) + 1
        faction = Faction(
            id=faction_id,
            name=culture_type.default_faction_name,
            culture=culture_type,
            color=culture_type.color,
            disposition=FactionDisposition.from_culture_and_seed(culture_type, int(seed) + faction_id),
        )
        faction.set_capital(capital.id)
        factions.append(faction)

    if not factions:
        return factions

    capital_ids = {f.capital_id for f in factions}
    members = [c for c in cities if c.id not in capital_ids]
    for position, city in enumerate(members):
        factions[position % len(factions)].add_settlement(city.id)

    for a in factions:
        for b in factions:
            if a.id != b.id:
                a.set_relation(b.id, initial_relation(a.disposition, b.disposition))

    logger.info(
        "Factions formed",
        factions=len(factions),
        settlements=sum(f.settlement_count for f in factions),
    )
    return factions
