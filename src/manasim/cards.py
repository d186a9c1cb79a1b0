"""
Card records consumed by the simulator, plus mana cost parsing.

Cards are immutable templates shared by every trial; per-trial state
(tapped, summoning sickness) lives on zones.Permanent.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, List, Optional, Tuple

from .types import (
    COLORS,
    CardKind,
    DamageRule,
    EtbCost,
    FetchType,
    LandArchetype,
    LandProduction,
    ManaCondition,
    RampFilter,
)

_SYMBOL_RE = re.compile(r"\{([^}]+)\}")


def parse_mana_symbols(mana_cost: Optional[str]) -> List[str]:
    """Split "{2}{W/U}{B}" into ["2", "W/U", "B"]."""
    if not mana_cost:
        return []
    return [symbol.upper() for symbol in _SYMBOL_RE.findall(mana_cost)]


@lru_cache(maxsize=4096)
def colored_pips(mana_cost: Optional[str]) -> Tuple[FrozenSet[str], ...]:
    """
    Colored requirements of a mana cost, one entry per pip.

    Each entry is the set of colors that can pay that pip: {"W"} for {W},
    {"W", "U"} for hybrid {W/U}. Generic, colorless, X and Phyrexian
    symbols (and two-or-color hybrids like {2/W}) impose nothing.
    """
    pips = []
    for symbol in parse_mana_symbols(mana_cost):
        parts = symbol.split("/")
        if "P" in parts or any(part.isdigit() for part in parts):
            continue
        colors = frozenset(part for part in parts if part in COLORS)
        if colors and len(colors) == len(parts):
            pips.append(colors)
    return tuple(pips)


def calculate_cmc(mana_cost: Optional[str]) -> int:
    """Converted cost from symbols: digits add their value, X/Y/Z add nothing."""
    total = 0
    for symbol in parse_mana_symbols(mana_cost):
        if symbol.isdigit():
            total += int(symbol)
        elif symbol in ("X", "Y", "Z"):
            continue
        else:
            total += 1
    return total


def resolve_cmc(reported: Optional[float], mana_cost: Optional[str]) -> int:
    """Trust the reported cmc unless it is missing, or 0 while the cost says otherwise."""
    calculated = calculate_cmc(mana_cost)
    if reported is None:
        return calculated
    reported = int(reported)
    if reported == 0 and calculated > 0:
        return calculated
    return reported


@dataclass(frozen=True)
class Card:
    """Fields shared by every card variant."""

    name: str
    type_line: str = ""
    oracle_text: str = ""
    mana_cost: str = ""
    cmc: int = 0

    kind = CardKind.SPELL

    @property
    def is_land(self) -> bool:
        return self.kind is CardKind.LAND

    @property
    def pips(self) -> Tuple[FrozenSet[str], ...]:
        return colored_pips(self.mana_cost)

    @property
    def is_creature(self) -> bool:
        return "Creature" in self.type_line

    @property
    def is_artifact(self) -> bool:
        return "Artifact" in self.type_line

    @property
    def is_legendary(self) -> bool:
        return "Legendary" in self.type_line


@dataclass(frozen=True)
class FetchAbility:
    """How a land finds other lands."""

    fetch_type: FetchType
    colors: FrozenSet[str] = frozenset(COLORS)
    """Colors whose basic land types are legal targets"""

    cost: int = 0
    """Generic mana paid to activate"""

    only_basics: bool = False
    fetched_enters_tapped: bool = False
    lands_fetched: int = 1


@dataclass(frozen=True)
class LandCard(Card):
    produces: Tuple[str, ...] = ()
    subtypes: Tuple[str, ...] = ()
    is_basic: bool = False
    enters_tapped_always: bool = False
    archetype: LandArchetype = LandArchetype.NONE
    check_types: Tuple[str, ...] = ()
    """Subtypes that untap a check land"""

    is_bounce: bool = False
    life_loss: int = 0
    """Life paid when a shock land enters untapped"""

    damage: DamageRule = DamageRule.NONE
    damage_amount: float = 0
    production: LandProduction = LandProduction.FIXED
    mana_amount: int = 1
    mana_floor: int = 1
    min_land_count: int = 0
    sacrifice_on_land_drop: bool = False
    """Sacrificed when any other land is played"""

    mana_growth: float = 0
    """Extra mana per turn after the first (scaling override)"""

    fetch: Optional[FetchAbility] = None

    kind = CardKind.LAND

    @property
    def is_fetch(self) -> bool:
        return self.fetch is not None

    @property
    def is_snow(self) -> bool:
        return "snow" in self.name.lower() or "Snow" in self.type_line


@dataclass(frozen=True)
class ArtifactCard(Card):
    produces: Tuple[str, ...] = ()
    mana_amount: int = 1
    enters_tapped: bool = False
    doesnt_untap: bool = False
    etb_cost: EtbCost = EtbCost.NONE
    condition: ManaCondition = ManaCondition.NONE
    is_burst: bool = False
    priority: bool = False
    """Cast before other permanents (free moxen)"""

    damage: DamageRule = DamageRule.NONE
    damage_amount: float = 0
    mana_growth: float = 0

    kind = CardKind.ARTIFACT


@dataclass(frozen=True)
class CreatureCard(Card):
    produces: Tuple[str, ...] = ()
    mana_amount: int = 1
    mana_growth: float = 0

    kind = CardKind.CREATURE


@dataclass(frozen=True)
class ExplorationCard(Card):
    lands_per_turn: int = 2

    kind = CardKind.EXPLORATION


@dataclass(frozen=True)
class RampSpellCard(Card):
    lands_to_battlefield: int = 1
    lands_tapped: bool = True
    lands_to_hand: int = 0
    sacrifice_land: bool = False
    land_filter: RampFilter = RampFilter.BASIC
    fetch_subtypes: Tuple[str, ...] = ()

    kind = CardKind.RAMP_SPELL


@dataclass(frozen=True)
class RitualCard(Card):
    mana_produced: int = 1
    net_gain: int = 0
    colors: Tuple[str, ...] = ()

    kind = CardKind.RITUAL


@dataclass(frozen=True)
class CostReducerCard(Card):
    """A permanent that makes matching spells cost less generic mana."""

    discount: int = 1
    spell_types: Tuple[str, ...] = ()
    """Type line words a spell needs (any of them); empty matches every spell"""

    exclude_types: Tuple[str, ...] = ()
    colors: Tuple[str, ...] = ()
    """Colors a spell needs a pip of (any of them); empty matches every spell"""

    kind = CardKind.COST_REDUCER

    def reduces(self, card: Card) -> bool:
        if card.is_land:
            return False
        if self.spell_types and not any(t in card.type_line for t in self.spell_types):
            return False
        if any(t in card.type_line for t in self.exclude_types):
            return False
        if self.colors and not any(color in pip for pip in card.pips for color in self.colors):
            return False
        return True


@dataclass(frozen=True)
class DrawSpellCard(Card):
    """Card draw, either once on resolution or every upkeep while in play."""

    one_time: bool = True
    cards_drawn: int = 1
    """Cards drawn on resolution (one-time draw)"""

    cards_per_turn: float = 0
    """Average cards drawn each upkeep (repeating draw)"""

    stays_on_battlefield: bool = False

    kind = CardKind.DRAW_SPELL


@dataclass(frozen=True)
class SpellCard(Card):
    key_card_only: bool = False
    """Spell face of a modal double-faced land; tracked but never drawn"""

    kind = CardKind.SPELL


@dataclass
class DeckEntry:
    """A classified card and how many copies the deck runs."""

    card: Card
    quantity: int = 1
