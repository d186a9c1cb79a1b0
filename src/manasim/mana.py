"""
Mana solver: what the battlefield can produce right now, and whether a
cost can be paid from it.

Colored requirements are checked with a bipartite matching (Kuhn's
augmenting paths) between pips and individual mana units, so a source
that makes either of two colors is never committed to the wrong pip.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .cards import (
    ArtifactCard,
    Card,
    CostReducerCard,
    CreatureCard,
    LandCard,
    RitualCard,
    colored_pips,
)
from .types import COLORS, WILDCARD, LandProduction, ManaCondition
from .zones import Permanent


@dataclass
class ManaSource:
    """One untapped permanent (or burst card) and what tapping it makes."""

    produces: Tuple[str, ...]
    amount: int
    permanent: Optional[Permanent] = None

    def can_make(self, color: str) -> bool:
        return color in self.produces or WILDCARD in self.produces


@dataclass
class ManaAvailability:
    """Snapshot of producible mana."""

    sources: List[ManaSource] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(source.amount for source in self.sources)

    @property
    def units(self) -> List[Tuple[str, ...]]:
        """One entry per mana unit, tagged with the colors it can be."""
        units = []
        for source in self.sources:
            units.extend([source.produces] * source.amount)
        return units

    @property
    def colors(self) -> Dict[str, int]:
        """Mana units able to produce each color."""
        counts = {color: 0 for color in COLORS}
        for source in self.sources:
            for color in COLORS:
                if source.can_make(color):
                    counts[color] += source.amount
        return counts

    def with_sources(self, extra: Sequence[ManaSource]) -> "ManaAvailability":
        return ManaAvailability(sources=self.sources + list(extra))


def _has_active_creature(battlefield: Sequence[Permanent]) -> bool:
    return any(p.card.is_creature and not p.summoning_sick for p in battlefield)


def scaled_amount(card: Card, turn_number: int) -> int:
    """Base mana amount plus any per-turn growth from a scaling override."""
    growth = getattr(card, "mana_growth", 0)
    return card.mana_amount + int(growth * max(0, turn_number - 1))


def land_output(
    land: LandCard, battlefield: Sequence[Permanent], turn_number: int
) -> Tuple[Tuple[str, ...], int]:
    """
    Colors and amount an untapped land makes this turn.

    Returns:
        Tuple of (produces, amount); amount may be 0
    """
    production = land.production
    if production is LandProduction.SWAMP_COUNT:
        swamps = sum(1 for p in battlefield if p.is_land and "Swamp" in p.card.subtypes)
        return land.produces, max(0, swamps - 2)
    if production is LandProduction.BASIC_SWAMP_COUNT:
        swamps = sum(
            1 for p in battlefield if p.is_land and p.card.is_basic and "Swamp" in p.card.subtypes
        )
        return land.produces, max(0, swamps - 2)
    if production is LandProduction.CREATURE_SACRIFICE:
        if _has_active_creature(battlefield):
            return ("B",), 2
        return ("C",), 1
    if production is LandProduction.LAND_COUNT_THRESHOLD:
        lands = sum(1 for p in battlefield if p.is_land)
        return land.produces, land.mana_amount if lands >= land.min_land_count else 0
    if production is LandProduction.TURN_SCALING:
        return land.produces, max(land.mana_floor, turn_number - 1)
    return land.produces, scaled_amount(land, turn_number)


def artifact_condition_met(
    artifact: ArtifactCard,
    battlefield: Sequence[Permanent],
    turn_number: int,
    simplify_conditions: bool = True,
) -> bool:
    if artifact.condition is ManaCondition.METALCRAFT:
        if simplify_conditions and turn_number >= 3:
            return True
        return sum(1 for p in battlefield if p.card.is_artifact) >= 3
    if artifact.condition is ManaCondition.LEGENDARY:
        if simplify_conditions:
            return True
        return any(p.card.is_legendary for p in battlefield)
    return True


def availability(
    battlefield: Sequence[Permanent], turn_number: int, simplify_conditions: bool = True
) -> ManaAvailability:
    """
    Mana producible from untapped permanents.

    Args:
        battlefield: Permanents in play
        turn_number: Current turn, starting at 1
        simplify_conditions: Relax metalcraft (from turn 3) and legendary checks

    Returns:
        ManaAvailability with one source per producing permanent
    """
    sources = []
    for permanent in battlefield:
        if permanent.tapped:
            continue
        card = permanent.card
        if isinstance(card, LandCard):
            produces, amount = land_output(card, battlefield, turn_number)
        elif isinstance(card, ArtifactCard):
            if not artifact_condition_met(card, battlefield, turn_number, simplify_conditions):
                continue
            produces, amount = card.produces, scaled_amount(card, turn_number)
        elif isinstance(card, CreatureCard):
            if permanent.summoning_sick:
                continue
            produces, amount = card.produces, scaled_amount(card, turn_number)
        else:
            continue
        if produces and amount > 0:
            sources.append(ManaSource(produces=tuple(produces), amount=amount, permanent=permanent))
    return ManaAvailability(sources=sources)


def burst_sources(hand: Sequence[Card], available: ManaAvailability) -> List[ManaSource]:
    """
    One-shot mana the hand could add this turn.

    Burst artifacts add their full amount; rituals add their net gain when
    they are castable from the current availability.
    """
    extra = []
    for card in hand:
        if isinstance(card, ArtifactCard) and card.is_burst:
            extra.append(ManaSource(produces=card.produces, amount=card.mana_amount))
        elif isinstance(card, RitualCard) and card.net_gain > 0:
            if can_pay(card, available):
                extra.append(ManaSource(produces=card.colors or ("C",), amount=card.net_gain))
    return extra


def solve_color_pips(
    pips: Sequence[FrozenSet[str]], units: Sequence[Tuple[str, ...]]
) -> bool:
    """
    Whether every colored pip can be assigned a distinct mana unit.

    Args:
        pips: Allowed colors per pip ({"W"}, or {"W", "U"} for hybrid)
        units: Colors each mana unit can be ("*" matches anything)

    Returns:
        True if a perfect matching of pips into units exists
    """
    if len(pips) > len(units):
        return False

    owner = [-1] * len(units)

    def pays(unit: Tuple[str, ...], pip: FrozenSet[str]) -> bool:
        return WILDCARD in unit or any(color in pip for color in unit)

    def augment(pip_index: int, visited: List[bool]) -> bool:
        for unit_index, unit in enumerate(units):
            if visited[unit_index] or not pays(unit, pips[pip_index]):
                continue
            visited[unit_index] = True
            if owner[unit_index] == -1 or augment(owner[unit_index], visited):
                owner[unit_index] = pip_index
                return True
        return False

    for pip_index in range(len(pips)):
        if not augment(pip_index, [False] * len(units)):
            return False
    return True


def cost_discount(card: Card, battlefield: Sequence[Permanent]) -> int:
    """Generic mana the cost reducers in play take off this card."""
    return sum(
        p.card.discount
        for p in battlefield
        if isinstance(p.card, CostReducerCard) and p.card.reduces(card)
    )


def can_pay(card: Card, available: ManaAvailability, discount: int = 0) -> bool:
    """
    Total covers the card's cmc and its colored pips can all be matched.

    A discount only comes off the generic part of the cost; colored pips
    are always paid in full.
    """
    generic = max(0, card.cmc - len(card.pips))
    if card.cmc - min(discount, generic) > available.total:
        return False
    pips = card.pips
    if not pips:
        return True
    return solve_color_pips(pips, available.units)


def tap_for_cost(
    sources: Sequence[ManaSource], mana_cost: str, cmc: int
) -> List[Permanent]:
    """
    Tap permanents to pay a cost.

    Greedy: each colored pip taps the least flexible untapped source that
    makes one of its colors, then generic mana taps the least flexible
    remaining sources. The matching in can_pay decides castability; this
    only decides which permanents end up tapped, so a greedy choice can
    occasionally tap a source a later spell would have wanted.

    Returns:
        Permanents that were tapped
    """
    remaining = cmc
    tapped = []
    pool = sorted(
        (s for s in sources if s.permanent is not None and not s.permanent.tapped),
        key=lambda s: 5 if WILDCARD in s.produces else len(s.produces),
    )

    for pip in colored_pips(mana_cost):
        if remaining <= 0:
            break
        for source in pool:
            if source.permanent.tapped:
                continue
            if any(source.can_make(color) for color in pip):
                source.permanent.tapped = True
                tapped.append(source.permanent)
                remaining -= source.amount
                break

    for source in pool:
        if remaining <= 0:
            break
        if source.permanent.tapped:
            continue
        source.permanent.tapped = True
        tapped.append(source.permanent)
        remaining -= source.amount
    return tapped
