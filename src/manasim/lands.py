"""
Land resolver: whether a land enters tapped, which land to play, and
which land a fetch effect should find.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .cards import Card, LandCard, RampSpellCard
from .mana import availability, tap_for_cost
from .types import (
    BASIC_LAND_TYPES,
    COLOR_TO_LAND_TYPE,
    COLORS,
    SHOCK_PAY_LAST_TURN,
    WILDCARD,
    FetchType,
    LandArchetype,
    RampFilter,
)
from .zones import Permanent, Zones

logger = logging.getLogger("manasim.lands")

CLASSIC_FETCH_LIFE = 1


def _life_suffix(life: float) -> str:
    return f" [-{life:g} life]" if life else ""


def _state(tapped: bool) -> str:
    return "tapped" if tapped else "untapped"


def enters_tapped(land: LandCard, lands_in_play: Sequence[LandCard], commander_mode: bool = False) -> bool:
    """
    Whether a land would enter tapped, before any life payment.

    Args:
        land: Land being played or fetched
        lands_in_play: Lands already on the battlefield
        commander_mode: Multiplayer game (crowd lands enter untapped)
    """
    archetype = land.archetype
    if archetype is LandArchetype.SHOCK:
        return True
    if archetype is LandArchetype.FAST:
        return len(lands_in_play) > 2
    if archetype is LandArchetype.BATTLE:
        return sum(1 for other in lands_in_play if other.is_basic) < 2
    if archetype is LandArchetype.CHECK:
        required = set(land.check_types) or {
            COLOR_TO_LAND_TYPE[color] for color in land.produces if color in COLOR_TO_LAND_TYPE
        }
        if not required:
            return False
        return not any(required.intersection(other.subtypes) for other in lands_in_play)
    if archetype is LandArchetype.CROWD:
        return not commander_mode
    return land.enters_tapped_always


def matches_ramp_filter(land: LandCard, spell: RampSpellCard) -> bool:
    """Whether a ramp spell may put this land onto the battlefield or into hand."""
    land_filter = spell.land_filter
    if land_filter is RampFilter.ANY:
        return True
    if land_filter is RampFilter.SUBTYPE:
        return any(subtype in spell.fetch_subtypes for subtype in land.subtypes)
    if land_filter is RampFilter.SNOW:
        return land.is_snow
    return land.is_basic


def _survives_land_drop(land: LandCard, played: LandCard) -> bool:
    return not (getattr(land, "sacrifice_on_land_drop", False) and land.name != played.name)


def _bounce_targets(lands_in_play: Sequence[LandCard], bounce_land: LandCard) -> List[LandCard]:
    """Non-bounce lands still in play once the bounce land resolves."""
    return [
        land for land in lands_in_play
        if not land.is_bounce and _survives_land_drop(land, bounce_land)
    ]


def _untapped_on_entry(
    land: LandCard, lands_in_play: Sequence[LandCard], turn_number: int, commander_mode: bool
) -> bool:
    if land.archetype is LandArchetype.SHOCK and turn_number <= SHOCK_PAY_LAST_TURN:
        return True
    return not enters_tapped(land, lands_in_play, commander_mode)


def select_best_land(
    hand: Sequence[Card],
    battlefield: Sequence[Permanent],
    turn_number: int,
    commander_mode: bool = False,
) -> Optional[LandCard]:
    """
    Choose the land to play this drop.

    Preference: an affordable fetch (other than pay-to-fetch lands), then
    a land that would enter untapped, then a bounce land, then whatever is
    left. Bounce lands are only legal with a non-bounce land to return.

    Returns:
        The land to play, or None if no land in hand is playable
    """
    lands_in_play = [p.card for p in battlefield if p.is_land]
    playable = [
        card for card in hand
        if isinstance(card, LandCard)
        and (not card.is_bounce or _bounce_targets(lands_in_play, card))
    ]
    if not playable:
        return None

    untapped_lands = sum(1 for p in battlefield if p.is_land and not p.tapped)
    for land in playable:
        if land.is_fetch and land.fetch.fetch_type is not FetchType.MANA_COST:
            if untapped_lands >= land.fetch.cost:
                return land

    for land in playable:
        if not land.is_bounce and _untapped_on_entry(land, lands_in_play, turn_number, commander_mode):
            return land

    for land in playable:
        if land.is_bounce:
            return land
    return playable[0]


def _colors_of(produces: Iterable[str]) -> Set[str]:
    produces = set(produces)
    if WILDCARD in produces:
        return set(COLORS)
    return produces & set(COLORS)


def _missing_colors(battlefield: Sequence[Permanent], key_cards: Sequence[Card]) -> Set[str]:
    needed = set()
    for card in key_cards:
        for pip in card.pips:
            needed |= pip
    current = set()
    for permanent in battlefield:
        if permanent.card.is_creature and permanent.summoning_sick:
            continue
        current |= _colors_of(getattr(permanent.card, "produces", ()))
    return needed - current


def _fetchable(land: Card, fetch_colors: Iterable[str], only_basics: bool) -> bool:
    if not isinstance(land, LandCard):
        return False
    if only_basics and not land.is_basic:
        return False
    return any(BASIC_LAND_TYPES.get(subtype) in fetch_colors for subtype in land.subtypes)


def score_fetch_target(land: LandCard, missing: Set[str], turn_number: int) -> int:
    """Heuristic value of fetching this land given the colors still missing."""
    colors = _colors_of(land.produces)
    provided = len(colors & missing)
    score = 0
    if provided:
        score += 300 + 250 * (provided - 1)
    if turn_number <= 2 and len(colors) >= 3:
        score += 1000
    if turn_number >= 6 and land.archetype is LandArchetype.SHOCK:
        score -= 100
    if len(colors) >= 2:
        score += 100
    return score


def _best(candidates: Sequence[LandCard], missing: Set[str], turn_number: int) -> Optional[LandCard]:
    # First of equal scores wins
    best, best_score = None, None
    for land in candidates:
        score = score_fetch_target(land, missing, turn_number)
        if best_score is None or score > best_score:
            best, best_score = land, score
    return best


def select_fetch_targets(
    fetch_land: LandCard,
    library: Sequence[Card],
    battlefield: Sequence[Permanent],
    key_cards: Sequence[Card],
    turn_number: int,
) -> List[LandCard]:
    """
    Choose the land(s) a fetch effect puts onto the battlefield.

    Candidates must match the fetch's colors (by basic land type) and be
    basic when the fetch only finds basics. Two-land fetches pick a second
    land of the same name when limited to basics, otherwise one covering a
    different basic type where possible.

    Returns:
        Chosen library cards (empty if nothing is eligible)
    """
    ability = fetch_land.fetch
    candidates = [
        card for card in library if _fetchable(card, ability.colors, ability.only_basics)
    ]
    missing = _missing_colors(battlefield, key_cards)
    first = _best(candidates, missing, turn_number)
    if first is None:
        return []
    targets = [first]

    if ability.lands_fetched >= 2:
        rest = list(candidates)
        rest.remove(first)
        if ability.only_basics:
            second = next((card for card in rest if card.name == first.name), None)
        else:
            different = [card for card in rest if not set(card.subtypes) & set(first.subtypes)]
            missing -= _colors_of(first.produces)
            second = _best(different, missing, turn_number) or _best(rest, missing, turn_number)
        if second is not None:
            targets.append(second)
    return targets


def _put_fetched(
    zones: Zones,
    targets: Sequence[LandCard],
    force_tapped: bool,
    turn_number: int,
    commander_mode: bool,
) -> Tuple[List[str], float]:
    """Move fetched lands from library to battlefield; returns descriptions and life paid."""
    described = []
    life = 0
    for target in targets:
        zones.library.remove(target)
        tapped = force_tapped or enters_tapped(target, zones.land_cards(), commander_mode)
        paid = 0
        if (
            not force_tapped
            and target.archetype is LandArchetype.SHOCK
            and turn_number <= SHOCK_PAY_LAST_TURN
        ):
            tapped = False
            paid = target.life_loss
        zones.put_onto_battlefield(target, tapped=tapped)
        life += paid
        described.append(f"{target.name} ({_state(tapped)})")
    return described, life


def play_land(
    land: LandCard,
    zones: Zones,
    turn_number: int,
    key_cards: Sequence[Card],
    actions: List[str],
    commander_mode: bool = False,
) -> Tuple[bool, float]:
    """
    Play a land from hand.

    Handles lands sacrificed when another land is played, hideaway-style
    fetches that sacrifice on entry, bounce lands and shock-land payment.

    Returns:
        Tuple of (land_drop_used, life_lost)
    """
    if land.is_bounce and not _bounce_targets(zones.land_cards(), land):
        actions.append(f"Cannot play {land.name} (no non-bounce lands to bounce)")
        return False, 0

    zones.hand.remove(land)
    for permanent in list(zones.battlefield):
        card = permanent.card
        if isinstance(card, LandCard) and not _survives_land_drop(card, land):
            zones.remove_permanent(permanent)
            zones.graveyard.append(card)
            actions.append(f"Sacrificed {card.name} (another land played)")

    if land.is_fetch and land.fetch.fetch_type is FetchType.AUTO_SACRIFICE:
        targets = select_fetch_targets(land, zones.library, zones.battlefield, key_cards, turn_number)
        if targets:
            zones.graveyard.append(land)
            fetched, life = _put_fetched(
                zones, targets, land.fetch.fetched_enters_tapped, turn_number, commander_mode
            )
            actions.append(
                f"Played {land.name}, sacrificed it to fetch {', '.join(fetched)}{_life_suffix(life)}"
            )
            return True, life
        zones.put_onto_battlefield(land, tapped=True)
        actions.append(f"Played {land.name} (tapped)")
        return True, 0

    tapped = enters_tapped(land, zones.land_cards(), commander_mode)
    life = 0
    if land.archetype is LandArchetype.SHOCK and turn_number <= SHOCK_PAY_LAST_TURN:
        tapped = False
        life = land.life_loss

    if land.is_bounce:
        non_bounce = [p for p in zones.lands() if not p.card.is_bounce]
        returned = next((p for p in non_bounce if p.tapped), None) or non_bounce[0]
        zones.put_onto_battlefield(land, tapped=True)
        zones.remove_permanent(returned)
        zones.hand.append(returned.card)
        actions.append(
            f"Played {land.name} (tapped), bounced {returned.name} ({_state(returned.tapped)})"
        )
        return True, 0

    zones.put_onto_battlefield(land, tapped=tapped)
    actions.append(f"Played {land.name} ({_state(tapped)}){_life_suffix(life)}")
    return True, life


def activate_fetches(
    zones: Zones,
    turn_number: int,
    key_cards: Sequence[Card],
    actions: List[str],
    commander_mode: bool = False,
    simplify_conditions: bool = True,
) -> float:
    """
    Crack every untapped fetch land that can pay its activation cost.

    Generic costs are paid by tapping other lands. Classic fetches cost
    1 life; shock lands found this way are paid for through turn 6 unless
    the fetch puts them in tapped.

    Returns:
        Life lost
    """
    life_lost = 0
    for permanent in list(zones.battlefield):
        card = permanent.card
        if permanent not in zones.battlefield or permanent.tapped:
            continue
        if not isinstance(card, LandCard) or not card.is_fetch:
            continue
        ability = card.fetch
        if ability.fetch_type is FetchType.AUTO_SACRIFICE:
            continue

        payers = []
        if ability.cost > 0:
            payers = [
                source
                for source in availability(zones.battlefield, turn_number, simplify_conditions).sources
                if source.permanent is not permanent and source.permanent.is_land
            ]
            if sum(source.amount for source in payers) < ability.cost:
                continue

        targets = select_fetch_targets(card, zones.library, zones.battlefield, key_cards, turn_number)
        if not targets:
            actions.append(f"{card.name} activated but no valid fetch targets in library")
            continue

        if payers:
            tap_for_cost(payers, "", ability.cost)
        zones.remove_permanent(permanent)
        zones.graveyard.append(card)
        life = CLASSIC_FETCH_LIFE if ability.fetch_type is FetchType.CLASSIC else 0
        fetched, paid = _put_fetched(
            zones, targets, ability.fetched_enters_tapped, turn_number, commander_mode
        )
        life += paid
        life_lost += life
        actions.append(f"Fetched {', '.join(fetched)} with {card.name}{_life_suffix(life)}")
        logger.debug(f"Turn {turn_number}: {card.name} fetched {', '.join(fetched)}")
    return life_lost


def lands_per_turn(battlefield: Sequence[Permanent]) -> int:
    """Land drops allowed this turn given exploration effects in play."""
    allowed = 1
    for permanent in battlefield:
        allowed = max(allowed, getattr(permanent.card, "lands_per_turn", 1))
    return allowed

