"""
Turn simulator: one turn of a solitaire game.

Phases run in a fixed order: untap, upkeep (damage and engine draws),
draw, land drop, exploration effects, extra land drops, fetch
activation, casting, end-of-turn damage and the hand size check.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .cards import (
    ArtifactCard,
    Card,
    CostReducerCard,
    CreatureCard,
    DrawSpellCard,
    ExplorationCard,
    LandCard,
    RampSpellCard,
)
from .lands import (
    activate_fetches,
    enters_tapped,
    lands_per_turn,
    matches_ramp_filter,
    play_land,
    select_best_land,
)
from .mana import artifact_condition_met, availability, can_pay, tap_for_cost
from .types import PAIN_LAST_TURN, DamageRule, EtbCost, ManaCondition, SimulationConfig
from .zones import Permanent, Zones

logger = logging.getLogger("manasim.turn")

PhaseHook = Callable[[str, Zones], None]


@dataclass
class TurnLog:
    """What happened during one turn."""

    turn: int
    actions: List[str] = field(default_factory=list)
    life_lost: float = 0
    lands_played: int = 0

    def copy(self) -> "TurnLog":
        return TurnLog(self.turn, list(self.actions), self.life_lost, self.lands_played)


@dataclass
class TrialState:
    """Zones plus running totals for one trial."""

    zones: Zones
    life_lost: float = 0
    cards_drawn: int = 0
    turn_logs: List[TurnLog] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)
    """Random stream for fractional upkeep draws"""


def battlefield_damage(battlefield: Sequence[Permanent], turn_number: int) -> float:
    """
    End-of-turn life loss to permanents that hurt their controller.

    Args:
        battlefield: Permanents in play after casting
        turn_number: Current turn, starting at 1

    Returns:
        Total damage (may be fractional for random effects)
    """
    damage = 0.0
    for permanent in battlefield:
        card = permanent.card
        rule = getattr(card, "damage", DamageRule.NONE)
        amount = getattr(card, "damage_amount", 0)
        if rule is DamageRule.EVERY_TURN:
            damage += amount
        elif rule is DamageRule.EARLY_TURNS and turn_number <= PAIN_LAST_TURN:
            damage += amount
        elif rule is DamageRule.WHEN_TAPPED and permanent.tapped:
            damage += amount
    return damage


def upkeep_damage(battlefield: Sequence[Permanent]) -> float:
    """Damage from permanents still tapped after the untap step."""
    return sum(
        getattr(p.card, "damage_amount", 0)
        for p in battlefield
        if p.tapped and getattr(p.card, "damage", DamageRule.NONE) is DamageRule.UPKEEP_IF_TAPPED
    )


def untap_step(zones: Zones):
    for permanent in zones.battlefield:
        if not getattr(permanent.card, "doesnt_untap", False):
            permanent.tapped = False
        permanent.summoning_sick = False


def _pay_etb_cost(card: Card, zones: Zones, actions: List[str]) -> bool:
    """Pay a cast-time cost from hand; the card itself is already out of hand."""
    etb_cost = getattr(card, "etb_cost", EtbCost.NONE)
    if etb_cost is EtbCost.DISCARD_LAND:
        lands = [c for c in zones.hand if c.is_land]
        if not lands:
            return False
        discarded = next((c for c in lands if c.enters_tapped_always), lands[0])
        zones.hand.remove(discarded)
        zones.graveyard.append(discarded)
        actions.append(f"Discarded {discarded.name} to {card.name}")
    elif etb_cost is EtbCost.IMPRINT_NONLAND:
        spells = [c for c in zones.hand if not c.is_land]
        if not spells:
            return False
        imprinted = spells[0]
        zones.hand.remove(imprinted)
        zones.exile.append(imprinted)
        actions.append(f"Imprinted {imprinted.name} on {card.name}")
    elif etb_cost is EtbCost.DISCARD_HAND:
        if zones.hand:
            actions.append(f"Discarded hand ({len(zones.hand)} cards) to {card.name}")
        zones.graveyard.extend(zones.hand)
        zones.hand.clear()
    elif etb_cost is EtbCost.SACRIFICE:
        actions.append(f"{card.name} will be sacrificed for mana")
    return True


def _etb_payable(card: Card, hand: Sequence[Card]) -> bool:
    etb_cost = getattr(card, "etb_cost", EtbCost.NONE)
    if etb_cost is EtbCost.DISCARD_LAND:
        return any(c.is_land for c in hand)
    if etb_cost is EtbCost.IMPRINT_NONLAND:
        # The hand may hold other copies of the same card
        return sum(1 for c in hand if not c.is_land) > 1
    return True


def _castable_permanent(card: Card, exploration_only: bool) -> bool:
    if exploration_only:
        return isinstance(card, ExplorationCard)
    if isinstance(card, ArtifactCard):
        return not card.is_burst
    return isinstance(card, (CreatureCard, ExplorationCard, CostReducerCard))


def cast_permanents(
    zones: Zones,
    turn_number: int,
    config: SimulationConfig,
    actions: List[str],
    exploration_only: bool = False,
):
    """
    Cast mana permanents from hand, cheapest first with free moxen ahead.

    Cost reducers wait behind every mana source. Recomputes availability
    after every cast so newly resolved rocks can pay for the next spell;
    stops when nothing else is affordable.
    """
    while True:
        candidates = sorted(
            (c for c in zones.hand if _castable_permanent(c, exploration_only)),
            key=lambda c: (
                0 if getattr(c, "priority", False) else 1,
                isinstance(c, CostReducerCard),
                c.cmc,
            ),
        )
        available = availability(zones.battlefield, turn_number, config.simplify_mox_conditions)
        for card in candidates:
            if not can_pay(card, available) or not _etb_payable(card, zones.hand):
                continue
            zones.hand.remove(card)
            _pay_etb_cost(card, zones, actions)
            tap_for_cost(available.sources, card.mana_cost, card.cmc)
            tapped = isinstance(card, ArtifactCard) and card.enters_tapped
            sick = card.is_creature or isinstance(card, CreatureCard)
            permanent = zones.put_onto_battlefield(card, tapped=tapped, summoning_sick=sick)

            note = ""
            if isinstance(card, ArtifactCard) and card.condition is not ManaCondition.NONE:
                if not artifact_condition_met(
                    card, zones.battlefield, turn_number, config.simplify_mox_conditions
                ):
                    note = f" ({card.condition.value} not active)"
            actions.append(f"Cast {card.name}{' (tapped)' if permanent.tapped else ''}{note}")
            break
        else:
            return


def _land_to_sacrifice(zones: Zones) -> Optional[Permanent]:
    lands = [p for p in zones.lands() if not p.card.is_fetch]
    for permanent in lands:
        if permanent.card.is_basic:
            return permanent
    for permanent in lands:
        if not permanent.card.is_bounce:
            return permanent
    return lands[0] if lands else None


def cast_ramp_spells(zones: Zones, turn_number: int, config: SimulationConfig, actions: List[str]):
    """Cast land-search spells in ascending cost when enough targets remain."""
    for spell in sorted((c for c in zones.hand if isinstance(c, RampSpellCard)), key=lambda c: c.cmc):
        if spell not in zones.hand:
            continue
        available = availability(zones.battlefield, turn_number, config.simplify_mox_conditions)
        if not can_pay(spell, available):
            continue
        matching = [
            c for c in zones.library if isinstance(c, LandCard) and matches_ramp_filter(c, spell)
        ]
        needed = 1 + (1 if spell.lands_to_hand > 0 else 0)
        if len(matching) < needed:
            continue

        zones.hand.remove(spell)
        zones.graveyard.append(spell)
        tap_for_cost(available.sources, spell.mana_cost, spell.cmc)

        sacrificed = ""
        if spell.sacrifice_land:
            victim = _land_to_sacrifice(zones)
            if victim is not None:
                zones.remove_permanent(victim)
                zones.graveyard.append(victim.card)
                sacrificed = f", sac'd {victim.name}"

        to_battlefield = matching[: spell.lands_to_battlefield]
        to_hand = matching[spell.lands_to_battlefield: spell.lands_to_battlefield + spell.lands_to_hand]
        described = []
        for land in to_battlefield:
            zones.library.remove(land)
            tapped = spell.lands_tapped or enters_tapped(land, zones.land_cards(), config.commander_mode)
            zones.put_onto_battlefield(land, tapped=tapped)
            described.append(f"{land.name}{' (tapped)' if tapped else ''}")
        for land in to_hand:
            zones.library.remove(land)
            zones.hand.append(land)

        fetched = ", ".join(described)
        if to_hand:
            fetched += f"; {', '.join(land.name for land in to_hand)} to hand"
        actions.append(f"Cast ramp spell: {spell.name}{sacrificed} → {fetched}")


def _draw_cards(state: TrialState, count: int) -> List[Card]:
    drawn = []
    for _ in range(count):
        card = state.zones.draw()
        if card is None:
            break
        drawn.append(card)
    state.cards_drawn += len(drawn)
    return drawn


def upkeep_draws(state: TrialState, actions: List[str]) -> int:
    """
    Draws from repeating engines in play.

    An engine averaging 2.5 cards draws 2, plus a third half the time.

    Returns:
        Cards drawn
    """
    total = 0
    engines = [
        p.card for p in state.zones.battlefield if isinstance(p.card, DrawSpellCard) and not p.card.one_time
    ]
    for engine in engines:
        whole = int(engine.cards_per_turn)
        count = whole + (1 if state.rng.random() < engine.cards_per_turn - whole else 0)
        drawn = _draw_cards(state, count)
        if drawn:
            actions.append(f"{engine.name} drew {len(drawn)}")
        total += len(drawn)
    return total


def cast_draw_spells(state: TrialState, turn_number: int, config: SimulationConfig, actions: List[str]):
    """Cast affordable draw spells from hand, cheapest first, after all ramp."""
    zones = state.zones
    for spell in sorted((c for c in zones.hand if isinstance(c, DrawSpellCard)), key=lambda c: c.cmc):
        if spell not in zones.hand:
            continue
        available = availability(zones.battlefield, turn_number, config.simplify_mox_conditions)
        if not can_pay(spell, available):
            continue
        zones.hand.remove(spell)
        tap_for_cost(available.sources, spell.mana_cost, spell.cmc)
        if spell.stays_on_battlefield or not spell.one_time:
            zones.put_onto_battlefield(spell, summoning_sick=spell.is_creature)
        else:
            zones.graveyard.append(spell)

        if spell.one_time:
            drawn = _draw_cards(state, spell.cards_drawn)
            actions.append(f"Cast {spell.name}, drew {len(drawn)}")
        else:
            actions.append(f"Cast {spell.name} (draws {spell.cards_per_turn:g} per turn)")


def enforce_hand_size(zones: Zones, max_hand_size: int, flood_lands: int, actions: List[str]):
    """
    Discard down to the maximum hand size.

    With enough lands in play, spare lands go first; otherwise the most
    expensive spells go first.
    """
    excess = len(zones.hand) - max_hand_size
    if excess <= 0:
        return
    lands = [c for c in zones.hand if c.is_land]
    spells = sorted((c for c in zones.hand if not c.is_land), key=lambda c: -c.cmc)
    flooded = sum(1 for _ in zones.lands()) >= flood_lands
    order = lands + spells if flooded else spells + lands
    for card in order[:excess]:
        zones.hand.remove(card)
        zones.graveyard.append(card)
        actions.append(f"Discarded {card.name} (hand size)")


def simulate_turn(
    state: TrialState,
    turn_number: int,
    config: SimulationConfig,
    key_cards: Sequence[Card] = (),
    on_phase: Optional[PhaseHook] = None,
) -> TurnLog:
    """
    Play one turn.

    Args:
        state: Trial state, mutated in place
        turn_number: Turn to play, starting at 1
        config: Simulation options
        key_cards: Cards whose colors guide fetch targets
        on_phase: Called with (phase name, zones) after every phase

    Returns:
        TurnLog for this turn (also appended to state.turn_logs)
    """
    zones = state.zones
    log = TurnLog(turn=turn_number)

    def phase(name: str):
        if on_phase is not None:
            on_phase(name, zones)

    untap_step(zones)
    phase("untap")

    life = upkeep_damage(zones.battlefield)
    if life:
        log.actions.append(f"Took {life:g} damage at upkeep")
    upkeep_draws(state, log.actions)
    phase("upkeep")

    if turn_number > 1 or config.commander_mode:
        drawn = zones.draw()
        if drawn is not None:
            state.cards_drawn += 1
            log.actions.append(f"Drew {drawn.name}")
    phase("draw")

    land = select_best_land(zones.hand, zones.battlefield, turn_number, config.commander_mode)
    if land is not None:
        played, paid = play_land(land, zones, turn_number, key_cards, log.actions, config.commander_mode)
        log.lands_played += int(played)
        life += paid
    phase("land")

    cast_permanents(zones, turn_number, config, log.actions, exploration_only=True)
    phase("exploration")

    while log.lands_played < lands_per_turn(zones.battlefield):
        land = select_best_land(zones.hand, zones.battlefield, turn_number, config.commander_mode)
        if land is None:
            break
        played, paid = play_land(land, zones, turn_number, key_cards, log.actions, config.commander_mode)
        if not played:
            break
        log.lands_played += 1
        life += paid
    phase("extra_lands")

    life += activate_fetches(
        zones, turn_number, key_cards, log.actions, config.commander_mode, config.simplify_mox_conditions
    )
    phase("fetch")

    cast_permanents(zones, turn_number, config, log.actions)
    cast_ramp_spells(zones, turn_number, config, log.actions)
    cast_draw_spells(state, turn_number, config, log.actions)
    phase("cast")

    damage = battlefield_damage(zones.battlefield, turn_number)
    if damage:
        log.actions.append(f"Took {damage:g} damage from permanents")
    life += damage
    phase("damage")

    enforce_hand_size(zones, config.max_hand_size, config.flood_n_lands, log.actions)
    phase("cleanup")

    log.life_lost = life
    state.life_lost += life
    state.turn_logs.append(log)
    return log
