"""
Monte Carlo driver for deck mana simulation.

Based on Frank Karsten's Monte Carlo methodology: shuffle, draw, play
out the first turns, repeat many times and average. Each trial owns its
zones and random stream, so trials can run in any order or in separate
processes.
"""

import logging
import random
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple

from .cards import ArtifactCard, Card, DeckEntry, RitualCard
from .deck import Deck
from .errors import EmptyDeckError
from .log_decorator import log_simulation_run
from .mana import availability, burst_sources, can_pay, cost_discount
from .mulligan import MulliganRule, MulliganStrategy, resolve_mulligans, rule_for, strategy_for
from .results import PlaySequence, Results, TurnSnapshot
from .turn import PhaseHook, TrialState, simulate_turn
from .types import SimulationConfig
from .zones import Zones

logger = logging.getLogger("manasim.simulation")


def trial_rng(seed: Optional[int], trial_index: int) -> random.Random:
    """Random stream for one trial; seeded runs give each trial seed + index."""
    if seed is None:
        return random.Random()
    return random.Random(seed + trial_index)


def has_burst_cards(cards: Sequence[Card]) -> bool:
    return any(
        isinstance(card, RitualCard) or (isinstance(card, ArtifactCard) and card.is_burst)
        for card in cards
    )


def _sequence(state: TrialState, opening_hand: List[str], turn_number: int, mana: int, **extra) -> PlaySequence:
    return PlaySequence(
        turn=turn_number,
        mana_available=mana,
        opening_hand=list(opening_hand),
        turns=[log.copy() for log in state.turn_logs],
        **extra,
    )


def run_trial(
    deck: Deck,
    config: SimulationConfig,
    rng: random.Random,
    results: Results,
    strategy: MulliganStrategy,
    rule: MulliganRule,
    on_phase: Optional[PhaseHook] = None,
) -> TrialState:
    """
    Play one game and fold its observations into results.

    Args:
        deck: Deck to shuffle
        config: Simulation options
        rng: Random stream for this trial
        results: Accumulators to update
        strategy: Mulligan keep decision
        rule: Mulligan house rule
        on_phase: Optional hook called after every turn phase

    Returns:
        Final trial state
    """
    opening = resolve_mulligans(deck.cards, rng, config, strategy, rule)
    state = TrialState(zones=Zones(library=opening.library, hand=opening.hand), rng=rng)
    opening_hand = [card.name for card in opening.hand]
    key_cards = list(deck.key_cards.values())
    lands_by_turn = []

    for turn_index in range(config.turns):
        turn_number = turn_index + 1
        simulate_turn(state, turn_number, config, key_cards, on_phase)

        zones = state.zones
        available = availability(zones.battlefield, turn_number, config.simplify_mox_conditions)
        lands = list(zones.lands())
        results.record_turn(
            turn_index,
            TurnSnapshot(
                lands=len(lands),
                untapped_lands=sum(1 for p in lands if not p.tapped),
                total_mana=available.total,
                colors=available.colors,
                life_loss=state.life_lost,
                cards_drawn=state.cards_drawn,
            ),
        )
        lands_by_turn.append(len(lands))

        if not deck.key_cards:
            continue
        burst = burst_sources(zones.hand, available)
        with_burst = available.with_sources(burst)
        for name, card in deck.key_cards.items():
            discount = cost_discount(card, zones.battlefield)
            castable = can_pay(card, available, discount)
            castable_with_burst = castable or (bool(burst) and can_pay(card, with_burst, discount))
            results.record_key_card(name, turn_index, castable, castable_with_burst)

            if castable:
                if results.wants_sequence(name, turn_index):
                    results.add_sequence(
                        name, turn_index, _sequence(state, opening_hand, turn_number, available.total)
                    )
            elif castable_with_burst:
                if results.wants_sequence(name, turn_index, burst=True):
                    burst_names = [c.name for c in zones.hand if isinstance(c, (ArtifactCard, RitualCard))]
                    results.add_sequence(
                        name,
                        turn_index,
                        _sequence(
                            state,
                            opening_hand,
                            turn_number,
                            available.total,
                            mana_with_burst=with_burst.total,
                            burst_cards=burst_names,
                        ),
                        burst=True,
                    )

    results.record_trial(lands_by_turn, opening.mulligans)
    return state


def _run_trials(
    deck: Deck,
    config: SimulationConfig,
    start: int,
    count: int,
    on_phase: Optional[PhaseHook] = None,
) -> Results:
    """Run trials [start, start + count) into a fresh Results."""
    key_cmc = {name: card.cmc for name, card in deck.key_cards.items()}
    results = Results(config, key_cmc, has_burst_cards(deck.cards))
    strategy = strategy_for(config)
    rule = rule_for(config)
    for trial_index in range(start, start + count):
        run_trial(deck, config, trial_rng(config.seed, trial_index), results, strategy, rule, on_phase)
    return results


def _chunks(iterations: int, workers: int) -> List[Tuple[int, int]]:
    size, extra = divmod(iterations, workers)
    chunks = []
    start = 0
    for i in range(workers):
        count = size + (1 if i < extra else 0)
        if count:
            chunks.append((start, count))
        start += count
    return chunks


def _run_parallel(deck: Deck, config: SimulationConfig) -> Results:
    """
    Run trial chunks in worker processes and merge them in chunk order.

    Each chunk derives its trials' random streams from the trial index,
    so a seeded run gives the same totals for any worker count.
    """
    chunks = _chunks(config.iterations, config.workers)
    partials: Dict[int, Results] = {}
    with ProcessPoolExecutor(max_workers=config.workers) as executor:
        futures = {
            executor.submit(_run_trials, deck, config, start, count): index
            for index, (start, count) in enumerate(chunks)
        }
        for future in as_completed(futures):
            index = futures[future]
            partials[index] = future.result()
            logger.debug(f"Completed chunk {index + 1}/{len(chunks)}")

    merged = partials[0]
    for index in range(1, len(chunks)):
        merged.merge(partials[index])
    return merged


@log_simulation_run
def run_simulation(
    entries: Sequence[DeckEntry],
    config: SimulationConfig,
    on_phase: Optional[PhaseHook] = None,
) -> Results:
    """
    Run the Monte Carlo simulation.

    Args:
        entries: Classified decklist
        config: Simulation options
        on_phase: Optional hook called after every turn phase (in-process runs only)

    Returns:
        Finalized Results
    """
    try:
        deck = Deck.build(entries, config)
    except EmptyDeckError:
        logger.warning("Deck is empty; returning zero-filled results")
        return Results.empty(config)

    logger.info(
        f"Simulating {len(deck)} cards ({deck.land_count} lands), "
        f"{config.iterations} iterations x {config.turns} turns"
    )
    if config.workers > 1 and on_phase is None:
        results = _run_parallel(deck, config)
    else:
        results = _run_trials(deck, config, 0, config.iterations, on_phase)
    return results.finalize()
