"""
Mulligan strategies and house rules.

Strategies decide whether to keep a hand; rules decide what the next
hand looks like. London (2019+) redraws a full hand and bottoms cards,
Vancouver draws one card fewer per mulligan.
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .cards import Card
from .deck import shuffle
from .types import CustomMulliganRules, SimulationConfig

logger = logging.getLogger("manasim.mulligan")

MAX_MULLIGANS = 6


def _has_cheap_spell(hand: Sequence[Card], max_cmc: int) -> bool:
    return any(not card.is_land and card.cmc <= max_cmc for card in hand)


def _all_lands(hand: Sequence[Card], lands_in_hand: int) -> bool:
    return bool(hand) and lands_in_hand == len(hand)


class MulliganStrategy(ABC):
    """Abstract base class for mulligan decisions."""

    @abstractmethod
    def should_keep(self, hand: List[Card], hand_size: int, lands_in_hand: int) -> bool:
        """
        Decide whether to keep this hand.

        Args:
            hand: Cards in hand
            hand_size: Number of cards in hand
            lands_in_hand: Number of lands in hand

        Returns:
            True if should keep, False if should mulligan
        """
        pass


class ConservativeStrategy(MulliganStrategy):
    """Only mulligan hands with no lands or nothing but lands."""

    def should_keep(self, hand: List[Card], hand_size: int, lands_in_hand: int) -> bool:
        return lands_in_hand != 0 and not _all_lands(hand, lands_in_hand)


class BalancedStrategy(MulliganStrategy):
    """
    Mulligan 0-land and all-land hands, plus hands outside 2-5 lands that
    have no spell costing 2 or less.
    """

    def should_keep(self, hand: List[Card], hand_size: int, lands_in_hand: int) -> bool:
        if lands_in_hand == 0 or _all_lands(hand, lands_in_hand):
            return False
        if lands_in_hand < 2 or lands_in_hand > 5:
            return _has_cheap_spell(hand, 2)
        return True


class AggressiveStrategy(MulliganStrategy):
    """Keep only 2-4 lands."""

    def should_keep(self, hand: List[Card], hand_size: int, lands_in_hand: int) -> bool:
        return 2 <= lands_in_hand <= 4


class CustomStrategy(MulliganStrategy):
    """Caller-supplied thresholds; any enabled rule that fires forces a mulligan."""

    def __init__(self, rules: CustomMulliganRules):
        self.rules = rules

    def should_keep(self, hand: List[Card], hand_size: int, lands_in_hand: int) -> bool:
        rules = self.rules
        if rules.mulligan_zero_lands and lands_in_hand == 0:
            return False
        if rules.mulligan_all_lands and _all_lands(hand, lands_in_hand):
            return False
        if rules.mulligan_min_lands and lands_in_hand < rules.min_lands_threshold:
            return False
        if rules.mulligan_max_lands and lands_in_hand > rules.max_lands_threshold:
            return False
        if rules.mulligan_no_plays and not _has_cheap_spell(hand, rules.no_plays_turn_threshold):
            return False
        return True


class MulliganRule(ABC):
    """How a new hand is drawn after a mulligan."""

    @abstractmethod
    def redraw(
        self, cards: Sequence[Card], rng: random.Random, hand_size: int, penalty: int
    ) -> Tuple[List[Card], List[Card]]:
        """
        Shuffle the full deck and draw a new hand.

        Args:
            cards: Every card in the deck
            rng: Random source for this trial
            hand_size: Configured opening hand size
            penalty: Cards the player is down (mulligans taken minus any free one)

        Returns:
            Tuple of (hand, library)
        """
        pass


class LondonMulligan(MulliganRule):
    """
    London Mulligan (2019+).

    Always draw a full hand, then put `penalty` cards on the bottom of
    the library.
    """

    def choose_cards_to_bottom(self, hand: List[Card], num_to_bottom: int) -> List[Card]:
        """
        Choose which cards to put on the bottom.

        Heuristic:
        - Over 4 lands: bottom lands first
        - Under 2 lands: bottom spells first
        - Otherwise (and as tiebreak): highest cost first
        """
        lands = sum(1 for card in hand if card.is_land)

        def priority(card: Card) -> Tuple[int, int]:
            if lands > 4:
                group = 0 if card.is_land else 1
            elif lands < 2:
                group = 0 if not card.is_land else 1
            else:
                group = 0
            return group, -card.cmc

        return sorted(hand, key=priority)[:num_to_bottom]

    def redraw(
        self, cards: Sequence[Card], rng: random.Random, hand_size: int, penalty: int
    ) -> Tuple[List[Card], List[Card]]:
        shuffled = shuffle(cards, rng)
        hand, library = shuffled[:hand_size], shuffled[hand_size:]
        for card in self.choose_cards_to_bottom(hand, min(penalty, len(hand))):
            hand.remove(card)
            library.append(card)
        return hand, library


class VancouverMulligan(MulliganRule):
    """Vancouver Mulligan: each mulligan draws one card fewer, nothing is bottomed."""

    def redraw(
        self, cards: Sequence[Card], rng: random.Random, hand_size: int, penalty: int
    ) -> Tuple[List[Card], List[Card]]:
        shuffled = shuffle(cards, rng)
        size = max(0, hand_size - penalty)
        return shuffled[:size], shuffled[size:]


STRATEGIES = {
    "conservative": ConservativeStrategy,
    "balanced": BalancedStrategy,
    "aggressive": AggressiveStrategy,
}

RULES = {
    "london": LondonMulligan,
    "vancouver": VancouverMulligan,
}


def strategy_for(config: SimulationConfig) -> MulliganStrategy:
    if config.mulligan_strategy == "custom":
        return CustomStrategy(config.custom_mulligan_rules)
    return STRATEGIES[config.mulligan_strategy]()


def rule_for(config: SimulationConfig) -> MulliganRule:
    return RULES[config.mulligan_rule]()


@dataclass
class OpeningHand:
    """Kept hand, remaining library and mulligans taken."""

    hand: List[Card]
    library: List[Card]
    mulligans: int = 0


def resolve_mulligans(
    cards: Sequence[Card],
    rng: random.Random,
    config: SimulationConfig,
    strategy: MulliganStrategy = None,
    rule: MulliganRule = None,
) -> OpeningHand:
    """
    Draw an opening hand and mulligan until the strategy keeps it.

    At most MAX_MULLIGANS are taken. In commander mode the first mulligan
    is free (no card penalty).

    Args:
        cards: Every card in the deck
        rng: Random source for this trial
        config: Simulation options
        strategy: Keep decision (defaults from config)
        rule: House rule (defaults from config)

    Returns:
        OpeningHand with the kept hand and the library beneath it
    """
    shuffled = shuffle(cards, rng)
    hand, library = shuffled[: config.hand_size], shuffled[config.hand_size:]
    mulligans = 0
    if not config.enable_mulligans:
        return OpeningHand(hand, library, mulligans)

    strategy = strategy or strategy_for(config)
    rule = rule or rule_for(config)
    while mulligans < MAX_MULLIGANS:
        lands = sum(1 for card in hand if card.is_land)
        if strategy.should_keep(hand, len(hand), lands):
            break
        mulligans += 1
        penalty = max(0, mulligans - (1 if config.commander_mode else 0))
        hand, library = rule.redraw(cards, rng, config.hand_size, penalty)
    return OpeningHand(hand, library, mulligans)
