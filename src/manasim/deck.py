"""
Deck construction and shuffling.

The deck is a flat list of Card templates, one per copy. Each trial
shuffles its own copy of the list.
"""

import dataclasses
import logging
import random
from typing import Dict, List, Sequence

from .cards import Card, DeckEntry, DrawSpellCard, SpellCard
from .errors import EmptyDeckError
from .types import SimulationConfig

logger = logging.getLogger("manasim.deck")


def shuffle(cards: Sequence[Card], rng: random.Random) -> List[Card]:
    """
    Fisher-Yates shuffle into a new list.

    Args:
        cards: Cards to shuffle (left untouched)
        rng: Random source for this trial

    Returns:
        Shuffled copy
    """
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def apply_overrides(card: Card, config: SimulationConfig) -> Card:
    """
    Card with the configured mana and draw overrides applied.

    Mana overrides apply to anything with a mana amount (lands, rocks,
    dorks); draw overrides apply to draw spells. Other cards come back
    unchanged.
    """
    key = card.name.lower()
    mana = config.mana_overrides.get(key)
    if mana is not None and hasattr(card, "mana_amount"):
        card = dataclasses.replace(card, mana_amount=mana.amount, mana_growth=mana.growth)
        logger.debug(f"Mana override for {card.name}: {mana.mode} {mana.amount} (+{mana.growth:g}/turn)")

    draw = config.draw_overrides.get(key)
    if draw is not None and isinstance(card, DrawSpellCard):
        if draw.mode == "one_time":
            cards_drawn = int(draw.amount) if draw.amount is not None else card.cards_drawn
            card = dataclasses.replace(
                card, one_time=True, stays_on_battlefield=False, cards_drawn=cards_drawn
            )
        elif draw.mode == "per_turn":
            per_turn = draw.amount if draw.amount is not None else (card.cards_per_turn or 1.0)
            card = dataclasses.replace(
                card, one_time=False, stays_on_battlefield=True, cards_per_turn=per_turn
            )
        logger.debug(f"Draw override for {card.name}: {draw.mode}")
    return card


class Deck:
    """
    A decklist ready for simulation.

    Holds one Card per copy and the key-card lookup used for results.
    """

    def __init__(self, cards: List[Card], key_cards: Dict[str, Card]):
        self.cards = cards
        self.key_cards = key_cards

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def land_count(self) -> int:
        return sum(1 for card in self.cards if card.is_land)

    @classmethod
    def build(cls, entries: Sequence[DeckEntry], config: SimulationConfig) -> "Deck":
        """
        Flatten entries into a deck, applying the category toggles and overrides.

        Spell sides of modal double-faced lands are kept only as key-card
        candidates; the land side is the card that gets drawn.

        Raises:
            EmptyDeckError: If no cards remain
        """
        cards = []
        candidates: Dict[str, Card] = {}
        for entry in entries:
            card = entry.card
            if isinstance(card, SpellCard) and card.key_card_only:
                candidates.setdefault(card.name, card)
                continue
            if config.is_disabled(card.kind, card.name):
                logger.debug(f"Excluding disabled card {card.name}")
                continue
            card = apply_overrides(card, config)
            cards.extend([card] * max(0, entry.quantity))
            if not card.is_land:
                candidates[card.name] = card

        if not cards:
            raise EmptyDeckError("Deck has no cards after applying category toggles")

        key_cards = {}
        for name in sorted(config.selected_key_cards):
            if name in candidates:
                key_cards[name] = candidates[name]
            else:
                logger.warning(f"Key card {name!r} is not a nonland card in the deck")
        return cls(cards, key_cards)

    def shuffled(self, rng: random.Random) -> List[Card]:
        return shuffle(self.cards, rng)
