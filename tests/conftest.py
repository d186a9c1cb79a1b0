"""
Shared pytest fixtures for manasim tests.

Provides factories for the card shapes most tests need:
- Basic lands and lands with arbitrary rules
- Plain spells with a mana cost
- Raw card records in Scryfall shape
- Permanents and zones
"""

import logging
import random

import pytest

from manasim.cards import DeckEntry, LandCard, SpellCard, calculate_cmc
from manasim.types import COLOR_TO_LAND_TYPE, SimulationConfig
from manasim.zones import Permanent, Zones


# =============================================================================
# Card Factories
# =============================================================================

@pytest.fixture
def basic_land():
    """
    Factory for basic lands by color.

    Usage:
        def test_something(basic_land):
            island = basic_land("U")
    """
    def make(color: str) -> LandCard:
        land_type = COLOR_TO_LAND_TYPE[color]
        return LandCard(
            name=land_type,
            type_line=f"Basic Land — {land_type}",
            produces=(color,),
            subtypes=(land_type,),
            is_basic=True,
        )
    return make


@pytest.fixture
def land_card():
    """
    Factory for nonbasic lands; keyword arguments pass straight to LandCard.
    """
    def make(name: str, produces=("C",), **kwargs) -> LandCard:
        kwargs.setdefault("type_line", "Land")
        return LandCard(name=name, produces=tuple(produces), **kwargs)
    return make


@pytest.fixture
def spell_card():
    """Factory for plain spells; cmc is derived from the cost."""
    def make(name: str, mana_cost: str, **kwargs) -> SpellCard:
        kwargs.setdefault("type_line", "Sorcery")
        return SpellCard(name=name, mana_cost=mana_cost, cmc=calculate_cmc(mana_cost), **kwargs)
    return make


@pytest.fixture
def card_record():
    """
    Factory for raw records in Scryfall card object shape.

    Usage:
        record = card_record("Sol Ring", "Artifact", "{T}: Add {C}{C}.", "{1}")
    """
    def make(name, type_line, oracle_text="", mana_cost="", cmc=None, **extra):
        record = {
            "name": name,
            "type_line": type_line,
            "oracle_text": oracle_text,
            "mana_cost": mana_cost,
            "cmc": calculate_cmc(mana_cost) if cmc is None else cmc,
        }
        record.update(extra)
        return record
    return make


# =============================================================================
# Zone Fixtures
# =============================================================================

@pytest.fixture
def permanents():
    """Factory wrapping cards as untapped, non-sick permanents (or tapped ones)."""
    def make(*cards, tapped=False):
        return [Permanent(card=card, tapped=tapped) for card in cards]
    return make


@pytest.fixture
def zones():
    """Factory for Zones with an optional hand and battlefield."""
    def make(library=(), hand=(), battlefield=()):
        return Zones(library=list(library), hand=list(hand), battlefield=list(battlefield))
    return make


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


# =============================================================================
# Deck Fixtures
# =============================================================================

@pytest.fixture
def mono_blue_entries(basic_land, spell_card):
    """40 cards: 36 Islands and 4 copies of a free spell."""
    return [
        DeckEntry(basic_land("U"), 36),
        DeckEntry(spell_card("Free Spell", "{0}"), 4),
    ]


@pytest.fixture
def small_config():
    """Fast, seeded config for end-to-end runs."""
    def make(**overrides):
        values = {"iterations": 200, "turns": 4, "seed": 42}
        values.update(overrides)
        return SimulationConfig(**values)
    return make


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_package_logger():
    """Undo setup_logging() changes to the "manasim" logger after a test."""
    logger = logging.getLogger("manasim")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
