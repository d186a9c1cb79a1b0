"""
Deck mana simulation package.

Based on Frank Karsten's Monte Carlo manabase methodology, played out
card by card: lands, fetches, mana rocks and dorks, ramp and draw
spells, cost reducers and mulligans over the first turns of a game.
"""

from .types import CardKind, CustomMulliganRules, DrawOverride, ManaOverride, SimulationConfig
from .errors import ConfigurationError, EmptyDeckError, ManaSimError, UnclassifiableCardError
from .cards import (
    ArtifactCard,
    Card,
    CostReducerCard,
    CreatureCard,
    DeckEntry,
    DrawSpellCard,
    ExplorationCard,
    LandCard,
    RampSpellCard,
    RitualCard,
    SpellCard,
)
from .classifier import CardClassifier
from .deck import Deck
from .mana import ManaAvailability, availability, can_pay, cost_discount, solve_color_pips
from .mulligan import (
    AggressiveStrategy,
    BalancedStrategy,
    ConservativeStrategy,
    CustomStrategy,
    LondonMulligan,
    MulliganStrategy,
    VancouverMulligan,
    resolve_mulligans,
)
from .results import Results
from .simulation import run_simulation, run_trial
from .turn import TurnLog, simulate_turn

__all__ = [
    # Types
    "CardKind",
    "CustomMulliganRules",
    "DrawOverride",
    "ManaOverride",
    "SimulationConfig",
    # Errors
    "ConfigurationError",
    "EmptyDeckError",
    "ManaSimError",
    "UnclassifiableCardError",
    # Cards
    "ArtifactCard",
    "Card",
    "CostReducerCard",
    "CreatureCard",
    "DeckEntry",
    "DrawSpellCard",
    "ExplorationCard",
    "LandCard",
    "RampSpellCard",
    "RitualCard",
    "SpellCard",
    "CardClassifier",
    # Deck
    "Deck",
    # Mana
    "ManaAvailability",
    "availability",
    "can_pay",
    "cost_discount",
    "solve_color_pips",
    # Mulligan
    "MulliganStrategy",
    "ConservativeStrategy",
    "BalancedStrategy",
    "AggressiveStrategy",
    "CustomStrategy",
    "LondonMulligan",
    "VancouverMulligan",
    "resolve_mulligans",
    # Simulation
    "Results",
    "TurnLog",
    "simulate_turn",
    "run_simulation",
    "run_trial",
]
