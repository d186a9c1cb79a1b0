"""
Types and configuration for the deck mana simulation.

Based on Frank Karsten's Monte Carlo methodology, extended to whole
decklists: every card keeps its own mana behavior instead of being
reduced to "good land / other land / spell".
"""

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .errors import ConfigurationError


# WUBRG order is used everywhere colors are iterated
COLORS = ("W", "U", "B", "R", "G")
COLORLESS = "C"
WILDCARD = "*"

BASIC_LAND_TYPES = {
    "Plains": "W",
    "Island": "U",
    "Swamp": "B",
    "Mountain": "R",
    "Forest": "G",
}
COLOR_TO_LAND_TYPE = {color: land_type for land_type, color in BASIC_LAND_TYPES.items()}

BASIC_LAND_NAMES = frozenset(
    name.lower() for name in list(BASIC_LAND_TYPES) + ["Wastes"]
) | frozenset("snow-covered " + name.lower() for name in BASIC_LAND_TYPES)


class CardKind(Enum):
    """Top-level card variant produced by the classifier."""

    LAND = "land"
    ARTIFACT = "artifact"
    CREATURE = "creature"
    EXPLORATION = "exploration"
    RAMP_SPELL = "ramp_spell"
    RITUAL = "ritual"
    COST_REDUCER = "cost_reducer"
    DRAW_SPELL = "draw_spell"
    SPELL = "spell"


class LandArchetype(Enum):
    """
    Conditional enters-tapped rule families.

    SHOCK: Tapped unless 2 life is paid (paid through turn 6)
    FAST: Untapped with two or fewer other lands
    BATTLE: Untapped with two or more basics
    CHECK: Untapped when a land of a required subtype is out
    CROWD: Untapped in multiplayer only
    """

    NONE = "none"
    SHOCK = "shock"
    FAST = "fast"
    BATTLE = "battle"
    CHECK = "check"
    CROWD = "crowd"


class FetchType(Enum):
    """How a fetch land gets its target onto the battlefield."""

    CLASSIC = "classic"
    SLOW = "slow"
    FREE_SLOW = "free_slow"
    MANA_COST = "mana_cost"
    COLORLESS_OR_FETCH = "colorless_or_fetch"
    AUTO_SACRIFICE = "auto_sacrifice"


class LandProduction(Enum):
    """Lands whose output is not a fixed amount."""

    FIXED = "fixed"
    SWAMP_COUNT = "swamp_count"
    BASIC_SWAMP_COUNT = "basic_swamp_count"
    CREATURE_SACRIFICE = "creature_sacrifice"
    LAND_COUNT_THRESHOLD = "land_count_threshold"
    TURN_SCALING = "turn_scaling"


class ManaCondition(Enum):
    """Static conditions an artifact needs before it produces mana."""

    NONE = "none"
    METALCRAFT = "metalcraft"
    LEGENDARY = "legendary"


class EtbCost(Enum):
    """Costs paid as the permanent is cast; the cast is skipped if unpaid."""

    NONE = "none"
    DISCARD_LAND = "discard_land"
    IMPRINT_NONLAND = "imprint_nonland"
    DISCARD_HAND = "discard_hand"
    SACRIFICE = "sacrifice"


class DamageRule(Enum):
    """When a permanent costs its controller life."""

    NONE = "none"
    EVERY_TURN = "every_turn"
    EARLY_TURNS = "early_turns"
    WHEN_TAPPED = "when_tapped"
    UPKEEP_IF_TAPPED = "upkeep_if_tapped"


class RampFilter(Enum):
    """Which library lands a ramp spell may search for."""

    ANY = "any"
    BASIC = "basic"
    SUBTYPE = "subtype"
    SNOW = "snow"


MULLIGAN_RULES = ("london", "vancouver")
MULLIGAN_STRATEGIES = ("conservative", "balanced", "aggressive", "custom")
MANA_OVERRIDE_MODES = ("fixed", "scaling")
DRAW_OVERRIDE_MODES = ("default", "one_time", "per_turn")

# Last turn on which shock lands are paid for and pain lands deal damage
SHOCK_PAY_LAST_TURN = 6
PAIN_LAST_TURN = 5


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class CustomMulliganRules:
    """Thresholds for the "custom" mulligan strategy."""

    mulligan_zero_lands: bool = True
    """Mulligan hands with no lands"""

    mulligan_all_lands: bool = True
    """Mulligan hands that are all lands"""

    mulligan_min_lands: bool = False
    """Enable the minimum land threshold"""

    min_lands_threshold: int = 2
    """Mulligan below this many lands"""

    mulligan_max_lands: bool = False
    """Enable the maximum land threshold"""

    max_lands_threshold: int = 5
    """Mulligan above this many lands"""

    mulligan_no_plays: bool = False
    """Mulligan hands with no nonland castable by the threshold turn"""

    no_plays_turn_threshold: int = 3
    """Turn by which the hand must have a play (cmc <= turn)"""


@dataclass(frozen=True)
class ManaOverride:
    """
    Caller-supplied mana output for one card.

    fixed: the card always makes `amount` mana
    scaling: the card makes `amount` on turn 1 plus `growth` per later turn
    """

    mode: str = "fixed"
    amount: int = 1
    growth: float = 0

    def __post_init__(self):
        if self.mode not in MANA_OVERRIDE_MODES:
            raise ConfigurationError(
                f"Unknown mana override mode {self.mode!r}. Valid modes: {list(MANA_OVERRIDE_MODES)}"
            )
        object.__setattr__(self, "amount", max(1, int(self.amount)))
        object.__setattr__(self, "growth", max(0.0, float(self.growth)) if self.mode == "scaling" else 0.0)


@dataclass(frozen=True)
class DrawOverride:
    """
    Caller-supplied draw behavior for one draw spell.

    one_time: draws `amount` cards when it resolves, then leaves play
    per_turn: stays in play and draws `amount` cards (on average) each upkeep
    default: keep the classified behavior
    """

    mode: str = "default"
    amount: Optional[float] = None

    def __post_init__(self):
        if self.mode not in DRAW_OVERRIDE_MODES:
            raise ConfigurationError(
                f"Unknown draw override mode {self.mode!r}. Valid modes: {list(DRAW_OVERRIDE_MODES)}"
            )
        if self.amount is not None:
            object.__setattr__(self, "amount", max(0.0, float(self.amount)))


def _override_map(name: str, value: Mapping[str, Any], override_type) -> Dict[str, Any]:
    """Lowercase the card names and build override objects from plain mappings."""
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{name} must map card names to overrides")
    overrides = {}
    for card_name, override in value.items():
        if isinstance(override, Mapping):
            try:
                override = override_type(**override)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Bad {name} entry for {card_name!r}: {e}") from None
        elif not isinstance(override, override_type):
            raise ConfigurationError(f"Bad {name} entry for {card_name!r}: {override!r}")
        overrides[card_name.lower()] = override
    return overrides


@dataclass(frozen=True)
class SimulationConfig:
    """Configuration for a Monte Carlo deck simulation."""

    iterations: int = 10_000
    """Number of trials"""

    turns: int = 7
    """Turns simulated per trial"""

    hand_size: int = 7
    """Opening hand size"""

    max_sequences: int = 1
    """Sample play sequences retained per key card per turn"""

    commander_mode: bool = False
    """Multiplayer: free first mulligan, draw on turn 1, crowd lands untap"""

    enable_mulligans: bool = False

    mulligan_rule: str = "london"
    """london or vancouver"""

    mulligan_strategy: str = "balanced"
    """conservative, balanced, aggressive or custom"""

    custom_mulligan_rules: CustomMulliganRules = field(default_factory=CustomMulliganRules)

    selected_key_cards: FrozenSet[str] = frozenset()
    """Card names whose castability is tracked"""

    include_artifacts: bool = True
    include_creatures: bool = True
    include_exploration: bool = True
    include_ramp_spells: bool = True
    include_rituals: bool = True
    include_cost_reducers: bool = True
    include_draw_spells: bool = True

    disabled_artifacts: FrozenSet[str] = frozenset()
    disabled_creatures: FrozenSet[str] = frozenset()
    disabled_exploration: FrozenSet[str] = frozenset()
    disabled_ramp_spells: FrozenSet[str] = frozenset()
    disabled_rituals: FrozenSet[str] = frozenset()
    disabled_cost_reducers: FrozenSet[str] = frozenset()
    disabled_draw_spells: FrozenSet[str] = frozenset()

    mana_overrides: Mapping[str, ManaOverride] = field(default_factory=dict)
    """Mana output overrides keyed by lowercase card name"""

    draw_overrides: Mapping[str, DrawOverride] = field(default_factory=dict)
    """Draw behavior overrides keyed by lowercase card name"""

    flood_n_lands: int = 5
    """Lands in play that count as flooding"""

    flood_turn: Optional[int] = 5
    """Turn the flood rate is measured on (None disables it)"""

    screw_n_lands: int = 2
    """Lands in play (or fewer) that count as screwed"""

    screw_turn: Optional[int] = 3
    """Turn the screw rate is measured on (None disables it)"""

    max_hand_size: int = 7
    """Hand size enforced at end of turn"""

    simplify_mox_conditions: bool = True
    """Metalcraft counts as active from turn 3; legendary conditions always hold"""

    seed: Optional[int] = None
    """Base RNG seed; trial i shuffles with seed + i"""

    workers: int = 1
    """Worker processes (1 runs in-process)"""

    def __post_init__(self):
        for name in (
            "selected_key_cards",
            "disabled_artifacts",
            "disabled_creatures",
            "disabled_exploration",
            "disabled_ramp_spells",
            "disabled_rituals",
            "disabled_cost_reducers",
            "disabled_draw_spells",
        ):
            value = getattr(self, name)
            if isinstance(value, str):
                raise ConfigurationError(f"{name} must be a collection of names, not a string")
            object.__setattr__(self, name, frozenset(value))
        object.__setattr__(
            self, "mana_overrides", _override_map("mana_overrides", self.mana_overrides, ManaOverride)
        )
        object.__setattr__(
            self, "draw_overrides", _override_map("draw_overrides", self.draw_overrides, DrawOverride)
        )

        for name in ("iterations", "turns", "hand_size", "workers", "max_hand_size"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_sequences < 0:
            raise ConfigurationError(f"max_sequences must be >= 0, got {self.max_sequences}")
        if self.mulligan_rule not in MULLIGAN_RULES:
            raise ConfigurationError(
                f"Unknown mulligan rule {self.mulligan_rule!r}. Valid rules: {list(MULLIGAN_RULES)}"
            )
        if self.mulligan_strategy not in MULLIGAN_STRATEGIES:
            raise ConfigurationError(
                f"Unknown mulligan strategy {self.mulligan_strategy!r}. "
                f"Valid strategies: {list(MULLIGAN_STRATEGIES)}"
            )

    def is_disabled(self, kind: CardKind, name: str) -> bool:
        """Whether a card of this kind is toggled out of the deck."""
        toggles = {
            CardKind.ARTIFACT: (self.include_artifacts, self.disabled_artifacts),
            CardKind.CREATURE: (self.include_creatures, self.disabled_creatures),
            CardKind.EXPLORATION: (self.include_exploration, self.disabled_exploration),
            CardKind.RAMP_SPELL: (self.include_ramp_spells, self.disabled_ramp_spells),
            CardKind.RITUAL: (self.include_rituals, self.disabled_rituals),
            CardKind.COST_REDUCER: (self.include_cost_reducers, self.disabled_cost_reducers),
            CardKind.DRAW_SPELL: (self.include_draw_spells, self.disabled_draw_spells),
        }
        if kind not in toggles:
            return False
        included, disabled = toggles[kind]
        return not included or name in disabled

    @classmethod
    def from_env(cls, **overrides):
        """Create config from MANASIM_* environment variables.

        Args:
            **overrides: Field values that take precedence over the environment

        Raises:
            ConfigurationError: If a variable is not an integer or a value is invalid
        """
        env_fields = {
            "iterations": "MANASIM_ITERATIONS",
            "turns": "MANASIM_TURNS",
            "hand_size": "MANASIM_HAND_SIZE",
            "workers": "MANASIM_WORKERS",
            "seed": "MANASIM_SEED",
        }
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"Unknown config options: {sorted(unknown)}")

        values = {}
        for name, variable in env_fields.items():
            value = _env_int(variable)
            if value is not None:
                values[name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
