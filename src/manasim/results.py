"""
Aggregated simulation results.

Per-turn metrics are folded into running (count, sum, sum of squares)
accumulators so a run never keeps per-trial samples, and partial
results from separate workers can be merged in any order. Means,
standard deviations and percentages are derived once, in finalize().
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .turn import TurnLog
from .types import COLORS, SimulationConfig

SERIES = ("lands", "untapped_lands", "total_mana", "life_loss", "cards_drawn")


@dataclass
class RunningStat:
    """Streaming mean and population standard deviation."""

    count: int = 0
    total: float = 0.0
    total_sq: float = 0.0

    def add(self, value: float):
        self.count += 1
        self.total += value
        self.total_sq += value * value

    def merge(self, other: "RunningStat"):
        self.count += other.count
        self.total += other.total
        self.total_sq += other.total_sq

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0

    @property
    def std(self) -> float:
        if not self.count:
            return 0.0
        variance = self.total_sq / self.count - self.mean ** 2
        # Rounding can push a zero variance slightly negative
        return math.sqrt(max(0.0, variance))


@dataclass
class TurnSnapshot:
    """Per-turn observation taken after a turn's casting phase."""

    lands: int
    untapped_lands: int
    total_mana: int
    colors: Dict[str, int]
    life_loss: float
    cards_drawn: int


@dataclass
class PlaySequence:
    """Example trial in which a key card was castable, with or without burst mana."""

    turn: int
    mana_available: int
    opening_hand: List[str]
    turns: List[TurnLog]
    mana_with_burst: Optional[int] = None
    burst_cards: List[str] = field(default_factory=list)


class Results:
    """
    Running accumulators for one simulation run.

    Args:
        config: Simulation options (turn count, sequence cap, flood/screw)
        key_cards: Tracked key card name -> converted cost
        has_burst_cards: Deck contains burst artifacts or rituals
    """

    def __init__(self, config: SimulationConfig, key_cards: Dict[str, int], has_burst_cards: bool = False):
        self.turns = config.turns
        self.max_sequences = config.max_sequences
        self.flood_n_lands = config.flood_n_lands
        self.flood_turn = config.flood_turn
        self.screw_n_lands = config.screw_n_lands
        self.screw_turn = config.screw_turn
        self.has_burst_cards = has_burst_cards
        self.key_card_cmc = dict(key_cards)

        self.iterations = 0
        self.mulligans = 0
        self.hands_kept = 0
        self.flood_count = 0
        self.screw_count = 0

        self.stats: Dict[str, List[RunningStat]] = {
            name: [RunningStat() for _ in range(self.turns)] for name in SERIES
        }
        self.color_stats: Dict[str, List[RunningStat]] = {
            color: [RunningStat() for _ in range(self.turns)] for color in COLORS
        }
        self.key_card_counts = {name: [0] * self.turns for name in key_cards}
        self.key_card_burst_counts = {name: [0] * self.turns for name in key_cards}
        self.key_card_on_curve_counts = {name: 0 for name in key_cards}
        self.sequences: Dict[str, Dict[int, List[PlaySequence]]] = {name: {} for name in key_cards}
        self.burst_sequences: Dict[str, Dict[int, List[PlaySequence]]] = {name: {} for name in key_cards}
        self.finalized = False

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def record_turn(self, turn_index: int, snapshot: TurnSnapshot):
        self.stats["lands"][turn_index].add(snapshot.lands)
        self.stats["untapped_lands"][turn_index].add(snapshot.untapped_lands)
        self.stats["total_mana"][turn_index].add(snapshot.total_mana)
        self.stats["life_loss"][turn_index].add(snapshot.life_loss)
        self.stats["cards_drawn"][turn_index].add(snapshot.cards_drawn)
        for color in COLORS:
            self.color_stats[color][turn_index].add(snapshot.colors.get(color, 0))

    def record_key_card(self, name: str, turn_index: int, castable: bool, castable_with_burst: bool):
        if castable:
            self.key_card_counts[name][turn_index] += 1
            if turn_index == max(0, self.key_card_cmc[name] - 1):
                self.key_card_on_curve_counts[name] += 1
        if castable or castable_with_burst:
            self.key_card_burst_counts[name][turn_index] += 1

    def wants_sequence(self, name: str, turn_index: int, burst: bool = False) -> bool:
        samples = (self.burst_sequences if burst else self.sequences)[name]
        return len(samples.get(turn_index, [])) < self.max_sequences

    def add_sequence(self, name: str, turn_index: int, sequence: PlaySequence, burst: bool = False):
        samples = (self.burst_sequences if burst else self.sequences)[name]
        bucket = samples.setdefault(turn_index, [])
        if len(bucket) < self.max_sequences:
            bucket.append(sequence)

    def record_trial(self, lands_by_turn: Sequence[int], mulligans: int):
        """Count one kept hand and its flood/screw outcome."""
        self.iterations += 1
        self.hands_kept += 1
        self.mulligans += mulligans
        if self.flood_turn is not None and 1 <= self.flood_turn <= len(lands_by_turn):
            if lands_by_turn[self.flood_turn - 1] >= self.flood_n_lands:
                self.flood_count += 1
        if self.screw_turn is not None and 1 <= self.screw_turn <= len(lands_by_turn):
            if lands_by_turn[self.screw_turn - 1] <= self.screw_n_lands:
                self.screw_count += 1

    def merge(self, other: "Results") -> "Results":
        """Fold another worker's partial results into this one."""
        self.iterations += other.iterations
        self.mulligans += other.mulligans
        self.hands_kept += other.hands_kept
        self.flood_count += other.flood_count
        self.screw_count += other.screw_count
        self.has_burst_cards = self.has_burst_cards or other.has_burst_cards
        for name in SERIES:
            for mine, theirs in zip(self.stats[name], other.stats[name]):
                mine.merge(theirs)
        for color in COLORS:
            for mine, theirs in zip(self.color_stats[color], other.color_stats[color]):
                mine.merge(theirs)
        for name in self.key_card_counts:
            for t in range(self.turns):
                self.key_card_counts[name][t] += other.key_card_counts[name][t]
                self.key_card_burst_counts[name][t] += other.key_card_burst_counts[name][t]
            self.key_card_on_curve_counts[name] += other.key_card_on_curve_counts[name]
            for burst in (False, True):
                theirs = (other.burst_sequences if burst else other.sequences)[name]
                for turn_index in sorted(theirs):
                    for sequence in theirs[turn_index]:
                        self.add_sequence(name, turn_index, sequence, burst=burst)
        return self

    # ------------------------------------------------------------------
    # Derived statistics
    # ------------------------------------------------------------------

    def _percent(self, count: int) -> float:
        return count / self.hands_kept * 100 if self.hands_kept else 0.0

    def finalize(self) -> "Results":
        """Derive means, standard deviations and percentages (idempotent)."""
        if self.finalized:
            return self
        for name in SERIES:
            setattr(self, f"{name}_per_turn", [stat.mean for stat in self.stats[name]])
            setattr(self, f"{name}_per_turn_std", [stat.std for stat in self.stats[name]])
        self.colors_per_turn = {
            color: [stat.mean for stat in self.color_stats[color]] for color in COLORS
        }
        self.colors_per_turn_std = {
            color: [stat.std for stat in self.color_stats[color]] for color in COLORS
        }
        self.key_card_playability = {
            name: [self._percent(c) for c in counts] for name, counts in self.key_card_counts.items()
        }
        self.key_card_playability_burst = {
            name: [self._percent(c) for c in counts]
            for name, counts in self.key_card_burst_counts.items()
        }
        self.key_card_on_curve = {
            name: self._percent(count) for name, count in self.key_card_on_curve_counts.items()
        }
        self.flood_rate = self._percent(self.flood_count) if self.flood_turn is not None else None
        self.screw_rate = self._percent(self.screw_count) if self.screw_turn is not None else None
        self.finalized = True
        return self

    @classmethod
    def empty(cls, config: SimulationConfig, key_cards: Dict[str, int] = None) -> "Results":
        """Zero-filled, finalized results (used when the deck is empty)."""
        return cls(config, key_cards or {}).finalize()

    def summary(self) -> Dict[str, object]:
        """Plain-dict view of the finalized statistics."""
        self.finalize()
        data = {
            "iterations": self.iterations,
            "hands_kept": self.hands_kept,
            "mulligans": self.mulligans,
            "has_burst_cards": self.has_burst_cards,
            "flood_rate": self.flood_rate,
            "screw_rate": self.screw_rate,
            "colors_per_turn": self.colors_per_turn,
            "key_card_playability": self.key_card_playability,
            "key_card_playability_burst": self.key_card_playability_burst,
            "key_card_on_curve": self.key_card_on_curve,
            "key_card_cmc": self.key_card_cmc,
        }
        for name in SERIES:
            data[f"{name}_per_turn"] = getattr(self, f"{name}_per_turn")
            data[f"{name}_per_turn_std"] = getattr(self, f"{name}_per_turn_std")
        return data
