"""
Per-trial game zones.

Cards move between zones but are never created or destroyed, so the
total across all zones stays equal to the deck size for a whole trial.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .cards import Card, LandCard


@dataclass(eq=False)
class Permanent:
    """A card on the battlefield plus its per-trial state."""

    card: Card
    tapped: bool = False
    summoning_sick: bool = False
    entered_tapped: bool = False
    """Entered the battlefield tapped this trial (fetched, forced, or by rule)"""

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def is_land(self) -> bool:
        return self.card.is_land


@dataclass
class Zones:
    """Hand, library (top first), graveyard, battlefield and exile."""

    library: List[Card]
    hand: List[Card] = field(default_factory=list)
    graveyard: List[Card] = field(default_factory=list)
    battlefield: List[Permanent] = field(default_factory=list)
    exile: List[Card] = field(default_factory=list)

    def draw(self) -> Optional[Card]:
        """Move the top card of the library to hand; None when the library is empty."""
        if not self.library:
            return None
        card = self.library.pop(0)
        self.hand.append(card)
        return card

    def lands(self) -> Iterator[Permanent]:
        return (p for p in self.battlefield if p.is_land)

    def land_cards(self) -> List[LandCard]:
        return [p.card for p in self.battlefield if p.is_land]

    def put_onto_battlefield(self, card: Card, tapped: bool = False, summoning_sick: bool = False) -> Permanent:
        permanent = Permanent(card=card, tapped=tapped, summoning_sick=summoning_sick, entered_tapped=tapped)
        self.battlefield.append(permanent)
        return permanent

    def remove_permanent(self, permanent: Permanent) -> Card:
        self.battlefield.remove(permanent)
        return permanent.card

    def total(self) -> int:
        """Card count across all zones."""
        return (
            len(self.library)
            + len(self.hand)
            + len(self.graveyard)
            + len(self.battlefield)
            + len(self.exile)
        )
