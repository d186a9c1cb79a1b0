"""
Test suite for the turn simulator.

Tests cover:
- Phase order and the zone-size invariant
- Draw rules on turn 1
- Casting mana permanents and paying their costs
- Exploration effects and ramp spells
- Draw spells, upkeep draw engines and cost reducers
- Life loss from permanents
- Hand size cleanup
"""

import random

import pytest

from manasim.cards import (
    ArtifactCard,
    CostReducerCard,
    CreatureCard,
    DrawSpellCard,
    ExplorationCard,
    RampSpellCard,
)
from manasim.mana import availability
from manasim.turn import (
    TrialState,
    battlefield_damage,
    cast_draw_spells,
    cast_permanents,
    cast_ramp_spells,
    enforce_hand_size,
    simulate_turn,
    upkeep_damage,
    upkeep_draws,
)
from manasim.types import COLORS, DamageRule, EtbCost, LandArchetype, RampFilter, SimulationConfig
from manasim.zones import Permanent, Zones

PHASES = [
    "untap",
    "upkeep",
    "draw",
    "land",
    "exploration",
    "extra_lands",
    "fetch",
    "cast",
    "damage",
    "cleanup",
]


@pytest.fixture
def config():
    return SimulationConfig()


@pytest.fixture
def sol_ring():
    return ArtifactCard(name="Sol Ring", type_line="Artifact", mana_cost="{1}", cmc=1, produces=("C",), mana_amount=2)


@pytest.fixture
def mana_vault():
    return ArtifactCard(
        name="Mana Vault",
        type_line="Artifact",
        mana_cost="{1}",
        cmc=1,
        produces=("C",),
        mana_amount=3,
        doesnt_untap=True,
        damage=DamageRule.UPKEEP_IF_TAPPED,
        damage_amount=1,
    )


@pytest.fixture
def elves():
    return CreatureCard(
        name="Llanowar Elves", type_line="Creature — Elf Druid", mana_cost="{G}", cmc=1, produces=("G",)
    )


def new_state(library=(), hand=(), battlefield=(), rng=None):
    return TrialState(
        zones=Zones(library=list(library), hand=list(hand), battlefield=list(battlefield)),
        rng=rng or random.Random(0),
    )


# =============================================================================
# PHASE TESTS
# =============================================================================

class TestPhases:
    """Tests for turn structure."""

    def test_phase_order(self, basic_land, config):
        """The hook sees every phase in order."""
        seen = []
        state = new_state(library=[basic_land("U")] * 3, hand=[basic_land("U")])
        simulate_turn(state, 1, config, on_phase=lambda name, zones: seen.append(name))
        assert seen == PHASES

    def test_zone_total_constant(self, basic_land, land_card, sol_ring, elves, config):
        """Cards are only moved between zones, never created or lost."""
        grave = land_card("Watery Grave", ("U", "B"), subtypes=("Island", "Swamp"), archetype=LandArchetype.SHOCK, life_loss=2)
        library = [basic_land("G"), grave, basic_land("B"), basic_land("U"), sol_ring, basic_land("G")]
        hand = [basic_land("G"), elves, sol_ring, basic_land("U")]
        state = new_state(library=library, hand=hand)
        totals = []
        for turn_number in range(1, 6):
            simulate_turn(
                state, turn_number, config, on_phase=lambda name, zones: totals.append(zones.total())
            )
        assert set(totals) == {len(library) + len(hand)}

    def test_no_draw_on_turn_one(self, basic_land, config):
        """The player on the play skips the first draw."""
        state = new_state(library=[basic_land("U")] * 3)
        simulate_turn(state, 1, config)
        assert state.cards_drawn == 0
        simulate_turn(state, 2, config)
        assert state.cards_drawn == 1

    def test_commander_draws_on_turn_one(self, basic_land):
        """Multiplayer games draw on turn 1."""
        state = new_state(library=[basic_land("U")] * 3)
        simulate_turn(state, 1, SimulationConfig(commander_mode=True))
        assert state.cards_drawn == 1

    def test_empty_library(self, config):
        """Drawing from an empty library does nothing."""
        state = new_state()
        log = simulate_turn(state, 2, config)
        assert state.cards_drawn == 0
        assert log.lands_played == 0

    def test_turn_logs_accumulate(self, basic_land, config):
        """Each turn appends its log to the trial state."""
        state = new_state(library=[basic_land("U")] * 3, hand=[basic_land("U")])
        simulate_turn(state, 1, config)
        simulate_turn(state, 2, config)
        assert [log.turn for log in state.turn_logs] == [1, 2]
        assert all(log.lands_played == 1 for log in state.turn_logs)


# =============================================================================
# CASTING TESTS
# =============================================================================

class TestCasting:
    """Tests for casting mana permanents."""

    def test_sol_ring_turn_one(self, basic_land, sol_ring, config):
        """Land, then Sol Ring off it."""
        state = new_state(library=[basic_land("W")] * 2, hand=[basic_land("W"), sol_ring])
        simulate_turn(state, 1, config)
        zones = state.zones
        assert [p.name for p in zones.battlefield] == ["Plains", "Sol Ring"]
        assert zones.battlefield[0].tapped
        assert not zones.battlefield[1].tapped
        assert availability(zones.battlefield, 1).total == 2

    def test_creature_summoning_sick(self, basic_land, elves, config):
        """A dork cast this turn does not produce until next turn."""
        state = new_state(library=[basic_land("G")] * 2, hand=[basic_land("G"), elves])
        simulate_turn(state, 1, config)
        dork = state.zones.battlefield[1]
        assert dork.summoning_sick
        assert availability(state.zones.battlefield, 1).total == 0
        simulate_turn(state, 2, config)
        assert not dork.summoning_sick

    def test_mox_diamond_discards_a_land(self, basic_land, config):
        """Mox Diamond is cast by discarding a land from hand."""
        diamond = ArtifactCard(
            name="Mox Diamond",
            type_line="Artifact",
            mana_cost="{0}",
            produces=COLORS,
            etb_cost=EtbCost.DISCARD_LAND,
            priority=True,
        )
        state = new_state(hand=[basic_land("G"), basic_land("G"), diamond])
        simulate_turn(state, 1, config)
        zones = state.zones
        assert [p.name for p in zones.battlefield] == ["Forest", "Mox Diamond"]
        assert [c.name for c in zones.graveyard] == ["Forest"]
        assert zones.hand == []

    def test_mox_diamond_without_spare_land(self, basic_land, config):
        """With no land left to discard, Mox Diamond stays in hand."""
        diamond = ArtifactCard(
            name="Mox Diamond", type_line="Artifact", mana_cost="{0}", produces=COLORS, etb_cost=EtbCost.DISCARD_LAND
        )
        state = new_state(hand=[basic_land("G"), diamond])
        simulate_turn(state, 1, config)
        assert state.zones.hand == [diamond]

    def test_burst_artifact_stays_in_hand(self, basic_land, config):
        """Burst mana is counted from hand, never cast."""
        petal = ArtifactCard(
            name="Lotus Petal", type_line="Artifact", mana_cost="{0}", produces=COLORS, is_burst=True
        )
        state = new_state(hand=[basic_land("G"), petal])
        simulate_turn(state, 1, config)
        assert state.zones.hand == [petal]

    def test_spells_stay_in_hand(self, basic_land, spell_card, config):
        """Key spells are evaluated, not cast."""
        bolt = spell_card("Lightning Bolt", "{R}", type_line="Instant")
        state = new_state(hand=[basic_land("R"), bolt])
        simulate_turn(state, 1, config)
        assert state.zones.hand == [bolt]


class TestLandEffects:
    """Tests for exploration effects and ramp spells."""

    def test_exploration_extra_land(self, basic_land, config):
        """Exploration allows a second land drop the turn it is cast."""
        exploration = ExplorationCard(
            name="Exploration", type_line="Enchantment", mana_cost="{G}", cmc=1, lands_per_turn=2
        )
        state = new_state(hand=[basic_land("G"), exploration, basic_land("G"), basic_land("G")])
        log = simulate_turn(state, 1, config)
        assert log.lands_played == 2
        assert sum(1 for _ in state.zones.lands()) == 2

    def test_ramp_spell_fetches_tapped_basic(self, basic_land, config, permanents):
        """Rampant Growth puts a basic onto the battlefield tapped."""
        growth = RampSpellCard(
            name="Rampant Growth", type_line="Sorcery", mana_cost="{1}{G}", cmc=2, land_filter=RampFilter.BASIC
        )
        zones = Zones(
            library=[basic_land("U")],
            hand=[growth],
            battlefield=permanents(basic_land("G"), basic_land("G")),
        )
        actions = []
        cast_ramp_spells(zones, 3, config, actions)
        assert [p.name for p in zones.battlefield] == ["Forest", "Forest", "Island"]
        assert zones.battlefield[2].tapped
        assert zones.graveyard == [growth]
        assert actions[0].startswith("Cast ramp spell: Rampant Growth")

    def test_ramp_spell_fetched_tapland_enters_tapped(self, basic_land, land_card, config, permanents):
        """An untapped-search spell still puts a tapped land in tapped."""
        lore = RampSpellCard(
            name="Nature's Lore",
            type_line="Sorcery",
            mana_cost="{1}{G}",
            cmc=2,
            lands_tapped=False,
            land_filter=RampFilter.SUBTYPE,
            fetch_subtypes=("Forest",),
        )
        gardens = land_card("Lush Gardens", ("G", "W"), subtypes=("Forest", "Plains"), enters_tapped_always=True)
        zones = Zones(library=[gardens], hand=[lore], battlefield=permanents(basic_land("G"), basic_land("G")))
        actions = []
        cast_ramp_spells(zones, 3, config, actions)
        assert zones.battlefield[2].name == "Lush Gardens"
        assert zones.battlefield[2].tapped
        assert actions == ["Cast ramp spell: Nature's Lore → Lush Gardens (tapped)"]

    def test_ramp_spell_needs_targets(self, basic_land, config, permanents):
        """Without a land to find, the ramp spell is not cast."""
        growth = RampSpellCard(name="Rampant Growth", mana_cost="{1}{G}", cmc=2)
        zones = Zones(library=[], hand=[growth], battlefield=permanents(basic_land("G"), basic_land("G")))
        cast_ramp_spells(zones, 3, config, [])
        assert zones.hand == [growth]

    def test_harrow_sacrifices_a_land(self, basic_land, config, permanents):
        """Harrow sacrifices a land and puts two untapped basics in play."""
        harrow = RampSpellCard(
            name="Harrow",
            type_line="Instant",
            mana_cost="{2}{G}",
            cmc=3,
            lands_to_battlefield=2,
            lands_tapped=False,
            sacrifice_land=True,
        )
        zones = Zones(
            library=[basic_land("U"), basic_land("B")],
            hand=[harrow],
            battlefield=permanents(basic_land("G"), basic_land("G"), basic_land("G")),
        )
        cast_ramp_spells(zones, 4, config, [])
        assert sum(1 for _ in zones.lands()) == 4
        assert [c.name for c in zones.graveyard] == ["Harrow", "Forest"]
        assert not any(p.tapped for p in zones.battlefield if p.name in ("Island", "Swamp"))


# =============================================================================
# DRAW AND COST REDUCER TESTS
# =============================================================================

@pytest.fixture
def divination():
    return DrawSpellCard(name="Divination", type_line="Sorcery", mana_cost="{2}{U}", cmc=3, cards_drawn=2)


@pytest.fixture
def arena():
    return DrawSpellCard(
        name="Phyrexian Arena",
        type_line="Enchantment",
        mana_cost="{1}{B}{B}",
        cmc=3,
        one_time=False,
        cards_per_turn=1,
        stays_on_battlefield=True,
    )


class TestDrawSpells:
    """Tests for one-shot draw spells and repeating engines."""

    def test_one_time_draw(self, basic_land, divination, config, permanents):
        """Divination draws two and goes to the graveyard."""
        state = new_state(
            library=[basic_land("B")] * 3,
            hand=[divination],
            battlefield=permanents(basic_land("U"), basic_land("U"), basic_land("U")),
        )
        actions = []
        cast_draw_spells(state, 3, config, actions)
        assert state.zones.graveyard == [divination]
        assert len(state.zones.hand) == 2
        assert state.cards_drawn == 2
        assert actions == ["Cast Divination, drew 2"]
        assert all(p.tapped for p in state.zones.battlefield)

    def test_unaffordable_draw_spell_stays_in_hand(self, basic_land, divination, config, permanents):
        state = new_state(library=[basic_land("B")] * 3, hand=[divination], battlefield=permanents(basic_land("U")))
        cast_draw_spells(state, 1, config, [])
        assert state.zones.hand == [divination]
        assert state.cards_drawn == 0

    def test_engine_enters_then_draws_at_upkeep(self, basic_land, arena, config, permanents):
        """The engine draws nothing the turn it resolves, then once per upkeep."""
        state = new_state(
            library=[basic_land("U")] * 5,
            hand=[arena],
            battlefield=permanents(basic_land("B"), basic_land("B"), basic_land("B")),
        )
        cast_draw_spells(state, 3, config, [])
        assert [p.name for p in state.zones.battlefield][-1] == "Phyrexian Arena"
        assert state.cards_drawn == 0

        log = simulate_turn(state, 4, config)
        assert state.cards_drawn == 2
        assert "Phyrexian Arena drew 1" in log.actions

    def test_fractional_rate_averages_out(self, basic_land, permanents):
        """1.5 cards per turn draws one or two, about half of each."""
        engine = DrawSpellCard(name="Rhystic Study", one_time=False, cards_per_turn=1.5, stays_on_battlefield=True)
        state = new_state(library=[basic_land("U")] * 400, battlefield=permanents(engine), rng=random.Random(7))
        counts = [upkeep_draws(state, []) for _ in range(200)]
        assert set(counts) == {1, 2}
        assert 250 <= sum(counts) <= 350
        assert state.cards_drawn == sum(counts)

    def test_engine_with_empty_library(self, arena, permanents):
        state = new_state(battlefield=permanents(arena))
        actions = []
        assert upkeep_draws(state, actions) == 0
        assert actions == []

    def test_draws_keep_zone_total(self, basic_land, divination, arena, config):
        """Drawn cards move from library to hand; nothing is created."""
        library = [basic_land("U")] * 8 + [divination, arena]
        hand = [basic_land("U"), basic_land("B"), divination]
        state = new_state(library=library, hand=hand)
        totals = set()
        for turn_number in range(1, 7):
            simulate_turn(state, turn_number, config, on_phase=lambda name, zones: totals.add(zones.total()))
        assert totals == {len(library) + len(hand)}


class TestCostReducers:
    """Tests for casting cost reducers."""

    def test_reducer_cast_after_mana_sources(self, basic_land, config, permanents):
        """The rock comes down first so the reducer is still affordable afterwards."""
        stone = ArtifactCard(name="Mind Stone", type_line="Artifact", mana_cost="{2}", cmc=2, produces=("C",))
        charm = CostReducerCard(name="Etched Charm", type_line="Artifact", mana_cost="{1}", cmc=1)
        zones = Zones(library=[], hand=[charm, stone], battlefield=permanents(basic_land("U"), basic_land("U")))
        actions = []
        cast_permanents(zones, 2, config, actions)
        assert actions == ["Cast Mind Stone", "Cast Etched Charm"]
        assert zones.hand == []

    def test_reducer_makes_no_mana(self, config, permanents):
        charm = CostReducerCard(name="Etched Charm", type_line="Artifact", mana_cost="{1}", cmc=1)
        assert availability(permanents(charm), 2).total == 0


# =============================================================================
# DAMAGE TESTS
# =============================================================================

class TestDamage:
    """Tests for life lost to permanents."""

    def test_every_turn(self, permanents):
        """Mana Crypt averages 1.5 damage a turn."""
        crypt = ArtifactCard(name="Mana Crypt", produces=("C",), damage=DamageRule.EVERY_TURN, damage_amount=1.5)
        assert battlefield_damage(permanents(crypt), 9) == 1.5

    def test_early_turns_only(self, land_card, permanents):
        """Pain lands hurt through turn 5 only."""
        pain = land_card("Shivan Reef", ("C", "U", "R"), damage=DamageRule.EARLY_TURNS, damage_amount=1)
        assert battlefield_damage(permanents(pain), 5) == 1
        assert battlefield_damage(permanents(pain), 6) == 0

    def test_when_tapped(self, land_card, permanents):
        """City of Brass hurts only when tapped."""
        city = land_card("City of Brass", COLORS, damage=DamageRule.WHEN_TAPPED, damage_amount=1)
        assert battlefield_damage(permanents(city), 3) == 0
        assert battlefield_damage(permanents(city, tapped=True), 3) == 1

    def test_upkeep_only_counted_at_upkeep(self, mana_vault, permanents):
        """A tapped Mana Vault is charged at upkeep, not end of turn."""
        battlefield = permanents(mana_vault, tapped=True)
        assert upkeep_damage(battlefield) == 1
        assert battlefield_damage(battlefield, 2) == 0

    def test_mana_vault_upkeep(self, basic_land, mana_vault, config):
        """A Mana Vault left tapped stays tapped and deals 1 at upkeep."""
        vault = Permanent(card=mana_vault, tapped=True)
        state = new_state(library=[basic_land("U")], battlefield=[vault])
        log = simulate_turn(state, 2, config)
        assert vault.tapped
        assert log.life_lost == 1
        assert state.life_lost == 1
        assert "at upkeep" in log.actions[0]

    def test_untapped_vault_is_harmless(self, mana_vault, config):
        """An untapped Mana Vault deals nothing."""
        state = new_state(battlefield=[Permanent(card=mana_vault)])
        assert simulate_turn(state, 2, config).life_lost == 0

    def test_shock_life_accumulates(self, land_card, config):
        """Shock payments add to the trial's life lost."""
        grave = land_card("Watery Grave", ("U", "B"), subtypes=("Island", "Swamp"), archetype=LandArchetype.SHOCK, life_loss=2)
        other = land_card("Breeding Pool", ("G", "U"), subtypes=("Forest", "Island"), archetype=LandArchetype.SHOCK, life_loss=2)
        state = new_state(hand=[grave, other])
        simulate_turn(state, 1, config)
        simulate_turn(state, 2, config)
        assert state.life_lost == 4


# =============================================================================
# CLEANUP TESTS
# =============================================================================

class TestHandSize:
    """Tests for the end-of-turn hand size check."""

    def test_discards_expensive_spells(self, spell_card):
        """Without a flood, the most expensive spells go first."""
        hand = [spell_card(f"Spell {cmc}", "{%d}" % cmc) for cmc in range(1, 10)]
        zones = Zones(library=[], hand=list(hand))
        enforce_hand_size(zones, 7, 5, [])
        assert len(zones.hand) == 7
        assert sorted(c.cmc for c in zones.graveyard) == [8, 9]

    def test_flooded_discards_lands(self, basic_land, spell_card, permanents):
        """With enough lands in play, spare lands go first."""
        lands = [basic_land("U"), basic_land("U")]
        spells = [spell_card(f"Spell {i}", "{1}") for i in range(6)]
        zones = Zones(
            library=[],
            hand=lands + spells,
            battlefield=permanents(*[basic_land("U") for _ in range(5)]),
        )
        enforce_hand_size(zones, 7, 5, [])
        assert [c.name for c in zones.graveyard] == ["Island"]

    def test_under_limit(self, spell_card):
        """Nothing happens at or below the limit."""
        zones = Zones(library=[], hand=[spell_card("Opt", "{U}")])
        enforce_hand_size(zones, 7, 5, [])
        assert zones.graveyard == []
