"""
Tests for mana cost parsing and the mana solver.

Tests cover:
- Mana symbol parsing and converted cost
- Colored pip extraction (hybrid, Phyrexian, generic)
- Bipartite pip matching
- Cost reducer discounts
- Availability from lands, artifacts and creatures, including scaling output
- Variable-output lands
- Tapping permanents to pay a cost
- Burst mana from hand
"""

import pytest

from manasim.cards import (
    ArtifactCard,
    CostReducerCard,
    CreatureCard,
    RitualCard,
    calculate_cmc,
    colored_pips,
    parse_mana_symbols,
    resolve_cmc,
)
from manasim.mana import (
    ManaAvailability,
    ManaSource,
    artifact_condition_met,
    availability,
    burst_sources,
    can_pay,
    cost_discount,
    land_output,
    scaled_amount,
    solve_color_pips,
    tap_for_cost,
)
from manasim.types import COLORS, LandProduction, ManaCondition
from manasim.zones import Permanent


# =============================================================================
# MANA COST PARSING TESTS
# =============================================================================

class TestManaCostParsing:
    """Tests for splitting and counting mana costs."""

    def test_parse_symbols(self):
        """Symbols come back in order, uppercased."""
        assert parse_mana_symbols("{2}{w/u}{B}") == ["2", "W/U", "B"]

    def test_parse_empty_cost(self):
        """Lands and costless cards have no symbols."""
        assert parse_mana_symbols("") == []
        assert parse_mana_symbols(None) == []

    def test_cmc_generic_and_colored(self):
        """Digits add their value, each other symbol adds one."""
        assert calculate_cmc("{2}{U}{U}") == 4

    def test_cmc_ignores_x(self):
        """X costs count as zero."""
        assert calculate_cmc("{X}{R}{R}") == 2

    def test_cmc_hybrid_counts_once(self):
        """A hybrid symbol is a single mana."""
        assert calculate_cmc("{W/U}{2}") == 3

    def test_resolve_cmc_prefers_reported(self):
        """A reported cmc wins when it is plausible."""
        assert resolve_cmc(3.0, "{X}") == 3

    def test_resolve_cmc_fixes_zero(self):
        """A reported 0 with a real cost is recomputed."""
        assert resolve_cmc(0, "{1}{U}") == 2

    def test_resolve_cmc_missing(self):
        """A missing cmc is computed from the cost."""
        assert resolve_cmc(None, "{G}") == 1


class TestColoredPips:
    """Tests for per-pip color requirements."""

    def test_single_colors(self):
        """Each colored symbol is its own pip."""
        assert colored_pips("{1}{U}{U}") == (frozenset("U"), frozenset("U"))

    def test_hybrid_pip(self):
        """Hybrid symbols accept either color."""
        assert colored_pips("{2}{W/U}{B}") == (frozenset({"W", "U"}), frozenset("B"))

    def test_phyrexian_and_two_brid_impose_nothing(self):
        """Phyrexian and {2/W} symbols can be paid without colored mana."""
        assert colored_pips("{W/P}{2/W}") == ()

    def test_generic_only(self):
        """Generic and colorless symbols are not pips."""
        assert colored_pips("{3}{C}") == ()


# =============================================================================
# MATCHING TESTS
# =============================================================================

class TestSolveColorPips:
    """Tests for the pip-to-unit bipartite matching."""

    def test_two_dual_sources_pay_two_colors(self):
        """Two {U,B} sources satisfy {U}{B}."""
        pips = colored_pips("{U}{B}")
        assert solve_color_pips(pips, [("U", "B"), ("U", "B")])

    def test_single_dual_source_cannot_pay_double_pip(self):
        """One {U,B} source cannot satisfy {U}{U}."""
        pips = colored_pips("{U}{U}")
        assert not solve_color_pips(pips, [("U", "B")])

    def test_augmenting_path_reassigns_flexible_unit(self):
        """A dual source first given to U is moved to B when an Island can take U."""
        pips = colored_pips("{U}{B}")
        assert solve_color_pips(pips, [("U", "B"), ("U",)])

    def test_wrong_colors_fail(self):
        """Enough units of the wrong colors do not help."""
        pips = colored_pips("{U}{U}")
        assert not solve_color_pips(pips, [("U", "B"), ("B",), ("R",)])

    def test_wildcard_unit(self):
        """A wildcard unit pays any pip."""
        assert solve_color_pips(colored_pips("{G}"), [("*",)])

    def test_no_pips(self):
        """Nothing to match is always satisfiable."""
        assert solve_color_pips((), [])


class TestCanPay:
    """Tests for full castability (total plus colors)."""

    def test_total_and_colors(self, basic_land, land_card, spell_card, permanents):
        """Dual plus Island casts {U}{B}."""
        battlefield = permanents(land_card("Watery Grave", ("U", "B")), basic_land("U"))
        available = availability(battlefield, 1)
        assert can_pay(spell_card("Drown", "{U}{B}"), available)

    def test_dual_and_swamp_cannot_pay_double_blue(self, basic_land, land_card, spell_card, permanents):
        """Dual plus Swamp cannot cast {U}{U}."""
        battlefield = permanents(land_card("Watery Grave", ("U", "B")), basic_land("B"))
        available = availability(battlefield, 1)
        assert not can_pay(spell_card("Counterspell", "{U}{U}"), available)

    def test_total_too_low(self, basic_land, spell_card, permanents):
        """Colors alone are not enough without the total."""
        available = availability(permanents(basic_land("U")), 1)
        assert not can_pay(spell_card("Divination", "{2}{U}"), available)

    def test_free_spell_with_nothing(self, spell_card):
        """A {0} spell is castable from an empty battlefield."""
        assert can_pay(spell_card("Ornithopter", "{0}"), ManaAvailability())

    def test_discount_covers_generic(self, basic_land, spell_card, permanents):
        """Two lands cast {2}{U} with one generic off."""
        available = availability(permanents(basic_land("U"), basic_land("U")), 2)
        divination = spell_card("Divination", "{2}{U}")
        assert not can_pay(divination, available)
        assert can_pay(divination, available, discount=1)

    def test_discount_never_pays_colored_pips(self, basic_land, spell_card, permanents):
        """A big discount leaves {U}{U} at two blue."""
        available = availability(permanents(basic_land("U")), 1)
        assert not can_pay(spell_card("Counterspell", "{U}{U}"), available, discount=3)


# =============================================================================
# COST REDUCER TESTS
# =============================================================================

class TestCostDiscount:
    """Tests for summing discounts from reducers in play."""

    @pytest.fixture
    def medallion(self):
        return CostReducerCard(name="Sapphire Medallion", type_line="Artifact", cmc=2, colors=("U",))

    @pytest.fixture
    def inspector(self):
        return CostReducerCard(
            name="Foundry Inspector", type_line="Artifact Creature — Construct", cmc=3, spell_types=("Artifact",)
        )

    def test_color_filter(self, medallion, spell_card):
        assert medallion.reduces(spell_card("Divination", "{2}{U}"))
        assert not medallion.reduces(spell_card("Shock", "{R}"))

    def test_type_filter(self, inspector, spell_card):
        assert inspector.reduces(spell_card("Walking Ballista", "{X}{X}", type_line="Artifact Creature — Construct"))
        assert not inspector.reduces(spell_card("Divination", "{2}{U}"))

    def test_exclusion_and_lands(self, basic_land, spell_card):
        """Lands are never discounted; excluded types are skipped."""
        anvil = CostReducerCard(name="Thrifty Anvil", cmc=3, exclude_types=("Creature",))
        assert not anvil.reduces(basic_land("U"))
        assert not anvil.reduces(spell_card("Grizzly Bears", "{1}{G}", type_line="Creature — Bear"))
        assert anvil.reduces(spell_card("Divination", "{2}{U}"))

    def test_discounts_stack(self, medallion, inspector, spell_card, permanents):
        """Matching reducers add up; tapped or not, they all apply."""
        battlefield = permanents(medallion, inspector) + permanents(
            CostReducerCard(name="Helm of Awakening", cmc=2), tapped=True
        )
        construct = spell_card("Blue Construct", "{3}{U}", type_line="Artifact Creature — Construct")
        assert cost_discount(construct, battlefield) == 3
        assert cost_discount(spell_card("Shock", "{R}"), battlefield) == 1


# =============================================================================
# AVAILABILITY TESTS
# =============================================================================

class TestAvailability:
    """Tests for mana producible from the battlefield."""

    def test_tapped_permanents_excluded(self, basic_land, permanents):
        """Only untapped permanents produce."""
        battlefield = permanents(basic_land("U")) + permanents(basic_land("B"), tapped=True)
        available = availability(battlefield, 2)
        assert available.total == 1
        assert available.colors["U"] == 1
        assert available.colors["B"] == 0

    def test_summoning_sick_creature_excluded(self):
        """Dorks do not produce the turn they arrive."""
        elf = CreatureCard(name="Llanowar Elves", type_line="Creature — Elf Druid", produces=("G",))
        sick = Permanent(card=elf, summoning_sick=True)
        assert availability([sick], 1).total == 0
        sick.summoning_sick = False
        assert availability([sick], 2).total == 1

    def test_artifact_amount(self, permanents):
        """Sol Ring makes two colorless."""
        ring = ArtifactCard(name="Sol Ring", type_line="Artifact", produces=("C",), mana_amount=2)
        available = availability(permanents(ring), 1)
        assert available.total == 2
        assert available.units == [("C",), ("C",)]

    def test_wildcard_counts_for_every_color(self, land_card, permanents):
        """A "*" source counts toward each color."""
        available = availability(permanents(land_card("Prismatic Land", ("*",))), 1)
        assert all(available.colors[color] == 1 for color in COLORS)

    def test_scaling_output(self, land_card, permanents):
        """Growth adds whole mana per turn after the first."""
        rock = ArtifactCard(name="Growing Rock", type_line="Artifact", produces=("C",), mana_amount=1, mana_growth=0.5)
        assert scaled_amount(rock, 1) == 1
        assert scaled_amount(rock, 3) == 2
        assert availability(permanents(rock), 5).total == 3

        grove = land_card("Deep Grove", ("G",), mana_amount=2, mana_growth=1)
        assert land_output(grove, permanents(grove), 4) == (("G",), 5)

    def test_with_sources_does_not_mutate(self, basic_land, permanents):
        """Adding burst sources returns a new snapshot."""
        available = availability(permanents(basic_land("R")), 1)
        extended = available.with_sources([ManaSource(produces=("R",), amount=2)])
        assert extended.total == 3
        assert available.total == 1


class TestLandOutput:
    """Tests for lands whose output scales with the game state."""

    def test_swamp_count(self, basic_land, land_card, permanents):
        """Cabal Coffers nets one mana per Swamp beyond two."""
        coffers = land_card("Cabal Coffers", ("B",), production=LandProduction.SWAMP_COUNT)
        battlefield = permanents(coffers, *[basic_land("B") for _ in range(4)])
        assert land_output(coffers, battlefield, 5) == (("B",), 2)

    def test_turn_scaling_floor(self, land_card, permanents):
        """Gaea's Cradle makes nothing on turn 1 and is left out of availability."""
        cradle = land_card("Gaea's Cradle", ("G",), production=LandProduction.TURN_SCALING, mana_floor=0)
        battlefield = permanents(cradle)
        assert land_output(cradle, battlefield, 1) == (("G",), 0)
        assert availability(battlefield, 1).total == 0
        assert availability(battlefield, 4).total == 3

    def test_land_count_threshold(self, basic_land, land_card, permanents):
        """Temple of the False God needs five lands."""
        temple = land_card(
            "Temple of the False God",
            ("C",),
            production=LandProduction.LAND_COUNT_THRESHOLD,
            mana_amount=2,
            min_land_count=5,
        )
        four = permanents(temple, *[basic_land("G") for _ in range(3)])
        five = permanents(temple, *[basic_land("G") for _ in range(4)])
        assert land_output(temple, four, 4)[1] == 0
        assert land_output(temple, five, 5)[1] == 2

    def test_creature_sacrifice(self, land_card, permanents):
        """Phyrexian Tower makes BB with a creature to sacrifice, C without."""
        tower = land_card("Phyrexian Tower", ("C", "B"), production=LandProduction.CREATURE_SACRIFICE)
        elf = CreatureCard(name="Llanowar Elves", type_line="Creature — Elf Druid", produces=("G",))
        assert land_output(tower, permanents(tower), 2) == (("C",), 1)
        assert land_output(tower, permanents(tower, elf), 2) == (("B",), 2)


class TestArtifactConditions:
    """Tests for metalcraft and legendary conditions."""

    @pytest.fixture
    def opal(self):
        return ArtifactCard(
            name="Mox Opal",
            type_line="Legendary Artifact",
            produces=COLORS,
            condition=ManaCondition.METALCRAFT,
        )

    def test_metalcraft_strict(self, opal, permanents):
        """A lone Mox Opal has no metalcraft."""
        assert not artifact_condition_met(opal, permanents(opal), 4, simplify_conditions=False)

    def test_metalcraft_relaxed_from_turn_three(self, opal, permanents):
        """Relaxed checks turn metalcraft on from turn 3."""
        assert not artifact_condition_met(opal, permanents(opal), 2)
        assert artifact_condition_met(opal, permanents(opal), 3)

    def test_legendary_relaxed(self, permanents):
        """Relaxed checks always satisfy the legendary condition."""
        amber = ArtifactCard(
            name="Mox Amber",
            type_line="Legendary Artifact",
            produces=COLORS,
            condition=ManaCondition.LEGENDARY,
        )
        other = ArtifactCard(name="Sol Ring", type_line="Artifact", produces=("C",), mana_amount=2)
        assert artifact_condition_met(amber, permanents(other), 1)
        assert not artifact_condition_met(amber, permanents(other), 1, simplify_conditions=False)


# =============================================================================
# PAYMENT TESTS
# =============================================================================

class TestTapForCost:
    """Tests for choosing which permanents to tap."""

    def test_taps_least_flexible_source(self, basic_land, land_card, permanents):
        """An Island pays {U} before a dual land."""
        island, dual = permanents(basic_land("U"), land_card("Watery Grave", ("U", "B")))
        available = availability([island, dual], 2)
        tapped = tap_for_cost(available.sources, "{U}", 1)
        assert tapped == [island]
        assert island.tapped
        assert not dual.tapped

    def test_generic_after_colors(self, basic_land, permanents):
        """Generic mana taps whatever remains."""
        battlefield = permanents(basic_land("G"), basic_land("G"), basic_land("U"))
        available = availability(battlefield, 3)
        tapped = tap_for_cost(available.sources, "{2}{U}", 3)
        assert len(tapped) == 3
        assert all(p.tapped for p in battlefield)

    def test_multi_mana_source_covers_generic(self, permanents):
        """A two-mana rock covers {2} in a single tap."""
        ring = ArtifactCard(name="Sol Ring", type_line="Artifact", produces=("C",), mana_amount=2)
        signet = ArtifactCard(name="Mind Stone", type_line="Artifact", produces=("C",))
        battlefield = permanents(ring, signet)
        tapped = tap_for_cost(availability(battlefield, 2).sources, "{2}", 2)
        assert len(tapped) == 1


class TestBurstSources:
    """Tests for one-shot mana counted from hand."""

    def test_ritual_and_petal(self, basic_land, permanents):
        """A castable ritual adds its net gain; a burst artifact adds its amount."""
        ritual = RitualCard(
            name="Dark Ritual",
            type_line="Instant",
            mana_cost="{B}",
            cmc=1,
            mana_produced=3,
            net_gain=2,
            colors=("B",),
        )
        petal = ArtifactCard(name="Lotus Petal", type_line="Artifact", produces=COLORS, is_burst=True)
        available = availability(permanents(basic_land("B")), 1)
        extra = burst_sources([ritual, petal], available)
        assert sum(source.amount for source in extra) == 3

    def test_uncastable_ritual_adds_nothing(self, basic_land, permanents):
        """A ritual the battlefield cannot pay for is ignored."""
        ritual = RitualCard(
            name="Dark Ritual",
            type_line="Instant",
            mana_cost="{B}",
            cmc=1,
            mana_produced=3,
            net_gain=2,
            colors=("B",),
        )
        available = availability(permanents(basic_land("R")), 1)
        assert burst_sources([ritual], available) == []
