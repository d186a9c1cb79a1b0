"""
Card classifier: turns raw card records into simulator Card variants.

Records follow the Scryfall card object shape (name, type_line,
oracle_text, mana_cost, cmc, layout, card_faces). Known cards are looked
up in the curated tables; everything else falls back to oracle text
heuristics.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .cards import (
    ArtifactCard,
    Card,
    CostReducerCard,
    CreatureCard,
    DeckEntry,
    DrawSpellCard,
    ExplorationCard,
    FetchAbility,
    LandCard,
    RampSpellCard,
    RitualCard,
    SpellCard,
    calculate_cmc,
    resolve_cmc,
)
from .errors import UnclassifiableCardError
from .tables import CardTables, load_tables
from .types import (
    BASIC_LAND_NAMES,
    BASIC_LAND_TYPES,
    COLOR_TO_LAND_TYPE,
    COLORS,
    CardKind,
    DamageRule,
    EtbCost,
    FetchType,
    LandArchetype,
    LandProduction,
    ManaCondition,
    RampFilter,
)

logger = logging.getLogger("manasim.classifier")

_PRODUCED_SYMBOL_RE = re.compile(r"\{([WUBRGC])\}")
_COLORLESS_RUN_RE = re.compile(r"(?:\{C\})+")
_MANA_TAP_RE = re.compile(r"\{t\}:?\s*add|add\s*\{[wubrgc]", re.IGNORECASE)
_RITUAL_SYMBOLS_RE = re.compile(r"add\s+((?:\{[WUBRGC]\})+)", re.IGNORECASE)
_RITUAL_WORD_RE = re.compile(r"add\s+(one|two|three|four|five|six|seven)\s+mana", re.IGNORECASE)
_RITUAL_NUMBER_RE = re.compile(r"add\s+(\d+)\s+mana", re.IGNORECASE)
_CHECK_LAND_RE = re.compile(
    r"unless you control an? (plains|island|swamp|mountain|forest)"
    r"(?: or an? (plains|island|swamp|mountain|forest))?",
    re.IGNORECASE,
)
_GENERIC_COST_RE = re.compile(r"\{[0-9]+\}")
_COST_REDUCER_RE = re.compile(r"([a-z ,]*?)\bspells? you cast cost \{(\d+)\} less", re.IGNORECASE)
_DRAW_COUNT = r"(a|an|one|two|three|four|five|six|seven|\d+) cards?"
_DRAW_RE = re.compile(r"\bdraws? " + _DRAW_COUNT, re.IGNORECASE)
_UPKEEP_DRAW_RE = re.compile(r"at the beginning of your upkeep[^.]*\bdraws? " + _DRAW_COUNT, re.IGNORECASE)
_ETB_DRAW_RE = re.compile(r"when [^.]*\benters[^.]*\bdraws? " + _DRAW_COUNT, re.IGNORECASE)

_WORD_NUMBERS = {"a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7}
_COLOR_WORDS = {"white": "W", "blue": "U", "black": "B", "red": "R", "green": "G"}

# Subtypes recognized on land type lines
_LAND_SUBTYPES = tuple(BASIC_LAND_TYPES) + ("Wastes",)


def extract_mana_production(oracle_text: Optional[str]) -> Tuple[str, ...]:
    """Distinct {W}{U}{B}{R}{G}{C} symbols in the text; "any color" means all five."""
    if not oracle_text:
        return ()
    if "any color" in oracle_text:
        return COLORS
    produced = []
    for symbol in _PRODUCED_SYMBOL_RE.findall(oracle_text):
        if symbol not in produced:
            produced.append(symbol)
    return tuple(produced)


def extract_mana_amount(oracle_text: Optional[str]) -> int:
    """Longest run of {C} symbols (e.g. {C}{C} is 2), otherwise 1."""
    if not oracle_text:
        return 1
    runs = _COLORLESS_RUN_RE.findall(oracle_text)
    longest = max((run.count("{C}") for run in runs), default=0)
    return longest if longest > 1 else 1


def extract_ritual_mana_amount(oracle_text: Optional[str]) -> int:
    """
    Mana added by a one-shot spell.

    Reads symbols after "Add" first ("Add {B}{B}{B}" is 3), then number
    words ("add three mana"), then digits ("add 3 mana"). Defaults to 1.
    """
    if not oracle_text:
        return 1
    match = _RITUAL_SYMBOLS_RE.search(oracle_text)
    if match:
        return len(_PRODUCED_SYMBOL_RE.findall(match.group(1)))
    match = _RITUAL_WORD_RE.search(oracle_text)
    if match:
        return _WORD_NUMBERS[match.group(1).lower()]
    match = _RITUAL_NUMBER_RE.search(oracle_text)
    if match:
        return int(match.group(1)) or 1
    return 1


def extract_cards_drawn(oracle_text: Optional[str]) -> int:
    """Cards in the first "draw N cards" clause ("draw two cards" is 2). Defaults to 1."""
    if not oracle_text:
        return 1
    match = _DRAW_RE.search(oracle_text)
    if not match:
        return 1
    count = match.group(1).lower()
    return int(count) if count.isdigit() else _WORD_NUMBERS[count]


def _reducer_from_text(oracle_text: str) -> Optional[Dict[str, Any]]:
    """Discount and spell filter from "<Type> spells you cast cost {N} less"."""
    match = _COST_REDUCER_RE.search(oracle_text)
    if not match:
        return None
    colors, spell_types, exclude_types = [], [], []
    for word in re.findall(r"[a-z]+", match.group(1).lower()):
        if word in _COLOR_WORDS:
            colors.append(_COLOR_WORDS[word])
        elif word.startswith("non") and len(word) > 3:
            exclude_types.append(word[3:].capitalize())
        elif word not in ("and", "or"):
            spell_types.append(word.capitalize())
    return {
        "discount": int(match.group(2)),
        "colors": colors,
        "spell_types": spell_types,
        "exclude_types": exclude_types,
    }


def _draw_from_text(oracle_text: str, is_permanent: bool) -> Optional[Dict[str, Any]]:
    """Repeating upkeep draw, draw on entry, or a one-shot draw spell; None if no draw."""
    if is_permanent:
        match = _UPKEEP_DRAW_RE.search(oracle_text)
        if match:
            return {"one_time": False, "cards_per_turn": extract_cards_drawn(match.group(0))}
        match = _ETB_DRAW_RE.search(oracle_text)
        if match:
            return {"one_time": True, "cards_drawn": extract_cards_drawn(match.group(0))}
        return None
    if _DRAW_RE.search(oracle_text):
        return {"one_time": True, "cards_drawn": extract_cards_drawn(oracle_text)}
    return None


def has_mana_tap_ability(oracle_text: Optional[str]) -> bool:
    if not oracle_text:
        return False
    return bool(_MANA_TAP_RE.search(oracle_text))


def _land_subtypes(type_line: str) -> Tuple[str, ...]:
    if "—" not in type_line:
        return ()
    subtypes = type_line.split("—", 1)[1]
    return tuple(subtype for subtype in _LAND_SUBTYPES if subtype in subtypes)


def _is_fetch_text(oracle_text: str) -> bool:
    return (
        "search your library" in oracle_text
        and "land card" in oracle_text
        and "battlefield" in oracle_text
    )


def _ramp_filter(value: str) -> RampFilter:
    try:
        return RampFilter(value)
    except ValueError:
        logger.debug(f"Unknown ramp filter {value!r}; searching for basics")
        return RampFilter.BASIC


def _enters_tapped_text(oracle_text: str) -> bool:
    """Unconditional "enters tapped" text, ignoring "unless"/"if" exemptions."""
    lower = oracle_text.lower()
    tapped = "enters the battlefield tapped" in lower or "enters tapped" in lower
    conditional = (
        "unless" in lower or "if you control" in lower or "if an opponent" in lower
    )
    return tapped and not conditional


class CardClassifier:
    """
    Classify raw card records.

    Args:
        overrides: Per-card settings keyed by lowercase name, merged over
            the curated table entry. An override may carry "kind" (a
            CardKind value) to force the variant.
        tables: Classification tables (defaults to the packaged tables)
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
        tables: Optional[CardTables] = None,
    ):
        self.overrides = {name.lower(): dict(entry) for name, entry in (overrides or {}).items()}
        self.tables = tables or load_tables()

    def classify(self, record: Mapping[str, Any]) -> List[Card]:
        """
        Classify one raw record.

        Returns:
            One Card, or two for a modal double-faced land (the land plus a
            key-card-only spell record for its spell face). Records that
            cannot be classified become a plain Spell.
        """
        try:
            return self._classify(record)
        except UnclassifiableCardError as e:
            logger.warning(f"{e}; treating it as a spell")
            return [self._fallback_spell(record)]

    def classify_deck(self, records: List[Mapping[str, Any]]) -> List[DeckEntry]:
        """Classify a decklist; each record may carry a "quantity" (default 1)."""
        entries = []
        for record in records:
            quantity = record.get("quantity", 1) if isinstance(record, Mapping) else 1
            try:
                quantity = int(quantity)
            except (TypeError, ValueError):
                logger.warning(f"Bad quantity {quantity!r} for {record.get('name')!r}; using 1")
                quantity = 1
            for card in self.classify(record):
                entries.append(DeckEntry(card=card, quantity=quantity))
        return entries

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _classify(self, record: Mapping[str, Any]) -> List[Card]:
        if not isinstance(record, Mapping) or not record.get("name"):
            raise UnclassifiableCardError(str(record)[:40], "record has no name")
        name = record["name"]

        try:
            return self._route(record, name)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UnclassifiableCardError(name, f"malformed record ({e})") from e

    def _route(self, record: Mapping[str, Any], name: str) -> List[Card]:
        key = name.lower()
        faces = record.get("card_faces") or []
        layout = (record.get("layout") or "").lower()
        front = faces[0] if faces else record

        forced = self.overrides.get(key, {}).get("kind")
        if forced is not None:
            return [self._build(CardKind(forced), record, front)]

        type_line = record.get("type_line") or front.get("type_line") or ""
        if not type_line:
            raise UnclassifiableCardError(name, "no type line")

        if layout == "modal_dfc" and len(faces) >= 2:
            land_faces = [face for face in faces[:2] if "Land" in (face.get("type_line") or "")]
            if land_faces:
                land_face = land_faces[0]
                spell_face = faces[1] if land_face is faces[0] else faces[0]
                cards = [self._land(record, land_face)]
                if "Land" not in (spell_face.get("type_line") or ""):
                    cards.append(self._spell(record, spell_face, key_card_only=True))
                return cards

        if layout in ("transform", "double_faced_token", "flip") and faces:
            # Only the front face is ever cast or played
            type_line = front.get("type_line") or type_line
        elif "//" in type_line and faces:
            type_line = front.get("type_line") or type_line

        if "Land" in type_line:
            return [self._land(record, front)]

        text = record.get("oracle_text") or front.get("oracle_text") or ""
        mana_tap = has_mana_tap_ability(text)
        is_creature = "Creature" in type_line
        is_artifact = "Artifact" in type_line

        if key in self.tables.creatures or (is_creature and mana_tap):
            return [self._build(CardKind.CREATURE, record, front)]
        if key in self.tables.artifacts or (is_artifact and not is_creature and mana_tap):
            return [self._build(CardKind.ARTIFACT, record, front)]
        if key in self.tables.exploration:
            return [self._build(CardKind.EXPLORATION, record, front)]
        if key in self.tables.ramp_spells:
            return [self._build(CardKind.RAMP_SPELL, record, front)]
        if key in self.tables.rituals:
            return [self._build(CardKind.RITUAL, record, front)]
        if key in self.tables.cost_reducers:
            return [self._build(CardKind.COST_REDUCER, record, front)]
        if key in self.tables.draw_spells:
            return [self._build(CardKind.DRAW_SPELL, record, front)]

        is_sorcery_speed = "Sorcery" in type_line or "Instant" in type_line
        if is_sorcery_speed and _is_fetch_text(text.lower()):
            return [self._build(CardKind.RAMP_SPELL, record, front)]
        if is_sorcery_speed and has_mana_tap_ability(text):
            return [self._build(CardKind.RITUAL, record, front)]
        if not is_sorcery_speed and _reducer_from_text(text):
            return [self._build(CardKind.COST_REDUCER, record, front)]
        if _draw_from_text(text, not is_sorcery_speed):
            return [self._build(CardKind.DRAW_SPELL, record, front)]
        return [self._spell(record, front)]

    def _build(self, kind: CardKind, record: Mapping[str, Any], face: Mapping[str, Any]) -> Card:
        builders = {
            CardKind.LAND: self._land,
            CardKind.ARTIFACT: self._artifact,
            CardKind.CREATURE: self._creature,
            CardKind.EXPLORATION: self._exploration,
            CardKind.RAMP_SPELL: self._ramp_spell,
            CardKind.RITUAL: self._ritual,
            CardKind.COST_REDUCER: self._cost_reducer,
            CardKind.DRAW_SPELL: self._draw_spell,
            CardKind.SPELL: self._spell,
        }
        return builders[kind](record, face)

    def _entry(self, table: Mapping[str, Mapping[str, Any]], name: str) -> Dict[str, Any]:
        key = name.lower()
        entry = dict(table.get(key, {}))
        entry.update({k: v for k, v in self.overrides.get(key, {}).items() if k != "kind"})
        return entry

    @staticmethod
    def _common(record: Mapping[str, Any], face: Mapping[str, Any]) -> Dict[str, Any]:
        mana_cost = record.get("mana_cost") or face.get("mana_cost") or ""
        reported = record.get("cmc")
        if reported is None:
            reported = face.get("cmc")
        return {
            "name": record["name"],
            "type_line": face.get("type_line") or record.get("type_line") or "",
            "oracle_text": face.get("oracle_text") or record.get("oracle_text") or "",
            "mana_cost": mana_cost,
            "cmc": resolve_cmc(reported, mana_cost),
        }

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def _land(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> LandCard:
        name = record["name"]
        key = name.lower()
        text = face.get("oracle_text") or ""
        lower = text.lower()
        type_line = face.get("type_line") or record.get("type_line") or ""
        entry = self._entry(self.tables.lands, name)
        fetch_entry = self._entry(self.tables.fetch_lands, name)

        subtypes = _land_subtypes(type_line) or tuple(entry.get("types", ()))
        is_basic = "Basic" in type_line or key in BASIC_LAND_NAMES

        if "produces" in entry:
            produces = tuple(entry["produces"])
        elif "{T}: Add" in text or "{T}: add" in text:
            produces = extract_mana_production(text)
        else:
            produces = ()
        if not produces:
            produces = tuple(BASIC_LAND_TYPES[s] for s in subtypes if s in BASIC_LAND_TYPES)

        fetch = self._fetch_ability(fetch_entry, lower)
        enters_tapped_always = bool(entry.get("enters_tapped", False))
        if fetch_entry.get("enters_tapped"):
            enters_tapped_always = True

        archetype = LandArchetype(entry.get("archetype", "none"))
        check_types = tuple(entry.get("check_types", ()))
        life_loss = int(entry.get("life_loss", 0))
        if archetype is LandArchetype.NONE:
            archetype, check_types, life_loss = self._archetype_from_text(
                lower, subtypes, check_types, life_loss
            )
        if archetype is LandArchetype.SHOCK and not life_loss:
            life_loss = 2

        known = bool(entry) or bool(fetch_entry)
        if not known and archetype is LandArchetype.NONE:
            enters_tapped_always = _enters_tapped_text(text)
        if fetch is not None and fetch.fetch_type is FetchType.AUTO_SACRIFICE:
            enters_tapped_always = True

        damage = DamageRule(entry.get("damage", "none"))
        damage_amount = float(entry.get("damage_amount", 0))
        if damage is DamageRule.NONE and "deals 1 damage to you" in lower:
            damage = DamageRule.WHEN_TAPPED if "becomes tapped" in lower else DamageRule.EARLY_TURNS
            damage_amount = 1

        production = LandProduction(entry.get("production", "fixed"))
        mana_amount = int(entry.get("mana_amount", extract_mana_amount(text)))

        return LandCard(
            name=name,
            type_line=type_line,
            oracle_text=text,
            mana_cost="",
            cmc=0,
            produces=produces,
            subtypes=subtypes,
            is_basic=is_basic,
            enters_tapped_always=enters_tapped_always,
            archetype=archetype,
            check_types=check_types,
            is_bounce=bool(entry.get("bounce", False)),
            life_loss=life_loss,
            damage=damage,
            damage_amount=damage_amount,
            production=production,
            mana_amount=mana_amount,
            mana_floor=int(entry.get("mana_floor", 1)),
            min_land_count=int(entry.get("min_land_count", 0)),
            sacrifice_on_land_drop=bool(entry.get("sacrifice_on_land_drop", False)),
            fetch=fetch,
        )

    @staticmethod
    def _archetype_from_text(
        lower: str, subtypes: Tuple[str, ...], check_types: Tuple[str, ...], life_loss: int
    ) -> Tuple[LandArchetype, Tuple[str, ...], int]:
        if len(subtypes) == 2 and "pay 2 life" in lower:
            return LandArchetype.SHOCK, check_types, life_loss or 2
        if "unless you control two or fewer other lands" in lower:
            return LandArchetype.FAST, check_types, life_loss
        if "unless you control two or more basic lands" in lower:
            return LandArchetype.BATTLE, check_types, life_loss
        if "unless you have two or more opponents" in lower:
            return LandArchetype.CROWD, check_types, life_loss
        match = _CHECK_LAND_RE.search(lower)
        if match:
            types = tuple(t.capitalize() for t in match.groups() if t)
            return LandArchetype.CHECK, check_types or types, life_loss
        return LandArchetype.NONE, check_types, life_loss

    @staticmethod
    def _fetch_ability(entry: Mapping[str, Any], lower: str) -> Optional[FetchAbility]:
        if "fetch_type" in entry:
            return FetchAbility(
                fetch_type=FetchType(entry["fetch_type"]),
                colors=frozenset(entry.get("colors", COLORS)),
                cost=int(entry.get("cost", 0)),
                only_basics=bool(entry.get("only_basics", False)),
                fetched_enters_tapped=bool(entry.get("fetched_enters_tapped", False)),
                lands_fetched=int(entry.get("lands_fetched", 1)),
            )
        if not _is_fetch_text(lower):
            return None

        only_basics = False
        fetched_enters_tapped = False
        cost = 0
        if "basic land" in lower:
            fetch_type = FetchType.FREE_SLOW
            only_basics = True
            fetched_enters_tapped = True
        elif "pay 1 life" in lower:
            fetch_type = FetchType.SLOW if "tapped" in lower else FetchType.CLASSIC
        elif _GENERIC_COST_RE.search(lower):
            fetch_type = FetchType.MANA_COST
            cost = int(_GENERIC_COST_RE.search(lower).group(0)[1:-1])
        else:
            fetch_type = FetchType.FREE_SLOW

        colors = frozenset(COLORS)
        if not only_basics:
            named = [c for c, land_type in COLOR_TO_LAND_TYPE.items() if land_type.lower() in lower]
            if named:
                colors = frozenset(named)
        return FetchAbility(
            fetch_type=fetch_type,
            colors=colors,
            cost=cost,
            only_basics=only_basics,
            fetched_enters_tapped=fetched_enters_tapped,
        )

    def _artifact(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> ArtifactCard:
        common = self._common(record, face)
        text = common["oracle_text"]
        entry = self._entry(self.tables.artifacts, common["name"])
        if entry:
            produces = tuple(entry.get("produces", ()))
            mana_amount = int(entry.get("mana_amount", 1))
            enters_tapped = bool(entry.get("enters_tapped", False))
        else:
            produces = extract_mana_production(text)
            mana_amount = extract_mana_amount(text)
            enters_tapped = _enters_tapped_text(text)
        return ArtifactCard(
            produces=produces,
            mana_amount=mana_amount,
            enters_tapped=enters_tapped,
            doesnt_untap=bool(
                entry.get("doesnt_untap", "doesn't untap during your untap step" in text)
            ),
            etb_cost=EtbCost(entry.get("etb_cost", "none")),
            condition=ManaCondition(entry.get("condition", "none")),
            is_burst=bool(entry.get("burst", False)),
            priority=bool(entry.get("priority", False)),
            damage=DamageRule(entry.get("damage", "none")),
            damage_amount=float(entry.get("damage_amount", 0)),
            **common,
        )

    def _creature(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> CreatureCard:
        common = self._common(record, face)
        entry = self._entry(self.tables.creatures, common["name"])
        if entry:
            produces = tuple(entry.get("produces", ()))
            mana_amount = int(entry.get("mana_amount", 1))
        else:
            produces = extract_mana_production(common["oracle_text"])
            mana_amount = extract_mana_amount(common["oracle_text"])
        return CreatureCard(produces=produces, mana_amount=mana_amount, **common)

    def _exploration(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> ExplorationCard:
        common = self._common(record, face)
        entry = self._entry(self.tables.exploration, common["name"])
        default = 3 if "azusa" in common["name"].lower() else 2
        return ExplorationCard(lands_per_turn=int(entry.get("lands_per_turn", default)), **common)

    def _ramp_spell(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> RampSpellCard:
        common = self._common(record, face)
        entry = self._entry(self.tables.ramp_spells, common["name"])
        if not entry:
            entry = self._ramp_from_text(common["oracle_text"].lower())
        return RampSpellCard(
            lands_to_battlefield=int(entry.get("lands_to_battlefield", 1)),
            lands_tapped=bool(entry.get("lands_tapped", True)),
            lands_to_hand=int(entry.get("lands_to_hand", 0)),
            sacrifice_land=bool(entry.get("sacrifice_land", False)),
            land_filter=_ramp_filter(entry.get("filter", "basic")),
            fetch_subtypes=tuple(entry.get("fetch_subtypes", ())),
            **common,
        )

    @staticmethod
    def _ramp_from_text(lower: str) -> Dict[str, Any]:
        entry = {"lands_to_battlefield": 1, "lands_tapped": "battlefield tapped" in lower}
        if "into your hand" in lower:
            entry["lands_to_hand"] = 1
        if "basic land" in lower:
            entry["filter"] = "basic"
        else:
            named = [t for t in BASIC_LAND_TYPES if f"{t.lower()} card" in lower]
            if named:
                entry["filter"] = "subtype"
                entry["fetch_subtypes"] = named
            else:
                entry["filter"] = "any"
        return entry

    def _ritual(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> RitualCard:
        common = self._common(record, face)
        entry = self._entry(self.tables.rituals, common["name"])
        if entry:
            produced = int(entry.get("mana_produced", 1))
            net_gain = int(entry.get("net_gain", 0))
            colors = tuple(entry.get("colors", ()))
        else:
            produced = extract_ritual_mana_amount(common["oracle_text"])
            net_gain = max(0, produced - common["cmc"])
            colors = extract_mana_production(common["oracle_text"])
        return RitualCard(mana_produced=produced, net_gain=net_gain, colors=colors, **common)

    def _cost_reducer(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> CostReducerCard:
        common = self._common(record, face)
        entry = self._entry(self.tables.cost_reducers, common["name"])
        if not entry:
            entry = _reducer_from_text(common["oracle_text"]) or {}
        return CostReducerCard(
            discount=max(0, int(entry.get("discount", 1))),
            spell_types=tuple(entry.get("spell_types", ())),
            exclude_types=tuple(entry.get("exclude_types", ())),
            colors=tuple(entry.get("colors", ())),
            **common,
        )

    def _draw_spell(self, record: Mapping[str, Any], face: Mapping[str, Any]) -> DrawSpellCard:
        """
        Draw spell from the table entry or oracle text.

        Instants and sorceries resolve to the graveyard; anything else
        stays on the battlefield. A repeating engine with no per-turn
        figure draws one card a turn.
        """
        common = self._common(record, face)
        type_line = common["type_line"]
        is_permanent = "Instant" not in type_line and "Sorcery" not in type_line
        entry = self._entry(self.tables.draw_spells, common["name"])
        if not entry:
            entry = _draw_from_text(common["oracle_text"], is_permanent) or {}
        one_time = bool(entry.get("one_time", True))
        cards_per_turn = float(entry.get("cards_per_turn", 0))
        if not one_time and cards_per_turn <= 0:
            cards_per_turn = 1.0
        return DrawSpellCard(
            one_time=one_time,
            cards_drawn=max(0, int(entry.get("cards_drawn", extract_cards_drawn(common["oracle_text"])))),
            cards_per_turn=cards_per_turn,
            stays_on_battlefield=bool(entry.get("stays_on_battlefield", is_permanent)),
            **common,
        )

    def _spell(
        self, record: Mapping[str, Any], face: Mapping[str, Any], key_card_only: bool = False
    ) -> SpellCard:
        common = self._common(record, face)
        if key_card_only:
            # The spell face carries its own cost; the record's cmc is the land side's
            common["mana_cost"] = face.get("mana_cost") or ""
            common["cmc"] = resolve_cmc(face.get("cmc"), common["mana_cost"])
        if common["cmc"] == 0 and common["mana_cost"]:
            logger.debug(f"CMC is 0 for {common['name']} ({common['mana_cost']})")
        return SpellCard(key_card_only=key_card_only, **common)

    @staticmethod
    def _fallback_spell(record: Any) -> SpellCard:
        if not isinstance(record, Mapping):
            return SpellCard(name="Unknown card")
        mana_cost = record.get("mana_cost")
        if not isinstance(mana_cost, str):
            mana_cost = ""
        return SpellCard(
            name=str(record.get("name") or "Unknown card"),
            type_line=str(record.get("type_line") or ""),
            mana_cost=mana_cost,
            cmc=calculate_cmc(mana_cost),
        )
