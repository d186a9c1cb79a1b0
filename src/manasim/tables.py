"""
Curated card classification tables.

The tables live as YAML files under manasim/data and are loaded once per
process, then shared read-only by every classifier and worker.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger("manasim.tables")

DATA_DIR = Path(__file__).parent / "data"

_tables = None


@dataclass(frozen=True)
class CardTables:
    """Read-only lookups keyed by lowercase card name."""

    lands: Mapping[str, Mapping[str, Any]]
    fetch_lands: Mapping[str, Mapping[str, Any]]
    artifacts: Mapping[str, Mapping[str, Any]]
    creatures: Mapping[str, Mapping[str, Any]]
    ramp_spells: Mapping[str, Mapping[str, Any]]
    rituals: Mapping[str, Mapping[str, Any]]
    exploration: Mapping[str, Mapping[str, Any]]
    cost_reducers: Mapping[str, Mapping[str, Any]]
    draw_spells: Mapping[str, Mapping[str, Any]]


def _read_yaml(filename: str) -> Dict[str, Any]:
    path = DATA_DIR / filename
    if not path.exists():
        logger.warning(f"Classification table not found: {path}")
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _freeze(entries: Dict[str, Any]) -> Mapping[str, Mapping[str, Any]]:
    return MappingProxyType(
        {name.lower(): MappingProxyType(dict(entry or {})) for name, entry in entries.items()}
    )


def _flatten_land_cycles(config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge cycle-level sim_flags into each land; the first listing of a name wins."""
    lands = {}
    for cycle in config.get("cycles", []):
        cycle_flags = cycle.get("sim_flags") or {}
        for land in cycle.get("lands", []):
            key = land["name"].lower()
            if key in lands:
                continue
            flags = dict(cycle_flags)
            flags.update(land.get("sim_flags") or {})
            for inline in ("produces", "check_types"):
                if inline in land:
                    flags[inline] = land[inline]
            lands[key] = {
                "cycle": cycle["name"],
                "types": land.get("types", []),
                **flags,
            }
    return lands


def load_tables() -> CardTables:
    """
    Load classification tables from the packaged YAML files.

    Returns:
        CardTables: Cached tables, loaded on first call
    """
    global _tables

    if _tables is not None:
        return _tables

    _tables = CardTables(
        lands=_freeze(_flatten_land_cycles(_read_yaml("lands.yaml"))),
        fetch_lands=_freeze(_read_yaml("fetch_lands.yaml").get("fetch_lands", {})),
        artifacts=_freeze(_read_yaml("artifacts.yaml").get("artifacts", {})),
        creatures=_freeze(_read_yaml("creatures.yaml").get("creatures", {})),
        ramp_spells=_freeze(_read_yaml("ramp_spells.yaml").get("ramp_spells", {})),
        rituals=_freeze(_read_yaml("rituals.yaml").get("rituals", {})),
        exploration=_freeze(_read_yaml("exploration.yaml").get("exploration", {})),
        cost_reducers=_freeze(_read_yaml("cost_reducers.yaml").get("cost_reducers", {})),
        draw_spells=_freeze(_read_yaml("draw_spells.yaml").get("draw_spells", {})),
    )
    logger.debug(
        f"Loaded {len(_tables.lands)} lands, {len(_tables.fetch_lands)} fetch lands, "
        f"{len(_tables.artifacts)} artifacts, {len(_tables.draw_spells)} draw spells"
    )
    return _tables
