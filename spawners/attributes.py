"""
CobbleSpawners - spawners/attributes.py
Attribute Roller: level, shininess, stat rolls, size and held item for a spawn.
================================================================================
Version:     0.2
Stack:       Python 3.12+
Status:      Production-ready.

Stat roll policy
----------------
  Budget scaling. When the configured per-stat maxima sum above the budget
  (default 186 = 6 x 31), every maximum is scaled by budget / sum, floored,
  and clamped to stay >= that stat's minimum. Each stat is then drawn
  uniformly and independently from [min, scaled_max].
"""

from __future__ import annotations

import logging
import math
import random
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from spawners.data_loader import (
    STAT_NAMES,
    CreatureSpawnEntry,
    HeldItemSettings,
    SizeSettings,
    StatRollSettings,
    normalize_name,
)
from world.host import FormView, SpeciesView

LOG = logging.getLogger(__name__)

DEFAULT_STAT_BUDGET: int = 186

_IDENTIFIER_RE = re.compile(r"^(?:[a-z0-9_.-]+:)?[a-z0-9_./-]+$")


@dataclass(frozen=True)
class AttributeSet:
    level: int
    shiny: bool
    stat_rolls: Optional[Dict[str, int]] = None
    size: Optional[float] = None
    held_item: Optional[str] = None


def roll_chance(rng: random.Random, percent: float) -> bool:
    """Percent draw; 0 never succeeds, 100 always does."""
    return rng.random() * 100 < percent


def round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def scaled_stat_maxima(settings: StatRollSettings, budget: int = DEFAULT_STAT_BUDGET) -> Dict[str, int]:
    ranges = settings.ranges()
    total_max = sum(r.max for r in ranges.values())
    factor = 1.0 if total_max <= budget or total_max == 0 else budget / total_max
    return {name: max(r.min, math.floor(r.max * factor)) for name, r in ranges.items()}


def roll_stats(settings: StatRollSettings, rng: random.Random,
               budget: int = DEFAULT_STAT_BUDGET) -> Dict[str, int]:
    maxima = scaled_stat_maxima(settings, budget)
    ranges = settings.ranges()
    return {name: rng.randint(ranges[name].min, maxima[name]) for name in STAT_NAMES}


def roll_size(settings: SizeSettings, rng: random.Random) -> float:
    if settings.min_size >= settings.max_size:
        return settings.min_size
    return round_one_decimal(rng.uniform(settings.min_size, settings.max_size))


def is_valid_identifier(identifier: str) -> bool:
    return bool(_IDENTIFIER_RE.match(identifier))


def roll_held_item(settings: HeldItemSettings, rng: random.Random,
                   item_exists: Optional[Callable[[str], bool]] = None) -> Optional[str]:
    """First configured item whose chance draw succeeds. Unknown items are skipped."""
    for candidate in settings.items:
        if not is_valid_identifier(candidate.item):
            LOG.debug("Invalid item identifier format: '%s'. Skipping.", candidate.item)
            continue
        if item_exists is not None and not item_exists(candidate.item):
            LOG.debug("Item '%s' is not known to the host. Skipping.", candidate.item)
            continue
        if roll_chance(rng, candidate.chance):
            return candidate.item
    return None


def roll_attributes(entry: CreatureSpawnEntry, rng: random.Random,
                    stat_budget: int = DEFAULT_STAT_BUDGET,
                    item_exists: Optional[Callable[[str], bool]] = None) -> AttributeSet:
    level = rng.randint(entry.min_level, entry.max_level)
    shiny = roll_chance(rng, entry.shiny_chance)

    stat_rolls = roll_stats(entry.stat_rolls, rng, stat_budget) if entry.stat_rolls.enabled else None
    size = roll_size(entry.size, rng) if entry.size.enabled else None
    held_item = roll_held_item(entry.held_items, rng, item_exists) if entry.held_items.enabled else None

    return AttributeSet(level=level, shiny=shiny, stat_rolls=stat_rolls, size=size, held_item=held_item)


def resolve_form(species: SpeciesView, form_name: Optional[str]) -> Optional[FormView]:
    """
    Matches a configured form name against the species' forms on their
    normalised showdown ids. No match (or a default form) yields None,
    meaning the default form.
    """
    wanted = normalize_name(form_name)
    if wanted in ("", "normal", "default"):
        return None
    for form in species.forms:
        if normalize_name(form.showdown_id) == wanted:
            return form
    LOG.warning("Form '%s' not found for species '%s'. Defaulting to normal form.", form_name, species.name)
    return None
