"""
CobbleSpawners - spawners/selection.py
Eligibility filtering and weighted selection over a spawner's creature pool.
============================================================================
Version:     0.2
Stack:       Python 3.12+
Status:      Production-ready.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from spawners.data_loader import CreatureSpawnEntry, SpawnConditions

LOG = logging.getLogger(__name__)

DAY_LENGTH_TICKS: int = 24000
NIGHT_START_TICK: int = DAY_LENGTH_TICKS // 2


def is_day(time_of_day: int) -> bool:
    return time_of_day % DAY_LENGTH_TICKS < NIGHT_START_TICK


def check_conditions(conditions: SpawnConditions, time_of_day: int,
                     is_raining: bool, is_thundering: bool) -> Optional[str]:
    """
    Returns None when the conditions hold, otherwise a short reason
    suitable for a debug log line.
    """
    day = is_day(time_of_day)
    if conditions.spawn_time == "DAY" and not day:
        return "requires DAY but it is NIGHT"
    if conditions.spawn_time == "NIGHT" and day:
        return "requires NIGHT but it is DAY"

    weather = "THUNDER" if is_thundering else ("RAIN" if is_raining else "CLEAR")
    if conditions.spawn_weather == "ALL" or conditions.spawn_weather == weather:
        return None
    return f"requires {conditions.spawn_weather} weather but it is {weather}"


def filter_eligible(entries: Sequence[CreatureSpawnEntry], time_of_day: int,
                    is_raining: bool, is_thundering: bool) -> List[CreatureSpawnEntry]:
    """Subset of entries whose time and weather conditions hold right now."""
    eligible = []
    for entry in entries:
        reason = check_conditions(entry.conditions, time_of_day, is_raining, is_thundering)
        if reason is None:
            eligible.append(entry)
        else:
            LOG.debug("Spawn conditions not met for '%s': %s", entry.species, reason)
    return eligible


def total_weight(entries: Sequence[CreatureSpawnEntry]) -> float:
    return sum(entry.weight for entry in entries)


def select_weighted(entries: Sequence[CreatureSpawnEntry],
                    rng: random.Random) -> Optional[CreatureSpawnEntry]:
    """
    Cumulative-distribution draw. Entries with zero weight are never chosen.
    Returns None only for an empty (or all-zero) pool.
    """
    weighted = [entry for entry in entries if entry.weight > 0]
    if not weighted:
        return None

    draw = rng.random() * total_weight(weighted)
    cumulative = 0.0
    for entry in weighted:
        cumulative += entry.weight
        if cumulative >= draw:
            return entry
    # Float drift on the last boundary.
    return weighted[-1]
