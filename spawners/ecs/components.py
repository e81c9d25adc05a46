"""
CobbleSpawners - spawners/ecs/components.py
ECS Component Definitions for spawned creatures (python-tcod-ecs).
===================================================================
Version:     0.1
Stack:       Python 3.12+ | python-tcod-ecs
Status:      Production-ready.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

@dataclass
class CreatureIdentity:
    creature_id: UUID
    species: str
    form_id: Optional[str] = None
    aspects: List[str] = field(default_factory=list)
    spawner: Optional[str] = None          # str(SpawnerKey) of the origin, if any

@dataclass
class Position:
    x: float
    y: float
    z: float

@dataclass
class Vitals:
    is_dead: bool = False

@dataclass
class Ownership:
    owner: Optional[str] = None            # player name once captured or traded

    @property
    def is_wild(self) -> bool:
        return self.owner is None

@dataclass
class SpawnTraits:
    level: int
    shiny: bool = False
    stat_rolls: Dict[str, int] = field(default_factory=dict)
    size: float = 1.0
    held_item: Optional[str] = None
