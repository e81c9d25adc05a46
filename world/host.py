"""
CobbleSpawners - world/host.py
Host collaborator surface consumed by the spawner engine.
=========================================================
Version:     0.1
Stack:       Python 3.12+
Status:      Interface definitions only.

Architecture notes
------------------
- The engine never touches host globals. Everything it needs from the game
  server arrives through these protocols, passed in at call time.
- Creature ids are opaque hashables (UUIDs on the reference host).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Hashable, List, NamedTuple, Optional, Protocol, Sequence

from spawners.coords import BlockPos, SpawnerKey

if TYPE_CHECKING:
    from spawners.attributes import AttributeSet


class BlockView(Protocol):
    @property
    def is_air(self) -> bool: ...
    @property
    def has_collision(self) -> bool: ...
    @property
    def collision_height(self) -> float: ...
    @property
    def solid_top(self) -> bool: ...
    @property
    def standing_surface(self) -> bool: ...


class CreatureState(NamedTuple):
    alive: bool
    wild: bool


class FormView(Protocol):
    @property
    def showdown_id(self) -> str: ...
    @property
    def aspects(self) -> List[str]: ...


class SpeciesView(Protocol):
    @property
    def name(self) -> str: ...
    @property
    def forms(self) -> Sequence[FormView]: ...
    @property
    def hitbox_width(self) -> float: ...
    @property
    def hitbox_height(self) -> float: ...


class SpeciesCatalog(Protocol):
    def get(self, name: str) -> Optional[SpeciesView]: ...


@dataclass
class SpawnRequest:
    """Everything the host needs to materialise one creature."""
    species: str
    spawner: SpawnerKey
    pos: BlockPos
    attributes: "AttributeSet"
    form_id: Optional[str] = None
    aspects: List[str] = field(default_factory=list)

    @property
    def entity_xyz(self) -> tuple[float, float, float]:
        # Creatures stand centred on the block column.
        return (self.pos.x + 0.5, float(self.pos.y), self.pos.z + 0.5)


class World(Protocol):
    @property
    def dimension(self) -> str: ...
    @property
    def time(self) -> int: ...
    @property
    def time_of_day(self) -> int: ...
    @property
    def is_raining(self) -> bool: ...
    @property
    def is_thundering(self) -> bool: ...

    def block_at(self, pos: BlockPos) -> BlockView: ...
    def is_chunk_loaded(self, pos: BlockPos) -> bool: ...
    def has_item(self, identifier: str) -> bool: ...
    def spawn_creature(self, request: SpawnRequest) -> Optional[Hashable]: ...
    def creature_state(self, creature_id: Hashable) -> Optional[CreatureState]: ...
    def discard_creature(self, creature_id: Hashable) -> bool: ...


class Server(Protocol):
    def get_world(self, dimension: str) -> Optional[World]: ...
