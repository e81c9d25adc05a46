"""
CobbleSpawners - world/sim.py
SimWorld: an in-memory host world for the demo runner and the test-suite.
=========================================================================
Version:     0.2
Stack:       Python 3.12+ | NumPy | python-tcod-ecs
Status:      Reference host adapter.

Architecture notes
------------------
- Blocks live in a dense int16 NumPy grid of palette indices covering a
  fixed box; anything outside the box reads as air.
- Spawned creatures are tcod-ecs entities carrying the components from
  spawners/ecs/components.py. Ids are UUIDs.
- Chunks are 16x16 columns; all are loaded unless explicitly unloaded.
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import Dict, Hashable, Iterable, List, Optional, Set, Tuple

import numpy as np
import tcod.ecs

from spawners.coords import DEFAULT_DIMENSION, BlockPos
from spawners.data_loader import BlockDef, get_block_defs
from spawners.ecs.components import CreatureIdentity, Ownership, Position, SpawnTraits, Vitals
from world.host import CreatureState, SpawnRequest

LOG = logging.getLogger(__name__)

AIR = "minecraft:air"
CHUNK_SIZE = 16
DEFAULT_ITEMS = frozenset({
    "minecraft:apple",
    "minecraft:stick",
    "cobblemon:oran_berry",
    "cobblemon:light_ball",
})


class SimWorld:
    def __init__(
        self,
        size: Tuple[int, int, int] = (32, 16, 32),
        origin: Tuple[int, int, int] = (0, 0, 0),
        dimension: str = DEFAULT_DIMENSION,
        blocks: Optional[Dict[str, BlockDef]] = None,
        items: Iterable[str] = DEFAULT_ITEMS,
    ):
        self.dimension = dimension
        self.origin = BlockPos(*origin)
        self.block_defs = blocks if blocks is not None else get_block_defs()
        self.palette: List[str] = [AIR]
        self._palette_index: Dict[str, int] = {AIR: 0}
        self.grid = np.zeros(size, dtype=np.int16)

        self.time = 0
        self.time_of_day = 0
        self.is_raining = False
        self.is_thundering = False
        self.reject_spawns = False

        self.items: Set[str] = set(items)
        self.unloaded_chunks: Set[Tuple[int, int]] = set()

        self.registry = tcod.ecs.Registry()
        self._creatures: Dict[uuid.UUID, tcod.ecs.Entity] = {}

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _index(self, pos: BlockPos) -> Optional[Tuple[int, int, int]]:
        ix, iy, iz = pos.x - self.origin.x, pos.y - self.origin.y, pos.z - self.origin.z
        sx, sy, sz = self.grid.shape
        if 0 <= ix < sx and 0 <= iy < sy and 0 <= iz < sz:
            return ix, iy, iz
        return None

    def _palette_id(self, block_id: str) -> int:
        if block_id not in self.block_defs:
            raise KeyError(f"Unknown block: {block_id}")
        if block_id not in self._palette_index:
            self._palette_index[block_id] = len(self.palette)
            self.palette.append(block_id)
        return self._palette_index[block_id]

    def set_block(self, pos: BlockPos, block_id: str) -> None:
        idx = self._index(BlockPos(*pos))
        if idx is None:
            raise IndexError(f"{pos} is outside the simulated area")
        self.grid[idx] = self._palette_id(block_id)

    def fill(self, corner_a: BlockPos, corner_b: BlockPos, block_id: str) -> None:
        """Fills the inclusive box between two corners."""
        lo = [min(a, b) for a, b in zip(corner_a, corner_b)]
        hi = [max(a, b) for a, b in zip(corner_a, corner_b)]
        a = self._index(BlockPos(*lo))
        b = self._index(BlockPos(*hi))
        if a is None or b is None:
            raise IndexError(f"{corner_a}..{corner_b} is outside the simulated area")
        self.grid[a[0]:b[0] + 1, a[1]:b[1] + 1, a[2]:b[2] + 1] = self._palette_id(block_id)

    def block_id_at(self, pos: BlockPos) -> str:
        idx = self._index(pos)
        if idx is None:
            return AIR
        return self.palette[int(self.grid[idx])]

    def block_at(self, pos: BlockPos) -> BlockDef:
        return self.block_defs[self.block_id_at(pos)]

    # ------------------------------------------------------------------
    # Time, weather, chunks, items
    # ------------------------------------------------------------------

    def advance(self, ticks: int = 1) -> None:
        self.time += ticks
        self.time_of_day = (self.time_of_day + ticks) % 24000

    def set_weather(self, raining: bool = False, thundering: bool = False) -> None:
        self.is_raining = raining or thundering
        self.is_thundering = thundering

    def unload_chunk(self, pos: BlockPos) -> None:
        self.unloaded_chunks.add((pos.x // CHUNK_SIZE, pos.z // CHUNK_SIZE))

    def is_chunk_loaded(self, pos: BlockPos) -> bool:
        return (pos.x // CHUNK_SIZE, pos.z // CHUNK_SIZE) not in self.unloaded_chunks

    def has_item(self, identifier: str) -> bool:
        return identifier in self.items

    # ------------------------------------------------------------------
    # Creatures
    # ------------------------------------------------------------------

    def _occupied(self, pos: BlockPos) -> bool:
        for entity in self.registry.Q.all_of(components=[Position, Vitals]):
            if entity.components[Vitals].is_dead:
                continue
            p = entity.components[Position]
            if (math.floor(p.x), math.floor(p.y), math.floor(p.z)) == (pos.x, pos.y, pos.z):
                return True
        return False

    def spawn_creature(self, request: SpawnRequest) -> Optional[Hashable]:
        if self.reject_spawns or self._occupied(request.pos):
            LOG.debug("Refusing spawn of '%s' at %s", request.species, request.pos)
            return None

        attrs = request.attributes
        creature_id = uuid.uuid4()
        entity = self.registry.new_entity()
        entity.components[CreatureIdentity] = CreatureIdentity(
            creature_id=creature_id,
            species=request.species,
            form_id=request.form_id,
            aspects=list(request.aspects),
            spawner=str(request.spawner),
        )
        x, y, z = request.entity_xyz
        entity.components[Position] = Position(x=x, y=y, z=z)
        entity.components[Vitals] = Vitals()
        entity.components[Ownership] = Ownership()
        entity.components[SpawnTraits] = SpawnTraits(
            level=attrs.level,
            shiny=attrs.shiny,
            stat_rolls=dict(attrs.stat_rolls or {}),
            size=attrs.size if attrs.size is not None else 1.0,
            held_item=attrs.held_item,
        )
        self._creatures[creature_id] = entity
        return creature_id

    def get_creature(self, creature_id: Hashable) -> Optional[tcod.ecs.Entity]:
        return self._creatures.get(creature_id)

    def creatures(self) -> List[tcod.ecs.Entity]:
        return list(self.registry.Q.all_of(components=[CreatureIdentity]))

    def creature_state(self, creature_id: Hashable) -> Optional[CreatureState]:
        entity = self._creatures.get(creature_id)
        if entity is None:
            return None
        return CreatureState(
            alive=not entity.components[Vitals].is_dead,
            wild=entity.components[Ownership].is_wild,
        )

    def kill(self, creature_id: Hashable) -> None:
        self._creatures[creature_id].components[Vitals].is_dead = True

    def capture(self, creature_id: Hashable, owner: str) -> None:
        self._creatures[creature_id].components[Ownership].owner = owner

    def discard_creature(self, creature_id: Hashable) -> bool:
        entity = self._creatures.pop(creature_id, None)
        if entity is None:
            return False
        entity.clear()
        return True


class SimServer:
    """Holds one SimWorld per dimension."""

    def __init__(self, *worlds: SimWorld):
        self.worlds: Dict[str, SimWorld] = {w.dimension: w for w in worlds}

    def get_world(self, dimension: str) -> Optional[SimWorld]:
        return self.worlds.get(dimension)

    def advance(self, ticks: int = 1) -> None:
        for world in self.worlds.values():
            world.advance(ticks)
