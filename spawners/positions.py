"""
CobbleSpawners - spawners/positions.py
Spawn-position validation and the per-spawner valid-position cache.
====================================================================
Version:     0.3
Stack:       Python 3.12+ | threading
Status:      Production-ready.

Architecture notes
------------------
- is_position_safe() is a pure function of world state at call time.
- The box scan is O(width^2 * height) per spawner; results are memoised
  per SpawnerKey and only dropped on invalidation (world edit in radius,
  spawner removal, reload).
- Cache reads race with invalidation from block-change callbacks. A miss
  after invalidation just recomputes, and a scan that an invalidation
  overtook is used once but never stored.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Dict, Iterable, List, Tuple

from spawners.coords import BlockPos, SpawnerKey
from spawners.data_loader import SpawnerRecord
from world.host import BlockView, World

LOG = logging.getLogger(__name__)

SOLID_ENOUGH_HEIGHT: float = 0.9   # farmland and path blocks top out at 0.9375


def _is_passable(block: BlockView) -> bool:
    return block.is_air or not block.has_collision


def is_position_safe(world: World, pos: BlockPos) -> bool:
    """True when a creature can stand at pos: firm floor, clear body and head space."""
    below = world.block_at(pos.down())
    if not below.has_collision:
        return False
    solid_enough = below.collision_height >= SOLID_ENOUGH_HEIGHT
    if not (below.solid_top or below.standing_surface or solid_enough):
        return False
    if not _is_passable(world.block_at(pos)):
        return False
    if not _is_passable(world.block_at(pos.up())):
        return False
    return True


def is_clear_for_hitbox(world: World, pos: BlockPos, width: float, height: float) -> bool:
    """
    Shape-aware clearance for one creature centred on the block column at pos.
    Every block the hitbox overlaps must be passable.
    """
    half = width / 2.0
    cx, cz = pos.x + 0.5, pos.z + 0.5
    # The upper bound is exclusive: a hitbox ending exactly on a block edge
    # does not enter the next block.
    min_x, max_x = math.floor(cx - half), math.ceil(cx + half) - 1
    min_z, max_z = math.floor(cz - half), math.ceil(cz + half) - 1
    rows = max(1, math.ceil(height))
    for x in range(min_x, max_x + 1):
        for z in range(min_z, max_z + 1):
            for dy in range(rows):
                if not _is_passable(world.block_at(BlockPos(x, pos.y + dy, z))):
                    return False
    return True


def compute_valid_spawn_positions(world: World, spawner: SpawnerRecord) -> List[BlockPos]:
    """Scans the inclusive radius box around the spawner and returns every safe position."""
    width = spawner.radius.width
    height = spawner.radius.height
    valid: List[BlockPos] = []
    for dx in range(-width, width + 1):
        for dy in range(-height, height + 1):
            for dz in range(-width, width + 1):
                candidate = spawner.pos.offset(dx, dy, dz)
                if is_position_safe(world, candidate):
                    valid.append(candidate)
    LOG.debug("Computed %d valid spawn positions for spawner at %s", len(valid), spawner.key)
    return valid


class SpawnAreaCache:
    """Memoised valid-position lists keyed by spawner."""

    def __init__(self) -> None:
        self._positions: Dict[SpawnerKey, List[BlockPos]] = {}
        # Bumped on every invalidation; a scan only caches if its key's generation held.
        self._generations: Dict[SpawnerKey, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def __contains__(self, key: SpawnerKey) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def _generation(self, key: SpawnerKey) -> Tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def get_valid_positions(self, world: World, spawner: SpawnerRecord) -> List[BlockPos]:
        """
        Returns the cached list for the spawner, computing it on a miss.
        An empty first scan is retried once to ride out chunk-loading gaps;
        an empty result is then cached until the next invalidation.
        A scan overtaken by an invalidation is returned but not cached.
        The returned list is shared; callers must not mutate it.
        """
        key = spawner.key
        with self._lock:
            cached = self._positions.get(key)
            if cached is not None:
                return cached
            generation = self._generation(key)

        positions = compute_valid_spawn_positions(world, spawner)
        if not positions:
            positions = compute_valid_spawn_positions(world, spawner)
            if not positions:
                LOG.info("No valid spawn positions found for spawner at %s after two attempts.", key)

        with self._lock:
            if self._generation(key) != generation:
                LOG.debug("Spawn positions for %s changed during the scan; not caching.", key)
                return positions
            # Keep whichever list landed first if two callers raced.
            return self._positions.setdefault(key, positions)

    def invalidate(self, key: SpawnerKey) -> bool:
        with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            return self._positions.pop(key, None) is not None

    def invalidate_near(self, dimension: str, changed: BlockPos, spawners: Iterable[SpawnerRecord]) -> List[SpawnerKey]:
        """Drops the cache of every spawner whose radius covers the changed block."""
        dropped: List[SpawnerKey] = []
        for spawner in spawners:
            if spawner.dimension != dimension:
                continue
            reach = spawner.radius.width
            if spawner.pos.distance_sq(changed) <= reach * reach:
                if self.invalidate(spawner.key):
                    LOG.debug(
                        "Invalidated cached spawn positions for spawner at %s due to block change at %s",
                        spawner.key, changed,
                    )
                dropped.append(spawner.key)
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._generations.clear()
            self._positions.clear()
