"""
CobbleSpawners - spawners/coords.py
Block coordinates and spawner identity keys.
============================================
Version:     0.1
Stack:       Python 3.12+
Status:      Stable.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Tuple

LOG = logging.getLogger(__name__)

DEFAULT_DIMENSION = "minecraft:overworld"


class BlockPos(NamedTuple):
    x: int
    y: int
    z: int

    def offset(self, dx: int, dy: int, dz: int) -> "BlockPos":
        return BlockPos(self.x + dx, self.y + dy, self.z + dz)

    def up(self, n: int = 1) -> "BlockPos":
        return BlockPos(self.x, self.y + n, self.z)

    def down(self, n: int = 1) -> "BlockPos":
        return BlockPos(self.x, self.y - n, self.z)

    def distance_sq(self, other: Tuple[int, int, int]) -> int:
        dx = self.x - other[0]
        dy = self.y - other[1]
        dz = self.z - other[2]
        return dx * dx + dy * dy + dz * dz


class SpawnerKey(NamedTuple):
    """Unique identity of a placed spawner: dimension plus block position."""
    dimension: str
    pos: BlockPos

    def __str__(self) -> str:
        return f"{self.dimension}@{self.pos.x},{self.pos.y},{self.pos.z}"


def parse_dimension(dimension: str) -> str:
    """Normalises a 'namespace:path' dimension id, falling back to the overworld."""
    parts = dimension.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        LOG.warning("Invalid dimension format: %s. Expected 'namespace:path'", dimension)
        return DEFAULT_DIMENSION
    return f"{parts[0].lower()}:{parts[1].lower()}"
