"""
Builders shared by the spawner tests.
"""
from spawners.attributes import AttributeSet
from spawners.coords import BlockPos
from spawners.data_loader import SpawnerRecord, SpawnRadius
from world.host import SpawnRequest
from world.sim import SimWorld


def make_flat_world(size=8, floor="minecraft:stone"):
    """size x 8 x size world with a one-block floor at y=0."""
    world = SimWorld(size=(size, 8, size))
    world.fill(BlockPos(0, 0, 0), BlockPos(size - 1, 0, size - 1), floor)
    return world


def place_creature(world, key, pos, species="Pikachu", level=5):
    request = SpawnRequest(species=species, spawner=key, pos=BlockPos(*pos),
                           attributes=AttributeSet(level=level, shiny=False))
    return world.spawn_creature(request)


def make_spawner(pos=(3, 1, 3), width=0, height=0, entries=(), **kwargs):
    return SpawnerRecord(pos=BlockPos(*pos), radius=SpawnRadius(width=width, height=height),
                         entries=list(entries), **kwargs)
