import pytest

from spawners.coords import BlockPos
from spawners.positions import (
    SpawnAreaCache,
    compute_valid_spawn_positions,
    is_clear_for_hitbox,
    is_position_safe,
)
from helpers import make_flat_world, make_spawner


def test_air_over_solid_floor_is_safe(flat_world):
    pos = BlockPos(2, 1, 2)
    assert is_position_safe(flat_world, pos) is True
    # Pure function of world state: repeated calls agree.
    assert all(is_position_safe(flat_world, pos) for _ in range(5))

def test_solid_block_at_position_is_never_safe(flat_world):
    flat_world.set_block(BlockPos(2, 1, 2), "minecraft:stone")
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is False

def test_blocked_head_room_is_unsafe(flat_world):
    flat_world.set_block(BlockPos(2, 2, 2), "minecraft:stone")
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is False

def test_floating_position_is_unsafe(flat_world):
    assert is_position_safe(flat_world, BlockPos(2, 3, 2)) is False

def test_water_floor_has_no_collision(flat_world):
    flat_world.set_block(BlockPos(2, 0, 2), "minecraft:water")
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is False

@pytest.mark.parametrize("floor", ["minecraft:stone_slab", "minecraft:oak_stairs", "minecraft:farmland", "minecraft:dirt_path"])
def test_partial_surfaces_count_as_floor(flat_world, floor):
    flat_world.set_block(BlockPos(2, 0, 2), floor)
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is True

def test_thin_layer_is_not_solid_enough(flat_world):
    flat_world.set_block(BlockPos(2, 0, 2), "minecraft:snow_layer")
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is False

def test_non_colliding_plants_do_not_block(flat_world):
    flat_world.set_block(BlockPos(2, 1, 2), "minecraft:short_grass")
    assert is_position_safe(flat_world, BlockPos(2, 1, 2)) is True

def test_flat_three_by_three_yields_nine_positions():
    world = make_flat_world(size=3)
    spawner = make_spawner(pos=(1, 1, 1), width=1, height=1)
    positions = compute_valid_spawn_positions(world, spawner)
    assert len(positions) == 9
    assert {p.y for p in positions} == {1}
    assert {(p.x, p.z) for p in positions} == {(x, z) for x in range(3) for z in range(3)}

def test_hitbox_clearance_depends_on_creature_size(flat_world):
    pos = BlockPos(3, 1, 3)
    flat_world.set_block(BlockPos(4, 1, 3), "minecraft:stone")
    assert is_clear_for_hitbox(flat_world, pos, width=0.6, height=0.9) is True
    assert is_clear_for_hitbox(flat_world, pos, width=1.8, height=1.0) is False

def test_tall_hitbox_needs_vertical_room(flat_world):
    pos = BlockPos(3, 1, 3)
    flat_world.set_block(BlockPos(3, 3, 3), "minecraft:stone")
    assert is_clear_for_hitbox(flat_world, pos, width=0.6, height=1.9) is True
    assert is_clear_for_hitbox(flat_world, pos, width=0.6, height=3.5) is False

def test_cache_reuses_list_until_invalidated(flat_world):
    cache = SpawnAreaCache()
    spawner = make_spawner(width=1, height=1)
    first = cache.get_valid_positions(flat_world, spawner)
    flat_world.set_block(BlockPos(3, 1, 3), "minecraft:stone")
    assert cache.get_valid_positions(flat_world, spawner) is first

    assert cache.invalidate(spawner.key) is True
    second = cache.get_valid_positions(flat_world, spawner)
    assert second is not first
    assert BlockPos(3, 1, 3) not in second
    # The new block is a floor for the position above it.
    assert BlockPos(3, 2, 3) in second

def test_invalidation_during_scan_is_not_lost(flat_world, monkeypatch):
    cache = SpawnAreaCache()
    spawner = make_spawner(width=1, height=1)
    read_block = flat_world.block_at
    edited = []

    def block_at(pos):
        # A block edit lands after (3, 1, 3) was already scanned.
        if pos == BlockPos(4, 0, 4) and not edited:
            edited.append(pos)
            flat_world.set_block(BlockPos(3, 1, 3), "minecraft:stone")
            cache.invalidate(spawner.key)
        return read_block(pos)

    monkeypatch.setattr(flat_world, "block_at", block_at)
    stale = cache.get_valid_positions(flat_world, spawner)
    assert edited
    assert BlockPos(3, 1, 3) in stale
    assert spawner.key not in cache

    fresh = cache.get_valid_positions(flat_world, spawner)
    assert BlockPos(3, 1, 3) not in fresh
    assert cache.get_valid_positions(flat_world, spawner) is fresh

def test_clear_during_scan_is_not_lost(flat_world, monkeypatch):
    cache = SpawnAreaCache()
    spawner = make_spawner()
    read_block = flat_world.block_at

    def block_at(pos):
        cache.clear()
        return read_block(pos)

    monkeypatch.setattr(flat_world, "block_at", block_at)
    cache.get_valid_positions(flat_world, spawner)
    assert len(cache) == 0

def test_empty_result_is_cached(flat_world):
    cache = SpawnAreaCache()
    spawner = make_spawner(pos=(3, 5, 3))
    assert cache.get_valid_positions(flat_world, spawner) == []
    assert spawner.key in cache

def test_invalidate_near_respects_radius_and_dimension(flat_world):
    cache = SpawnAreaCache()
    near = make_spawner(pos=(1, 1, 1), width=2)
    far = make_spawner(pos=(7, 1, 7), width=1)
    other = make_spawner(pos=(1, 1, 1), width=2, dimension="minecraft:the_nether")
    for spawner in (near, far, other):
        cache.get_valid_positions(flat_world, spawner)

    dropped = cache.invalidate_near("minecraft:overworld", BlockPos(2, 1, 2), [near, far, other])
    assert dropped == [near.key]
    assert near.key not in cache
    assert far.key in cache
    assert other.key in cache
