"""
CobbleSpawners - run.py
Headless demo: runs spawners from a TOML config against a simulated flat world.
"""

import argparse
import logging
import random
import sys
from pathlib import Path

# Ensure we can import the project packages when run from a checkout
project_root = Path(__file__).parent.resolve()
sys.path.insert(0, str(project_root))

from spawners.coords import BlockPos
from spawners.data_loader import CreatureSpawnEntry, load_config
from spawners.engine import SpawnerEngine
from spawners.events import EventBus, ServerStarted, ServerStopping, ServerTick
from spawners.ecs.components import CreatureIdentity, SpawnTraits
from world.sim import SimServer, SimWorld
from world.species import TomlSpeciesCatalog


def build_world() -> SimWorld:
    world = SimWorld(size=(64, 16, 64), origin=(-32, 56, -32))
    world.fill(BlockPos(-32, 56, -32), BlockPos(31, 63, 31), "minecraft:stone")
    world.fill(BlockPos(-32, 64, -32), BlockPos(31, 64, 31), "minecraft:grass_block")
    world.set_block(BlockPos(0, 65, 0), "minecraft:spawner")
    return world


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run creature spawners in a simulated world.")
    parser.add_argument("--config", type=Path, default=Path("config/spawners.toml"))
    parser.add_argument("--ticks", type=int, default=2000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    if args.debug:
        config.global_config.debug_enabled = True

    world = build_world()
    server = SimServer(world)
    engine = SpawnerEngine(TomlSpeciesCatalog(), config=config, rng=random.Random(args.seed))

    if not engine.spawners():
        record = engine.add_spawner(BlockPos(0, 65, 0), name="demo")
        engine.update_spawner(record.key, spawn_timer_ticks=100, spawn_amount_per_spawn=2)
        engine.add_entry(record.key, CreatureSpawnEntry(species="Pikachu", weight=70, min_level=3, max_level=8, shiny_chance=5))
        engine.add_entry(record.key, CreatureSpawnEntry(species="Vulpix", form="Alola", weight=30, min_level=5, max_level=10))

    bus = EventBus()
    engine.attach(bus)
    bus.emit(ServerStarted(server=server))
    for _ in range(args.ticks):
        server.advance()
        bus.emit(ServerTick(server=server))

    for record in engine.spawners():
        print(f"{record.name} @ {record.key}: {engine.ledger.count_for(record.key)}/{record.spawn_limit} alive")
    for entity in world.creatures():
        ident = entity.components[CreatureIdentity]
        traits = entity.components[SpawnTraits]
        shiny = " (shiny)" if traits.shiny else ""
        print(f"  {ident.species} lv{traits.level}{shiny} {ident.aspects or ''}")

    bus.emit(ServerStopping(server=server))
    return 0


if __name__ == "__main__":
    sys.exit(main())
