"""
CobbleSpawners - spawners/engine.py
SpawnerEngine: spawner registry, last-spawn timers and the spawn cycle orchestrator.
=====================================================================================
Version:     0.3
Stack:       Python 3.12+ | Pydantic v2
Status:      Integration entry point.

Architecture notes
------------------
- One SpawnerEngine owns every piece of shared state: spawner records, the
  last-spawn tick table, the position cache and the population ledger.
  Tests build as many independent engines as they like.
- The host drives tick() once per server tick (directly or through an
  EventBus via attach()). Spawners are processed sequentially.
- Nothing raised inside one spawner's cycle escapes it; the tick carries
  on with the next spawner.

Cycle per spawner
-----------------
  1. resolve the spawner's world            (missing -> error, skip)
  2. reconcile the ledger                   (evictions mark the timer elapsed)
  3. timer not elapsed                      -> skip
  4. population at cap                      -> restart timer, skip
  5. valid positions                        (none -> skip)
  6. eligible entries                       (none -> skip)
  7. total weight                           (<= 0 -> warning, skip)
  8-10. bounded placement attempts
  11. restart timer
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from spawners.attributes import resolve_form, roll_attributes
from spawners.coords import DEFAULT_DIMENSION, BlockPos, SpawnerKey, parse_dimension
from spawners.data_loader import ConfigData, CreatureSpawnEntry, GlobalConfig, SpawnerRecord
from spawners.events import (
    EVT_BLOCK_CHANGED,
    EVT_CREATURE_REMOVED,
    EVT_SERVER_STARTED,
    EVT_SERVER_STOPPING,
    EVT_SERVER_TICK,
    BlockChanged,
    CreatureRemoved,
    CreatureSpawned,
    EventBus,
)
from spawners.ledger import PopulationLedger
from spawners.positions import SpawnAreaCache, is_clear_for_hitbox
from spawners.selection import filter_eligible, select_weighted, total_weight
from world.host import Server, SpawnRequest, SpeciesCatalog, World

LOG = logging.getLogger(__name__)

SPAWNER_BLOCK_ID = "minecraft:spawner"
_KEY_FIELDS = {"pos", "dimension"}


def configure_logging(debug_enabled: bool) -> None:
    """Debug traces of the spawn cycle are only emitted when the config asks for them."""
    logging.getLogger("spawners").setLevel(logging.DEBUG if debug_enabled else logging.INFO)


class SpawnerEngine:
    def __init__(
        self,
        species: SpeciesCatalog,
        config: Optional[ConfigData] = None,
        rng: Optional[random.Random] = None,
        on_change: Optional[Callable[[ConfigData], None]] = None,
    ) -> None:
        self.species = species
        self.rng = rng if rng is not None else random.Random()
        self.on_change = on_change
        self.settings = GlobalConfig()
        self.positions = SpawnAreaCache()
        self.ledger = PopulationLedger()
        self.bus: Optional[EventBus] = None

        self._spawners: Dict[SpawnerKey, SpawnerRecord] = {}
        self._last_spawn: Dict[SpawnerKey, int] = {}
        self._editing: Set[SpawnerKey] = set()

        self.reload(config if config is not None else ConfigData(), notify=False)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def reload(self, config: ConfigData, notify: bool = True) -> None:
        """Replaces every spawner record and drops all cached positions."""
        self.settings = config.global_config
        configure_logging(self.settings.debug_enabled)
        self._spawners = {}
        for record in config.spawners:
            if record.key in self._spawners:
                LOG.warning("Duplicate spawner at %s in config; keeping the last one.", record.key)
            self._spawners[record.key] = record
        self.positions.clear()
        LOG.debug("Loaded %d spawner(s).", len(self._spawners))
        if notify:
            self._changed()

    def config_data(self) -> ConfigData:
        return ConfigData(global_config=self.settings, spawners=list(self._spawners.values()))

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.config_data())

    # ------------------------------------------------------------------
    # Spawner CRUD
    # ------------------------------------------------------------------

    def spawners(self) -> List[SpawnerRecord]:
        return list(self._spawners.values())

    def get_spawner(self, key: SpawnerKey) -> Optional[SpawnerRecord]:
        return self._spawners.get(key)

    def find_spawner(self, dimension: str, pos: BlockPos) -> Optional[SpawnerRecord]:
        return self._spawners.get(SpawnerKey(parse_dimension(dimension), BlockPos(*pos)))

    def add_spawner(self, pos: BlockPos, dimension: str = DEFAULT_DIMENSION,
                    name: Optional[str] = None) -> Optional[SpawnerRecord]:
        record = SpawnerRecord(
            pos=pos,
            dimension=dimension,
            name=name if name else f"spawner_{len(self._spawners) + 1}",
        )
        if record.key in self._spawners:
            LOG.debug("Spawner at %s already exists.", record.key)
            return None
        self._spawners[record.key] = record
        self.positions.invalidate(record.key)
        self._changed()
        LOG.debug("Added spawner '%s' at %s.", record.name, record.key)
        return record

    def remove_spawner(self, key: SpawnerKey) -> bool:
        if self._spawners.pop(key, None) is None:
            LOG.debug("Spawner not found at %s", key)
            return False
        cleared = self.ledger.clear_spawner(key)
        self.positions.invalidate(key)
        self._last_spawn.pop(key, None)
        self._editing.discard(key)
        self._changed()
        LOG.debug("Removed spawner at %s (%d tracked creature(s) released).", key, cleared)
        return True

    def update_spawner(self, key: SpawnerKey, **changes: Any) -> Optional[SpawnerRecord]:
        record = self._spawners.get(key)
        if record is None:
            LOG.debug("Spawner not found at %s", key)
            return None
        unknown = changes.keys() - SpawnerRecord.model_fields.keys()
        if unknown:
            LOG.warning("Unknown spawner field(s) %s for spawner at %s.", ", ".join(sorted(unknown)), key)
            return None
        if _KEY_FIELDS & changes.keys():
            LOG.warning("Spawner identity (%s) cannot be changed in place.", ", ".join(sorted(_KEY_FIELDS & changes.keys())))
            return None
        try:
            candidate = SpawnerRecord.model_validate({**record.model_dump(), **changes})
        except ValidationError as exc:
            LOG.warning("Rejected update for spawner at %s: %s", key, exc)
            return None
        self._spawners[key] = candidate
        if "radius" in changes:
            self.positions.invalidate(key)
        self._changed()
        return candidate

    # ------------------------------------------------------------------
    # Creature entry CRUD
    # ------------------------------------------------------------------

    def get_entry(self, key: SpawnerKey, species: str, form: Optional[str] = None) -> Optional[CreatureSpawnEntry]:
        record = self._spawners.get(key)
        if record is None:
            return None
        for entry in record.entries:
            if entry.matches(species, form):
                return entry
        return None

    def add_entry(self, key: SpawnerKey, entry: CreatureSpawnEntry) -> bool:
        record = self._spawners.get(key)
        if record is None:
            LOG.debug("Spawner not found at %s", key)
            return False
        if self.get_entry(key, entry.species, entry.form) is not None:
            LOG.debug("'%s' is already configured for spawner at %s.", entry.species, key)
            return False
        record.entries = [*record.entries, entry]
        self._changed()
        LOG.debug("Added '%s' to spawner at %s.", entry.species, key)
        return True

    def remove_entry(self, key: SpawnerKey, species: str, form: Optional[str] = None) -> bool:
        record = self._spawners.get(key)
        if record is None:
            return False
        kept = [entry for entry in record.entries if not entry.matches(species, form)]
        if len(kept) == len(record.entries):
            LOG.debug("'%s' not found in spawner at %s.", species, key)
            return False
        record.entries = kept
        self._changed()
        return True

    def update_entry(self, key: SpawnerKey, match_species: str, match_form: Optional[str] = None,
                     **changes: Any) -> Optional[CreatureSpawnEntry]:
        """
        Replaces the entry matching (match_species, match_form) with a copy
        carrying `changes`. Renaming onto another configured entry is refused.
        """
        record = self._spawners.get(key)
        current = self.get_entry(key, match_species, match_form)
        if record is None or current is None:
            return None
        unknown = changes.keys() - CreatureSpawnEntry.model_fields.keys()
        if unknown:
            LOG.warning("Unknown entry field(s) %s for '%s' at %s.", ", ".join(sorted(unknown)), match_species, key)
            return None
        try:
            updated = CreatureSpawnEntry.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            LOG.warning("Rejected update for '%s' at %s: %s", match_species, key, exc)
            return None
        clash = self.get_entry(key, updated.species, updated.form)
        if clash is not None and clash is not current:
            LOG.warning("'%s' is already configured for spawner at %s.", updated.species, key)
            return None
        record.entries = [updated if entry is current else entry for entry in record.entries]
        self._changed()
        return updated

    # ------------------------------------------------------------------
    # Positions, editor lock, timers
    # ------------------------------------------------------------------

    def compute_valid_spawn_positions(self, world: World, key: SpawnerKey) -> List[BlockPos]:
        record = self._spawners.get(key)
        if record is None:
            return []
        return self.positions.get_valid_positions(world, record)

    def invalidate_positions(self, key: SpawnerKey) -> bool:
        return self.positions.invalidate(key)

    def begin_edit(self, key: SpawnerKey) -> None:
        self._editing.add(key)

    def end_edit(self, key: SpawnerKey) -> None:
        self._editing.discard(key)

    def is_editing(self, key: SpawnerKey) -> bool:
        return key in self._editing

    def last_spawn_tick(self, key: SpawnerKey) -> int:
        return self._last_spawn.get(key, 0)

    def set_last_spawn_tick(self, key: SpawnerKey, tick: int) -> None:
        self._last_spawn[key] = tick

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    def attach(self, bus: EventBus) -> None:
        self.bus = bus
        bus.subscribe(EVT_SERVER_STARTED, lambda e: self.on_server_started(e.server))
        bus.subscribe(EVT_SERVER_STOPPING, lambda e: self.on_server_stopping(e.server))
        bus.subscribe(EVT_SERVER_TICK, lambda e: self.tick(e.server))
        bus.subscribe(EVT_BLOCK_CHANGED, self._on_block_changed)
        bus.subscribe(EVT_CREATURE_REMOVED, self._on_creature_removed)

    def on_server_started(self, server: Server) -> None:
        """Staggers spawners so they do not all fire on the same tick."""
        for record in self.spawners():
            world = server.get_world(record.dimension)
            now = world.time if world is not None else 0
            jitter = self.rng.randint(0, self.settings.start_jitter_ticks)
            self._last_spawn[record.key] = now + jitter

    def on_server_stopping(self, server: Server) -> int:
        if not self.settings.cull_spawner_creatures_on_server_stop:
            return 0
        culled = 0
        for record in self.spawners():
            world = server.get_world(record.dimension)
            if world is None:
                continue
            for creature_id in self.ledger.ids_for(record.key):
                if world.discard_creature(creature_id):
                    culled += 1
                    LOG.debug("Despawned creature %s from spawner at %s", creature_id, record.key)
                self.ledger.remove(creature_id)
        return culled

    def on_block_changed(self, dimension: str, pos: BlockPos, block_id: str) -> None:
        dimension = parse_dimension(dimension)
        pos = BlockPos(*pos)
        record = self._spawners.get(SpawnerKey(dimension, pos))
        if record is not None and block_id != SPAWNER_BLOCK_ID:
            self.remove_spawner(record.key)
            LOG.info("Custom spawner removed at %s.", record.key)
            return
        self.positions.invalidate_near(dimension, pos, self.spawners())

    def _on_block_changed(self, event: BlockChanged) -> None:
        self.on_block_changed(event.dimension, event.pos, event.block_id)

    def _on_creature_removed(self, event: CreatureRemoved) -> None:
        if self.ledger.remove(event.creature_id):
            LOG.debug("Creature %s left its spawner (%s).", event.creature_id, event.reason)

    # ------------------------------------------------------------------
    # Orchestrator
    # ------------------------------------------------------------------

    def tick(self, server: Server) -> int:
        """Runs one spawn cycle for every spawner. Returns the number spawned."""
        spawned = 0
        for record in self.spawners():
            try:
                spawned += self.run_cycle(server, record)
            except Exception:  # noqa: BLE001
                LOG.exception("Spawn cycle failed for spawner at %s", record.key)
        return spawned

    def run_cycle(self, server: Server, record: SpawnerRecord) -> int:
        key = record.key
        world = server.get_world(record.dimension)
        if world is None:
            LOG.error("World '%s' not found for spawner at %s", record.dimension, key)
            return 0

        now = world.time
        if self.ledger.reconcile(world, key):
            # A freed slot is reconsidered now rather than after a full interval.
            self._last_spawn[key] = now - record.spawn_timer_ticks - 1

        if now - self.last_spawn_tick(key) <= record.spawn_timer_ticks:
            return 0

        spawned = 0
        population = self.ledger.count_for(key)
        try:
            if self.is_editing(key):
                LOG.debug("Editor is open for spawner at %s. Skipping spawn.", key)
            elif population >= record.spawn_limit:
                LOG.debug("Spawn limit reached for spawner '%s'. No spawn.", record.name)
            else:
                spawned = self._spawn_batch(world, record, population)
        finally:
            self._last_spawn[key] = now
        return spawned

    def _spawn_batch(self, world: World, record: SpawnerRecord, population: int) -> int:
        key = record.key
        positions = self.positions.get_valid_positions(world, record)
        if not positions:
            LOG.info("No suitable spawn position found for spawner at %s. Skipping spawn.", key)
            return 0

        eligible = filter_eligible(record.entries, world.time_of_day, world.is_raining, world.is_thundering)
        if not eligible:
            LOG.debug("No eligible creatures to spawn for spawner '%s'.", record.name)
            return 0

        if total_weight(eligible) <= 0:
            LOG.warning("Total spawn weight is zero or negative for spawner at %s. Skipping spawn.", key)
            return 0

        desired = min(record.spawn_amount_per_spawn, record.spawn_limit - population)
        max_attempts = desired * self.settings.attempts_per_spawn
        LOG.debug("Attempting to spawn %d creature(s) for spawner at %s", desired, key)

        attempts = 0
        spawned = 0
        while spawned < desired and attempts < max_attempts:
            attempts += 1
            try:
                placed = self._attempt_spawn(world, record, positions, eligible)
            except Exception:  # noqa: BLE001
                LOG.exception("Spawn attempt %d failed for spawner at %s", attempts, key)
                continue
            if placed:
                spawned += 1

        if spawned == 0:
            LOG.warning("No creatures were spawned for spawner at %s after %d attempt(s).", key, attempts)
        else:
            LOG.debug("Spawned %d/%d creature(s) for spawner at %s in %d attempt(s).", spawned, desired, key, attempts)
        return spawned

    def _attempt_spawn(self, world: World, record: SpawnerRecord,
                       positions: List[BlockPos], eligible: Iterable[CreatureSpawnEntry]) -> bool:
        key = record.key
        pos = self.rng.choice(positions)
        if not world.is_chunk_loaded(pos):
            LOG.debug("Chunk not loaded at spawn position %s. Skipping attempt.", pos)
            return False

        entry = select_weighted(list(eligible), self.rng)
        if entry is None:
            LOG.warning("No creature selected for spawning at spawner at %s", key)
            return False

        species = self.species.get(entry.species)
        if species is None:
            LOG.warning("Species '%s' not found for spawner at %s", entry.species, key)
            return False

        form = resolve_form(species, entry.form) if entry.has_custom_form else None
        attributes = roll_attributes(entry, self.rng, self.settings.stat_budget, world.has_item)

        scale = attributes.size if attributes.size is not None else 1.0
        if not is_clear_for_hitbox(world, pos, species.hitbox_width * scale, species.hitbox_height * scale):
            LOG.debug("'%s' does not fit at %s. Skipping attempt.", species.name, pos)
            return False

        request = SpawnRequest(species=species.name, spawner=key, pos=pos, attributes=attributes)
        if form is not None:
            if form.aspects:
                request.aspects = list(form.aspects)
            else:
                request.form_id = form.showdown_id

        creature_id = world.spawn_creature(request)
        if creature_id is None:
            LOG.debug("Host rejected spawn of '%s' at %s", species.name, pos)
            return False

        self.ledger.add(creature_id, key, entry.species)
        LOG.debug("'%s' spawned with id %s", species.name, creature_id)
        if self.bus is not None:
            self.bus.emit(CreatureSpawned(
                creature_id=creature_id,
                spawner=str(key),
                species=species.name,
                level=attributes.level,
                shiny=attributes.shiny,
            ))
        return True
