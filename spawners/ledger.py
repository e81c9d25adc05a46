"""
CobbleSpawners - spawners/ledger.py
Population Ledger: live spawned creatures attributed to their spawner.
======================================================================
Version:     0.2
Stack:       Python 3.12+ | threading
Status:      Production-ready.

Architecture notes
------------------
- Read and written from the tick loop and from host callbacks (death,
  capture, battle end) that may run on other threads.
- Storage is split into shards, each guarded by its own lock, so a scan
  of one shard never stalls writers on the others.
- Every public operation is atomic per id. reconcile() only reports ids
  it actually removed, so it cannot double-count against a concurrent
  capture callback removing the same creature.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Hashable, Iterator, List, NamedTuple, Optional, Tuple

from spawners.coords import SpawnerKey
from world.host import World

LOG = logging.getLogger(__name__)

DEFAULT_SHARDS: int = 16


class LedgerEntry(NamedTuple):
    spawner: SpawnerKey
    species: str


class PopulationLedger:
    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        self._locks = [threading.Lock() for _ in range(shards)]
        self._maps: List[Dict[Hashable, LedgerEntry]] = [{} for _ in range(shards)]

    def _shard(self, creature_id: Hashable) -> int:
        return hash(creature_id) % len(self._maps)

    def _snapshot(self) -> Iterator[Tuple[Hashable, LedgerEntry]]:
        for lock, shard in zip(self._locks, self._maps):
            with lock:
                items = list(shard.items())
            yield from items

    def add(self, creature_id: Hashable, spawner: SpawnerKey, species: str) -> None:
        i = self._shard(creature_id)
        with self._locks[i]:
            self._maps[i][creature_id] = LedgerEntry(spawner, species)

    def remove(self, creature_id: Hashable) -> bool:
        i = self._shard(creature_id)
        with self._locks[i]:
            return self._maps[i].pop(creature_id, None) is not None

    def lookup(self, creature_id: Hashable) -> Optional[LedgerEntry]:
        """The ledger entry when the creature came from a spawner, else None."""
        i = self._shard(creature_id)
        with self._locks[i]:
            return self._maps[i].get(creature_id)

    def __contains__(self, creature_id: Hashable) -> bool:
        return self.lookup(creature_id) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self._snapshot())

    def count_for(self, spawner: SpawnerKey) -> int:
        return sum(1 for _, entry in self._snapshot() if entry.spawner == spawner)

    def ids_for(self, spawner: SpawnerKey) -> List[Hashable]:
        return [cid for cid, entry in self._snapshot() if entry.spawner == spawner]

    def clear_spawner(self, spawner: SpawnerKey) -> int:
        removed = 0
        for lock, shard in zip(self._locks, self._maps):
            with lock:
                doomed = [cid for cid, entry in shard.items() if entry.spawner == spawner]
                for cid in doomed:
                    del shard[cid]
                removed += len(doomed)
        return removed

    def clear(self) -> None:
        for lock, shard in zip(self._locks, self._maps):
            with lock:
                shard.clear()

    def reconcile(self, world: World, spawner: SpawnerKey) -> List[Hashable]:
        """
        Evicts creatures of this spawner that are gone, dead, or no longer
        wild (captured, traded). Returns the ids this call removed.
        """
        evicted = []
        for creature_id in self.ids_for(spawner):
            state = world.creature_state(creature_id)
            if state is not None and state.alive and state.wild:
                continue
            if self.remove(creature_id):
                evicted.append(creature_id)
                LOG.debug("Evicted stale creature %s from spawner at %s", creature_id, spawner)
        return evicted
