"""
CobbleSpawners - spawners/events.py
Typed host events and the dispatch bus that feeds them to the engine.
=====================================================================
Version:     0.2
Stack:       Python 3.12+ | Pydantic v2 | bespoke pub-sub
Status:      Production-ready.

Architecture notes
------------------
- The host adapter translates engine callbacks (tick, block break,
  creature death/capture, server lifecycle) into the models below and
  emits them. The spawner engine never registers host callbacks itself.
- Wildcard key "*" receives every emitted event.
- Per-handler errors are logged and emission continues, so one broken
  subscriber never stalls the tick.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from spawners.coords import BlockPos

LOG = logging.getLogger(__name__)

# ============================================================
# CANONICAL EVENT KEYS
# ============================================================

EVT_SERVER_STARTED   = "server.started"
EVT_SERVER_STOPPING  = "server.stopping"
EVT_SERVER_TICK      = "server.tick"
EVT_BLOCK_CHANGED    = "world.block_changed"
EVT_CREATURE_REMOVED = "creature.removed"
EVT_CREATURE_SPAWNED = "spawner.creature_spawned"

# ============================================================
# EVENT MODELS  (Pydantic v2)
# ============================================================

class HostEvent(BaseModel):
    """Base envelope. `server` is the live host handle, never serialised."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)
    event_key: str
    server: Any = None


class ServerStarted(HostEvent):
    event_key: str = EVT_SERVER_STARTED


class ServerStopping(HostEvent):
    event_key: str = EVT_SERVER_STOPPING


class ServerTick(HostEvent):
    event_key: str = EVT_SERVER_TICK


class BlockChanged(HostEvent):
    event_key: str = EVT_BLOCK_CHANGED
    dimension: str
    pos: BlockPos
    block_id: str = "minecraft:air"
    previous_id: Optional[str] = None


class CreatureRemoved(HostEvent):
    """Creature died, was captured, or otherwise left the wild."""
    event_key: str = EVT_CREATURE_REMOVED
    creature_id: Any
    reason: str = "removed"


class CreatureSpawned(HostEvent):
    event_key: str = EVT_CREATURE_SPAWNED
    creature_id: Any
    spawner: str
    species: str
    level: int
    shiny: bool = False


HandlerFn = Callable[[HostEvent], None]


class EventBus:
    """
    Dispatch table between the host adapter and one or more spawner engines.

    The adapter emits a HostEvent per host callback; SpawnerEngine.attach()
    subscribes the engine's lifecycle, tick, block and creature handlers.
    Handlers for the exact key run first, then wildcard handlers, each in
    subscription order. A handler subscribed twice to one key runs once.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[HandlerFn]] = {}

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        handlers = self._subscribers.setdefault(event_key, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_key: str, handler: HandlerFn) -> None:
        handlers = self._subscribers.get(event_key)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: HostEvent) -> int:
        """Delivers event to its handlers. Returns how many of them raised."""
        # Snapshot: handlers may subscribe or unsubscribe while running.
        targets = [
            *self._subscribers.get(event.event_key, ()),
            *self._subscribers.get("*", ()),
        ]
        failures = 0
        for handler in targets:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                failures += 1
                LOG.exception("Handler error on '%s' (%s)", event.event_key, type(event).__name__)
        return failures
