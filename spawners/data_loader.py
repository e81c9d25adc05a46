"""
CobbleSpawners - spawners/data_loader.py
Configuration schemas and JIT loaders for TOML data powered by Pydantic.
=========================================================================
Version:     0.3
Stack:       Python 3.12+ | Pydantic v2 | tomllib
Status:      Core data validation and loading layer.

Spawner records are mutable (the editor renames them, retunes timers).
Creature entries are frozen: the orchestrator treats each one as an immutable
snapshot for the duration of a spawn attempt, and edits replace the entry.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from spawners.coords import DEFAULT_DIMENSION, BlockPos, SpawnerKey, parse_dimension

LOG = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.1"
STAT_NAMES: Tuple[str, ...] = ("hp", "attack", "defence", "special_attack", "special_defence", "speed")
MAX_STAT_ROLL = 31

# ================================================================================
# CREATURE ENTRY SCHEMAS
# ================================================================================

class CaptureSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    catchable: bool = True
    restrict_to_balls: bool = False
    allowed_balls: List[str] = Field(default_factory=lambda: ["safari_ball"])


class StatRange(BaseModel):
    model_config = ConfigDict(frozen=True)
    min: int = Field(default=0, ge=0)
    max: int = Field(default=MAX_STAT_ROLL, ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "StatRange":
        if self.min > self.max:
            raise ValueError(f"stat range min {self.min} exceeds max {self.max}")
        return self


class StatRollSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    enabled: bool = False
    hp: StatRange = Field(default_factory=StatRange)
    attack: StatRange = Field(default_factory=StatRange)
    defence: StatRange = Field(default_factory=StatRange)
    special_attack: StatRange = Field(default_factory=StatRange)
    special_defence: StatRange = Field(default_factory=StatRange)
    speed: StatRange = Field(default_factory=StatRange)

    def ranges(self) -> Dict[str, StatRange]:
        return {name: getattr(self, name) for name in STAT_NAMES}


class DefeatRewardSettings(BaseModel):
    """Per-stat deltas granted to the victor when this creature is defeated."""
    model_config = ConfigDict(frozen=True)
    enabled: bool = False
    hp: int = 0
    attack: int = 0
    defence: int = 0
    special_attack: int = 0
    special_defence: int = 0
    speed: int = 0


class SpawnConditions(BaseModel):
    model_config = ConfigDict(frozen=True)
    spawn_time: Literal["DAY", "NIGHT", "ALL"] = "ALL"
    spawn_weather: Literal["CLEAR", "RAIN", "THUNDER", "ALL"] = "ALL"

    @field_validator("spawn_time", "spawn_weather", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class SizeSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    enabled: bool = False
    min_size: float = Field(default=1.0, gt=0)
    max_size: float = Field(default=1.0, gt=0)


class HeldItemChance(BaseModel):
    model_config = ConfigDict(frozen=True)
    item: str
    chance: float = Field(ge=0, le=100)


class HeldItemSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    enabled: bool = False
    items: List[HeldItemChance] = Field(default_factory=list)


class CreatureSpawnEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    species: str
    form: Optional[str] = None
    weight: float = Field(default=100.0, ge=0)
    shiny_chance: float = Field(default=0.0, ge=0, le=100)
    min_level: int = Field(default=1, ge=1)
    max_level: int = Field(default=100, ge=1)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    stat_rolls: StatRollSettings = Field(default_factory=StatRollSettings)
    defeat_rewards: DefeatRewardSettings = Field(default_factory=DefeatRewardSettings)
    conditions: SpawnConditions = Field(default_factory=SpawnConditions)
    size: SizeSettings = Field(default_factory=SizeSettings)
    held_items: HeldItemSettings = Field(default_factory=HeldItemSettings)

    @model_validator(mode="after")
    def _check_levels(self) -> "CreatureSpawnEntry":
        if self.min_level > self.max_level:
            raise ValueError(f"min_level {self.min_level} exceeds max_level {self.max_level}")
        return self

    @property
    def has_custom_form(self) -> bool:
        return normalize_name(self.form) not in ("", "normal", "default")

    def matches(self, species: str, form: Optional[str] = None) -> bool:
        """Species and forms compare in normalised form ("Mr. Mime" == "mr mime")."""
        if normalize_name(self.species) != normalize_name(species):
            return False
        mine = normalize_name(self.form) if self.has_custom_form else ""
        theirs = normalize_name(form)
        if theirs in ("normal", "default"):
            theirs = ""
        return mine == theirs


def normalize_name(name: Optional[str]) -> str:
    """Strips non-alphanumerics and lower-cases ('Alolan-Form' -> 'alolanform')."""
    if not name:
        return ""
    return "".join(ch for ch in name if ch.isascii() and ch.isalnum()).lower()

# ================================================================================
# SPAWNER SCHEMAS
# ================================================================================

class SpawnRadius(BaseModel):
    """Half-extents of the rectangular spawn box around the spawner block."""
    model_config = ConfigDict(frozen=True)
    width: int = Field(default=4, ge=0)
    height: int = Field(default=4, ge=0)


class SpawnerRecord(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    pos: BlockPos
    dimension: str = DEFAULT_DIMENSION
    name: str = "default_spawner"
    entries: List[CreatureSpawnEntry] = Field(default_factory=list)
    spawn_timer_ticks: int = Field(default=200, ge=0)
    radius: SpawnRadius = Field(default_factory=SpawnRadius)
    spawn_limit: int = Field(default=4, ge=0)
    spawn_amount_per_spawn: int = Field(default=1, ge=1)
    visible: bool = True
    show_particles: bool = True

    @field_validator("dimension")
    @classmethod
    def _normalise_dimension(cls, value: str) -> str:
        return parse_dimension(value)

    @property
    def key(self) -> SpawnerKey:
        return SpawnerKey(self.dimension, self.pos)


class GlobalConfig(BaseModel):
    version: str = CONFIG_VERSION
    debug_enabled: bool = False
    cull_spawner_creatures_on_server_stop: bool = True
    attempts_per_spawn: int = Field(default=5, ge=1)
    stat_budget: int = Field(default=186, ge=0)
    start_jitter_ticks: int = Field(default=5, ge=0)


class ConfigData(BaseModel):
    global_config: GlobalConfig = Field(default_factory=GlobalConfig)
    spawners: List[SpawnerRecord] = Field(default_factory=list)


def load_config(path: Path) -> ConfigData:
    """Loads spawner configuration from TOML. Missing or broken files yield defaults."""
    if not path.exists():
        LOG.info("Config file %s does not exist. Using default config.", path)
        return ConfigData()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        LOG.error("Failed to read config file %s", path, exc_info=True)
        return ConfigData()

    if not data:
        LOG.info("Config file %s is empty. Using default config.", path)
        return ConfigData()

    try:
        config = ConfigData(**data)
    except ValidationError as exc:
        LOG.error("Config file %s failed validation: %s", path, exc)
        return ConfigData()

    LOG.debug("Loaded %d spawner(s) from %s", len(config.spawners), path)
    return config


def dump_config(config: ConfigData) -> Dict[str, Any]:
    """Plain-data view of the config for the persistence layer."""
    return config.model_dump(mode="json")

# ================================================================================
# HOST DATA SCHEMAS (reference world)
# ================================================================================

class BlockDef(BaseModel):
    """Collision profile of a block type. collision_height 0 means an empty shape."""
    model_config = ConfigDict(frozen=True)
    id: str
    collision_height: float = Field(default=1.0, ge=0)
    solid_top: bool = True
    standing_surface: bool = False

    @property
    def is_air(self) -> bool:
        return self.id == "minecraft:air"

    @property
    def has_collision(self) -> bool:
        return self.collision_height > 0


class BlockCollectionDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    blocks: List[BlockDef]


class FormDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str
    showdown_id: str
    aspects: List[str] = Field(default_factory=list)


class SpeciesDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    name: str
    forms: List[FormDef] = Field(default_factory=list)
    hitbox_width: float = Field(default=0.6, gt=0)
    hitbox_height: float = Field(default=1.0, gt=0)


class SpeciesCollectionDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    species: List[SpeciesDef]

# ================================================================================
# LOADERS & CACHE (JIT)
# ================================================================================

_BLOCK_CACHE: Optional[Dict[str, BlockDef]] = None
_SPECIES_CACHE: Optional[Dict[str, SpeciesDef]] = None

DATA_DIR = Path(__file__).parent.parent / "data"


def get_block_defs() -> Dict[str, BlockDef]:
    """Loads block collision profiles from TOML. Cached globally."""
    global _BLOCK_CACHE
    if _BLOCK_CACHE is not None:
        return _BLOCK_CACHE

    path = DATA_DIR / "blocks.toml"
    if not path.exists():
        raise FileNotFoundError(f"Block definitions not found: {path}")

    with open(path, "rb") as f:
        data = tomllib.load(f)

    collection = BlockCollectionDef(**data)
    _BLOCK_CACHE = {block.id: block for block in collection.blocks}
    return _BLOCK_CACHE


def get_species_defs() -> Dict[str, SpeciesDef]:
    """Loads the species catalog from TOML, keyed by sanitised name. Cached globally."""
    global _SPECIES_CACHE
    if _SPECIES_CACHE is not None:
        return _SPECIES_CACHE

    path = DATA_DIR / "species.toml"
    if not path.exists():
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)

    collection = SpeciesCollectionDef(**data)
    _SPECIES_CACHE = {normalize_name(s.name): s for s in collection.species}
    return _SPECIES_CACHE
