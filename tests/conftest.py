"""
Shared fixtures: a small flat SimWorld and the TOML species catalog.
"""
import random

import pytest

from spawners.data_loader import CreatureSpawnEntry
from world.sim import SimServer
from world.species import TomlSpeciesCatalog

from helpers import make_flat_world


@pytest.fixture
def flat_world():
    return make_flat_world()


@pytest.fixture
def server(flat_world):
    return SimServer(flat_world)


@pytest.fixture
def catalog():
    return TomlSpeciesCatalog()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def pikachu():
    return CreatureSpawnEntry(species="Pikachu", weight=100, min_level=10, max_level=10, shiny_chance=0)
