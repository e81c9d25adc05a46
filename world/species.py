"""
CobbleSpawners - world/species.py
Species catalog backed by data/species.toml.
============================================
Version:     0.1
Stack:       Python 3.12+ | Pydantic v2 | tomllib
Status:      Reference host adapter.
"""

from __future__ import annotations
from typing import Dict, Optional

from spawners.data_loader import SpeciesDef, get_species_defs, normalize_name


class TomlSpeciesCatalog:
    """Name -> SpeciesDef lookup. Names are matched after sanitising ('Mr. Mime' == 'mrmime')."""

    def __init__(self, species: Optional[Dict[str, SpeciesDef]] = None):
        if species is None:
            species = get_species_defs()
        self._species = {normalize_name(name): sdef for name, sdef in species.items()}

    def get(self, name: str) -> Optional[SpeciesDef]:
        return self._species.get(normalize_name(name))
