"""
Terrain archetypes. One TerrainType per map letter; shared by every cell of
that letter and never mutated during a run.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
import math
import string

from biosim.ecology.errors import ConfigError


@dataclass(frozen=True)
class TerrainType:
    name: str
    alpha: float
    max_food: float
    live: bool
    color: Optional[str] = None  # "rrggbb", kept for report/render collaborators


def make_terrain_type(name, alpha, max_food, live, color=None) -> TerrainType:
    problems = []
    name = str(name)
    if len(name) != 1:
        problems.append(f"terrain name must be a single character, got {name!r}")
    try:
        alpha = float(alpha)
        max_food = float(max_food)
    except (TypeError, ValueError):
        raise ConfigError(f"Terrain type {name!r}: alpha and max food must be numbers")
    if not (math.isfinite(alpha) and 0.0 <= alpha <= 1.0):
        problems.append(f"alpha must be in [0, 1], got {alpha}")
    if not (math.isfinite(max_food) and max_food >= 0.0):
        problems.append(f"max food must be >= 0, got {max_food}")
    if color is not None:
        color = str(color)
        if len(color) != 6 or any(c not in string.hexdigits for c in color):
            problems.append(f"malformed colour {color!r}, expected six hex digits")
        color = color.lower()
    if problems:
        raise ConfigError(f"Terrain type {name!r} is invalid:", problems)
    return TerrainType(name=name, alpha=alpha, max_food=max_food, live=bool(live), color=color)


def builtin_terrain_types(alpha: float, fmax_savannah: float, fmax_jungle: float) -> Dict[str, TerrainType]:
    """
    The fixed table used with a cell .par file: only savannah regrowth and the
    savannah/jungle capacities are tunable.
    """
    return {
        "H": make_terrain_type("H", 0.0, 0, False, "0000ff"),  # water
        "S": make_terrain_type("S", alpha, fmax_savannah, True, "adff2f"),  # savannah
        "J": make_terrain_type("J", 1.0, fmax_jungle, True, "008000"),  # jungle
        "F": make_terrain_type("F", 0.0, 0, False, "808080"),  # mountain
        "O": make_terrain_type("O", 0.0, 0, True, "ffd700"),  # desert
    }


def terrain_types_from_records(records: Iterable[Tuple]) -> Dict[str, TerrainType]:
    """Records are (letter, alpha, max_food, live, color_hex); later letters override earlier ones."""
    table: Dict[str, TerrainType] = {}
    for record in records:
        terrain = make_terrain_type(*record)
        table[terrain.name] = terrain
    return table
