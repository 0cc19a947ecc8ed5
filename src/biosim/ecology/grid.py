"""
Spatial grid: cells keyed by packed coordinates, with the 4-neighbour
adjacency computed once when the map is built.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from biosim.ecology.errors import ConfigError
from biosim.ecology.terrain import TerrainType

if TYPE_CHECKING:
    from biosim.ecology.animal import Animal
    from biosim.ecology.species import Species

COORD_BITS = 16
COORD_LIMIT = 1 << COORD_BITS
COORD_MASK = COORD_LIMIT - 1


def coord_pack(x: int, y: int) -> int:
    return (x << COORD_BITS) | y


def coord_unpack(key: int) -> Tuple[int, int]:
    return key >> COORD_BITS, key & COORD_MASK


class Cell:
    def __init__(self, terrain: TerrainType, x: int, y: int):
        self.terrain = terrain
        self.x = x
        self.y = y
        self.food = terrain.max_food if terrain.live else 0.0
        # animal_id -> Animal; insertion ordered so iteration is reproducible
        self.occupants: Dict[int, "Animal"] = {}
        self.neighbours: List["Cell"] = []

    def __repr__(self):
        return f"Cell({self.name!r}, x={self.x}, y={self.y}, food={self.food:.2f}, n={len(self.occupants)})"

    @property
    def name(self) -> str:
        return self.terrain.name

    @property
    def live(self) -> bool:
        return self.terrain.live

    @property
    def key(self) -> int:
        return coord_pack(self.x, self.y)

    def graze_available(self) -> float:
        return self.food

    def graze(self, requested: float) -> float:
        """Hand out min(food, requested) and remove it from the cell."""
        granted = min(self.food, requested)
        self.food -= granted
        return granted

    def regrow(self) -> None:
        if not self.terrain.live:
            return
        self.food += self.terrain.alpha * (self.terrain.max_food - self.food)

    def can_host(self) -> bool:
        return self.terrain.live

    def add_animal(self, animal: "Animal") -> bool:
        if not self.terrain.live:
            return False
        self.occupants[animal.animal_id] = animal
        return True

    def remove_animal(self, animal: "Animal") -> None:
        self.occupants.pop(animal.animal_id, None)

    def animals(self) -> List["Animal"]:
        return list(self.occupants.values())

    def cell_mates(self, species: "Species", breeders_only: bool = False) -> List["Animal"]:
        min_age = 1 if breeders_only else 0
        return [a for a in self.occupants.values() if a.species is species and a.age >= min_age]


class Grid:
    """
    Cells of a rectangular terrain map. `rows[y][x]` is the terrain letter of
    the cell at (x, y). Edge cells list themselves in place of a missing
    neighbour, so every cell has exactly four neighbour references.
    """

    def __init__(self, terrain_types: Dict[str, TerrainType], rows: Sequence[str]):
        rows = [str(row) for row in rows]
        if not rows or not rows[0]:
            raise ConfigError("Malformed map: the map has no cells.")
        n_cols = len(rows[0])
        bad_rows = [y for y, row in enumerate(rows) if len(row) != n_cols]
        if bad_rows:
            raise ConfigError(f"Malformed map: rows {bad_rows} do not have {n_cols} columns.")
        if n_cols > COORD_LIMIT or len(rows) > COORD_LIMIT:
            raise ConfigError(f"Malformed map: at most {COORD_LIMIT} rows and columns are supported.")

        self.terrain_types = dict(terrain_types)
        self.n_rows = len(rows)
        self.n_cols = n_cols
        self.cells: Dict[int, Cell] = {}
        self._all_cells: List[Cell] = []
        self._live_cells: List[Cell] = []

        for y, row in enumerate(rows):
            for x, letter in enumerate(row):
                terrain = self.terrain_types.get(letter)
                if terrain is None:
                    raise ConfigError(f"Malformed map: undefined terrain type {letter!r} at ({x}, {y}).")
                cell = Cell(terrain, x, y)
                self.cells[coord_pack(x, y)] = cell
                self._all_cells.append(cell)
                if terrain.live:
                    self._live_cells.append(cell)

        for cell in self._all_cells:
            cell.neighbours = self.candidates_at(cell.x, cell.y)

    def __len__(self):
        return len(self._all_cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._all_cells)

    def at(self, x: int, y: int) -> Optional[Cell]:
        if not (0 <= x < self.n_cols and 0 <= y < self.n_rows):
            return None
        return self.cells[coord_pack(x, y)]

    def candidates_at(self, x: int, y: int) -> List[Cell]:
        """Left, up, right, down; the cell itself where the map ends."""
        here = self.at(x, y)
        candidates = []
        for dx, dy in ((-1, 0), (0, -1), (1, 0), (0, 1)):
            neighbour = self.at(x + dx, y + dy)
            candidates.append(neighbour if neighbour is not None else here)
        return candidates

    @property
    def all_cells(self) -> List[Cell]:
        return list(self._all_cells)

    @property
    def live_cells(self) -> List[Cell]:
        return [cell for cell in self._all_cells if cell.live]

    def traversal_order(self, rng=None, live_only: bool = True) -> List[Cell]:
        """
        live_only: the live cells, reshuffled in place with `rng` on every call
        (each year's order builds on the previous one).
        Otherwise all cells in fixed reading order, and `rng` is not needed.
        """
        if not live_only:
            return list(self._all_cells)
        if rng is None:
            raise ValueError("traversal_order needs an rng to shuffle the live cells")
        rng.shuffle(self._live_cells)
        return list(self._live_cells)

    def food_grid(self) -> np.ndarray:
        food = np.zeros((self.n_rows, self.n_cols), dtype=np.float64)
        for cell in self._all_cells:
            food[cell.y, cell.x] = cell.food
        return food

    def occupancy_grid(self, predators: bool) -> np.ndarray:
        counts = np.zeros((self.n_rows, self.n_cols), dtype=np.int64)
        for cell in self._all_cells:
            counts[cell.y, cell.x] = sum(1 for a in cell.occupants.values() if a.species.predator == predators)
        return counts
