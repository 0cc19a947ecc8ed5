"""
BioSim yearly simulation.

Owns the grid, the species and the living animals, and advances the world one
year at a time:
1. ageing and death
2. wandering and food regrowth (live cells, random order)
3. breeding (same cell order)
4. feeding: herbivores first, then predators, fittest first within each group
All randomness comes from one generator, drawn in a fixed order, so a seed and
a set of input files fully determine a run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from biosim.ecology.animal import Animal
from biosim.ecology.config.config_biosim import config_biosim
from biosim.ecology.errors import ConfigError
from biosim.ecology.grid import Cell, Grid
from biosim.ecology.species import Species, SpeciesConfig, make_species


@dataclass
class PopulationRecord:
    species_name: str
    x: int
    y: int
    animals: List[Tuple[int, float]] = field(default_factory=list)  # (age, weight)


class Simulation:
    def __init__(
        self,
        grid: Grid,
        species: Iterable[Union[Species, SpeciesConfig]] = (),
        config: Optional[dict] = None,
        rng=None,
    ):
        self.config = config if config is not None else config_biosim
        self._initialize_from_config()

        self.grid = grid
        self.species: List[Species] = []
        # animal_id -> Animal, in creation order
        self.animals: Dict[int, Animal] = {}
        self.next_id = 0
        self.year = self.year_begin
        self.rng = rng if rng is not None else np.random.default_rng(self.seed)

        for archetype in species:
            self.add_species(archetype)

    def _initialize_from_config(self):
        config = self.config
        self.seed = config.get("seed", 0)
        self.year_begin = config.get("year_begin", 0)
        self.year_end = config.get("year_end", 100)
        self.log_every = config.get("log_every", 10)

        self.debug_mode = config.get("debug_mode", False)
        self.verbose_setup = config.get("verbose_setup", False)
        self.verbose_death = config.get("verbose_death", False)
        self.verbose_movement = config.get("verbose_movement", False)
        self.verbose_reproduction = config.get("verbose_reproduction", False)
        self.verbose_engagement = config.get("verbose_engagement", False)

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------

    def add_species(self, archetype: Union[Species, SpeciesConfig]) -> Species:
        if isinstance(archetype, SpeciesConfig):
            if archetype.ignores_delta_phi_max:
                self._log(
                    self.verbose_setup,
                    f"[SETUP] {archetype.source or archetype.name}: both F and DeltaPhiMax given; "
                    "treated as herbivore, DeltaPhiMax ignored",
                    "yellow",
                )
            archetype = make_species(archetype)
        if self.species_named(archetype.name) is not None:
            raise ConfigError(f"Species name {archetype.name!r} is used by more than one species.")
        self.species.append(archetype)
        self._log(self.verbose_setup, f"[SETUP] species {archetype!r} registered", "green")
        return archetype

    def species_named(self, name: str) -> Optional[Species]:
        for archetype in self.species:
            if archetype.name == name:
                return archetype
        return None

    def vivify(self, species: Species, x: int, y: int) -> Optional[Animal]:
        """Create a newborn at (x, y). None if there is no live cell there."""
        cell = self.grid.at(x, y)
        if cell is None or not cell.can_host():
            return None
        animal = Animal(self.next_id, species)
        self.next_id += 1
        animal.move_to(cell)
        self.animals[animal.animal_id] = animal
        return animal

    def insert_animal(self, species: Union[Species, str], age: int, weight: float, x: int, y: int) -> Optional[Animal]:
        if isinstance(species, str):
            species = self.species_named(species)
        if species is None:
            return None
        animal = self.vivify(species, x, y)
        if animal is None:
            return None
        animal.adjust(age, weight)
        return animal

    def load_population(self, records: Iterable[PopulationRecord]) -> int:
        """Place the animals of every record; returns how many were placed."""
        placed = 0
        for record in records:
            for age, weight in record.animals:
                if age < 0 or not weight >= 0:
                    raise ConfigError(
                        f"Invalid animal ({age}, {weight}) for {record.species_name} at ({record.x}, {record.y}): "
                        "age and weight must be >= 0."
                    )
                if self.insert_animal(record.species_name, int(age), float(weight), record.x, record.y) is None:
                    self._log(
                        self.verbose_setup,
                        f"[SETUP] skipped {record.species_name} at ({record.x}, {record.y}): "
                        "unknown species or no live cell",
                        "red",
                    )
                    continue
                placed += 1
        return placed

    # ------------------------------------------------------------------
    # yearly step
    # ------------------------------------------------------------------

    def step(self) -> Dict[str, int]:
        deaths = self._apply_ageing_and_death()
        order = self.grid.traversal_order(self.rng, live_only=True)
        self._process_wandering_and_regrowth(order)
        births = self._process_breeding(order)
        eaten = self._process_feeding()
        self.year += 1
        return {"births": births, "deaths": deaths, "eaten": eaten}

    def _apply_ageing_and_death(self) -> int:
        deaths = 0
        for animal in list(self.animals.values()):
            animal.age_one_year()
            position = (animal.cell.x, animal.cell.y)
            if animal.die(self.rng):
                del self.animals[animal.animal_id]
                deaths += 1
                self._log(
                    self.verbose_death,
                    f"[DEATH] {animal.species.name}#{animal.animal_id} died at {position} "
                    f"(age {animal.age}, weight {animal.weight:.2f})",
                    "red",
                )
        return deaths

    def _process_wandering_and_regrowth(self, order: List[Cell]) -> None:
        # occupants are fixed before anyone moves: one attempt per animal per year
        residents = [(cell, cell.animals()) for cell in order]
        for cell, occupants in residents:
            for animal in occupants:
                if animal.wander(self.rng):
                    self._log(
                        self.verbose_movement,
                        f"[MOVE] {animal.species.name}#{animal.animal_id} {(cell.x, cell.y)} -> "
                        f"{(animal.cell.x, animal.cell.y)}",
                        "blue",
                    )
            cell.regrow()

    def _process_breeding(self, order: List[Cell]) -> int:
        births = 0
        for cell in order:
            if not cell.occupants:
                continue
            for species in self.species:
                breeders = cell.cell_mates(species, breeders_only=True)
                n_breeders = len(breeders)
                for parent in breeders:
                    chance = species.birth_chance(parent, n_breeders)
                    if self.rng.random() >= chance:
                        continue
                    child = parent.breed(self.next_id)
                    if child is None:
                        continue
                    self.next_id += 1
                    self.animals[child.animal_id] = child
                    births += 1
                    self._log(
                        self.verbose_reproduction,
                        f"[REPRODUCTION] {species.name}#{parent.animal_id} -> #{child.animal_id} "
                        f"at {(cell.x, cell.y)}",
                        "green",
                    )
        return births

    def _process_feeding(self) -> int:
        by_fitness = sorted(self.animals.values(), key=lambda a: a.fitness, reverse=True)
        feeders = [a for a in by_fitness if not a.species.predator] + [a for a in by_fitness if a.species.predator]
        eaten = 0
        for animal in feeders:
            if not animal.alive:
                continue
            consumed = animal.feed(self.rng)
            if not animal.species.predator:
                continue
            for prey in consumed:
                self._remove_animal(prey)
                eaten += 1
                self._log(
                    self.verbose_engagement,
                    f"[ENGAGE] {animal.species.name}#{animal.animal_id} ate {prey.species.name}#{prey.animal_id} "
                    f"at {(animal.cell.x, animal.cell.y)}",
                    "white",
                )
        return eaten

    def _remove_animal(self, animal: Animal) -> None:
        animal.leave_cell()
        animal.alive = False
        self.animals.pop(animal.animal_id, None)

    # ------------------------------------------------------------------
    # run loop
    # ------------------------------------------------------------------

    def run(
        self, year_begin: Optional[int] = None, year_end: Optional[int] = None, reporter=None
    ) -> Dict[str, List[float]]:
        """
        Step from `year_begin` (default: the current year) through `year_end`
        (inclusive).

        `reporter`, if given, is told about the initial state (`start`), every
        finished year (`year_done`) and the end of the run (`close`).
        """
        if year_begin is not None:
            self.year = year_begin
        year_end = self.year_end if year_end is None else year_end
        history: Dict[str, List[float]] = {
            "year": [],
            "prey_count": [],
            "predator_count": [],
            "food_mean": [],
            "births": [],
            "deaths": [],
            "eaten": [],
        }
        if reporter is not None:
            reporter.start(self)
        step_idx = 0
        try:
            while self.year <= year_end:
                events = self.step()
                counts = self.population_counts()
                food_mean = self.food_mean()
                history["year"].append(self.year)
                history["prey_count"].append(counts["prey"])
                history["predator_count"].append(counts["predator"])
                history["food_mean"].append(food_mean)
                for key in ("births", "deaths", "eaten"):
                    history[key].append(events[key])
                if self.log_every > 0 and (step_idx % self.log_every == 0 or self.year > year_end):
                    print(
                        f"year={self.year:5d} prey={counts['prey']:7d} pred={counts['predator']:7d} "
                        f"total={counts['prey'] + counts['predator']:7d} food={food_mean:8.2f}"
                    )
                if reporter is not None:
                    reporter.year_done(self)
                step_idx += 1
        finally:
            if reporter is not None:
                reporter.close()
        return history

    # ------------------------------------------------------------------
    # read-only queries
    # ------------------------------------------------------------------

    def cells(self, live_only: bool = False) -> List[Cell]:
        return self.grid.live_cells if live_only else self.grid.all_cells

    def population_counts(self) -> Dict[str, int]:
        predators = sum(1 for a in self.animals.values() if a.species.predator)
        return {"prey": len(self.animals) - predators, "predator": predators}

    def counts_by_terrain(self) -> Dict[str, Dict[str, int]]:
        counts: Dict[str, Dict[str, int]] = {}
        for animal in self.animals.values():
            per_terrain = counts.setdefault(animal.cell.name, {"prey": 0, "predator": 0})
            per_terrain["predator" if animal.species.predator else "prey"] += 1
        return counts

    def food_mean(self) -> float:
        live = self.grid.live_cells
        if not live:
            return 0.0
        return float(np.mean([cell.food for cell in live]))

    def get_state_snapshot(self) -> Dict[str, object]:
        """Per-cell food and occupants (species, age, weight), in reading order."""
        cells = []
        for cell in self.grid.all_cells:
            occupants = sorted((a.species.name, a.age, a.weight) for a in cell.occupants.values())
            cells.append({"x": cell.x, "y": cell.y, "terrain": cell.name, "food": cell.food, "animals": occupants})
        return {
            "year": self.year,
            "n_animals": len(self.animals),
            "population": self.population_counts(),
            "cells": cells,
        }

    # ------------------------------------------------------------------
    # logging
    # ------------------------------------------------------------------

    def _log(self, verbose: bool, message: str, color: str = None):
        """
        Print a boxed message when debug_mode and the category flag are both on.

        Args:
            verbose (bool): Category flag (verbose_death, verbose_movement, ...).
            message (str): Message text (can be multi-line).
            color (str, optional): One of red, green, yellow, blue, white.
        """
        if not self.debug_mode or not verbose:
            return

        colors = {
            "red": "\033[91m",
            "green": "\033[92m",
            "yellow": "\033[93m",
            "blue": "\033[94m",
            "white": "\033[97m",
            "reset": "\033[0m",
        }

        prefix = colors.get(color, "")
        suffix = colors["reset"] if color else ""

        lines = message.strip().split("\n")
        max_width = max(len(line) for line in lines)
        border = "─" * (max_width + 2)

        print(f"┌{border}┐")
        for line in lines:
            print(f"│ {prefix}{line.ljust(max_width)}{suffix} │")
        print(f"└{border}┘")
