from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from biosim.ecology.grid import Cell
    from biosim.ecology.species import Species


class Animal:
    """
    One individual. Its cell back-reference and the cell's occupant table are
    only changed together, through move_to() and leave_cell().
    """

    def __init__(self, animal_id: int, species: "Species", age: int = 0, weight: Optional[float] = None):
        self.animal_id = animal_id
        self.species = species
        self.age = age
        self.weight = species.birthweight if weight is None else weight
        self.cell: Optional["Cell"] = None
        self.alive = True
        self._fitness: Optional[float] = None

    def __repr__(self):
        where = None if self.cell is None else (self.cell.x, self.cell.y)
        return f"Animal({self.animal_id}, {self.species.name!r}, age={self.age}, weight={self.weight:.3f}, cell={where})"

    @property
    def fitness(self) -> float:
        if self._fitness is None:
            self._fitness = self.species.fitness(self.weight, self.age)
        return self._fitness

    def adjust(self, age: int, weight: float) -> None:
        self.age = age
        self.weight = weight
        self._fitness = None

    def fatten(self, delta_weight: float) -> None:
        self.weight += delta_weight
        self._fitness = None

    def move_to(self, destination: Optional["Cell"]) -> bool:
        if destination is None or not destination.add_animal(self):
            return False
        if self.cell is not None and self.cell is not destination:
            self.cell.remove_animal(self)
        self.cell = destination
        return True

    def leave_cell(self) -> None:
        if self.cell is not None:
            self.cell.remove_animal(self)
        self.cell = None

    def age_one_year(self) -> None:
        self.age += 1
        self.weight -= self.species.weight_loss(self.weight)
        self._fitness = None

    def die(self, rng) -> bool:
        """Death check; a dead animal is taken out of its cell."""
        if self.weight == 0 or self.species.dies(self.fitness, rng):
            self.leave_cell()
            self.alive = False
            return True
        return False

    def wander(self, rng) -> bool:
        """Try to move to a random neighbour. False if it stayed (no urge, or the target refused it)."""
        if not self.species.will_wander(self.fitness, rng):
            return False
        origin = self.cell
        destination = origin.neighbours[int(rng.integers(4))]
        return self.move_to(destination) and destination is not origin

    def breed(self, child_id: int) -> Optional["Animal"]:
        """Pay the birth loss and place a newborn in this cell, or return None."""
        if not self.age or not self.species.can_breed(self.weight):
            return None
        self.weight -= self.species.birth_loss
        self._fitness = None
        child = Animal(child_id, self.species)
        child.move_to(self.cell)
        return child

    def eat(self, prey: "Animal", rng) -> bool:
        chance = self.species.catch_chance(self.fitness, prey.fitness)
        return rng.random() < chance

    def feed(self, rng) -> List["Animal"]:
        return self.species.feed(self, rng)
