"""
Species archetypes: physiology constants, the fitness curve and the
per-species behaviour (feeding, breeding, death and wandering chances).

A species is either a herbivore (food desire F) or a predator (DeltaPhiMax).
The variant is chosen once, in make_species(), and never changes.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Dict, List, Optional
import abc
import math

from biosim.ecology.errors import ConfigError

if TYPE_CHECKING:
    from biosim.ecology.animal import Animal


def logistic_term(x: float, x_half: float, phi: float, positive: bool) -> float:
    sign = 1.0 if positive else -1.0
    exponent = sign * phi * (x - x_half)
    # exp() overflows past ~709; the term is 0.0 there anyway
    if exponent > 700.0:
        return 0.0
    return 1.0 / (1.0 + math.exp(exponent))


# .par keyword -> SpeciesConfig field
PAR_KEYWORDS: Dict[str, str] = {
    "v_fod": "birthweight",
    "beta": "beta",
    "sigma": "sigma",
    "v_min": "min_weight",
    "a_halv": "age_half",
    "phi_alder": "phi_age",
    "v_halv_under": "weight_half_low",
    "phi_under": "phi_under",
    "v_halv_over": "weight_half_high",
    "phi_over": "phi_over",
    "mu": "mu",
    "gamma": "gamma",
    "zeta": "zeta",
    "omega": "omega",
    "F": "food_desire",
    "DeltaPhiMax": "delta_phi_max",
    "Navn": "name",
}

OPTIONAL_FIELDS = ("food_desire", "delta_phi_max", "name")


@dataclass
class SpeciesConfig:
    """All parameters of one species, validated as a whole."""

    birthweight: Optional[float] = None
    beta: Optional[float] = None
    sigma: Optional[float] = None
    min_weight: Optional[float] = None
    age_half: Optional[int] = None
    phi_age: Optional[float] = None
    weight_half_low: Optional[float] = None
    phi_under: Optional[float] = None
    weight_half_high: Optional[float] = None
    phi_over: Optional[float] = None
    mu: Optional[float] = None
    gamma: Optional[float] = None
    zeta: Optional[float] = None
    omega: Optional[float] = None
    food_desire: Optional[float] = None
    delta_phi_max: Optional[float] = None
    name: str = ""
    source: str = ""

    @classmethod
    def from_params(cls, params: Dict[str, object], source: str = "") -> "SpeciesConfig":
        """
        Build a config from .par keyword/value pairs (values may still be strings).
        Unknown keywords and unparsable numbers are collected into one ConfigError.
        """
        cfg = cls(source=source)
        problems = []
        for keyword, value in params.items():
            field_name = PAR_KEYWORDS.get(keyword)
            if field_name is None:
                problems.append(f"unknown parameter name {keyword}")
                continue
            if field_name == "name":
                cfg.name = str(value)
                continue
            try:
                if field_name == "age_half":
                    number = int(value)
                else:
                    number = float(value)
            except (TypeError, ValueError):
                problems.append(f"{keyword}: cannot read number from {value!r}")
                continue
            setattr(cfg, field_name, number)
        if problems:
            raise ConfigError(f"Species parameters in {source or '<config>'} are invalid:", problems)
        return cfg

    @property
    def is_predator(self) -> bool:
        # F wins when both are given; DeltaPhiMax is then ignored
        return self.food_desire is None and self.delta_phi_max is not None

    @property
    def ignores_delta_phi_max(self) -> bool:
        return self.food_desire is not None and self.delta_phi_max is not None

    def validate(self) -> None:
        problems: List[str] = []
        for f in fields(self):
            if f.name in OPTIONAL_FIELDS or f.name == "source":
                continue
            value = getattr(self, f.name)
            if value is None:
                problems.append(f"missing required parameter {f.name}")
            elif not math.isfinite(value):
                problems.append(f"{f.name} must be finite, got {value}")
        if self.food_desire is None and self.delta_phi_max is None:
            problems.append("neither F (herbivore) nor DeltaPhiMax (predator) given")
        if problems:
            raise ConfigError(f"Species in {self.source or '<config>'} not fully defined:", problems)

        if not 0.0 <= self.sigma <= 1.0:
            problems.append(f"sigma must be in [0, 1], got {self.sigma}")
        for name in ("birthweight", "beta", "min_weight", "mu", "gamma", "zeta", "omega"):
            if getattr(self, name) < 0.0:
                problems.append(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.food_desire is not None and not (math.isfinite(self.food_desire) and self.food_desire >= 0.0):
            problems.append(f"F must be >= 0, got {self.food_desire}")
        if self.is_predator and not (math.isfinite(self.delta_phi_max) and self.delta_phi_max > 0.0):
            problems.append(f"DeltaPhiMax must be > 0, got {self.delta_phi_max}")
        if problems:
            raise ConfigError(f"Species in {self.source or '<config>'} has invalid parameters:", problems)


class Species(abc.ABC):
    predator = False

    def __init__(self, config: SpeciesConfig):
        self.name = config.name or ("R" if self.predator else "B")
        self.birthweight = float(config.birthweight)
        self.beta = float(config.beta)
        self.sigma = float(config.sigma)
        self.min_weight = float(config.min_weight)
        self.age_half = int(config.age_half)
        self.phi_age = float(config.phi_age)
        self.weight_half_low = float(config.weight_half_low)
        self.phi_under = float(config.phi_under)
        self.weight_half_high = float(config.weight_half_high)
        self.phi_over = float(config.phi_over)
        self.mu = float(config.mu)
        self.gamma = float(config.gamma)
        self.zeta = float(config.zeta)
        self.omega = float(config.omega)

    def __setattr__(self, name, value):
        # constants are fixed once the concrete species has set them all
        if getattr(self, "_sealed", False):
            raise AttributeError(f"{type(self).__name__} {self.name!r} is read-only")
        super().__setattr__(name, value)

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"

    def fitness(self, weight: float, age: int) -> float:
        if weight < self.min_weight:
            return 0.0
        return (
            logistic_term(age, self.age_half, self.phi_age, True)
            * logistic_term(weight, self.weight_half_low, self.phi_under, False)
            * logistic_term(weight, self.weight_half_high, self.phi_over, True)
        )

    @property
    def birth_loss(self) -> float:
        return self.zeta * self.birthweight

    def can_breed(self, weight: float) -> bool:
        return weight >= self.min_weight + self.birth_loss

    def weight_loss(self, weight: float) -> float:
        """Yearly weight lost to ageing."""
        return self.sigma * weight

    def birth_chance(self, animal: "Animal", n_same_species: int) -> float:
        """
        Chance that `animal` breeds this year, given N breeders of its species
        in the cell (N includes the animal itself). Zero or negative for N <= 1.
        """
        return animal.fitness * self.gamma * (n_same_species - 1)

    def dies(self, phi: float, rng) -> bool:
        if phi <= 0.0:
            return True
        return rng.random() < self.omega * (1.0 - phi)

    def will_wander(self, phi: float, rng) -> bool:
        return rng.random() < self.mu * phi

    @abc.abstractmethod
    def feed(self, animal: "Animal", rng) -> List["Animal"]:
        """Feed `animal` in its current cell."""


class Herbivore(Species):
    predator = False

    def __init__(self, config: SpeciesConfig):
        super().__init__(config)
        self.food_desire = float(config.food_desire)
        self._sealed = True

    def feed(self, animal: "Animal", rng) -> List["Animal"]:
        """Graze up to F from the cell and fatten by beta * granted. Returns [animal]."""
        granted = animal.cell.graze(self.food_desire)
        animal.fatten(self.beta * granted)
        return [animal]


class Predator(Species):
    predator = True

    def __init__(self, config: SpeciesConfig):
        super().__init__(config)
        self.delta_phi_max = float(config.delta_phi_max)
        self._sealed = True

    def catch_chance(self, phi_predator: float, phi_prey: float) -> float:
        delta_phi = phi_predator - phi_prey
        if delta_phi <= 0.0:
            return 0.0
        if delta_phi < self.delta_phi_max:
            return delta_phi / self.delta_phi_max
        return 1.0

    def feed(self, animal: "Animal", rng) -> List["Animal"]:
        """
        Attempt to eat every cell-mate of another species with non-zero weight.
        Returns the consumed prey; the caller removes them from the world.
        """
        eaten = []
        for prey in animal.cell.animals():
            if prey.species is self or not prey.weight:
                continue
            if animal.eat(prey, rng):
                animal.fatten(self.beta * prey.weight)
                eaten.append(prey)
        return eaten


def make_species(config: SpeciesConfig) -> Species:
    config.validate()
    if config.food_desire is not None:
        return Herbivore(config)
    return Predator(config)
