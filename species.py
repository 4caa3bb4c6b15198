"""
Species configuration for Neurogym.

A species fixes the brain topology, the population size and the base
mutation settings of every creature spawned under its name. Species
are read-only while a simulation runs.
"""

import json

from config import (DEFAULT_SPECIES, ENERGY_TO_REPRODUCE,
                    REPRODUCTION_ENERGY_COST)
from creature import BEHAVIOURS
from genome import GenomeError, check_layers


class SpeciesConfigError(ValueError):
    """A species record is missing fields or holds out-of-range values."""


# camelCase keys accepted in species files (as written by the web client)
_KEY_ALIASES = {
    "speciesName":            "species_name",
    "networkLayers":          "network_layers",
    "initialPopulation":      "initial_population",
    "baseMutationRate":       "base_mutation_rate",
    "baseMutationStrength":   "base_mutation_strength",
    "energyToReproduce":      "energy_to_reproduce",
    "reproductionEnergyCost": "reproduction_energy_cost",
}


class SpeciesConfiguration:

    def __init__(self, species_name: str, network_layers,
                 initial_population: int = 10,
                 base_mutation_rate: float = 0.1,
                 base_mutation_strength: float = 0.1,
                 behaviour: str = "forager",
                 energy_to_reproduce: float = ENERGY_TO_REPRODUCE,
                 reproduction_energy_cost: float = REPRODUCTION_ENERGY_COST):
        self.species_name            = species_name
        self.network_layers          = network_layers
        self.initial_population      = initial_population
        self.base_mutation_rate      = base_mutation_rate
        self.base_mutation_strength  = base_mutation_strength
        self.behaviour               = behaviour
        self.energy_to_reproduce     = energy_to_reproduce
        self.reproduction_energy_cost = reproduction_energy_cost
        self.validate()

    def validate(self):
        if not self.species_name or not isinstance(self.species_name, str):
            raise SpeciesConfigError("species_name must be a non-empty string")
        try:
            self.network_layers = list(check_layers(self.network_layers))
        except GenomeError as exc:
            raise SpeciesConfigError(f"{self.species_name}: {exc}") from exc
        self._check_behaviour()
        if int(self.initial_population) < 1:
            raise SpeciesConfigError(
                f"{self.species_name}: initial_population must be at least 1")
        self.initial_population = int(self.initial_population)
        for name in ("base_mutation_rate", "base_mutation_strength"):
            value = float(getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise SpeciesConfigError(
                    f"{self.species_name}: {name} must be within [0, 1], got {value}")
            setattr(self, name, value)
        return self

    def _check_behaviour(self):
        """The brain's input and output layers must fit the behaviour's wiring."""
        if not isinstance(self.behaviour, str) or self.behaviour not in BEHAVIOURS:
            raise SpeciesConfigError(
                f"{self.species_name}: unknown behaviour {self.behaviour!r}; "
                f"choose from {sorted(BEHAVIOURS)}")
        behaviour = BEHAVIOURS[self.behaviour]
        inputs, outputs = self.network_layers[0], self.network_layers[-1]
        if (inputs, outputs) != (behaviour.n_inputs, behaviour.n_outputs):
            raise SpeciesConfigError(
                f"{self.species_name}: behaviour {self.behaviour!r} needs "
                f"{behaviour.n_inputs} inputs and {behaviour.n_outputs} outputs, "
                f"got layers {self.network_layers}")

    @classmethod
    def from_dict(cls, d: dict) -> "SpeciesConfiguration":
        if not isinstance(d, dict):
            raise SpeciesConfigError(f"species record must be a mapping, got {d!r}")
        kwargs = {_KEY_ALIASES.get(k, k): v for k, v in d.items()}
        for required in ("species_name", "network_layers"):
            if required not in kwargs:
                raise SpeciesConfigError(f"species record is missing {required}")
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise SpeciesConfigError(f"bad species record: {exc}") from exc

    def to_dict(self) -> dict:
        return {
            "species_name":             self.species_name,
            "network_layers":           list(self.network_layers),
            "initial_population":       self.initial_population,
            "base_mutation_rate":       self.base_mutation_rate,
            "base_mutation_strength":   self.base_mutation_strength,
            "behaviour":                self.behaviour,
            "energy_to_reproduce":      self.energy_to_reproduce,
            "reproduction_energy_cost": self.reproduction_energy_cost,
        }

    def __repr__(self):
        return (f"SpeciesConfiguration({self.species_name!r}, "
                f"layers={self.network_layers}, pop={self.initial_population})")


class SpeciesDatabase:
    """Ordered name → SpeciesConfiguration lookup."""

    def __init__(self, species=()):
        self._species = {}
        for config in species:
            self.add(config)

    def add(self, config: SpeciesConfiguration):
        if config.species_name in self._species:
            raise SpeciesConfigError(f"duplicate species {config.species_name!r}")
        self._species[config.species_name] = config

    def __getitem__(self, name: str) -> SpeciesConfiguration:
        return self._species[name]

    def __contains__(self, name) -> bool:
        return name in self._species

    def __iter__(self):
        return iter(self._species.values())

    def __len__(self):
        return len(self._species)

    def names(self) -> list:
        return list(self._species)


def default_species() -> SpeciesDatabase:
    return SpeciesDatabase(SpeciesConfiguration.from_dict(d) for d in DEFAULT_SPECIES)


def load_species_file(path: str) -> SpeciesDatabase:
    """Read a JSON list of species records."""
    with open(path) as f:
        records = json.load(f)
    if isinstance(records, dict):
        records = records.get("species", [])
    return SpeciesDatabase(SpeciesConfiguration.from_dict(r) for r in records)
