"""
Per-species population bookkeeping for Neurogym.

A Population holds the live creatures of one species and the best
fitness ever recorded for it, together with that champion's brain.
Creatures can be destroyed from outside (starvation, the arena); the
population tolerates stale entries until purge() drops them.
"""

import numpy as np

from species import SpeciesConfiguration


class Population:

    def __init__(self, config: SpeciesConfiguration):
        self.config       = config
        self.members      = []
        self.best_fitness = None     # unset until the first champion
        self.champion     = None     # NeuralNetworkData of the champion

    @property
    def species_name(self) -> str:
        return self.config.species_name

    def __len__(self):
        return len(self.members)

    def __iter__(self):
        return iter(self.members)

    def add(self, creature):
        self.members.append(creature)

    def alive(self) -> list:
        return [c for c in self.members if c is not None and c.alive]

    def purge(self) -> int:
        """Drop destroyed members; returns how many were removed."""
        before = len(self.members)
        self.members = self.alive()
        return before - len(self.members)

    def clear(self):
        """Destroy every member and empty the list."""
        for c in self.members:
            if c is not None:
                c.destroy()
        self.members = []

    def record_champion(self, fitness: float, brain) -> bool:
        """
        Keep fitness/brain as the species champion if it strictly beats
        the recorded best. Returns True when the record changed.
        """
        if self.best_fitness is not None and not fitness > self.best_fitness:
            return False
        self.best_fitness = float(fitness)
        self.champion     = brain.get_data()
        return True

    def fitness_stats(self) -> dict:
        fitness = np.array([c.fitness for c in self.alive()], dtype=np.float64)
        if fitness.size == 0:
            return {"count": 0, "best": 0.0, "mean": 0.0, "worst": 0.0}
        return {
            "count": int(fitness.size),
            "best":  float(fitness.max()),
            "mean":  float(fitness.mean()),
            "worst": float(fitness.min()),
        }
