"""
Fitness ranking, parent selection and breeding for Neurogym.

Building the next generation of one species:
  1. Elites     – exact clones of the top-ranked survivors
  2. Immigrants – fresh random brains with the species topology
  3. Children   – crossover of two selected parents, then mutation
"""

import numpy as np

from neural_network import NeuralNetwork
from config import ELITE_RATIO, IMMIGRANT_RATIO, SELECTION_METHOD


# ──────────────────────────────────────────────────────────────────────────────
# Quotas
# ──────────────────────────────────────────────────────────────────────────────

def elite_count(target: int, ratio: float = ELITE_RATIO) -> int:
    return max(1, int(target * ratio))


def immigrant_count(target: int, ratio: float = IMMIGRANT_RATIO) -> int:
    return max(1, int(target * ratio))


# ──────────────────────────────────────────────────────────────────────────────
# Ranking & parent selection
# ──────────────────────────────────────────────────────────────────────────────

def rank(creatures: list) -> list:
    """Best first; equal fitness keeps the original order (stable sort)."""
    return sorted(creatures, key=lambda c: c.fitness, reverse=True)


def total_fitness(creatures: list) -> float:
    return float(sum(c.fitness for c in creatures))


def select_parent(ranked: list, total: float, rng):
    """
    Roulette-wheel selection over fitness. When total fitness is not
    positive every candidate gets an equal chance.
    """
    if total <= 0:
        return ranked[int(rng.integers(0, len(ranked)))]

    draw = rng.uniform(0.0, total)
    running = 0.0
    for candidate in ranked:
        running += candidate.fitness
        if running >= draw:
            return candidate
    # floating point fell short of the draw
    return ranked[0]


def select_rank_parent(ranked: list, rng):
    """Linear rank selection: the i-th best gets weight n − i."""
    n = len(ranked)
    weights = np.arange(n, 0, -1, dtype=np.float64)
    idx = int(rng.choice(n, p=weights / weights.sum()))
    return ranked[idx]


# ──────────────────────────────────────────────────────────────────────────────
# Breeding
# ──────────────────────────────────────────────────────────────────────────────

def breed_next_generation(ranked: list, config, target: int,
                          mutation_multiplier: float = 1.0, rng=None,
                          method: str = SELECTION_METHOD,
                          elite_ratio: float = ELITE_RATIO,
                          immigrant_ratio: float = IMMIGRANT_RATIO) -> list:
    """
    Produce exactly `target` brains from survivors ranked best first.
    Returns [] when there are no survivors (the species went extinct).
    """
    if not ranked:
        return []
    if rng is None:
        rng = np.random.default_rng()
    if method not in ("fitness", "rank"):
        raise ValueError(f"unknown selection method {method!r}")

    brains = []
    for survivor in ranked[:elite_count(target, elite_ratio)]:
        brains.append(survivor.brain.clone())

    for _ in range(immigrant_count(target, immigrant_ratio)):
        brains.append(NeuralNetwork(config.network_layers, rng))

    total = total_fitness(ranked)
    rate  = config.base_mutation_rate * mutation_multiplier
    while len(brains) < target:
        if method == "rank":
            pa = select_rank_parent(ranked, rng)
            pb = select_rank_parent(ranked, rng)
        else:
            pa = select_parent(ranked, total, rng)
            pb = select_parent(ranked, total, rng)
        child = NeuralNetwork.crossover(pa.brain, pb.brain, rng)
        child.mutate(rate, config.base_mutation_strength, rng)
        brains.append(child)

    return brains[:target]
