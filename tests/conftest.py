import numpy as np
import pytest

from species import SpeciesConfiguration, SpeciesDatabase
from storage import MemoryStore


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def species_db():
    return SpeciesDatabase([
        SpeciesConfiguration("alpha", [8, 4, 2], initial_population=10,
                             base_mutation_rate=0.1, base_mutation_strength=0.1),
        SpeciesConfiguration("beta", [4, 3, 2], initial_population=5,
                             base_mutation_rate=0.2, base_mutation_strength=0.2,
                             behaviour="drifter"),
    ])


@pytest.fixture
def store():
    return MemoryStore("test-world")
