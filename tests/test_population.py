import pytest

from creature import Creature
from neural_network import NeuralNetwork
from population import Population
from species import SpeciesConfiguration


@pytest.fixture
def pop(rng):
    p = Population(SpeciesConfiguration("fish", [8, 2]))
    for f in (4.0, 1.0, 7.0):
        c = Creature("fish", NeuralNetwork([3, 2], rng))
        c.fitness = f
        p.add(c)
    return p


def test_purge_drops_destroyed(pop):
    pop.members[1].destroy()
    assert pop.purge() == 1
    assert len(pop) == 2
    assert pop.purge() == 0


def test_clear_destroys_members(pop):
    members = list(pop)
    pop.clear()
    assert len(pop) == 0
    assert not any(c.alive for c in members)


def test_fitness_stats(pop):
    pop.members[2].destroy()
    assert pop.fitness_stats() == {"count": 2, "best": 4.0, "mean": 2.5, "worst": 1.0}
    pop.clear()
    assert pop.fitness_stats()["count"] == 0


def test_champion_only_replaced_by_strictly_better(pop, rng):
    first, other = pop.members[0].brain, NeuralNetwork([3, 2], rng)
    assert pop.record_champion(5.0, first)
    assert not pop.record_champion(5.0, other)
    assert not pop.record_champion(-1.0, other)
    assert pop.champion.to_dict() == first.get_data().to_dict()
    assert pop.record_champion(5.5, other)
    assert pop.best_fitness == 5.5


def test_champion_is_a_copy(pop):
    brain = pop.members[0].brain
    pop.record_champion(1.0, brain)
    before = pop.champion.to_dict()
    brain.biases += 1.0
    assert pop.champion.to_dict() == before
