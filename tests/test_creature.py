import numpy as np
import pytest

from config import (FOOD_ENERGY, INITIAL_ENERGY, WORLD_WIDTH, WORLD_HEIGHT,
                    MAX_SPEED)
from creature import (Creature, ForagerBehaviour, DrifterBehaviour,
                      get_behaviour)
from neural_network import NeuralNetwork, TopologyError
from species import SpeciesConfiguration
from world import World


@pytest.fixture
def world():
    return World(seed=3, food_count=0)


def forager(world, rng, position=(50.0, 30.0), **kwargs):
    return Creature("fish", NeuralNetwork([8, 6, 2], rng), position,
                    behaviour=ForagerBehaviour(), **kwargs)


def test_spawn_uses_species_settings(rng):
    config = SpeciesConfiguration("jumper", [4, 3, 2], behaviour="drifter",
                                  energy_to_reproduce=120.0)
    c = Creature.spawn(config, (1.0, 2.0), NeuralNetwork([4, 3, 2], rng))
    assert isinstance(c.behaviour, DrifterBehaviour)
    assert c.energy_to_reproduce == 120.0
    assert c.energy == INITIAL_ENERGY
    assert c.fitness == 0.0
    assert c.position == (1.0, 2.0)


def test_unknown_behaviour():
    with pytest.raises(KeyError):
        get_behaviour("teleporter")


def test_step_drains_energy(world, rng):
    c = forager(world, rng)
    c.step(world, 0.1)
    assert c.energy < INITIAL_ENERGY
    assert c.age == pytest.approx(0.1)


def test_starvation_destroys(world, rng):
    c = forager(world, rng, energy=0.01)
    c.step(world, 0.1)
    assert not c.alive
    energy = c.energy
    c.step(world, 0.1)
    assert c.energy == energy


def test_reproduction_reports_birth(world, rng):
    born = []
    c = forager(world, rng, energy=200.0)
    c.step(world, 0.01, on_born=born.append)
    assert born == [c]
    assert c.energy < 200.0 - c.reproduction_energy_cost + 1e-6


def test_eating_rewards_forager(rng):
    world = World(seed=1, food_count=0)
    world.food = np.array([[50.0, 30.0]])
    world.food_count = 1
    c = forager(world, rng)
    c.step(world, 0.001)
    assert c.fitness >= 30.0
    assert c.energy > INITIAL_ENERGY + FOOD_ENERGY - 1.0
    assert world.meals_eaten == 1
    assert len(world.food) == 1    # replaced elsewhere


def test_forager_inputs(rng):
    world = World(seed=1, food_count=0)
    world.food = np.array([[53.0, 34.0]])
    c = forager(world, rng)
    inputs = ForagerBehaviour().sense(c, world)
    assert inputs.shape == (8,)
    assert inputs[0] == pytest.approx(0.6)
    assert inputs[1] == pytest.approx(0.8)
    assert inputs[7] == 1.0


def test_drifter_fitness_is_distance_east(world, rng):
    c = Creature("d", NeuralNetwork([4, 3, 2], rng), (10.0, 10.0),
                 behaviour=DrifterBehaviour())
    c.brain.weights[-1][:] = 0.0
    c.brain.biases[-2:] = [5.0, 0.0]    # saturate towards +x
    for _ in range(10):
        c.step(world, 0.1)
    assert c.position[0] > 10.0
    assert c.fitness == pytest.approx(c.position[0] - 10.0)


def test_sensor_wiring_mismatch_is_an_error(world, rng):
    c = Creature("fish", NeuralNetwork([5, 2], rng), (1.0, 1.0),
                 behaviour=ForagerBehaviour())
    with pytest.raises(TopologyError):
        c.step(world, 0.1)


def test_world_clamps_and_stops(rng):
    world = World(seed=1, food_count=0)
    c = Creature("d", NeuralNetwork([4, 2], rng), (WORLD_WIDTH - 0.1, 5.0),
                 velocity=(MAX_SPEED, 0.0))
    world.move_creature(c, 1.0)
    assert c.position[0] == WORLD_WIDTH
    assert c.velocity[0] == 0.0


def test_spawn_points_inside_arena():
    world = World(seed=2)
    for _ in range(100):
        x, y = world.get_spawn_point()
        assert 0 <= x <= WORLD_WIDTH and 0 <= y <= WORLD_HEIGHT


def test_color_comes_from_brain(rng):
    brain = NeuralNetwork([3, 2], rng)
    a = Creature("x", brain)
    b = Creature("x", brain.clone())
    assert a.color == b.color
