"""
Creature class for Neurogym.

Each creature has:
  - (x, y) position and (vx, vy) velocity in the arena
  - exactly one NeuralNetwork brain (never shared)
  - State: energy, fitness, age, alive

Every simulation step the creature:
  1. Gathers sensor readings through its species behaviour
  2. Runs its neural network
  3. Applies the outputs as movement
  4. Pays metabolism, collects rewards, reproduces or dies on energy

What a species senses and how it moves is a pluggable Behaviour, so the
brain only ever sees an input vector and returns an output vector.
"""

import numpy as np

from genome import brain_to_color
from config import (
    INITIAL_ENERGY, ENERGY_TO_REPRODUCE, REPRODUCTION_ENERGY_COST,
    BASE_METABOLISM, MOVE_COST, MOVE_FORCE, MAX_SPEED,
    FOOD_DETECTION_RADIUS,
)


# ──────────────────────────────────────────────────────────────────────────────
# Behaviours
# ──────────────────────────────────────────────────────────────────────────────

class Behaviour:
    """Maps arena state to brain inputs and brain outputs to movement."""

    n_inputs  = 0
    n_outputs = 0

    def sense(self, creature, world) -> np.ndarray:
        raise NotImplementedError

    def act(self, creature, outputs, world, dt: float):
        raise NotImplementedError

    def reward(self, creature, world, dt: float):
        pass


class ForagerBehaviour(Behaviour):
    """
    Swims toward food.

    Inputs (8): food dir x, food dir y, food proximity, velocity x,
                velocity y, wall proximity x, wall proximity y, constant
    Outputs (2): thrust x, thrust y
    """

    n_inputs  = 8
    n_outputs = 2

    def sense(self, creature, world) -> np.ndarray:
        x, y = creature.position[:2]
        inputs = np.zeros(self.n_inputs, dtype=np.float64)
        hit = world.nearest_food(x, y, FOOD_DETECTION_RADIUS)
        if hit is not None:
            _, dx, dy, dist = hit
            if dist > 0:
                inputs[0] = dx / dist
                inputs[1] = dy / dist
            inputs[2] = 1.0 - dist / FOOD_DETECTION_RADIUS
        inputs[3] = creature.velocity[0] / MAX_SPEED
        inputs[4] = creature.velocity[1] / MAX_SPEED
        inputs[5], inputs[6] = world.wall_proximity(x, y)
        inputs[7] = 1.0
        return inputs

    def act(self, creature, outputs, world, dt: float):
        vx, vy = creature.velocity
        creature.velocity = (vx + float(outputs[0]) * MOVE_FORCE * dt,
                             vy + float(outputs[1]) * MOVE_FORCE * dt)

    def reward(self, creature, world, dt: float):
        x, y = creature.position[:2]
        hit = world.nearest_food(x, y, FOOD_DETECTION_RADIUS)
        if hit is not None:
            dist = hit[3]
            if dist < creature.memory.get("last_food_distance", float("inf")):
                creature.fitness += 0.01
            creature.memory["last_food_distance"] = dist
        else:
            creature.memory["last_food_distance"] = float("inf")

        gained = world.try_eat(x, y)
        if gained:
            creature.energy  += gained
            creature.fitness += 30.0


class DrifterBehaviour(Behaviour):
    """
    Rewarded for distance travelled east of where it was spawned.

    Inputs (4): position x, position y, velocity x, velocity y
    Outputs (2): velocity x, velocity y
    """

    n_inputs  = 4
    n_outputs = 2

    def sense(self, creature, world) -> np.ndarray:
        x, y = creature.position[:2]
        creature.memory.setdefault("start_x", x)
        return np.array([
            x / world.width,
            y / world.height,
            creature.velocity[0] / MAX_SPEED,
            creature.velocity[1] / MAX_SPEED,
        ])

    def act(self, creature, outputs, world, dt: float):
        creature.velocity = (float(outputs[0]) * MAX_SPEED,
                             float(outputs[1]) * MAX_SPEED)

    def reward(self, creature, world, dt: float):
        creature.fitness = creature.position[0] - creature.memory["start_x"]
        creature.energy += world.try_eat(*creature.position[:2])


BEHAVIOURS = {
    "forager": ForagerBehaviour,
    "drifter": DrifterBehaviour,
}


def get_behaviour(name: str) -> Behaviour:
    try:
        return BEHAVIOURS[name]()
    except KeyError:
        raise KeyError(f"unknown behaviour {name!r}; choose from {sorted(BEHAVIOURS)}")


# ──────────────────────────────────────────────────────────────────────────────
# Creature
# ──────────────────────────────────────────────────────────────────────────────

class Creature:
    """
    A single agent: one brain, plus the running energy and fitness the
    generation controller reads.
    """
    __slots__ = (
        "species_name", "brain", "behaviour", "position", "velocity",
        "energy", "fitness", "age", "alive", "memory",
        "energy_to_reproduce", "reproduction_energy_cost", "_color",
    )

    def __init__(self, species_name: str, brain, position=(0.0, 0.0),
                 velocity=(0.0, 0.0), behaviour: Behaviour = None,
                 energy: float = INITIAL_ENERGY,
                 energy_to_reproduce: float = ENERGY_TO_REPRODUCE,
                 reproduction_energy_cost: float = REPRODUCTION_ENERGY_COST):
        self.species_name = species_name
        self.brain     = brain
        self.behaviour = behaviour
        self.position  = (float(position[0]), float(position[1]))
        self.velocity  = (float(velocity[0]), float(velocity[1]))
        self.energy    = energy
        self.fitness   = 0.0
        self.age       = 0.0          # seconds lived
        self.alive     = True
        self.memory    = {}           # per-creature scratch space for behaviours
        self.energy_to_reproduce      = energy_to_reproduce
        self.reproduction_energy_cost = reproduction_energy_cost
        self._color    = None

    @classmethod
    def spawn(cls, config, position, brain) -> "Creature":
        """Default spawner used by the generation controller."""
        return cls(
            config.species_name, brain, position,
            behaviour=get_behaviour(config.behaviour),
            energy_to_reproduce=config.energy_to_reproduce,
            reproduction_energy_cost=config.reproduction_energy_cost,
        )

    @property
    def color(self) -> tuple:
        if self._color is None:
            self._color = brain_to_color(self.brain.get_data())
        return self._color

    # ──────────────────────────────────────────────────────────────────────────

    def step(self, world, dt: float, on_born=None):
        """Execute one simulation step: sense → think → act."""
        if not self.alive:
            return

        self.age += dt
        inputs  = self.behaviour.sense(self, world)
        outputs = self.brain.feed_forward(inputs)
        self.behaviour.act(self, outputs, world, dt)
        world.move_creature(self, dt)

        speed = float(np.hypot(*self.velocity))
        self.energy -= (BASE_METABOLISM + speed * MOVE_COST) * dt
        self.behaviour.reward(self, world, dt)

        if self.energy >= self.energy_to_reproduce:
            self.energy -= self.reproduction_energy_cost
            if on_born is not None:
                on_born(self)
        if self.energy <= 0:
            self.destroy()

    def destroy(self):
        """Mark as gone; the population purges destroyed creatures."""
        self.alive = False

    def __repr__(self):
        x, y = self.position
        return (f"Creature({self.species_name!r}, pos=({x:.1f}, {y:.1f}), "
                f"energy={self.energy:.1f}, fitness={self.fitness:.2f}, "
                f"alive={self.alive})")
