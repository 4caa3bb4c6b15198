"""
Simulation Engine for Neurogym.

Drives the arena and the generation controller in lock-step:
  each step:
    1. Every live creature senses, thinks and acts (random order)
    2. The controller ticks – gym generations roll over on its timer,
       ecosystem births are spawned from the queued events
"""

import numpy as np

from world import World
from creature import Creature
from controller import GenerationController, SimulationMode
from storage import MemoryStore
from config import (
    WORLD_WIDTH, WORLD_HEIGHT, SIM_DT, GENERATION_TIME,
    GLOBAL_MUTATION_MULTIPLIER, SELECTION_METHOD, DEFAULT_WORLD,
)


class Simulation:
    """
    Headless simulation loop.
    """

    def __init__(
        self,
        species_db,
        species_names:    list = None,   # None → every species in the database
        mode:             str  = "gym",
        store                  = None,
        seed:             int  = None,
        world_width:      float = WORLD_WIDTH,
        world_height:     float = WORLD_HEIGHT,
        generation_time:  float = GENERATION_TIME,
        dt:               float = SIM_DT,
        population_override: int = 0,
        mutation_multiplier: float = GLOBAL_MUTATION_MULTIPLIER,
        selection_method: str  = SELECTION_METHOD,
        verbose:          bool = True,
        on_step_callback  = None,    # called every sim step (for live viz)
        on_gen_callback   = None,    # called at end of each generation
    ):
        self.species_db    = species_db
        self.species_names = list(species_names) if species_names else species_db.names()
        self.world         = World(world_width, world_height, seed)
        self.rng           = self.world.rng
        self.dt            = dt
        self.store         = store if store is not None else MemoryStore(DEFAULT_WORLD)
        self.on_step_callback = on_step_callback
        self.on_gen_callback  = on_gen_callback
        self.steps         = 0

        self.controller = GenerationController(
            species_db,
            store              = self.store,
            spawn_point        = self.world.get_spawn_point,
            spawner            = self._spawn_creature,
            mode               = SimulationMode(mode),
            generation_time    = generation_time,
            population_override = population_override,
            global_mutation_multiplier = mutation_multiplier,
            selection_method   = selection_method,
            rng                = self.rng,
            verbose            = verbose,
            on_generation      = self._on_generation,
        )

    # ──────────────────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self.controller.current_generation

    @property
    def stats(self) -> list:
        return self.controller.stats

    def creatures(self) -> list:
        return [c for pop in self.controller.populations.values() for c in pop.alive()]

    def start(self):
        self.world.reset()
        self.controller.configure_and_start(self.species_names)

    def step(self):
        """One physics step for every creature, then one controller tick."""
        creatures = self.creatures()
        order = self.rng.permutation(len(creatures))
        for idx in order:
            c = creatures[idx]
            if c.alive:
                c.step(self.world, self.dt, on_born=self.controller.notify_born)

        self.controller.tick(self.dt)
        self.steps += 1
        if self.on_step_callback:
            self.on_step_callback(self.steps, self.world, creatures)

    def run(self, max_generations: int = None, max_steps: int = None,
            stop_event=None):
        """
        Step until max_generations gym generations have been evaluated,
        max_steps steps have run, or stop_event is set.
        """
        if max_generations is None and max_steps is None:
            raise ValueError("run() needs max_generations or max_steps")
        if self.controller.current_generation == 0:
            self.start()

        first_gen = self.controller.current_generation
        while True:
            if stop_event is not None and stop_event.is_set():
                break
            if max_steps is not None and self.steps >= max_steps:
                break
            if (max_generations is not None
                    and self.controller.current_generation - first_gen >= max_generations):
                break
            if not self.creatures() and self.controller.mode is SimulationMode.ECOSYSTEM:
                if self.controller.verbose:
                    print("  !! Extinction event – all creatures died. Stopping.")
                break
            self.step()

    def save(self, world_name: str):
        self.store.save_world(world_name, self.controller.pack_state())

    def load(self, world_name: str):
        state = self.store.load_world(world_name)
        self.world.reset()
        self.controller.load_state(state)

    # ──────────────────────────────────────────────────────────────────────────

    def _spawn_creature(self, config, position, brain):
        position = self.world.clamp(*position[:2])
        return Creature.spawn(config, position, brain)

    def _on_generation(self, generation: int, stats: list):
        self.world.reset()
        if self.on_gen_callback:
            self.on_gen_callback(generation, stats, self.world, self.creatures())
