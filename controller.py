"""
Generation Controller for Neurogym.

Owns every species population and decides when and how brains are
replaced. Two modes:

  Gym        – timer driven. When generation_time elapses the whole
               population is ranked, the champion is persisted if it
               improved, and every species is rebred at once.
  Ecosystem  – event driven. Creatures that cross their energy
               threshold report a birth; the controller spawns a mutated
               clone next to the parent. Dead creatures are purged
               periodically.

Everything runs synchronously inside tick(); nothing here blocks.
"""

import time
from collections import deque
from enum import Enum

import numpy as np

from creature import Creature
from genome import GenomeError, brain_similarity
from neural_network import NeuralNetwork, TopologyError
from population import Population
from selection import rank, breed_next_generation
from storage import WorldState, CreatureRecord, StateLoadError
from config import (GENERATION_TIME, GLOBAL_MUTATION_MULTIPLIER,
                    POPULATION_CHECK_INTERVAL, SPAWN_OFFSET_RADIUS,
                    SELECTION_METHOD)


class SimulationMode(Enum):
    GYM       = "gym"
    ECOSYSTEM = "ecosystem"


class ControllerState(Enum):
    IDLE       = "idle"         # no active species
    RUNNING    = "running"      # timer accumulating / events flowing
    EVALUATING = "evaluating"   # building the next generation


class GenerationController:
    """
    Main population controller.
    """

    def __init__(
        self,
        species_db,
        store              = None,     # ChampionStore, or None to skip persistence
        spawn_point        = None,     # () -> (x, y)
        spawner            = None,     # (config, position, brain) -> creature
        mode: SimulationMode = SimulationMode.GYM,
        generation_time: float = GENERATION_TIME,
        population_override: int = 0,  # 0 means use each species' default
        global_mutation_multiplier: float = GLOBAL_MUTATION_MULTIPLIER,
        selection_method: str = SELECTION_METHOD,
        rng                = None,
        verbose: bool      = False,
        on_generation      = None,     # called with (generation, stats) after rebreeding
    ):
        self.species_db   = species_db
        self.store        = store
        self.spawn_point  = spawn_point or (lambda: (0.0, 0.0))
        self.spawner      = spawner or Creature.spawn
        self.mode         = SimulationMode(mode)
        self.generation_time     = generation_time
        self.population_override = population_override
        self.global_mutation_multiplier = global_mutation_multiplier
        self.selection_method    = selection_method
        self.rng          = rng if rng is not None else np.random.default_rng()
        # diversity sampling only; never advances self.rng
        self._stats_rng   = self.rng.spawn(1)[0]
        self.verbose      = verbose
        self.on_generation = on_generation

        self.populations  = {c.species_name: Population(c) for c in species_db}
        self.active_species_names = []
        self.current_generation   = 0
        self.generation_timer     = 0.0
        self.state        = ControllerState.IDLE
        self.stats        = []          # one dict per species per generation

        self._born_events = deque()
        self._purge_timer = 0.0

    # ──────────────────────────────────────────────────────────────────────────
    # Setup
    # ──────────────────────────────────────────────────────────────────────────

    def population_size(self, config) -> int:
        if self.population_override > 0:
            return self.population_override
        return config.initial_population

    def configure_and_start(self, species_names: list):
        """
        Clear everything and found a new population for each species, seeded
        from the stored champion when one exists (fresh random otherwise).
        Champions are all loaded before anything is cleared, so a corrupt
        record leaves the running simulation as it was.
        """
        unknown = [n for n in species_names if n not in self.populations]
        if unknown:
            raise KeyError(f"unknown species: {', '.join(unknown)}")

        seeds = []
        for name in species_names:
            config = self.species_db[name]
            seed_brain = NeuralNetwork(config.network_layers, self.rng)
            if self.store is not None:
                data = self.store.load_champion_data(name)
                if data is not None:
                    seed_brain.load_and_transfer_data(data)
                    self._log(f"Loaded champion brain for {name}.")
            seeds.append((config, seed_brain))

        self.clear_simulation()
        self.active_species_names = list(species_names)
        self.generation_timer = 0.0
        self.current_generation = 1

        for config, seed_brain in seeds:
            for i in range(self.population_size(config)):
                brain = seed_brain.clone()
                if i > 0:
                    brain.mutate(config.base_mutation_rate,
                                 config.base_mutation_strength, self.rng)
                self._spawn(config, self.spawn_point(), brain)

        self.state = (ControllerState.RUNNING if self.active_species_names
                      else ControllerState.IDLE)

    def _spawn(self, config, position, brain):
        creature = self.spawner(config, position, brain)
        self.populations[config.species_name].add(creature)
        return creature

    # ──────────────────────────────────────────────────────────────────────────
    # Time stepping
    # ──────────────────────────────────────────────────────────────────────────

    def tick(self, dt: float):
        """
        Advance controller time by dt. Returns the generation stats when a
        gym generation boundary was crossed, otherwise None.
        """
        if self.state is ControllerState.IDLE:
            return None

        if self.mode is SimulationMode.GYM:
            self.generation_timer += dt
            if self.generation_timer >= self.generation_time:
                stats = self.run_next_generation()
                self.generation_timer = 0.0
                return stats
            return None

        self.drain_born_events()
        self._purge_timer += dt
        if self._purge_timer >= POPULATION_CHECK_INTERVAL:
            for pop in self.populations.values():
                pop.purge()
            self._purge_timer = 0.0
        return None

    # ──────────────────────────────────────────────────────────────────────────
    # Gym mode
    # ──────────────────────────────────────────────────────────────────────────

    def run_next_generation(self) -> list:
        """
        Rank, record champions and breed every active species, then replace
        the whole population at once.
        """
        self.state = ControllerState.EVALUATING
        t0 = time.time()
        evaluated = self.current_generation
        self.current_generation += 1

        next_brains = {}
        gen_stats = []
        for name in self.active_species_names:
            pop = self.populations[name]
            pop.purge()
            if not pop.members:
                gen_stats.append(self._species_stats(evaluated, pop, []))
                continue

            ranked = rank(pop.members)
            best = ranked[0]
            if pop.record_champion(best.fitness, best.brain):
                if self.store is not None:
                    self.store.save_champion(name, best.brain)
                self._log(f"New champion for {name} with fitness {best.fitness:.2f}! "
                          f"Brain saved.")

            gen_stats.append(self._species_stats(evaluated, pop, ranked))
            next_brains[name] = breed_next_generation(
                ranked, pop.config, self.population_size(pop.config),
                self.global_mutation_multiplier, self.rng, self.selection_method)

        # Every species is bred before anything is torn down.
        self.clear_all_creatures()
        for name in self.active_species_names:
            config = self.species_db[name]
            for brain in next_brains.get(name, []):
                self._spawn(config, self.spawn_point(), brain)

        elapsed = round(time.time() - t0, 3)
        for s in gen_stats:
            s["elapsed_s"] = elapsed
        self.stats.extend(gen_stats)
        self.state = ControllerState.RUNNING

        self._print_stats(gen_stats)
        if self.on_generation:
            self.on_generation(evaluated, gen_stats)
        return gen_stats

    def clear_all_creatures(self):
        for pop in self.populations.values():
            pop.clear()

    # ──────────────────────────────────────────────────────────────────────────
    # Ecosystem mode
    # ──────────────────────────────────────────────────────────────────────────

    def notify_born(self, parent):
        """Queue a birth; handled on the next tick (ecosystem mode only)."""
        if self.mode is not SimulationMode.ECOSYSTEM:
            return
        self._born_events.append(parent)

    def drain_born_events(self) -> list:
        """Spawn a mutated clone next to each queued parent, in queue order."""
        children = []
        while self._born_events:
            parent = self._born_events.popleft()
            if self.mode is not SimulationMode.ECOSYSTEM:
                continue
            if parent.species_name not in self.populations:
                continue
            config = self.species_db[parent.species_name]

            brain = parent.brain.clone()
            brain.mutate(config.base_mutation_rate * self.global_mutation_multiplier,
                         config.base_mutation_strength, self.rng)

            angle  = self.rng.uniform(0.0, 2 * np.pi)
            radius = SPAWN_OFFSET_RADIUS * np.sqrt(self.rng.random())
            x, y = parent.position[:2]
            position = (x + radius * np.cos(angle), y + radius * np.sin(angle))
            children.append(self._spawn(config, position, brain))
        return children

    # ──────────────────────────────────────────────────────────────────────────
    # Save & load
    # ──────────────────────────────────────────────────────────────────────────

    def pack_state(self) -> WorldState:
        records = []
        for pop in self.populations.values():
            for c in pop.alive():
                x, y = c.position[:2]
                records.append(CreatureRecord(
                    c.species_name, (x, y, 0.0), c.velocity, c.brain.get_data()))
        return WorldState(self.active_species_names, self.current_generation, records)

    def load_state(self, state):
        """
        Rebuild the population from a saved state. Every record is checked
        before the current population is touched; records of species this
        controller does not know are skipped.
        """
        if isinstance(state, dict):
            state = WorldState.from_dict(state)

        rebuilt = []
        for record in state.creatures:
            if record.species_name not in self.populations:
                continue
            config = self.species_db[record.species_name]
            brain = NeuralNetwork(config.network_layers, self.rng)
            try:
                brain.load_and_transfer_data(record.brain_data)
            except (GenomeError, TopologyError) as exc:
                raise StateLoadError(
                    f"bad brain for {record.species_name}: {exc}") from exc
            rebuilt.append((config, record, brain))

        self.clear_simulation()
        self.active_species_names = [n for n in state.active_species_names
                                     if n in self.populations]
        self.current_generation = state.current_generation

        for config, record, brain in rebuilt:
            creature = self._spawn(config, record.position[:2], brain)
            creature.velocity = tuple(record.velocity)

        self.state = (ControllerState.RUNNING if self.active_species_names
                      else ControllerState.IDLE)

    def clear_simulation(self):
        for pop in self.populations.values():
            pop.clear()
            pop.best_fitness = None
            pop.champion = None
        self.active_species_names = []
        self.current_generation = 0
        self.generation_timer = 0.0
        self._purge_timer = 0.0
        self._born_events.clear()
        self.state = ControllerState.IDLE

    # ──────────────────────────────────────────────────────────────────────────
    # Stats
    # ──────────────────────────────────────────────────────────────────────────

    def _species_stats(self, generation: int, pop: Population, ranked: list) -> dict:
        summary = pop.fitness_stats()
        return {
            "generation": generation,
            "species":    pop.species_name,
            "population": summary["count"],
            "best":       summary["best"],
            "mean":       summary["mean"],
            "worst":      summary["worst"],
            "champion":   pop.best_fitness if pop.best_fitness is not None else 0.0,
            "diversity":  self._diversity(ranked),
            "extinct":    not ranked,
        }

    def _diversity(self, creatures: list, sample: int = 20) -> float:
        """
        Estimate brain diversity as average pairwise dissimilarity.
        Returns value 0 (identical) → 1 (maximally diverse).
        """
        if len(creatures) < 2:
            return 0.0
        sample_size = min(sample, len(creatures))
        idx = self._stats_rng.choice(len(creatures), sample_size, replace=False)
        sampled = [creatures[i].brain.get_data() for i in idx]
        total, count = 0.0, 0
        for i in range(len(sampled)):
            for j in range(i + 1, len(sampled)):
                total += 1.0 - brain_similarity(sampled[i], sampled[j])
                count += 1
        return total / count if count else 0.0

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def _print_stats(self, gen_stats: list):
        if not self.verbose:
            return
        for s in gen_stats:
            if s["extinct"]:
                print(f"Gen {s['generation']:>5}  |  {s['species']:<12} extinct")
                continue
            print(
                f"Gen {s['generation']:>5}  |  {s['species']:<12}"
                f"pop {s['population']:>4}  |  "
                f"best {s['best']:>9.2f}  mean {s['mean']:>9.2f}  |  "
                f"champion {s['champion']:>9.2f}  |  "
                f"diversity {s['diversity']:.3f}  |  "
                f"{s['elapsed_s']:.2f}s"
            )
