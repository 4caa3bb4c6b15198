"""
Neurogym – Main Entry Point
===========================

Usage examples:
  python main.py                              # gym mode, built-in species
  python main.py --mode ecosystem --steps 20000
  python main.py --species my_species.json    # species from a JSON file
  python main.py --only forager --pop 50      # one species, 50 per generation
  python main.py --world lab --save           # keep champions + final state in saves/lab
  python main.py --world lab --resume         # continue from the saved state
  python main.py --selection rank --seed 7
"""

import argparse
import os
import sys

from simulation  import Simulation
from species     import default_species, load_species_file
from storage     import JsonFileStore, MemoryStore, StateLoadError
from genome      import GenomeError
from visualizer  import (ensure_dirs, save_world_snapshot,
                          save_fitness_chart, save_neural_diagram,
                          append_csv)
from neural_network import NeuralNetwork
from config import (SAVE_DIR, SAVES_ROOT, DEFAULT_WORLD, SNAPSHOT_INTERVAL,
                    SAVE_NEURAL_SAMPLE, MAX_GENERATIONS, GENERATION_TIME,
                    SIM_DT, GLOBAL_MUTATION_MULTIPLIER, SELECTION_METHOD)


# ──────────────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Neurogym – neuroevolution gym and ecosystem")
    p.add_argument("--mode",       default="gym", choices=["gym", "ecosystem"],
                   help="Generational gym or continuous ecosystem")
    p.add_argument("--species",    default=None,
                   help="JSON file with species definitions")
    p.add_argument("--only",       nargs="+", default=None,
                   help="Species names to activate (default: all)")
    p.add_argument("--gens",       type=int,   default=MAX_GENERATIONS,
                   help="Gym mode: generations to run")
    p.add_argument("--steps",      type=int,   default=None,
                   help="Stop after this many simulation steps")
    p.add_argument("--gen_time",   type=float, default=GENERATION_TIME,
                   help="Gym mode: simulated seconds per generation")
    p.add_argument("--dt",         type=float, default=SIM_DT,
                   help="Simulated seconds per step")
    p.add_argument("--pop",        type=int,   default=0,
                   help="Population per species (0 = species default)")
    p.add_argument("--mutation",   type=float, default=GLOBAL_MUTATION_MULTIPLIER,
                   help="Global mutation-rate multiplier")
    p.add_argument("--selection",  default=SELECTION_METHOD, choices=["fitness", "rank"],
                   help="Parent selection: fitness-proportionate or rank based")
    p.add_argument("--seed",       type=int,   default=None,
                   help="Random seed for reproducibility")
    p.add_argument("--world",      default=DEFAULT_WORLD,
                   help="World name champions and saves are kept under")
    p.add_argument("--saves",      default=SAVES_ROOT,
                   help="Directory holding saved worlds")
    p.add_argument("--save",       action="store_true",
                   help="Persist champions and the final state to disk")
    p.add_argument("--resume",     action="store_true",
                   help="Load the saved state of --world before running")
    p.add_argument("--outdir",     default=SAVE_DIR,
                   help="Output directory for charts and logs")
    p.add_argument("--snapshot_interval", type=int, default=SNAPSHOT_INTERVAL,
                   help="Save an arena snapshot every N generations")
    p.add_argument("--quiet",      action="store_true",
                   help="Only print the summary")
    return p.parse_args(argv)


# ──────────────────────────────────────────────────────────────────────────────
# Callbacks
# ──────────────────────────────────────────────────────────────────────────────

class SimCallbacks:
    """Bundles the per-generation callbacks used by the simulation."""

    def __init__(self, outdir: str, snapshot_interval: int, store, verbose: bool):
        self.outdir            = outdir
        self.snapshot_interval = snapshot_interval
        self.store             = store
        self.verbose           = verbose
        self.all_stats         = []

    def on_generation(self, gen_idx, stats, world, creatures):
        self.all_stats.extend(stats)
        for s in stats:
            append_csv(s, self.outdir)

        if gen_idx % self.snapshot_interval == 0:
            path = save_world_snapshot(world, gen_idx, creatures, self.outdir)
            self._say(f"  → Snapshot: {path}")

            if SAVE_NEURAL_SAMPLE:
                for s in stats:
                    data = self.store.load_champion_data(s["species"])
                    if data is None:
                        continue
                    npath = save_neural_diagram(
                        NeuralNetwork.from_data(data), gen_idx,
                        f"{s['species']}_champion", self.outdir)
                    self._say(f"  → Neural diagram: {npath}")

        if gen_idx % 50 == 0:
            save_fitness_chart(self.all_stats, self.outdir)

    def _say(self, message: str):
        if self.verbose:
            print(message)


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

def main(argv=None):
    args = parse_args(argv)
    outdir = os.path.join(args.outdir, args.mode)
    ensure_dirs(outdir)
    verbose = not args.quiet

    try:
        species_db = (load_species_file(args.species) if args.species
                      else default_species())
    except (OSError, ValueError) as exc:
        print(f"Could not read species: {exc}", file=sys.stderr)
        return 2

    store = (JsonFileStore(args.saves, args.world) if args.save or args.resume
             else MemoryStore(args.world))

    print("=" * 60)
    print("  Neurogym – Neuroevolution Gym & Ecosystem")
    print("=" * 60)
    print(f"  Mode       : {args.mode}")
    print(f"  Species    : {', '.join(args.only or species_db.names())}")
    print(f"  Population : {args.pop or 'species default'}")
    print(f"  Generations: {args.gens if args.mode == 'gym' else '-'}")
    print(f"  Selection  : {args.selection}")
    print(f"  Mutation × : {args.mutation}")
    print(f"  World      : {args.world}")
    print(f"  Output dir : {outdir}")
    print("=" * 60)

    cb = SimCallbacks(outdir, args.snapshot_interval, store, verbose)

    try:
        sim = Simulation(
            species_db,
            species_names       = args.only,
            mode                = args.mode,
            store               = store,
            seed                = args.seed,
            generation_time     = args.gen_time,
            dt                  = args.dt,
            population_override = args.pop,
            mutation_multiplier = args.mutation,
            selection_method    = args.selection,
            verbose             = verbose,
            on_gen_callback     = cb.on_generation,
        )
        if args.resume:
            sim.load(args.world)
            print(f"  Resumed world '{args.world}' at generation {sim.generation}")
        else:
            sim.start()
    except KeyError as exc:
        print(f"Unknown species: {exc}", file=sys.stderr)
        return 2
    except (FileNotFoundError, StateLoadError, GenomeError) as exc:
        print(f"Load failed: {exc}", file=sys.stderr)
        return 1

    if args.mode == "gym":
        sim.run(max_generations=args.gens, max_steps=args.steps)
    else:
        sim.run(max_steps=args.steps or 10000)

    if args.save:
        sim.save(args.world)
        print(f"\nWorld '{args.world}' saved under {args.saves}")

    print("\nSaving final fitness chart …")
    chart = save_fitness_chart(cb.all_stats, outdir, "fitness_final.png")
    if chart:
        print(f"  → {chart}")
    snap = save_world_snapshot(sim.world, sim.generation, sim.creatures(), outdir)
    print(f"  → Final snapshot: {snap}")

    print("\nDone! All outputs saved to:", outdir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
