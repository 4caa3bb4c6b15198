"""
Visualizer for Neurogym.

Produces:
  1. Arena snapshots  – creatures in brain colour over the food field
  2. Fitness chart    – best / mean / champion fitness per species over generations
  3. Brain diagrams   – layered wiring of a champion network
  4. CSV log          – per-generation, per-species stats
"""

import csv
import os

import matplotlib
matplotlib.use("Agg")          # render to files only
import matplotlib.pyplot as plt
import numpy as np

from config import SAVE_DIR, LOG_CSV

BACKGROUND = "#111111"
SPINE      = "#444444"


def ensure_dirs(base: str = SAVE_DIR):
    for sub in ("snapshots", "charts", "neural"):
        os.makedirs(os.path.join(base, sub), exist_ok=True)


def _dark(fig, ax, ticks: bool = True):
    fig.patch.set_facecolor(BACKGROUND)
    ax.set_facecolor(BACKGROUND)
    if ticks:
        ax.tick_params(axis="both", colors="white")
        for spine in ax.spines.values():
            spine.set_edgecolor(SPINE)


def _save(fig, base: str, sub: str, name: str) -> str:
    path = os.path.join(base, sub, name)
    fig.savefig(path, dpi=100, bbox_inches="tight", facecolor=BACKGROUND)
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# Arena snapshot
# ──────────────────────────────────────────────────────────────────────────────

def save_world_snapshot(world, generation: int, creatures: list,
                        base: str = SAVE_DIR) -> str:
    fig, ax = plt.subplots(figsize=(8, 8 * world.height / world.width), dpi=100)
    _dark(fig, ax)
    ax.set_xlim(0, world.width)
    ax.set_ylim(0, world.height)
    ax.set_aspect("equal")

    if len(world.food):
        ax.scatter(world.food[:, 0], world.food[:, 1], c="#DDDD33", s=6,
                   marker="s", linewidths=0)

    positions, colors = world.snapshot(creatures)
    if positions:
        xs, ys = zip(*positions)
        ax.scatter(xs, ys, c=[(r / 255, g / 255, b / 255) for r, g, b in colors],
                   s=18, linewidths=0)
    ax.set_title(f"Generation {generation}  ({len(positions)} creatures)",
                 color="white", fontsize=10)
    return _save(fig, base, "snapshots", f"gen_{generation:06d}.png")


# ──────────────────────────────────────────────────────────────────────────────
# Fitness chart
# ──────────────────────────────────────────────────────────────────────────────

def save_fitness_chart(stats: list, base: str = SAVE_DIR,
                       filename: str = "fitness.png"):
    """
    Best (solid), mean (dashed) and champion (dotted) fitness per species.
    Extinct generations leave a gap. Returns None when there is nothing to plot.
    """
    if not stats:
        return None
    by_species = {}
    for s in stats:
        by_species.setdefault(s["species"], [])
        if not s["extinct"]:
            by_species[s["species"]].append(s)

    fig, ax = plt.subplots(figsize=(12, 5), dpi=100)
    _dark(fig, ax)
    palette = plt.get_cmap("tab10")
    for i, (name, rows) in enumerate(by_species.items()):
        if not rows:
            continue
        gens, color = [s["generation"] for s in rows], palette(i % 10)
        ax.plot(gens, [s["best"] for s in rows], color=color, linewidth=1.2,
                label=f"{name} best")
        ax.plot(gens, [s["mean"] for s in rows], color=color, linewidth=1.0,
                linestyle="--", alpha=0.8, label=f"{name} mean")
        ax.plot(gens, [s["champion"] for s in rows], color=color, linewidth=0.8,
                linestyle=":", alpha=0.6)

    ax.set_xlabel("Generation", color="white")
    ax.set_ylabel("Fitness", color="white")
    ax.set_title("Evolutionary Progress", color="white", fontsize=12)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(facecolor="#222222", labelcolor="white", loc="upper left", fontsize=8)
    fig.tight_layout()
    return _save(fig, base, "charts", filename)


# ──────────────────────────────────────────────────────────────────────────────
# Brain diagram
# ──────────────────────────────────────────────────────────────────────────────

NODE_COLORS = {"input": "#4499FF", "hidden": "#AAAAAA", "output": "#FF88AA"}


def save_neural_diagram(brain, generation: int, label: str = "",
                        base: str = SAVE_DIR) -> str:
    """
    Columns of neurons from inputs to outputs. Edge colour is the weight
    sign (green positive, red negative), width its magnitude.
    """
    layers = list(brain.layers)
    last = len(layers) - 1

    def at(li, ni):
        return li / max(1, last), (ni + 1) / (layers[li] + 1)

    fig, ax = plt.subplots(figsize=(10, 6), dpi=100)
    _dark(fig, ax, ticks=False)
    ax.axis("off")
    ax.set_xlim(-0.1, 1.1)
    ax.set_ylim(-0.05, 1.05)

    for li, w in enumerate(brain.weights):
        for (dst, src), weight in np.ndenumerate(w):
            (x1, y1), (x2, y2) = at(li, src), at(li + 1, dst)
            ax.plot([x1, x2], [y1, y2], zorder=1, alpha=0.5,
                    color="#44FF44" if weight >= 0 else "#FF4444",
                    lw=0.2 + min(3.0, abs(weight) * 2))

    for li, n in enumerate(layers):
        kind = "input" if li == 0 else ("output" if li == last else "hidden")
        for ni in range(n):
            ax.add_patch(plt.Circle(at(li, ni), 0.015, color=NODE_COLORS[kind], zorder=3))
        header = kind.capitalize() + ("" if kind != "hidden" else f" {li}")
        ax.text(li / max(1, last), 1.03, header, color="#CCCCCC",
                ha="center", fontsize=9, fontweight="bold")

    ax.set_title(f"Gen {generation}: {label} {layers} "
                 f"({brain.parameter_count} parameters)",
                 color="white", fontsize=10, pad=4)
    return _save(fig, base, "neural", f"gen_{generation:06d}_{label}.png")


# ──────────────────────────────────────────────────────────────────────────────
# CSV log
# ──────────────────────────────────────────────────────────────────────────────

def append_csv(stats: dict, base: str = SAVE_DIR):
    """Append one species' generation stats; the header is written once."""
    if not LOG_CSV:
        return None
    path = os.path.join(base, "evolution_log.csv")
    new_file = not os.path.isfile(path)
    with open(path, "a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(stats))
        if new_file:
            writer.writeheader()
        writer.writerow(stats)
    return path
