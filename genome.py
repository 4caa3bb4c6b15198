"""
Genome persistence codec for Neurogym.

A brain crosses every boundary (save files, the HTTP stream, champion
records) as a flat record:

 layers  : neuron count per layer, e.g. [8, 6, 2]
 weights : for layer in 1..N-1: for neuron in layer: for incoming in prev layer
 biases  : for layer in 1..N-1: for neuron in layer
"""

from dataclasses import dataclass, field

import numpy as np

from config import INIT_WEIGHT_RANGE


class GenomeError(ValueError):
    """A persisted brain record is missing fields or has a malformed shape."""


# ──────────────────────────────────────────────────────────────────────────────
# Topology helpers
# ──────────────────────────────────────────────────────────────────────────────

def check_layers(layers) -> tuple:
    """Return layers as a tuple of ints, or raise GenomeError."""
    try:
        layers = tuple(layers)
    except TypeError:
        raise GenomeError(f"layers must be a sequence, got {layers!r}")
    if len(layers) < 2:
        raise GenomeError(f"need at least an input and an output layer, got {list(layers)}")
    checked = []
    for n in layers:
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
            raise GenomeError(f"layer sizes must be positive integers, got {list(layers)}")
        checked.append(int(n))
    return tuple(checked)


def weight_count(layers) -> int:
    return sum(layers[i] * layers[i + 1] for i in range(len(layers) - 1))


def bias_count(layers) -> int:
    return sum(layers[1:])


def flatten_weights(matrices) -> np.ndarray:
    """Concatenate per-layer (out, in) matrices row-major into one vector."""
    if not matrices:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate([np.asarray(m, dtype=np.float64).ravel() for m in matrices])


def unflatten_weights(flat, layers) -> list:
    """Inverse of flatten_weights for a known topology."""
    flat = np.asarray(flat, dtype=np.float64)
    if flat.size != weight_count(layers):
        raise GenomeError(
            f"expected {weight_count(layers)} weights for {list(layers)}, got {flat.size}")
    matrices = []
    offset = 0
    for i in range(len(layers) - 1):
        n_out, n_in = layers[i + 1], layers[i]
        size = n_out * n_in
        matrices.append(flat[offset:offset + size].reshape(n_out, n_in).copy())
        offset += size
    return matrices


# ──────────────────────────────────────────────────────────────────────────────
# Persisted record
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class NeuralNetworkData:
    """Flat, serialisable form of a brain."""
    layers:  list
    weights: list = field(default_factory=list)
    biases:  list = field(default_factory=list)

    def validate(self) -> "NeuralNetworkData":
        layers = check_layers(self.layers)
        if len(self.weights) != weight_count(layers):
            raise GenomeError(
                f"expected {weight_count(layers)} weights for {list(layers)}, "
                f"got {len(self.weights)}")
        if len(self.biases) != bias_count(layers):
            raise GenomeError(
                f"expected {bias_count(layers)} biases for {list(layers)}, "
                f"got {len(self.biases)}")
        return self

    def to_dict(self) -> dict:
        return {
            "layers":  [int(n) for n in self.layers],
            "weights": [float(w) for w in self.weights],
            "biases":  [float(b) for b in self.biases],
        }

    @classmethod
    def from_dict(cls, d) -> "NeuralNetworkData":
        """Parse a mapping produced by to_dict (or a hand-written save file)."""
        if not isinstance(d, dict):
            raise GenomeError(f"brain record must be a mapping, got {type(d).__name__}")
        missing = [k for k in ("layers", "weights", "biases") if k not in d]
        if missing:
            raise GenomeError(f"brain record is missing {', '.join(missing)}")
        try:
            weights = [float(w) for w in d["weights"]]
            biases  = [float(b) for b in d["biases"]]
        except (TypeError, ValueError) as exc:
            raise GenomeError(f"brain record has non-numeric parameters: {exc}")
        data = cls(layers=list(check_layers(d["layers"])),
                   weights=weights, biases=biases)
        return data.validate()


# ──────────────────────────────────────────────────────────────────────────────
# Population-level helpers
# ──────────────────────────────────────────────────────────────────────────────

def brain_similarity(data_a: NeuralNetworkData, data_b: NeuralNetworkData) -> float:
    """
    Similarity (0..1) of two brains based on mean absolute parameter
    difference. Brains of different topology are 0 similar.
    """
    if list(data_a.layers) != list(data_b.layers):
        return 0.0
    a = np.concatenate([np.asarray(data_a.weights), np.asarray(data_a.biases)])
    b = np.concatenate([np.asarray(data_b.weights), np.asarray(data_b.biases)])
    if a.size == 0:
        return 1.0
    diff = float(np.mean(np.abs(a - b)))
    return 1.0 - min(1.0, diff / (2 * INIT_WEIGHT_RANGE))


def brain_to_color(data: NeuralNetworkData) -> tuple:
    """
    Map a brain to an RGB colour so that related brains have similar
    colours (visual lineage indicator).
    """
    params = np.concatenate([np.asarray(data.biases, dtype=np.float64),
                             np.asarray(data.weights, dtype=np.float64)])
    if params.size == 0:
        return (128, 128, 128)
    chunks = np.array_split(params, 3)
    rgb = []
    for chunk in chunks:
        v = float(np.tanh(chunk.mean() * 4)) if chunk.size else 0.0
        # Brighten so they're visible
        rgb.append(max(50, int((v + 1.0) * 127.5)))
    return tuple(rgb)
