"""
Neural Network Brain for Neurogym.

A fixed-topology, fully connected feed-forward network:
  inputs → [hidden layers] → outputs, tanh activation on every
  non-input neuron.

Forward pass (per simulation step):
  1. Read the creature's sensor vector (length == layers[0])
  2. For each layer: value = tanh(bias + Σ weight · previous value)
  3. Return the output layer (a fresh array every call)
"""

import numpy as np

from config import INIT_WEIGHT_RANGE
from genome import (NeuralNetworkData, GenomeError, check_layers,
                    flatten_weights, unflatten_weights)


class TopologyError(ValueError):
    """Raised when a network shape, or data fed to it, does not line up."""


class NeuralNetwork:
    """
    Brain owned by exactly one creature.
    weights[i] has shape (layers[i+1], layers[i]); biases holds one value
    per non-input neuron, concatenated layer by layer.
    """

    def __init__(self, layers, rng=None):
        try:
            self._layers = check_layers(layers)
        except GenomeError as exc:
            raise TopologyError(str(exc)) from exc
        if rng is None:
            rng = np.random.default_rng()

        r = INIT_WEIGHT_RANGE
        self.weights = []
        biases = []
        for i in range(1, len(self._layers)):
            n_out, n_in = self._layers[i], self._layers[i - 1]
            biases.append(rng.uniform(-r, r, size=n_out))
            self.weights.append(rng.uniform(-r, r, size=(n_out, n_in)))
        self.biases = np.concatenate(biases)

    # ──────────────────────────────────────────────────────────────────────────
    # Construction helpers
    # ──────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_network(cls, other: "NeuralNetwork") -> "NeuralNetwork":
        """Deep copy of another network (no shared arrays)."""
        net = cls.__new__(cls)
        net._layers  = other._layers
        net.weights  = [w.copy() for w in other.weights]
        net.biases   = other.biases.copy()
        return net

    @classmethod
    def from_data(cls, data: NeuralNetworkData) -> "NeuralNetwork":
        """Rebuild a network with exactly the persisted topology."""
        data.validate()
        net = cls.__new__(cls)
        net._layers = check_layers(data.layers)
        net.weights = unflatten_weights(data.weights, net._layers)
        net.biases  = np.asarray(data.biases, dtype=np.float64).copy()
        return net

    def clone(self) -> "NeuralNetwork":
        return NeuralNetwork.from_network(self)

    @property
    def layers(self) -> tuple:
        return self._layers

    @property
    def parameter_count(self) -> int:
        return int(self.biases.size + sum(w.size for w in self.weights))

    # ──────────────────────────────────────────────────────────────────────────
    # Forward pass
    # ──────────────────────────────────────────────────────────────────────────

    def feed_forward(self, inputs) -> np.ndarray:
        """
        Args:
            inputs: sequence of floats, length must equal layers[0]

        Returns:
            float64 array of shape (layers[-1],), values −1..1
        """
        values = np.asarray(inputs, dtype=np.float64).ravel()
        if values.size != self._layers[0]:
            raise TopologyError(
                f"expected {self._layers[0]} inputs, got {values.size}")

        offset = 0
        for w in self.weights:
            n_out = w.shape[0]
            values = np.tanh(w @ values + self.biases[offset:offset + n_out])
            offset += n_out
        return values.copy()

    # ──────────────────────────────────────────────────────────────────────────
    # Evolution operators
    # ──────────────────────────────────────────────────────────────────────────

    def mutate(self, chance: float, strength: float, rng=None):
        """
        Nudge each bias and each weight independently: with probability
        `chance` add uniform(−strength, strength).
        """
        if rng is None:
            rng = np.random.default_rng()
        self._mutate_array(self.biases, chance, strength, rng)
        for w in self.weights:
            self._mutate_array(w, chance, strength, rng)

    @staticmethod
    def _mutate_array(arr: np.ndarray, chance: float, strength: float, rng):
        hit   = rng.random(arr.shape) < chance
        delta = rng.uniform(-strength, strength, size=arr.shape)
        arr[hit] += delta[hit]

    @staticmethod
    def crossover(parent_a: "NeuralNetwork", parent_b: "NeuralNetwork",
                  rng=None) -> "NeuralNetwork":
        """
        Uniform crossover: every weight and bias of the child is copied from
        parent A or parent B on an independent fair coin flip.
        Both parents must share the same layers.
        """
        if parent_a.layers != parent_b.layers:
            raise TopologyError(
                f"cannot cross {list(parent_a.layers)} with {list(parent_b.layers)}")
        if rng is None:
            rng = np.random.default_rng()

        child = NeuralNetwork.from_network(parent_a)
        take_b = rng.random(child.biases.shape) < 0.5
        child.biases[take_b] = parent_b.biases[take_b]
        for w_child, w_b in zip(child.weights, parent_b.weights):
            take_b = rng.random(w_child.shape) < 0.5
            w_child[take_b] = w_b[take_b]
        return child

    # ──────────────────────────────────────────────────────────────────────────
    # Save & load
    # ──────────────────────────────────────────────────────────────────────────

    def get_data(self) -> NeuralNetworkData:
        return NeuralNetworkData(
            layers  = list(self._layers),
            weights = flatten_weights(self.weights).tolist(),
            biases  = self.biases.tolist(),
        )

    def load_data(self, data: NeuralNetworkData):
        """Strict load: the record must have exactly this network's layers."""
        data.validate()
        if tuple(data.layers) != self._layers:
            raise TopologyError(
                f"record has layers {list(data.layers)}, network has {list(self._layers)}")
        self.weights = unflatten_weights(data.weights, self._layers)
        self.biases  = np.asarray(data.biases, dtype=np.float64).copy()

    def load_and_transfer_data(self, data: NeuralNetworkData):
        """
        Shape-tolerant load. Biases: the overlapping prefix is copied.
        Weights: the record is walked in its own (old) layout, and each
        weight is copied only if its layer, destination neuron and source
        neuron all exist in this network. Everything else keeps its
        current value.
        """
        data.validate()
        old_layers = tuple(data.layers)

        n = min(len(data.biases), self.biases.size)
        self.biases[:n] = np.asarray(data.biases[:n], dtype=np.float64)

        flat = np.asarray(data.weights, dtype=np.float64)
        offset = 0
        for i in range(len(old_layers) - 1):
            n_out, n_in = old_layers[i + 1], old_layers[i]
            block = flat[offset:offset + n_out * n_in].reshape(n_out, n_in)
            offset += n_out * n_in
            if i >= len(self.weights):
                continue
            rows = min(n_out, self._layers[i + 1])
            cols = min(n_in, self._layers[i])
            self.weights[i][:rows, :cols] = block[:rows, :cols]

    # ──────────────────────────────────────────────────────────────────────────

    def summary(self) -> str:
        lines = [f"NeuralNetwork {list(self._layers)} "
                 f"({self.parameter_count} parameters)"]
        offset = 0
        for i, w in enumerate(self.weights):
            b = self.biases[offset:offset + w.shape[0]]
            offset += w.shape[0]
            lines.append(
                f"  L{i} → L{i + 1}  {w.shape[1]:>3} → {w.shape[0]:<3}"
                f"  |w| mean {np.abs(w).mean():.3f}  bias mean {b.mean():+.3f}"
            )
        return "\n".join(lines)
