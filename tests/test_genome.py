import json

import numpy as np
import pytest

from genome import (NeuralNetworkData, GenomeError, check_layers,
                    flatten_weights, unflatten_weights, weight_count, bias_count,
                    brain_similarity, brain_to_color)
from neural_network import NeuralNetwork


def test_counts():
    assert weight_count([11, 8, 2]) == 11 * 8 + 8 * 2
    assert bias_count([11, 8, 2]) == 10


def test_check_layers_normalises_numpy_ints():
    assert check_layers(np.array([3, 4, 2])) == (3, 4, 2)


@pytest.mark.parametrize("layers", [[3], [3, 0], [True, 2], None, [3, "4"]])
def test_check_layers_rejects(layers):
    with pytest.raises(GenomeError):
        check_layers(layers)


def test_unflatten_inverts_flatten(rng):
    mats = [rng.random((4, 3)), rng.random((2, 4))]
    back = unflatten_weights(flatten_weights(mats), [3, 4, 2])
    for a, b in zip(mats, back):
        np.testing.assert_array_equal(a, b)


def test_unflatten_wrong_length():
    with pytest.raises(GenomeError):
        unflatten_weights([0.0] * 5, [3, 2])


def test_dict_survives_json(rng):
    data = NeuralNetwork([4, 3, 2], rng).get_data()
    parsed = NeuralNetworkData.from_dict(json.loads(json.dumps(data.to_dict())))
    assert parsed.layers == data.layers
    assert parsed.weights == data.weights
    assert parsed.biases == data.biases


@pytest.mark.parametrize("record", [
    {"weights": [], "biases": []},
    {"layers": [2, 1], "biases": [0.0]},
    {"layers": [2, 1], "weights": [0.0, 0.0], "biases": []},
    {"layers": [2, 1], "weights": [0.0], "biases": [0.0]},
    {"layers": [2, 1], "weights": ["x", 0.0], "biases": [0.0]},
    {"layers": [0, 1], "weights": [], "biases": [0.0]},
    [1, 2, 3],
])
def test_from_dict_rejects_malformed(record):
    with pytest.raises(GenomeError):
        NeuralNetworkData.from_dict(record)


def test_similarity(rng):
    a = NeuralNetwork([3, 4, 2], rng)
    b = NeuralNetwork([3, 4, 2], rng)
    assert brain_similarity(a.get_data(), a.get_data()) == 1.0
    assert 0.0 <= brain_similarity(a.get_data(), b.get_data()) < 1.0
    assert brain_similarity(a.get_data(), NeuralNetwork([3, 2], rng).get_data()) == 0.0


def test_color_is_stable_and_valid(rng):
    data = NeuralNetwork([3, 4, 2], rng).get_data()
    color = brain_to_color(data)
    assert color == brain_to_color(data)
    assert len(color) == 3
    assert all(50 <= c <= 255 for c in color)
