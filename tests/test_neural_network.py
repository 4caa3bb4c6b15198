import numpy as np
import pytest

from genome import NeuralNetworkData, GenomeError
from neural_network import NeuralNetwork, TopologyError


def params(net):
    return np.concatenate([net.biases] + [w.ravel() for w in net.weights])


# ──────────────────────────────────────────────────────────────────────────────
# Construction
# ──────────────────────────────────────────────────────────────────────────────

def test_same_seed_same_network():
    a = NeuralNetwork([5, 4, 2], np.random.default_rng(7))
    b = NeuralNetwork([5, 4, 2], np.random.default_rng(7))
    np.testing.assert_array_equal(params(a), params(b))
    x = [0.1, -0.2, 0.3, 0.4, -0.5]
    np.testing.assert_array_equal(a.feed_forward(x), b.feed_forward(x))


@pytest.mark.parametrize("layers", [[1, 1], [5, 4, 2], [11, 8, 2], [3, 7, 7, 1]])
def test_shapes(layers, rng):
    net = NeuralNetwork(layers, rng)
    assert net.layers == tuple(layers)
    assert len(net.weights) == len(layers) - 1
    for i, w in enumerate(net.weights):
        assert w.shape == (layers[i + 1], layers[i])
    assert net.biases.shape == (sum(layers[1:]),)
    assert net.parameter_count == params(net).size


def test_initial_values_in_range(rng):
    net = NeuralNetwork([20, 30, 10], rng)
    p = params(net)
    assert p.min() >= -0.5 and p.max() <= 0.5


@pytest.mark.parametrize("layers", [[], [4], [3, 0, 2], [3, -1], [2.5, 2], "ab"])
def test_bad_layers_rejected(layers):
    with pytest.raises(TopologyError):
        NeuralNetwork(layers)


def test_clone_does_not_alias(rng):
    net = NeuralNetwork([3, 4, 2], rng)
    copy = net.clone()
    np.testing.assert_array_equal(params(net), params(copy))
    copy.weights[0][0, 0] += 1.0
    copy.biases[0] += 1.0
    assert net.weights[0][0, 0] != copy.weights[0][0, 0]
    assert net.biases[0] != copy.biases[0]


# ──────────────────────────────────────────────────────────────────────────────
# Forward pass
# ──────────────────────────────────────────────────────────────────────────────

def test_feed_forward_hand_computed(rng):
    net = NeuralNetwork([2, 1], rng)
    net.weights[0][:] = [[0.5, -0.25]]
    net.biases[:] = [0.1]
    out = net.feed_forward([1.0, 2.0])
    assert out.shape == (1,)
    assert out[0] == pytest.approx(np.tanh(0.1 + 0.5 - 0.5))


def test_feed_forward_two_layers(rng):
    net = NeuralNetwork([2, 2, 1], rng)
    net.weights[0][:] = [[1.0, 0.0], [0.0, 1.0]]
    net.weights[1][:] = [[1.0, -1.0]]
    net.biases[:] = [0.0, 0.0, 0.2]
    hidden = np.tanh([0.3, -0.4])
    expected = np.tanh(0.2 + hidden[0] - hidden[1])
    assert net.feed_forward([0.3, -0.4])[0] == pytest.approx(expected)


def test_feed_forward_returns_fresh_copy(rng):
    net = NeuralNetwork([3, 2], rng)
    first = net.feed_forward([1, 0, 0])
    first[:] = 99.0
    second = net.feed_forward([1, 0, 0])
    assert not np.any(second == 99.0)


@pytest.mark.parametrize("inputs", [[1.0, 2.0], [1.0, 2.0, 3.0, 4.0], []])
def test_feed_forward_length_mismatch(inputs, rng):
    net = NeuralNetwork([3, 2], rng)
    with pytest.raises(TopologyError):
        net.feed_forward(inputs)


# ──────────────────────────────────────────────────────────────────────────────
# Mutation & crossover
# ──────────────────────────────────────────────────────────────────────────────

def test_mutation_bound(rng):
    net = NeuralNetwork([6, 5, 3], rng)
    before = params(net)
    net.mutate(1.0, 0.2, rng)
    after = params(net)
    assert np.all(np.abs(after - before) <= 0.2 + 1e-12)
    assert np.any(after != before)


def test_mutation_zero_chance_changes_nothing(rng):
    net = NeuralNetwork([6, 5, 3], rng)
    before = params(net)
    net.mutate(0.0, 0.5, rng)
    np.testing.assert_array_equal(params(net), before)


def test_mutation_rate_is_per_parameter():
    rng = np.random.default_rng(3)
    net = NeuralNetwork([20, 20, 10], rng)
    before = params(net)
    net.mutate(0.25, 0.1, rng)
    changed = np.mean(params(net) != before)
    assert 0.2 < changed < 0.3


def test_crossover_takes_exact_parent_values():
    rng = np.random.default_rng(11)
    a = NeuralNetwork([5, 4, 2], rng)
    b = NeuralNetwork([5, 4, 2], rng)
    pa, pb = params(a), params(b)
    from_a = 0
    total = 0
    for _ in range(200):
        child = params(NeuralNetwork.crossover(a, b, rng))
        assert np.all((child == pa) | (child == pb))
        from_a += np.sum(child == pa)
        total += child.size
    assert from_a / total == pytest.approx(0.5, abs=0.03)


def test_crossover_child_is_independent(rng):
    a = NeuralNetwork([3, 2], rng)
    b = NeuralNetwork([3, 2], rng)
    child = NeuralNetwork.crossover(a, b, rng)
    before_a = params(a)
    child.weights[0][:] = 5.0
    np.testing.assert_array_equal(params(a), before_a)


def test_crossover_shape_mismatch(rng):
    with pytest.raises(TopologyError):
        NeuralNetwork.crossover(NeuralNetwork([3, 2], rng),
                                NeuralNetwork([3, 3, 2], rng), rng)


# ──────────────────────────────────────────────────────────────────────────────
# Save & load
# ──────────────────────────────────────────────────────────────────────────────

def test_get_data_layout(rng):
    net = NeuralNetwork([3, 2, 1], rng)
    data = net.get_data()
    assert data.layers == [3, 2, 1]
    assert len(data.weights) == 3 * 2 + 2 * 1
    assert len(data.biases) == 3
    # [layer][neuron][incoming]
    assert data.weights[0] == net.weights[0][0, 0]
    assert data.weights[1] == net.weights[0][0, 1]
    assert data.weights[3] == net.weights[0][1, 0]
    assert data.weights[6] == net.weights[1][0, 0]


def test_round_trip_same_shape():
    a = NeuralNetwork([5, 4, 2], np.random.default_rng(1))
    b = NeuralNetwork([5, 4, 2], np.random.default_rng(2))
    b.load_and_transfer_data(a.get_data())
    np.testing.assert_array_equal(params(a), params(b))


def test_from_data_rebuilds_network(rng):
    a = NeuralNetwork([4, 3, 2], rng)
    b = NeuralNetwork.from_data(a.get_data())
    assert b.layers == a.layers
    np.testing.assert_array_equal(params(a), params(b))


def test_strict_load_rejects_other_shape(rng):
    net = NeuralNetwork([4, 3, 2], rng)
    with pytest.raises(TopologyError):
        net.load_data(NeuralNetwork([4, 2], rng).get_data())


def test_partial_transfer_into_larger_network():
    src = NeuralNetwork([5, 4, 2], np.random.default_rng(1))
    dst = NeuralNetwork([7, 6, 2], np.random.default_rng(2))
    before = dst.clone()

    dst.load_and_transfer_data(src.get_data())

    # layer 0: the 4×5 corner comes from the source, the rest is untouched
    np.testing.assert_array_equal(dst.weights[0][:4, :5], src.weights[0])
    np.testing.assert_array_equal(dst.weights[0][4:, :], before.weights[0][4:, :])
    np.testing.assert_array_equal(dst.weights[0][:, 5:], before.weights[0][:, 5:])
    # layer 1: 2×4 corner from the source, new incoming columns untouched
    np.testing.assert_array_equal(dst.weights[1][:2, :4], src.weights[1])
    np.testing.assert_array_equal(dst.weights[1][:, 4:], before.weights[1][:, 4:])
    # biases: flat prefix of the shorter list
    np.testing.assert_array_equal(dst.biases[:6], src.biases)
    np.testing.assert_array_equal(dst.biases[6:], before.biases[6:])


def test_partial_transfer_into_smaller_network():
    src = NeuralNetwork([7, 6, 2], np.random.default_rng(1))
    dst = NeuralNetwork([5, 4, 2], np.random.default_rng(2))

    dst.load_and_transfer_data(src.get_data())

    np.testing.assert_array_equal(dst.weights[0], src.weights[0][:4, :5])
    np.testing.assert_array_equal(dst.weights[1], src.weights[1][:2, :4])
    np.testing.assert_array_equal(dst.biases, src.biases[:6])


def test_partial_transfer_extra_old_layers_are_ignored():
    src = NeuralNetwork([3, 3, 3, 2], np.random.default_rng(1))
    dst = NeuralNetwork([3, 3], np.random.default_rng(2))
    dst.load_and_transfer_data(src.get_data())
    np.testing.assert_array_equal(dst.weights[0], src.weights[0])


def test_corrupt_data_leaves_network_untouched(rng):
    net = NeuralNetwork([3, 2], rng)
    before = params(net)
    bad = NeuralNetworkData(layers=[3, 2], weights=[0.0] * 5, biases=[0.0, 0.0])
    with pytest.raises(GenomeError):
        net.load_and_transfer_data(bad)
    np.testing.assert_array_equal(params(net), before)


def test_summary_mentions_topology(rng):
    text = NeuralNetwork([3, 4, 2], rng).summary()
    assert "[3, 4, 2]" in text
    assert "L0 → L1" in text
