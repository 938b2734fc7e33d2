import math

import numpy as np
import pytest

from layernet.core import activations
from layernet.core import matrix as mx
from layernet.core.errors import DimensionMismatch, InvalidArgument
from layernet.core.network import create_network
from layernet.core.types import DistStrategy, NetworkOptions, NodeOrientation, Sample
from layernet.data import stats
from layernet.training.propagation import (
    decode,
    evaluate,
    forward_propagate,
    forward_trace,
    loss_gradient,
    one_hot,
    prepare_sample,
    sum_squared_residuals,
)

LAYERS = [(4, "input"), (3, "hidden"), (2, "output")]


def _sample(values, label=0):
    return Sample(expected_value=label, input_values=mx.Matrix.from_rows([values]))


@pytest.mark.parametrize("orientation", ["column", "row"])
def test_zero_weights_give_sigmoid_half(orientation):
    options = NetworkOptions(dist_strategy=DistStrategy.ZERO, node_orientation=orientation)
    network = create_network(options, LAYERS)
    sample = prepare_sample(_sample([1, 1, 1, 1]), orientation, stats.identity)
    output = forward_propagate(sample, network, activations.sigmoid)
    expected_shape = (2, 1) if orientation == "column" else (1, 2)
    assert output.shape == expected_shape
    assert np.all(output.entries == 0.5)
    trace = forward_trace(sample, network, activations.SIGMOID)
    assert len(trace.layers) == 2
    assert np.all(trace.pre_activations[0].entries == 0.0)


def test_prepare_sample_orients_and_transforms():
    grid = Sample(expected_value=1, input_values=mx.Matrix.from_rows([[0, 2], [4, 8]]))
    prepare_sample(grid, NodeOrientation.COLUMN, stats.normalize)
    assert grid.input_values.shape == (4, 1)
    assert grid.input_values.tolist() == [[0.0], [0.25], [0.5], [1.0]]
    row = prepare_sample(_sample([1, 2, 3]), NodeOrientation.ROW, stats.identity)
    assert row.input_values.shape == (1, 3)
    with pytest.raises(InvalidArgument):
        prepare_sample(_sample([1, 2]), NodeOrientation.ROW, None)


def test_forward_matches_manual_affine():
    options = NetworkOptions(dist_strategy=DistStrategy.RANDOM, initial_bias=0.1)
    network = create_network(options, [(3, "input"), (2, "output")], rng=np.random.default_rng(4))
    sample = prepare_sample(_sample([0.5, -1.0, 2.0]), "column", stats.identity)
    layer = network.get_layer(2)
    expected = activations.sigmoid(layer.weights.entries @ sample.input_values.entries + 0.1)
    output = forward_propagate(sample, network, activations.sigmoid)
    assert np.allclose(output.entries, expected)


def test_forward_without_activation_fails():
    network = create_network(NetworkOptions(), LAYERS)
    with pytest.raises(InvalidArgument):
        forward_propagate(_sample([1, 1, 1, 1]), network, None)


def test_forward_shape_mismatch():
    network = create_network(NetworkOptions(), LAYERS)
    sample = prepare_sample(_sample([1, 1, 1]), "column", stats.identity)
    with pytest.raises(DimensionMismatch):
        forward_propagate(sample, network, activations.sigmoid)


def test_loss_gradient_sums_residuals():
    observed = [mx.Matrix.from_rows([[0.5], [0.5]]), mx.Matrix.from_rows([[0.2], [0.9]])]
    expected = [mx.Matrix.from_rows([[1.0], [0.0]]), mx.Matrix.from_rows([[0.0], [1.0]])]
    gradient = loss_gradient(observed, expected, 2)
    assert np.allclose(gradient.entries, [[-2 * (0.5 - 0.2)], [-2 * (-0.5 + 0.1)]])
    first_only = loss_gradient(observed, expected, 1)
    assert np.allclose(first_only.entries, [[-1.0], [1.0]])
    with pytest.raises(InvalidArgument):
        loss_gradient(observed, expected, 3)
    with pytest.raises(InvalidArgument):
        loss_gradient(observed, expected, 0)
    with pytest.raises(DimensionMismatch):
        loss_gradient(observed, [mx.Matrix.from_rows([[1.0, 0.0]])] * 2, 2)


def test_one_hot_decode_and_residuals():
    like = mx.create(3, 1)
    target = one_hot(2, like)
    assert target.tolist() == [[0.0], [0.0], [1.0]]
    assert decode(target) == 2
    assert decode(mx.Matrix.from_rows([[0.3, 0.7, 0.7]])) == 1
    assert sum_squared_residuals(mx.Matrix.from_rows([[0.5, 0.5]]), mx.Matrix.from_rows([[1.0, 0.0]])) == 0.5
    with pytest.raises(InvalidArgument):
        one_hot(3, like)


def test_evaluate_fraction():
    network = create_network(NetworkOptions(dist_strategy=DistStrategy.ZERO), LAYERS)
    samples = [
        prepare_sample(_sample([1, 1, 1, 1], label=label), "column", stats.identity)
        for label in (0, 0, 1, 1)
    ]
    # every output ties at 0.5 so index 0 wins
    assert evaluate(network, activations.sigmoid, samples) == 0.5
    with pytest.raises(InvalidArgument):
        evaluate(network, activations.sigmoid, [])


def test_scalar_only_activation_propagates():
    network = create_network(NetworkOptions(dist_strategy=DistStrategy.ZERO), LAYERS)
    sample = prepare_sample(_sample([1, 1, 1, 1]), "column", stats.identity)
    output = forward_propagate(sample, network, lambda x: 1.0 / (1.0 + math.exp(-x)))
    assert output.shape == (2, 1)
    assert np.all(output.entries == 0.5)
