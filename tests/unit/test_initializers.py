import math

import numpy as np
import pytest

from layernet.core import matrix as mx
from layernet.core.errors import InvalidShape
from layernet.core.initializers import (
    activate_layer,
    distribution_bound,
    distribution_multiplier,
    initialize_weights,
)
from layernet.core.network import Layer
from layernet.core.types import DistStrategy, LayerRole, NetworkOptions


def test_multipliers():
    assert distribution_multiplier(DistStrategy.HE, 8, 2) == pytest.approx(math.sqrt(2 / 8))
    assert distribution_multiplier(DistStrategy.XAVIER, 8, 2) == pytest.approx(1.0)
    assert distribution_multiplier(DistStrategy.HE_XAVIER, 8, 2) == pytest.approx(math.sqrt(2 / 10))
    assert distribution_multiplier(DistStrategy.RANDOM, 8, 2) == 1.0


@pytest.mark.parametrize("strategy", list(DistStrategy))
def test_weights_stay_within_bound(strategy):
    options = NetworkOptions(dist_strategy=strategy, dist_spread=2.0)
    weights = mx.create(16, 9)
    initialize_weights(weights, options, rng=np.random.default_rng(1))
    limit = distribution_bound(2.0, 16, 9) * distribution_multiplier(strategy, 16, 9)
    assert np.all(np.abs(weights.entries) <= limit + 1e-12)


def test_zero_strategy_is_exactly_zero():
    weights = mx.create(3, 4)
    mx.fill(weights, 7.0)
    initialize_weights(weights, NetworkOptions(dist_strategy=DistStrategy.ZERO))
    assert np.all(weights.entries == 0.0)


def test_activate_layer_shapes_and_bias():
    options = NetworkOptions(initial_bias=0.25)
    layer = Layer(nodes=3, role=LayerRole.HIDDEN)
    activate_layer(layer, 5, options)
    assert layer.weights.shape == (3, 5)
    assert layer.bias.shape == (3, 1)
    assert np.all(layer.bias.entries == 0.25)


def test_input_layer_and_missing_predecessor_own_zero_matrix():
    options = NetworkOptions()
    input_layer = Layer(nodes=4, role=LayerRole.INPUT)
    activate_layer(input_layer, 10, options)
    assert input_layer.weights.is_zero() and input_layer.bias.is_zero()
    first = Layer(nodes=4, role=LayerRole.HIDDEN)
    activate_layer(first, 0, options)
    assert first.weights.is_zero()
    with pytest.raises(InvalidShape):
        activate_layer(first, -1, options)
