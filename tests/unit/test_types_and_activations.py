import numpy as np
import pytest

from layernet.core import activations
from layernet.core.errors import InvalidOptions
from layernet.core.types import (
    DistStrategy,
    LayerRole,
    LayerSpec,
    NetworkOptions,
    NodeOrientation,
    coerce_enum,
)


def test_coerce_enum_accepts_names_and_values():
    assert coerce_enum(DistStrategy, "he-xavier") is DistStrategy.HE_XAVIER
    assert coerce_enum(DistStrategy, "XAVIER") is DistStrategy.XAVIER
    assert coerce_enum(NodeOrientation, "row") is NodeOrientation.ROW
    with pytest.raises(ValueError):
        coerce_enum(LayerRole, "sideways")


def test_network_options_from_mapping():
    options = NetworkOptions.from_mapping(
        {"dist_strategy": "he", "learning_rate": "0.5", "node_orientation": "row"}
    )
    assert options.dist_strategy is DistStrategy.HE
    assert options.learning_rate == 0.5
    assert options.to_dict()["node_orientation"] == "row"
    with pytest.raises(InvalidOptions):
        NetworkOptions.from_mapping({"momentum": 0.9})
    with pytest.raises(InvalidOptions):
        NetworkOptions.from_mapping({"dist_strategy": "gaussian"})
    assert not NetworkOptions(dist_spread=float("nan")).is_valid()
    assert NetworkOptions().is_valid()


def test_layer_spec_parse():
    assert LayerSpec.parse([3, "output"]) == LayerSpec(3, LayerRole.OUTPUT)
    assert LayerSpec.parse({"nodes": 5}) == LayerSpec(5, LayerRole.HIDDEN)


def test_activation_values():
    assert activations.sigmoid(0.0) == 0.5
    assert activations.sigmoid_prime(0.0) == 0.25
    assert activations.relu(-2.0) == 0.0
    assert activations.relu_prime(0.0) == 0.0
    assert activations.tanh_prime(0.0) == 1.0
    big = activations.sigmoid(np.array([-1000.0, 1000.0]))
    assert np.all(np.isfinite(big))
    assert big[0] == pytest.approx(0.0) and big[1] == pytest.approx(1.0)


def test_resolve_pairs_registered_functions():
    assert activations.resolve("sigmoid") is activations.SIGMOID
    assert activations.resolve(activations.relu) is activations.RELU
    custom = activations.resolve(np.abs)
    assert custom.prime is None
    with pytest.raises(KeyError):
        activations.resolve("softmax")


@pytest.mark.parametrize("field", ["dist_spread", "initial_bias", "learning_rate"])
def test_non_numeric_options_are_invalid(field):
    options = NetworkOptions(**{field: "a"})
    assert not options.is_valid()
    with pytest.raises(InvalidOptions):
        options.validate()
    with pytest.raises(InvalidOptions):
        NetworkOptions(**{field: None}).validate()
