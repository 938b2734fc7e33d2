import numpy as np
import pytest

from layernet.core.errors import InvalidArgument
from layernet.data import stats


def test_summary_statistics():
    arr = np.array([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert stats.minimum(arr) == 2.0
    assert stats.maximum(arr) == 9.0
    assert stats.average(arr) == 5.0
    assert stats.stddev(arr) == pytest.approx(2.0)
    assert stats.maximum(arr, 3) == 4.0


def test_normalize_in_place():
    arr = np.array([10.0, 20.0, 30.0])
    out = stats.normalize(arr)
    assert out is arr
    assert arr.tolist() == [0.0, 0.5, 1.0]


def test_normalize_prefix_only():
    arr = np.array([0.0, 4.0, 100.0])
    stats.normalize(arr, 2)
    assert arr.tolist() == [0.0, 1.0, 100.0]


def test_standardize_zero_mean_unit_variance():
    arr = np.array([1.0, 2.0, 3.0, 4.0])
    stats.standardize(arr)
    assert np.mean(arr) == pytest.approx(0.0)
    assert np.std(arr) == pytest.approx(1.0)


def test_constant_input_is_left_untouched():
    arr = np.full(5, 3.0)
    stats.normalize(arr)
    stats.standardize(arr)
    assert np.all(arr == 3.0)


def test_invalid_sizes():
    with pytest.raises(InvalidArgument):
        stats.average(np.array([1.0]), 2)
    with pytest.raises(InvalidArgument):
        stats.minimum(np.ones((2, 2)))


def test_random_uniform_bounds():
    rng = np.random.default_rng(0)
    values = [stats.random_uniform(-1.0, 1.0, rng) for _ in range(50)]
    assert all(-1.0 <= v <= 1.0 for v in values)


def test_transform_lookup():
    assert stats.get_transform("normalize") is stats.normalize
    with pytest.raises(KeyError):
        stats.get_transform("whiten")
