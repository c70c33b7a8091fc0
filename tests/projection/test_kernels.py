"""Tests for interpolation kernels and weight normalization."""

import numpy as np
import pytest

from landmap.projection.kernels import (
    KERNELS,
    gaussian_weights,
    inverse_distance_weights,
    normalize_weights,
)

EPS = 1e-12


@pytest.fixture
def sq_dists():
    return np.array([[1.0, 4.0, 9.0], [0.25, 0.25, 1.0], [2.0, 50.0, 5000.0]])


@pytest.mark.parametrize("kernel", sorted(KERNELS))
def test_weights_are_normalized(kernel, sq_dists):
    raw = KERNELS[kernel](sq_dists, 1.0, EPS)
    weights = normalize_weights(raw, sq_dists, EPS)
    np.testing.assert_allclose(weights.sum(axis=1), 1.0)
    assert np.all(weights >= 0)


@pytest.mark.parametrize("kernel", sorted(KERNELS))
def test_weights_do_not_increase_with_distance(kernel, sq_dists):
    weights = KERNELS[kernel](sq_dists, 1.0, EPS)
    assert np.all(np.diff(weights, axis=1) <= 0)


def test_inverse_distance_power():
    sq = np.array([[1.0, 4.0]])
    np.testing.assert_allclose(inverse_distance_weights(sq, 1.0, 0.0), [[1.0, 0.5]])
    np.testing.assert_allclose(inverse_distance_weights(sq, 2.0, 0.0), [[1.0, 0.25]])


def test_gaussian_nearest_gets_unit_weight(sq_dists):
    weights = gaussian_weights(sq_dists, 1.0, EPS)
    np.testing.assert_array_equal(weights[:, 0], 1.0)


def test_gaussian_never_underflows_to_zero():
    sq = np.array([[0.0001, 1e9, 1e12]])
    weights = gaussian_weights(sq, 1e-6, EPS)
    assert np.all(weights > 0)


def test_equal_distances_get_equal_weights():
    sq = np.array([[0.5, 0.5, 0.5, 0.5]])
    raw = inverse_distance_weights(sq, 1.0, EPS)
    np.testing.assert_allclose(normalize_weights(raw, sq, EPS), [[0.25, 0.25, 0.25, 0.25]])


class TestCoincidence:
    def test_exact_match_is_one_hot(self):
        sq = np.array([[0.0, 1.0, 2.0]])
        raw = inverse_distance_weights(sq, 1.0, EPS)
        np.testing.assert_array_equal(normalize_weights(raw, sq, EPS), [[1.0, 0.0, 0.0]])

    def test_within_epsilon_is_one_hot(self):
        sq = np.array([[1e-4, 1.0]])
        raw = inverse_distance_weights(sq, 1.0, 1e-3)
        np.testing.assert_array_equal(normalize_weights(raw, sq, 1e-3), [[1.0, 0.0]])

    def test_non_finite_rows_fall_back_to_nearest(self):
        sq = np.array([[1.0, 2.0], [1.0, 2.0]])
        raw = np.array([[np.inf, 1.0], [0.5, 0.5]])
        weights = normalize_weights(raw, sq, EPS)
        np.testing.assert_array_equal(weights[0], [1.0, 0.0])
        np.testing.assert_allclose(weights[1], [0.5, 0.5])

    def test_zero_rows_fall_back_to_nearest(self):
        sq = np.array([[1.0, 2.0]])
        weights = normalize_weights(np.zeros((1, 2)), sq, EPS)
        np.testing.assert_array_equal(weights, [[1.0, 0.0]])

    def test_does_not_modify_raw_weights(self):
        sq = np.array([[0.0, 1.0]])
        raw = np.array([[1e12, 1.0]])
        normalize_weights(raw, sq, EPS)
        np.testing.assert_array_equal(raw, [[1e12, 1.0]])
