"""Distance-to-weight kernels for landmark interpolation.

Kernels take the squared distances to a point's k nearest landmarks, sorted
ascending, and return unnormalized non-negative weights.
"""

from __future__ import annotations

import numpy as np

from landmap.constants import UNDERFLOW_EXPONENT


def inverse_distance_weights(sq_dists: np.ndarray, smoothing: float, epsilon: float) -> np.ndarray:
    """Inverse-distance weights ``1 / d**smoothing``, guarded by ``epsilon``."""
    return 1.0 / np.power(sq_dists + epsilon, smoothing / 2.0)


def gaussian_weights(sq_dists: np.ndarray, smoothing: float, epsilon: float) -> np.ndarray:
    """Gaussian weights with a per-point bandwidth.

    The variance is ``smoothing`` times the mean squared distance to the k
    nearest landmarks. Exponents are shifted by the nearest distance so the
    nearest landmark always gets weight 1 before normalization.
    """
    variance = smoothing * sq_dists.mean(axis=1, keepdims=True) + epsilon
    shifted = sq_dists - sq_dists[:, :1]
    exponent = np.maximum(-shifted / (2.0 * variance), UNDERFLOW_EXPONENT)
    return np.exp(exponent)


KERNELS = {
    "inverse": inverse_distance_weights,
    "gaussian": gaussian_weights,
}


def normalize_weights(raw: np.ndarray, sq_dists: np.ndarray, epsilon: float) -> np.ndarray:
    """Normalize kernel weights to sum to one per point.

    A point whose nearest squared distance is within ``epsilon`` coincides
    with that landmark and gets weight 1 on it and 0 elsewhere. Rows whose
    weights underflow or overflow fall back to the same rule.
    """
    weights = np.array(raw, dtype=np.float64, copy=True)

    coincident = sq_dists[:, 0] <= epsilon
    totals = weights.sum(axis=1)
    degenerate = coincident | ~np.isfinite(totals) | (totals <= 0)
    if np.any(degenerate):
        weights[degenerate] = 0.0
        weights[degenerate, 0] = 1.0
        totals = weights.sum(axis=1)

    return weights / totals[:, None]
