"""Project dataset points through their nearest landmarks.

Each point is placed at the weighted mean of the low-dimensional coordinates
of its k nearest landmarks in feature space. Points are independent, so the
work is split into chunks that run on a thread pool and write disjoint slices
of the output.
"""

from __future__ import annotations

import logging
import time

import numpy as np
from scipy.spatial.distance import cdist

from landmap.constants import DISTANCE_EPSILON
from landmap.containers import EmbeddingResult, Landmarks, as_dataset
from landmap.errors import InvalidConfiguration
from landmap.projection.kernels import KERNELS, normalize_weights
from landmap.utils.parallel import map_chunks

logger = logging.getLogger(__name__)


def nearest_landmarks(
    points: np.ndarray, positions: np.ndarray, k: int
) -> tuple[np.ndarray, np.ndarray]:
    """Find the k nearest landmarks of every point.

    Uses a stable sort so equal distances are ordered by landmark index.

    Returns:
        Tuple of (indices (n, k), squared distances (n, k)), nearest first
    """
    sq_dists = cdist(points, positions, metric="sqeuclidean")
    order = np.argsort(sq_dists, axis=1, kind="stable")[:, :k]
    return order, np.take_along_axis(sq_dists, order, axis=1)


class EmbeddingProjector:
    """Interpolates landmark coordinates to embed every dataset point."""

    def __init__(
        self,
        k: int = 5,
        kernel: str = "inverse",
        smoothing: float = 1.0,
        epsilon: float = DISTANCE_EPSILON,
        n_workers: int | None = None,
        chunk_size: int | None = None,
        return_diagnostics: bool = True,
    ):
        """Initialize the projector.

        Args:
            k: Number of nearest landmarks per point (clamped to the landmark count)
            kernel: Weighting kernel, "inverse" or "gaussian"
            smoothing: Inverse-distance power or Gaussian bandwidth multiplier
            epsilon: Squared distance treated as exact coincidence. This is an
                absolute threshold: for data whose inter-point distances are
                near sqrt(epsilon) (features around 1e-6 or smaller), rescale
                the data or lower epsilon, otherwise nearby points snap to
                their nearest landmark
            n_workers: Worker threads (defaults to LANDMAP_NUM_WORKERS)
            chunk_size: Points per chunk
            return_diagnostics: Keep neighbor indices and weights in the result

        Raises:
            InvalidConfiguration: On invalid parameters
        """
        if k is None or k < 1:
            raise InvalidConfiguration(f"k must be >= 1, got {k}")
        if kernel not in KERNELS:
            raise InvalidConfiguration(
                f"Unknown kernel: {kernel}. Available kernels: {sorted(KERNELS.keys())}"
            )
        if smoothing <= 0:
            raise InvalidConfiguration(f"smoothing must be positive, got {smoothing}")
        if epsilon < 0:
            raise InvalidConfiguration(f"epsilon must be non-negative, got {epsilon}")

        self.k = int(k)
        self.kernel = kernel
        self.smoothing = float(smoothing)
        self.epsilon = float(epsilon)
        self.n_workers = n_workers
        self.chunk_size = chunk_size
        self.return_diagnostics = return_diagnostics

    def weights(self, sq_dists: np.ndarray) -> np.ndarray:
        """Normalized interpolation weights for sorted squared distances."""
        raw = KERNELS[self.kernel](sq_dists, self.smoothing, self.epsilon)
        return normalize_weights(raw, sq_dists, self.epsilon)

    def project(self, data, landmarks: Landmarks) -> EmbeddingResult:
        """Embed ``data`` using a laid-out landmark set.

        Args:
            data: Dataset of shape (n_points, n_features)
            landmarks: Landmarks with assigned coordinates

        Returns:
            EmbeddingResult with coordinates of shape (n_points, n_components)

        Raises:
            InvalidConfiguration: If landmarks have no coordinates or the
                feature dimensionality does not match
        """
        if not landmarks.has_coords:
            raise InvalidConfiguration(
                "Landmarks have no low-dimensional coordinates; run a layout provider first"
            )
        data = as_dataset(data)
        if data.shape[1] != landmarks.n_features:
            raise InvalidConfiguration(
                f"Dataset has {data.shape[1]} features but landmarks have {landmarks.n_features}"
            )

        k = min(self.k, landmarks.n_landmarks)
        if k < self.k:
            logger.debug(f"Clamping k={self.k} to the {landmarks.n_landmarks} available landmarks")

        positions = landmarks.positions
        coords = landmarks.coords
        n_points = data.shape[0]
        out_coords = np.empty((n_points, coords.shape[1]))
        out_indices = np.empty((n_points, k), dtype=np.intp)
        out_weights = np.empty((n_points, k))

        def _project_chunk(start: int, stop: int) -> None:
            idx, sq_dists = nearest_landmarks(data[start:stop], positions, k)
            w = self.weights(sq_dists)
            out_coords[start:stop] = np.sum(w[:, :, None] * coords[idx], axis=1)
            out_indices[start:stop] = idx
            out_weights[start:stop] = w

        started = time.time()
        map_chunks(_project_chunk, n_points, self.chunk_size, self.n_workers)
        logger.info(
            f"Projected {n_points} points through {landmarks.n_landmarks} landmarks "
            f"(k={k}, kernel={self.kernel}) in {time.time() - started:.2f}s"
        )

        if not self.return_diagnostics:
            return EmbeddingResult(coords=out_coords)
        return EmbeddingResult(coords=out_coords, neighbor_indices=out_indices, weights=out_weights)
