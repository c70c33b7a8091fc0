"""Force-directed layout of the landmark k-NN graph."""

from __future__ import annotations

import logging

import numpy as np
from sklearn.decomposition import PCA
from sklearn.neighbors import NearestNeighbors

from landmap.containers import Landmarks
from landmap.errors import InvalidConfiguration
from landmap.layout.base import LayoutProvider

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 200


def knn_adjacency(points: np.ndarray, n_neighbors: int) -> np.ndarray:
    """Symmetric 0/1 adjacency matrix of the k-nearest-neighbor graph."""
    n_points = points.shape[0]
    nn = NearestNeighbors(n_neighbors=n_neighbors + 1).fit(points)
    _, neighbors = nn.kneighbors(points)
    adjacency = np.zeros((n_points, n_points))
    rows = np.repeat(np.arange(n_points), n_neighbors)
    adjacency[rows, neighbors[:, 1:].ravel()] = 1.0
    adjacency = np.maximum(adjacency, adjacency.T)
    np.fill_diagonal(adjacency, 0.0)
    return adjacency


def fruchterman_reingold(
    adjacency: np.ndarray,
    init: np.ndarray,
    iterations: int,
    temperature: float = 0.1,
) -> np.ndarray:
    """Fruchterman-Reingold spring layout with linear cooling.

    Every node repels every other node with force k^2/d; graph neighbors
    attract with force d^2/k, where k is the ideal edge length for a unit box.
    Displacements are capped by a temperature that shrinks to zero.
    """
    pos = init.copy()
    n_nodes = pos.shape[0]
    k = np.sqrt(1.0 / n_nodes)
    dt = temperature / (iterations + 1)

    for _ in range(iterations):
        delta = pos[:, None, :] - pos[None, :, :]
        distance = np.sqrt(np.sum(delta * delta, axis=2))
        np.clip(distance, 0.01, None, out=distance)
        force = k * k / distance**2 - adjacency * distance / k
        displacement = np.einsum("ijk,ij->ik", delta, force)
        length = np.sqrt(np.sum(displacement * displacement, axis=1))
        length = np.where(length < 0.01, 0.1, length)
        pos += displacement * (temperature / length)[:, None]
        temperature -= dt
    return pos


class KNNForceLayout(LayoutProvider):
    """Force-directed layout of the landmarks' k-NN graph.

    Starts from a PCA projection rescaled to the unit box so the result is
    deterministic given the seed.
    """

    name = "knn"

    def _initial_positions(self, positions: np.ndarray, n_components: int) -> np.ndarray:
        rng = np.random.default_rng(self.config.seed)
        n_fit = min(n_components, positions.shape[0], positions.shape[1])
        init = np.zeros((positions.shape[0], n_components))
        init[:, :n_fit] = PCA(n_components=n_fit, random_state=self.config.seed).fit_transform(
            positions
        )
        span = init.max(axis=0) - init.min(axis=0)
        span[span == 0] = 1.0
        init = (init - init.min(axis=0)) / span
        # Break exact overlaps
        return init + rng.uniform(-1e-3, 1e-3, size=init.shape)

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        n_landmarks = landmarks.n_landmarks
        if n_landmarks < 2:
            raise InvalidConfiguration(f"k-NN layout needs at least 2 landmarks, got {n_landmarks}")

        n_neighbors = max(1, min(self.config.neighbor_count, n_landmarks - 1))
        iterations = self.config.iterations or DEFAULT_ITERATIONS

        adjacency = knn_adjacency(landmarks.positions, n_neighbors)
        init = self._initial_positions(landmarks.positions, n_components)
        logger.debug(
            f"k-NN force layout: {int(adjacency.sum() // 2)} edges, {iterations} iterations"
        )
        return fruchterman_reingold(adjacency, init, iterations)
