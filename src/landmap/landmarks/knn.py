"""Density-peak landmarks picked from a k-nearest-neighbor graph."""

from __future__ import annotations

import logging

import numpy as np
from sklearn.neighbors import NearestNeighbors

from landmap.containers import Landmarks
from landmap.landmarks.base import LandmarkGenerator, check_positive

logger = logging.getLogger(__name__)


class KNNLandmarks(LandmarkGenerator):
    """Pick landmarks at local density peaks of the k-NN graph.

    Points are ranked by density (inverse mean distance to their k nearest
    neighbors). Picking a point suppresses its graph neighbors so landmarks
    spread over the data; when every point is picked or suppressed the
    remaining quota is filled with the densest unpicked points.
    """

    name = "knn"

    def __init__(self, target: int = 100, n_neighbors: int = 10, seed: int | None = None):
        super().__init__(seed=seed)
        check_positive(target, "target")
        check_positive(n_neighbors, "n_neighbors")
        self.target = int(target)
        self.n_neighbors = int(n_neighbors)
        self.indices: np.ndarray | None = None

    @property
    def target_size(self) -> int:
        return self.target

    def _generate(self, data: np.ndarray) -> Landmarks:
        n_points = data.shape[0]
        n_neighbors = min(self.n_neighbors, n_points - 1)

        if n_neighbors < 1:
            self.indices = np.arange(n_points)[: self.target]
            return Landmarks(positions=data[self.indices].copy())

        nn = NearestNeighbors(n_neighbors=n_neighbors + 1).fit(data)
        distances, neighbors = nn.kneighbors(data)
        # Column 0 is the point itself
        distances, neighbors = distances[:, 1:], neighbors[:, 1:]

        density = 1.0 / (distances.mean(axis=1) + 1e-12)
        order = np.argsort(-density, kind="stable")

        picked: list[int] = []
        suppressed = np.zeros(n_points, dtype=bool)
        for idx in order:
            if len(picked) >= self.target:
                break
            if suppressed[idx]:
                continue
            picked.append(int(idx))
            suppressed[idx] = True
            suppressed[neighbors[idx]] = True

        n_peaks = len(picked)
        if n_peaks < self.target:
            chosen = set(picked)
            for idx in order:
                if len(picked) >= self.target:
                    break
                if int(idx) not in chosen:
                    picked.append(int(idx))

        logger.debug(f"kNN landmarks: {n_peaks} density peaks, {len(picked) - n_peaks} fill-ins")
        self.indices = np.array(picked)
        return Landmarks(
            positions=data[self.indices].copy(),
            metadata={"indices": self.indices, "n_peaks": n_peaks},
        )
