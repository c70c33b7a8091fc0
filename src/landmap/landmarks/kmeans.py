"""K-means landmark generation."""

from __future__ import annotations

import logging

import numpy as np
from sklearn.cluster import KMeans

from landmap.containers import Landmarks
from landmap.errors import InvalidConfiguration
from landmap.landmarks.base import LandmarkGenerator, check_positive

logger = logging.getLogger(__name__)

# Set from the generator's own arguments
RESERVED_PARAMS = {"n_clusters", "n_init", "max_iter", "random_state"}


class KMeansLandmarks(LandmarkGenerator):
    """Landmarks are k-means cluster centroids. No topology."""

    name = "kmeans"

    def __init__(
        self,
        target: int = 100,
        n_init: int = 1,
        max_iter: int = 300,
        seed: int | None = None,
        **kwargs,
    ):
        """Initialize k-means landmarks.

        Args:
            target: Number of centroids
            n_init: Number of k-means restarts
            max_iter: Maximum Lloyd iterations per restart
            seed: Random seed for centroid initialization
            **kwargs: Additional arguments passed to KMeans
        """
        super().__init__(seed=seed)
        check_positive(target, "target")
        check_positive(n_init, "n_init")
        check_positive(max_iter, "max_iter")
        unknown = set(kwargs) - (set(KMeans().get_params()) - RESERVED_PARAMS)
        if unknown:
            raise InvalidConfiguration(f"Unknown KMeans arguments: {sorted(unknown)}")
        self.target = int(target)
        self.n_init = int(n_init)
        self.max_iter = int(max_iter)
        self.kwargs = kwargs
        self.inertia_: float | None = None

    @property
    def target_size(self) -> int:
        return self.target

    def _generate(self, data: np.ndarray) -> Landmarks:
        kmeans = KMeans(
            n_clusters=self.target,
            n_init=self.n_init,
            max_iter=self.max_iter,
            random_state=self.seed,
            **self.kwargs,
        )
        kmeans.fit(data)
        self.inertia_ = float(kmeans.inertia_)
        logger.info(
            f"k-means converged after {kmeans.n_iter_} iterations (inertia={self.inertia_:.4g})"
        )
        return Landmarks(
            positions=kmeans.cluster_centers_,
            metadata={"n_iter": int(kmeans.n_iter_)},
        )
