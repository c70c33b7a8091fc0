"""Random-sample landmark generation."""

from __future__ import annotations

import numpy as np

from landmap.containers import Landmarks
from landmap.landmarks.base import LandmarkGenerator, check_positive


class RandomLandmarks(LandmarkGenerator):
    """Landmarks are a uniform random sample of the dataset.

    No training and no topology; all structure comes from the layout.
    """

    name = "random"

    def __init__(self, target: int = 100, seed: int | None = None):
        super().__init__(seed=seed)
        check_positive(target, "target")
        self.target = int(target)
        self.indices: np.ndarray | None = None

    @property
    def target_size(self) -> int:
        return self.target

    def _generate(self, data: np.ndarray) -> Landmarks:
        rng = np.random.default_rng(self.seed)
        self.indices = np.sort(rng.choice(data.shape[0], size=self.target, replace=False))
        return Landmarks(
            positions=data[self.indices].copy(),
            metadata={"indices": self.indices},
        )
