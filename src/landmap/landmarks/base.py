"""Base class for landmark generators."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

from landmap.constants import DEFAULT_SEED
from landmap.containers import Landmarks, as_dataset
from landmap.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


class LandmarkGenerator(ABC):
    """Produces a reduced set of representative points from a dataset.

    Subclasses implement ``_generate`` on an already validated float64
    dataset; ``generate`` handles validation and freezes the result.
    """

    name: str = "base"
    # Keyword options accepted by generate()
    generate_options: tuple[str, ...] = ()

    def __init__(self, seed: int | None = None):
        self.seed = DEFAULT_SEED if seed is None else int(seed)

    @property
    @abstractmethod
    def target_size(self) -> int:
        """Maximum number of landmarks this generator will produce."""
        pass

    @abstractmethod
    def _generate(self, data: np.ndarray, **kwargs) -> Landmarks:
        pass

    def generate(self, data, **kwargs) -> Landmarks:
        """Build a landmark set for ``data``.

        Args:
            data: Dataset of shape (n_points, n_features)
            **kwargs: Generator-specific options (e.g. SOM training callbacks)

        Returns:
            Frozen Landmarks with at most ``target_size`` entries

        Raises:
            InvalidConfiguration: If the dataset is invalid, smaller than the
                requested landmark count, or an option is not supported
        """
        unknown = sorted(set(kwargs) - set(self.generate_options))
        if unknown:
            raise InvalidConfiguration(
                f"{self.name} generator does not accept options {unknown}. "
                f"Supported options: {list(self.generate_options)}"
            )
        data = as_dataset(data)
        check_target_size(self.target_size, data.shape[0])

        logger.debug(
            f"{self.name}: generating up to {self.target_size} landmarks "
            f"from {data.shape[0]} points x {data.shape[1]} features"
        )
        landmarks = self._generate(data, **kwargs)
        landmarks.metadata.setdefault("generator", self.name)
        return landmarks.freeze()


def check_target_size(target: int, n_points: int) -> None:
    """Reject non-positive landmark counts and counts larger than the data."""
    if target <= 0:
        raise InvalidConfiguration(f"Landmark count must be positive, got {target}")
    if target > n_points:
        raise InvalidConfiguration(
            f"Requested {target} landmarks but the dataset has only {n_points} points"
        )


def check_positive(value, name: str) -> None:
    if value is None or value <= 0:
        raise InvalidConfiguration(f"{name} must be positive, got {value}")
