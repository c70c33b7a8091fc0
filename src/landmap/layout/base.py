"""Base class and configuration for landmark layout providers.

A layout provider assigns every landmark a 2D or 3D coordinate. Providers
that delegate to an external algorithm only ever see the landmark set, never
the full dataset.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

import numpy as np

from landmap.constants import DEFAULT_SEED
from landmap.containers import Landmarks
from landmap.errors import InvalidConfiguration, LayoutFailure

logger = logging.getLogger(__name__)


@dataclass
class LayoutConfig:
    """Options shared by all layout algorithms.

    Each algorithm reads the fields it understands and ignores the rest.
    """

    # UMAP minimum distance between embedded points
    min_distance: float = 0.1
    # Optimization steps; None keeps the algorithm's default
    iterations: int | None = None
    # Neighborhood size for UMAP and the k-NN force layout
    neighbor_count: int = 15
    seed: int = DEFAULT_SEED
    # t-SNE perplexity
    perplexity: float = 30.0
    # Additional kwargs passed to the underlying algorithm
    extra: dict = field(default_factory=dict)

    def with_overrides(self, **kwargs) -> LayoutConfig:
        """Return a new config with overrides applied."""
        return replace(self, **kwargs)


class LayoutProvider(ABC):
    """Assigns low-dimensional coordinates to a landmark set."""

    name: str = "base"

    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()

    @abstractmethod
    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        """Compute coordinates of shape (n_landmarks, n_components)."""
        pass

    def assign(self, landmarks: Landmarks, n_components: int = 2) -> Landmarks:
        """Lay out ``landmarks`` in ``n_components`` dimensions.

        Args:
            landmarks: Landmark set to lay out
            n_components: Output dimensionality, 2 or 3

        Returns:
            Frozen copy of ``landmarks`` carrying the new coordinates

        Raises:
            InvalidConfiguration: On a bad dimensionality or unsupported landmark set
            ImportError: If an optional layout dependency is not installed
            LayoutFailure: If the algorithm fails or returns unusable coordinates
        """
        if n_components not in (2, 3):
            raise InvalidConfiguration(f"n_components must be 2 or 3, got {n_components}")

        start = time.time()
        try:
            coords = self._layout(landmarks, n_components)
        except (InvalidConfiguration, ImportError):
            raise
        except Exception as e:
            raise LayoutFailure(f"{self.name} layout failed: {e}") from e

        coords = check_coords(coords, landmarks.n_landmarks, n_components, self.name)
        logger.info(
            f"{self.name} layout of {landmarks.n_landmarks} landmarks "
            f"({n_components}D) in {time.time() - start:.2f}s"
        )
        result = landmarks.with_coords(coords)
        result.metadata["layout"] = self.name
        return result


def check_coords(coords, n_landmarks: int, n_components: int, name: str) -> np.ndarray:
    """Reject layouts with the wrong shape or non-finite values."""
    coords = np.asarray(coords, dtype=np.float64)
    if coords.shape != (n_landmarks, n_components):
        raise LayoutFailure(
            f"{name} layout returned shape {coords.shape}, "
            f"expected ({n_landmarks}, {n_components})"
        )
    if not np.all(np.isfinite(coords)):
        n_bad = int(np.sum(~np.isfinite(coords).all(axis=1)))
        raise LayoutFailure(f"{name} layout produced non-finite coordinates for {n_bad} landmarks")
    return coords
