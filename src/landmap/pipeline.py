"""End-to-end landmark embedding.

This module provides the LandmarkEmbedder class, which chains a landmark
generator, a layout provider and the embedding projector:

    dataset -> landmarks -> laid-out landmarks -> per-point coordinates
"""

from __future__ import annotations

import logging
import time
from typing import Any

import numpy as np

from landmap.containers import EmbeddingResult, Landmarks, as_dataset
from landmap.errors import InvalidConfiguration
from landmap.landmarks import LandmarkGenerator, get_generator
from landmap.layout import LayoutConfig, LayoutProvider, get_layout
from landmap.projection import EmbeddingProjector

logger = logging.getLogger(__name__)


class LandmarkEmbedder:
    """Main entry point for embedding a dataset through landmarks."""

    def __init__(
        self,
        generator: LandmarkGenerator,
        layout: LayoutProvider,
        projector: EmbeddingProjector | None = None,
        n_components: int = 2,
    ):
        """Initialize the embedder.

        Args:
            generator: Landmark generator
            layout: Layout provider applied to the generated landmarks
            projector: Projector for the dataset points. If None, uses
                EmbeddingProjector()
            n_components: Output dimensionality, 2 or 3
        """
        if n_components not in (2, 3):
            raise InvalidConfiguration(f"n_components must be 2 or 3, got {n_components}")
        self.generator = generator
        self.layout = layout
        self.projector = projector or EmbeddingProjector()
        self.n_components = n_components
        self.landmarks_: Landmarks | None = None

    def fit(self, data, **generator_kwargs) -> Landmarks:
        """Generate and lay out landmarks for ``data``.

        Args:
            data: Dataset of shape (n_points, n_features)
            **generator_kwargs: Passed to the generator (e.g. SOM callbacks)

        Returns:
            Laid-out landmarks, also stored as ``landmarks_``
        """
        data = as_dataset(data)

        start = time.time()
        landmarks = self.generator.generate(data, **generator_kwargs)
        logger.info(
            f"Generated {landmarks.n_landmarks} landmarks with {self.generator.name} "
            f"in {time.time() - start:.2f}s"
        )

        self.landmarks_ = self.layout.assign(landmarks, self.n_components)
        return self.landmarks_

    def transform(self, data) -> EmbeddingResult:
        """Project ``data`` through the fitted landmarks."""
        if self.landmarks_ is None:
            raise InvalidConfiguration("LandmarkEmbedder is not fitted. Call fit() first.")
        return self.projector.project(data, self.landmarks_)

    def fit_transform(self, data, **generator_kwargs) -> EmbeddingResult:
        """Fit landmarks on ``data`` and project it."""
        data = as_dataset(data)
        self.fit(data, **generator_kwargs)
        return self.transform(data)


def build_embedder(
    generator: str = "som",
    layout: str = "grid",
    n_components: int = 2,
    seed: int | None = None,
    generator_kwargs: dict[str, Any] | None = None,
    layout_config: LayoutConfig | None = None,
    layout_kwargs: dict[str, Any] | None = None,
    projector_kwargs: dict[str, Any] | None = None,
) -> LandmarkEmbedder:
    """Build a LandmarkEmbedder from registry names.

    Args:
        generator: Generator name (see ``landmap.landmarks.GENERATORS``)
        layout: Layout name (see ``landmap.layout.LAYOUTS``)
        n_components: Output dimensionality, 2 or 3
        seed: Seed applied to the generator and layout unless they set their own
        generator_kwargs: Generator constructor arguments
        layout_config: Shared layout options
        layout_kwargs: Layout constructor arguments
        projector_kwargs: EmbeddingProjector arguments
    """
    generator_kwargs = dict(generator_kwargs or {})
    if seed is not None:
        generator_kwargs.setdefault("seed", seed)
        if layout_config is None:
            layout_config = LayoutConfig(seed=seed)

    return LandmarkEmbedder(
        generator=get_generator(generator, **generator_kwargs),
        layout=get_layout(layout, layout_config, **(layout_kwargs or {})),
        projector=EmbeddingProjector(**(projector_kwargs or {})),
        n_components=n_components,
    )


def embed(
    data,
    generator: str = "som",
    layout: str = "grid",
    k: int = 5,
    n_components: int = 2,
    seed: int | None = None,
    **generator_kwargs,
) -> np.ndarray:
    """Embed ``data`` in one call and return the coordinates.

    Example:
        >>> coords = embed(points, generator="som", shape=(10, 10), epochs=10)
        >>> assert coords.shape == (len(points), 2)
    """
    embedder = build_embedder(
        generator=generator,
        layout=layout,
        n_components=n_components,
        seed=seed,
        generator_kwargs=generator_kwargs,
        projector_kwargs={"k": k},
    )
    return embedder.fit_transform(data).coords
