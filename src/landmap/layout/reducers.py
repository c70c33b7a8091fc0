"""Layouts delegated to external dimensionality reduction algorithms.

t-SNE and PCA come from scikit-learn, UMAP from umap-learn. They run on the
landmark positions only.
"""

from __future__ import annotations

import numpy as np
from sklearn.decomposition import PCA
from sklearn.manifold import TSNE
from sklearn.preprocessing import StandardScaler

from landmap.containers import Landmarks
from landmap.errors import InvalidConfiguration
from landmap.layout.base import LayoutProvider

# Optional dependencies with graceful degradation
try:
    import umap

    HAS_UMAP = True
except ImportError:
    HAS_UMAP = False


class TSNELayout(LayoutProvider):
    """t-SNE layout using scikit-learn."""

    name = "tsne"

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        n_samples = landmarks.n_landmarks
        if n_samples < 3:
            raise InvalidConfiguration(f"t-SNE needs at least 3 landmarks, got {n_samples}")

        # Perplexity must stay below the number of samples
        perplexity = min(self.config.perplexity, (n_samples - 1) / 3.0)
        perplexity = max(perplexity, 1.0)

        kwargs = dict(self.config.extra)
        if self.config.iterations is not None:
            kwargs["max_iter"] = self.config.iterations

        tsne = TSNE(
            n_components=n_components,
            perplexity=perplexity,
            init="pca",
            random_state=self.config.seed,
            **kwargs,
        )
        return tsne.fit_transform(landmarks.positions)


class UMAPLayout(LayoutProvider):
    """UMAP layout using umap-learn."""

    name = "umap"

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        if not HAS_UMAP:
            raise ImportError(
                "umap-learn is required for UMAP. "
                "Install it with: pip install -e '.[umap]'"
            )
        n_samples = landmarks.n_landmarks
        if n_samples < 3:
            raise InvalidConfiguration(f"UMAP needs at least 3 landmarks, got {n_samples}")

        n_neighbors = max(2, min(self.config.neighbor_count, n_samples - 1))

        kwargs = dict(self.config.extra)
        if self.config.iterations is not None:
            kwargs["n_epochs"] = self.config.iterations

        reducer = umap.UMAP(
            n_components=n_components,
            n_neighbors=n_neighbors,
            min_dist=self.config.min_distance,
            random_state=self.config.seed,
            **kwargs,
        )
        return reducer.fit_transform(landmarks.positions)


class PCALayout(LayoutProvider):
    """Linear layout: standardization followed by PCA.

    Components beyond the data's rank are padded with zeros.
    """

    name = "pca"

    def __init__(self, config=None, whiten: bool = False):
        super().__init__(config)
        self.whiten = whiten
        self.explained_variance_ratio_ = None

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        positions = landmarks.positions
        scaled = StandardScaler().fit_transform(positions)
        n_fit = min(n_components, positions.shape[0], positions.shape[1])

        pca = PCA(
            n_components=n_fit,
            whiten=self.whiten,
            random_state=self.config.seed,
            **self.config.extra,
        )
        coords = pca.fit_transform(scaled)
        self.explained_variance_ratio_ = pca.explained_variance_ratio_

        if n_fit < n_components:
            coords = np.hstack([coords, np.zeros((coords.shape[0], n_components - n_fit))])
        return coords
