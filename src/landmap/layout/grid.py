"""Layouts read directly from the landmark set."""

from __future__ import annotations

import numpy as np

from landmap.containers import Landmarks
from landmap.errors import InvalidConfiguration
from landmap.layout.base import LayoutProvider


class GridLayout(LayoutProvider):
    """Use the topology's own grid coordinates as the layout.

    A 2D grid laid out in 3D gets a zero third coordinate.
    """

    name = "grid"

    def __init__(self, config=None, normalize: bool = False):
        super().__init__(config)
        self.normalize = normalize

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        topology = landmarks.topology
        if topology is None:
            raise InvalidConfiguration(
                "Grid layout requires a landmark set with a topology (e.g. from a SOM)"
            )
        if topology.n_dims > n_components:
            raise InvalidConfiguration(
                f"Cannot lay out a {topology.n_dims}D grid in {n_components} dimensions"
            )

        coords = topology.normalized_coords() if self.normalize else topology.grid_coords.copy()
        if topology.n_dims < n_components:
            padding = np.zeros((coords.shape[0], n_components - topology.n_dims))
            coords = np.hstack([coords, padding])
        return coords


class IdentityLayout(LayoutProvider):
    """Use the first ``n_components`` features of each landmark as its coordinate.

    For data whose feature space already is the target space, e.g. 2D or 3D
    point clouds.
    """

    name = "identity"

    def _layout(self, landmarks: Landmarks, n_components: int) -> np.ndarray:
        if landmarks.n_features < n_components:
            raise InvalidConfiguration(
                f"Identity layout needs at least {n_components} features, "
                f"landmarks have {landmarks.n_features}"
            )
        return landmarks.positions[:, :n_components].copy()
