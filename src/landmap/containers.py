"""Core data containers shared by generators, layouts and the projector.

This module defines the Topology, Landmarks and EmbeddingResult types and the
dataset validation used at every component boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

from landmap.errors import InvalidConfiguration

TOPOLOGY_KINDS = ("rectangular", "hexagonal")


def as_dataset(data, name: str = "data") -> NDArray[np.float64]:
    """Validate and convert input points to a 2D float64 array.

    Args:
        data: Array-like of shape (n_points, n_features)
        name: Name used in error messages

    Returns:
        Float64 array of shape (n_points, n_features). No copy is made when
        the input already is a float64 array.

    Raises:
        InvalidConfiguration: If the input is not 2D, is empty, or contains
            NaN or infinite values
    """
    arr = np.asarray(data, dtype=np.float64)
    if arr.ndim != 2:
        raise InvalidConfiguration(f"{name} must be a 2D array, got {arr.ndim}D")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidConfiguration(f"{name} is empty (shape {arr.shape})")
    if not np.all(np.isfinite(arr)):
        raise InvalidConfiguration(f"{name} contains NaN or infinite values")
    return arr


def build_grid_coords(shape: tuple[int, ...], kind: str = "rectangular") -> np.ndarray:
    """Build canonical grid coordinates for every node of a SOM grid.

    Nodes are enumerated in C order over ``shape`` so node ``i`` of a
    (rows, cols) grid sits at ``(i // cols, i % cols)``.

    Args:
        shape: Grid dimensions, 2 or 3 positive integers
        kind: "rectangular" or "hexagonal" (hexagonal requires a 2D grid)

    Returns:
        Array of shape (prod(shape), len(shape))
    """
    if len(shape) not in (2, 3):
        raise InvalidConfiguration(f"Grid must have 2 or 3 dimensions, got {len(shape)}")
    if any(int(s) <= 0 for s in shape):
        raise InvalidConfiguration(f"Grid dimensions must be positive, got {tuple(shape)}")
    if kind not in TOPOLOGY_KINDS:
        raise InvalidConfiguration(
            f"Unknown topology: {kind}. Available topologies: {list(TOPOLOGY_KINDS)}"
        )
    if kind == "hexagonal" and len(shape) != 2:
        raise InvalidConfiguration("Hexagonal topology is only defined for 2D grids")

    axes = [np.arange(int(s), dtype=np.float64) for s in shape]
    mesh = np.meshgrid(*axes, indexing="ij")
    coords = np.stack([m.ravel() for m in mesh], axis=1)

    if kind == "hexagonal":
        # Offset every other row and compress row spacing for equilateral cells
        rows = coords[:, 0].copy()
        coords[:, 1] += np.where(rows % 2 == 1, 0.5, 0.0)
        coords[:, 0] = rows * np.sqrt(3) / 2
    return coords


@dataclass(frozen=True, eq=False)
class Topology:
    """Grid adjacency for SOM-style landmark sets.

    ``grid_coords[i]`` is the position of landmark ``i`` on the map. The
    neighborhood used during training is a function of the Euclidean distance
    between these coordinates.
    """

    grid_coords: np.ndarray
    shape: tuple[int, ...] = ()
    kind: str = "rectangular"

    @classmethod
    def grid(cls, shape: tuple[int, ...], kind: str = "rectangular") -> Topology:
        shape = tuple(int(s) for s in shape)
        return cls(grid_coords=build_grid_coords(shape, kind), shape=shape, kind=kind)

    @property
    def n_nodes(self) -> int:
        return int(self.grid_coords.shape[0])

    @property
    def n_dims(self) -> int:
        return int(self.grid_coords.shape[1])

    def grid_distances(self, index: int) -> np.ndarray:
        """Distance on the map from node ``index`` to every node."""
        diff = self.grid_coords - self.grid_coords[index]
        return np.sqrt(np.sum(diff * diff, axis=1))

    def pairwise_sq_distances(self) -> np.ndarray:
        """Squared map distances between all node pairs, shape (M, M)."""
        diff = self.grid_coords[:, None, :] - self.grid_coords[None, :, :]
        return np.sum(diff * diff, axis=2)

    def normalized_coords(self) -> np.ndarray:
        """Grid coordinates rescaled to [0, 1] along each axis."""
        coords = self.grid_coords.astype(np.float64, copy=True)
        lo = coords.min(axis=0)
        span = coords.max(axis=0) - lo
        span[span == 0] = 1.0
        return (coords - lo) / span


@dataclass
class Landmarks:
    """A set of landmarks with optional topology and low-dimensional coords.

    Positions live in the dataset's feature space. ``coords`` is filled in by
    a layout provider once the positions are frozen.
    """

    positions: np.ndarray
    topology: Topology | None = None
    coords: np.ndarray | None = None
    frozen: bool = False
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        positions = np.asarray(self.positions, dtype=np.float64)
        # freeze() must not lock the caller's array
        if positions.flags.writeable:
            positions = positions.copy()
        self.positions = positions
        if self.positions.ndim != 2 or self.positions.shape[0] == 0:
            raise InvalidConfiguration(
                f"Landmark positions must be a non-empty 2D array, got shape {self.positions.shape}"
            )
        if self.topology is not None and self.topology.n_nodes != self.positions.shape[0]:
            raise InvalidConfiguration(
                f"Topology has {self.topology.n_nodes} nodes but there are "
                f"{self.positions.shape[0]} landmarks"
            )

    @property
    def n_landmarks(self) -> int:
        return int(self.positions.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.positions.shape[1])

    @property
    def has_coords(self) -> bool:
        return self.coords is not None

    def freeze(self) -> Landmarks:
        """Mark positions read-only. Returns self for chaining."""
        self.positions.setflags(write=False)
        self.frozen = True
        return self

    def with_coords(self, coords: np.ndarray) -> Landmarks:
        """Return a frozen copy of this landmark set carrying ``coords``."""
        coords = np.asarray(coords, dtype=np.float64)
        if coords.ndim != 2 or coords.shape[0] != self.n_landmarks:
            raise InvalidConfiguration(
                f"Expected coords of shape ({self.n_landmarks}, 2|3), got {coords.shape}"
            )
        coords = coords.copy()
        coords.setflags(write=False)
        if not self.frozen:
            self.freeze()
        return replace(self, coords=coords, metadata=dict(self.metadata))


@dataclass
class EmbeddingResult:
    """Low-dimensional coordinates for every dataset point.

    ``neighbor_indices`` and ``weights`` are the k nearest landmarks and
    interpolation weights used for each point, kept for diagnostics.
    """

    coords: np.ndarray
    neighbor_indices: np.ndarray | None = None
    weights: np.ndarray | None = None

    @property
    def n_points(self) -> int:
        return int(self.coords.shape[0])

    @property
    def n_components(self) -> int:
        return int(self.coords.shape[1])
