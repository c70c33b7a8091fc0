"""Growing quantized-tree SOM.

The map starts with a single landmark covering the unit square. After each
level of batch training, empty landmarks are dropped and densely populated
ones are split into up to four children placed in the quadrants of their
parent's cell, until the requested landmark count is reached.
"""

from __future__ import annotations

import logging

import numpy as np
from tqdm import tqdm

from landmap.containers import Landmarks, Topology
from landmap.errors import InvalidConfiguration
from landmap.landmarks.base import LandmarkGenerator, check_positive
from landmap.landmarks.som import (
    accumulate_assignments,
    batch_update,
    find_bmus,
    neighborhood_matrix,
)

logger = logging.getLogger(__name__)

# Quadrant offsets in units of the parent cell side
QUADRANTS = np.array([[-0.25, -0.25], [-0.25, 0.25], [0.25, -0.25], [0.25, 0.25]])


class GQTSOM(LandmarkGenerator):
    """SOM whose nodes form an adaptively refined quadtree.

    Resolution follows data density: nodes that attract at least
    ``split_threshold`` times the mean load are refined and nodes that attract
    no points are removed.
    """

    name = "gqtsom"

    def __init__(
        self,
        target: int = 100,
        max_levels: int = 10,
        epochs_per_level: int = 5,
        split_threshold: float = 1.0,
        sigma_scale: float = 1.0,
        jitter: float = 0.1,
        seed: int | None = None,
        n_workers: int | None = None,
        chunk_size: int | None = None,
        verbose: bool = False,
    ):
        """Initialize the growing SOM.

        Args:
            target: Maximum number of landmarks
            max_levels: Maximum number of refinement levels
            epochs_per_level: Batch epochs trained at every level
            split_threshold: Split nodes whose load exceeds this multiple of the mean
            sigma_scale: Neighborhood radius in units of the finest cell side
            jitter: Child offset scale relative to the parent's local spread
            seed: Random seed for child placement
            n_workers: Worker threads for the assignment phase
            chunk_size: Points per assignment chunk
            verbose: Show a tqdm progress bar over levels
        """
        super().__init__(seed=seed)
        check_positive(target, "target")
        check_positive(max_levels, "max_levels")
        check_positive(sigma_scale, "sigma_scale")
        if epochs_per_level < 0:
            raise InvalidConfiguration(f"epochs_per_level must be >= 0, got {epochs_per_level}")
        if split_threshold < 0:
            raise InvalidConfiguration(f"split_threshold must be >= 0, got {split_threshold}")

        self.target = int(target)
        self.max_levels = int(max_levels)
        self.epochs_per_level = int(epochs_per_level)
        self.split_threshold = float(split_threshold)
        self.sigma_scale = float(sigma_scale)
        self.jitter = float(jitter)
        self.n_workers = n_workers
        self.chunk_size = chunk_size
        self.verbose = verbose
        self.history: list[dict] = []

    @property
    def target_size(self) -> int:
        return self.target

    def _train_level(
        self,
        data: np.ndarray,
        positions: np.ndarray,
        centers: np.ndarray,
        sides: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        diff = centers[:, None, :] - centers[None, :, :]
        grid_sq = np.sum(diff * diff, axis=2)
        neighborhood = neighborhood_matrix(grid_sq, self.sigma_scale * float(sides.min()))

        for _ in range(self.epochs_per_level):
            sums, counts, _ = accumulate_assignments(
                data, positions, self.chunk_size, self.n_workers
            )
            positions = batch_update(positions, sums, counts, neighborhood)

        # Loads against the trained positions
        _, counts, _ = accumulate_assignments(data, positions, self.chunk_size, self.n_workers)
        return positions, counts

    def _split(
        self,
        data: np.ndarray,
        positions: np.ndarray,
        centers: np.ndarray,
        sides: np.ndarray,
        loads: np.ndarray,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, int]:
        mean_load = float(loads.mean())
        order = np.argsort(-loads, kind="stable")
        candidates = [
            int(i) for i in order if loads[i] > 0 and loads[i] >= self.split_threshold * mean_load
        ]
        if not candidates:
            return positions, centers, sides, 0

        bmus, _ = find_bmus(data, positions, self.chunk_size, self.n_workers)
        budget = self.target - positions.shape[0]
        split_children: dict[int, int] = {}
        for idx in candidates:
            if budget <= 0:
                break
            n_children = min(4, budget + 1)
            split_children[idx] = n_children
            budget -= n_children - 1

        new_positions, new_centers, new_sides = [], [], []
        for idx in range(positions.shape[0]):
            n_children = split_children.get(idx)
            if n_children is None:
                new_positions.append(positions[idx][None, :])
                new_centers.append(centers[idx][None, :])
                new_sides.append(sides[idx : idx + 1])
                continue

            members = data[bmus == idx]
            spread = members.std(axis=0) if members.shape[0] > 1 else np.zeros(data.shape[1])
            offsets = rng.standard_normal((n_children, data.shape[1])) * spread * self.jitter
            new_positions.append(positions[idx] + offsets)
            new_centers.append(centers[idx] + QUADRANTS[:n_children] * sides[idx])
            new_sides.append(np.full(n_children, sides[idx] / 2.0))

        return (
            np.vstack(new_positions),
            np.vstack(new_centers),
            np.concatenate(new_sides),
            len(split_children),
        )

    def _generate(self, data: np.ndarray) -> Landmarks:
        rng = np.random.default_rng(self.seed)
        positions = data.mean(axis=0, keepdims=True)
        centers = np.array([[0.5, 0.5]])
        sides = np.array([1.0])
        self.history = []

        for level in tqdm(
            range(self.max_levels), desc="GQTSOM levels", unit="level", disable=not self.verbose
        ):
            positions, loads = self._train_level(data, positions, centers, sides)

            keep = loads > 0
            if not keep.any():
                keep[int(np.argmax(loads))] = True
            if not keep.all():
                logger.debug(f"GQTSOM level {level}: removing {int((~keep).sum())} empty nodes")
                positions, centers, sides, loads = (
                    positions[keep],
                    centers[keep],
                    sides[keep],
                    loads[keep],
                )

            self.history.append({"level": level, "n_landmarks": int(positions.shape[0])})
            if positions.shape[0] >= self.target:
                break

            positions, centers, sides, n_split = self._split(
                data, positions, centers, sides, loads, rng
            )
            logger.debug(
                f"GQTSOM level {level}: split {n_split} nodes -> {positions.shape[0]} landmarks"
            )
            if n_split == 0:
                break

        positions, _ = self._train_level(data, positions, centers, sides)
        logger.info(f"GQTSOM grew {positions.shape[0]} landmarks over {len(self.history)} levels")
        return Landmarks(
            positions=positions,
            topology=Topology(grid_coords=centers, shape=(), kind="quadtree"),
            metadata={"levels": len(self.history), "cell_sides": sides},
        )
