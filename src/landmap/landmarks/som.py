"""Self-organizing map landmark generation.

Landmarks are SOM codebook vectors arranged on a fixed rectangular or
hexagonal grid. Training supports the classic online rule and the batch rule,
where each epoch is split into a read-only assignment phase that runs across
worker threads and a single update phase applied from accumulated sums.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.decomposition import PCA
from tqdm import tqdm

from landmap.constants import UNDERFLOW_EXPONENT
from landmap.containers import Landmarks, Topology
from landmap.errors import InvalidConfiguration
from landmap.landmarks.base import LandmarkGenerator
from landmap.utils.parallel import map_chunks

logger = logging.getLogger(__name__)

TRAINING_MODES = ("batch", "online")
INIT_STRATEGIES = ("sample", "pca")


@dataclass
class SOMSchedule:
    """Decay schedule for the neighborhood radius and learning rate.

    Both values decay exponentially from their start to their end value over
    the training epochs. ``sigma_start=None`` means half the largest grid side.
    ``alpha`` is only used by online training.
    """

    sigma_start: float | None = None
    sigma_end: float = 0.5
    alpha_start: float = 0.5
    alpha_end: float = 0.01

    def with_overrides(self, **kwargs) -> SOMSchedule:
        return replace(self, **kwargs)

    def sigma(self, epoch: int, n_epochs: int, default_start: float) -> float:
        start = self.sigma_start if self.sigma_start is not None else default_start
        return exponential_decay(start, min(self.sigma_end, start), epoch, n_epochs)

    def alpha(self, epoch: int, n_epochs: int) -> float:
        return exponential_decay(self.alpha_start, self.alpha_end, epoch, n_epochs)


def exponential_decay(start: float, end: float, step: int, n_steps: int) -> float:
    """Interpolate geometrically from ``start`` (step 0) to ``end`` (last step)."""
    if n_steps <= 1 or start <= 0 or end <= 0:
        return float(start)
    frac = step / (n_steps - 1)
    return float(start * (end / start) ** frac)


def neighborhood_matrix(grid_sq_dists: np.ndarray, sigma: float) -> np.ndarray:
    """Gaussian neighborhood weights from squared grid distances."""
    exponent = -grid_sq_dists / (2.0 * sigma * sigma + 1e-12)
    return np.exp(np.maximum(exponent, UNDERFLOW_EXPONENT))


@dataclass
class TrainingCheckpoint:
    """State handed to training callbacks at every epoch boundary."""

    epoch: int
    sigma: float
    alpha: float | None
    positions: np.ndarray
    quantization_error: float


def find_bmus(
    data: np.ndarray,
    positions: np.ndarray,
    chunk_size: int | None = None,
    n_workers: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Find the best-matching landmark for every point.

    Ties go to the lowest landmark index.

    Returns:
        Tuple of (bmu indices, squared distances to the bmu), both shape (n_points,)
    """

    def _assign(start: int, stop: int):
        dists = cdist(data[start:stop], positions, metric="sqeuclidean")
        idx = np.argmin(dists, axis=1)
        return idx, dists[np.arange(stop - start), idx]

    parts = map_chunks(_assign, data.shape[0], chunk_size, n_workers)
    bmus = np.concatenate([p[0] for p in parts])
    sq_dists = np.concatenate([p[1] for p in parts])
    return bmus, sq_dists


def accumulate_assignments(
    data: np.ndarray,
    positions: np.ndarray,
    chunk_size: int | None = None,
    n_workers: int | None = None,
) -> tuple[np.ndarray, np.ndarray, float]:
    """Batch-SOM assignment phase.

    Each chunk computes its own per-landmark sums and counts; partial results
    are merged in chunk order.

    Returns:
        Tuple of (sums (M, D), counts (M,), mean quantization error)
    """
    n_landmarks = positions.shape[0]

    def _partial(start: int, stop: int):
        chunk = data[start:stop]
        dists = cdist(chunk, positions, metric="sqeuclidean")
        idx = np.argmin(dists, axis=1)
        sums = np.zeros((n_landmarks, data.shape[1]))
        np.add.at(sums, idx, chunk)
        counts = np.bincount(idx, minlength=n_landmarks).astype(np.float64)
        qe = float(np.sqrt(dists[np.arange(stop - start), idx]).sum())
        return sums, counts, qe

    parts = map_chunks(_partial, data.shape[0], chunk_size, n_workers)

    sums = np.zeros((n_landmarks, data.shape[1]))
    counts = np.zeros(n_landmarks)
    qe_total = 0.0
    for part_sums, part_counts, part_qe in parts:
        sums += part_sums
        counts += part_counts
        qe_total += part_qe
    return sums, counts, qe_total / data.shape[0]


def batch_update(
    positions: np.ndarray,
    sums: np.ndarray,
    counts: np.ndarray,
    neighborhood: np.ndarray,
) -> np.ndarray:
    """Batch-SOM update phase.

    Every landmark moves to the neighborhood-weighted mean of the points
    assigned to it and its grid neighbors. Landmarks with no weight mass keep
    their position.
    """
    numerator = neighborhood @ sums
    denominator = neighborhood @ counts
    updated = positions.copy()
    mask = denominator > 1e-12
    updated[mask] = numerator[mask] / denominator[mask, None]
    return updated


def quantization_error(data: np.ndarray, positions: np.ndarray) -> float:
    """Mean Euclidean distance from each point to its best-matching landmark."""
    _, sq_dists = find_bmus(data, positions)
    return float(np.mean(np.sqrt(sq_dists)))


class GridSOM(LandmarkGenerator):
    """Self-organizing map on a fixed 2D or 3D grid.

    Each epoch assigns every point to its best-matching landmark and pulls
    that landmark and its grid neighbors toward the point, with a
    neighborhood radius that shrinks across epochs.
    """

    name = "som"
    generate_options = ("callback", "stop_event")

    def __init__(
        self,
        shape: tuple[int, ...] = (10, 10),
        epochs: int = 20,
        mode: str = "batch",
        topology: str = "rectangular",
        init: str = "sample",
        schedule: SOMSchedule | None = None,
        seed: int | None = None,
        n_workers: int | None = None,
        chunk_size: int | None = None,
        verbose: bool = False,
    ):
        """Initialize the SOM.

        Args:
            shape: Grid dimensions (2 or 3 positive ints)
            epochs: Number of training epochs (0 keeps the initialization)
            mode: "batch" or "online"
            topology: "rectangular" or "hexagonal"
            init: "sample" (random data points) or "pca" (principal plane)
            schedule: Neighborhood radius / learning rate decay schedule
            seed: Random seed for initialization and online visiting order
            n_workers: Worker threads for the batch assignment phase
            chunk_size: Points per assignment chunk
            verbose: Show a tqdm progress bar over epochs

        Raises:
            InvalidConfiguration: On invalid grid, mode, init or epoch count
        """
        super().__init__(seed=seed)
        if mode not in TRAINING_MODES:
            raise InvalidConfiguration(
                f"Unknown training mode: {mode}. Available modes: {list(TRAINING_MODES)}"
            )
        if init not in INIT_STRATEGIES:
            raise InvalidConfiguration(
                f"Unknown init strategy: {init}. Available strategies: {list(INIT_STRATEGIES)}"
            )
        if epochs is None or epochs < 0:
            raise InvalidConfiguration(f"epochs must be >= 0, got {epochs}")

        self.topology = Topology.grid(tuple(shape), kind=topology)
        self.shape = self.topology.shape
        self.epochs = int(epochs)
        self.mode = mode
        self.init = init
        self.schedule = schedule or SOMSchedule()
        self.n_workers = n_workers
        self.chunk_size = chunk_size
        self.verbose = verbose
        self.history: list[float] = []

        self._grid_sq_dists = self.topology.pairwise_sq_distances()

    @property
    def target_size(self) -> int:
        return self.topology.n_nodes

    @property
    def default_sigma(self) -> float:
        return max(self.shape) / 2.0

    def initialize(self, data: np.ndarray) -> np.ndarray:
        """Initial codebook for ``data``; deterministic given the seed."""
        rng = np.random.default_rng(self.seed)
        n_nodes = self.topology.n_nodes

        if self.init == "sample":
            indices = rng.choice(data.shape[0], size=n_nodes, replace=False)
            return data[indices].copy()

        n_components = min(self.topology.n_dims, data.shape[0], data.shape[1])
        pca = PCA(n_components=n_components, random_state=self.seed)
        pca.fit(data)
        # Spread nodes over +/- 2 std along each principal axis
        unit = self.topology.normalized_coords()[:, :n_components] * 2.0 - 1.0
        spread = 2.0 * np.sqrt(np.maximum(pca.explained_variance_, 0.0))
        return pca.mean_ + (unit * spread) @ pca.components_

    def train(
        self,
        data: np.ndarray,
        positions: np.ndarray,
        callback: Callable[[TrainingCheckpoint], bool | None] | None = None,
        stop_event: threading.Event | None = None,
    ) -> tuple[np.ndarray, int]:
        """Train ``positions`` on ``data`` for the configured number of epochs.

        The callback runs after every epoch; returning False stops training
        at that epoch boundary. ``stop_event`` is checked at the same points.

        Returns:
            Tuple of (trained positions, epochs completed)
        """
        rng = np.random.default_rng(self.seed + 1)
        self.history = []
        completed = 0

        for epoch in tqdm(
            range(self.epochs), desc="SOM epochs", unit="epoch", disable=not self.verbose
        ):
            if stop_event is not None and stop_event.is_set():
                logger.info(f"SOM training stopped before epoch {epoch}")
                break

            sigma = self.schedule.sigma(epoch, self.epochs, self.default_sigma)
            neighborhood = neighborhood_matrix(self._grid_sq_dists, sigma)

            if self.mode == "batch":
                alpha = None
                sums, counts, qe = accumulate_assignments(
                    data, positions, self.chunk_size, self.n_workers
                )
                positions = batch_update(positions, sums, counts, neighborhood)
            else:
                alpha = self.schedule.alpha(epoch, self.epochs)
                positions, qe = self._online_epoch(data, positions, neighborhood, alpha, rng)

            completed = epoch + 1
            self.history.append(qe)
            logger.debug(f"SOM epoch {completed}/{self.epochs}: sigma={sigma:.3f} qe={qe:.4f}")

            if callback is not None:
                checkpoint = TrainingCheckpoint(
                    epoch=completed,
                    sigma=sigma,
                    alpha=alpha,
                    positions=positions.copy(),
                    quantization_error=qe,
                )
                if callback(checkpoint) is False:
                    logger.info(f"SOM training aborted by callback after epoch {completed}")
                    break

        return positions, completed

    @staticmethod
    def _online_epoch(
        data: np.ndarray,
        positions: np.ndarray,
        neighborhood: np.ndarray,
        alpha: float,
        rng: np.random.Generator,
    ) -> tuple[np.ndarray, float]:
        positions = positions.copy()
        qe_total = 0.0
        for i in rng.permutation(data.shape[0]):
            point = data[i]
            diff = point - positions
            sq = np.einsum("ij,ij->i", diff, diff)
            bmu = int(np.argmin(sq))
            qe_total += float(np.sqrt(sq[bmu]))
            positions += (alpha * neighborhood[bmu])[:, None] * diff
        return positions, qe_total / data.shape[0]

    def _generate(
        self,
        data: np.ndarray,
        callback: Callable[[TrainingCheckpoint], bool | None] | None = None,
        stop_event: threading.Event | None = None,
    ) -> Landmarks:
        positions = self.initialize(data)
        positions, completed = self.train(data, positions, callback, stop_event)
        logger.info(
            f"Trained {'x'.join(map(str, self.shape))} {self.topology.kind} SOM "
            f"({self.mode}) for {completed} epochs"
        )
        return Landmarks(
            positions=positions,
            topology=self.topology,
            metadata={"epochs_completed": completed, "mode": self.mode},
        )
