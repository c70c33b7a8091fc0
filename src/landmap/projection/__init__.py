"""Embedding projection through nearest landmarks."""

from landmap.projection.kernels import KERNELS
from landmap.projection.projector import EmbeddingProjector, nearest_landmarks

__all__ = ["EmbeddingProjector", "KERNELS", "nearest_landmarks"]
