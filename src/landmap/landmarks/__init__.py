"""Landmark generators and their registry."""

import inspect

from landmap.errors import InvalidConfiguration
from landmap.landmarks.base import LandmarkGenerator
from landmap.landmarks.gqtsom import GQTSOM
from landmap.landmarks.kmeans import KMeansLandmarks
from landmap.landmarks.knn import KNNLandmarks
from landmap.landmarks.sampling import RandomLandmarks
from landmap.landmarks.som import GridSOM, SOMSchedule, TrainingCheckpoint

GENERATORS = {
    "som": GridSOM,
    "gqtsom": GQTSOM,
    "kmeans": KMeansLandmarks,
    "random": RandomLandmarks,
    "knn": KNNLandmarks,
}


def get_generator(name: str, **kwargs) -> LandmarkGenerator:
    """Instantiate a landmark generator by name.

    Args:
        name: Registered generator name (e.g., "som", "kmeans")
        **kwargs: Arguments passed to the generator constructor

    Raises:
        InvalidConfiguration: If the name is not registered or the arguments
            do not match the generator's constructor
    """
    if name not in GENERATORS:
        raise InvalidConfiguration(
            f"Unknown landmark generator: {name}. "
            f"Available generators: {sorted(GENERATORS.keys())}"
        )
    cls = GENERATORS[name]
    try:
        inspect.signature(cls).bind(**kwargs)
    except TypeError as e:
        raise InvalidConfiguration(f"Invalid arguments for generator {name}: {e}") from e
    return cls(**kwargs)


__all__ = [
    "GENERATORS",
    "GQTSOM",
    "GridSOM",
    "KMeansLandmarks",
    "KNNLandmarks",
    "LandmarkGenerator",
    "RandomLandmarks",
    "SOMSchedule",
    "TrainingCheckpoint",
    "get_generator",
]
