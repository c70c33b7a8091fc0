"""Pytest configuration."""

import numpy as np
import pytest

from landmap.utils.logging_utils import setup_logging


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked @pytest.mark.slow (full t-SNE / UMAP optimizations).",
    )


def pytest_configure(config):
    """Configure logging for tests."""
    setup_logging(level="DEBUG")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless explicitly requested."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="slow; run with --run-slow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def blobs():
    """Three well separated Gaussian blobs in 5D, 100 points each."""
    rng = np.random.default_rng(0)
    centers = np.array(
        [
            [0.0, 0.0, 0.0, 0.0, 0.0],
            [5.0, 5.0, 0.0, 0.0, 0.0],
            [0.0, 5.0, 5.0, 5.0, 0.0],
        ]
    )
    points = [c + rng.normal(scale=0.5, size=(100, 5)) for c in centers]
    return np.vstack(points)


@pytest.fixture
def unit_square():
    return np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
