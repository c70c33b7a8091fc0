"""Shared utilities for Hydra-driven scripts."""

from __future__ import annotations

import logging
import random

import numpy as np
from omegaconf import DictConfig, OmegaConf

from landmap.landmarks import SOMSchedule
from landmap.layout import LayoutConfig
from landmap.pipeline import LandmarkEmbedder, build_embedder
from landmap.utils.logging_utils import setup_logging_from_config

logger = logging.getLogger(__name__)


def set_seed(seed: int) -> None:
    """Set global random seeds for reproducibility.

    Components take their own seeds; this covers any third-party code that
    draws from the global generators.

    Args:
        seed: Random seed value to set
    """
    random.seed(seed)
    np.random.seed(seed)
    logger.info(f"Set random seed to {seed}")


def _section(cfg: DictConfig, key: str) -> dict:
    """Return ``cfg[key]`` as a plain dict, or {} if missing."""
    node = cfg.get(key)
    if node is None:
        return {}
    return OmegaConf.to_container(node, resolve=True)


def build_embedder_from_config(cfg: DictConfig) -> LandmarkEmbedder:
    """Build a LandmarkEmbedder from the ``generator``/``layout``/``projector`` sections.

    Args:
        cfg: Hydra configuration object

    Returns:
        Configured LandmarkEmbedder
    """
    seed = cfg.get("seed", 42)

    generator_kwargs = _section(cfg, "generator")
    generator_name = generator_kwargs.pop("name", "som")
    if "shape" in generator_kwargs:
        generator_kwargs["shape"] = tuple(generator_kwargs["shape"])
    if "schedule" in generator_kwargs:
        generator_kwargs["schedule"] = SOMSchedule(**generator_kwargs["schedule"])

    layout_kwargs = _section(cfg, "layout")
    layout_name = layout_kwargs.pop("name", "grid")
    layout_options = layout_kwargs.pop("config", {}) or {}
    layout_config = LayoutConfig(seed=seed).with_overrides(**layout_options)

    projector_kwargs = _section(cfg, "projector")

    logger.info(f"Building embedder: generator={generator_name} layout={layout_name}")
    return build_embedder(
        generator=generator_name,
        layout=layout_name,
        n_components=cfg.get("n_components", 2),
        seed=seed,
        generator_kwargs=generator_kwargs,
        layout_config=layout_config,
        layout_kwargs=layout_kwargs,
        projector_kwargs=projector_kwargs,
    )


def setup_script_config(cfg: DictConfig) -> int:
    """Common setup for scripts: logging and seeding.

    Returns:
        The configured seed
    """
    setup_logging_from_config(cfg)
    seed = cfg.get("seed", 42)
    set_seed(seed)
    return seed
