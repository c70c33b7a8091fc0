"""Embed a point matrix stored as .npy through landmarks.

Usage:
    python scripts/embed_points.py input_path=data/points.npy
    python scripts/embed_points.py input_path=data/points.npy \\
        generator=gqtsom generator.target=150 layout.name=tsne
"""

from __future__ import annotations

import logging
from pathlib import Path

import hydra
import numpy as np
from omegaconf import DictConfig

from landmap.utils.script_utils import build_embedder_from_config, setup_script_config

logger = logging.getLogger(__name__)


@hydra.main(config_path="../configs", config_name="embed", version_base=None)
def main(cfg: DictConfig):
    seed = setup_script_config(cfg)
    logger.info(f"Running {cfg.run_name} with {seed=}")

    input_path = Path(hydra.utils.to_absolute_path(cfg.input_path))
    if not input_path.exists():
        raise FileNotFoundError(f"Input points not found: {input_path}")
    data = np.load(input_path)
    logger.info(f"Loaded {data.shape[0]} points x {data.shape[1]} features from {input_path}")

    embedder = build_embedder_from_config(cfg)
    result = embedder.fit_transform(data)

    output_path = Path(hydra.utils.to_absolute_path(cfg.output_path))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.save(output_path, result.coords)
    logger.info(f"Saved {result.coords.shape} coordinates to {output_path}")

    if cfg.get("save_landmarks", False):
        landmarks = embedder.landmarks_
        np.save(output_path.with_name("landmark_positions.npy"), landmarks.positions)
        np.save(output_path.with_name("landmark_coords.npy"), landmarks.coords)
        logger.info(f"Saved {landmarks.n_landmarks} landmarks next to {output_path.name}")


if __name__ == "__main__":
    main()
