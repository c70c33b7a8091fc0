"""Logging setup for landmap scripts and tests."""

from __future__ import annotations

import logging
import sys
from pathlib import Path


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that adds colors to console output based on log level."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[90m",  # Gray
        "INFO": "\033[36m",  # Cyan
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[1;31m",  # Bold Red
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with color codes."""
        # Work on a copy so file handlers see the plain record
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        record.name = f"{self.DIM}{record.name}{self.RESET}"
        return super().format(record)


def setup_logging(level: str = "INFO", output_file: str | None = None) -> None:
    """Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        output_file: Optional file path to write logs to
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    format_string = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        ColoredConsoleFormatter(format_string, datefmt="%H:%M:%S")
    )
    root_logger.addHandler(console_handler)

    if output_file:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(output_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

    # Suppress noisy third-party packages
    for package in ["numba", "umap", "pynndescent", "matplotlib", "PIL"]:
        logging.getLogger(package).setLevel(logging.WARNING)


def setup_logging_from_config(cfg) -> None:
    """Set up logging from Hydra config.

    Args:
        cfg: Hydra config with logging settings
    """
    level = getattr(cfg.logging, "level", "INFO")
    output_file = getattr(cfg.logging, "output_file", None)
    setup_logging(level=level, output_file=output_file)
