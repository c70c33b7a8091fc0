"""Exception types raised by landmap components."""

from __future__ import annotations


class LandmapError(Exception):
    """Base class for all landmap errors."""


class InvalidConfiguration(LandmapError, ValueError):
    """Raised when parameters or inputs are rejected before any work starts."""


class LayoutFailure(LandmapError, RuntimeError):
    """Raised when a layout algorithm fails or returns unusable coordinates."""
