"""Landmark layout providers and their registry."""

from landmap.errors import InvalidConfiguration
from landmap.layout.base import LayoutConfig, LayoutProvider
from landmap.layout.grid import GridLayout, IdentityLayout
from landmap.layout.knn_force import KNNForceLayout
from landmap.layout.reducers import PCALayout, TSNELayout, UMAPLayout

LAYOUTS = {
    "grid": GridLayout,
    "identity": IdentityLayout,
    "knn": KNNForceLayout,
    "pca": PCALayout,
    "tsne": TSNELayout,
    "umap": UMAPLayout,
}


def get_layout(name: str, config: LayoutConfig | None = None, **kwargs) -> LayoutProvider:
    """Instantiate a layout provider by name.

    Args:
        name: Registered layout name (e.g., "grid", "umap")
        config: Shared layout options
        **kwargs: Provider-specific constructor arguments

    Raises:
        InvalidConfiguration: If the name is not registered
    """
    if name not in LAYOUTS:
        raise InvalidConfiguration(
            f"Unknown layout: {name}. Available layouts: {sorted(LAYOUTS.keys())}"
        )
    return LAYOUTS[name](config=config, **kwargs)


__all__ = [
    "GridLayout",
    "IdentityLayout",
    "KNNForceLayout",
    "LAYOUTS",
    "LayoutConfig",
    "LayoutProvider",
    "PCALayout",
    "TSNELayout",
    "UMAPLayout",
    "get_layout",
]
