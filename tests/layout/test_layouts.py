"""Tests for landmark layout providers."""

import numpy as np
import pytest

from landmap.containers import Landmarks, Topology
from landmap.errors import InvalidConfiguration, LayoutFailure
from landmap.layout import (
    LAYOUTS,
    GridLayout,
    IdentityLayout,
    KNNForceLayout,
    LayoutConfig,
    LayoutProvider,
    PCALayout,
    TSNELayout,
    UMAPLayout,
    get_layout,
)
from landmap.layout.knn_force import knn_adjacency


@pytest.fixture
def landmarks(blobs):
    rng = np.random.default_rng(1)
    return Landmarks(positions=blobs[rng.choice(len(blobs), size=40, replace=False)])


@pytest.fixture
def grid_landmarks():
    rng = np.random.default_rng(2)
    return Landmarks(positions=rng.normal(size=(12, 4)), topology=Topology.grid((3, 4)))


class _NaNLayout(LayoutProvider):
    name = "nan"

    def _layout(self, landmarks, n_components):
        coords = np.zeros((landmarks.n_landmarks, n_components))
        coords[0, 0] = np.nan
        return coords


class _BrokenLayout(LayoutProvider):
    name = "broken"

    def _layout(self, landmarks, n_components):
        raise RuntimeError("did not converge")


class _ShortLayout(LayoutProvider):
    name = "short"

    def _layout(self, landmarks, n_components):
        return np.zeros((landmarks.n_landmarks - 1, n_components))


class TestLayoutFailure:
    def test_non_finite_coordinates(self, landmarks):
        with pytest.raises(LayoutFailure, match="non-finite coordinates for 1 landmarks"):
            _NaNLayout().assign(landmarks)

    def test_algorithm_error_is_wrapped(self, landmarks):
        with pytest.raises(LayoutFailure, match="did not converge") as excinfo:
            _BrokenLayout().assign(landmarks)
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_wrong_shape(self, landmarks):
        with pytest.raises(LayoutFailure, match="returned shape"):
            _ShortLayout().assign(landmarks)

    def test_failure_leaves_landmarks_without_coords(self, landmarks):
        with pytest.raises(LayoutFailure):
            _NaNLayout().assign(landmarks)
        assert not landmarks.has_coords


class TestGridLayout:
    def test_uses_grid_coordinates(self, grid_landmarks):
        laid_out = GridLayout().assign(grid_landmarks, n_components=2)
        np.testing.assert_array_equal(laid_out.coords, grid_landmarks.topology.grid_coords)
        assert laid_out.metadata["layout"] == "grid"

    def test_pads_third_dimension(self, grid_landmarks):
        laid_out = GridLayout().assign(grid_landmarks, n_components=3)
        assert laid_out.coords.shape == (12, 3)
        np.testing.assert_array_equal(laid_out.coords[:, 2], 0.0)

    def test_normalized(self, grid_landmarks):
        laid_out = GridLayout(normalize=True).assign(grid_landmarks)
        assert laid_out.coords.min() == 0.0
        assert laid_out.coords.max() == 1.0

    def test_requires_topology(self, landmarks):
        with pytest.raises(InvalidConfiguration, match="requires a landmark set with a topology"):
            GridLayout().assign(landmarks)

    def test_three_dimensional_grid_in_two_dimensions(self):
        landmarks = Landmarks(positions=np.zeros((8, 3)), topology=Topology.grid((2, 2, 2)))
        with pytest.raises(InvalidConfiguration, match="3D grid in 2 dimensions"):
            GridLayout().assign(landmarks, n_components=2)


class TestIdentityLayout:
    def test_copies_leading_features(self, landmarks):
        laid_out = IdentityLayout().assign(landmarks, n_components=3)
        np.testing.assert_array_equal(laid_out.coords, landmarks.positions[:, :3])

    def test_needs_enough_features(self):
        landmarks = Landmarks(positions=np.zeros((5, 2)))
        with pytest.raises(InvalidConfiguration, match="at least 3 features"):
            IdentityLayout().assign(landmarks, n_components=3)


class TestPCALayout:
    @pytest.mark.parametrize("n_components", [2, 3])
    def test_shape(self, landmarks, n_components):
        layout = PCALayout()
        laid_out = layout.assign(landmarks, n_components=n_components)
        assert laid_out.coords.shape == (40, n_components)
        assert layout.explained_variance_ratio_ is not None

    def test_pads_low_rank_data(self):
        landmarks = Landmarks(positions=np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 0.0]]))
        laid_out = PCALayout().assign(landmarks, n_components=3)
        np.testing.assert_array_equal(laid_out.coords[:, 2], 0.0)


class TestKNNForceLayout:
    def test_adjacency_is_symmetric(self, landmarks):
        adjacency = knn_adjacency(landmarks.positions, n_neighbors=4)
        np.testing.assert_array_equal(adjacency, adjacency.T)
        np.testing.assert_array_equal(np.diag(adjacency), 0.0)
        assert np.all(adjacency.sum(axis=1) >= 4)

    @pytest.mark.parametrize("n_components", [2, 3])
    def test_finite_and_deterministic(self, landmarks, n_components):
        config = LayoutConfig(neighbor_count=5, iterations=50, seed=3)
        first = KNNForceLayout(config).assign(landmarks, n_components=n_components)
        second = KNNForceLayout(config).assign(landmarks, n_components=n_components)

        assert first.coords.shape == (40, n_components)
        assert np.all(np.isfinite(first.coords))
        np.testing.assert_array_equal(first.coords, second.coords)


    def test_needs_two_landmarks(self):
        with pytest.raises(InvalidConfiguration, match="at least 2 landmarks"):
            KNNForceLayout().assign(Landmarks(positions=np.zeros((1, 3))))


@pytest.mark.slow
def test_tsne_layout(landmarks):
    laid_out = TSNELayout(LayoutConfig(perplexity=10.0, seed=0)).assign(landmarks)
    assert laid_out.coords.shape == (40, 2)
    assert np.all(np.isfinite(laid_out.coords))


def test_tsne_rejects_tiny_landmark_sets():
    with pytest.raises(InvalidConfiguration, match="at least 3 landmarks"):
        TSNELayout().assign(Landmarks(positions=np.zeros((2, 3))))


def test_missing_umap_is_an_import_error(landmarks, monkeypatch):
    monkeypatch.setattr("landmap.layout.reducers.HAS_UMAP", False)
    with pytest.raises(ImportError, match="umap-learn is required"):
        UMAPLayout().assign(landmarks)


@pytest.mark.slow
def test_umap_layout(landmarks):
    pytest.importorskip("umap")
    laid_out = UMAPLayout(LayoutConfig(neighbor_count=10, seed=0)).assign(
        landmarks, n_components=3
    )
    assert laid_out.coords.shape == (40, 3)
    assert np.all(np.isfinite(laid_out.coords))


class TestRegistry:
    def test_names(self):
        assert set(LAYOUTS) == {"grid", "identity", "knn", "pca", "tsne", "umap"}

    def test_get_layout_passes_config(self):
        config = LayoutConfig(seed=11)
        layout = get_layout("knn", config)
        assert isinstance(layout, KNNForceLayout)
        assert layout.config.seed == 11

    def test_get_layout_passes_kwargs(self):
        layout = get_layout("grid", normalize=True)
        assert layout.normalize

    def test_unknown_layout(self):
        with pytest.raises(InvalidConfiguration, match="Unknown layout"):
            get_layout("isomap")

    @pytest.mark.parametrize("n_components", [1, 4])
    def test_invalid_dimensionality(self, grid_landmarks, n_components):
        with pytest.raises(InvalidConfiguration, match="n_components must be 2 or 3"):
            GridLayout().assign(grid_landmarks, n_components=n_components)


def test_layout_config_overrides():
    config = LayoutConfig(min_distance=0.3)
    updated = config.with_overrides(seed=5)
    assert updated.seed == 5
    assert updated.min_distance == 0.3
    assert config.seed == LayoutConfig().seed
