"""Tests for grid SOM landmark generation."""

import threading

import numpy as np
import pytest

from landmap.errors import InvalidConfiguration
from landmap.landmarks import GridSOM, SOMSchedule
from landmap.landmarks.som import (
    accumulate_assignments,
    batch_update,
    exponential_decay,
    find_bmus,
    neighborhood_matrix,
    quantization_error,
)
from landmap.layout import GridLayout


class TestUntrainedMap:
    def test_zero_epochs_keeps_initialization(self, blobs):
        som = GridSOM(shape=(4, 4), epochs=0, seed=3)
        landmarks = som.generate(blobs)

        np.testing.assert_array_equal(landmarks.positions, som.initialize(blobs))
        assert landmarks.metadata["epochs_completed"] == 0
        assert som.history == []

    def test_zero_epochs_grid_layout_is_canonical(self, blobs):
        landmarks = GridSOM(shape=(4, 4), epochs=0, seed=3).generate(blobs)
        laid_out = GridLayout().assign(landmarks, n_components=2)

        expected = np.array([[i // 4, i % 4] for i in range(16)], dtype=float)
        np.testing.assert_array_equal(laid_out.coords, expected)

    def test_sample_init_uses_distinct_data_points(self, blobs):
        init = GridSOM(shape=(5, 5), seed=1).initialize(blobs)
        assert init.shape == (25, 5)
        assert len({tuple(row) for row in init}) == 25
        data_rows = {tuple(row) for row in blobs}
        assert all(tuple(row) in data_rows for row in init)

    def test_pca_init_is_centered_on_data_mean(self, blobs):
        init = GridSOM(shape=(4, 4), init="pca", seed=1).initialize(blobs)
        assert init.shape == (16, 5)
        np.testing.assert_allclose(init.mean(axis=0), blobs.mean(axis=0), atol=1e-8)


class TestTraining:
    @pytest.mark.parametrize("mode", ["batch", "online"])
    def test_same_seed_is_bit_identical(self, blobs, mode):
        first = GridSOM(shape=(4, 4), epochs=5, mode=mode, seed=7).generate(blobs)
        second = GridSOM(shape=(4, 4), epochs=5, mode=mode, seed=7).generate(blobs)
        np.testing.assert_array_equal(first.positions, second.positions)

    def test_batch_result_independent_of_worker_count(self, blobs):
        serial = GridSOM(shape=(4, 4), epochs=5, seed=7, n_workers=1, chunk_size=64)
        parallel = GridSOM(shape=(4, 4), epochs=5, seed=7, n_workers=4, chunk_size=64)
        np.testing.assert_array_equal(
            serial.generate(blobs).positions, parallel.generate(blobs).positions
        )

    @pytest.mark.parametrize("mode", ["batch", "online"])
    def test_training_reduces_quantization_error(self, blobs, mode):
        som = GridSOM(
            shape=(5, 5), epochs=10, mode=mode, schedule=SOMSchedule(sigma_end=0.1), seed=2
        )
        landmarks = som.generate(blobs)
        assert len(som.history) == 10
        assert som.history[-1] < som.history[0]
        assert quantization_error(blobs, landmarks.positions) < quantization_error(
            blobs, som.initialize(blobs)
        )

    def test_landmarks_are_frozen_with_topology(self, blobs):
        landmarks = GridSOM(shape=(3, 4), epochs=2, seed=0).generate(blobs)
        assert landmarks.n_landmarks == 12
        assert landmarks.frozen
        assert not landmarks.positions.flags.writeable
        assert landmarks.topology.shape == (3, 4)
        assert landmarks.metadata["generator"] == "som"

    def test_three_dimensional_grid(self, blobs):
        landmarks = GridSOM(shape=(2, 3, 2), epochs=2, seed=0).generate(blobs)
        assert landmarks.positions.shape == (12, 5)
        assert landmarks.topology.n_dims == 3

    def test_hexagonal_topology(self, blobs):
        landmarks = GridSOM(shape=(4, 4), topology="hexagonal", epochs=2, seed=0).generate(blobs)
        assert landmarks.topology.kind == "hexagonal"


class TestCancellation:
    def test_callback_sees_every_epoch(self, blobs):
        seen = []
        GridSOM(shape=(3, 3), epochs=4, seed=0).generate(
            blobs, callback=lambda checkpoint: seen.append(checkpoint.epoch)
        )
        assert seen == [1, 2, 3, 4]

    def test_callback_can_abort_at_epoch_boundary(self, blobs):
        som = GridSOM(shape=(3, 3), epochs=10, seed=0)
        landmarks = som.generate(blobs, callback=lambda checkpoint: checkpoint.epoch < 2)

        assert landmarks.metadata["epochs_completed"] == 2
        assert len(som.history) == 2

    def test_aborted_run_matches_shorter_run(self, blobs):
        aborted = GridSOM(shape=(3, 3), epochs=10, seed=0).generate(
            blobs, callback=lambda checkpoint: checkpoint.epoch < 3
        )
        snapshots = []
        GridSOM(shape=(3, 3), epochs=10, seed=0).generate(
            blobs, callback=lambda checkpoint: snapshots.append(checkpoint.positions)
        )
        np.testing.assert_array_equal(aborted.positions, snapshots[2])

    def test_stop_event_prevents_training(self, blobs):
        stop = threading.Event()
        stop.set()
        som = GridSOM(shape=(3, 3), epochs=10, seed=0)
        landmarks = som.generate(blobs, stop_event=stop)

        assert landmarks.metadata["epochs_completed"] == 0
        np.testing.assert_array_equal(landmarks.positions, som.initialize(blobs))


class TestValidation:
    def test_grid_larger_than_dataset(self, blobs):
        with pytest.raises(InvalidConfiguration, match="only 300 points"):
            GridSOM(shape=(20, 20)).generate(blobs)

    @pytest.mark.parametrize("shape", [(0, 4), (4, -2)])
    def test_non_positive_grid(self, shape):
        with pytest.raises(InvalidConfiguration, match="positive"):
            GridSOM(shape=shape)

    def test_unknown_mode(self):
        with pytest.raises(InvalidConfiguration, match="Unknown training mode"):
            GridSOM(mode="stochastic")

    def test_unknown_init(self):
        with pytest.raises(InvalidConfiguration, match="Unknown init strategy"):
            GridSOM(init="linear")

    def test_negative_epochs(self):
        with pytest.raises(InvalidConfiguration, match="epochs"):
            GridSOM(epochs=-1)

    def test_unknown_generate_option(self, blobs):
        with pytest.raises(InvalidConfiguration, match="Supported options"):
            GridSOM(shape=(3, 3)).generate(blobs, on_epoch=print)


class TestBuildingBlocks:
    def test_exponential_decay_endpoints(self):
        assert exponential_decay(4.0, 0.5, 0, 10) == 4.0
        assert exponential_decay(4.0, 0.5, 9, 10) == pytest.approx(0.5)
        assert exponential_decay(4.0, 0.5, 0, 1) == 4.0

    def test_schedule_defaults_to_half_grid(self):
        schedule = SOMSchedule()
        assert schedule.sigma(0, 10, default_start=5.0) == 5.0
        assert schedule.with_overrides(sigma_start=2.0).sigma(0, 10, default_start=5.0) == 2.0

    def test_neighborhood_is_one_on_diagonal(self):
        grid_sq = np.array([[0.0, 1.0], [1.0, 0.0]])
        h = neighborhood_matrix(grid_sq, sigma=1.0)
        np.testing.assert_allclose(np.diag(h), 1.0)
        assert h[0, 1] == pytest.approx(np.exp(-0.5))

    def test_find_bmus_breaks_ties_by_index(self):
        positions = np.array([[1.0, 0.0], [-1.0, 0.0]])
        bmus, sq = find_bmus(np.array([[0.0, 0.0]]), positions)
        assert bmus.tolist() == [0]
        assert sq.tolist() == [1.0]

    def test_accumulate_assignments(self):
        data = np.array([[0.0], [0.2], [10.0]])
        positions = np.array([[0.0], [10.0]])
        sums, counts, qe = accumulate_assignments(data, positions, chunk_size=1, n_workers=2)
        np.testing.assert_allclose(sums, [[0.2], [10.0]])
        np.testing.assert_array_equal(counts, [2, 1])
        assert qe == pytest.approx(0.2 / 3)

    def test_batch_update_keeps_landmarks_without_mass(self):
        positions = np.array([[0.0, 0.0], [5.0, 5.0]])
        sums = np.array([[2.0, 4.0], [0.0, 0.0]])
        counts = np.array([2.0, 0.0])
        updated = batch_update(positions, sums, counts, np.eye(2))
        np.testing.assert_allclose(updated, [[1.0, 2.0], [5.0, 5.0]])
