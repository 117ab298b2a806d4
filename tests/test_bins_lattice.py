"""
Tests for binning samples and building the lattice.
"""

import numpy as np
import pytest

from haul_evolution.core.bins import BinGrid, Sample
from haul_evolution.core.lattice import Lattice, build_faces
from haul_evolution.core.validation import BinSizeError, EmptyInputError

from conftest import ORIGIN, samples_for_cells, geo


class TestBinGrid:
    """Tests for assigning samples to bins."""

    def test_bin_keys_use_floor(self):
        samples = [
            Sample(*_latlon(0.2, 0.2), z_exist=1.0),
            Sample(*_latlon(-0.2, 1.7), z_exist=1.0),
        ]
        grid = BinGrid.from_samples(samples, bin_size=1.0, origin=ORIGIN)
        assert (0, 0) in grid
        assert (-1, 1) in grid

    def test_means_only_over_samples_with_that_kind(self):
        samples = [
            Sample(*_latlon(0.2, 0.2), z_exist=10.0, z_prop=None),
            Sample(*_latlon(0.4, 0.4), z_exist=12.0, z_prop=7.0),
            Sample(*_latlon(0.6, 0.6), z_exist=None, z_prop=9.0),
        ]
        grid = BinGrid.from_samples(samples, bin_size=1.0, origin=ORIGIN)
        b = grid.get(0, 0)
        assert len(b.samples) == 3
        assert b.z_exist_mean == pytest.approx(11.0)
        assert b.z_prop_mean == pytest.approx(8.0)

    def test_missing_kind_is_none_not_zero(self):
        grid = BinGrid.from_samples(
            samples_for_cells({(0, 0): (5.0, None)}), bin_size=1.0, origin=ORIGIN
        )
        b = grid.get(0, 0)
        assert b.z_prop_mean is None
        assert not b.is_eligible

    def test_duplicate_samples_accumulate(self):
        s = Sample(*_latlon(0.5, 0.5), z_exist=3.0, z_prop=1.0)
        grid = BinGrid.from_samples([s, s], bin_size=1.0, origin=ORIGIN)
        assert len(grid) == 1
        assert len(grid.get(0, 0).samples) == 2

    def test_default_origin_is_centroid(self):
        samples = samples_for_cells({(0, 0): (1.0, 1.0), (3, 0): (1.0, 1.0)})
        grid = BinGrid.from_samples(samples, bin_size=1.0)
        assert grid.projection.lat0 == pytest.approx(np.mean([s.lat for s in samples]))
        assert grid.projection.lon0 == pytest.approx(np.mean([s.lon for s in samples]))

    def test_bin_position_is_mean_sample_position(self):
        samples = [
            Sample(*_latlon(0.2, 0.4), z_exist=1.0),
            Sample(*_latlon(0.6, 0.8), z_exist=1.0),
        ]
        grid = BinGrid.from_samples(samples, bin_size=1.0, origin=ORIGIN)
        b = grid.get(0, 0)
        assert b.x == pytest.approx(0.4, abs=1e-6)
        assert b.y == pytest.approx(0.6, abs=1e-6)

    def test_empty_samples_raise(self):
        with pytest.raises(EmptyInputError):
            BinGrid.from_samples([], bin_size=1.0)

    def test_invalid_bin_size_raises(self):
        with pytest.raises(BinSizeError):
            BinGrid.from_samples(samples_for_cells({(0, 0): (1.0, 1.0)}), bin_size=0)

    def test_eligible_bins_do_not_mutate_grid(self):
        cells = {(0, 0): (10.0, 8.0), (1, 0): (10.0, None)}
        grid = BinGrid.from_samples(samples_for_cells(cells), bin_size=1.0, origin=ORIGIN)
        eligible = grid.eligible_bins()

        assert [b.key for b in eligible] == [(0, 0)]
        eligible[0].z_cur = 0.0
        assert grid.get(0, 0).z_cur is None
        assert len(grid) == 2

    def test_statistics(self):
        cells = {(0, 0): (10.0, 8.0), (1, 0): (10.0, None), (2, 0): (None, 8.0)}
        grid = BinGrid.from_samples(samples_for_cells(cells), bin_size=1.0, origin=ORIGIN)
        stats = grid.statistics()
        assert stats["total_bins"] == 3
        assert stats["eligible_bins"] == 1
        assert stats["existing_only"] == 1
        assert stats["proposed_only"] == 1


class TestFaces:
    """Tests for triangulating the lattice."""

    def test_full_cell_gives_two_triangles(self):
        index = {(0, 0): 0, (1, 0): 1, (0, 1): 2, (1, 1): 3}
        assert build_faces(index) == [(0, 1, 2), (1, 3, 2)]

    def test_missing_top_right_gives_lower_triangle(self):
        index = {(0, 0): 0, (1, 0): 1, (0, 1): 2}
        assert build_faces(index) == [(0, 1, 2)]

    def test_missing_bottom_left_gives_upper_triangle(self):
        index = {(1, 0): 0, (0, 1): 1, (1, 1): 2}
        assert build_faces(index) == [(0, 2, 1)]

    def test_two_corners_give_no_triangle(self):
        assert build_faces({(0, 0): 0, (1, 1): 1}) == []

    def test_3x3_grid(self):
        index = {(bx, by): i for i, (bx, by) in enumerate(
            (bx, by) for bx in range(3) for by in range(3)
        )}
        assert len(build_faces(index)) == 8


class TestLattice:
    """Tests for the lattice structure."""

    @pytest.fixture
    def lattice(self, grid_3x3):
        grid = BinGrid.from_samples(samples_for_cells(grid_3x3), bin_size=1.0, origin=ORIGIN)
        return Lattice.from_grid(grid)

    def test_working_state_initialised(self, lattice):
        for b in lattice.bins:
            assert b.z_cur == 10.0
            assert b.z_prop == 8.0

    def test_bounds(self, lattice):
        assert lattice.bounds == (0, 2, 0, 2)

    def test_lookup_by_key(self, lattice):
        b = lattice.get(2, 1)
        assert b.key == (2, 1)
        assert lattice.get(5, 5) is None

    def test_locate_containing_bin(self, lattice):
        idx = lattice.locate(1.9, 0.1)
        assert lattice.bins[idx].key == (1, 0)

    def test_locate_falls_back_to_nearest(self, lattice):
        idx = lattice.locate(10.0, 1.5)
        assert lattice.bins[idx].key == (2, 1)

    def test_locate_geographic(self, lattice):
        p = geo(0.5, 2.5)
        assert lattice.bins[lattice.locate_geographic(p.lat, p.lon)].key == (0, 2)

    def test_no_eligible_bins_raises(self):
        grid = BinGrid.from_samples(
            samples_for_cells({(0, 0): (10.0, None)}), bin_size=1.0, origin=ORIGIN
        )
        with pytest.raises(EmptyInputError):
            Lattice.from_grid(grid)

    def test_faces_static_when_elevations_change(self, lattice):
        faces = list(lattice.faces)
        lattice.bins[0].z_cur = 1.0
        assert lattice.faces == faces


class TestSnapshot:
    """Tests for read-only snapshots."""

    @pytest.fixture
    def lattice(self):
        cells = {(0, 0): (10.0, 8.0), (1, 0): (9.0, 8.0), (0, 1): (11.0, 8.0)}
        grid = BinGrid.from_samples(samples_for_cells(cells), bin_size=1.0, origin=ORIGIN)
        return Lattice.from_grid(grid)

    def test_arrays_are_read_only(self, lattice):
        snap = lattice.snapshot()
        with pytest.raises(ValueError):
            snap.z_cur[0] = 0.0

    def test_snapshot_is_a_copy(self, lattice):
        snap = lattice.snapshot()
        lattice.bins[0].z_cur = 0.0
        assert snap.z_cur[0] == 10.0

    def test_positions(self, lattice):
        snap = lattice.snapshot()
        np.testing.assert_allclose(snap.x, [0.5, 0.5, 1.5], atol=1e-6)
        np.testing.assert_allclose(snap.y, [0.5, 1.5, 0.5], atol=1e-6)

    def test_elevation_grid(self, lattice):
        grid = lattice.snapshot().elevation_grid(nodata=-1.0)
        assert grid.shape == (2, 2)
        assert grid[0, 0] == 10.0
        assert grid[0, 1] == 9.0
        assert grid[1, 0] == 11.0
        assert grid[1, 1] == -1.0

    def test_faces_shape(self, lattice):
        snap = lattice.snapshot()
        assert snap.faces.shape == (1, 3)


def _latlon(x, y):
    p = geo(x, y)
    return p.lat, p.lon
