"""
Tests for the local planar projection.
"""

import math

import numpy as np
import pytest

from haul_evolution.core.bins import Sample
from haul_evolution.core.projection import (
    EARTH_RADIUS_M,
    Projection,
    centroid,
    haversine_distance,
    to_geographic,
    to_local_xy,
)


class TestToLocalXY:
    """Tests for the equirectangular projection."""

    def test_origin_maps_to_zero(self):
        x, y = to_local_xy(38.0, -92.0, 38.0, -92.0)
        assert x == pytest.approx(0.0)
        assert y == pytest.approx(0.0)

    def test_north_offset(self):
        """One degree of latitude is R * pi / 180 meters north."""
        x, y = to_local_xy(39.0, -92.0, 38.0, -92.0)
        assert x == pytest.approx(0.0)
        assert y == pytest.approx(EARTH_RADIUS_M * math.pi / 180)

    def test_east_offset_scaled_by_cos_lat0(self):
        x, y = to_local_xy(38.0, -91.0, 38.0, -92.0)
        expected = EARTH_RADIUS_M * math.cos(math.radians(38.0)) * math.pi / 180
        assert x == pytest.approx(expected)
        assert y == pytest.approx(0.0)

    def test_scalars_return_floats(self):
        x, y = to_local_xy(38.001, -92.001, 38.0, -92.0)
        assert isinstance(x, float)
        assert isinstance(y, float)

    def test_arrays(self):
        lat = np.array([38.0, 38.001])
        lon = np.array([-92.0, -92.001])
        x, y = to_local_xy(lat, lon, 38.0, -92.0)
        assert x.shape == (2,)
        assert y[1] > 0
        assert x[1] < 0


class TestToGeographic:
    """Tests for the inverse projection."""

    def test_round_trip(self):
        lat, lon = to_geographic(123.4, -56.7, 38.0, -92.0)
        x, y = to_local_xy(lat, lon, 38.0, -92.0)
        assert x == pytest.approx(123.4, abs=1e-8)
        assert y == pytest.approx(-56.7, abs=1e-8)

    def test_projection_object_matches_functions(self):
        proj = Projection(38.0, -92.0)
        assert proj.to_local(38.001, -92.0) == to_local_xy(38.001, -92.0, 38.0, -92.0)


class TestHaversine:
    """Tests for great-circle distance."""

    def test_zero_distance(self):
        assert haversine_distance(38.0, -92.0, 38.0, -92.0) == 0.0

    def test_close_to_planar_over_short_distance(self):
        lat, lon = to_geographic(30.0, 40.0, 38.0, -92.0)
        d = haversine_distance(38.0, -92.0, lat, lon)
        assert d == pytest.approx(50.0, rel=1e-4)


class TestCentroid:
    """Tests for the projection anchor."""

    def test_mean_of_samples(self):
        samples = [Sample(38.0, -92.0, 1.0), Sample(38.002, -92.004, 1.0)]
        assert centroid(samples) == pytest.approx((38.001, -92.002))

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            centroid([])
